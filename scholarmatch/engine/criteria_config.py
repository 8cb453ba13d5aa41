# scholarmatch/engine/criteria_config.py
#
# Built-in eligibility criteria. Each entry maps criteria keys on a
# scholarship to a field on the student profile; adding a criterion is a
# config change, not a code change.

RANGE_CRITERIA = [
    {
        "id": "gwa",
        "name": "GWA",
        "category": "academic",
        "field": "gwa",
        "min_key": "min_gwa",
        "max_key": "max_gwa",
        "format": "{:.2f}",
    },
    {
        "id": "annual_family_income",
        "name": "Annual family income",
        "category": "financial",
        "field": "annual_family_income",
        "min_key": "min_annual_family_income",
        "max_key": "max_annual_family_income",
        "format": "PHP {:,.0f}",
    },
    {
        "id": "units_enrolled",
        "name": "Units enrolled",
        "category": "enrollment",
        "field": "units_enrolled",
        "min_key": "min_units_enrolled",
        "max_key": None,
        "format": "{:g}",
    },
    {
        "id": "units_passed",
        "name": "Units passed",
        "category": "academic",
        "field": "units_passed",
        "min_key": "min_units_passed",
        "max_key": None,
        "format": "{:g}",
    },
    {
        "id": "household_size",
        "name": "Household size",
        "category": "financial",
        "field": "household_size",
        "min_key": "min_household_size",
        "max_key": "max_household_size",
        "format": "{:g}",
    },
]

# empty requirement list = no restriction
LIST_CRITERIA = [
    {"id": "year_level", "name": "Year level", "category": "enrollment",
     "field": "year_level", "key": "eligible_year_levels"},
    {"id": "college", "name": "College", "category": "enrollment",
     "field": "college", "key": "eligible_colleges"},
    {"id": "course", "name": "Course", "category": "enrollment",
     "field": "course", "key": "eligible_courses"},
    {"id": "major", "name": "Major", "category": "enrollment",
     "field": "major", "key": "eligible_majors"},
    {"id": "st_bracket", "name": "ST bracket", "category": "financial",
     "field": "st_bracket", "key": "eligible_st_brackets"},
    {"id": "province_of_origin", "name": "Province of origin", "category": "location",
     "field": "province_of_origin", "key": "eligible_provinces"},
    {"id": "citizenship", "name": "Citizenship", "category": "demographic",
     "field": "citizenship", "key": "eligible_citizenship"},
]

# mode "must_not" -> passed = not profile[field]; mode "requires" -> passed = bool(profile[field])
BOOLEAN_CRITERIA = [
    {"id": "no_other_scholarship", "name": "No existing scholarship", "category": "status",
     "field": "has_existing_scholarship", "key": "must_not_have_other_scholarship", "mode": "must_not"},
    {"id": "no_disciplinary_action", "name": "No disciplinary action", "category": "status",
     "field": "has_disciplinary_action", "key": "must_not_have_disciplinary_action", "mode": "must_not"},
    {"id": "no_failing_grade", "name": "No failing grade", "category": "academic",
     "field": "has_failing_grade", "key": "must_not_have_failing_grade", "mode": "must_not"},
    {"id": "no_grade_of_4", "name": "No grade of 4", "category": "academic",
     "field": "has_grade_of_4", "key": "must_not_have_grade_of_4", "mode": "must_not"},
    {"id": "no_incomplete_grade", "name": "No incomplete grade", "category": "academic",
     "field": "has_incomplete_grade", "key": "must_not_have_incomplete_grade", "mode": "must_not"},
    {"id": "no_thesis_grant", "name": "No existing thesis grant", "category": "status",
     "field": "has_thesis_grant", "key": "must_not_have_thesis_grant", "mode": "must_not"},
    {"id": "approved_thesis_outline", "name": "Approved thesis outline", "category": "academic",
     "field": "has_approved_thesis_outline", "key": "requires_approved_thesis_outline", "mode": "requires"},
    {"id": "graduating", "name": "Graduating student", "category": "status",
     "field": "is_graduating", "key": "must_be_graduating", "mode": "requires"},
]

STAGE_BY_CATEGORY = {
    "academic": "academic",
    "financial": "financial",
}
DEFAULT_STAGE = "additional"
STAGES = ("academic", "financial", "additional")


def stage_for(category: str) -> str:
    return STAGE_BY_CATEGORY.get(category, DEFAULT_STAGE)
