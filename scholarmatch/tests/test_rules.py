import pytest

from scholarmatch.engine.conditions import ConditionValidationError
from scholarmatch.engine.rules import evaluate, quick_check


def _check(out, check_id):
    matches = [c for c in out.checks if c.id == check_id]
    assert len(matches) == 1, [c.id for c in out.checks]
    return matches[0]


# -------------------------
# RANGE CRITERIA
# -------------------------
def test_max_gwa_pass():
    out = evaluate({"gwa": 1.75}, {"max_gwa": 2.0})
    check = _check(out, "gwa")
    assert check.passed is True
    assert out.passed is True
    assert out.score == 1.0


def test_max_gwa_fail_mentions_requirement():
    out = evaluate({"gwa": 2.5}, {"max_gwa": 2.0})
    check = _check(out, "gwa")
    assert check.passed is False
    assert "does not meet requirement" in check.notes
    assert out.passed is False
    assert out.failed_required == ["gwa"]


def test_missing_gwa_is_not_provided():
    out = evaluate({"gwa": None}, {"max_gwa": 2.0})
    check = _check(out, "gwa")
    assert check.passed is False
    assert "not provided" in check.notes
    assert out.score == 0.0


def test_unset_bound_produces_no_check():
    out = evaluate({"gwa": 1.5, "annual_family_income": 90_000}, {"max_gwa": 2.0})
    assert [c.id for c in out.checks] == ["gwa"]


def test_income_between_bounds():
    criteria = {"min_annual_family_income": 50_000, "max_annual_family_income": 250_000}
    assert evaluate({"annual_family_income": 100_000}, criteria).passed is True
    out = evaluate({"annual_family_income": 300_000}, criteria)
    assert out.passed is False
    assert "between" in _check(out, "annual_family_income").notes


def test_zero_income_is_a_value_not_missing():
    out = evaluate({"annual_family_income": 0}, {"max_annual_family_income": 250_000})
    assert _check(out, "annual_family_income").passed is True


# -------------------------
# LIST CRITERIA
# -------------------------
def test_empty_college_list_is_unrestricted():
    for college in ["College of Engineering", "CAS", None]:
        out = evaluate({"college": college}, {"eligible_colleges": []})
        assert out.checks == []
        assert out.passed is True


def test_college_list_case_insensitive():
    criteria = {"eligible_colleges": ["College of Agriculture and Food Science"]}
    assert evaluate({"college": "college of agriculture and food science"}, criteria).passed is True
    out = evaluate({"college": "College of Engineering"}, criteria)
    assert out.passed is False
    assert "must be one of" in _check(out, "college").notes


def test_list_missing_value_fails():
    out = evaluate({}, {"eligible_year_levels": ["Senior"]})
    check = _check(out, "year_level")
    assert check.passed is False
    assert check.notes == "Year level not provided"


# -------------------------
# BOOLEAN CRITERIA
# -------------------------
def test_must_not_have_flag_inverts():
    criteria = {"must_not_have_failing_grade": True}
    assert evaluate({"has_failing_grade": False}, criteria).passed is True
    assert evaluate({"has_failing_grade": True}, criteria).passed is False


def test_requires_flag():
    criteria = {"requires_approved_thesis_outline": True}
    assert evaluate({"has_approved_thesis_outline": True}, criteria).passed is True
    out = evaluate({}, criteria)
    assert out.passed is False
    assert "not provided" in out.checks[0].notes


def test_unset_flag_no_check():
    out = evaluate({"has_failing_grade": True}, {"must_not_have_failing_grade": False})
    assert out.checks == []


# -------------------------
# CUSTOM CONDITIONS
# -------------------------
def test_custom_condition_reads_custom_fields():
    criteria = {
        "custom_conditions": [
            {
                "id": "org",
                "name": "Org member",
                "student_field": "is_org_member",
                "condition_type": "boolean",
                "operator": "is_true",
            }
        ]
    }
    out = evaluate({"custom_fields": {"is_org_member": True}}, criteria)
    assert out.passed is True
    assert out.checks[0].id == "custom:org"


def test_advisory_condition_does_not_block():
    criteria = {
        "max_gwa": 2.0,
        "custom_conditions": [
            {
                "id": "hh",
                "name": "Household of at least 4",
                "student_field": "household_size",
                "condition_type": "range",
                "operator": "gte",
                "value": 4,
                "importance": "preferred",
            }
        ],
    }
    out = evaluate({"gwa": 1.5, "household_size": 3}, criteria)
    hh = _check(out, "custom:hh")
    assert hh.passed is False
    assert "(advisory)" in hh.notes
    assert out.passed is True
    assert out.score == 0.5


def test_inactive_condition_skipped():
    criteria = {
        "custom_conditions": [
            {"student_field": "gwa", "condition_type": "range", "operator": "lt",
             "value": 1.2, "is_active": False}
        ]
    }
    assert evaluate({"gwa": 2.0}, criteria).checks == []


def test_invalid_condition_raises():
    criteria = {
        "custom_conditions": [
            {"student_field": "gwa", "condition_type": "range", "operator": "contains_all", "value": 2}
        ]
    }
    with pytest.raises(ConditionValidationError):
        evaluate({"gwa": 1.5}, criteria)


# -------------------------
# AGGREGATE
# -------------------------
def test_no_criteria_is_eligible_by_default():
    out = evaluate({"gwa": 3.0}, {})
    assert out.passed is True
    assert out.score == 1.0
    assert out.summary == {"total": 0, "passed": 0, "failed": 0}


def test_stages_partition_checks():
    criteria = {
        "max_gwa": 2.0,
        "max_annual_family_income": 250_000,
        "eligible_citizenship": ["Filipino"],
    }
    out = evaluate({"gwa": 1.5, "annual_family_income": 100_000, "citizenship": "Filipino"}, criteria)
    assert [c["id"] for c in out.stages["academic"]] == ["gwa"]
    assert [c["id"] for c in out.stages["financial"]] == ["annual_family_income"]
    assert [c["id"] for c in out.stages["additional"]] == ["citizenship"]


def test_evaluate_is_idempotent():
    profile = {"gwa": 2.1, "college": "CAS", "custom_fields": {"org": "yes"}}
    criteria = {
        "max_gwa": 2.0,
        "eligible_colleges": ["CAS"],
        "custom_conditions": [
            {"student_field": "org", "condition_type": "list", "operator": "in", "value": ["yes"]}
        ],
    }
    assert evaluate(profile, criteria).to_dict() == evaluate(profile, criteria).to_dict()


def test_quick_check_matches_evaluate():
    criteria = {"max_gwa": 2.0, "must_not_have_failing_grade": True}
    for profile in [{"gwa": 1.5}, {"gwa": 2.5}, {"gwa": 1.5, "has_failing_grade": True}]:
        assert quick_check(profile, criteria) == evaluate(profile, criteria).passed


def test_custom_contains_all_empty_applicant_list_fails():
    criteria = {
        "custom_conditions": [
            {"id": "certs", "name": "Certificates", "student_field": "certificates",
             "condition_type": "list", "operator": "contains_all", "value": ["NC II"]}
        ]
    }
    out = evaluate({"custom_fields": {"certificates": []}}, criteria)
    assert out.passed is False
    assert "does not meet requirement" in out.checks[0].notes

    out = evaluate({}, criteria)
    assert out.checks[0].notes == "Certificates not provided"


def test_custom_empty_requirement_passes_when_field_missing():
    criteria = {
        "custom_conditions": [
            {"id": "org", "student_field": "org", "condition_type": "list", "operator": "in", "value": []}
        ]
    }
    out = evaluate({}, criteria)
    assert out.passed is True
    assert out.score == 1.0
    assert out.failed_required == []
    assert out.checks[0].notes == "org satisfied"


def test_duplicate_default_condition_ids_stay_distinct():
    criteria = {
        "custom_conditions": [
            {"student_field": "gwa", "condition_type": "range", "operator": "lte", "value": 2.0},
            {"student_field": "gwa", "condition_type": "range", "operator": "lte", "value": 1.5},
        ]
    }
    out = evaluate({"gwa": 1.75}, criteria)
    assert [c.id for c in out.checks] == ["custom:gwa:lte", "custom:gwa:lte#1"]
    assert out.failed_required == ["custom:gwa:lte#1"]
