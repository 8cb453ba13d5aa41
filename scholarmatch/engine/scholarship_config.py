# scholarmatch/engine/scholarship_config.py
#
# In-process scholarship catalogue. Records arrive from the CRUD service in
# production; the seeded entries keep local runs and tests self-contained.
from __future__ import annotations

import copy
import threading

from .conditions import validate_condition


class UnknownScholarship(KeyError):
    pass


SCHOLARSHIP_CONFIG = {
    "SCH-ACAD-EXCEL": {
        "id": "SCH-ACAD-EXCEL",
        "name": "Academic Excellence Grant",
        "sponsor": "Alumni Foundation",
        "eligibility_criteria": {
            "max_gwa": 1.75,
            "min_units_enrolled": 15,
            "eligible_year_levels": ["Sophomore", "Junior", "Senior"],
            "eligible_colleges": [],  # no restriction
            "must_not_have_failing_grade": True,
            "must_not_have_grade_of_4": True,
            "must_not_have_disciplinary_action": True,
        },
        "required_documents": ["Transcript of Records", "Certificate of Registration"],
        "is_active": True,
    },
    "SCH-NEED-STS": {
        "id": "SCH-NEED-STS",
        "name": "Socialized Tuition Stipend",
        "sponsor": "Office of Scholarships",
        "eligibility_criteria": {
            "max_gwa": 2.75,
            "max_annual_family_income": 250_000,
            "eligible_st_brackets": ["FDS", "FD", "PD80"],
            "must_not_have_other_scholarship": True,
            "custom_conditions": [
                {
                    "id": "household-size",
                    "name": "Household of at least 4",
                    "student_field": "household_size",
                    "condition_type": "range",
                    "operator": "gte",
                    "value": 4,
                    "category": "financial",
                    "importance": "preferred",
                },
            ],
        },
        "required_documents": ["Income Tax Return", "Certificate of Indigency"],
        "is_active": True,
    },
    "SCH-THESIS-AGRI": {
        "id": "SCH-THESIS-AGRI",
        "name": "Agriculture Thesis Grant",
        "sponsor": "Department of Agriculture",
        "eligibility_criteria": {
            "max_gwa": 2.5,
            "eligible_colleges": ["College of Agriculture and Food Science"],
            "eligible_year_levels": ["Senior"],
            "requires_approved_thesis_outline": True,
            "must_not_have_thesis_grant": True,
            "eligible_citizenship": ["Filipino"],
        },
        "required_documents": ["Approved Thesis Outline", "Endorsement Letter"],
        "is_active": True,
    },
}

_lock = threading.Lock()


def get_scholarship(scholarship_id: str) -> dict:
    with _lock:
        record = SCHOLARSHIP_CONFIG.get(scholarship_id)
        if record is None:
            raise UnknownScholarship(scholarship_id)
        return copy.deepcopy(record)


def list_scholarships(active_only: bool = True) -> list[dict]:
    with _lock:
        records = [copy.deepcopy(r) for r in SCHOLARSHIP_CONFIG.values()]
    if active_only:
        records = [r for r in records if r.get("is_active", True)]
    return records


def register_scholarship(record: dict) -> dict:
    """Insert or replace a scholarship; custom conditions are validated first."""
    record = copy.deepcopy(record)
    criteria = record.setdefault("eligibility_criteria", {})
    criteria["custom_conditions"] = [
        validate_condition(c) for c in criteria.get("custom_conditions") or []
    ]
    with _lock:
        SCHOLARSHIP_CONFIG[record["id"]] = record
    return copy.deepcopy(record)
