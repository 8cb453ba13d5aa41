# scholarmatch/engine/features.py
"""
Feature vector for a (student, scholarship) pair.

Training samples and live predictions are both built by ``extract_features``;
every value is clamped to [0, 1].

Transforms
----------
gwa_score             (5 - gwa) / 4, since 1.0 is the best grade and 5.0 the worst
income_need           1 - log1p(income) / log1p(INCOME_REFERENCE_CEILING)
st_bracket_level      ordinal discount level (FDS 1.0 ... ND 0.1)
*_match               1 when the scholarship does not restrict the field or the
                      value is allowed, 0 otherwise (including missing values)
profile_completeness  share of key profile fields that are filled
document_completeness share of the scholarship's required documents submitted
eligibility_score     rule-engine score
academic_strength     gwa_score * year_level_match
financial_need        income_need * st_bracket_level
program_fit           college_match * course_match
Missing numeric inputs map to the neutral 0.5.
"""
from __future__ import annotations

import math
from typing import Any, Dict, Optional

from ..settings import get_settings
from .conditions import evaluate_list, has_value, normalize_text
from .rules import evaluate

NEUTRAL = 0.5

ST_BRACKET_LEVELS = {
    "fds": 1.0,
    "fd": 0.85,
    "pd80": 0.7,
    "pd60": 0.55,
    "pd40": 0.4,
    "pd20": 0.25,
    "nd": 0.1,
}

ST_BRACKET_ALIASES = {
    "full discount with stipend": "fds",
    "full discount": "fd",
    "partial discount 80": "pd80",
    "partial discount 60": "pd60",
    "partial discount 40": "pd40",
    "partial discount 20": "pd20",
    "no discount": "nd",
}

PROFILE_FIELDS = (
    "gwa",
    "annual_family_income",
    "year_level",
    "college",
    "course",
    "st_bracket",
    "province_of_origin",
    "citizenship",
    "units_enrolled",
    "household_size",
)

MATCH_FEATURES = {
    "year_level_match": ("year_level", "eligible_year_levels"),
    "college_match": ("college", "eligible_colleges"),
    "course_match": ("course", "eligible_courses"),
    "st_bracket_match": ("st_bracket", "eligible_st_brackets"),
    "citizenship_match": ("citizenship", "eligible_citizenship"),
    "province_match": ("province_of_origin", "eligible_provinces"),
}

FEATURE_NAMES = (
    "gwa_score",
    "income_need",
    "st_bracket_level",
    "year_level_match",
    "college_match",
    "course_match",
    "st_bracket_match",
    "citizenship_match",
    "province_match",
    "profile_completeness",
    "document_completeness",
    "eligibility_score",
    "academic_strength",
    "financial_need",
    "program_fit",
)

FEATURE_LABELS = {
    "gwa_score": "Academic performance (GWA)",
    "income_need": "Financial need (income)",
    "st_bracket_level": "ST bracket",
    "year_level_match": "Year level match",
    "college_match": "College match",
    "course_match": "Course match",
    "st_bracket_match": "ST bracket match",
    "citizenship_match": "Citizenship match",
    "province_match": "Province match",
    "profile_completeness": "Profile completeness",
    "document_completeness": "Document completeness",
    "eligibility_score": "Eligibility score",
    "academic_strength": "Academic strength",
    "financial_need": "Financial need",
    "program_fit": "Program fit",
}


def _clamp(x: float) -> float:
    if math.isnan(x):
        return NEUTRAL
    return max(0.0, min(1.0, float(x)))


def gwa_score(gwa: Any) -> float:
    try:
        g = float(gwa)
    except (TypeError, ValueError):
        return NEUTRAL
    if not 1.0 <= g <= 5.0:
        return NEUTRAL
    return _clamp((5.0 - g) / 4.0)


def income_need(income: Any, ceiling: Optional[float] = None) -> float:
    ceiling = ceiling or get_settings().INCOME_REFERENCE_CEILING
    try:
        value = float(income)
    except (TypeError, ValueError):
        return NEUTRAL
    if value < 0:
        return NEUTRAL
    return _clamp(1.0 - math.log1p(value) / math.log1p(ceiling))


def canonical_st_bracket(bracket: Any) -> Optional[str]:
    if not has_value(bracket):
        return None
    key = normalize_text(str(bracket))
    return ST_BRACKET_ALIASES.get(key, key.replace(" ", ""))


def st_bracket_level(bracket: Any) -> float:
    key = canonical_st_bracket(bracket)
    if key is None:
        return NEUTRAL
    return ST_BRACKET_LEVELS.get(key, NEUTRAL)


def match_indicator(value: Any, allowed: Any, field: str = "") -> float:
    if not allowed:
        return 1.0
    if field == "st_bracket":
        value = canonical_st_bracket(value)
        allowed = [canonical_st_bracket(a) for a in allowed]
    return 1.0 if evaluate_list(value, "in", allowed) else 0.0


def profile_completeness(profile: dict) -> float:
    filled = sum(1 for f in PROFILE_FIELDS if has_value(profile.get(f)))
    return filled / len(PROFILE_FIELDS)


def document_completeness(profile: dict, required_documents: Any) -> float:
    required = {normalize_text(d) for d in (required_documents or []) if has_value(d)}
    if not required:
        return 1.0
    submitted = {normalize_text(d) for d in (profile.get("documents_submitted") or []) if has_value(d)}
    return len(required & submitted) / len(required)


def extract_features(profile: dict, scholarship: Optional[dict] = None) -> Dict[str, float]:
    profile = profile or {}
    scholarship = scholarship or {}
    criteria = scholarship.get("eligibility_criteria") or {}

    out: Dict[str, float] = {
        "gwa_score": gwa_score(profile.get("gwa")),
        "income_need": income_need(profile.get("annual_family_income")),
        "st_bracket_level": st_bracket_level(profile.get("st_bracket")),
    }

    for name, (field, key) in MATCH_FEATURES.items():
        out[name] = match_indicator(profile.get(field), criteria.get(key), field)

    out["profile_completeness"] = profile_completeness(profile)
    out["document_completeness"] = document_completeness(profile, scholarship.get("required_documents"))
    out["eligibility_score"] = evaluate(profile, criteria).score

    # ---------- interactions ----------
    out["academic_strength"] = out["gwa_score"] * out["year_level_match"]
    out["financial_need"] = out["income_need"] * out["st_bracket_level"]
    out["program_fit"] = out["college_match"] * out["course_match"]

    return {name: round(_clamp(out[name]), 6) for name in FEATURE_NAMES}
