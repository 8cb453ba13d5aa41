import math

from scholarmatch.engine.features import (
    FEATURE_NAMES,
    extract_features,
    gwa_score,
    income_need,
    st_bracket_level,
)
from scholarmatch.engine.scholarship_config import get_scholarship


def test_gwa_score_inverts_scale():
    assert gwa_score(1.0) == 1.0
    assert gwa_score(5.0) == 0.0
    assert gwa_score(3.0) == 0.5
    assert gwa_score(None) == 0.5


def test_income_need_log_scaled():
    assert income_need(0, ceiling=1_000_000) == 1.0
    assert income_need(1_000_000, ceiling=1_000_000) == 0.0
    assert income_need(5_000_000, ceiling=1_000_000) == 0.0
    mid = income_need(30_000, ceiling=1_000_000)
    assert math.isclose(mid, 1 - math.log1p(30_000) / math.log1p(1_000_000))
    assert income_need(None) == 0.5


def test_st_bracket_levels():
    assert st_bracket_level("FDS") == 1.0
    assert st_bracket_level("Full Discount") == 0.85
    assert st_bracket_level("ND") == 0.1
    assert st_bracket_level(None) == 0.5


def test_extract_features_bounded_and_complete():
    scholarship = get_scholarship("SCH-NEED-STS")
    profile = {
        "gwa": 1.8,
        "annual_family_income": 150_000,
        "st_bracket": "PD80",
        "college": "CAS",
        "documents_submitted": ["Income Tax Return"],
    }
    features = extract_features(profile, scholarship)
    assert tuple(features) == FEATURE_NAMES
    assert all(0.0 <= v <= 1.0 for v in features.values())
    assert features["st_bracket_match"] == 1.0
    assert features["college_match"] == 1.0  # no restriction
    assert features["document_completeness"] == 0.5


def test_restricted_match_missing_value_is_zero():
    scholarship = get_scholarship("SCH-THESIS-AGRI")
    features = extract_features({"gwa": 2.0}, scholarship)
    assert features["college_match"] == 0.0
    assert features["program_fit"] == 0.0
    assert features["year_level_match"] == 0.0


def test_extract_features_deterministic():
    scholarship = get_scholarship("SCH-ACAD-EXCEL")
    profile = {"gwa": 1.25, "year_level": "Junior", "units_enrolled": 18}
    assert extract_features(profile, scholarship) == extract_features(profile, scholarship)
