# scholarmatch/schemas.py
from __future__ import annotations

from typing import Optional, List, Any, Dict, Literal

from pydantic import BaseModel, Field, ConfigDict, field_validator

from .engine.conditions import validate_condition


Importance = Literal["required", "preferred", "optional"]
ConditionKind = Literal["range", "boolean", "list"]


class StudentProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    gwa: Optional[float] = Field(None, ge=1.0, le=5.0)
    annual_family_income: Optional[float] = Field(None, ge=0)
    units_enrolled: Optional[float] = Field(None, ge=0)
    units_passed: Optional[float] = Field(None, ge=0)
    household_size: Optional[int] = Field(None, ge=1)

    year_level: Optional[str] = None
    college: Optional[str] = None
    course: Optional[str] = None
    major: Optional[str] = None
    st_bracket: Optional[str] = None
    province_of_origin: Optional[str] = None
    citizenship: Optional[str] = None

    has_existing_scholarship: Optional[bool] = None
    has_disciplinary_action: Optional[bool] = None
    has_failing_grade: Optional[bool] = None
    has_grade_of_4: Optional[bool] = None
    has_incomplete_grade: Optional[bool] = None
    has_thesis_grant: Optional[bool] = None
    has_approved_thesis_outline: Optional[bool] = None
    is_graduating: Optional[bool] = None

    documents_submitted: List[str] = Field(default_factory=list)
    custom_fields: Dict[str, Any] = Field(default_factory=dict)


class CustomCondition(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    student_field: str
    condition_type: ConditionKind
    operator: str
    value: Any = None
    category: str = "custom"
    importance: Importance = "required"
    is_active: bool = True


class EligibilityCriteria(BaseModel):
    model_config = ConfigDict(extra="ignore")

    min_gwa: Optional[float] = None
    max_gwa: Optional[float] = None
    min_annual_family_income: Optional[float] = None
    max_annual_family_income: Optional[float] = None
    min_units_enrolled: Optional[float] = None
    min_units_passed: Optional[float] = None
    min_household_size: Optional[int] = None
    max_household_size: Optional[int] = None

    eligible_year_levels: List[str] = Field(default_factory=list)
    eligible_colleges: List[str] = Field(default_factory=list)
    eligible_courses: List[str] = Field(default_factory=list)
    eligible_majors: List[str] = Field(default_factory=list)
    eligible_st_brackets: List[str] = Field(default_factory=list)
    eligible_provinces: List[str] = Field(default_factory=list)
    eligible_citizenship: List[str] = Field(default_factory=list)

    must_not_have_other_scholarship: bool = False
    must_not_have_disciplinary_action: bool = False
    must_not_have_failing_grade: bool = False
    must_not_have_grade_of_4: bool = False
    must_not_have_incomplete_grade: bool = False
    must_not_have_thesis_grant: bool = False
    requires_approved_thesis_outline: bool = False
    must_be_graduating: bool = False

    custom_conditions: List[CustomCondition] = Field(default_factory=list)

    @field_validator("custom_conditions", mode="after")
    @classmethod
    def _validate_conditions(cls, v: List[CustomCondition]):
        # ConditionValidationError is a ValueError, so pydantic reports it as a 422
        for cond in v:
            validate_condition(cond.model_dump())
        return v


class Scholarship(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    name: str
    sponsor: Optional[str] = None
    eligibility_criteria: EligibilityCriteria = Field(default_factory=EligibilityCriteria)
    required_documents: List[str] = Field(default_factory=list)
    is_active: bool = True


# -------------------------
# requests
# -------------------------
class EligibilityRequest(BaseModel):
    profile: StudentProfile
    scholarship: Optional[Scholarship] = None
    scholarship_id: Optional[str] = None


class RecommendationRequest(BaseModel):
    profile: StudentProfile
    limit: int = Field(10, ge=1, le=100)


class DecisionIn(BaseModel):
    profile: StudentProfile
    scholarship_id: str
    approved: bool
    application_id: Optional[str] = None


# -------------------------
# responses
# -------------------------
class CheckOut(BaseModel):
    id: str
    criterion: str
    passed: bool
    applicant_value: Any = None
    required_value: Any = None
    notes: str
    type: str
    category: str
    importance: str


class EligibilityResponse(BaseModel):
    scholarship_id: Optional[str] = None
    passed: bool
    score: float
    checks: List[CheckOut] = Field(default_factory=list)
    stages: Dict[str, List[CheckOut]] = Field(default_factory=dict)
    summary: Dict[str, int] = Field(default_factory=dict)
    failed_required: List[str] = Field(default_factory=list)


class ProbabilityResponse(BaseModel):
    scholarship_id: str
    available: bool
    probability: Optional[float] = None
    confidence: Optional[Literal["low", "medium", "high"]] = None
    model_type: Literal["scholarship_specific", "global", "none"]
    model_id: Optional[str] = None
    predicted_outcome: Optional[str] = None
    match_level: Optional[Literal["strong", "good", "moderate", "weak"]] = None
    recommendation: Optional[str] = None
    feature_contributions: Dict[str, float] = Field(default_factory=dict)
    top_factors: List[Dict[str, Any]] = Field(default_factory=list)
    registry_version: int
    message: Optional[str] = None


class DecisionResponse(BaseModel):
    sample_id: int
    scholarship_id: str
    label: int
    retrain_queued: bool
