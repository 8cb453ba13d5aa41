# scholarmatch/routes/eligibility.py
from __future__ import annotations

from fastapi import APIRouter, HTTPException

from .. import schemas
from ..engine.rules import evaluate
from ..engine.scholarship_config import get_scholarship

router = APIRouter(prefix="/eligibility", tags=["eligibility"])


def resolve_scholarship(inline: schemas.Scholarship | None, scholarship_id: str | None) -> dict:
    if inline is not None:
        return inline.model_dump()
    if scholarship_id:
        return get_scholarship(scholarship_id)
    raise HTTPException(422, "Provide either scholarship or scholarship_id")


@router.post("/check", response_model=schemas.EligibilityResponse)
def check_eligibility(inp: schemas.EligibilityRequest):
    scholarship = resolve_scholarship(inp.scholarship, inp.scholarship_id)
    out = evaluate(inp.profile.model_dump(), scholarship.get("eligibility_criteria"))
    return {"scholarship_id": scholarship.get("id"), **out.to_dict()}
