# scholarmatch/routes/predictions.py
from __future__ import annotations

from fastapi import APIRouter

from .. import schemas
from ..ai.model_loader import get_predictor
from ..engine.scholarship_config import list_scholarships
from .eligibility import resolve_scholarship

router = APIRouter(prefix="/predictions", tags=["predictions"])


@router.post("/probability", response_model=schemas.ProbabilityResponse)
def probability(inp: schemas.EligibilityRequest):
    scholarship = resolve_scholarship(inp.scholarship, inp.scholarship_id)
    out = get_predictor().probability(inp.profile.model_dump(), scholarship)
    out.pop("features", None)
    return {"scholarship_id": scholarship["id"], **out}


@router.post("/recommendations")
def recommendations(inp: schemas.RecommendationRequest):
    ranked = get_predictor().recommendations(
        inp.profile.model_dump(),
        list_scholarships(active_only=True),
        limit=inp.limit,
    )
    return {"count": len(ranked), "items": ranked}
