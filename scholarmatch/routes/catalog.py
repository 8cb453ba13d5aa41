# scholarmatch/routes/catalog.py
from __future__ import annotations

from fastapi import APIRouter, HTTPException

from .. import schemas
from ..engine.scholarship_config import get_scholarship, list_scholarships, register_scholarship
from ..logging_config import log_event

router = APIRouter(prefix="/scholarships", tags=["scholarships"])


@router.get("/")
def all_scholarships(include_inactive: bool = False):
    return list_scholarships(active_only=not include_inactive)


@router.get("/{scholarship_id}")
def one_scholarship(scholarship_id: str):
    return get_scholarship(scholarship_id)


@router.put("/{scholarship_id}")
def upsert_scholarship(scholarship_id: str, body: schemas.Scholarship):
    if body.id != scholarship_id:
        raise HTTPException(400, "Path id and body id differ")
    record = register_scholarship(body.model_dump())
    log_event("SCHOLARSHIP_UPSERT", f"scholarship {scholarship_id} saved",
              {"custom_conditions": len(record["eligibility_criteria"]["custom_conditions"])})
    return record
