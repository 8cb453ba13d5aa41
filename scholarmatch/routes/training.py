# scholarmatch/routes/training.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Query

from .. import schemas
from ..ai.model_loader import get_orchestrator, get_registry, get_sample_store, get_trainer
from ..engine.scholarship_config import get_scholarship
from ..logging_config import log_event

router = APIRouter(prefix="/training", tags=["training"])


# --- 1. LABELED DECISIONS (auto-retrain feed) ---
@router.post("/decisions", response_model=schemas.DecisionResponse, status_code=201)
def record_decision(inp: schemas.DecisionIn, background_tasks: BackgroundTasks):
    """
    Stores the feature snapshot + outcome, then counts the decision toward
    auto-retraining after the response is sent.
    """
    scholarship = get_scholarship(inp.scholarship_id)
    sample_id, _ = get_sample_store().add_decision(
        inp.profile.model_dump(), scholarship, inp.approved, inp.application_id
    )
    log_event("DECISION_RECORDED", f"decision for {inp.scholarship_id}",
              {"sample_id": sample_id, "approved": inp.approved})

    orchestrator = get_orchestrator()
    if orchestrator.config.enabled:
        background_tasks.add_task(orchestrator.on_decision, inp.scholarship_id)

    return {
        "sample_id": sample_id,
        "scholarship_id": inp.scholarship_id,
        "label": int(inp.approved),
        "retrain_queued": orchestrator.config.enabled,
    }


# --- 2. MANUAL TRAINING ---
@router.post("/global")
def train_global_model():
    return get_orchestrator().train_now(None).to_dict()


@router.post("/scholarships/{scholarship_id}")
def train_scholarship_model(scholarship_id: str):
    get_scholarship(scholarship_id)
    return get_orchestrator().train_now(scholarship_id).to_dict()


@router.post("/all")
def train_all_models():
    return get_orchestrator().train_all()


# --- 3. MODEL REGISTRY ---
@router.get("/models")
def list_models(scholarship_id: Optional[str] = None, include_weights: bool = False):
    registry = get_registry()
    return {
        "registry_version": registry.version,
        "models": [m.to_dict(include_weights=include_weights) for m in registry.list_models(scholarship_id)],
    }


@router.get("/models/{model_id}")
def get_model(model_id: str):
    model = get_registry().get(model_id)
    return {**model.to_dict(), "feature_ranking": model.feature_ranking()}


@router.post("/models/{model_id}/activate")
def activate_model(model_id: str):
    model = get_registry().activate(model_id)
    return {"status": "activated", "model": model.to_dict(include_weights=False),
            "registry_version": get_registry().version}


@router.delete("/models/{model_id}")
def delete_model(model_id: str):
    model = get_registry().delete(model_id)
    return {"status": "deleted", "model_id": model.id, "was_active": model.is_active,
            "registry_version": get_registry().version}


# --- 4. AUTO-TRAINING INTROSPECTION ---
@router.get("/auto/status")
def auto_training_status():
    return get_orchestrator().status()


@router.get("/auto/log")
def auto_training_log(limit: int = Query(20, ge=1, le=500)):
    events = get_orchestrator().log(limit)
    return {"count": len(events), "events": events}


@router.get("/stats")
def training_stats():
    return get_trainer().training_stats()
