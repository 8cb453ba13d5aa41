# scholarmatch/ai/registry.py
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from ..engine.features import FEATURE_LABELS
from ..logging_config import log_event
from ..models import GLOBAL_SCOPE, SCHOLARSHIP_SCOPE_PREFIX, ModelTypeEnum, TrainedModel, TriggerEnum
from ..settings import get_settings
from .logistic import FitResult, feature_contributions, feature_ranking, predict_proba


class ModelNotFound(RuntimeError):
    pass


@dataclass
class ModelArtifact:
    id: str
    model_type: str
    scope: str
    scholarship_id: Optional[str]
    weights: Dict[str, float]
    bias: float
    metrics: Dict[str, object]
    feature_importance: Dict[str, float]
    sample_count: int
    is_active: bool
    trigger_type: str
    trained_at: Optional[datetime] = None
    model_version: Optional[str] = None
    hyperparameters: Dict[str, object] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: TrainedModel) -> "ModelArtifact":
        return cls(
            id=row.id,
            model_type=ModelTypeEnum(row.model_type).value,
            scope=row.scope,
            scholarship_id=row.scholarship_id,
            weights=dict(row.weights or {}),
            bias=float(row.bias or 0.0),
            metrics=dict(row.metrics or {}),
            feature_importance=dict(row.feature_importance or {}),
            sample_count=int(row.sample_count or 0),
            is_active=bool(row.is_active),
            trigger_type=TriggerEnum(row.trigger_type).value,
            trained_at=row.trained_at,
            model_version=row.model_version,
            hyperparameters=dict(row.hyperparameters or {}),
        )

    def predict(self, features: Dict[str, float]) -> float:
        return predict_proba(features, self.weights, self.bias)

    def contributions(self, features: Dict[str, float]) -> Dict[str, float]:
        return feature_contributions(features, self.weights)

    def feature_ranking(self) -> List[dict]:
        return feature_ranking(self.weights, FEATURE_LABELS)

    def to_dict(self, include_weights: bool = True) -> dict:
        out = {
            "id": self.id,
            "model_type": self.model_type,
            "scope": self.scope,
            "scholarship_id": self.scholarship_id,
            "bias": self.bias,
            "metrics": self.metrics,
            "feature_importance": self.feature_importance,
            "sample_count": self.sample_count,
            "is_active": self.is_active,
            "trigger_type": self.trigger_type,
            "trained_at": self.trained_at.isoformat() if self.trained_at else None,
            "model_version": self.model_version,
        }
        if include_weights:
            out["weights"] = self.weights
            out["hyperparameters"] = self.hyperparameters
        return out


@dataclass(frozen=True)
class ModelSelection:
    model: Optional[ModelArtifact]
    model_type: str  # scholarship_specific / global / none
    version: int


def scope_for(scholarship_id: Optional[str]) -> str:
    # namespaced so a scholarship id can never collide with the global scope
    if scholarship_id:
        return f"{SCHOLARSHIP_SCOPE_PREFIX}{scholarship_id}"
    return GLOBAL_SCOPE


class ModelRegistry:
    """
    Versioned store of trained models with one active model per scope.

    Every mutation bumps ``version`` so consumers can cache by version
    instead of being told to invalidate.
    """

    def __init__(self, session_factory: sessionmaker, min_samples_scholarship: Optional[int] = None):
        self._session_factory = session_factory
        self._lock = threading.RLock()
        self._version = 0
        self.min_samples_scholarship = (
            min_samples_scholarship
            if min_samples_scholarship is not None
            else get_settings().MIN_SAMPLES_SCHOLARSHIP
        )

    @property
    def version(self) -> int:
        return self._version

    def _bump(self) -> int:
        self._version += 1
        return self._version

    # ---------- writes ----------
    def register(
        self,
        result: FitResult,
        scholarship_id: Optional[str] = None,
        trigger: str = TriggerEnum.MANUAL.value,
        activate: bool = True,
    ) -> ModelArtifact:
        scope = scope_for(scholarship_id)
        model_type = ModelTypeEnum.SCHOLARSHIP_SPECIFIC if scholarship_id else ModelTypeEnum.GLOBAL

        with self._lock, self._session_factory() as db:
            if activate:
                db.query(TrainedModel).filter(
                    TrainedModel.scope == scope, TrainedModel.is_active.is_(True)
                ).update({TrainedModel.is_active: False}, synchronize_session=False)

            row = TrainedModel(
                model_type=model_type,
                scholarship_id=scholarship_id,
                scope=scope,
                weights=result.weights,
                bias=result.bias,
                metrics=result.metrics,
                feature_importance=result.feature_importance,
                hyperparameters={**result.hyperparameters, "iterations": result.iterations},
                sample_count=result.sample_count,
                trigger_type=TriggerEnum(trigger),
                is_active=activate,
                model_version=get_settings().MODEL_VERSION,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            artifact = ModelArtifact.from_row(row)
            version = self._bump()

        log_event("MODEL_REGISTERED", f"model {artifact.id} registered for {scope}",
                  {"model_id": artifact.id, "scope": scope, "active": activate, "registry_version": version})
        return artifact

    def activate(self, model_id: str) -> ModelArtifact:
        with self._lock, self._session_factory() as db:
            row = db.get(TrainedModel, model_id)
            if row is None:
                raise ModelNotFound(model_id)

            db.query(TrainedModel).filter(
                TrainedModel.scope == row.scope,
                TrainedModel.id != row.id,
                TrainedModel.is_active.is_(True),
            ).update({TrainedModel.is_active: False}, synchronize_session=False)
            row.is_active = True
            db.commit()
            db.refresh(row)
            artifact = ModelArtifact.from_row(row)
            version = self._bump()

        log_event("MODEL_ACTIVATED", f"model {model_id} active for {artifact.scope}",
                  {"model_id": model_id, "scope": artifact.scope, "registry_version": version})
        return artifact

    def delete(self, model_id: str) -> ModelArtifact:
        """Remove a model. Deleting the active one leaves its scope without a model."""
        with self._lock, self._session_factory() as db:
            row = db.get(TrainedModel, model_id)
            if row is None:
                raise ModelNotFound(model_id)
            artifact = ModelArtifact.from_row(row)
            db.delete(row)
            db.commit()
            version = self._bump()

        log_event("MODEL_DELETED", f"model {model_id} deleted",
                  {"model_id": model_id, "scope": artifact.scope, "was_active": artifact.is_active,
                   "registry_version": version})
        return artifact

    # ---------- reads ----------
    def get(self, model_id: str) -> ModelArtifact:
        with self._lock, self._session_factory() as db:
            row = db.get(TrainedModel, model_id)
            if row is None:
                raise ModelNotFound(model_id)
            return ModelArtifact.from_row(row)

    def get_active(self, scope: str) -> Optional[ModelArtifact]:
        with self._lock, self._session_factory() as db:
            row = (
                db.query(TrainedModel)
                .filter(TrainedModel.scope == scope, TrainedModel.is_active.is_(True))
                .order_by(TrainedModel.trained_at.desc())
                .first()
            )
            return ModelArtifact.from_row(row) if row else None

    def list_models(self, scholarship_id: Optional[str] = None, scope: Optional[str] = None) -> List[ModelArtifact]:
        with self._lock, self._session_factory() as db:
            q = db.query(TrainedModel)
            if scholarship_id is not None:
                q = q.filter(TrainedModel.scholarship_id == scholarship_id)
            if scope is not None:
                q = q.filter(TrainedModel.scope == scope)
            rows = q.order_by(TrainedModel.trained_at.desc()).all()
            return [ModelArtifact.from_row(r) for r in rows]

    def select_for_prediction(self, scholarship_id: Optional[str]) -> ModelSelection:
        """
        Scholarship model when active and trained on enough samples,
        then the active global model, then nothing.
        """
        with self._lock:
            if scholarship_id:
                specific = self.get_active(scope_for(scholarship_id))
                if specific is not None and specific.sample_count >= self.min_samples_scholarship:
                    return ModelSelection(specific, ModelTypeEnum.SCHOLARSHIP_SPECIFIC.value, self._version)

            fallback = self.get_active(GLOBAL_SCOPE)
            if fallback is not None:
                return ModelSelection(fallback, ModelTypeEnum.GLOBAL.value, self._version)

            return ModelSelection(None, "none", self._version)
