# scholarmatch/ai/trainer.py
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from ..engine.features import FEATURE_NAMES
from ..logging_config import log_training
from ..models import GLOBAL_SCOPE, TriggerEnum
from ..settings import get_settings
from .logistic import GradientDescentConfig, fit
from .registry import ModelRegistry, scope_for
from .samples import SampleStore

INSUFFICIENT_DATA = "insufficient_data"
ALREADY_TRAINING = "already_training"


@dataclass
class TrainingOutcome:
    status: str  # trained / skipped / error
    scope: str
    scholarship_id: Optional[str] = None
    reason: Optional[str] = None
    message: Optional[str] = None
    sample_count: int = 0
    required_samples: Optional[int] = None
    model: Optional[dict] = None
    elapsed_ms: int = 0

    @property
    def trained(self) -> bool:
        return self.status == "trained"

    @property
    def accuracy(self) -> Optional[float]:
        if not self.model:
            return None
        return self.model.get("metrics", {}).get("accuracy")

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "scope": self.scope,
            "scholarship_id": self.scholarship_id,
            "reason": self.reason,
            "message": self.message,
            "sample_count": self.sample_count,
            "required_samples": self.required_samples,
            "model": self.model,
            "elapsed_ms": self.elapsed_ms,
        }


class ModelTrainer:
    """
    Loads labeled samples for a scope, fits, and registers the result.
    Nothing reaches the registry unless the fit completed.
    """

    def __init__(
        self,
        samples: SampleStore,
        registry: ModelRegistry,
        config: Optional[GradientDescentConfig] = None,
        min_samples_global: Optional[int] = None,
        min_samples_scholarship: Optional[int] = None,
    ):
        settings = get_settings()
        self.samples = samples
        self.registry = registry
        self.config = config or GradientDescentConfig.from_settings(settings)
        self.min_samples_global = (
            min_samples_global if min_samples_global is not None else settings.MIN_SAMPLES_GLOBAL
        )
        self.min_samples_scholarship = (
            min_samples_scholarship if min_samples_scholarship is not None else settings.MIN_SAMPLES_SCHOLARSHIP
        )

    def min_samples_for(self, scholarship_id: Optional[str]) -> int:
        return self.min_samples_scholarship if scholarship_id else self.min_samples_global

    def train_global(self, trigger: str = TriggerEnum.MANUAL.value) -> TrainingOutcome:
        return self.train(None, trigger)

    def train_scholarship(self, scholarship_id: str, trigger: str = TriggerEnum.MANUAL.value) -> TrainingOutcome:
        return self.train(scholarship_id, trigger)

    def train(self, scholarship_id: Optional[str], trigger: str = TriggerEnum.MANUAL.value) -> TrainingOutcome:
        started = time.perf_counter()
        scope = scope_for(scholarship_id)
        required = self.min_samples_for(scholarship_id)

        features, labels = self.samples.load(scholarship_id)
        if len(labels) < required:
            outcome = TrainingOutcome(
                status="skipped",
                scope=scope,
                scholarship_id=scholarship_id,
                reason=INSUFFICIENT_DATA,
                message=f"{len(labels)} labeled samples, {required} required",
                sample_count=len(labels),
                required_samples=required,
            )
            log_training(scope, "skipped", {"reason": INSUFFICIENT_DATA, "samples": len(labels), "required": required})
            return outcome

        if len(set(labels)) < 2:
            log_training(scope, "skipped", {"reason": INSUFFICIENT_DATA, "samples": len(labels), "classes": 1})
            return TrainingOutcome(
                status="skipped",
                scope=scope,
                scholarship_id=scholarship_id,
                reason=INSUFFICIENT_DATA,
                message="labeled samples contain a single outcome class",
                sample_count=len(labels),
                required_samples=required,
            )

        result = fit(features, labels, FEATURE_NAMES, self.config)
        artifact = self.registry.register(result, scholarship_id=scholarship_id, trigger=trigger)

        elapsed = int((time.perf_counter() - started) * 1000)
        log_training(scope, "trained", {
            "model_id": artifact.id,
            "samples": result.sample_count,
            "accuracy": result.metrics.get("accuracy"),
            "elapsed_ms": elapsed,
            "trigger": trigger,
        })
        return TrainingOutcome(
            status="trained",
            scope=scope,
            scholarship_id=scholarship_id,
            sample_count=result.sample_count,
            required_samples=required,
            model=artifact.to_dict(),
            elapsed_ms=elapsed,
        )

    def training_stats(self) -> dict:
        per_scholarship = self.samples.scholarship_counts()
        return {
            "total_samples": self.samples.count(),
            "min_samples_global": self.min_samples_global,
            "min_samples_scholarship": self.min_samples_scholarship,
            "global_ready": self.samples.count() >= self.min_samples_global,
            "scholarships": {
                sid: {**counts, "ready": counts["total"] >= self.min_samples_scholarship}
                for sid, counts in per_scholarship.items()
            },
            "active_global_model": _summary(self.registry.get_active(GLOBAL_SCOPE)),
        }


def _summary(artifact) -> Optional[dict]:
    return artifact.to_dict(include_weights=False) if artifact else None
