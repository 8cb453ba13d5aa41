# scholarmatch/ai/model_loader.py
from functools import lru_cache

from ..db import SessionLocal
from ..settings import get_settings
from .autotrain import AutoRetrainOrchestrator, AutoTrainingConfig
from .logistic import GradientDescentConfig
from .predictors import ScholarshipPredictor
from .registry import ModelRegistry
from .samples import SampleStore
from .trainer import ModelTrainer


@lru_cache(maxsize=1)
def get_registry() -> ModelRegistry:
    return ModelRegistry(SessionLocal, get_settings().MIN_SAMPLES_SCHOLARSHIP)


@lru_cache(maxsize=1)
def get_sample_store() -> SampleStore:
    return SampleStore(SessionLocal)


@lru_cache(maxsize=1)
def get_trainer() -> ModelTrainer:
    settings = get_settings()
    return ModelTrainer(
        get_sample_store(),
        get_registry(),
        GradientDescentConfig.from_settings(settings),
        settings.MIN_SAMPLES_GLOBAL,
        settings.MIN_SAMPLES_SCHOLARSHIP,
    )


@lru_cache(maxsize=1)
def get_orchestrator() -> AutoRetrainOrchestrator:
    return AutoRetrainOrchestrator(
        get_trainer(),
        AutoTrainingConfig.from_settings(),
        session_factory=SessionLocal,
    )


@lru_cache(maxsize=1)
def get_predictor() -> ScholarshipPredictor:
    return ScholarshipPredictor(get_registry())
