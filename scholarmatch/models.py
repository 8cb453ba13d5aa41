# scholarmatch/models.py
from __future__ import annotations

import enum
import uuid
import json
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Enum as SAEnum,
    DateTime,
    Float,
    Boolean,
    Integer,
)
from sqlalchemy.types import TypeDecorator, TEXT

from .db import Base


# -------------------------
# SQLite-safe JSON columns
# -------------------------
class JsonDict(TypeDecorator):
    impl = TEXT
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return "{}"
        if isinstance(value, dict):
            return json.dumps(value, ensure_ascii=False)
        if isinstance(value, str):
            s = value.strip()
            return s if s else "{}"
        return "{}"

    def process_result_value(self, value, dialect):
        if not value:
            return {}
        try:
            parsed = json.loads(value)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}


class ModelTypeEnum(str, enum.Enum):
    GLOBAL = "global"
    SCHOLARSHIP_SPECIFIC = "scholarship_specific"


class TriggerEnum(str, enum.Enum):
    MANUAL = "manual"
    AUTO_GLOBAL = "auto_global"
    AUTO_SCHOLARSHIP = "auto_scholarship"


class EventTypeEnum(str, enum.Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


GLOBAL_SCOPE = "global"
SCHOLARSHIP_SCOPE_PREFIX = "scholarship:"


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TrainedModel(Base):
    __tablename__ = "trained_models"

    id = Column(String, primary_key=True, default=_uuid)

    model_type = Column(SAEnum(ModelTypeEnum), nullable=False)
    scholarship_id = Column(String, nullable=True, index=True)
    # "global" or "scholarship:<id>"; one active row per scope
    scope = Column(String, nullable=False, index=True)

    weights = Column(JsonDict, default=dict, nullable=False)
    bias = Column(Float, nullable=False, default=0.0)
    metrics = Column(JsonDict, default=dict, nullable=False)
    feature_importance = Column(JsonDict, default=dict, nullable=False)
    hyperparameters = Column(JsonDict, default=dict, nullable=False)

    sample_count = Column(Integer, nullable=False, default=0)
    trigger_type = Column(SAEnum(TriggerEnum), nullable=False, default=TriggerEnum.MANUAL)
    is_active = Column(Boolean, nullable=False, default=False, index=True)

    model_version = Column(String, nullable=True)
    trained_at = Column(DateTime(timezone=True), default=_now)


class TrainingSample(Base):
    __tablename__ = "training_samples"

    id = Column(Integer, primary_key=True, autoincrement=True)
    scholarship_id = Column(String, nullable=True, index=True)
    application_id = Column(String, nullable=True)

    features = Column(JsonDict, default=dict, nullable=False)
    label = Column(Integer, nullable=False)  # 1 approved / 0 rejected

    created_at = Column(DateTime(timezone=True), default=_now)


class TrainingEvent(Base):
    __tablename__ = "training_events"

    id = Column(Integer, primary_key=True, autoincrement=True)

    event_type = Column(SAEnum(EventTypeEnum), nullable=False)
    scope = Column(String, nullable=False, index=True)
    scholarship_id = Column(String, nullable=True)
    trigger = Column(String, nullable=True)
    reason = Column(String, nullable=True)
    model_id = Column(String, nullable=True)
    accuracy = Column(Float, nullable=True)
    error = Column(String, nullable=True)
    elapsed_ms = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_now)
