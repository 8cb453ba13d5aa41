# scholarmatch/ai/autotrain.py
"""
Decision-driven retraining.

Each labeled decision bumps a global counter; every
``decisions_until_global_retrain`` decisions a global retrain is scheduled.
Once a scholarship has ``min_samples_scholarship`` labeled samples, each new
decision for it schedules a scholarship retrain.

There is one lock per scope ("global" or "scholarship:<id>"). A trigger that
finds its scope locked is dropped and logged as skipped, never queued.
"""
from __future__ import annotations

import threading
import time
from collections import Counter, deque
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from ..logging_config import log_event, log_failure
from ..models import EventTypeEnum, GLOBAL_SCOPE, TrainingEvent, TriggerEnum
from ..settings import get_settings
from .registry import scope_for
from .trainer import ALREADY_TRAINING, ModelTrainer, TrainingOutcome


@dataclass(frozen=True)
class AutoTrainingConfig:
    enabled: bool = True
    min_samples_global: int = 50
    min_samples_scholarship: int = 30
    decisions_until_global_retrain: int = 10
    log_size: int = 100
    workers: int = 2

    @classmethod
    def from_settings(cls, settings=None) -> "AutoTrainingConfig":
        s = settings or get_settings()
        return cls(
            enabled=s.AUTO_TRAINING_ENABLED,
            min_samples_global=s.MIN_SAMPLES_GLOBAL,
            min_samples_scholarship=s.MIN_SAMPLES_SCHOLARSHIP,
            decisions_until_global_retrain=s.GLOBAL_RETRAIN_INTERVAL,
            log_size=s.AUTO_TRAIN_LOG_SIZE,
            workers=s.AUTO_TRAIN_WORKERS,
        )


class EventLog:
    """Bounded training log, newest first. Optionally mirrored to the database."""

    def __init__(self, maxlen: int = 100, session_factory: Optional[sessionmaker] = None):
        self._events: deque = deque(maxlen=maxlen)
        self._lock = threading.Lock()
        self._session_factory = session_factory

    def append(self, event: dict) -> dict:
        with self._lock:
            self._events.appendleft(event)
        if self._session_factory is not None:
            self._persist(event)
        return event

    def _persist(self, event: dict) -> None:
        try:
            with self._session_factory() as db:
                db.add(TrainingEvent(
                    event_type=EventTypeEnum(event["type"]),
                    scope=event["scope"],
                    scholarship_id=event.get("scholarship_id"),
                    trigger=event.get("trigger"),
                    reason=event.get("reason"),
                    model_id=event.get("model_id"),
                    accuracy=event.get("accuracy"),
                    error=event.get("error"),
                    elapsed_ms=event.get("elapsed_ms"),
                ))
                db.commit()
        except Exception as exc:
            # the in-memory log stays authoritative for status
            log_failure("TRAINING_EVENT_PERSIST_FAILED", {"error": str(exc), "scope": event.get("scope")})

    def recent(self, limit: Optional[int] = None) -> List[dict]:
        with self._lock:
            events = list(self._events)
        return events if limit is None else events[:limit]

    def last(self) -> Optional[dict]:
        with self._lock:
            return self._events[0] if self._events else None

    def today_summary(self) -> Dict[str, int]:
        today = datetime.now(timezone.utc).date().isoformat()
        counts = Counter(e["type"] for e in self.recent() if e["timestamp"].startswith(today))
        return {t.value: counts.get(t.value, 0) for t in EventTypeEnum}


class AutoRetrainOrchestrator:

    def __init__(
        self,
        trainer: ModelTrainer,
        config: Optional[AutoTrainingConfig] = None,
        session_factory: Optional[sessionmaker] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.trainer = trainer
        self.config = config or AutoTrainingConfig.from_settings()
        self.events = EventLog(self.config.log_size, session_factory)
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.config.workers, thread_name_prefix="retrain"
        )

        self._guard = threading.Lock()
        self._active_scopes: set = set()
        self._pending: set = set()
        self._global_counter = 0
        self._scholarship_decisions: Counter = Counter()

    # ---------- scope locks ----------
    def try_acquire(self, scope: str) -> bool:
        with self._guard:
            if scope in self._active_scopes:
                return False
            self._active_scopes.add(scope)
            return True

    def release(self, scope: str) -> None:
        with self._guard:
            self._active_scopes.discard(scope)

    def active_locks(self) -> List[str]:
        with self._guard:
            return sorted(self._active_scopes)

    # ---------- triggers ----------
    def on_decision(self, scholarship_id: Optional[str] = None) -> List[str]:
        """Count a new labeled decision; returns the scopes a retrain was scheduled for."""
        if not self.config.enabled:
            return []

        with self._guard:
            self._global_counter += 1
            global_due = self._global_counter >= self.config.decisions_until_global_retrain
            if global_due:
                self._global_counter = 0
            if scholarship_id:
                self._scholarship_decisions[scholarship_id] += 1

        scheduled: List[str] = []
        if global_due and self._schedule(None, TriggerEnum.AUTO_GLOBAL.value):
            scheduled.append(GLOBAL_SCOPE)

        if scholarship_id:
            samples = self.trainer.samples.count(scholarship_id)
            if samples >= self.config.min_samples_scholarship:
                if self._schedule(scholarship_id, TriggerEnum.AUTO_SCHOLARSHIP.value):
                    scheduled.append(scope_for(scholarship_id))
        return scheduled

    def _schedule(self, scholarship_id: Optional[str], trigger: str) -> Optional[Future]:
        scope = scope_for(scholarship_id)
        if not self.try_acquire(scope):
            self._record_skip(scope, scholarship_id, trigger)
            return None

        try:
            future = self._executor.submit(self._run, scholarship_id, scope, trigger, False)
        except RuntimeError:
            self.release(scope)
            raise

        with self._guard:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        log_event("RETRAIN_SCHEDULED", f"retrain scheduled for {scope}", {"scope": scope, "trigger": trigger})
        return future

    def _forget(self, future: Future) -> None:
        with self._guard:
            self._pending.discard(future)

    def _record_skip(self, scope: str, scholarship_id: Optional[str], trigger: str) -> TrainingOutcome:
        self.events.append(_event(
            EventTypeEnum.SKIPPED, scope, scholarship_id, trigger, reason=ALREADY_TRAINING,
        ))
        log_event("RETRAIN_DROPPED", f"{scope} already training, trigger dropped",
                  {"scope": scope, "trigger": trigger})
        return TrainingOutcome(
            status="skipped",
            scope=scope,
            scholarship_id=scholarship_id,
            reason=ALREADY_TRAINING,
            message=f"a retrain for {scope} is already running",
        )

    def _run(self, scholarship_id: Optional[str], scope: str, trigger: str, raise_errors: bool) -> TrainingOutcome:
        # caller holds the scope lock; released here on every exit path
        started = time.perf_counter()
        try:
            outcome = self.trainer.train(scholarship_id, trigger)
        except Exception as exc:
            elapsed = int((time.perf_counter() - started) * 1000)
            self.events.append(_event(
                EventTypeEnum.ERROR, scope, scholarship_id, trigger, error=str(exc), elapsed_ms=elapsed,
            ))
            log_failure("TRAINING_FAILED", {"scope": scope, "trigger": trigger, "error": str(exc)})
            if raise_errors:
                raise
            return TrainingOutcome(status="error", scope=scope, scholarship_id=scholarship_id,
                                   message=str(exc), elapsed_ms=elapsed)
        finally:
            self.release(scope)

        elapsed = int((time.perf_counter() - started) * 1000)
        if outcome.trained:
            self.events.append(_event(
                EventTypeEnum.SUCCESS, scope, scholarship_id, trigger,
                model_id=(outcome.model or {}).get("id"), accuracy=outcome.accuracy, elapsed_ms=elapsed,
            ))
        else:
            self.events.append(_event(
                EventTypeEnum.SKIPPED, scope, scholarship_id, trigger, reason=outcome.reason, elapsed_ms=elapsed,
            ))
        return outcome

    # ---------- manual training ----------
    def train_now(self, scholarship_id: Optional[str] = None,
                  trigger: str = TriggerEnum.MANUAL.value) -> TrainingOutcome:
        """Synchronous training through the same scope locks as auto-retrain."""
        scope = scope_for(scholarship_id)
        if not self.try_acquire(scope):
            return self._record_skip(scope, scholarship_id, trigger)
        return self._run(scholarship_id, scope, trigger, True)

    def train_all(self) -> dict:
        results = {"global": self.train_now(None).to_dict(), "scholarships": {}}
        for sid in sorted(self.trainer.samples.scholarship_counts()):
            results["scholarships"][sid] = self.train_now(sid).to_dict()

        outcomes = [results["global"], *results["scholarships"].values()]
        results["summary"] = {
            "trained": sum(1 for o in outcomes if o["status"] == "trained"),
            "skipped": sum(1 for o in outcomes if o["status"] == "skipped"),
        }
        return results

    # ---------- introspection ----------
    def status(self) -> dict:
        with self._guard:
            counters = {
                "global_decision_counter": self._global_counter,
                "decisions_until_global_retrain": self.config.decisions_until_global_retrain,
                "decisions_remaining": self.config.decisions_until_global_retrain - self._global_counter,
                "scholarship_decisions": dict(self._scholarship_decisions),
            }
            locks = sorted(self._active_scopes)
            pending = len(self._pending)
        return {
            "enabled": self.config.enabled,
            "config": asdict(self.config),
            "counters": counters,
            "active_locks": locks,
            "pending_runs": pending,
            "last_event": self.events.last(),
            "today_summary": self.events.today_summary(),
        }

    def log(self, limit: Optional[int] = None) -> List[dict]:
        return self.events.recent(limit)

    def drain(self, timeout: Optional[float] = None) -> None:
        """Block until every scheduled retrain has finished."""
        with self._guard:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def shutdown(self, wait_for_runs: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_runs)


def _event(event_type: EventTypeEnum, scope: str, scholarship_id: Optional[str], trigger: str, **fields) -> dict:
    event = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "type": event_type.value,
        "scope": scope,
        "scholarship_id": scholarship_id,
        "trigger": trigger,
        "reason": None,
        "model_id": None,
        "accuracy": None,
        "error": None,
        "elapsed_ms": None,
    }
    event.update(fields)
    return event
