import threading

import pytest

from scholarmatch.ai.autotrain import AutoRetrainOrchestrator, AutoTrainingConfig, EventLog
from scholarmatch.ai.trainer import TrainingOutcome


class _Samples:
    def __init__(self, per_scholarship=100):
        self.per_scholarship = per_scholarship

    def count(self, scholarship_id=None):
        return self.per_scholarship

    def scholarship_counts(self):
        return {"S1": {"total": self.per_scholarship}}


class _StubTrainer:
    """Records calls; optionally blocks until ``gate`` is set."""

    def __init__(self, gate=None, fail=False, per_scholarship=100):
        self.samples = _Samples(per_scholarship)
        self.gate = gate
        self.fail = fail
        self.calls = []
        self.running = set()
        self.max_parallel = 0
        self._lock = threading.Lock()

    def train(self, scholarship_id, trigger="manual"):
        scope = scholarship_id or "global"
        with self._lock:
            self.calls.append(scope)
            self.running.add(scope)
            self.max_parallel = max(self.max_parallel, len(self.running))
        try:
            if self.gate is not None:
                assert self.gate.wait(timeout=5)
            if self.fail:
                raise RuntimeError("boom")
            return TrainingOutcome(
                status="trained", scope=scope, scholarship_id=scholarship_id,
                model={"id": f"model-{scope}", "metrics": {"accuracy": 0.91}},
            )
        finally:
            with self._lock:
                self.running.discard(scope)


def _orchestrator(trainer, **overrides):
    cfg = dict(enabled=True, min_samples_global=50, min_samples_scholarship=30,
               decisions_until_global_retrain=1000, log_size=100, workers=4)
    cfg.update(overrides)
    return AutoRetrainOrchestrator(trainer, AutoTrainingConfig(**cfg))


# -------------------------
# SCOPE LOCKS
# -------------------------
def test_same_scope_trigger_is_dropped():
    gate = threading.Event()
    trainer = _StubTrainer(gate=gate)
    orch = _orchestrator(trainer)
    try:
        assert orch.on_decision("S1") == ["scholarship:S1"]
        assert orch.on_decision("S1") == []
        assert orch.active_locks() == ["scholarship:S1"]

        skipped = orch.log()[0]
        assert skipped["type"] == "skipped"
        assert skipped["reason"] == "already_training"
        assert skipped["scope"] == "scholarship:S1"
    finally:
        gate.set()
        orch.drain(timeout=5)
        orch.shutdown()

    assert trainer.calls == ["S1"]
    assert orch.active_locks() == []
    assert [e["type"] for e in orch.log()] == ["success", "skipped"]


def test_different_scopes_run_concurrently():
    gate = threading.Event()
    trainer = _StubTrainer(gate=gate)
    orch = _orchestrator(trainer, decisions_until_global_retrain=1)
    try:
        scheduled = orch.on_decision("S1")
        assert sorted(scheduled) == ["global", "scholarship:S1"]
        assert orch.active_locks() == ["global", "scholarship:S1"]
    finally:
        gate.set()
        orch.drain(timeout=5)
        orch.shutdown()

    assert sorted(trainer.calls) == ["S1", "global"]
    assert sorted(e["scope"] for e in orch.log() if e["type"] == "success") == ["global", "scholarship:S1"]


def test_manual_training_respects_lock():
    gate = threading.Event()
    trainer = _StubTrainer(gate=gate)
    orch = _orchestrator(trainer)
    try:
        orch.on_decision("S1")
        outcome = orch.train_now("S1")
        assert outcome.status == "skipped"
        assert outcome.reason == "already_training"
    finally:
        gate.set()
        orch.drain(timeout=5)
        orch.shutdown()
    assert trainer.calls == ["S1"]


def test_scholarship_named_global_has_its_own_lock():
    gate = threading.Event()
    trainer = _StubTrainer(gate=gate)
    orch = _orchestrator(trainer)
    try:
        assert orch.on_decision("global") == ["scholarship:global"]
        assert orch.active_locks() == ["scholarship:global"]
        # the global scope is still free while that retrain runs
        assert orch.try_acquire("global") is True
        orch.release("global")
    finally:
        gate.set()
        orch.drain(timeout=5)
        orch.shutdown()
    assert trainer.calls == ["global"]
    assert [e["scope"] for e in orch.log()] == ["scholarship:global"]


def test_failure_releases_lock_and_logs_error():
    trainer = _StubTrainer(fail=True)
    orch = _orchestrator(trainer)
    orch.on_decision("S1")
    orch.drain(timeout=5)
    orch.shutdown()

    event = orch.log()[0]
    assert event["type"] == "error"
    assert event["error"] == "boom"
    assert orch.active_locks() == []


def test_manual_failure_propagates():
    orch = _orchestrator(_StubTrainer(fail=True))
    with pytest.raises(RuntimeError):
        orch.train_now(None)
    assert orch.active_locks() == []
    assert orch.log()[0]["type"] == "error"
    orch.shutdown()


# -------------------------
# COUNTERS
# -------------------------
def test_global_retrain_on_fiftieth_decision():
    trainer = _StubTrainer(per_scholarship=0)
    orch = _orchestrator(trainer, decisions_until_global_retrain=50)
    for _ in range(49):
        assert orch.on_decision("S1") == []
    orch.drain(timeout=5)
    assert [e for e in orch.log() if e["scope"] == "global"] == []

    assert orch.on_decision("S1") == ["global"]
    orch.drain(timeout=5)
    orch.shutdown()

    global_events = [e for e in orch.log() if e["scope"] == "global"]
    assert len(global_events) == 1
    assert global_events[0]["type"] == "success"
    assert orch.status()["counters"]["global_decision_counter"] == 0


def test_scholarship_retrain_waits_for_min_samples():
    trainer = _StubTrainer(per_scholarship=29)
    orch = _orchestrator(trainer)
    assert orch.on_decision("S1") == []
    trainer.samples.per_scholarship = 30
    assert orch.on_decision("S1") == ["scholarship:S1"]
    orch.drain(timeout=5)
    orch.shutdown()
    assert trainer.calls == ["S1"]


def test_disabled_orchestrator_ignores_decisions():
    trainer = _StubTrainer()
    orch = _orchestrator(trainer, enabled=False, decisions_until_global_retrain=1)
    assert orch.on_decision("S1") == []
    assert orch.status()["counters"]["global_decision_counter"] == 0
    orch.shutdown()


# -------------------------
# STATUS / LOG
# -------------------------
def test_status_shape():
    trainer = _StubTrainer()
    orch = _orchestrator(trainer, decisions_until_global_retrain=10)
    orch.on_decision(None)
    status = orch.status()
    assert status["enabled"] is True
    assert status["config"]["decisions_until_global_retrain"] == 10
    assert status["counters"]["global_decision_counter"] == 1
    assert status["counters"]["decisions_remaining"] == 9
    assert status["active_locks"] == []
    assert status["last_event"] is None
    assert set(status["today_summary"]) == {"success", "skipped", "error"}
    orch.shutdown()


def test_event_log_bounded_newest_first():
    log = EventLog(maxlen=3)
    for i in range(5):
        log.append({"timestamp": "2026-01-01T00:00:00", "type": "success", "scope": f"s{i}"})
    assert [e["scope"] for e in log.recent()] == ["s4", "s3", "s2"]
    assert [e["scope"] for e in log.recent(2)] == ["s4", "s3"]
    assert log.last()["scope"] == "s4"
