import threading

import pytest

from scholarmatch.ai.logistic import FitResult, GradientDescentConfig
from scholarmatch.ai.predictors import ScholarshipPredictor, match_level, recommendation_text
from scholarmatch.ai.registry import ModelNotFound, ModelRegistry
from scholarmatch.ai.samples import SampleStore
from scholarmatch.ai.synthetic import seed_samples
from scholarmatch.ai.trainer import ModelTrainer
from scholarmatch.engine.scholarship_config import get_scholarship


def _fit(sample_count=100, weight=1.0):
    return FitResult(
        feature_names=["gwa_score"],
        weights={"gwa_score": weight},
        bias=-0.5,
        metrics={"accuracy": 0.9},
        feature_importance={"gwa_score": 1.0},
        sample_count=sample_count,
        iterations=10,
    )


def _active_in(registry, scope):
    return [m for m in registry.list_models(scope=scope) if m.is_active]


# -------------------------
# ACTIVATION INVARIANT
# -------------------------
def test_register_keeps_single_active_per_scope(session_factory):
    registry = ModelRegistry(session_factory, min_samples_scholarship=30)
    first = registry.register(_fit())
    second = registry.register(_fit(weight=2.0))
    scoped = registry.register(_fit(), scholarship_id="S1")

    assert [m.id for m in _active_in(registry, "global")] == [second.id]
    assert [m.id for m in _active_in(registry, "scholarship:S1")] == [scoped.id]
    assert registry.get(first.id).is_active is False


def test_activate_sequence_single_active(session_factory):
    registry = ModelRegistry(session_factory, min_samples_scholarship=30)
    ids = [registry.register(_fit(weight=float(i))).id for i in range(4)]
    for model_id in [ids[0], ids[2], ids[2], ids[1], ids[3], ids[0]]:
        registry.activate(model_id)
        active = _active_in(registry, "global")
        assert len(active) == 1
        assert active[0].id == model_id
    assert registry.get_active("global").id == ids[0]


def test_version_bumps_on_every_mutation(session_factory):
    registry = ModelRegistry(session_factory, min_samples_scholarship=30)
    v0 = registry.version
    model = registry.register(_fit())
    v1 = registry.version
    registry.activate(model.id)
    v2 = registry.version
    registry.delete(model.id)
    assert v0 < v1 < v2 < registry.version


def test_delete_active_leaves_scope_empty(session_factory):
    registry = ModelRegistry(session_factory, min_samples_scholarship=30)
    old = registry.register(_fit())
    current = registry.register(_fit())
    registry.delete(current.id)
    assert registry.get_active("global") is None
    assert registry.get(old.id).is_active is False


def test_scholarship_named_global_keeps_its_own_scope(session_factory):
    registry = ModelRegistry(session_factory, min_samples_scholarship=30)
    glob = registry.register(_fit())
    named = registry.register(_fit(sample_count=40), scholarship_id="global")

    assert registry.get(glob.id).is_active is True
    assert named.scope == "scholarship:global"
    assert registry.get_active("global").model_type == "global"

    selection = registry.select_for_prediction("global")
    assert selection.model.id == named.id
    assert selection.model_type == "scholarship_specific"
    assert registry.select_for_prediction("S1").model.id == glob.id


def test_readers_see_exactly_one_active_during_writes(session_factory):
    registry = ModelRegistry(session_factory, min_samples_scholarship=30)
    ids = [registry.register(_fit(weight=float(i))).id for i in range(3)]
    stop = threading.Event()
    seen = []
    errors = []

    def read():
        while True:
            try:
                seen.append(len(_active_in(registry, "global")))
                if registry.get_active("global") is None:
                    seen.append(0)
                if registry.select_for_prediction("S1").model_type != "global":
                    seen.append(-1)
            except Exception as exc:  # surfaced in the main thread
                errors.append(exc)
            if stop.is_set():
                return

    readers = [threading.Thread(target=read) for _ in range(3)]
    for t in readers:
        t.start()
    try:
        for i in range(30):
            registry.activate(ids[i % 3])
            spare = registry.register(_fit(), activate=False)
            registry.delete(spare.id)
    finally:
        stop.set()
        for t in readers:
            t.join(timeout=5)

    assert errors == []
    assert seen
    assert set(seen) == {1}


def test_unknown_model_raises(session_factory):
    registry = ModelRegistry(session_factory, min_samples_scholarship=30)
    with pytest.raises(ModelNotFound):
        registry.activate("nope")
    with pytest.raises(ModelNotFound):
        registry.delete("nope")


# -------------------------
# SELECTION / FALLBACK
# -------------------------
def test_selection_none_when_empty(session_factory):
    registry = ModelRegistry(session_factory, min_samples_scholarship=30)
    selection = registry.select_for_prediction("S1")
    assert selection.model is None
    assert selection.model_type == "none"


def test_selection_prefers_specific_then_global(session_factory):
    registry = ModelRegistry(session_factory, min_samples_scholarship=30)
    glob = registry.register(_fit())
    assert registry.select_for_prediction("S1").model.id == glob.id
    assert registry.select_for_prediction("S1").model_type == "global"

    specific = registry.register(_fit(sample_count=40), scholarship_id="S1")
    selection = registry.select_for_prediction("S1")
    assert selection.model.id == specific.id
    assert selection.model_type == "scholarship_specific"


def test_selection_skips_undertrained_specific(session_factory):
    registry = ModelRegistry(session_factory, min_samples_scholarship=30)
    glob = registry.register(_fit())
    registry.register(_fit(sample_count=12), scholarship_id="S1")
    selection = registry.select_for_prediction("S1")
    assert selection.model.id == glob.id
    assert selection.model_type == "global"


# -------------------------
# TRAINER
# -------------------------
FAST = GradientDescentConfig(learning_rate=1.0, max_iterations=200, k_folds=3)


def test_trainer_skips_insufficient_data(session_factory):
    registry = ModelRegistry(session_factory, min_samples_scholarship=30)
    store = SampleStore(session_factory)
    seed_samples(store, [get_scholarship("SCH-NEED-STS")], n=10)
    trainer = ModelTrainer(store, registry, FAST, min_samples_global=50, min_samples_scholarship=30)

    outcome = trainer.train_global()
    assert outcome.status == "skipped"
    assert outcome.reason == "insufficient_data"
    assert outcome.sample_count == 10
    assert registry.list_models() == []


def test_trainer_registers_models(session_factory):
    registry = ModelRegistry(session_factory, min_samples_scholarship=30)
    store = SampleStore(session_factory)
    scholarship = get_scholarship("SCH-NEED-STS")
    seed_samples(store, [scholarship], n=80)
    trainer = ModelTrainer(store, registry, FAST, min_samples_global=50, min_samples_scholarship=30)

    glob = trainer.train_global()
    assert glob.status == "trained"
    assert glob.model["sample_count"] == 80

    specific = trainer.train_scholarship(scholarship["id"])
    assert specific.trained
    assert registry.select_for_prediction(scholarship["id"]).model_type == "scholarship_specific"

    stats = trainer.training_stats()
    assert stats["total_samples"] == 80
    assert stats["scholarships"][scholarship["id"]]["ready"] is True


# -------------------------
# PREDICTOR
# -------------------------
def test_match_levels():
    assert [match_level(p) for p in (0.9, 0.75, 0.6, 0.5, 0.45, 0.2)] == [
        "strong", "strong", "good", "moderate", "moderate", "weak",
    ]


def test_moderate_recommendation_names_negative_factors():
    factors = [
        {"label": "GWA", "direction": "positive"},
        {"label": "Financial need", "direction": "negative"},
        {"label": "Documents", "direction": "negative"},
        {"label": "Units", "direction": "negative"},
    ]
    text = recommendation_text(0.5, factors)
    assert text.startswith("Moderate match.")
    assert "Financial need, Documents." in text
    assert "Units" not in text
    assert recommendation_text(0.1, factors).startswith("Not recommended.")


def test_probability_carries_match_level(session_factory):
    registry = ModelRegistry(session_factory, min_samples_scholarship=30)
    predictor = ScholarshipPredictor(registry)
    scholarship = get_scholarship("SCH-NEED-STS")
    profile = {"gwa": 1.5, "annual_family_income": 90_000}

    empty = predictor.probability(profile, scholarship)
    assert empty["match_level"] is None
    assert empty["recommendation"] is None

    registry.register(_fit())
    out = predictor.probability(profile, scholarship)
    assert out["available"] is True
    assert out["match_level"] == match_level(out["probability"])
    assert out["recommendation"]
