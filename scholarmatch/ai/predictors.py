# scholarmatch/ai/predictors.py
from __future__ import annotations

import threading
from typing import Any, Dict, Iterable, List, Optional

from ..engine.features import FEATURE_LABELS, extract_features
from ..engine.rules import evaluate
from .registry import ModelRegistry, ModelSelection

HIGH_CONFIDENCE_DISTANCE = 0.3
MEDIUM_CONFIDENCE_DISTANCE = 0.1
TOP_FACTOR_COUNT = 5

# lower probability bound per match level, strongest first
MATCH_LEVELS = (("strong", 0.75), ("good", 0.60), ("moderate", 0.45), ("weak", 0.0))


def confidence_level(probability: float) -> str:
    distance = abs(probability - 0.5)
    if distance >= HIGH_CONFIDENCE_DISTANCE:
        return "high"
    if distance >= MEDIUM_CONFIDENCE_DISTANCE:
        return "medium"
    return "low"


def match_level(probability: float) -> str:
    for level, floor in MATCH_LEVELS:
        if probability >= floor:
            return level
    return "weak"


def recommendation_text(probability: float, factors: List[dict]) -> str:
    """Applicant-facing advice; moderate matches name the weakest factors."""
    if probability >= 0.75:
        return "Strongly recommended. Your profile closely matches previously approved applicants."
    if probability >= 0.60:
        return "Good match. You have a solid chance of approval."
    if probability >= 0.45:
        weak = [f["label"] for f in factors if f["direction"] == "negative"][:2]
        hint = f" Consider strengthening: {', '.join(weak)}." if weak else ""
        return "Moderate match. You meet the basic requirements but may face competition." + hint
    if probability >= 0.25:
        return "Low match. Review the eligibility criteria carefully before applying."
    return "Not recommended. Your current profile is unlikely to be competitive for this scholarship."


def top_factors(contributions: Dict[str, float], limit: int = TOP_FACTOR_COUNT) -> List[dict]:
    ranked = sorted(contributions.items(), key=lambda kv: abs(kv[1]), reverse=True)
    return [
        {
            "feature": name,
            "label": FEATURE_LABELS.get(name, name),
            "contribution": value,
            "direction": "positive" if value > 0 else "negative" if value < 0 else "neutral",
        }
        for name, value in ranked[:limit]
        if value != 0
    ]


class ScholarshipPredictor:
    """
    Approval likelihood from the registry's active models.
    Selections are cached per scholarship and refreshed when the registry version moves.
    """

    def __init__(self, registry: ModelRegistry):
        self.registry = registry
        self._cache: Dict[Optional[str], ModelSelection] = {}
        self._cache_lock = threading.Lock()

    def select(self, scholarship_id: Optional[str]) -> ModelSelection:
        with self._cache_lock:
            cached = self._cache.get(scholarship_id)
            if cached is not None and cached.version == self.registry.version:
                return cached

        selection = self.registry.select_for_prediction(scholarship_id)
        with self._cache_lock:
            self._cache[scholarship_id] = selection
        return selection

    def probability(self, profile: dict, scholarship: dict) -> Dict[str, Any]:
        selection = self.select(scholarship.get("id"))
        features = extract_features(profile, scholarship)

        if selection.model is None:
            return {
                "available": False,
                "probability": None,
                "confidence": None,
                "model_type": "none",
                "model_id": None,
                "predicted_outcome": None,
                "match_level": None,
                "recommendation": None,
                "feature_contributions": {},
                "top_factors": [],
                "features": features,
                "registry_version": selection.version,
                "message": "No trained model available",
            }

        model = selection.model
        prob = model.predict(features)
        contributions = model.contributions(features)
        factors = top_factors(contributions)
        return {
            "available": True,
            "probability": round(prob, 4),
            "confidence": confidence_level(prob),
            "model_type": selection.model_type,
            "model_id": model.id,
            "predicted_outcome": "likely_approved" if prob >= 0.5 else "unlikely",
            "match_level": match_level(prob),
            "recommendation": recommendation_text(prob, factors),
            "feature_contributions": contributions,
            "top_factors": factors,
            "features": features,
            "registry_version": selection.version,
            "message": None,
        }

    def recommendations(self, profile: dict, scholarships: Iterable[dict], limit: int = 10) -> List[dict]:
        """
        Rule check first; probability only for scholarships that pass.
        Sorted by eligible, then probability, then rule score.
        """
        ranked = []
        for scholarship in scholarships:
            elig = evaluate(profile, scholarship.get("eligibility_criteria"))
            entry = {
                "scholarship": {
                    "id": scholarship.get("id"),
                    "name": scholarship.get("name"),
                    "sponsor": scholarship.get("sponsor"),
                },
                "eligible": elig.passed,
                "score": elig.score,
                "failed_required": elig.failed_required,
                "probability": None,
                "confidence": None,
                "model_type": "none",
                "match_level": None,
            }
            if elig.passed:
                pred = self.probability(profile, scholarship)
                entry["probability"] = pred["probability"]
                entry["confidence"] = pred["confidence"]
                entry["model_type"] = pred["model_type"]
                entry["match_level"] = pred["match_level"]
            ranked.append(entry)

        ranked.sort(key=lambda e: (
            not e["eligible"],
            -(e["probability"] if e["probability"] is not None else -1.0),
            -e["score"],
        ))
        return ranked[:limit]
