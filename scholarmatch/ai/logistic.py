# scholarmatch/ai/logistic.py
"""
Binary logistic regression fitted by full-batch gradient descent.

The fit itself is plain numpy so every hyperparameter is explicit and
recorded with the model; scikit-learn supplies the fold splitter and the
confusion matrix.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
from sklearn.metrics import confusion_matrix
from sklearn.model_selection import KFold

from ..settings import get_settings

Z_CLIP = 35.0


@dataclass(frozen=True)
class GradientDescentConfig:
    learning_rate: float = 0.5
    max_iterations: int = 2000
    tolerance: float = 1e-7
    l2: float = 1e-4
    k_folds: int = 5
    random_seed: int = 42
    threshold: float = 0.5
    class_weighting: bool = True

    @classmethod
    def from_settings(cls, settings=None) -> "GradientDescentConfig":
        s = settings or get_settings()
        return cls(
            learning_rate=s.LEARNING_RATE,
            max_iterations=s.MAX_ITERATIONS,
            tolerance=s.CONVERGENCE_TOLERANCE,
            l2=s.L2_STRENGTH,
            k_folds=s.K_FOLDS,
            random_seed=s.RANDOM_SEED,
            class_weighting=s.CLASS_WEIGHTING,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class FitResult:
    feature_names: List[str]
    weights: Dict[str, float]
    bias: float
    metrics: Dict[str, object]
    feature_importance: Dict[str, float]
    sample_count: int
    iterations: int
    hyperparameters: Dict[str, object] = field(default_factory=dict)


# -------------------------
# prediction
# -------------------------
def sigmoid(z):
    return 1.0 / (1.0 + np.exp(-np.clip(z, -Z_CLIP, Z_CLIP)))


def linear_score(features: Mapping[str, float], weights: Mapping[str, float], bias: float) -> float:
    # features the model has no weight for contribute 0
    return float(bias) + sum(float(w) * float(features.get(name, 0.0) or 0.0) for name, w in weights.items())


def predict_proba(features: Mapping[str, float], weights: Mapping[str, float], bias: float) -> float:
    return float(sigmoid(linear_score(features, weights, bias)))


def feature_contributions(features: Mapping[str, float], weights: Mapping[str, float]) -> Dict[str, float]:
    return {
        name: round(float(w) * float(features.get(name, 0.0) or 0.0), 6)
        for name, w in weights.items()
    }


# -------------------------
# fitting
# -------------------------
def _sample_weights(y: np.ndarray, enabled: bool) -> np.ndarray:
    n = len(y)
    weights = np.ones(n, dtype=float)
    if not enabled:
        return weights
    positives = int(y.sum())
    negatives = n - positives
    if positives == 0 or negatives == 0:
        return weights
    weights[y == 1] = n / (2.0 * positives)
    weights[y == 0] = n / (2.0 * negatives)
    return weights


def _loss(p: np.ndarray, y: np.ndarray, sw: np.ndarray, w: np.ndarray, l2: float) -> float:
    eps = 1e-12
    bce = -(y * np.log(p + eps) + (1 - y) * np.log(1 - p + eps))
    return float(np.mean(sw * bce) + 0.5 * l2 * np.dot(w, w))


def fit_weights(X: np.ndarray, y: np.ndarray, config: GradientDescentConfig) -> tuple[np.ndarray, float, int]:
    """
    Minimise class-weighted cross-entropy with an L2 penalty.
    Stops after ``max_iterations`` or once the loss moves less than ``tolerance``.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    n, d = X.shape
    w = np.zeros(d, dtype=float)
    b = 0.0
    sw = _sample_weights(y, config.class_weighting)

    previous = None
    iterations = 0
    for iterations in range(1, config.max_iterations + 1):
        p = sigmoid(X @ w + b)
        residual = sw * (p - y)
        grad_w = X.T @ residual / n + config.l2 * w
        grad_b = float(residual.mean())
        w -= config.learning_rate * grad_w
        b -= config.learning_rate * grad_b

        loss = _loss(sigmoid(X @ w + b), y, sw, w, config.l2)
        if previous is not None and abs(previous - loss) < config.tolerance:
            break
        previous = loss

    return w, b, iterations


# -------------------------
# evaluation
# -------------------------
def confusion_counts(y_true: Sequence[int], y_pred: Sequence[int]) -> Dict[str, int]:
    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()
    return {
        "true_positives": int(tp),
        "true_negatives": int(tn),
        "false_positives": int(fp),
        "false_negatives": int(fn),
    }


def metrics_from_counts(counts: Mapping[str, int]) -> Dict[str, float]:
    tp = counts["true_positives"]
    tn = counts["true_negatives"]
    fp = counts["false_positives"]
    fn = counts["false_negatives"]
    total = tp + tn + fp + fn

    accuracy = (tp + tn) / total if total else 0.0
    precision = tp / (tp + fp) if (tp + fp) else 0.0
    recall = tp / (tp + fn) if (tp + fn) else 0.0
    f1 = 2 * precision * recall / (precision + recall) if (precision + recall) else 0.0
    return {
        "accuracy": round(accuracy, 4),
        "precision": round(precision, 4),
        "recall": round(recall, 4),
        "f1": round(f1, 4),
    }


def cross_validate(X: np.ndarray, y: np.ndarray, config: GradientDescentConfig) -> Dict[str, object]:
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=int)
    k = min(config.k_folds, len(y))
    if k < 2:
        raise ValueError("cross-validation needs at least 2 samples")

    folds = KFold(n_splits=k, shuffle=True, random_state=config.random_seed)
    totals = {"true_positives": 0, "true_negatives": 0, "false_positives": 0, "false_negatives": 0}
    fold_accuracies: List[float] = []

    for train_idx, val_idx in folds.split(X):
        w, b, _ = fit_weights(X[train_idx], y[train_idx], config)
        pred = (sigmoid(X[val_idx] @ w + b) >= config.threshold).astype(int)
        counts = confusion_counts(y[val_idx], pred)
        for key in totals:
            totals[key] += counts[key]
        fold_accuracies.append(float(np.mean(pred == y[val_idx])))

    out: Dict[str, object] = dict(metrics_from_counts(totals))
    out.update(totals)
    out["k_folds"] = k
    out["fold_accuracies"] = [round(a, 4) for a in fold_accuracies]
    out["accuracy_std"] = round(float(np.std(fold_accuracies)), 4)
    return out


# -------------------------
# importance
# -------------------------
def feature_importance(weights: Mapping[str, float]) -> Dict[str, float]:
    magnitudes = {name: abs(float(w)) for name, w in weights.items()}
    total = sum(magnitudes.values())
    if total == 0:
        return {name: 0.0 for name in magnitudes}
    return {name: round(m / total, 6) for name, m in magnitudes.items()}


def feature_ranking(weights: Mapping[str, float], labels: Optional[Mapping[str, str]] = None) -> List[dict]:
    importance = feature_importance(weights)
    labels = labels or {}
    ranked = sorted(weights.items(), key=lambda kv: abs(float(kv[1])), reverse=True)
    return [
        {
            "feature": name,
            "label": labels.get(name, name),
            "weight": round(float(w), 6),
            "importance": importance[name],
            "direction": "positive" if w > 0 else "negative" if w < 0 else "neutral",
        }
        for name, w in ranked
    ]


def fit(
    samples: Sequence[Mapping[str, float]],
    labels: Sequence[int],
    feature_names: Sequence[str],
    config: Optional[GradientDescentConfig] = None,
) -> FitResult:
    """
    Cross-validate, then fit the final model on every sample with the same
    hyperparameters. Metrics come from the held-out folds.
    """
    config = config or GradientDescentConfig.from_settings()
    names = list(feature_names)
    X = np.array([[float(s.get(f, 0.0) or 0.0) for f in names] for s in samples], dtype=float)
    y = np.array([1 if int(label) else 0 for label in labels], dtype=int)
    if len(X) != len(y):
        raise ValueError("samples and labels differ in length")

    metrics = cross_validate(X, y, config)
    w, b, iterations = fit_weights(X, y, config)

    weights = {name: round(float(v), 8) for name, v in zip(names, w)}
    metrics["positive_rate"] = round(float(y.mean()), 4) if len(y) else 0.0
    return FitResult(
        feature_names=names,
        weights=weights,
        bias=round(float(b), 8),
        metrics=metrics,
        feature_importance=feature_importance(weights),
        sample_count=int(len(y)),
        iterations=iterations,
        hyperparameters=config.to_dict(),
    )
