"""
Scalarization: picking one compromise solution from the Pareto front

Augmented weighted Tchebycheff (default):
    score(x) = max_i w_i * |z*_i - f_i(x)| + rho * sum_i w_i * |z*_i - f_i(x)|
with z* the per-objective best over the front and rho = 0.001. Lower wins.
Unlike a weighted sum it can reach solutions on non-convex parts of the front.
"""
from typing import Dict, List, Optional, Tuple
from enum import Enum

import numpy as np

from golden_path.optimizer.models import OBJECTIVE_KEYS

AUGMENTATION = 0.001


class ScalarizationMethod(str, Enum):
    WEIGHTED_TCHEBYCHEFF = "weighted_tchebycheff"
    WEIGHTED_SUM = "weighted_sum"
    EPSILON_CONSTRAINT = "epsilon_constraint"


def weight_vector(weights: Dict[str, float]) -> np.ndarray:
    return np.array([weights.get(k, 0.0) for k in OBJECTIVE_KEYS], dtype=float)


def tchebycheff_scores(normalized: np.ndarray, weights: np.ndarray) -> np.ndarray:
    ideal = normalized.max(axis=0)
    gaps = weights * np.abs(ideal - normalized)
    return gaps.max(axis=1) + AUGMENTATION * gaps.sum(axis=1)


def weighted_sum_scores(normalized: np.ndarray, weights: np.ndarray) -> np.ndarray:
    return normalized @ weights


def epsilon_violations(normalized: np.ndarray, bounds: Dict[str, float]) -> np.ndarray:
    """Total shortfall below each bounded objective's epsilon"""
    violation = np.zeros(normalized.shape[0])
    for key, epsilon in bounds.items():
        if key not in OBJECTIVE_KEYS:
            continue
        column = normalized[:, OBJECTIVE_KEYS.index(key)]
        violation += np.maximum(0.0, epsilon - column)
    return violation


def _best(scores: np.ndarray, ids: List[str], lower_is_better: bool) -> int:
    keyed = [((s if lower_is_better else -s), ids[i], i) for i, s in enumerate(scores)]
    return min(keyed)[2]


def select(
    method: ScalarizationMethod,
    normalized: np.ndarray,
    weights: Dict[str, float],
    ids: List[str],
    epsilon_bounds: Optional[Dict[str, float]] = None,
) -> Tuple[int, np.ndarray]:
    """
    Index of the recommended row and the per-row scalar scores.

    Ties break on path id.
    """
    w = weight_vector(weights)

    if method == ScalarizationMethod.WEIGHTED_SUM:
        scores = weighted_sum_scores(normalized, w)
        return _best(scores, ids, lower_is_better=False), scores

    if method == ScalarizationMethod.EPSILON_CONSTRAINT:
        primary = int(np.argmax(w))
        scores = normalized[:, primary].copy()
        violations = epsilon_violations(normalized, epsilon_bounds or {})
        feasible = [i for i in range(len(ids)) if violations[i] <= 0]
        if feasible:
            best = _best(scores[feasible], [ids[i] for i in feasible], lower_is_better=False)
            return feasible[best], scores
        return _best(violations, ids, lower_is_better=True), scores

    scores = tchebycheff_scores(normalized, w)
    return _best(scores, ids, lower_is_better=True), scores
