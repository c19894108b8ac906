"""
Pareto dominance, non-dominated sorting and crowding distance

All objectives are maximised. A dominates B when A >= B on every
objective and A > B on at least one.
"""
from typing import Dict, List

import numpy as np


def dominates(a: np.ndarray, b: np.ndarray) -> bool:
    return bool(np.all(a >= b) and np.any(a > b))


def non_dominated_sort(values: np.ndarray) -> List[List[int]]:
    """
    Fronts of row indices: front 0 is the non-dominated set, front 1 the
    non-dominated set once front 0 is removed, and so on.
    """
    n = values.shape[0]
    dominated_by_count = np.zeros(n, dtype=int)
    dominates_list: List[List[int]] = [[] for _ in range(n)]

    for i in range(n):
        for j in range(i + 1, n):
            if dominates(values[i], values[j]):
                dominates_list[i].append(j)
                dominated_by_count[j] += 1
            elif dominates(values[j], values[i]):
                dominates_list[j].append(i)
                dominated_by_count[i] += 1

    fronts: List[List[int]] = []
    current = [i for i in range(n) if dominated_by_count[i] == 0]
    while current:
        fronts.append(sorted(current))
        following = []
        for i in current:
            for j in dominates_list[i]:
                dominated_by_count[j] -= 1
                if dominated_by_count[j] == 0:
                    following.append(j)
        current = following
    return fronts


def crowding_distance(values: np.ndarray, front: List[int]) -> Dict[int, float]:
    """
    Sum over objectives of the range-normalised gap between each solution's
    neighbours. Boundary solutions, and every solution of a front of two or
    fewer, get infinity.
    """
    if len(front) <= 2:
        return {i: float("inf") for i in front}

    distances = {i: 0.0 for i in front}
    sub = values[front]
    for k in range(values.shape[1]):
        order = np.argsort(sub[:, k], kind="stable")
        lo, hi = sub[order[0], k], sub[order[-1], k]
        distances[front[order[0]]] = float("inf")
        distances[front[order[-1]]] = float("inf")
        span = hi - lo
        if span <= 0:
            continue
        for pos in range(1, len(order) - 1):
            idx = front[order[pos]]
            if distances[idx] == float("inf"):
                continue
            distances[idx] += float(sub[order[pos + 1], k] - sub[order[pos - 1], k]) / span
    return distances


def min_max_normalize(values: np.ndarray) -> np.ndarray:
    """Column-wise to [0, 1]; a constant column maps to 1.0"""
    lo = values.min(axis=0)
    hi = values.max(axis=0)
    span = hi - lo
    safe = np.where(span > 0, span, 1.0)
    normalized = (values - lo) / safe
    normalized[:, span <= 0] = 1.0
    return normalized
