"""
Unit tests for scalarization methods
"""

import numpy as np
import pytest

from golden_path.optimizer.models import DEFAULT_WEIGHTS, OBJECTIVE_KEYS
from golden_path.optimizer.scalarization import (
    AUGMENTATION,
    ScalarizationMethod,
    epsilon_violations,
    select,
    tchebycheff_scores,
    weighted_sum_scores,
)


def _rows(*rows):
    return np.array([[row.get(k, 0.0) for k in OBJECTIVE_KEYS] for row in rows], dtype=float)


class TestTchebycheff:
    """Tests for the augmented weighted Tchebycheff score"""

    def test_augmented_score(self):
        normalized = np.array([[1.0, 0.0], [0.0, 1.0], [0.6, 0.6]])
        weights = np.array([0.5, 0.5])

        scores = tchebycheff_scores(normalized, weights)

        assert scores[0] == pytest.approx(0.5 + AUGMENTATION * 0.5)
        assert scores[2] == pytest.approx(0.2 + AUGMENTATION * 0.4)

    def test_reaches_non_convex_compromise(self):
        normalized = np.array([[1.0, 0.0], [0.0, 1.0], [0.4, 0.4]])
        weights = np.array([0.5, 0.5])

        assert int(np.argmax(weighted_sum_scores(normalized, weights))) in (0, 1)
        assert int(np.argmin(tchebycheff_scores(normalized, weights))) == 2


class TestSelect:
    """Tests for recommendation selection"""

    def test_default_method(self):
        normalized = _rows({"mastery": 1.0}, {"mastery": 0.2, "engagement": 1.0})
        weights = {"mastery": 0.9, "engagement": 0.1}

        index, scores = select(ScalarizationMethod.WEIGHTED_TCHEBYCHEFF, normalized, weights, ["p0", "p1"])

        assert index == 0
        assert len(scores) == 2

    def test_weighted_sum_ties_break_on_id(self):
        normalized = _rows({"mastery": 1.0}, {"mastery": 1.0})

        index, _ = select(ScalarizationMethod.WEIGHTED_SUM, normalized, DEFAULT_WEIGHTS, ["path_b", "path_a"])

        assert index == 1

    def test_epsilon_constraint_feasible(self):
        normalized = _rows(
            {"mastery": 1.0, "well_being": 0.0},
            {"mastery": 0.5, "well_being": 1.0},
            {"mastery": 0.3, "well_being": 0.9},
        )

        index, _ = select(
            ScalarizationMethod.EPSILON_CONSTRAINT, normalized, DEFAULT_WEIGHTS, ["a", "b", "c"],
            epsilon_bounds={"well_being": 0.5},
        )

        assert index == 1

    def test_epsilon_constraint_least_violation(self):
        normalized = _rows({"well_being": 0.1}, {"well_being": 0.4})

        index, _ = select(
            ScalarizationMethod.EPSILON_CONSTRAINT, normalized, DEFAULT_WEIGHTS, ["a", "b"],
            epsilon_bounds={"well_being": 0.9},
        )

        assert index == 1

    def test_unknown_bound_ignored(self):
        violations = epsilon_violations(_rows({"mastery": 0.1}), {"nonsense": 1.0, "mastery": 0.5})

        assert violations.tolist() == pytest.approx([0.4])
