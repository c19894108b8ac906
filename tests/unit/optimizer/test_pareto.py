"""
Unit tests for Pareto dominance, sorting and crowding distance
"""

import math

import numpy as np
import pytest

from golden_path.optimizer.pareto import crowding_distance, dominates, min_max_normalize, non_dominated_sort


class TestDominance:
    """Tests for the dominance relation"""

    def test_strictly_better(self):
        assert dominates(np.array([1.0, 1.0]), np.array([1.0, 0.5]))

    def test_equal_vectors(self):
        assert not dominates(np.array([1.0, 1.0]), np.array([1.0, 1.0]))

    def test_trade_off(self):
        a, b = np.array([1.0, 0.0]), np.array([0.0, 1.0])

        assert not dominates(a, b)
        assert not dominates(b, a)


class TestNonDominatedSort:
    """Tests for front assignment"""

    def test_trade_offs_share_front(self):
        values = np.array([[1.0, 0.0], [0.0, 1.0], [0.5, 0.5], [0.0, 0.0]])

        assert non_dominated_sort(values) == [[0, 1, 2], [3]]

    def test_chain(self):
        values = np.array([[3.0, 3.0], [2.0, 2.0], [1.0, 1.0]])

        assert non_dominated_sort(values) == [[0], [1], [2]]

    def test_duplicates_are_mutually_non_dominated(self):
        values = np.array([[1.0, 1.0], [1.0, 1.0]])

        assert non_dominated_sort(values) == [[0, 1]]

    def test_front_zero_is_non_dominated(self):
        rng = np.random.default_rng(3)
        values = rng.random((30, 4))

        front = non_dominated_sort(values)[0]

        for i in front:
            assert not any(dominates(values[j], values[i]) for j in range(len(values)))


class TestCrowdingDistance:
    """Tests for crowding distance"""

    def test_small_fronts_are_infinite(self):
        values = np.array([[1.0, 0.0], [0.0, 1.0]])

        assert crowding_distance(values, [0, 1]) == {0: math.inf, 1: math.inf}

    def test_interior_points(self):
        values = np.array([[0.0, 3.0], [1.0, 2.0], [2.0, 1.0], [3.0, 0.0]])

        distances = crowding_distance(values, [0, 1, 2, 3])

        assert distances[0] == math.inf
        assert distances[3] == math.inf
        assert distances[1] == pytest.approx(4 / 3)
        assert distances[2] == pytest.approx(4 / 3)


class TestNormalize:
    """Tests for min-max normalisation"""

    def test_columns(self):
        normalized = min_max_normalize(np.array([[0.0, 5.0], [10.0, 5.0], [5.0, 5.0]]))

        assert normalized[:, 0].tolist() == [0.0, 1.0, 0.5]
        assert normalized[:, 1].tolist() == [1.0, 1.0, 1.0]
