"""
Unit tests for co-occurrence interest clustering
"""

import random
from datetime import timedelta

import numpy as np
import pytest

from golden_path.curiosity.clustering import (
    agglomerate,
    build_co_occurrence,
    build_interest_clusters,
    cluster_id,
    select_topics,
)

from tests.conftest import FROZEN_NOW, make_curiosity_signal


def _pairwise_agglomerate(matrix, threshold):
    """Average linkage recomputed from topic pairs on every pass"""
    clusters = [[i] for i in range(matrix.shape[0])]
    while len(clusters) > 1:
        best, pair = -1.0, None
        for i in range(len(clusters)):
            for j in range(i + 1, len(clusters)):
                score = matrix[np.ix_(clusters[i], clusters[j])].mean()
                if score > best:
                    best, pair = score, (i, j)
        if best < threshold:
            break
        i, j = pair
        merged = sorted(clusters[i] + clusters[j])
        clusters = [c for k, c in enumerate(clusters) if k not in (i, j)]
        clusters.append(merged)
    return clusters


@pytest.fixture
def signals():
    """a+b share two sessions, c+d share one, e is alone"""
    return [
        make_curiosity_signal("a", "s1"),
        make_curiosity_signal("b", "s1"),
        make_curiosity_signal("a", "s2", recorded_at=FROZEN_NOW - timedelta(days=10)),
        make_curiosity_signal("b", "s2", recorded_at=FROZEN_NOW - timedelta(days=10)),
        make_curiosity_signal("c", "s3", domain="art"),
        make_curiosity_signal("d", "s3", domain="history"),
        make_curiosity_signal("e", "s4"),
    ]


class TestCoOccurrence:
    """Tests for the normalised co-occurrence matrix"""

    def test_normalised_by_max(self, signals):
        co = build_co_occurrence(signals)
        index = co.index()

        assert co.topics == ["a", "b", "c", "d", "e"]
        assert co.matrix[index["a"], index["b"]] == 1.0
        assert co.matrix[index["c"], index["d"]] == 0.5
        assert co.matrix[index["a"], index["e"]] == 0.0
        assert np.allclose(co.matrix, co.matrix.T)

    def test_signal_counts(self, signals):
        co = build_co_occurrence(signals)

        assert co.topic_signal_counts["a"] == 2
        assert co.topic_domains["c"] == "art"

    def test_topic_cap_keeps_most_signalled(self):
        signals = [make_curiosity_signal(t) for t in ["x", "x", "y", "y", "z"]]

        assert select_topics(signals, 2) == ["x", "y"]


class TestAgglomeration:
    """Tests for average-linkage merging"""

    def test_stops_below_threshold(self):
        matrix = np.array([
            [0.0, 1.0, 0.0],
            [1.0, 0.0, 0.2],
            [0.0, 0.2, 0.0],
        ])

        groups = agglomerate(matrix, threshold=0.3)

        assert sorted(groups) == [[0, 1], [2]]

    def test_average_linkage_merges_groups(self):
        matrix = np.array([
            [0.0, 1.0, 0.6, 0.6],
            [1.0, 0.0, 0.6, 0.6],
            [0.6, 0.6, 0.0, 0.0],
            [0.6, 0.6, 0.0, 0.0],
        ])

        groups = agglomerate(matrix, threshold=0.3)

        assert groups == [[0, 1, 2, 3]]

    def test_empty_matrix(self):
        assert agglomerate(np.zeros((0, 0)), threshold=0.3) == []

    def test_matches_pairwise_average_linkage(self):
        rng = np.random.default_rng(7)
        upper = np.triu(rng.random((12, 12)), k=1)
        matrix = upper + upper.T

        assert agglomerate(matrix, threshold=0.3) == _pairwise_agglomerate(matrix, 0.3)

    def test_time_budget_returns_partial_clusters(self):
        ticks = iter([0.0, 0.0, 5.0])

        groups = agglomerate(np.ones((4, 4)), threshold=0.3, time_budget_seconds=1.0, timer=lambda: next(ticks))

        assert groups == [[2], [3], [0, 1]]

    def test_two_hundred_topics_in_one_session(self):
        signals = [make_curiosity_signal(f"t{i:03d}", "s1") for i in range(200)]

        clusters = build_interest_clusters(signals, FROZEN_NOW, time_budget_seconds=30.0)

        assert len(clusters) == 1
        assert len(clusters[0].topics) == 200
        assert clusters[0].strength == 1.0


class TestInterestClusters:
    """Tests for the cluster summaries"""

    def test_clusters(self, signals):
        clusters = build_interest_clusters(signals, FROZEN_NOW)

        assert [c.topics for c in clusters] == [["a", "b"], ["c", "d"], ["e"]]
        assert [c.signal_count for c in clusters] == [4, 2, 1]
        assert [c.strength for c in clusters] == [1.0, 0.5, 0.5]

    def test_cluster_summary(self, signals):
        ab, cd, _ = build_interest_clusters(signals, FROZEN_NOW)

        assert ab.id == cluster_id(["b", "a"])
        assert ab.id.startswith("cluster_")
        assert ab.emerging_score == 0.5
        assert ab.last_activity_at == FROZEN_NOW
        assert cd.domains == ["art", "history"]

    def test_independent_of_storage_order(self, signals):
        shuffled = list(signals)
        random.Random(7).shuffle(shuffled)

        original = build_interest_clusters(signals, FROZEN_NOW)
        reordered = build_interest_clusters(shuffled, FROZEN_NOW)

        assert [c.id for c in original] == [c.id for c in reordered]

    def test_no_signals(self):
        assert build_interest_clusters([], FROZEN_NOW) == []

    def test_time_budget_passed_through(self, signals):
        ticks = iter([0.0, 5.0])

        clusters = build_interest_clusters(signals, FROZEN_NOW, time_budget_seconds=1.0, timer=lambda: next(ticks))

        assert sorted(c.topics for c in clusters) == [["a"], ["b"], ["c"], ["d"], ["e"]]
