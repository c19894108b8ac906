"""
Co-occurrence interest clustering

1. Group signals by session
2. Every pair of distinct topics seen in the same session increments a
   symmetric co-occurrence counter; the matrix is normalised by its maximum
3. Agglomerative clustering with average linkage: merge the closest pair of
   clusters while their linkage is >= the merge threshold, within an
   optional wall-clock budget

Topics are indexed in sorted order so the result does not depend on the
order signals were stored in.
"""
from typing import Callable, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from collections import Counter, defaultdict
import hashlib
import logging
import time

import numpy as np

from golden_path.core.logging import log_operation
from golden_path.curiosity.models import CuriositySignal, InterestCluster

logger = logging.getLogger(__name__)


@dataclass
class CoOccurrenceMatrix:
    topics: List[str]
    matrix: np.ndarray
    topic_names: Dict[str, str] = field(default_factory=dict)
    topic_domains: Dict[str, str] = field(default_factory=dict)
    topic_signal_counts: Dict[str, int] = field(default_factory=dict)

    def index(self) -> Dict[str, int]:
        return {t: i for i, t in enumerate(self.topics)}


def select_topics(signals: List[CuriositySignal], max_topics: int) -> List[str]:
    """Most-signalled topics (ties by id), returned in sorted order"""
    counts = Counter(s.topic_id for s in signals)
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return sorted(topic for topic, _ in ranked[:max_topics])


def build_co_occurrence(signals: List[CuriositySignal], max_topics: int = 200) -> CoOccurrenceMatrix:
    """Session co-occurrence matrix normalised by its largest off-diagonal cell"""
    topics = select_topics(signals, max_topics)
    kept = set(topics)
    index = {t: i for i, t in enumerate(topics)}

    names: Dict[str, str] = {}
    domains: Dict[str, str] = {}
    counts: Dict[str, int] = defaultdict(int)
    sessions: Dict[str, set] = defaultdict(set)

    # Ascending time so the latest name/domain for a topic wins
    for s in sorted(signals, key=lambda s: (s.recorded_at, s.id)):
        if s.topic_id not in kept:
            continue
        names[s.topic_id] = s.topic_name
        domains[s.topic_id] = s.domain
        counts[s.topic_id] += 1
        if s.session_id:
            sessions[s.session_id].add(s.topic_id)

    n = len(topics)
    matrix = np.zeros((n, n), dtype=float)
    for session_topics in sessions.values():
        members = sorted(session_topics)
        for i in range(len(members)):
            for j in range(i + 1, len(members)):
                a, b = index[members[i]], index[members[j]]
                matrix[a, b] += 1
                matrix[b, a] += 1

    max_value = matrix.max() if n > 0 else 0.0
    if max_value > 0:
        matrix = matrix / max_value

    return CoOccurrenceMatrix(
        topics=topics,
        matrix=matrix,
        topic_names=names,
        topic_domains=domains,
        topic_signal_counts=dict(counts),
    )


def agglomerate(
    matrix: np.ndarray,
    threshold: float,
    time_budget_seconds: Optional[float] = None,
    timer: Callable[[], float] = time.monotonic,
) -> List[List[int]]:
    """
    Average-linkage agglomeration over topic indices.

    Merges only happen across pairs whose linkage clears the threshold, so
    topics that never co-occur are not joined through a zero-linkage merge.

    Cluster-to-cluster linkage lives in one matrix that is updated on each
    merge with the Lance-Williams rule for average linkage:

        d(k, i+j) = (|i| * d(k, i) + |j| * d(k, j)) / (|i| + |j|)

    Once ``time_budget_seconds`` is spent the clusters merged so far are
    returned.
    """
    n = matrix.shape[0]
    clusters: List[List[int]] = [[i] for i in range(n)]
    if n < 2:
        return clusters

    linkage = np.array(matrix, dtype=float)
    np.fill_diagonal(linkage, -np.inf)
    # Row of ``linkage`` holding each entry of ``clusters``
    slots: List[int] = list(range(n))
    started = timer()

    while len(clusters) > 1:
        if time_budget_seconds is not None and timer() - started > time_budget_seconds:
            logger.warning(
                f"Clustering time budget of {time_budget_seconds}s spent; "
                f"returning {len(clusters)} partial clusters from {n} topics"
            )
            break

        m = len(slots)
        active = linkage[np.ix_(slots, slots)]
        active[np.tril_indices(m)] = -np.inf
        # argmax takes the first maximum in row-major order, i.e. the
        # lowest (i, j) pair on ties
        i, j = divmod(int(np.argmax(active)), m)
        if active[i, j] < threshold:
            break

        si, sj = slots[i], slots[j]
        size_i, size_j = len(clusters[i]), len(clusters[j])
        merged_row = (size_i * linkage[si] + size_j * linkage[sj]) / (size_i + size_j)
        linkage[si, :] = merged_row
        linkage[:, si] = merged_row
        linkage[si, si] = -np.inf

        merged = sorted(clusters[i] + clusters[j])
        clusters = [c for k, c in enumerate(clusters) if k not in (i, j)]
        slots = [s for k, s in enumerate(slots) if k not in (i, j)]
        clusters.append(merged)
        slots.append(si)

    return clusters


def cluster_id(topics: List[str]) -> str:
    digest = hashlib.sha1("|".join(sorted(topics)).encode("utf-8")).hexdigest()[:12]
    return f"cluster_{digest}"


@log_operation
def build_interest_clusters(
    signals: List[CuriositySignal],
    now: datetime,
    merge_threshold: float = 0.3,
    max_topics: int = 200,
    time_budget_seconds: Optional[float] = None,
    timer: Callable[[], float] = time.monotonic,
) -> List[InterestCluster]:
    """
    Cluster the learner's topics and summarise each cluster

    Args:
        signals: Learner signals from the lookback window
        now: Reference time for the 7-day emerging score
        merge_threshold: Minimum average linkage for a merge
        max_topics: Cap on topics taking part in clustering
        time_budget_seconds: Wall-clock cap on merging; partial clusters
            are returned when it runs out
        timer: Monotonic clock used for the budget

    Returns:
        Clusters sorted by signal count descending
    """
    if not signals:
        return []

    co = build_co_occurrence(signals, max_topics)
    if not co.topics:
        return []

    groups = agglomerate(co.matrix, merge_threshold, time_budget_seconds, timer)
    week_ago = now - timedelta(days=7)

    clusters: List[InterestCluster] = []
    for group in groups:
        topics = [co.topics[i] for i in group]
        topic_set = set(topics)

        if len(group) > 1:
            pairs = [(a, b) for x, a in enumerate(group) for b in group[x + 1:]]
            strength = min(1.0, sum(co.matrix[a, b] for a, b in pairs) / len(pairs))
        else:
            strength = 0.5

        member_signals = [s for s in signals if s.topic_id in topic_set]
        recent = [s for s in member_signals if s.recorded_at >= week_ago]
        emerging_score = min(1.0, len(recent) / len(member_signals)) if member_signals else 0.0
        last_activity = max((s.recorded_at for s in member_signals), default=now)

        topic_names: List[str] = []
        for t in topics:
            name = co.topic_names.get(t, t)
            if name not in topic_names:
                topic_names.append(name)

        domains: List[str] = []
        for t in topics:
            domain = co.topic_domains.get(t, "unknown")
            if domain not in domains:
                domains.append(domain)

        clusters.append(
            InterestCluster(
                id=cluster_id(topics),
                topics=topics,
                topic_names=topic_names,
                strength=round(float(strength), 3),
                signal_count=sum(co.topic_signal_counts.get(t, 0) for t in topics),
                domains=domains,
                last_activity_at=last_activity,
                emerging_score=round(emerging_score, 3),
            )
        )

    clusters.sort(key=lambda c: (-c.signal_count, c.id))
    logger.debug(f"Built {len(clusters)} interest clusters from {len(co.topics)} topics")
    return clusters
