"""
Peer-driven content suggestions and curiosity triggers

Suggestions:
    alignment   = |content topics ∩ learner topics| / |content topics|
    popularity  = peer count / max peer count
    cross       = content spans >= 2 domains, at least one known to the learner
    relevance   = min(1, wa*alignment + wp*popularity + wc*cross + wn*(1 - alignment))

Triggers (content attached to peer exploration / deep-dive signals):
    score = wf * count / max_count + ws * Jaccard(peer topics, learner topics)
"""
from typing import Dict, List, Optional, Set
from dataclasses import dataclass, field
from collections import defaultdict
import logging

from golden_path.curiosity.models import ContentSuggestion, CuriositySignal, CuriosityTrigger

logger = logging.getLogger(__name__)


@dataclass
class SuggestionWeights:
    alignment: float = 0.45
    popularity: float = 0.25
    cross_curricular: float = 0.15
    novelty: float = 0.15


@dataclass
class TriggerWeights:
    frequency: float = 0.6
    similarity: float = 0.4


@dataclass
class _ContentEntry:
    content_id: str
    topics: List[str] = field(default_factory=list)
    topic_names: List[str] = field(default_factory=list)
    domains: List[str] = field(default_factory=list)
    learners: Set[str] = field(default_factory=set)
    count: int = 0

    def add(self, signal: CuriositySignal):
        if signal.topic_id not in self.topics:
            self.topics.append(signal.topic_id)
        if signal.topic_name not in self.topic_names:
            self.topic_names.append(signal.topic_name)
        if signal.domain not in self.domains:
            self.domains.append(signal.domain)
        self.learners.add(signal.learner_id)
        self.count += 1


def build_reasoning(
    alignment: float,
    popularity: float,
    cross_curricular: bool,
    topic_names: List[str],
) -> str:
    parts = []

    if alignment > 0.7:
        parts.append("strongly aligned with your current interests")
    elif alignment > 0.3:
        parts.append("partially aligned with your interests")
    else:
        parts.append("explores new territory beyond your current interests")

    if popularity > 0.7:
        parts.append("highly popular among similar learners")
    elif popularity > 0.3:
        parts.append("moderately popular among peers")

    if cross_curricular:
        parts.append("spans multiple subject areas")

    if topic_names:
        parts.append(f"covers {' and '.join(topic_names[:2])}")

    return "; ".join(parts) + "."


def suggest_content(
    learner_signals: List[CuriositySignal],
    peer_signals: List[CuriositySignal],
    limit: int = 10,
    weights: Optional[SuggestionWeights] = None,
) -> List[ContentSuggestion]:
    """
    Rank content seen by peers but not yet by the learner

    Args:
        learner_signals: The learner's own signals (lookback window)
        peer_signals: Other learners' signals, newest first
        limit: Maximum suggestions returned
        weights: Relevance weights

    Returns:
        Suggestions sorted by relevance descending
    """
    weights = weights or SuggestionWeights()
    if not learner_signals:
        return []

    seen_content = {s.content_id for s in learner_signals if s.content_id}
    learner_topics = {s.topic_id for s in learner_signals}
    learner_domains = {s.domain for s in learner_signals}

    entries: Dict[str, _ContentEntry] = {}
    for signal in peer_signals:
        if not signal.content_id or signal.content_id in seen_content:
            continue
        entry = entries.setdefault(signal.content_id, _ContentEntry(content_id=signal.content_id))
        entry.add(signal)

    if not entries:
        return []

    max_count = max(1, max(e.count for e in entries.values()))
    suggestions = []
    for entry in entries.values():
        overlap = sum(1 for t in entry.topics if t in learner_topics)
        alignment = overlap / len(entry.topics) if entry.topics else 0.0
        popularity = entry.count / max_count
        domain_overlap = sum(1 for d in entry.domains if d in learner_domains)
        cross_curricular = len(entry.domains) > 1 and domain_overlap >= 1

        relevance = min(
            1.0,
            alignment * weights.alignment
            + popularity * weights.popularity
            + (weights.cross_curricular if cross_curricular else 0.0)
            + (1 - alignment) * weights.novelty,
        )

        suggestions.append(
            ContentSuggestion(
                content_id=entry.content_id,
                title=", ".join(entry.topic_names[:3]),
                domain=entry.domains[0],
                topics=list(entry.topics),
                relevance_score=relevance,
                curiosity_alignment=alignment,
                peer_popularity=popularity,
                cross_curricular=cross_curricular,
                reasoning=build_reasoning(alignment, popularity, cross_curricular, entry.topic_names),
            )
        )

    suggestions.sort(key=lambda s: (-s.relevance_score, s.content_id))
    return suggestions[:limit]


def find_triggers(
    learner_signals: List[CuriositySignal],
    peer_signals: List[CuriositySignal],
    limit: int = 10,
    weights: Optional[TriggerWeights] = None,
) -> List[CuriosityTrigger]:
    """
    Rank content that preceded curiosity signals in peer sessions

    Args:
        learner_signals: The learner's own signals (lookback window)
        peer_signals: Peer exploration / deep-dive signals, newest first
        limit: Maximum triggers returned
        weights: Score weights

    Returns:
        Triggers sorted by score descending
    """
    weights = weights or TriggerWeights()
    learner_topics = {s.topic_id for s in learner_signals}

    by_session: Dict[str, List[CuriositySignal]] = defaultdict(list)
    for signal in peer_signals:
        if signal.session_id:
            by_session[signal.session_id].append(signal)

    entries: Dict[str, _ContentEntry] = {}
    for session_id in sorted(by_session):
        for signal in by_session[session_id]:
            if not signal.content_id:
                continue
            entry = entries.setdefault(signal.content_id, _ContentEntry(content_id=signal.content_id))
            entry.add(signal)

    if not entries:
        return []

    max_count = max(1, max(e.count for e in entries.values()))
    triggers = []
    for entry in entries.values():
        frequency = entry.count / max_count
        peer_topics = set(entry.topics)
        union = peer_topics | learner_topics
        similarity = len(peer_topics & learner_topics) / len(union) if union else 0.0
        score = frequency * weights.frequency + similarity * weights.similarity

        triggers.append(
            CuriosityTrigger(
                content_id=entry.content_id,
                title=", ".join(entry.topic_names[:3]),
                domain=entry.domains[0],
                trigger_score=round(score, 3),
                learner_similarity=round(similarity, 3),
                historical_signals=entry.count,
                peer_learner_count=len(entry.learners),
            )
        )

    triggers.sort(key=lambda t: (-t.trigger_score, t.content_id))
    logger.debug(f"Scored {len(triggers)} curiosity triggers")
    return triggers[:limit]
