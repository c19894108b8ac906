"""
Curiosity engine records

Signals are immutable; profiles, clusters and emerging interests are derived
and recomputed wholesale on every refresh.
"""
from typing import Dict, List, Optional, Set, Any
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from golden_path.schemas.signals import CuriositySignalType


@dataclass(frozen=True)
class CuriositySignal:
    """One observed interest event"""
    id: str
    tenant_id: str
    learner_id: str
    signal_type: CuriositySignalType
    topic_id: str
    topic_name: str
    domain: str
    strength: float
    session_id: str
    recorded_at: datetime
    content_id: Optional[str] = None
    referring_topic_id: Optional[str] = None
    dwell_seconds: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "signal_type": self.signal_type.value,
            "topic_id": self.topic_id,
            "topic_name": self.topic_name,
            "domain": self.domain,
            "strength": self.strength,
            "session_id": self.session_id,
            "content_id": self.content_id,
            "recorded_at": self.recorded_at.isoformat(),
        }


@dataclass
class InterestCluster:
    """Group of topics that co-occur in the learner's sessions"""
    id: str
    topics: List[str]
    topic_names: List[str]
    strength: float  # mean intra-cluster linkage
    signal_count: int
    domains: List[str]
    last_activity_at: datetime
    emerging_score: float  # share of signals in the trailing 7 days

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "topics": self.topics,
            "topic_names": self.topic_names,
            "strength": self.strength,
            "signal_count": self.signal_count,
            "domains": self.domains,
            "last_activity_at": self.last_activity_at.isoformat(),
            "emerging_score": self.emerging_score,
        }


@dataclass
class EmergingInterest:
    topic_id: str
    topic_name: str
    domain: str
    acceleration: float
    signal_trend: List[int]  # daily counts, oldest first
    confidence: float
    first_seen_at: datetime
    detected_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topic_id": self.topic_id,
            "topic_name": self.topic_name,
            "domain": self.domain,
            "acceleration": self.acceleration,
            "signal_trend": self.signal_trend,
            "confidence": self.confidence,
            "first_seen_at": self.first_seen_at.isoformat(),
            "detected_at": self.detected_at.isoformat(),
        }


@dataclass
class CuriosityScoreComponents:
    signal_count: float = 0.0
    breadth: float = 0.0
    depth: float = 0.0
    question_frequency: float = 0.0
    exploration_rate: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "signal_count": self.signal_count,
            "breadth": self.breadth,
            "depth": self.depth,
            "question_frequency": self.question_frequency,
            "exploration_rate": self.exploration_rate,
        }


@dataclass
class CuriosityScore:
    overall_score: int
    components: CuriosityScoreComponents


@dataclass
class CuriosityProfile:
    """Cached derived summary of a learner's interests"""
    tenant_id: str
    learner_id: str
    overall_score: int
    components: CuriosityScoreComponents
    clusters: List[InterestCluster] = field(default_factory=list)
    emerging_interests: List[EmergingInterest] = field(default_factory=list)
    recent_signals: List[CuriositySignal] = field(default_factory=list)
    last_updated: datetime = field(default_factory=datetime.utcnow)

    def age_seconds(self, now: datetime) -> float:
        return (now - self.last_updated).total_seconds()

    def is_fresh(self, now: datetime, ttl_seconds: float) -> bool:
        """Fresh strictly within the TTL; age equal to the TTL is stale"""
        return now - self.last_updated < timedelta(seconds=ttl_seconds)

    def interest_topics(self) -> Set[str]:
        """Lowercased topic ids and names from clusters and emerging interests"""
        topics: Set[str] = set()
        for cluster in self.clusters:
            topics.update(t.lower() for t in cluster.topics)
            topics.update(n.lower() for n in cluster.topic_names)
        for interest in self.emerging_interests:
            topics.add(interest.topic_id.lower())
            topics.add(interest.topic_name.lower())
        return topics

    def interest_domains(self) -> Set[str]:
        domains: Set[str] = set()
        for cluster in self.clusters:
            domains.update(d.lower() for d in cluster.domains)
        for interest in self.emerging_interests:
            domains.add(interest.domain.lower())
        return domains

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "learner_id": self.learner_id,
            "overall_score": self.overall_score,
            "components": self.components.to_dict(),
            "clusters": [c.to_dict() for c in self.clusters],
            "emerging_interests": [e.to_dict() for e in self.emerging_interests],
            "recent_signals": [s.to_dict() for s in self.recent_signals],
            "last_updated": self.last_updated.isoformat(),
        }


@dataclass
class ContentSuggestion:
    content_id: str
    title: str
    domain: str
    topics: List[str]
    relevance_score: float
    curiosity_alignment: float
    peer_popularity: float
    cross_curricular: bool
    reasoning: str


@dataclass
class CuriosityTrigger:
    content_id: str
    title: str
    domain: str
    trigger_score: float
    learner_similarity: float
    historical_signals: int
    peer_learner_count: int
