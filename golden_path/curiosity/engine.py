"""
Curiosity Engine

Ingests interest signals and derives the learner's curiosity profile:
interest clusters, emerging interests, a composite score, peer-driven
content suggestions and curiosity triggers.

Caching:
- A profile is fresh for CURIOSITY_CACHE_TTL_SECONDS after computation
- Reads past the TTL recompute synchronously before returning
- Writes hand a refresh to the ProfileRefreshQueue and return immediately
"""
from typing import Any, Callable, Dict, List, Optional, Union
from datetime import datetime, timedelta
import logging
import uuid

from golden_path.core.config import Settings
from golden_path.core.errors import engine_operation, require_fields
from golden_path.core.telemetry import EngineTelemetry
from golden_path.curiosity.cache import ProfileRefreshQueue
from golden_path.curiosity.clustering import build_interest_clusters
from golden_path.curiosity.emerging import detect_emerging
from golden_path.curiosity.models import (
    ContentSuggestion,
    CuriosityProfile,
    CuriosityScore,
    CuriositySignal,
    CuriosityTrigger,
    EmergingInterest,
    InterestCluster,
)
from golden_path.curiosity.recommendations import (
    SuggestionWeights,
    TriggerWeights,
    find_triggers,
    suggest_content,
)
from golden_path.curiosity.scoring import compute_score
from golden_path.schemas.signals import CuriositySignalInput, CuriositySignalType
from golden_path.store.base import StateStore

logger = logging.getLogger(__name__)

TRIGGER_SIGNAL_TYPES = [
    CuriositySignalType.VOLUNTARY_EXPLORATION,
    CuriositySignalType.TOPIC_DEEP_DIVE,
]


class CuriosityEngine:
    """
    Curiosity signal ingestion and interest profiling
    """

    def __init__(
        self,
        store: StateStore,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        telemetry: Optional[EngineTelemetry] = None,
    ):
        self.store = store
        self.settings = settings or Settings()
        self.clock = clock or datetime.utcnow
        self.telemetry = telemetry
        self.refresh_queue = ProfileRefreshQueue(
            self._refresh_profile,
            max_retries=self.settings.CURIOSITY_REFRESH_MAX_RETRIES,
            telemetry=telemetry,
            auto_start=self.settings.CURIOSITY_REFRESH_AUTO_START,
        )

    def close(self):
        """Stop the refresh worker once queued refreshes are done"""
        self.refresh_queue.stop()

    # ==================== Internals ====================

    def _window_start(self, now: datetime) -> datetime:
        return now - timedelta(days=self.settings.CURIOSITY_SIGNAL_LOOKBACK_DAYS)

    def _learner_signals(self, tenant_id: str, learner_id: str, now: datetime) -> List[CuriositySignal]:
        return self.store.list_curiosity_signals(tenant_id, learner_id, self._window_start(now))

    def _clusters(self, signals: List[CuriositySignal], now: datetime) -> List[InterestCluster]:
        return build_interest_clusters(
            signals,
            now,
            merge_threshold=self.settings.CURIOSITY_CLUSTER_MERGE_THRESHOLD,
            max_topics=self.settings.CURIOSITY_MAX_CLUSTER_TOPICS,
            time_budget_seconds=self.settings.CURIOSITY_CLUSTER_TIME_BUDGET_SECONDS,
        )

    def _emerging(self, signals: List[CuriositySignal], now: datetime) -> List[EmergingInterest]:
        return detect_emerging(
            signals,
            now,
            threshold=self.settings.CURIOSITY_EMERGING_ACCELERATION,
            recent_days=self.settings.CURIOSITY_RECENT_WINDOW_DAYS,
            historical_days=self.settings.CURIOSITY_HISTORICAL_WINDOW_DAYS,
        )

    def _score(self, signals: List[CuriositySignal]) -> CuriosityScore:
        return compute_score(
            signals,
            expected_daily_signals=self.settings.CURIOSITY_EXPECTED_DAILY_SIGNALS,
            lookback_days=self.settings.CURIOSITY_SIGNAL_LOOKBACK_DAYS,
        )

    def compute_profile(self, tenant_id: str, learner_id: str, now: Optional[datetime] = None) -> CuriosityProfile:
        """Full recomputation from the lookback window. Pure given the signals and ``now``."""
        now = now or self.clock()
        signals = self._learner_signals(tenant_id, learner_id, now)
        score = self._score(signals)

        return CuriosityProfile(
            tenant_id=tenant_id,
            learner_id=learner_id,
            overall_score=score.overall_score,
            components=score.components,
            clusters=self._clusters(signals, now),
            emerging_interests=self._emerging(signals, now),
            recent_signals=signals[-self.settings.CURIOSITY_RECENT_SIGNAL_LIMIT:],
            last_updated=now,
        )

    def _refresh_profile(self, tenant_id: str, learner_id: str):
        profile = self.compute_profile(tenant_id, learner_id)
        self.store.save_curiosity_profile(profile)

    def _fresh_cache(self, tenant_id: str, learner_id: str, now: datetime) -> Optional[CuriosityProfile]:
        cached = self.store.get_curiosity_profile(tenant_id, learner_id)
        if cached is not None and cached.is_fresh(now, self.settings.CURIOSITY_CACHE_TTL_SECONDS):
            return cached
        return None

    def _current_profile(self, tenant_id: str, learner_id: str) -> CuriosityProfile:
        now = self.clock()
        cached = self._fresh_cache(tenant_id, learner_id, now)
        if cached is not None:
            return cached

        profile = self.compute_profile(tenant_id, learner_id, now)
        self.store.save_curiosity_profile(profile)
        logger.debug(f"Recomputed curiosity profile for {tenant_id}/{learner_id}")
        return profile

    # ==================== Operations ====================

    @engine_operation("record_signal")
    def record_signal(
        self,
        tenant_id: str,
        learner_id: str,
        signal: Union[CuriositySignalInput, Dict[str, Any]],
    ) -> CuriositySignal:
        """
        Persist one curiosity signal and hand a refresh to the queue if the
        cached profile is missing or stale.
        """
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        if isinstance(signal, dict):
            signal = CuriositySignalInput.model_validate(signal)

        now = self.clock()
        record = CuriositySignal(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            learner_id=learner_id,
            signal_type=signal.signal_type,
            topic_id=signal.topic_id,
            topic_name=signal.topic_name or signal.topic_id,
            domain=signal.domain,
            strength=signal.strength,
            session_id=signal.context.session_id,
            recorded_at=signal.recorded_at or now,
            content_id=signal.context.content_id,
            referring_topic_id=signal.context.referring_topic_id,
            dwell_seconds=signal.context.dwell_seconds,
        )
        self.store.append_curiosity_signal(record)

        if self._fresh_cache(tenant_id, learner_id, now) is None:
            self.refresh_queue.submit(tenant_id, learner_id)

        return record

    @engine_operation("get_curiosity_profile")
    def get_curiosity_profile(self, tenant_id: str, learner_id: str) -> CuriosityProfile:
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        return self._current_profile(tenant_id, learner_id)

    @engine_operation("get_interest_clusters")
    def get_interest_clusters(self, tenant_id: str, learner_id: str) -> List[InterestCluster]:
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        now = self.clock()
        return self._clusters(self._learner_signals(tenant_id, learner_id, now), now)

    @engine_operation("detect_emerging_interests")
    def detect_emerging_interests(self, tenant_id: str, learner_id: str) -> List[EmergingInterest]:
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        now = self.clock()
        return self._emerging(self._learner_signals(tenant_id, learner_id, now), now)

    @engine_operation("get_emerging_interests")
    def get_emerging_interests(self, tenant_id: str, learner_id: str) -> List[EmergingInterest]:
        """Cached variant of detect_emerging_interests"""
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        now = self.clock()
        cached = self._fresh_cache(tenant_id, learner_id, now)
        if cached is not None:
            return cached.emerging_interests
        return self._emerging(self._learner_signals(tenant_id, learner_id, now), now)

    @engine_operation("get_curiosity_score")
    def get_curiosity_score(self, tenant_id: str, learner_id: str) -> CuriosityScore:
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        now = self.clock()
        cached = self._fresh_cache(tenant_id, learner_id, now)
        if cached is not None:
            return CuriosityScore(overall_score=cached.overall_score, components=cached.components)
        return self._score(self._learner_signals(tenant_id, learner_id, now))

    @engine_operation("get_content_suggestions")
    def get_content_suggestions(
        self,
        tenant_id: str,
        learner_id: str,
        limit: Optional[int] = None,
        domain: Optional[str] = None,
    ) -> List[ContentSuggestion]:
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        now = self.clock()
        learner_signals = self._learner_signals(tenant_id, learner_id, now)
        if not learner_signals:
            return []

        peer_signals = self.store.list_peer_curiosity_signals(
            tenant_id,
            learner_id,
            self._window_start(now),
            limit=self.settings.CURIOSITY_SUGGESTION_PEER_LIMIT,
            domain=domain,
        )
        weights = SuggestionWeights(
            alignment=self.settings.SUGGESTION_WEIGHT_ALIGNMENT,
            popularity=self.settings.SUGGESTION_WEIGHT_POPULARITY,
            cross_curricular=self.settings.SUGGESTION_WEIGHT_CROSS_CURRICULAR,
            novelty=self.settings.SUGGESTION_WEIGHT_NOVELTY,
        )
        return suggest_content(
            learner_signals,
            peer_signals,
            limit=limit or self.settings.CURIOSITY_SUGGESTION_LIMIT,
            weights=weights,
        )

    @engine_operation("find_curiosity_triggers")
    def find_curiosity_triggers(
        self,
        tenant_id: str,
        learner_id: str,
        limit: Optional[int] = None,
        domain: Optional[str] = None,
    ) -> List[CuriosityTrigger]:
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        now = self.clock()
        learner_signals = self._learner_signals(tenant_id, learner_id, now)
        peer_signals = self.store.list_peer_curiosity_signals(
            tenant_id,
            learner_id,
            self._window_start(now),
            limit=self.settings.CURIOSITY_TRIGGER_PEER_LIMIT,
            domain=domain,
            signal_types=TRIGGER_SIGNAL_TYPES,
        )
        weights = TriggerWeights(
            frequency=self.settings.TRIGGER_WEIGHT_FREQUENCY,
            similarity=self.settings.TRIGGER_WEIGHT_SIMILARITY,
        )
        return find_triggers(
            learner_signals,
            peer_signals,
            limit=limit or self.settings.CURIOSITY_TRIGGER_LIMIT,
            weights=weights,
        )
