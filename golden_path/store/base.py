"""
State store and content catalogue interfaces

Engines treat the store as synchronous-but-replaceable. Every record is
keyed by tenant and, where it applies, learner.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from golden_path.adaptive.profile import AdaptationEvent, AdaptationProfile, TenantAdaptationConfig
    from golden_path.curiosity.models import CuriosityProfile, CuriositySignal
    from golden_path.optimizer.models import ObjectiveWeightsConfig, OptimizationEvent, WeightsLevel
    from golden_path.schemas.paths import CandidateStep
    from golden_path.schemas.rules import AdaptationRule
    from golden_path.schemas.signals import AdaptationSignal, CuriositySignalType


class StateStore(ABC):
    """Abstract base for engine state persistence"""

    # ==================== Adaptation ====================

    @abstractmethod
    def get_profile(self, tenant_id: str, learner_id: str) -> Optional["AdaptationProfile"]:
        pass

    @abstractmethod
    def save_profile(self, profile: "AdaptationProfile"):
        pass

    @abstractmethod
    def append_signals(self, tenant_id: str, learner_id: str, signals: List["AdaptationSignal"]):
        pass

    @abstractmethod
    def get_session_signals(
        self, tenant_id: str, learner_id: str, session_id: str
    ) -> List["AdaptationSignal"]:
        """Signals of one session in timestamp order"""
        pass

    @abstractmethod
    def append_adaptation_event(self, event: "AdaptationEvent"):
        pass

    @abstractmethod
    def list_adaptation_events(
        self,
        tenant_id: str,
        learner_id: str,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List["AdaptationEvent"]:
        """Newest first"""
        pass

    @abstractmethod
    def list_rules(self, tenant_id: str) -> List["AdaptationRule"]:
        pass

    @abstractmethod
    def get_rule(self, tenant_id: str, rule_id: str) -> Optional["AdaptationRule"]:
        pass

    @abstractmethod
    def save_rule(self, rule: "AdaptationRule"):
        pass

    @abstractmethod
    def get_tenant_config(self, tenant_id: str) -> Optional["TenantAdaptationConfig"]:
        pass

    @abstractmethod
    def save_tenant_config(self, config: "TenantAdaptationConfig"):
        pass

    # ==================== Curiosity ====================

    @abstractmethod
    def append_curiosity_signal(self, signal: "CuriositySignal"):
        pass

    @abstractmethod
    def list_curiosity_signals(
        self, tenant_id: str, learner_id: str, since: datetime
    ) -> List["CuriositySignal"]:
        """One learner's signals recorded at or after ``since``, oldest first"""
        pass

    @abstractmethod
    def list_peer_curiosity_signals(
        self,
        tenant_id: str,
        exclude_learner_id: str,
        since: datetime,
        limit: int,
        domain: Optional[str] = None,
        signal_types: Optional[List["CuriositySignalType"]] = None,
    ) -> List["CuriositySignal"]:
        """Other learners' signals in the tenant, newest first"""
        pass

    @abstractmethod
    def get_curiosity_profile(self, tenant_id: str, learner_id: str) -> Optional["CuriosityProfile"]:
        pass

    @abstractmethod
    def save_curiosity_profile(self, profile: "CuriosityProfile"):
        pass

    # ==================== Optimizer ====================

    @abstractmethod
    def get_objective_weights(
        self, tenant_id: str, level: "WeightsLevel", owner_id: str
    ) -> Optional["ObjectiveWeightsConfig"]:
        pass

    @abstractmethod
    def save_objective_weights(self, config: "ObjectiveWeightsConfig"):
        pass

    @abstractmethod
    def append_optimization_event(self, event: "OptimizationEvent"):
        pass

    @abstractmethod
    def list_optimization_events(
        self, tenant_id: str, learner_id: str, limit: Optional[int] = None
    ) -> List["OptimizationEvent"]:
        """Newest first"""
        pass


class ContentCatalogue(ABC):
    """Abstract source of candidate learning steps"""

    @abstractmethod
    def list_steps(
        self, tenant_id: str, content_ids: Optional[List[str]] = None
    ) -> List["CandidateStep"]:
        pass
