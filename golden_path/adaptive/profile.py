"""
Per-learner adaptation state

The profile carries the BKT competency map, the EMA-smoothed signal state,
the calibrated difficulty and session counters. EMA smoothing:

ema_new = alpha * value + (1 - alpha) * ema_old
"""
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime
import copy

from golden_path.adaptive.bkt import BKTCompetencyState
from golden_path.schemas.signals import AdaptationSignal, SignalType


@dataclass
class EMAState:
    """Exponential moving averages of the continuous signals"""
    accuracy: float = 0.5
    response_time: float = 5000.0  # ms
    engagement: float = 0.5
    hint_usage: float = 0.0
    skip_rate: float = 0.0
    last_updated: Optional[datetime] = None

    # Signal types with a dedicated slot
    SLOTS = {
        SignalType.ACCURACY: "accuracy",
        SignalType.RESPONSE_TIME: "response_time",
        SignalType.ENGAGEMENT: "engagement",
        SignalType.HINT_USAGE: "hint_usage",
        SignalType.SKIP_RATE: "skip_rate",
    }

    def apply(self, signal: AdaptationSignal, alpha: float) -> bool:
        """Fold one signal into its slot. Returns False if the type has no slot."""
        slot = self.SLOTS.get(signal.type)
        if slot is None:
            return False
        current = getattr(self, slot)
        setattr(self, slot, alpha * signal.value + (1 - alpha) * current)
        self.last_updated = signal.timestamp
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accuracy": self.accuracy,
            "response_time": self.response_time,
            "engagement": self.engagement,
            "hint_usage": self.hint_usage,
            "skip_rate": self.skip_rate,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


def adjust_difficulty(
    current: float,
    accuracy: float,
    success_low: float = 0.75,
    success_high: float = 0.85,
    step: float = 0.05,
    minimum: float = 0.1,
    maximum: float = 1.0,
) -> float:
    """
    Nudge difficulty toward the target success band.

    Accuracy above the band makes content harder, below it easier.
    """
    if accuracy > success_high:
        current += step
    elif accuracy < success_low:
        current -= step
    return round(max(minimum, min(maximum, current)), 4)


@dataclass
class TenantAdaptationConfig:
    """Tenant overrides; unset fields fall back to Settings"""
    tenant_id: str
    zpd_lower_threshold: Optional[float] = None
    zpd_upper_threshold: Optional[float] = None
    prior_p_known: Optional[float] = None
    target_success_rate: Optional[float] = None
    p_learn: Optional[float] = None
    p_guess: Optional[float] = None
    p_slip: Optional[float] = None


@dataclass
class AdaptationProfile:
    """Per-learner adaptation state"""
    tenant_id: str
    learner_id: str
    competency_states: Dict[str, BKTCompetencyState] = field(default_factory=dict)
    ema: EMAState = field(default_factory=EMAState)
    current_difficulty: float = 0.5
    target_success_rate: float = 0.8
    session_count: int = 0
    total_time_minutes: float = 0.0
    last_session_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def mastered_competencies(self, threshold: float) -> List[str]:
        return [cid for cid, s in self.competency_states.items() if s.params.p_known >= threshold]

    def average_mastery(self) -> Optional[float]:
        if not self.competency_states:
            return None
        return sum(s.params.p_known for s in self.competency_states.values()) / len(self.competency_states)

    def snapshot(self) -> "AdaptationProfile":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "learner_id": self.learner_id,
            "competency_states": {k: v.to_dict() for k, v in self.competency_states.items()},
            "ema": self.ema.to_dict(),
            "current_difficulty": self.current_difficulty,
            "target_success_rate": self.target_success_rate,
            "session_count": self.session_count,
            "total_time_minutes": self.total_time_minutes,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class AdaptationEvent:
    """Audit record of a rule firing"""
    id: str
    tenant_id: str
    learner_id: str
    rule_id: Optional[str]
    action: Dict[str, Any]
    trigger_signals: List[AdaptationSignal] = field(default_factory=list)
    outcome: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)
