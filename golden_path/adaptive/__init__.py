"""
Adaptation Engine: mastery tracking, ZPD, fatigue, rules and the decision gate
"""
from .engine import AdaptationEngine, DecisionGateResult
from .profile import AdaptationEvent, AdaptationProfile, EMAState, TenantAdaptationConfig

__all__ = [
    "AdaptationEngine",
    "DecisionGateResult",
    "AdaptationEvent",
    "AdaptationProfile",
    "EMAState",
    "TenantAdaptationConfig",
]
