"""
Session fatigue detection
"""
from .fatigue_detector import (
    FatigueDetector,
    FatigueAssessment,
    FatigueComponents,
    FatigueRecommendation,
)

__all__ = [
    "FatigueDetector",
    "FatigueAssessment",
    "FatigueComponents",
    "FatigueRecommendation",
]
