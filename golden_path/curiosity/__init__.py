"""
Curiosity Engine: interest signals, clusters, emerging interests and suggestions
"""
from .alignment import curiosity_alignment
from .cache import ProfileRefreshQueue
from .engine import CuriosityEngine
from .models import (
    ContentSuggestion,
    CuriosityProfile,
    CuriosityScore,
    CuriosityScoreComponents,
    CuriositySignal,
    CuriosityTrigger,
    EmergingInterest,
    InterestCluster,
)

__all__ = [
    "CuriosityEngine",
    "ProfileRefreshQueue",
    "curiosity_alignment",
    "ContentSuggestion",
    "CuriosityProfile",
    "CuriosityScore",
    "CuriosityScoreComponents",
    "CuriositySignal",
    "CuriosityTrigger",
    "EmergingInterest",
    "InterestCluster",
]
