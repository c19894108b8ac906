"""
Decision gate step scoring
"""
from .step_scorer import ScoredStep, StepScoreComponents, StepScorer, sigmoid

__all__ = [
    "ScoredStep",
    "StepScoreComponents",
    "StepScorer",
    "sigmoid",
]
