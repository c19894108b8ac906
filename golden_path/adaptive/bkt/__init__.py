"""
Bayesian Knowledge Tracing
"""
from .bayesian_kt import (
    BayesianKnowledgeTracer,
    BKTParameters,
    BKTCompetencyState,
    MasterySnapshot,
    MasteryEstimate,
    MasteryTrend,
)

__all__ = [
    "BayesianKnowledgeTracer",
    "BKTParameters",
    "BKTCompetencyState",
    "MasterySnapshot",
    "MasteryEstimate",
    "MasteryTrend",
]
