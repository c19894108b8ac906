"""
Multi-objective learning path optimization
"""
from .budget import CancellationToken, SearchBudget
from .engine import MultiObjectiveOptimizer
from .models import (
    DEFAULT_WEIGHTS,
    LearningPath,
    LearningPathStep,
    Objective,
    ObjectiveWeightsConfig,
    OptimizationEvent,
    OptimizationResult,
    ParetoSolution,
    PathComparison,
    PathSimulation,
    ResolvedWeights,
    WeightsLevel,
)
from .scalarization import ScalarizationMethod

__all__ = [
    "CancellationToken",
    "SearchBudget",
    "MultiObjectiveOptimizer",
    "DEFAULT_WEIGHTS",
    "LearningPath",
    "LearningPathStep",
    "Objective",
    "ObjectiveWeightsConfig",
    "OptimizationEvent",
    "OptimizationResult",
    "ParetoSolution",
    "PathComparison",
    "PathSimulation",
    "ResolvedWeights",
    "WeightsLevel",
    "ScalarizationMethod",
]
