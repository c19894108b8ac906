"""
Multi-objective optimizer records
"""
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from golden_path.schemas.paths import CandidateStep


class Objective(str, Enum):
    MASTERY = "mastery"
    ENGAGEMENT = "engagement"
    EFFICIENCY = "efficiency"
    CURIOSITY = "curiosity"
    WELL_BEING = "well_being"
    BREADTH = "breadth"
    DEPTH = "depth"


# Fixed column order for objective vectors
OBJECTIVE_KEYS = [o.value for o in Objective]

DEFAULT_WEIGHTS = {
    "mastery": 0.25,
    "engagement": 0.20,
    "efficiency": 0.15,
    "curiosity": 0.15,
    "well_being": 0.10,
    "breadth": 0.08,
    "depth": 0.07,
}


class WeightsLevel(str, Enum):
    LEARNER = "learner"
    COHORT = "cohort"
    INSTITUTION = "institution"
    DEFAULT = "default"


def normalize_weights(weights: Dict[str, float]) -> Dict[str, float]:
    """Merge with defaults and scale to sum 1; an all-zero vector falls back to the defaults"""
    merged = {k: float(weights.get(k, DEFAULT_WEIGHTS[k])) for k in OBJECTIVE_KEYS}
    if any(v < 0 for v in merged.values()):
        raise ValueError("objective weights must be non-negative")
    total = sum(merged.values())
    if total <= 0:
        merged = dict(DEFAULT_WEIGHTS)
        total = sum(merged.values())
    return {k: v / total for k, v in merged.items()}


@dataclass
class ObjectiveWeightsConfig:
    tenant_id: str
    level: WeightsLevel
    owner_id: str
    weights: Dict[str, float]
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class ResolvedWeights:
    weights: Dict[str, float]
    source: WeightsLevel


@dataclass
class LearningPathStep:
    """One content item, or a break, within a path"""
    step_id: str
    content_id: str
    competency_id: str
    domain: str
    difficulty: float
    duration_minutes: float
    tags: List[str] = field(default_factory=list)
    is_break: bool = False
    predicted_mastery_gain: float = 0.0
    predicted_engagement: float = 0.0
    cumulative_mastery: float = 0.0

    @classmethod
    def from_candidate(cls, step: CandidateStep) -> "LearningPathStep":
        return cls(
            step_id=step.id,
            content_id=step.resolved_content_id,
            competency_id=step.competency_id,
            domain=step.domain,
            difficulty=step.difficulty,
            duration_minutes=step.estimated_duration_minutes,
            tags=list(step.tags),
        )

    @classmethod
    def rest(cls, minutes: float) -> "LearningPathStep":
        return cls(
            step_id="break",
            content_id="break",
            competency_id="",
            domain="",
            difficulty=0.0,
            duration_minutes=minutes,
            is_break=True,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_id": self.step_id,
            "content_id": self.content_id,
            "competency_id": self.competency_id,
            "domain": self.domain,
            "difficulty": self.difficulty,
            "duration_minutes": self.duration_minutes,
            "is_break": self.is_break,
            "predicted_mastery_gain": self.predicted_mastery_gain,
            "predicted_engagement": self.predicted_engagement,
            "cumulative_mastery": self.cumulative_mastery,
        }


@dataclass
class LearningPath:
    id: str
    strategy: str
    steps: List[LearningPathStep]
    objectives: Dict[str, float] = field(default_factory=dict)

    @property
    def content_steps(self) -> List[LearningPathStep]:
        return [s for s in self.steps if not s.is_break]

    @property
    def content_ids(self) -> List[str]:
        return [s.content_id for s in self.content_steps]

    @property
    def total_minutes(self) -> float:
        return sum(s.duration_minutes for s in self.steps)

    @property
    def active_minutes(self) -> float:
        return sum(s.duration_minutes for s in self.content_steps)

    @property
    def domains(self) -> List[str]:
        seen: List[str] = []
        for s in self.content_steps:
            if s.domain not in seen:
                seen.append(s.domain)
        return seen

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "strategy": self.strategy,
            "steps": [s.to_dict() for s in self.steps],
            "objectives": self.objectives,
            "total_minutes": self.total_minutes,
        }


@dataclass
class ParetoSolution:
    path: LearningPath
    objectives: Dict[str, float]
    normalized: Dict[str, float]
    rank: int = 0
    crowding_distance: float = 0.0
    scalarized_score: Optional[float] = None


@dataclass
class OptimizationResult:
    recommended: ParetoSolution
    alternatives: List[ParetoSolution]
    pareto_front: List[ParetoSolution]
    weights: Dict[str, float]
    weights_source: WeightsLevel
    method: str
    candidates_evaluated: int
    budget_exhausted: bool = False
    computation_ms: float = 0.0


@dataclass
class SimulationPoint:
    step_index: int
    content_id: str
    competency_id: str
    is_break: bool
    p_known_before: float
    p_known_after: float
    mastery_gain: float
    engagement: float
    fatigue: float
    consecutive_minutes: float
    cumulative_minutes: float


@dataclass
class PathSimulation:
    path_id: str
    trajectory: List[SimulationPoint]
    objectives: Dict[str, float]
    risk_factors: List[str]
    total_minutes: float
    total_mastery_gain: float
    projected_completion: datetime


@dataclass
class PathComparison:
    path_a_id: str
    path_b_id: str
    objectives_a: Dict[str, float]
    objectives_b: Dict[str, float]
    winners: Dict[str, str]  # objective -> "a" | "b" | "tie"
    recommended: str  # "a" | "b"
    weighted_score_a: float
    weighted_score_b: float
    trade_off_summary: str
    reasoning: str


@dataclass
class OptimizationEvent:
    """Audit record of one optimize_path call"""
    id: str
    tenant_id: str
    learner_id: str
    status: str  # "success" | "timeout"
    recommended_path_id: Optional[str]
    content_ids: List[str]
    objectives: Dict[str, float]
    weights: Dict[str, float]
    method: str
    front_size: int
    candidates_evaluated: int
    timestamp: datetime = field(default_factory=datetime.utcnow)
