"""
Zone of Proximal Development (ZPD) Regulator
Classifies competencies by mastery and picks the content difficulty that
keeps the learner in the productive-struggle band

ZPD Theory:
- Too easy (mastered) → Boredom, no learning
- Too hard (beyond reach) → Frustration, anxiety
- Just right (ZPD) → Optimal learning

Optimal difficulty:
- Predicted success is a logistic function of (P(Known) - difficulty)
- The chosen difficulty is the grid level whose predicted success is
  closest to the target success rate (≈80%)
"""
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
from enum import Enum
import math
import statistics

from golden_path.adaptive.bkt import BKTCompetencyState


class ZPDZone(str, Enum):
    BEYOND_REACH = "beyond_reach"
    ZPD = "zpd"
    MASTERED = "mastered"


@dataclass
class ZPDCompetency:
    competency_id: str
    name: str
    p_known: float
    zone: ZPDZone
    recommended_actions: List[str] = field(default_factory=list)


@dataclass
class ZPDRange:
    """Derived zone summary for one domain"""
    domain: str
    lower_bound: float
    upper_bound: float
    optimal_difficulty: float
    predicted_success: float
    competencies: List[ZPDCompetency] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "lower_bound": self.lower_bound,
            "upper_bound": self.upper_bound,
            "optimal_difficulty": self.optimal_difficulty,
            "predicted_success": self.predicted_success,
            "competencies": [
                {
                    "competency_id": c.competency_id,
                    "p_known": c.p_known,
                    "zone": c.zone.value,
                    "recommended_actions": c.recommended_actions,
                }
                for c in self.competencies
            ],
        }


class ZPDRegulator:
    """
    Regulates content difficulty to keep learner in optimal zone
    """

    def __init__(
        self,
        lower_threshold: float = 0.4,
        upper_threshold: float = 0.95,
        target_success_rate: float = 0.8,
        success_curve_slope: float = 6.0,
        difficulty_min: float = 0.1,
        difficulty_max: float = 1.0,
        difficulty_step: float = 0.05,
    ):
        if not 0.0 <= lower_threshold < upper_threshold <= 1.0:
            raise ValueError("ZPD thresholds must satisfy 0 <= lower < upper <= 1")
        self.lower_threshold = lower_threshold
        self.upper_threshold = upper_threshold
        self.target_success_rate = target_success_rate
        self.success_curve_slope = success_curve_slope
        self.difficulty_min = difficulty_min
        self.difficulty_max = difficulty_max
        self.difficulty_step = difficulty_step

    def classify(self, p_known: float) -> ZPDZone:
        """Zone for a single mastery value"""
        if p_known < self.lower_threshold:
            return ZPDZone.BEYOND_REACH
        if p_known < self.upper_threshold:
            return ZPDZone.ZPD
        return ZPDZone.MASTERED

    def recommended_actions(self, p_known: float) -> List[str]:
        zone = self.classify(p_known)
        if zone == ZPDZone.MASTERED:
            return ["Use as scaffold for new topics", "Introduce extension challenges"]
        if zone == ZPDZone.BEYOND_REACH:
            return ["Build prerequisite knowledge first", "Provide heavy scaffolding if attempted"]

        band = self.upper_threshold - self.lower_threshold
        position = (p_known - self.lower_threshold) / band
        if position < 1 / 3:
            return ["Provide moderate scaffolding", "Use worked examples"]
        if position > 2 / 3:
            return ["Reduce scaffolding", "Introduce independent practice"]
        return ["Optimal challenge level - maintain", "Encourage productive struggle"]

    def predicted_success(self, p_known: float, difficulty: float) -> float:
        """Monotone in (p_known - difficulty)"""
        return 1.0 / (1.0 + math.exp(-self.success_curve_slope * (p_known - difficulty)))

    def difficulty_levels(self) -> List[float]:
        levels = []
        steps = int(round((self.difficulty_max - self.difficulty_min) / self.difficulty_step))
        for i in range(steps + 1):
            levels.append(round(self.difficulty_min + i * self.difficulty_step, 4))
        return levels

    def optimal_difficulty(self, p_known: float) -> float:
        """
        Difficulty level whose predicted success is closest to the target.
        Ties resolve to the harder level.
        """
        best_level = self.difficulty_min
        best_gap = float("inf")
        for level in self.difficulty_levels():
            gap = abs(self.predicted_success(p_known, level) - self.target_success_rate)
            if gap <= best_gap:
                best_gap = gap
                best_level = level
        return best_level

    def calculate_range(
        self,
        domain: str,
        states: List[BKTCompetencyState],
        prior_p_known: float,
    ) -> ZPDRange:
        """
        Classify every competency in the domain and derive the optimal difficulty.

        Args:
            domain: Domain to summarise
            states: Competency states belonging to the domain
            prior_p_known: Mastery assumed when the domain has no data

        Returns:
            ZPDRange with competencies sorted weakest first
        """
        ordered = sorted(states, key=lambda s: (s.params.p_known, s.competency_id))

        competencies = [
            ZPDCompetency(
                competency_id=s.competency_id,
                name=s.competency_id,
                p_known=s.params.p_known,
                zone=self.classify(s.params.p_known),
                recommended_actions=self.recommended_actions(s.params.p_known),
            )
            for s in ordered
        ]

        in_zone = [c.p_known for c in competencies if c.zone == ZPDZone.ZPD]
        if in_zone:
            reference = statistics.mean(in_zone)
        elif competencies:
            reference = statistics.mean(c.p_known for c in competencies)
        else:
            reference = prior_p_known

        optimal = self.optimal_difficulty(reference)

        return ZPDRange(
            domain=domain,
            lower_bound=self.lower_threshold,
            upper_bound=self.upper_threshold,
            optimal_difficulty=optimal,
            predicted_success=self.predicted_success(reference, optimal),
            competencies=competencies,
        )
