"""
Bayesian Knowledge Tracing (BKT)
Probabilistic model for tracking competency mastery from right/wrong observations

Standard BKT Parameters (tracked per competency):
- P(Known): Current probability the learner knows the competency
- P(Learn): Probability of learning per opportunity (transition)
- P(Guess): Probability of answering correctly when not knowing
- P(Slip): Probability of answering incorrectly when knowing

Evidence update:
P(K | correct)   = P(K)(1 - P(S)) / (P(K)(1 - P(S)) + (1 - P(K))P(G))
P(K | incorrect) = P(K)P(S) / (P(K)P(S) + (1 - P(K))(1 - P(G)))

Learning transition:
P(K') = P(K | obs) + (1 - P(K | obs)) * P(L)
"""
from typing import Dict, Tuple, Optional, List, Any
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

import numpy as np


class MasteryTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclass
class BKTParameters:
    """BKT parameters for one competency"""
    p_learn: float
    p_guess: float
    p_slip: float
    p_known: float

    def __post_init__(self):
        for name in ("p_learn", "p_guess", "p_slip", "p_known"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")

    def copy(self) -> "BKTParameters":
        return BKTParameters(self.p_learn, self.p_guess, self.p_slip, self.p_known)

    def to_dict(self) -> Dict[str, float]:
        return {
            "p_learn": self.p_learn,
            "p_guess": self.p_guess,
            "p_slip": self.p_slip,
            "p_known": self.p_known,
        }


@dataclass
class MasterySnapshot:
    """One entry of the bounded mastery history"""
    timestamp: datetime
    p_known: float
    was_correct: bool
    response_time_ms: Optional[float] = None


@dataclass
class BKTCompetencyState:
    """Mastery estimate for one competency"""
    competency_id: str
    domain: str
    params: BKTParameters
    observations: int = 0
    last_observation_at: Optional[datetime] = None
    mastery_history: List[MasterySnapshot] = field(default_factory=list)

    @property
    def p_known(self) -> float:
        return self.params.p_known

    def to_dict(self) -> Dict[str, Any]:
        return {
            "competency_id": self.competency_id,
            "domain": self.domain,
            "params": self.params.to_dict(),
            "observations": self.observations,
            "last_observation_at": self.last_observation_at.isoformat() if self.last_observation_at else None,
            "history_length": len(self.mastery_history),
        }


@dataclass
class MasteryEstimate:
    competency_id: str
    domain: str
    p_known: float
    confidence: float
    total_observations: int
    trend: MasteryTrend
    last_updated: Optional[datetime]


class BayesianKnowledgeTracer:
    """
    Bayesian Knowledge Tracing for mastery estimation
    """

    def __init__(
        self,
        history_limit: int = 500,
        trend_window: int = 10,
        trend_threshold: float = 0.01,
    ):
        """
        Args:
            history_limit: Maximum snapshots kept per competency
            trend_window: Number of recent snapshots used for the trend slope
            trend_threshold: Slope magnitude separating stable from moving
        """
        self.history_limit = history_limit
        self.trend_window = trend_window
        self.trend_threshold = trend_threshold

    @staticmethod
    def evidence_posterior(p_known: float, correct: bool, p_guess: float, p_slip: float) -> float:
        """
        P(Known | observation). Retains the prior when the denominator is zero.
        """
        if correct:
            numerator = p_known * (1 - p_slip)
            denominator = numerator + (1 - p_known) * p_guess
        else:
            numerator = p_known * p_slip
            denominator = numerator + (1 - p_known) * (1 - p_guess)

        return numerator / denominator if denominator > 0 else p_known

    def update_from_observation(
        self, params: BKTParameters, correct: bool
    ) -> Tuple[float, Dict]:
        """
        Update mastery probability given an observation (Bayesian update)

        Args:
            params: Current BKT parameters for the competency
            correct: Whether the observation was correct

        Returns:
            (New mastery probability, update details)
        """
        p_evidence = self.evidence_posterior(params.p_known, correct, params.p_guess, params.p_slip)

        # Learning transition only adds probability mass
        new_mastery = p_evidence + (1 - p_evidence) * params.p_learn
        new_mastery = max(0.0, min(1.0, new_mastery))

        update_details = {
            "prior_mastery": params.p_known,
            "posterior_mastery": p_evidence,
            "new_mastery_after_learning": new_mastery,
            "correct": correct,
            "learning_gain": new_mastery - params.p_known,
        }

        return new_mastery, update_details

    def apply_observation(
        self,
        state: BKTCompetencyState,
        correct: bool,
        timestamp: datetime,
        response_time_ms: Optional[float] = None,
    ) -> Dict:
        """Mutate a competency state with one observation and return the update details"""
        new_mastery, details = self.update_from_observation(state.params, correct)

        state.params.p_known = new_mastery
        state.mastery_history.append(
            MasterySnapshot(
                timestamp=timestamp,
                p_known=new_mastery,
                was_correct=correct,
                response_time_ms=response_time_ms,
            )
        )
        if len(state.mastery_history) > self.history_limit:
            del state.mastery_history[: len(state.mastery_history) - self.history_limit]

        state.observations += 1
        state.last_observation_at = timestamp
        return details

    @staticmethod
    def predict_performance(params: BKTParameters) -> float:
        """P(correct) on the next opportunity"""
        return params.p_known * (1 - params.p_slip) + (1 - params.p_known) * params.p_guess

    def expected_update(self, params: BKTParameters) -> float:
        """
        Expected P(Known) after one opportunity, averaging the correct and
        incorrect branches by their predicted probability.
        """
        p_correct = self.predict_performance(params)
        after_correct = self.evidence_posterior(params.p_known, True, params.p_guess, params.p_slip)
        after_incorrect = self.evidence_posterior(params.p_known, False, params.p_guess, params.p_slip)

        p_after_obs = p_correct * after_correct + (1 - p_correct) * after_incorrect
        new_mastery = p_after_obs + (1 - p_after_obs) * params.p_learn
        return max(0.0, min(1.0, new_mastery))

    def calculate_trend(self, history: List[MasterySnapshot]) -> MasteryTrend:
        """
        Least-squares slope over the last trend_window snapshots
        """
        if len(history) < 2:
            return MasteryTrend.STABLE

        recent = history[-self.trend_window:]
        x = np.arange(len(recent), dtype=float)
        y = np.array([s.p_known for s in recent], dtype=float)
        slope = float(np.polyfit(x, y, 1)[0])

        if slope > self.trend_threshold:
            return MasteryTrend.IMPROVING
        if slope < -self.trend_threshold:
            return MasteryTrend.DECLINING
        return MasteryTrend.STABLE

    @staticmethod
    def confidence(observations: int) -> float:
        """Grows with observation count with diminishing returns"""
        return 1.0 - 1.0 / (1.0 + observations)

    def estimate(self, state: BKTCompetencyState) -> MasteryEstimate:
        return MasteryEstimate(
            competency_id=state.competency_id,
            domain=state.domain,
            p_known=state.params.p_known,
            confidence=self.confidence(state.observations),
            total_observations=state.observations,
            trend=self.calculate_trend(state.mastery_history),
            last_updated=state.last_observation_at,
        )
