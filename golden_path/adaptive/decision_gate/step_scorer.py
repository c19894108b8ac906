"""
Decision gate: composite scoring of candidate next steps

score = w1*mastery_gain + w2*engagement_probability + w3*time_efficiency
      + w4*prerequisite_coverage + w5*curiosity_alignment

- mastery_gain: remaining distance to the ZPD upper bound, scaled to the
  band; competencies outside the ZPD are penalised
- engagement_probability: logistic in EMA engagement, EMA hint usage and
  how well the step difficulty matches the calibrated difficulty
- time_efficiency: shortest candidate duration / this duration
- prerequisite_coverage: share of prerequisites already mastered
- curiosity_alignment: overlap with the learner's curiosity profile

Ties: higher prerequisite coverage first, then the smaller difficulty jump.
"""
from typing import Dict, List, Optional
from dataclasses import dataclass
import math
import logging

from golden_path.adaptive.profile import AdaptationProfile
from golden_path.adaptive.zpd import ZPDRegulator, ZPDZone
from golden_path.curiosity.alignment import curiosity_alignment
from golden_path.curiosity.models import CuriosityProfile
from golden_path.schemas.paths import CandidateStep

logger = logging.getLogger(__name__)


def sigmoid(x: float) -> float:
    return 1.0 / (1.0 + math.exp(-x))


@dataclass
class StepScoreComponents:
    mastery_gain: float
    engagement_probability: float
    time_efficiency: float
    prerequisite_coverage: float
    curiosity_alignment: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "mastery_gain": self.mastery_gain,
            "engagement_probability": self.engagement_probability,
            "time_efficiency": self.time_efficiency,
            "prerequisite_coverage": self.prerequisite_coverage,
            "curiosity_alignment": self.curiosity_alignment,
        }


@dataclass
class ScoredStep:
    step: CandidateStep
    score: float
    components: StepScoreComponents
    p_known: float
    zone: ZPDZone
    difficulty_jump: float
    reasoning: str

    def to_dict(self) -> Dict:
        return {
            "step_id": self.step.id,
            "competency_id": self.step.competency_id,
            "score": self.score,
            "components": self.components.to_dict(),
            "p_known": self.p_known,
            "zone": self.zone.value,
            "difficulty_jump": self.difficulty_jump,
            "reasoning": self.reasoning,
        }


class StepScorer:
    """
    Ranks candidate steps for one learner
    """

    DEFAULT_WEIGHTS = {
        "mastery_gain": 0.30,
        "engagement_probability": 0.25,
        "time_efficiency": 0.20,
        "prerequisite_coverage": 0.15,
        "curiosity_alignment": 0.10,
    }

    def __init__(
        self,
        zpd: ZPDRegulator,
        weights: Optional[Dict[str, float]] = None,
        off_zone_penalty: float = 0.3,
    ):
        self.zpd = zpd
        self.weights = weights or dict(self.DEFAULT_WEIGHTS)
        self.off_zone_penalty = off_zone_penalty

    def _p_known(self, profile: AdaptationProfile, competency_id: str, prior: float) -> float:
        state = profile.competency_states.get(competency_id)
        return state.params.p_known if state else prior

    def mastery_gain(self, p_known: float) -> float:
        band = self.zpd.upper_threshold - self.zpd.lower_threshold
        gain = max(0.0, min(1.0, (self.zpd.upper_threshold - p_known) / band))
        if self.zpd.classify(p_known) != ZPDZone.ZPD:
            gain *= self.off_zone_penalty
        return gain

    @staticmethod
    def engagement_probability(profile: AdaptationProfile, difficulty: float) -> float:
        difficulty_match = 1.0 - abs(difficulty - profile.current_difficulty)
        x = (
            4.0 * (profile.ema.engagement - 0.5)
            - 3.0 * profile.ema.hint_usage
            + 2.0 * (difficulty_match - 0.5)
        )
        return sigmoid(x)

    def prerequisite_coverage(self, step: CandidateStep, profile: AdaptationProfile, prior: float) -> float:
        if not step.prerequisites:
            return 1.0
        mastered = sum(
            1 for p in step.prerequisites
            if self._p_known(profile, p, prior) >= self.zpd.upper_threshold
        )
        return mastered / len(step.prerequisites)

    @staticmethod
    def _reasoning(step: CandidateStep, p_known: float, zone: ZPDZone, components: StepScoreComponents) -> str:
        parts = [f"{step.competency_id} is {zone.value.replace('_', ' ')} (mastery {p_known:.2f})"]
        if components.engagement_probability >= 0.6:
            parts.append("likely to stay engaged")
        elif components.engagement_probability < 0.4:
            parts.append("engagement risk")
        if components.prerequisite_coverage < 1.0:
            parts.append(f"{components.prerequisite_coverage:.0%} of prerequisites mastered")
        if components.curiosity_alignment > 0.5:
            parts.append("matches current interests")
        return "; ".join(parts)

    def score_steps(
        self,
        candidates: List[CandidateStep],
        profile: AdaptationProfile,
        prior_p_known: float,
        curiosity_profile: Optional[CuriosityProfile] = None,
    ) -> List[ScoredStep]:
        """
        Score and rank candidate steps

        Args:
            candidates: Steps to rank
            profile: Learner adaptation profile
            prior_p_known: Mastery assumed for unseen competencies
            curiosity_profile: Optional interest profile for alignment

        Returns:
            ScoredStep list, best first
        """
        if not candidates:
            return []

        min_duration = min(c.estimated_duration_minutes for c in candidates)
        scored = []

        for step in candidates:
            p_known = self._p_known(profile, step.competency_id, prior_p_known)
            zone = self.zpd.classify(p_known)

            components = StepScoreComponents(
                mastery_gain=self.mastery_gain(p_known),
                engagement_probability=self.engagement_probability(profile, step.difficulty),
                time_efficiency=min_duration / step.estimated_duration_minutes,
                prerequisite_coverage=self.prerequisite_coverage(step, profile, prior_p_known),
                curiosity_alignment=curiosity_alignment(step.tags, step.domain, curiosity_profile),
            )
            score = sum(getattr(components, name) * w for name, w in self.weights.items())

            scored.append(
                ScoredStep(
                    step=step,
                    score=round(score, 4),
                    components=components,
                    p_known=p_known,
                    zone=zone,
                    difficulty_jump=abs(step.difficulty - profile.current_difficulty),
                    reasoning=self._reasoning(step, p_known, zone, components),
                )
            )

        scored.sort(
            key=lambda s: (-s.score, -s.components.prerequisite_coverage, s.difficulty_jump, s.step.id)
        )
        return scored
