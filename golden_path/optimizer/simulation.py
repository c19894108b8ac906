"""
Step-by-step path simulation

Replays a path against the learner's current BKT state:

- Mastery: expected BKT update per content step (correct and incorrect
  branches averaged by predicted performance), carried forward per competency
- Engagement: starts high, rises on a domain switch (novelty), decays
  otherwise, then blends toward difficulty/mastery fit:
      e = clamp(0.7 * e + 0.3 * (1 - |difficulty - p_known|), 0.1, 1)
- Fatigue: logistic in consecutive study minutes,
      fatigue = sigmoid((consecutive - 60) / 20)
  where a domain switch relieves 10 minutes and a break resets to zero
"""
from typing import Callable, Dict, List, Optional
from datetime import datetime, timedelta
import math

from golden_path.adaptive.bkt import BayesianKnowledgeTracer, BKTParameters
from golden_path.adaptive.decision_gate import sigmoid
from golden_path.adaptive.fatigue import FatigueDetector, FatigueRecommendation
from golden_path.curiosity.alignment import curiosity_alignment
from golden_path.curiosity.models import CuriosityProfile
from golden_path.optimizer.models import LearningPath, PathSimulation, SimulationPoint

ParamsResolver = Callable[[str, str], BKTParameters]


class PathSimulator:
    """
    Projects mastery, engagement and fatigue along a learning path
    """

    SWITCH_ENGAGEMENT_BOOST = 0.15
    ENGAGEMENT_DECAY = 0.97
    ENGAGEMENT_FLOOR = 0.1
    SWITCH_RELIEF_MINUTES = 10.0
    FATIGUE_MIDPOINT_MINUTES = 60.0
    FATIGUE_SCALE_MINUTES = 20.0

    # Risk thresholds; fatigue here is on a 0-1 scale
    TAKE_BREAK_THRESHOLD = FatigueDetector.threshold_for(FatigueRecommendation.TAKE_BREAK) / 100
    LOW_ENGAGEMENT = 0.3
    DIFFICULTY_JUMP = 0.3
    LONG_PATH_MINUTES = 120.0

    def __init__(
        self,
        tracer: BayesianKnowledgeTracer,
        initial_engagement: float = 0.85,
        daily_minutes: float = 45.0,
    ):
        self.tracer = tracer
        self.initial_engagement = initial_engagement
        self.daily_minutes = daily_minutes

    def fatigue(self, consecutive_minutes: float) -> float:
        return sigmoid((consecutive_minutes - self.FATIGUE_MIDPOINT_MINUTES) / self.FATIGUE_SCALE_MINUTES)

    def simulate(
        self,
        path: LearningPath,
        resolve_params: ParamsResolver,
        curiosity_profile: Optional[CuriosityProfile] = None,
        now: Optional[datetime] = None,
    ) -> PathSimulation:
        """
        Args:
            path: Path to replay
            resolve_params: (competency_id, domain) -> BKT parameters to start from
            curiosity_profile: Learner interests for the curiosity objective
            now: Reference time for the projected completion date

        Returns:
            Trajectory, objective vector and risk factors
        """
        now = now or datetime.utcnow()
        params: Dict[str, BKTParameters] = {}
        trajectory: List[SimulationPoint] = []
        risks: List[str] = []

        engagement = self.initial_engagement
        consecutive = 0.0
        cumulative = 0.0
        previous_domain: Optional[str] = None
        previous_difficulty: Optional[float] = None

        engagements: List[float] = []
        fatigues: List[float] = []
        alignments: List[float] = []
        total_gain = 0.0

        for index, step in enumerate(path.steps):
            cumulative += step.duration_minutes

            if step.is_break:
                consecutive = 0.0
                trajectory.append(SimulationPoint(
                    step_index=index,
                    content_id=step.content_id,
                    competency_id=step.competency_id,
                    is_break=True,
                    p_known_before=0.0,
                    p_known_after=0.0,
                    mastery_gain=0.0,
                    engagement=engagement,
                    fatigue=self.fatigue(consecutive),
                    consecutive_minutes=consecutive,
                    cumulative_minutes=cumulative,
                ))
                continue

            state = params.get(step.competency_id)
            if state is None:
                state = resolve_params(step.competency_id, step.domain).copy()
                params[step.competency_id] = state

            p_before = state.p_known
            p_after = self.tracer.expected_update(state)
            state.p_known = p_after
            gain = p_after - p_before
            total_gain += gain

            switched = previous_domain is not None and step.domain != previous_domain
            if switched:
                engagement = min(1.0, engagement + self.SWITCH_ENGAGEMENT_BOOST)
                consecutive = max(0.0, consecutive - self.SWITCH_RELIEF_MINUTES)
            else:
                engagement *= self.ENGAGEMENT_DECAY
            engagement = 0.7 * engagement + 0.3 * (1 - abs(step.difficulty - p_before))
            engagement = max(self.ENGAGEMENT_FLOOR, min(1.0, engagement))

            consecutive += step.duration_minutes
            fatigue = self.fatigue(consecutive)

            if fatigue > self.TAKE_BREAK_THRESHOLD:
                risks.append(f"Step {index} ({step.content_id}): projected fatigue {fatigue:.2f} exceeds take_break threshold")
            if engagement < self.LOW_ENGAGEMENT:
                risks.append(f"Step {index} ({step.content_id}): engagement drops to {engagement:.2f}")
            if previous_difficulty is not None and step.difficulty - previous_difficulty > self.DIFFICULTY_JUMP:
                risks.append(
                    f"Step {index} ({step.content_id}): difficulty jumps {step.difficulty - previous_difficulty:.2f}"
                )

            engagements.append(engagement)
            fatigues.append(fatigue)
            alignments.append(curiosity_alignment(step.tags, step.domain, curiosity_profile))

            trajectory.append(SimulationPoint(
                step_index=index,
                content_id=step.content_id,
                competency_id=step.competency_id,
                is_break=False,
                p_known_before=p_before,
                p_known_after=p_after,
                mastery_gain=gain,
                engagement=engagement,
                fatigue=fatigue,
                consecutive_minutes=consecutive,
                cumulative_minutes=cumulative,
            ))
            previous_domain = step.domain
            previous_difficulty = step.difficulty

        total_minutes = path.total_minutes
        if total_minutes > self.LONG_PATH_MINUTES:
            risks.append(f"Total time {total_minutes:.0f} min exceeds {self.LONG_PATH_MINUTES:.0f} min")

        objectives = self._objectives(path, total_gain, engagements, fatigues, alignments)
        days = math.ceil(total_minutes / self.daily_minutes) if self.daily_minutes > 0 else 0

        return PathSimulation(
            path_id=path.id,
            trajectory=trajectory,
            objectives=objectives,
            risk_factors=risks,
            total_minutes=total_minutes,
            total_mastery_gain=total_gain,
            projected_completion=now + timedelta(days=days),
        )

    @staticmethod
    def _objectives(
        path: LearningPath,
        total_gain: float,
        engagements: List[float],
        fatigues: List[float],
        alignments: List[float],
    ) -> Dict[str, float]:
        steps = len(engagements)
        active = path.active_minutes
        domains = len(path.domains)
        return {
            "mastery": total_gain,
            "engagement": sum(engagements) / steps if steps else 0.0,
            "efficiency": total_gain / active if active > 0 else 0.0,
            "curiosity": sum(alignments) / steps if steps else 0.0,
            "well_being": 1.0 - (sum(fatigues) / steps) if steps else 1.0,
            "breadth": float(domains),
            "depth": steps / domains if domains else 0.0,
        }


def annotate(path: LearningPath, simulation: PathSimulation):
    """Copy per-step projections onto the path's steps"""
    cumulative = 0.0
    for step, point in zip(path.steps, simulation.trajectory):
        cumulative += point.mastery_gain
        step.predicted_mastery_gain = round(point.mastery_gain, 4)
        step.predicted_engagement = round(point.engagement, 4)
        step.cumulative_mastery = round(cumulative, 4)
    path.objectives = dict(simulation.objectives)
