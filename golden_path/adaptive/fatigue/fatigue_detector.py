"""
Session Fatigue Detection

Research alignment:
- Vigilance decrement: accuracy and speed degrade with time on task
- Help-seeking escalation as a marker of depleted cognitive resources
- Error bursts: clustered failures signal disengagement more than
  isolated slips

Components (each 0-100):
1. Accuracy decline: later accuracy below earlier accuracy
2. Response-time increase: later responses slower than earlier ones
3. Hint-usage increase: help requested more often as the session goes on
4. Session duration: saturating function of elapsed minutes
5. Error burstiness: runs of consecutive errors

Short sessions (2-3 observations of a kind) are compared against the
learner's EMA baseline instead of against the first half of the session.
"""
from typing import Dict, List, Optional, Tuple, Any
from dataclasses import dataclass, field
from enum import Enum
import statistics
import logging

from golden_path.adaptive.profile import EMAState
from golden_path.schemas.signals import AdaptationSignal, SignalType

logger = logging.getLogger(__name__)


class FatigueRecommendation(str, Enum):
    """Ordered ladder, mildest first"""
    CONTINUE = "continue"
    REDUCE_DIFFICULTY = "reduce_difficulty"
    SWITCH_TOPIC = "switch_topic"
    TAKE_BREAK = "take_break"
    END_SESSION = "end_session"

    @property
    def rung(self) -> int:
        return _LADDER.index(self)


_LADDER = [
    FatigueRecommendation.CONTINUE,
    FatigueRecommendation.REDUCE_DIFFICULTY,
    FatigueRecommendation.SWITCH_TOPIC,
    FatigueRecommendation.TAKE_BREAK,
    FatigueRecommendation.END_SESSION,
]


@dataclass
class FatigueComponents:
    accuracy_decline: float = 0.0
    response_time_increase: float = 0.0
    hint_usage_increase: float = 0.0
    session_duration: float = 0.0
    error_burstiness: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "accuracy_decline": self.accuracy_decline,
            "response_time_increase": self.response_time_increase,
            "hint_usage_increase": self.hint_usage_increase,
            "session_duration": self.session_duration,
            "error_burstiness": self.error_burstiness,
        }


@dataclass
class FatigueAssessment:
    """Per-session fatigue snapshot"""
    session_id: str
    overall: float  # 0-100
    components: FatigueComponents
    recommendation: FatigueRecommendation
    signal_count: int
    session_minutes: float
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "overall": self.overall,
            "components": self.components.to_dict(),
            "recommendation": self.recommendation.value,
            "signal_count": self.signal_count,
            "session_minutes": self.session_minutes,
        }


class FatigueDetector:
    """
    Scores fatigue for one session from its signals and the EMA baseline
    """

    WEIGHTS = {
        "accuracy_decline": 0.30,
        "response_time_increase": 0.25,
        "hint_usage_increase": 0.20,
        "session_duration": 0.15,
        "error_burstiness": 0.10,
    }

    # Strict lower bounds on the overall score, highest rung first
    THRESHOLDS = [
        (85.0, FatigueRecommendation.END_SESSION),
        (70.0, FatigueRecommendation.TAKE_BREAK),
        (50.0, FatigueRecommendation.SWITCH_TOPIC),
        (30.0, FatigueRecommendation.REDUCE_DIFFICULTY),
    ]

    # Accuracy below this counts as an error
    ERROR_THRESHOLD = 0.5
    # Runs at least this long weigh more in the burst frequency term
    LONG_BURST = 3
    LONG_BURST_WEIGHT = 1.5
    MAX_BURST_REFERENCE = 5

    def __init__(self, max_duration_minutes: float = 90.0):
        self.max_duration_minutes = max_duration_minutes

    @classmethod
    def threshold_for(cls, recommendation: FatigueRecommendation) -> float:
        return next(t for t, r in cls.THRESHOLDS if r == recommendation)

    # ==================== Components ====================

    @staticmethod
    def _halves(values: List[float]) -> Tuple[List[float], List[float]]:
        mid = len(values) // 2
        return values[:mid], values[mid:]

    def accuracy_decline(self, accuracies: List[float], baseline: EMAState) -> float:
        if len(accuracies) >= 4:
            first, second = self._halves(accuracies)
            decline = statistics.mean(first) - statistics.mean(second)
        elif len(accuracies) >= 2:
            decline = baseline.accuracy - statistics.mean(accuracies)
        else:
            return 0.0
        return max(0.0, min(100.0, decline / 0.5 * 100))

    def response_time_increase(self, response_times: List[float], baseline: EMAState) -> float:
        if len(response_times) >= 4:
            first, second = self._halves(response_times)
            reference = statistics.mean(first)
            current = statistics.mean(second)
        elif len(response_times) >= 2:
            reference = baseline.response_time
            current = statistics.mean(response_times)
        else:
            return 0.0

        if reference <= 0:
            return 0.0
        return max(0.0, min(100.0, (current / reference - 1) * 100))

    @staticmethod
    def _is_hint(signal: AdaptationSignal) -> bool:
        return signal.type in (SignalType.HINT_USAGE, SignalType.HELP_SEEKING) and signal.value > 0

    def hint_usage_increase(self, signals: List[AdaptationSignal], baseline: EMAState) -> float:
        flags = [1.0 if self._is_hint(s) else 0.0 for s in signals]
        if len(flags) >= 4:
            first, second = self._halves(flags)
            delta = statistics.mean(second) - statistics.mean(first)
        elif len(flags) >= 2:
            delta = statistics.mean(flags) - baseline.hint_usage
        else:
            return 0.0
        return max(0.0, min(100.0, delta / 0.5 * 100))

    def session_duration(self, minutes: float) -> float:
        if self.max_duration_minutes <= 0:
            return 100.0
        return max(0.0, min(100.0, minutes / self.max_duration_minutes * 100))

    def error_burstiness(self, accuracies: List[float]) -> Tuple[float, Dict]:
        """
        The longest error run (a single error counts) plus the share of
        observations inside runs of >= 2 errors. Runs of >= 3 count 1.5x in
        the frequency term so clustered failures outweigh scattered ones.
        """
        if len(accuracies) < 3:
            return 0.0, {"runs": [], "max_run": 0}

        runs: List[int] = []
        current = 0
        max_run = 0
        for value in accuracies:
            if value < self.ERROR_THRESHOLD:
                current += 1
                max_run = max(max_run, current)
            else:
                if current >= 2:
                    runs.append(current)
                current = 0
        if current >= 2:
            runs.append(current)

        if max_run == 0:
            return 0.0, {"runs": [], "max_run": 0}

        weighted_length = sum(
            r * (self.LONG_BURST_WEIGHT if r >= self.LONG_BURST else 1.0) for r in runs
        )
        n = len(accuracies)

        max_term = min(100.0, max_run / self.MAX_BURST_REFERENCE * 100)
        frequency_term = min(100.0, weighted_length / n * 200)
        score = 0.6 * max_term + 0.4 * frequency_term
        return min(100.0, score), {"runs": runs, "max_run": max_run}

    # ==================== Assessment ====================

    def recommend(self, overall: float) -> FatigueRecommendation:
        """Monotone in the score: a higher score never maps to a lower rung"""
        for threshold, recommendation in self.THRESHOLDS:
            if overall > threshold:
                return recommendation
        return FatigueRecommendation.CONTINUE

    def assess(
        self,
        session_id: str,
        signals: List[AdaptationSignal],
        baseline: EMAState,
    ) -> FatigueAssessment:
        """
        Assess fatigue for one session

        Args:
            session_id: Session being assessed
            signals: The session's signals (any order)
            baseline: Learner EMA state used for short sessions

        Returns:
            FatigueAssessment with components and recommendation
        """
        ordered = sorted(signals, key=lambda s: s.timestamp)

        accuracies = [s.value for s in ordered if s.type == SignalType.ACCURACY]
        response_times = [s.value for s in ordered if s.type == SignalType.RESPONSE_TIME]

        if len(ordered) >= 2:
            span = ordered[-1].timestamp - ordered[0].timestamp
            minutes = span.total_seconds() / 60.0
        else:
            minutes = 0.0

        burstiness, burst_details = self.error_burstiness(accuracies)
        components = FatigueComponents(
            accuracy_decline=self.accuracy_decline(accuracies, baseline),
            response_time_increase=self.response_time_increase(response_times, baseline),
            hint_usage_increase=self.hint_usage_increase(ordered, baseline),
            session_duration=self.session_duration(minutes),
            error_burstiness=burstiness,
        )

        overall = sum(
            getattr(components, name) * weight for name, weight in self.WEIGHTS.items()
        )
        overall = round(max(0.0, min(100.0, overall)), 2)
        recommendation = self.recommend(overall)

        if recommendation.rung >= FatigueRecommendation.TAKE_BREAK.rung:
            logger.info(f"Session {session_id} fatigue {overall:.1f} -> {recommendation.value}")

        return FatigueAssessment(
            session_id=session_id,
            overall=overall,
            components=components,
            recommendation=recommendation,
            signal_count=len(ordered),
            session_minutes=round(minutes, 2),
            details={
                "accuracy_observations": len(accuracies),
                "response_time_observations": len(response_times),
                "error_runs": burst_details["runs"],
                "max_error_run": burst_details["max_run"],
            },
        )

    def estimate_from_ema(self, ema: EMAState, total_minutes: float) -> float:
        """
        Rough fatigue level (0-100) from the learner's EMA state alone.
        Used for rule conditions, which have no session context.
        """
        accuracy_fatigue = max(0.0, min(100.0, (0.5 - ema.accuracy) * 200))
        hint_fatigue = max(0.0, min(100.0, ema.hint_usage * 100))
        skip_fatigue = max(0.0, min(100.0, ema.skip_rate * 100))
        duration_fatigue = self.session_duration(total_minutes)

        estimate = (
            accuracy_fatigue * self.WEIGHTS["accuracy_decline"]
            + hint_fatigue * self.WEIGHTS["hint_usage_increase"]
            + skip_fatigue * self.WEIGHTS["response_time_increase"]
            + duration_fatigue * self.WEIGHTS["session_duration"]
            + accuracy_fatigue * self.WEIGHTS["error_burstiness"]
        )
        return round(min(100.0, estimate), 2)
