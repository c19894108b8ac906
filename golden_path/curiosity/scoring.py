"""
Composite curiosity score (0-100)

From a lookback window of N signals over U unique topics:
    signal_count       = min(100, N / (expected_daily * lookback_days) * 100)
    breadth            = min(100, U / max(50, U) * 100)
    depth              = min(100, avg(top-5 topic counts) / 10 * 100)
    question_frequency = question_asking / N * 100
    exploration_rate   = voluntary_exploration / N * 100

overall = round(0.15*signal_count + 0.20*breadth + 0.25*depth
                + 0.20*question_frequency + 0.20*exploration_rate)
"""
from typing import List
from collections import Counter
import math

from golden_path.curiosity.models import CuriositySignal, CuriosityScore, CuriosityScoreComponents
from golden_path.schemas.signals import CuriositySignalType

TOPIC_CEILING = 50
DEPTH_TOP_TOPICS = 5
DEPTH_SATURATION = 10

WEIGHTS = {
    "signal_count": 0.15,
    "breadth": 0.20,
    "depth": 0.25,
    "question_frequency": 0.20,
    "exploration_rate": 0.20,
}


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round like a person would: 0.5 goes up"""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def compute_score(
    signals: List[CuriositySignal],
    expected_daily_signals: int = 10,
    lookback_days: int = 30,
) -> CuriosityScore:
    if not signals:
        return CuriosityScore(overall_score=0, components=CuriosityScoreComponents())

    total = len(signals)
    expected_total = expected_daily_signals * lookback_days
    signal_count = min(100.0, total / expected_total * 100)

    topic_counts = Counter(s.topic_id for s in signals)
    unique = len(topic_counts)
    breadth = min(100.0, unique / max(TOPIC_CEILING, unique) * 100)

    top = sorted(topic_counts.values(), reverse=True)[:DEPTH_TOP_TOPICS]
    avg_top = sum(top) / len(top)
    depth = min(100.0, avg_top / DEPTH_SATURATION * 100)

    questions = sum(1 for s in signals if s.signal_type == CuriositySignalType.QUESTION_ASKING)
    explorations = sum(1 for s in signals if s.signal_type == CuriositySignalType.VOLUNTARY_EXPLORATION)
    question_frequency = min(100.0, questions / total * 100)
    exploration_rate = min(100.0, explorations / total * 100)

    weighted = (
        signal_count * WEIGHTS["signal_count"]
        + breadth * WEIGHTS["breadth"]
        + depth * WEIGHTS["depth"]
        + question_frequency * WEIGHTS["question_frequency"]
        + exploration_rate * WEIGHTS["exploration_rate"]
    )
    overall = int(min(100, round_half_up(weighted)))

    return CuriosityScore(
        overall_score=overall,
        components=CuriosityScoreComponents(
            signal_count=round_half_up(signal_count, 2),
            breadth=round_half_up(breadth, 2),
            depth=round_half_up(depth, 2),
            question_frequency=round_half_up(question_frequency, 2),
            exploration_rate=round_half_up(exploration_rate, 2),
        ),
    )
