"""
Emerging-interest detection via signal acceleration

Per topic:
    recent_rate     = signals in the last 3 days / 3
    historical_rate = signals in days 4-6 / 3
    acceleration    = recent_rate / max(historical_rate, 0.1)

A topic is emerging when acceleration > 2.0. A topic with no signals in
either window has acceleration 0 and is never flagged.
"""
from typing import Dict, List
from datetime import datetime, timedelta
from collections import defaultdict
import logging

from golden_path.curiosity.models import CuriositySignal, EmergingInterest

logger = logging.getLogger(__name__)

HISTORICAL_RATE_FLOOR = 0.1
TREND_DAYS = 7
CONFIDENCE_SATURATION = 10


def acceleration(recent_count: int, historical_count: int, recent_days: int, historical_days: int) -> float:
    recent_rate = recent_count / recent_days
    historical_rate = historical_count / historical_days
    return recent_rate / max(historical_rate, HISTORICAL_RATE_FLOOR)


def daily_trend(signals: List[CuriositySignal], now: datetime, days: int = TREND_DAYS) -> List[int]:
    """Signal counts per trailing day, oldest first"""
    trend = []
    for d in range(days - 1, -1, -1):
        day_start = now - timedelta(days=d + 1)
        day_end = now - timedelta(days=d)
        trend.append(sum(1 for s in signals if day_start <= s.recorded_at < day_end))
    return trend


def detect_emerging(
    signals: List[CuriositySignal],
    now: datetime,
    threshold: float = 2.0,
    recent_days: int = 3,
    historical_days: int = 3,
) -> List[EmergingInterest]:
    """
    Flag topics whose recent signal rate is accelerating

    Args:
        signals: Learner signals from the lookback window
        now: Reference time
        threshold: Acceleration that must be exceeded
        recent_days: Length of the recent window
        historical_days: Length of the window before it

    Returns:
        Emerging interests sorted by acceleration descending
    """
    week_ago = now - timedelta(days=TREND_DAYS)
    if not any(s.recorded_at >= week_ago for s in signals):
        return []

    recent_cutoff = now - timedelta(days=recent_days)
    historical_start = now - timedelta(days=recent_days + historical_days)

    by_topic: Dict[str, List[CuriositySignal]] = defaultdict(list)
    for s in signals:
        by_topic[s.topic_id].append(s)

    emerging: List[EmergingInterest] = []
    for topic_id in sorted(by_topic):
        topic_signals = sorted(by_topic[topic_id], key=lambda s: (s.recorded_at, s.id))

        recent_count = sum(1 for s in topic_signals if s.recorded_at >= recent_cutoff)
        historical_count = sum(
            1 for s in topic_signals if historical_start <= s.recorded_at < recent_cutoff
        )
        accel = acceleration(recent_count, historical_count, recent_days, historical_days)
        if accel <= threshold:
            continue

        week_count = sum(1 for s in topic_signals if s.recorded_at >= week_ago)
        latest = topic_signals[-1]
        emerging.append(
            EmergingInterest(
                topic_id=topic_id,
                topic_name=latest.topic_name,
                domain=latest.domain,
                acceleration=round(accel, 2),
                signal_trend=daily_trend(topic_signals, now),
                confidence=round(min(1.0, week_count / CONFIDENCE_SATURATION), 3),
                first_seen_at=topic_signals[0].recorded_at,
                detected_at=now,
            )
        )

    emerging.sort(key=lambda e: (-e.acceleration, e.topic_id))
    if emerging:
        logger.debug(f"Detected {len(emerging)} emerging interests")
    return emerging
