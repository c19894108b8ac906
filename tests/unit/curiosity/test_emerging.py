"""
Unit tests for emerging-interest detection
"""

from datetime import timedelta

import pytest

from golden_path.curiosity.emerging import acceleration, daily_trend, detect_emerging

from tests.conftest import FROZEN_NOW, make_curiosity_signal


def _at(topic_id, days_ago, count=1):
    return [
        make_curiosity_signal(topic_id, recorded_at=FROZEN_NOW - timedelta(days=days_ago, hours=i + 1))
        for i in range(count)
    ]


class TestAcceleration:
    """Tests for the acceleration ratio"""

    def test_historical_floor(self):
        assert acceleration(4, 0, 3, 3) == pytest.approx((4 / 3) / 0.1)

    def test_no_signals(self):
        assert acceleration(0, 0, 3, 3) == 0.0

    def test_ratio(self):
        assert acceleration(2, 1, 3, 3) == pytest.approx(2.0)


class TestDetectEmerging:
    """Tests for emerging-interest flags"""

    def test_accelerating_topic_flagged(self):
        signals = _at("rockets", 0, count=4) + _at("steady", 0, count=3) + _at("steady", 4, count=3)

        emerging = detect_emerging(signals, FROZEN_NOW)

        assert [e.topic_id for e in emerging] == ["rockets"]
        assert emerging[0].acceleration == pytest.approx(13.33)
        assert emerging[0].confidence == 0.4
        assert emerging[0].signal_trend == [0, 0, 0, 0, 0, 0, 4]
        assert emerging[0].detected_at == FROZEN_NOW

    def test_threshold_is_strict(self):
        signals = _at("edge", 1, count=2) + _at("edge", 4, count=1)

        assert detect_emerging(signals, FROZEN_NOW) == []

    def test_only_historical_signals(self):
        assert detect_emerging(_at("faded", 5, count=3), FROZEN_NOW) == []

    def test_nothing_in_last_week(self):
        assert detect_emerging(_at("old", 12, count=5), FROZEN_NOW) == []

    def test_sorted_by_acceleration(self):
        signals = _at("fast", 0, count=6) + _at("slow", 0, count=3)

        emerging = detect_emerging(signals, FROZEN_NOW)

        assert [e.topic_id for e in emerging] == ["fast", "slow"]


class TestDailyTrend:
    """Tests for the 7-day trend"""

    def test_oldest_first(self):
        signals = _at("t", 6) + _at("t", 0, count=2)

        assert daily_trend(signals, FROZEN_NOW) == [1, 0, 0, 0, 0, 0, 2]
