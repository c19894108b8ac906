"""
Unit tests for path simulation
"""

from datetime import timedelta

import pytest

from golden_path.adaptive.bkt import BayesianKnowledgeTracer, BKTParameters
from golden_path.adaptive.fatigue import FatigueDetector, FatigueRecommendation
from golden_path.optimizer.candidates import build_path
from golden_path.optimizer.models import LearningPath, LearningPathStep
from golden_path.optimizer.simulation import PathSimulator, annotate

from tests.conftest import FROZEN_NOW, make_step


def _resolve(competency_id, domain):
    return BKTParameters(p_learn=0.1, p_guess=0.2, p_slip=0.1, p_known=0.3)


@pytest.fixture
def tracer():
    return BayesianKnowledgeTracer()


@pytest.fixture
def simulator(tracer):
    return PathSimulator(tracer)


class TestTrajectory:
    """Tests for per-step projections"""

    def test_single_step(self, simulator, tracer):
        path = build_path([make_step("a", difficulty=0.3, minutes=15)])

        simulation = simulator.simulate(path, _resolve, now=FROZEN_NOW)

        expected_p = tracer.expected_update(_resolve("a", "math"))
        (point,) = simulation.trajectory
        assert point.p_known_before == 0.3
        assert point.p_known_after == pytest.approx(expected_p)
        assert point.engagement == pytest.approx(0.7 * 0.85 * 0.97 + 0.3)
        assert point.fatigue == pytest.approx(simulator.fatigue(15))
        assert simulation.objectives["mastery"] == pytest.approx(expected_p - 0.3)
        assert simulation.objectives["efficiency"] == pytest.approx((expected_p - 0.3) / 15)

    def test_mastery_carries_forward(self, simulator):
        path = build_path([make_step("a"), make_step("a2", competency_id="a")])

        first, second = simulator.simulate(path, _resolve).trajectory

        assert second.p_known_before == pytest.approx(first.p_known_after)
        assert second.p_known_after > first.p_known_after

    def test_resolver_params_not_mutated(self, simulator):
        shared = BKTParameters(0.1, 0.2, 0.1, 0.3)

        simulator.simulate(build_path([make_step("a")]), lambda c, d: shared)

        assert shared.p_known == 0.3

    def test_domain_switch_boosts_engagement(self, simulator):
        same = simulator.simulate(build_path([make_step("a"), make_step("b")]), _resolve)
        switched = simulator.simulate(build_path([make_step("a"), make_step("b", domain="art")]), _resolve)

        assert switched.trajectory[1].engagement > same.trajectory[1].engagement

    def test_fatigue_curve(self, simulator):
        assert simulator.fatigue(60) == pytest.approx(0.5)
        assert simulator.fatigue(100) > simulator.fatigue(20)


class TestObjectives:
    """Tests for the objective vector"""

    def test_breadth_and_depth(self, simulator):
        path = build_path([make_step("a"), make_step("b"), make_step("c", domain="art")])

        objectives = simulator.simulate(path, _resolve).objectives

        assert objectives["breadth"] == 2.0
        assert objectives["depth"] == 1.5

    def test_empty_path(self, simulator):
        objectives = simulator.simulate(LearningPath(id="p", strategy="custom", steps=[]), _resolve).objectives

        assert objectives["mastery"] == 0.0
        assert objectives["well_being"] == 1.0
        assert objectives["depth"] == 0.0

    def test_objectives_ignore_breaks(self, simulator):
        steps = [
            LearningPathStep.from_candidate(make_step("a", minutes=20)),
            LearningPathStep.rest(10),
            LearningPathStep.from_candidate(make_step("b", minutes=20)),
        ]
        path = LearningPath(id="p", strategy="custom", steps=steps)

        simulation = simulator.simulate(path, _resolve)

        assert simulation.objectives["efficiency"] == pytest.approx(simulation.total_mastery_gain / 40)
        assert simulation.trajectory[2].consecutive_minutes == 20
        assert simulation.total_minutes == 50

    def test_projected_completion(self, simulator):
        path = build_path([make_step(f"s{i}", minutes=30) for i in range(3)])

        simulation = simulator.simulate(path, _resolve, now=FROZEN_NOW)

        assert simulation.projected_completion == FROZEN_NOW + timedelta(days=2)


class TestRiskFactors:
    """Tests for risk flags"""

    def test_fatigue_risk(self, simulator):
        path = build_path([make_step("a", minutes=50), make_step("b", minutes=50)])

        risks = simulator.simulate(path, _resolve).risk_factors

        assert risks == ["Step 1 (b): projected fatigue 0.88 exceeds take_break threshold"]

    def test_break_prevents_fatigue_risk(self, simulator):
        steps = [
            LearningPathStep.from_candidate(make_step("a", minutes=50)),
            LearningPathStep.rest(15),
            LearningPathStep.from_candidate(make_step("b", minutes=50)),
        ]

        risks = simulator.simulate(LearningPath(id="p", strategy="custom", steps=steps), _resolve).risk_factors

        assert risks == []

    def test_threshold_follows_fatigue_ladder(self):
        ladder = FatigueDetector.threshold_for(FatigueRecommendation.TAKE_BREAK)

        assert PathSimulator.TAKE_BREAK_THRESHOLD == pytest.approx(ladder / 100)
        assert PathSimulator.TAKE_BREAK_THRESHOLD == pytest.approx(0.70)

    def test_difficulty_jump_risk(self, simulator):
        path = build_path([make_step("a", difficulty=0.1), make_step("b", difficulty=0.6)])

        risks = simulator.simulate(path, _resolve).risk_factors

        assert risks == ["Step 1 (b): difficulty jumps 0.50"]

    def test_long_path_risk(self, simulator):
        path = build_path([make_step(f"s{i}", minutes=30, domain=d) for i, d in enumerate("abcab")])

        risks = simulator.simulate(path, _resolve).risk_factors

        assert "Total time 150 min exceeds 120 min" in risks


class TestAnnotate:
    """Tests for copying projections onto the path"""

    def test_cumulative_mastery(self, simulator):
        path = build_path([make_step("a"), make_step("b")])
        simulation = simulator.simulate(path, _resolve)

        annotate(path, simulation)

        gains = [p.mastery_gain for p in simulation.trajectory]
        assert path.steps[1].cumulative_mastery == pytest.approx(sum(gains), abs=1e-4)
        assert path.objectives == simulation.objectives
