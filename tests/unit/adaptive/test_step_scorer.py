"""
Unit tests for decision gate step scoring
"""

import pytest

from golden_path.adaptive.bkt import BKTCompetencyState, BKTParameters
from golden_path.adaptive.decision_gate import StepScorer, sigmoid
from golden_path.adaptive.profile import AdaptationProfile
from golden_path.adaptive.zpd import ZPDRegulator, ZPDZone

from tests.conftest import make_step

PRIOR = 0.3


def _state(competency_id, p_known):
    return BKTCompetencyState(competency_id, "math", BKTParameters(0.1, 0.2, 0.1, p_known))


@pytest.fixture
def scorer():
    return StepScorer(ZPDRegulator())


@pytest.fixture
def profile():
    return AdaptationProfile(
        tenant_id="t",
        learner_id="l",
        competency_states={
            "in-zone": _state("in-zone", 0.6),
            "mastered": _state("mastered", 0.97),
            "weak": _state("weak", 0.2),
        },
    )


class TestComponents:
    """Tests for the individual score components"""

    def test_mastery_gain_in_zone(self, scorer):
        assert scorer.mastery_gain(0.6) == pytest.approx(0.35 / 0.55)

    def test_mastery_gain_penalised_outside_zone(self, scorer):
        assert scorer.mastery_gain(0.2) == pytest.approx(0.3)
        assert scorer.mastery_gain(0.97) == 0.0

    def test_engagement_probability(self, profile):
        assert StepScorer.engagement_probability(profile, 0.5) == pytest.approx(sigmoid(1.0))
        assert StepScorer.engagement_probability(profile, 1.0) == pytest.approx(0.5)

    def test_prerequisite_coverage(self, scorer, profile):
        step = make_step("next", prerequisites=["in-zone", "mastered"])

        assert scorer.prerequisite_coverage(step, profile, PRIOR) == 0.5
        assert scorer.prerequisite_coverage(make_step("free"), profile, PRIOR) == 1.0


class TestRanking:
    """Tests for the composite ranking"""

    def test_in_zone_competency_ranks_first(self, scorer, profile):
        steps = [make_step("mastered"), make_step("weak"), make_step("in-zone")]

        ranked = scorer.score_steps(steps, profile, PRIOR)

        assert [s.step.id for s in ranked] == ["in-zone", "weak", "mastered"]
        assert ranked[0].zone == ZPDZone.ZPD
        assert ranked[-1].zone == ZPDZone.MASTERED

    def test_time_efficiency_relative_to_shortest(self, scorer, profile):
        ranked = scorer.score_steps(
            [make_step("a", "in-zone", minutes=10), make_step("b", "in-zone", minutes=20)], profile, PRIOR,
        )

        by_id = {s.step.id: s for s in ranked}
        assert by_id["a"].components.time_efficiency == 1.0
        assert by_id["b"].components.time_efficiency == 0.5
        assert ranked[0].step.id == "a"

    def test_score_is_weighted_sum(self, scorer, profile):
        scored = scorer.score_steps([make_step("in-zone")], profile, PRIOR)[0]

        expected = sum(
            getattr(scored.components, name) * weight for name, weight in StepScorer.DEFAULT_WEIGHTS.items()
        )
        assert scored.score == pytest.approx(expected, abs=1e-4)

    def test_neutral_curiosity_without_profile(self, scorer, profile):
        scored = scorer.score_steps([make_step("in-zone", tags=["fractions"])], profile, PRIOR)[0]

        assert scored.components.curiosity_alignment == 0.5

    def test_equal_scores_order_by_id(self, scorer, profile):
        ranked = scorer.score_steps([make_step("b", "in-zone"), make_step("a", "in-zone")], profile, PRIOR)

        assert ranked[0].score == ranked[1].score
        assert [s.step.id for s in ranked] == ["a", "b"]

    def test_unseen_competency_uses_prior(self, scorer, profile):
        scored = scorer.score_steps([make_step("new")], profile, PRIOR)[0]

        assert scored.p_known == PRIOR
        assert scored.zone == ZPDZone.BEYOND_REACH

    def test_empty_candidates(self, scorer, profile):
        assert scorer.score_steps([], profile, PRIOR) == []

    def test_to_dict(self, scorer, profile):
        data = scorer.score_steps([make_step("in-zone")], profile, PRIOR)[0].to_dict()

        assert data["step_id"] == "in-zone"
        assert data["zone"] == "zpd"
        assert "in-zone is zpd" in data["reasoning"]
