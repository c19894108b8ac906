"""
Unit tests for the in-memory store and content catalogue
"""

from datetime import timedelta

import pytest

from golden_path.adaptive.profile import AdaptationProfile, TenantAdaptationConfig
from golden_path.optimizer.models import ObjectiveWeightsConfig, OptimizationEvent, WeightsLevel
from golden_path.schemas.signals import CuriositySignalType
from golden_path.store import InMemoryContentCatalogue, InMemoryStateStore

from tests.conftest import FROZEN_NOW, make_curiosity_signal, make_signal, make_step


class TestProfiles:
    """Tests for profile persistence"""

    def test_missing_profile(self, store):
        assert store.get_profile("t", "l") is None

    def test_copies_on_read_and_write(self, store):
        profile = AdaptationProfile(tenant_id="t", learner_id="l")
        store.save_profile(profile)

        profile.current_difficulty = 0.9
        loaded = store.get_profile("t", "l")
        assert loaded.current_difficulty == 0.5

        loaded.session_count = 7
        assert store.get_profile("t", "l").session_count == 0

    def test_tenant_config_roundtrip(self, store):
        store.save_tenant_config(TenantAdaptationConfig(tenant_id="t", prior_p_known=0.4))

        assert store.get_tenant_config("t").prior_p_known == 0.4
        assert store.get_tenant_config("other") is None


class TestSessionSignals:
    """Tests for raw adaptation signal storage"""

    def test_session_filter_and_order(self, store):
        later = make_signal("accuracy", 1.0, FROZEN_NOW + timedelta(minutes=5), session_id="a")
        earlier = make_signal("accuracy", 0.0, FROZEN_NOW, session_id="a")
        other = make_signal("accuracy", 1.0, FROZEN_NOW, session_id="b")
        store.append_signals("t", "l", [later, earlier, other])

        session = store.get_session_signals("t", "l", "a")

        assert [s.value for s in session] == [0.0, 1.0]


class TestCuriositySignals:
    """Tests for curiosity signal queries"""

    @pytest.fixture
    def populated(self, store):
        store.append_curiosity_signal(make_curiosity_signal("a", learner_id="me", tenant_id="t"))
        store.append_curiosity_signal(make_curiosity_signal(
            "b", learner_id="peer", tenant_id="t", recorded_at=FROZEN_NOW - timedelta(hours=1),
        ))
        store.append_curiosity_signal(make_curiosity_signal(
            "c", learner_id="peer", tenant_id="t", domain="art",
            signal_type=CuriositySignalType.TOPIC_DEEP_DIVE,
        ))
        store.append_curiosity_signal(make_curiosity_signal(
            "old", learner_id="peer", tenant_id="t", recorded_at=FROZEN_NOW - timedelta(days=40),
        ))
        return store

    def test_learner_window(self, populated):
        signals = populated.list_curiosity_signals("t", "me", FROZEN_NOW - timedelta(days=30))

        assert [s.topic_id for s in signals] == ["a"]

    def test_peer_signals_newest_first(self, populated):
        peers = populated.list_peer_curiosity_signals("t", "me", FROZEN_NOW - timedelta(days=30), limit=10)

        assert [s.topic_id for s in peers] == ["c", "b"]

    def test_peer_filters(self, populated):
        since = FROZEN_NOW - timedelta(days=30)

        by_domain = populated.list_peer_curiosity_signals("t", "me", since, limit=10, domain="art")
        by_type = populated.list_peer_curiosity_signals(
            "t", "me", since, limit=10, signal_types=[CuriositySignalType.RETURN_VISIT]
        )

        assert [s.topic_id for s in by_domain] == ["c"]
        assert [s.topic_id for s in by_type] == ["b"]

    def test_peer_limit(self, populated):
        peers = populated.list_peer_curiosity_signals("t", "me", FROZEN_NOW - timedelta(days=30), limit=1)

        assert len(peers) == 1


class TestOptimizerRecords:
    """Tests for weights and optimization history"""

    def test_weights_keyed_by_level_and_owner(self, store):
        config = ObjectiveWeightsConfig("t", WeightsLevel.COHORT, "c1", {"mastery": 1.0})
        store.save_objective_weights(config)

        assert store.get_objective_weights("t", WeightsLevel.COHORT, "c1").weights == {"mastery": 1.0}
        assert store.get_objective_weights("t", WeightsLevel.LEARNER, "c1") is None

    def test_events_newest_first(self, store):
        for minutes in (0, 10, 5):
            store.append_optimization_event(OptimizationEvent(
                id=f"e{minutes}",
                tenant_id="t",
                learner_id="l",
                status="success",
                recommended_path_id="p",
                content_ids=[],
                objectives={},
                weights={},
                method="weighted_tchebycheff",
                front_size=1,
                candidates_evaluated=1,
                timestamp=FROZEN_NOW + timedelta(minutes=minutes),
            ))

        events = store.list_optimization_events("t", "l", limit=2)

        assert [e.id for e in events] == ["e10", "e5"]


class TestContentCatalogue:
    """Tests for the in-memory catalogue"""

    def test_list_and_filter(self):
        catalogue = InMemoryContentCatalogue({"t": [make_step("s1"), make_step("s2")]})
        catalogue.add_steps("t", [make_step("s3")])

        assert [s.id for s in catalogue.list_steps("t")] == ["s1", "s2", "s3"]
        assert [s.id for s in catalogue.list_steps("t", ["s2"])] == ["s2"]
        assert catalogue.list_steps("other") == []

    def test_returns_copies(self):
        catalogue = InMemoryContentCatalogue({"t": [make_step("s1")]})

        catalogue.list_steps("t")[0].tags.append("mutated")

        assert catalogue.list_steps("t")[0].tags == []
