"""
In-memory store and catalogue

Used by tests and for embedding the engines without a database. Records are
copied on the way in and out so engines always compute on snapshots.
"""
from datetime import datetime
from threading import Lock
from typing import Dict, List, Optional, Tuple
from collections import defaultdict
import copy
import logging

from golden_path.store.base import ContentCatalogue, StateStore

logger = logging.getLogger(__name__)


def _newest_first(records: list, key) -> list:
    indexed = list(enumerate(records))
    indexed.sort(key=lambda pair: (key(pair[1]), pair[0]), reverse=True)
    return [record for _, record in indexed]


class InMemoryStateStore(StateStore):
    """Thread-safe dict-backed StateStore"""

    def __init__(self):
        self._lock = Lock()
        self._profiles: Dict[Tuple[str, str], object] = {}
        self._signals: Dict[Tuple[str, str], list] = defaultdict(list)
        self._adaptation_events: Dict[Tuple[str, str], list] = defaultdict(list)
        self._rules: Dict[str, Dict[str, object]] = defaultdict(dict)
        self._tenant_configs: Dict[str, object] = {}
        self._curiosity_signals: Dict[str, list] = defaultdict(list)
        self._curiosity_profiles: Dict[Tuple[str, str], object] = {}
        self._weights: Dict[Tuple[str, str, str], object] = {}
        self._optimization_events: Dict[Tuple[str, str], list] = defaultdict(list)

    # ==================== Adaptation ====================

    def get_profile(self, tenant_id, learner_id):
        with self._lock:
            return copy.deepcopy(self._profiles.get((tenant_id, learner_id)))

    def save_profile(self, profile):
        with self._lock:
            self._profiles[(profile.tenant_id, profile.learner_id)] = copy.deepcopy(profile)

    def append_signals(self, tenant_id, learner_id, signals):
        with self._lock:
            self._signals[(tenant_id, learner_id)].extend(copy.deepcopy(signals))

    def get_session_signals(self, tenant_id, learner_id, session_id):
        with self._lock:
            matching = [
                s for s in self._signals.get((tenant_id, learner_id), [])
                if s.context.session_id == session_id
            ]
            return copy.deepcopy(sorted(matching, key=lambda s: s.timestamp))

    def append_adaptation_event(self, event):
        with self._lock:
            self._adaptation_events[(event.tenant_id, event.learner_id)].append(copy.deepcopy(event))

    def list_adaptation_events(self, tenant_id, learner_id, since=None, limit=None):
        with self._lock:
            events = list(self._adaptation_events.get((tenant_id, learner_id), []))
        if since is not None:
            events = [e for e in events if e.timestamp >= since]
        events = _newest_first(events, key=lambda e: e.timestamp)
        if limit is not None:
            events = events[:limit]
        return copy.deepcopy(events)

    def list_rules(self, tenant_id):
        with self._lock:
            return copy.deepcopy(list(self._rules.get(tenant_id, {}).values()))

    def get_rule(self, tenant_id, rule_id):
        with self._lock:
            return copy.deepcopy(self._rules.get(tenant_id, {}).get(rule_id))

    def save_rule(self, rule):
        with self._lock:
            self._rules[rule.tenant_id][rule.id] = copy.deepcopy(rule)

    def get_tenant_config(self, tenant_id):
        with self._lock:
            return copy.deepcopy(self._tenant_configs.get(tenant_id))

    def save_tenant_config(self, config):
        with self._lock:
            self._tenant_configs[config.tenant_id] = copy.deepcopy(config)

    # ==================== Curiosity ====================

    def append_curiosity_signal(self, signal):
        # Signals are frozen dataclasses; no copy needed
        with self._lock:
            self._curiosity_signals[signal.tenant_id].append(signal)

    def list_curiosity_signals(self, tenant_id, learner_id, since):
        with self._lock:
            signals = [
                s for s in self._curiosity_signals.get(tenant_id, [])
                if s.learner_id == learner_id and s.recorded_at >= since
            ]
        return sorted(signals, key=lambda s: (s.recorded_at, s.id))

    def list_peer_curiosity_signals(
        self,
        tenant_id,
        exclude_learner_id,
        since,
        limit,
        domain=None,
        signal_types=None,
    ):
        with self._lock:
            signals = [
                s for s in self._curiosity_signals.get(tenant_id, [])
                if s.learner_id != exclude_learner_id and s.recorded_at >= since
            ]
        if domain is not None:
            signals = [s for s in signals if s.domain == domain]
        if signal_types:
            allowed = set(signal_types)
            signals = [s for s in signals if s.signal_type in allowed]
        signals.sort(key=lambda s: (s.recorded_at, s.id), reverse=True)
        return signals[:limit]

    def get_curiosity_profile(self, tenant_id, learner_id):
        with self._lock:
            return copy.deepcopy(self._curiosity_profiles.get((tenant_id, learner_id)))

    def save_curiosity_profile(self, profile):
        with self._lock:
            self._curiosity_profiles[(profile.tenant_id, profile.learner_id)] = copy.deepcopy(profile)

    # ==================== Optimizer ====================

    def get_objective_weights(self, tenant_id, level, owner_id):
        with self._lock:
            return copy.deepcopy(self._weights.get((tenant_id, level.value, owner_id)))

    def save_objective_weights(self, config):
        with self._lock:
            key = (config.tenant_id, config.level.value, config.owner_id)
            self._weights[key] = copy.deepcopy(config)

    def append_optimization_event(self, event):
        with self._lock:
            self._optimization_events[(event.tenant_id, event.learner_id)].append(copy.deepcopy(event))

    def list_optimization_events(self, tenant_id, learner_id, limit=None):
        with self._lock:
            events = list(self._optimization_events.get((tenant_id, learner_id), []))
        events = _newest_first(events, key=lambda e: e.timestamp)
        if limit is not None:
            events = events[:limit]
        return copy.deepcopy(events)


class InMemoryContentCatalogue(ContentCatalogue):
    """Per-tenant list of candidate steps"""

    def __init__(self, steps: Optional[Dict[str, List]] = None):
        self._lock = Lock()
        self._steps: Dict[str, List] = defaultdict(list)
        for tenant_id, tenant_steps in (steps or {}).items():
            self._steps[tenant_id] = list(tenant_steps)

    def add_steps(self, tenant_id: str, steps: List):
        with self._lock:
            self._steps[tenant_id].extend(steps)

    def list_steps(self, tenant_id, content_ids=None):
        with self._lock:
            steps = list(self._steps.get(tenant_id, []))
        if content_ids is not None:
            wanted = set(content_ids)
            steps = [s for s in steps if s.id in wanted or s.resolved_content_id in wanted]
        return [s.model_copy(deep=True) for s in steps]
