"""
Root pytest configuration and shared fixtures for all test tiers.

Engines are wired against the in-memory store and a frozen clock so every
test is deterministic and needs no external services.
"""

import os

# Must be set before Settings is first instantiated
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("GOLDEN_PATH_OPTIMIZER_TIME_BUDGET_SECONDS", "30")
# Refreshes run through refresh_queue.drain() unless a test starts the worker
os.environ.setdefault("GOLDEN_PATH_CURIOSITY_REFRESH_AUTO_START", "false")

import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytest

from golden_path.adaptive import AdaptationEngine
from golden_path.core.config import Settings
from golden_path.core.telemetry import EngineTelemetry
from golden_path.curiosity import CuriosityEngine
from golden_path.curiosity.models import CuriositySignal
from golden_path.optimizer import MultiObjectiveOptimizer
from golden_path.schemas.paths import CandidateStep
from golden_path.schemas.signals import AdaptationSignal, CuriositySignalType, SignalContext
from golden_path.store import InMemoryContentCatalogue, InMemoryStateStore


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: unit tests for isolated components")
    config.addinivalue_line("markers", "integration: cross-engine integration tests")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Clock
# ============================================================================

FROZEN_NOW = datetime(2026, 3, 2, 12, 0, 0)


class FrozenClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime = FROZEN_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


# ============================================================================
# Engines
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def telemetry() -> EngineTelemetry:
    return EngineTelemetry()


@pytest.fixture
def catalogue() -> InMemoryContentCatalogue:
    return InMemoryContentCatalogue()


@pytest.fixture
def adaptation_engine(store, settings, clock, telemetry) -> AdaptationEngine:
    return AdaptationEngine(store, settings=settings, clock=clock, telemetry=telemetry)


@pytest.fixture
def curiosity_engine(store, settings, clock, telemetry) -> CuriosityEngine:
    engine = CuriosityEngine(store, settings=settings, clock=clock, telemetry=telemetry)
    yield engine
    engine.close()


@pytest.fixture
def optimizer(adaptation_engine, curiosity_engine, store, settings, catalogue, clock, telemetry) -> MultiObjectiveOptimizer:
    return MultiObjectiveOptimizer(
        adaptation_engine,
        curiosity_engine,
        store,
        settings=settings,
        catalogue=catalogue,
        clock=clock,
        telemetry=telemetry,
    )


# ============================================================================
# Data factories
# ============================================================================

def make_signal(
    signal_type: str,
    value: float,
    timestamp: datetime = FROZEN_NOW,
    competency_id: Optional[str] = None,
    domain: Optional[str] = None,
    session_id: Optional[str] = None,
) -> AdaptationSignal:
    return AdaptationSignal(
        type=signal_type,
        value=value,
        timestamp=timestamp,
        context=SignalContext(competency_id=competency_id, domain=domain, session_id=session_id),
    )


def make_curiosity_signal(
    topic_id: str,
    session_id: str = "s1",
    signal_type: CuriositySignalType = CuriositySignalType.RETURN_VISIT,
    learner_id: str = "learner-1",
    tenant_id: str = "tenant-1",
    domain: str = "science",
    recorded_at: datetime = FROZEN_NOW,
    content_id: Optional[str] = None,
    topic_name: Optional[str] = None,
) -> CuriositySignal:
    return CuriositySignal(
        id=str(uuid.uuid4()),
        tenant_id=tenant_id,
        learner_id=learner_id,
        signal_type=signal_type,
        topic_id=topic_id,
        topic_name=topic_name or topic_id,
        domain=domain,
        strength=0.5,
        session_id=session_id,
        recorded_at=recorded_at,
        content_id=content_id,
    )


def make_step(
    step_id: str,
    competency_id: Optional[str] = None,
    domain: str = "math",
    difficulty: float = 0.5,
    minutes: float = 15.0,
    prerequisites: Optional[List[str]] = None,
    tags: Optional[List[str]] = None,
) -> CandidateStep:
    return CandidateStep(
        id=step_id,
        competency_id=competency_id or step_id,
        domain=domain,
        difficulty=difficulty,
        estimated_duration_minutes=minutes,
        prerequisites=prerequisites or [],
        tags=tags or [],
    )


def curiosity_payload(topic_id: str, session_id: str = "s1", **overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "signal_type": "voluntary_exploration",
        "topic_id": topic_id,
        "domain": "science",
        "context": {"session_id": session_id},
    }
    payload.update(overrides)
    return payload
