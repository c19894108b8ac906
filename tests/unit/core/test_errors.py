"""
Unit tests for the engine error boundary

Tests cover:
- Result construction and unwrap
- engine_operation mapping of exceptions to error codes
- Telemetry counters at the boundary
- require_fields
"""

import pytest
from pydantic import BaseModel, Field

from golden_path.core.errors import (
    ComputationTimeoutError,
    ErrorCode,
    GoldenPathError,
    InvalidInputError,
    NoFeasiblePathError,
    NotFoundError,
    Result,
    engine_operation,
    require_fields,
)
from golden_path.core.telemetry import EngineTelemetry


class _Payload(BaseModel):
    size: int = Field(..., gt=0)


class _Engine:
    def __init__(self, telemetry=None):
        self.telemetry = telemetry

    @engine_operation("succeed")
    def succeed(self, value):
        return value

    @engine_operation("missing")
    def missing(self):
        raise NotFoundError("nothing here", {"id": "x"})

    @engine_operation("invalid_model")
    def invalid_model(self):
        return _Payload(size=-1)

    @engine_operation("timeout")
    def timeout(self):
        raise ComputationTimeoutError("too slow", {"reason": "step_budget"}, partial={"best": 1})

    @engine_operation("boom")
    def boom(self):
        raise RuntimeError("kaboom")

    @engine_operation("passthrough")
    def passthrough(self):
        return Result.fail(ErrorCode.NO_FEASIBLE_PATH, "none")


class TestResult:
    """Tests for the Result container"""

    def test_ok(self):
        result = Result.ok(5)

        assert result.success is True
        assert result.data == 5
        assert result.unwrap() == 5

    def test_fail_unwrap_raises_matching_error(self):
        result = Result.fail(ErrorCode.NOT_FOUND, "gone", {"id": "a"})

        assert result.success is False
        with pytest.raises(NotFoundError) as exc:
            result.unwrap()
        assert exc.value.details == {"id": "a"}

    def test_timeout_unwrap_carries_partial(self):
        result = Result.fail(ErrorCode.COMPUTATION_TIMEOUT, "slow", partial=[1, 2])

        with pytest.raises(ComputationTimeoutError) as exc:
            result.unwrap()
        assert exc.value.partial == [1, 2]

    def test_error_to_dict(self):
        result = Result.fail(ErrorCode.VALIDATION_ERROR, "bad", {"field": "x"})

        assert result.error.to_dict() == {
            "code": "VALIDATION_ERROR",
            "message": "bad",
            "details": {"field": "x"},
        }


class TestEngineOperation:
    """Tests for the engine boundary decorator"""

    @pytest.fixture
    def telemetry(self):
        return EngineTelemetry()

    @pytest.fixture
    def engine(self, telemetry):
        return _Engine(telemetry)

    def test_plain_value_wrapped(self, engine):
        result = engine.succeed(3)

        assert result.success
        assert result.data == 3

    def test_domain_error_mapped(self, engine):
        result = engine.missing()

        assert result.error.code == ErrorCode.NOT_FOUND
        assert result.error.details == {"id": "x"}

    def test_validation_error_mapped(self, engine):
        result = engine.invalid_model()

        assert result.error.code == ErrorCode.VALIDATION_ERROR
        assert result.error.details["errors"][0]["loc"] == ["size"]

    def test_timeout_keeps_partial(self, engine):
        result = engine.timeout()

        assert result.error.code == ErrorCode.COMPUTATION_TIMEOUT
        assert result.partial == {"best": 1}

    def test_unexpected_error_is_internal(self, engine):
        result = engine.boom()

        assert result.error.code == ErrorCode.INTERNAL
        assert "kaboom" in result.error.message

    def test_result_returned_as_is(self, engine):
        result = engine.passthrough()

        assert result.error.code == ErrorCode.NO_FEASIBLE_PATH

    def test_telemetry_counts(self, engine, telemetry):
        engine.succeed(1)
        engine.missing()
        engine.boom()

        metrics = telemetry.get_metrics()
        assert metrics["operations_total"] == 3
        assert metrics["failures_total"] == 2
        assert metrics["operations"]["succeed"] == 1
        assert metrics["failures"] == {"NOT_FOUND": 1, "INTERNAL": 1}

    def test_without_telemetry(self):
        assert _Engine().succeed("x").data == "x"


class TestRequireFields:
    """Tests for required-field validation"""

    def test_all_present(self):
        require_fields(tenant_id="t", learner_id="l")

    def test_missing_fields_listed(self):
        with pytest.raises(InvalidInputError) as exc:
            require_fields(tenant_id="", learner_id=None, domain="math")

        assert exc.value.details["missing"] == ["tenant_id", "learner_id"]
        assert exc.value.code == ErrorCode.VALIDATION_ERROR

    def test_error_hierarchy(self):
        assert issubclass(NoFeasiblePathError, GoldenPathError)
        assert NoFeasiblePathError.code == ErrorCode.NO_FEASIBLE_PATH
