"""
Error taxonomy and the engine result type

Engine internals raise GoldenPathError subclasses. Public engine methods are
wrapped with ``engine_operation`` so callers always receive a Result carrying
either data or exactly one tagged failure.
"""
import functools
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Failure tags returned across the engine boundary"""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    NO_FEASIBLE_PATH = "NO_FEASIBLE_PATH"
    COMPUTATION_TIMEOUT = "COMPUTATION_TIMEOUT"
    INTERNAL = "INTERNAL"


class GoldenPathError(Exception):
    """Base class for engine failures"""
    code: ErrorCode = ErrorCode.INTERNAL

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInputError(GoldenPathError):
    code = ErrorCode.VALIDATION_ERROR


class NotFoundError(GoldenPathError):
    code = ErrorCode.NOT_FOUND


class NoFeasiblePathError(GoldenPathError):
    code = ErrorCode.NO_FEASIBLE_PATH


class ComputationTimeoutError(GoldenPathError):
    code = ErrorCode.COMPUTATION_TIMEOUT

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, partial: Any = None):
        super().__init__(message, details)
        self.partial = partial


_ERROR_CLASSES = {
    ErrorCode.VALIDATION_ERROR: InvalidInputError,
    ErrorCode.NOT_FOUND: NotFoundError,
    ErrorCode.NO_FEASIBLE_PATH: NoFeasiblePathError,
    ErrorCode.COMPUTATION_TIMEOUT: ComputationTimeoutError,
    ErrorCode.INTERNAL: GoldenPathError,
}


@dataclass
class EngineError:
    """A tagged failure"""
    code: ErrorCode
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class Result(Generic[T]):
    """Success payload or one tagged failure (optionally with partial data)"""
    data: Optional[T] = None
    error: Optional[EngineError] = None
    partial: Optional[Any] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        return cls(data=data)

    @classmethod
    def fail(
        cls,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        partial: Any = None,
    ) -> "Result[T]":
        return cls(error=EngineError(code=code, message=message, details=details or {}), partial=partial)

    def unwrap(self) -> T:
        """Return the data or raise the matching GoldenPathError"""
        if self.error is None:
            return self.data
        error_cls = _ERROR_CLASSES.get(self.error.code, GoldenPathError)
        if error_cls is ComputationTimeoutError:
            raise ComputationTimeoutError(self.error.message, self.error.details, partial=self.partial)
        raise error_cls(self.error.message, self.error.details)


def _validation_details(error: ValidationError) -> Dict[str, Any]:
    return {
        "errors": [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
            for e in error.errors()
        ]
    }


def engine_operation(name: str):
    """
    Wrap a public engine method so nothing raises across the boundary.

    The wrapped method may return a plain value (wrapped as success) or a
    Result. The owning engine's ``telemetry`` attribute, when set, receives
    per-operation counters.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            start = time.perf_counter()
            try:
                value = func(self, *args, **kwargs)
                result = value if isinstance(value, Result) else Result.ok(value)
            except ComputationTimeoutError as e:
                logger.warning(f"{name} exceeded its computation budget: {e.message}")
                result = Result.fail(e.code, e.message, e.details, partial=e.partial)
            except GoldenPathError as e:
                logger.info(f"{name} failed with {e.code.value}: {e.message}")
                result = Result.fail(e.code, e.message, e.details)
            except ValidationError as e:
                logger.info(f"{name} rejected invalid input: {e.error_count()} error(s)")
                result = Result.fail(ErrorCode.VALIDATION_ERROR, f"Invalid input for {name}", _validation_details(e))
            except Exception as e:
                logger.exception(f"{name} failed unexpectedly")
                result = Result.fail(ErrorCode.INTERNAL, f"{name} failed: {e}", {"error": str(e)})

            duration_ms = (time.perf_counter() - start) * 1000
            logger.debug(f"{name} completed in {duration_ms:.2f}ms success={result.success}")

            telemetry = getattr(self, "telemetry", None)
            if telemetry is not None:
                telemetry.track_operation(
                    name,
                    success=result.success,
                    error_code=result.error.code.value if result.error else None,
                    duration_ms=duration_ms,
                )
            return result
        return wrapper
    return decorator


def require_fields(**fields: Any):
    """Raise InvalidInputError naming every empty required field"""
    missing = [name for name, value in fields.items() if value is None or value == ""]
    if missing:
        raise InvalidInputError(f"Missing required field(s): {', '.join(missing)}", {"missing": missing})
