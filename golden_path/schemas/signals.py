from typing import Optional
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator


def to_naive_utc(value: datetime) -> datetime:
    """Engines compare naive UTC datetimes"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class SignalType(str, Enum):
    ACCURACY = "accuracy"
    RESPONSE_TIME = "response_time"
    ENGAGEMENT = "engagement"
    HINT_USAGE = "hint_usage"
    SKIP_RATE = "skip_rate"
    RETRY_COUNT = "retry_count"
    TIME_ON_TASK = "time_on_task"
    HELP_SEEKING = "help_seeking"
    ERROR_PATTERN = "error_pattern"


# Signal kinds whose value is a probability/rate in [0, 1]
PROBABILITY_SIGNALS = {
    SignalType.ACCURACY,
    SignalType.ENGAGEMENT,
    SignalType.HINT_USAGE,
    SignalType.SKIP_RATE,
}


class SignalContext(BaseModel):
    competency_id: Optional[str] = None
    domain: Optional[str] = None
    content_id: Optional[str] = None
    session_id: Optional[str] = None
    difficulty: Optional[float] = Field(None, ge=0, le=1)


class AdaptationSignal(BaseModel):
    """
    One observed learner event.

    response_time is in milliseconds, time_on_task in minutes.
    """
    type: SignalType
    value: float = Field(..., allow_inf_nan=False)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    context: SignalContext = Field(default_factory=SignalContext)

    @field_validator("timestamp")
    @classmethod
    def _naive_timestamp(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def _value_range(self) -> "AdaptationSignal":
        if self.type in PROBABILITY_SIGNALS:
            if not 0.0 <= self.value <= 1.0:
                raise ValueError(f"{self.type.value} value must be within [0, 1]")
        elif self.value < 0:
            raise ValueError(f"{self.type.value} value must be non-negative")
        return self


class CuriositySignalType(str, Enum):
    VOLUNTARY_EXPLORATION = "voluntary_exploration"
    QUESTION_ASKING = "question_asking"
    TOPIC_DEEP_DIVE = "topic_deep_dive"
    RETURN_VISIT = "return_visit"
    CONTENT_SHARING = "content_sharing"
    TANGENTIAL_PURSUIT = "tangential_pursuit"
    DWELL_ANOMALY = "dwell_anomaly"


class CuriositySignalContext(BaseModel):
    session_id: str = Field(..., min_length=1)
    content_id: Optional[str] = None
    referring_topic_id: Optional[str] = None
    dwell_seconds: Optional[float] = Field(None, ge=0, allow_inf_nan=False)


class CuriositySignalInput(BaseModel):
    signal_type: CuriositySignalType
    topic_id: str = Field(..., min_length=1)
    topic_name: Optional[str] = None
    domain: str = "general"
    strength: Optional[float] = Field(None, allow_inf_nan=False, validate_default=True)
    context: CuriositySignalContext
    recorded_at: Optional[datetime] = None

    @field_validator("strength")
    @classmethod
    def _clamp_strength(cls, v: Optional[float]) -> float:
        if v is None:
            return 0.5
        return max(0.0, min(1.0, v))

    @field_validator("recorded_at")
    @classmethod
    def _naive_recorded_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else None
