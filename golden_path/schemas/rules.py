from typing import Annotated, List, Optional, Union, Literal
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field, model_validator


class RuleScope(str, Enum):
    GLOBAL = "global"
    DOMAIN = "domain"
    COMPETENCY = "competency"


# Narrower scope wins priority ties
SCOPE_SPECIFICITY = {
    RuleScope.GLOBAL: 0,
    RuleScope.DOMAIN: 1,
    RuleScope.COMPETENCY: 2,
}


class RuleSignal(str, Enum):
    """Every SignalType plus the derived learner metrics"""
    ACCURACY = "accuracy"
    RESPONSE_TIME = "response_time"
    ENGAGEMENT = "engagement"
    HINT_USAGE = "hint_usage"
    SKIP_RATE = "skip_rate"
    RETRY_COUNT = "retry_count"
    TIME_ON_TASK = "time_on_task"
    HELP_SEEKING = "help_seeking"
    ERROR_PATTERN = "error_pattern"
    MASTERY = "mastery"
    FATIGUE = "fatigue"
    SESSION_DURATION = "session_duration"
    STREAK = "streak"


class ConditionOperator(str, Enum):
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    EQ = "eq"
    NEQ = "neq"
    BETWEEN = "between"


class ConditionLogic(str, Enum):
    AND = "AND"
    OR = "OR"


class RuleCondition(BaseModel):
    signal: RuleSignal
    operator: ConditionOperator
    value: float
    secondary_value: Optional[float] = None

    @model_validator(mode="after")
    def _between_bounds(self) -> "RuleCondition":
        if self.operator == ConditionOperator.BETWEEN:
            if self.secondary_value is None:
                raise ValueError("'between' requires secondary_value")
            if self.secondary_value < self.value:
                raise ValueError("secondary_value must be >= value for 'between'")
        return self


# ==================== Actions ====================

class AdjustDifficultyAction(BaseModel):
    type: Literal["adjust_difficulty"] = "adjust_difficulty"
    delta: float = Field(..., ge=-1, le=1)


class SwitchCompetencyAction(BaseModel):
    type: Literal["switch_competency"] = "switch_competency"
    competency_id: Optional[str] = None


class InsertBreakAction(BaseModel):
    type: Literal["insert_break"] = "insert_break"
    duration_minutes: int = Field(5, gt=0)


class ProvideScaffoldingAction(BaseModel):
    type: Literal["provide_scaffolding"] = "provide_scaffolding"
    level: Literal["light", "moderate", "heavy"] = "moderate"


class EndSessionAction(BaseModel):
    type: Literal["end_session"] = "end_session"
    message: Optional[str] = None


class RecommendContentAction(BaseModel):
    type: Literal["recommend_content"] = "recommend_content"
    content_ids: List[str] = Field(..., min_length=1)


RuleAction = Annotated[
    Union[
        AdjustDifficultyAction,
        SwitchCompetencyAction,
        InsertBreakAction,
        ProvideScaffoldingAction,
        EndSessionAction,
        RecommendContentAction,
    ],
    Field(discriminator="type"),
]


# ==================== Rules ====================

class AdaptationRuleCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    scope: RuleScope = RuleScope.GLOBAL
    scope_id: Optional[str] = None
    priority: int = 0
    conditions: List[RuleCondition] = Field(default_factory=list)
    condition_logic: ConditionLogic = ConditionLogic.AND
    action: RuleAction
    is_active: bool = True

    @model_validator(mode="after")
    def _scope_id_required(self):
        if self.scope != RuleScope.GLOBAL and not self.scope_id:
            raise ValueError(f"scope_id is required for {self.scope.value} rules")
        return self


class AdaptationRuleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    scope: Optional[RuleScope] = None
    scope_id: Optional[str] = None
    priority: Optional[int] = None
    conditions: Optional[List[RuleCondition]] = None
    condition_logic: Optional[ConditionLogic] = None
    action: Optional[RuleAction] = None
    is_active: Optional[bool] = None


class AdaptationRule(AdaptationRuleCreate):
    id: str
    tenant_id: str
    created_at: datetime
    updated_at: datetime

    @property
    def specificity(self) -> int:
        return SCOPE_SPECIFICITY[self.scope]
