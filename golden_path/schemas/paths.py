from typing import List, Optional, Dict
from pydantic import BaseModel, Field, model_validator


class CandidateStep(BaseModel):
    """Catalogue metadata for one candidate learning step"""
    id: str = Field(..., min_length=1)
    competency_id: str = Field(..., min_length=1)
    domain: str = "general"
    content_id: Optional[str] = None
    difficulty: float = Field(0.5, ge=0, le=1)
    estimated_duration_minutes: float = Field(15.0, gt=0)
    prerequisites: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    @property
    def resolved_content_id(self) -> str:
        return self.content_id or self.id


class DecisionGateInput(BaseModel):
    current_competency_id: Optional[str] = None
    current_domain: Optional[str] = None
    session_id: Optional[str] = None
    candidate_steps: List[CandidateStep] = Field(default_factory=list)


class OptimizationConstraints(BaseModel):
    """Hard constraints; any violating path is discarded before scoring"""
    mandatory_curriculum_ids: List[str] = Field(default_factory=list)
    max_daily_minutes: Optional[float] = Field(None, gt=0)
    prerequisite_ordering: bool = True
    max_difficulty_jump: Optional[float] = Field(None, ge=0, le=1)
    exclude_competency_ids: List[str] = Field(default_factory=list)
    preferred_domains: List[str] = Field(default_factory=list)
    avoided_domains: List[str] = Field(default_factory=list)
    min_break_minutes: Optional[float] = Field(None, gt=0)
    max_consecutive_minutes: Optional[float] = Field(None, gt=0)

    @model_validator(mode="after")
    def _domains_disjoint(self) -> "OptimizationConstraints":
        overlap = set(self.preferred_domains) & set(self.avoided_domains)
        if overlap:
            raise ValueError(f"domains both preferred and avoided: {sorted(overlap)}")
        return self


class ObjectiveWeightsInput(BaseModel):
    """Partial weight vector; missing objectives keep their current value"""
    mastery: Optional[float] = Field(None, ge=0)
    engagement: Optional[float] = Field(None, ge=0)
    efficiency: Optional[float] = Field(None, ge=0)
    curiosity: Optional[float] = Field(None, ge=0)
    well_being: Optional[float] = Field(None, ge=0)
    breadth: Optional[float] = Field(None, ge=0)
    depth: Optional[float] = Field(None, ge=0)

    def provided(self) -> Dict[str, float]:
        return {k: v for k, v in self.model_dump().items() if v is not None}
