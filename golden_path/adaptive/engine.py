"""
Adaptation Engine

Owns per-learner BKT state, EMA smoothing, ZPD, fatigue, rule evaluation
and the decision gate. Depends only on the state store.

Signal batch flow:
1. Validate every signal (any failure rejects the whole batch)
2. In timestamp order: EMA update, BKT update for accuracy signals,
   session counters
3. Recalibrate difficulty from EMA accuracy
4. Persist the profile, then the raw signals
"""
from typing import Any, Callable, Dict, List, Optional, Union
from dataclasses import dataclass, field
from datetime import datetime
import logging
import uuid

from pydantic import ValidationError

from golden_path.adaptive.bkt import BayesianKnowledgeTracer, BKTCompetencyState, BKTParameters, MasteryEstimate
from golden_path.adaptive.decision_gate import ScoredStep, StepScorer
from golden_path.adaptive.fatigue import FatigueAssessment, FatigueDetector
from golden_path.adaptive.profile import (
    AdaptationEvent,
    AdaptationProfile,
    TenantAdaptationConfig,
    adjust_difficulty,
)
from golden_path.adaptive.rules import RuleEvaluator, build_metrics, order_rules
from golden_path.adaptive.zpd import ZPDRange, ZPDRegulator
from golden_path.core.config import Settings
from golden_path.core.errors import InvalidInputError, NotFoundError, engine_operation, require_fields
from golden_path.core.telemetry import EngineTelemetry
from golden_path.curiosity.models import CuriosityProfile
from golden_path.schemas.paths import CandidateStep, DecisionGateInput
from golden_path.schemas.rules import (
    AdaptationRule,
    AdaptationRuleCreate,
    AdaptationRuleUpdate,
    RuleScope,
)
from golden_path.schemas.signals import AdaptationSignal, SignalType
from golden_path.store.base import StateStore

logger = logging.getLogger(__name__)

TRIGGER_SIGNAL_LIMIT = 20


@dataclass
class DecisionGateResult:
    """Either a fired rule with its action, or the default step ranking"""
    rule_fired: bool
    rule: Optional[AdaptationRule] = None
    action: Optional[Dict[str, Any]] = None
    event: Optional[AdaptationEvent] = None
    ranked_steps: List[ScoredStep] = field(default_factory=list)
    rule_details: Dict[str, Any] = field(default_factory=dict)

    @property
    def recommended_step(self) -> Optional[ScoredStep]:
        return self.ranked_steps[0] if self.ranked_steps else None


class AdaptationEngine:
    """
    Per-learner adaptive state and next-step decisions
    """

    def __init__(
        self,
        store: StateStore,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        telemetry: Optional[EngineTelemetry] = None,
    ):
        self.store = store
        self.settings = settings or Settings()
        self.clock = clock or datetime.utcnow
        self.telemetry = telemetry

        self.tracer = BayesianKnowledgeTracer(
            history_limit=self.settings.BKT_MASTERY_HISTORY_LIMIT,
            trend_window=self.settings.BKT_TREND_WINDOW,
            trend_threshold=self.settings.BKT_TREND_SLOPE_THRESHOLD,
        )
        self.fatigue_detector = FatigueDetector(
            max_duration_minutes=self.settings.FATIGUE_MAX_DURATION_MINUTES,
        )
        self.rule_evaluator = RuleEvaluator()

    # ==================== Tenant configuration ====================

    def tenant_config(self, tenant_id: str) -> TenantAdaptationConfig:
        return self.store.get_tenant_config(tenant_id) or TenantAdaptationConfig(tenant_id=tenant_id)

    def prior_p_known(self, tenant_id: str) -> float:
        config = self.tenant_config(tenant_id)
        if config.prior_p_known is not None:
            return config.prior_p_known
        return self.settings.BKT_PRIOR_P_KNOWN

    def zpd_regulator(self, tenant_id: str) -> ZPDRegulator:
        config = self.tenant_config(tenant_id)
        return ZPDRegulator(
            lower_threshold=_override(config.zpd_lower_threshold, self.settings.ZPD_LOWER_THRESHOLD),
            upper_threshold=_override(config.zpd_upper_threshold, self.settings.ZPD_UPPER_THRESHOLD),
            target_success_rate=_override(config.target_success_rate, self.settings.TARGET_SUCCESS_RATE),
            success_curve_slope=self.settings.SUCCESS_CURVE_SLOPE,
            difficulty_min=self.settings.DIFFICULTY_MIN,
            difficulty_max=self.settings.DIFFICULTY_MAX,
            difficulty_step=self.settings.DIFFICULTY_STEP,
        )

    def step_scorer(self, tenant_id: str) -> StepScorer:
        weights = {
            "mastery_gain": self.settings.STEP_WEIGHT_MASTERY_GAIN,
            "engagement_probability": self.settings.STEP_WEIGHT_ENGAGEMENT,
            "time_efficiency": self.settings.STEP_WEIGHT_TIME_EFFICIENCY,
            "prerequisite_coverage": self.settings.STEP_WEIGHT_PREREQUISITE_COVERAGE,
            "curiosity_alignment": self.settings.STEP_WEIGHT_CURIOSITY_ALIGNMENT,
        }
        return StepScorer(
            self.zpd_regulator(tenant_id),
            weights=weights,
            off_zone_penalty=self.settings.STEP_OFF_ZONE_PENALTY,
        )

    def new_competency_state(self, tenant_id: str, competency_id: str, domain: Optional[str]) -> BKTCompetencyState:
        """Fresh state seeded from the tenant prior"""
        config = self.tenant_config(tenant_id)
        params = BKTParameters(
            p_learn=_override(config.p_learn, self.settings.BKT_DEFAULT_P_LEARN),
            p_guess=_override(config.p_guess, self.settings.BKT_DEFAULT_P_GUESS),
            p_slip=_override(config.p_slip, self.settings.BKT_DEFAULT_P_SLIP),
            p_known=self.prior_p_known(tenant_id),
        )
        return BKTCompetencyState(competency_id=competency_id, domain=domain or "general", params=params)

    def _new_profile(self, tenant_id: str, learner_id: str) -> AdaptationProfile:
        now = self.clock()
        return AdaptationProfile(
            tenant_id=tenant_id,
            learner_id=learner_id,
            current_difficulty=self.settings.DEFAULT_DIFFICULTY,
            target_success_rate=_override(
                self.tenant_config(tenant_id).target_success_rate, self.settings.TARGET_SUCCESS_RATE
            ),
            created_at=now,
            updated_at=now,
        )

    def _load_profile(self, tenant_id: str, learner_id: str) -> AdaptationProfile:
        """Stored profile, or an unsaved default one"""
        return self.store.get_profile(tenant_id, learner_id) or self._new_profile(tenant_id, learner_id)

    def _calibrated_difficulty(self, profile: AdaptationProfile) -> float:
        return adjust_difficulty(
            profile.current_difficulty,
            profile.ema.accuracy,
            success_low=self.settings.TARGET_SUCCESS_LOW,
            success_high=self.settings.TARGET_SUCCESS_HIGH,
            step=self.settings.DIFFICULTY_STEP,
            minimum=self.settings.DIFFICULTY_MIN,
            maximum=self.settings.DIFFICULTY_MAX,
        )

    @engine_operation("set_tenant_config")
    def set_tenant_config(self, config: TenantAdaptationConfig) -> TenantAdaptationConfig:
        require_fields(tenant_id=config.tenant_id)
        lower = _override(config.zpd_lower_threshold, self.settings.ZPD_LOWER_THRESHOLD)
        upper = _override(config.zpd_upper_threshold, self.settings.ZPD_UPPER_THRESHOLD)
        if not 0.0 <= lower < upper <= 1.0:
            raise InvalidInputError("ZPD thresholds must satisfy 0 <= lower < upper <= 1")
        for name in ("prior_p_known", "target_success_rate", "p_learn", "p_guess", "p_slip"):
            value = getattr(config, name)
            if value is not None and not 0.0 <= value <= 1.0:
                raise InvalidInputError(f"{name} must be within [0, 1]", {"field": name})
        self.store.save_tenant_config(config)
        return config

    # ==================== Profile and signals ====================

    @engine_operation("get_profile")
    def get_profile(self, tenant_id: str, learner_id: str, create: bool = True) -> AdaptationProfile:
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        profile = self.store.get_profile(tenant_id, learner_id)
        if profile is not None:
            return profile
        if not create:
            raise NotFoundError(f"No adaptation profile for learner {learner_id}")

        profile = self._new_profile(tenant_id, learner_id)
        self.store.save_profile(profile)
        logger.info(f"Created adaptation profile for {tenant_id}/{learner_id}")
        return profile

    @staticmethod
    def _validate_signals(signals: List[Union[AdaptationSignal, Dict[str, Any]]]) -> List[AdaptationSignal]:
        if not signals:
            raise InvalidInputError("Signal batch is empty")

        validated: List[AdaptationSignal] = []
        errors = []
        for index, raw in enumerate(signals):
            try:
                if isinstance(raw, AdaptationSignal):
                    validated.append(AdaptationSignal.model_validate(raw.model_dump()))
                else:
                    validated.append(AdaptationSignal.model_validate(raw))
            except ValidationError as e:
                errors.append({"index": index, "errors": [err.get("msg", "") for err in e.errors()]})

        if errors:
            raise InvalidInputError(f"{len(errors)} invalid signal(s) in batch", {"signals": errors})
        return validated

    @engine_operation("update_with_signals")
    def update_with_signals(
        self,
        tenant_id: str,
        learner_id: str,
        signals: List[Union[AdaptationSignal, Dict[str, Any]]],
    ) -> AdaptationProfile:
        """
        Apply a signal batch to the learner's profile

        Args:
            tenant_id: Tenant
            learner_id: Learner
            signals: Batch of signals (models or dicts); rejected wholesale if any is invalid

        Returns:
            The updated profile
        """
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        validated = self._validate_signals(signals)
        ordered = sorted(validated, key=lambda s: s.timestamp)

        profile = self._load_profile(tenant_id, learner_id)
        alpha = self.settings.EMA_ALPHA
        observations = 0

        for signal in ordered:
            profile.ema.apply(signal, alpha)

            competency_id = signal.context.competency_id
            if signal.type == SignalType.ACCURACY and competency_id:
                state = profile.competency_states.get(competency_id)
                if state is None:
                    state = self.new_competency_state(tenant_id, competency_id, signal.context.domain)
                    profile.competency_states[competency_id] = state
                self.tracer.apply_observation(state, signal.value >= 0.5, signal.timestamp)
                observations += 1

            session_id = signal.context.session_id
            if session_id and session_id != profile.last_session_id:
                profile.session_count += 1
                profile.last_session_id = session_id

            if signal.type == SignalType.TIME_ON_TASK:
                profile.total_time_minutes += signal.value

        profile.current_difficulty = self._calibrated_difficulty(profile)
        profile.updated_at = self.clock()

        self.store.save_profile(profile)
        self.store.append_signals(tenant_id, learner_id, ordered)

        logger.debug(
            f"Applied {len(ordered)} signals for {tenant_id}/{learner_id} "
            f"({observations} BKT observations, difficulty {profile.current_difficulty:.2f})"
        )
        return profile

    # ==================== Mastery and ZPD ====================

    @engine_operation("get_mastery_estimate")
    def get_mastery_estimate(self, tenant_id: str, learner_id: str, competency_id: str) -> MasteryEstimate:
        require_fields(tenant_id=tenant_id, learner_id=learner_id, competency_id=competency_id)
        profile = self._load_profile(tenant_id, learner_id)
        state = profile.competency_states.get(competency_id)
        if state is None:
            state = self.new_competency_state(tenant_id, competency_id, None)
        return self.tracer.estimate(state)

    @engine_operation("calculate_zpd")
    def calculate_zpd(self, tenant_id: str, learner_id: str, domain: str) -> ZPDRange:
        require_fields(tenant_id=tenant_id, learner_id=learner_id, domain=domain)
        profile = self._load_profile(tenant_id, learner_id)
        states = [s for s in profile.competency_states.values() if s.domain == domain]
        return self.zpd_regulator(tenant_id).calculate_range(domain, states, self.prior_p_known(tenant_id))

    @engine_operation("get_optimal_difficulty")
    def get_optimal_difficulty(self, tenant_id: str, learner_id: str, domain: Optional[str] = None) -> float:
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        profile = self._load_profile(tenant_id, learner_id)
        if domain:
            states = [s for s in profile.competency_states.values() if s.domain == domain]
            zpd_range = self.zpd_regulator(tenant_id).calculate_range(
                domain, states, self.prior_p_known(tenant_id)
            )
            return zpd_range.optimal_difficulty
        return self._calibrated_difficulty(profile)

    # ==================== Fatigue ====================

    @engine_operation("assess_fatigue")
    def assess_fatigue(self, tenant_id: str, learner_id: str, session_id: str) -> FatigueAssessment:
        require_fields(tenant_id=tenant_id, learner_id=learner_id, session_id=session_id)
        profile = self._load_profile(tenant_id, learner_id)
        signals = self.store.get_session_signals(tenant_id, learner_id, session_id)
        return self.fatigue_detector.assess(session_id, signals, profile.ema)

    # ==================== Decision gate ====================

    @engine_operation("score_next_steps")
    def score_next_steps(
        self,
        tenant_id: str,
        learner_id: str,
        candidates: List[Union[CandidateStep, Dict[str, Any]]],
        curiosity_profile: Optional[CuriosityProfile] = None,
    ) -> List[ScoredStep]:
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        steps = [c if isinstance(c, CandidateStep) else CandidateStep.model_validate(c) for c in candidates]
        profile = self._load_profile(tenant_id, learner_id)
        return self.step_scorer(tenant_id).score_steps(
            steps, profile, self.prior_p_known(tenant_id), curiosity_profile
        )

    @engine_operation("evaluate_decision_gate")
    def evaluate_decision_gate(
        self,
        tenant_id: str,
        learner_id: str,
        gate_input: Union[DecisionGateInput, Dict[str, Any]],
        curiosity_profile: Optional[CuriosityProfile] = None,
    ) -> DecisionGateResult:
        """
        First firing rule wins; otherwise the default step ranking applies
        """
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        if isinstance(gate_input, dict):
            gate_input = DecisionGateInput.model_validate(gate_input)

        profile = self._load_profile(tenant_id, learner_id)
        fatigue = self.fatigue_detector.estimate_from_ema(profile.ema, profile.total_time_minutes)
        metrics = build_metrics(profile, fatigue)

        hit = self.rule_evaluator.first_firing(
            self.store.list_rules(tenant_id),
            metrics,
            competency_id=gate_input.current_competency_id,
            domain=gate_input.current_domain,
        )

        if hit is not None:
            rule, details = hit
            trigger_signals = []
            if gate_input.session_id:
                session = self.store.get_session_signals(tenant_id, learner_id, gate_input.session_id)
                trigger_signals = session[-TRIGGER_SIGNAL_LIMIT:]

            event = AdaptationEvent(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                learner_id=learner_id,
                rule_id=rule.id,
                action=rule.action.model_dump(),
                trigger_signals=trigger_signals,
                timestamp=self.clock(),
            )
            self.store.append_adaptation_event(event)
            logger.info(f"Rule '{rule.name}' fired for {tenant_id}/{learner_id}: {rule.action.type}")

            return DecisionGateResult(
                rule_fired=True,
                rule=rule,
                action=event.action,
                event=event,
                rule_details=details,
            )

        ranked = self.step_scorer(tenant_id).score_steps(
            gate_input.candidate_steps, profile, self.prior_p_known(tenant_id), curiosity_profile
        )
        return DecisionGateResult(rule_fired=False, ranked_steps=ranked)

    # ==================== Rules ====================

    @engine_operation("get_rules")
    def get_rules(
        self,
        tenant_id: str,
        scope: Optional[RuleScope] = None,
        is_active: Optional[bool] = None,
    ) -> List[AdaptationRule]:
        require_fields(tenant_id=tenant_id)
        rules = self.store.list_rules(tenant_id)
        if scope is not None:
            rules = [r for r in rules if r.scope == scope]
        if is_active is not None:
            rules = [r for r in rules if r.is_active == is_active]
        return order_rules(rules)

    @engine_operation("create_rule")
    def create_rule(
        self,
        tenant_id: str,
        rule: Union[AdaptationRuleCreate, Dict[str, Any]],
    ) -> AdaptationRule:
        require_fields(tenant_id=tenant_id)
        if isinstance(rule, dict):
            rule = AdaptationRuleCreate.model_validate(rule)

        now = self.clock()
        created = AdaptationRule.model_validate(
            {
                **rule.model_dump(),
                "id": str(uuid.uuid4()),
                "tenant_id": tenant_id,
                "created_at": now,
                "updated_at": now,
            }
        )
        self.store.save_rule(created)
        logger.info(f"Created rule '{created.name}' ({created.scope.value}) for tenant {tenant_id}")
        return created

    @engine_operation("update_rule")
    def update_rule(
        self,
        tenant_id: str,
        rule_id: str,
        updates: Union[AdaptationRuleUpdate, Dict[str, Any]],
    ) -> AdaptationRule:
        require_fields(tenant_id=tenant_id, rule_id=rule_id)
        if isinstance(updates, dict):
            updates = AdaptationRuleUpdate.model_validate(updates)

        existing = self.store.get_rule(tenant_id, rule_id)
        if existing is None:
            raise NotFoundError(f"Rule {rule_id} not found", {"rule_id": rule_id})

        merged = existing.model_dump()
        merged.update(updates.model_dump(exclude_unset=True))
        merged["updated_at"] = self.clock()

        updated = AdaptationRule.model_validate(merged)
        self.store.save_rule(updated)
        return updated

    @engine_operation("get_adaptation_history")
    def get_adaptation_history(
        self,
        tenant_id: str,
        learner_id: str,
        limit: int = 50,
        since: Optional[datetime] = None,
    ) -> List[AdaptationEvent]:
        require_fields(tenant_id=tenant_id, learner_id=learner_id)
        if limit <= 0:
            raise InvalidInputError("limit must be positive")
        return self.store.list_adaptation_events(tenant_id, learner_id, since=since, limit=limit)


def _override(value: Optional[float], default: float) -> float:
    return default if value is None else value
