"""
Tenant adaptation rule evaluation

Rules are checked in priority order (highest first); on equal priority the
narrower scope (competency > domain > global) goes first. The first rule
whose conditions hold fires and evaluation stops; actions never stack.
"""
from typing import Dict, List, Optional, Tuple, Any
import statistics
import logging

from golden_path.adaptive.profile import AdaptationProfile
from golden_path.schemas.rules import (
    AdaptationRule,
    ConditionLogic,
    ConditionOperator,
    RuleCondition,
    RuleScope,
    RuleSignal,
)

logger = logging.getLogger(__name__)

EQUALITY_TOLERANCE = 1e-9


def rule_sort_key(rule: AdaptationRule) -> Tuple:
    return (-rule.priority, -rule.specificity, rule.created_at, rule.id)


def order_rules(rules: List[AdaptationRule]) -> List[AdaptationRule]:
    """Evaluation order"""
    return sorted(rules, key=rule_sort_key)


def build_metrics(profile: AdaptationProfile, fatigue_estimate: float) -> Dict[RuleSignal, float]:
    """Values the rule signals resolve to for one learner"""
    ema = profile.ema
    if profile.competency_states:
        mastery = statistics.mean(s.params.p_known for s in profile.competency_states.values())
    else:
        mastery = 0.5

    return {
        RuleSignal.ACCURACY: ema.accuracy,
        RuleSignal.RESPONSE_TIME: ema.response_time,
        RuleSignal.ENGAGEMENT: ema.engagement,
        RuleSignal.HINT_USAGE: ema.hint_usage,
        RuleSignal.SKIP_RATE: ema.skip_rate,
        RuleSignal.HELP_SEEKING: ema.hint_usage,
        RuleSignal.ERROR_PATTERN: 1.0 - ema.accuracy,
        RuleSignal.TIME_ON_TASK: profile.total_time_minutes,
        RuleSignal.SESSION_DURATION: profile.total_time_minutes,
        RuleSignal.RETRY_COUNT: float(profile.session_count),
        RuleSignal.STREAK: float(profile.session_count),
        RuleSignal.MASTERY: mastery,
        RuleSignal.FATIGUE: fatigue_estimate,
    }


def compare(operator: ConditionOperator, actual: float, value: float, secondary: Optional[float] = None) -> bool:
    if operator == ConditionOperator.GT:
        return actual > value
    if operator == ConditionOperator.GTE:
        return actual >= value
    if operator == ConditionOperator.LT:
        return actual < value
    if operator == ConditionOperator.LTE:
        return actual <= value
    if operator == ConditionOperator.EQ:
        return abs(actual - value) <= EQUALITY_TOLERANCE
    if operator == ConditionOperator.NEQ:
        return abs(actual - value) > EQUALITY_TOLERANCE
    if operator == ConditionOperator.BETWEEN:
        upper = value if secondary is None else secondary
        return value <= actual <= upper
    raise ValueError(f"Unsupported operator: {operator}")


class RuleEvaluator:
    """
    Evaluates tenant rules against a learner's derived metrics
    """

    @staticmethod
    def applies_to(
        rule: AdaptationRule,
        competency_id: Optional[str],
        domain: Optional[str],
    ) -> bool:
        """Whether the rule's scope covers the current learning context"""
        if rule.scope == RuleScope.GLOBAL:
            return True
        if rule.scope == RuleScope.DOMAIN:
            return domain is not None and rule.scope_id == domain
        return competency_id is not None and rule.scope_id == competency_id

    @staticmethod
    def evaluate_condition(condition: RuleCondition, metrics: Dict[RuleSignal, float]) -> Tuple[bool, float]:
        actual = metrics[condition.signal]
        return compare(condition.operator, actual, condition.value, condition.secondary_value), actual

    def evaluate(self, rule: AdaptationRule, metrics: Dict[RuleSignal, float]) -> Tuple[bool, Dict]:
        """
        Check one rule's conditions

        Returns:
            (fired, {signal: {"actual": ..., "matched": ...}})
        """
        if not rule.conditions:
            return True, {}

        details: Dict[str, Any] = {}
        outcomes = []
        for condition in rule.conditions:
            matched, actual = self.evaluate_condition(condition, metrics)
            outcomes.append(matched)
            details[condition.signal.value] = {"actual": actual, "matched": matched}

        if rule.condition_logic == ConditionLogic.OR:
            return any(outcomes), details
        return all(outcomes), details

    def first_firing(
        self,
        rules: List[AdaptationRule],
        metrics: Dict[RuleSignal, float],
        competency_id: Optional[str] = None,
        domain: Optional[str] = None,
    ) -> Optional[Tuple[AdaptationRule, Dict]]:
        """Evaluate active rules in order and return the first that fires"""
        for rule in order_rules(rules):
            if not rule.is_active or not self.applies_to(rule, competency_id, domain):
                continue
            fired, details = self.evaluate(rule, metrics)
            if fired:
                logger.debug(f"Rule {rule.id} ({rule.name}) fired")
                return rule, details
        return None
