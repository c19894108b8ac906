"""
Adaptation rule evaluation
"""
from .rule_evaluator import RuleEvaluator, build_metrics, compare, order_rules

__all__ = [
    "RuleEvaluator",
    "build_metrics",
    "compare",
    "order_rules",
]
