"""Threshold rules and event evaluation."""

from alerting.rules.evaluator import ThresholdEvaluator
from alerting.rules.thresholds import DEFAULT_THRESHOLDS

__all__ = [
    "DEFAULT_THRESHOLDS",
    "ThresholdEvaluator",
]
