"""Policy rules and the decision engine."""

from hbac.policy.engine import PolicyEngine
from hbac.policy.models import WILDCARD, Effect, EvaluationStrategy, PolicyRule

__all__ = [
    "WILDCARD",
    "Effect",
    "EvaluationStrategy",
    "PolicyEngine",
    "PolicyRule",
]
