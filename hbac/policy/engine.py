"""Policy decision engine: role gate first, then attribute-conditioned rules."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from hbac.attribute.conditions import Condition, compile_condition
from hbac.attribute.manager import AttributeManager
from hbac.policy.models import Effect, EvaluationStrategy, PolicyRule
from hbac.role.manager import RoleManager

logger = logging.getLogger(__name__)

_CompiledRule = tuple[PolicyRule, Condition]


def _coerce_strategy(value: EvaluationStrategy | str) -> EvaluationStrategy | None:
    try:
        return EvaluationStrategy(value)
    except ValueError:
        return None


class PolicyEngine:
    """Combines the role gate with ABAC policy rules into one boolean.

    Role permission is mandatory: rules can only narrow or override an
    action the principal's roles already grant, never grant one on their
    own. Conditions are compiled once here; ``evaluate`` is a pure function
    of its arguments and the static configuration.
    """

    def __init__(
        self,
        policy_rules: Sequence[PolicyRule],
        default_effect: Effect | str,
        evaluation: EvaluationStrategy | str,
        role_manager: RoleManager,
        attribute_manager: AttributeManager,
    ) -> None:
        self._rules: tuple[_CompiledRule, ...] = tuple(
            (rule, compile_condition(rule.condition)) for rule in policy_rules
        )
        self._default_allow = default_effect == Effect.allow
        self._strategy = _coerce_strategy(evaluation)
        if self._strategy is None:
            logger.warning(
                "Unrecognized evaluation strategy %r, falling back to default effect", evaluation
            )
        self._role_manager = role_manager
        self._attribute_manager = attribute_manager
        self._combiners: dict[
            EvaluationStrategy, Callable[[list[_CompiledRule], Mapping, Mapping], bool]
        ] = {
            EvaluationStrategy.first_applicable: self._first_applicable,
            EvaluationStrategy.all_applicable: self._all_applicable,
            EvaluationStrategy.deny_overrides: self._deny_overrides,
        }

    @property
    def strategy(self) -> EvaluationStrategy | None:
        return self._strategy

    def evaluate(
        self,
        user_role_ids: Iterable[str],
        user_attributes: Mapping[str, Any],
        resource: str,
        action: str,
        context: Mapping[str, Any] | None = None,
    ) -> bool:
        """Decide whether the principal may perform ``action`` on ``resource``."""
        context = context or {}

        if not self._role_manager.has_permission(user_role_ids, resource, action):
            logger.debug("Role gate denied %s:%s", resource, action)
            return False

        relevant = [
            (rule, condition)
            for rule, condition in self._rules
            if rule.applies_to(resource, action)
        ]
        if not relevant:
            # Role permission alone suffices
            return True

        combine = self._combiners.get(self._strategy)
        if combine is None:
            return self._default_allow
        return combine(relevant, user_attributes, context)

    def matching_rules(
        self,
        user_attributes: Mapping[str, Any],
        resource: str,
        action: str,
        context: Mapping[str, Any] | None = None,
    ) -> list[PolicyRule]:
        """Rules scoped to resource/action whose condition currently holds.

        Diagnostic helper; ``evaluate`` does not depend on it.
        """
        context = context or {}
        return [
            rule
            for rule, condition in self._rules
            if rule.applies_to(resource, action) and self._matches(condition, user_attributes, context)
        ]

    def _matches(self, condition: Condition, attributes: Mapping, context: Mapping) -> bool:
        return self._attribute_manager.evaluate_condition(condition, attributes, context)

    def _first_applicable(
        self, rules: list[_CompiledRule], attributes: Mapping, context: Mapping
    ) -> bool:
        for rule, condition in rules:
            if self._matches(condition, attributes, context):
                logger.debug("Rule %s decided %s", rule.id, rule.effect.value)
                return rule.effect == Effect.allow
        return self._default_allow

    def _all_applicable(
        self, rules: list[_CompiledRule], attributes: Mapping, context: Mapping
    ) -> bool:
        matched = [rule for rule, condition in rules if self._matches(condition, attributes, context)]
        if not matched:
            return self._default_allow

        allowed = any(rule.effect == Effect.allow for rule in matched)
        denied = any(rule.effect == Effect.deny for rule in matched)
        if allowed and denied:
            logger.debug(
                "Conflicting rules %s, denying", ", ".join(rule.id for rule in matched)
            )
            return False
        return allowed

    def _deny_overrides(
        self, rules: list[_CompiledRule], attributes: Mapping, context: Mapping
    ) -> bool:
        any_allowed = False
        for rule, condition in rules:
            if not self._matches(condition, attributes, context):
                continue
            if rule.effect == Effect.deny:
                logger.debug("Deny rule %s overrides", rule.id)
                return False
            any_allowed = True
        if any_allowed:
            return True
        return self._default_allow
