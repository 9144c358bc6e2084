"""Tests for PolicyEngine: role gate, rule filtering, combining strategies."""

from __future__ import annotations

import copy
import logging

import pytest
from pydantic import ValidationError

from hbac.attribute.manager import AttributeManager
from hbac.errors import ConditionError
from hbac.policy.engine import PolicyEngine
from hbac.policy.models import Effect, EvaluationStrategy, PolicyRule
from hbac.role.manager import RoleManager
from hbac.role.models import Role


def _rule(id: str, effect: str = "allow", condition=None, resource="posts", action="read") -> PolicyRule:
    return PolicyRule(
        id=id,
        resource=resource,
        action=action,
        condition=condition if condition is not None else {},
        effect=effect,
    )


def _engine(
    rules,
    role_manager: RoleManager,
    attribute_manager: AttributeManager,
    evaluation="firstApplicable",
    default_effect="deny",
) -> PolicyEngine:
    return PolicyEngine(rules, default_effect, evaluation, role_manager, attribute_manager)


ENGINEERING = {"context.dept": "Engineering"}
SALES = {"context.dept": "Sales"}


# ── PolicyRule model ───────────────────────────────────────────────


class TestPolicyRule:
    def test_applies_to_exact(self):
        rule = _rule("r")
        assert rule.applies_to("posts", "read") is True
        assert rule.applies_to("posts", "write") is False
        assert rule.applies_to("comments", "read") is False

    def test_applies_to_wildcards(self):
        assert _rule("r", resource="*").applies_to("anything", "read") is True
        assert _rule("r", action="*").applies_to("posts", "delete") is True
        assert _rule("r", resource="*", action="*").applies_to("x", "y") is True

    def test_malformed_condition_rejected_at_load(self):
        with pytest.raises((ValidationError, ConditionError)):
            _rule("r", condition={"attributes.level": {"$like": "a%"}})

    def test_blank_resource_rejected(self):
        with pytest.raises(ValidationError):
            _rule("r", resource=" ")

    def test_effect_enum(self):
        assert _rule("r", effect="deny").effect is Effect.deny


# ── Role gate ──────────────────────────────────────────────────────


class TestRoleGate:
    def test_gate_precedes_rules(self, role_manager, attribute_manager):
        engine = _engine([_rule("allow_all")], role_manager, attribute_manager)
        assert engine.evaluate([], {}, "posts", "read") is False
        assert engine.evaluate(["role_ghost"], {}, "posts", "read") is False

    @pytest.mark.parametrize("strategy", list(EvaluationStrategy))
    def test_gate_precedes_rules_for_every_strategy(self, role_manager, attribute_manager, strategy):
        engine = _engine(
            [_rule("allow_all")], role_manager, attribute_manager, evaluation=strategy, default_effect="allow"
        )
        assert engine.evaluate(["role_user"], {}, "posts", "delete") is False

    def test_no_matching_rule_role_decision_stands(self, role_manager, attribute_manager):
        engine = _engine([_rule("other", resource="documents")], role_manager, attribute_manager)
        assert engine.evaluate(["role_user"], {}, "posts", "read") is True

    def test_no_rules_at_all(self, role_manager, attribute_manager):
        engine = _engine([], role_manager, attribute_manager)
        assert engine.evaluate(["role_admin"], {}, "billing", "delete") is True


# ── firstApplicable ────────────────────────────────────────────────


class TestFirstApplicable:
    def test_first_matching_rule_wins(self, role_manager, attribute_manager):
        rules = [_rule("deny_eng", "deny", ENGINEERING), _rule("allow_eng", "allow", ENGINEERING)]
        engine = _engine(rules, role_manager, attribute_manager)
        assert engine.evaluate(["role_user"], {}, "posts", "read", {"dept": "Engineering"}) is False

    def test_order_reversed(self, role_manager, attribute_manager):
        rules = [_rule("allow_eng", "allow", ENGINEERING), _rule("deny_eng", "deny", ENGINEERING)]
        engine = _engine(rules, role_manager, attribute_manager)
        assert engine.evaluate(["role_user"], {}, "posts", "read", {"dept": "Engineering"}) is True

    def test_non_matching_first_rule_falls_through(self, role_manager, attribute_manager):
        rules = [_rule("deny_sales", "deny", SALES), _rule("allow_eng", "allow", ENGINEERING)]
        engine = _engine(rules, role_manager, attribute_manager)
        assert engine.evaluate(["role_user"], {}, "posts", "read", {"dept": "Engineering"}) is True

    def test_nothing_matches_uses_default(self, role_manager, attribute_manager):
        rules = [_rule("allow_sales", "allow", SALES)]
        deny = _engine(rules, role_manager, attribute_manager, default_effect="deny")
        allow = _engine(rules, role_manager, attribute_manager, default_effect="allow")
        ctx = {"dept": "Engineering"}
        assert deny.evaluate(["role_user"], {}, "posts", "read", ctx) is False
        assert allow.evaluate(["role_user"], {}, "posts", "read", ctx) is True


# ── allApplicable ──────────────────────────────────────────────────


class TestAllApplicable:
    def test_conflict_denies(self, role_manager, attribute_manager):
        rules = [_rule("allow_eng", "allow", ENGINEERING), _rule("deny_eng", "deny", ENGINEERING)]
        engine = _engine(rules, role_manager, attribute_manager, evaluation="allApplicable")
        assert engine.evaluate(["role_user"], {}, "posts", "read", {"dept": "Engineering"}) is False

    def test_only_allow_matches(self, role_manager, attribute_manager):
        rules = [_rule("allow_eng", "allow", ENGINEERING), _rule("deny_sales", "deny", SALES)]
        engine = _engine(rules, role_manager, attribute_manager, evaluation="allApplicable")
        assert engine.evaluate(["role_user"], {}, "posts", "read", {"dept": "Engineering"}) is True

    def test_only_deny_matches(self, role_manager, attribute_manager):
        rules = [_rule("allow_eng", "allow", ENGINEERING), _rule("deny_sales", "deny", SALES)]
        engine = _engine(
            rules, role_manager, attribute_manager, evaluation="allApplicable", default_effect="allow"
        )
        assert engine.evaluate(["role_user"], {}, "posts", "read", {"dept": "Sales"}) is False

    def test_none_match_uses_default(self, role_manager, attribute_manager):
        rules = [_rule("allow_eng", "allow", ENGINEERING)]
        engine = _engine(
            rules, role_manager, attribute_manager, evaluation="allApplicable", default_effect="allow"
        )
        assert engine.evaluate(["role_user"], {}, "posts", "read", {"dept": "Ops"}) is True


# ── denyOverrides ──────────────────────────────────────────────────


class TestDenyOverrides:
    @pytest.mark.parametrize("deny_first", [True, False])
    def test_deny_wins_regardless_of_order(self, role_manager, attribute_manager, deny_first):
        allow, deny = _rule("allow_eng", "allow", ENGINEERING), _rule("deny_eng", "deny", ENGINEERING)
        rules = [deny, allow] if deny_first else [allow, deny]
        engine = _engine(rules, role_manager, attribute_manager, evaluation="denyOverrides")
        assert engine.evaluate(["role_user"], {}, "posts", "read", {"dept": "Engineering"}) is False

    def test_allow_when_no_deny_matches(self, role_manager, attribute_manager):
        rules = [_rule("deny_sales", "deny", SALES), _rule("allow_eng", "allow", ENGINEERING)]
        engine = _engine(rules, role_manager, attribute_manager, evaluation="denyOverrides")
        assert engine.evaluate(["role_user"], {}, "posts", "read", {"dept": "Engineering"}) is True

    def test_none_match_uses_default(self, role_manager, attribute_manager):
        rules = [_rule("deny_sales", "deny", SALES)]
        engine = _engine(rules, role_manager, attribute_manager, evaluation="denyOverrides")
        assert engine.evaluate(["role_user"], {}, "posts", "read", {"dept": "Ops"}) is False


# ── Unknown strategy ───────────────────────────────────────────────


class TestUnknownStrategy:
    def test_falls_back_to_default_effect(self, role_manager, attribute_manager, caplog):
        rules = [_rule("deny_all", "deny")]
        with caplog.at_level(logging.WARNING, logger="hbac"):
            engine = _engine(
                rules, role_manager, attribute_manager, evaluation="mostSpecific", default_effect="allow"
            )
        assert engine.strategy is None
        assert "Unrecognized evaluation strategy" in caplog.text
        assert engine.evaluate(["role_user"], {}, "posts", "read") is True

    def test_accepts_enum_or_string(self, role_manager, attribute_manager):
        by_str = _engine([], role_manager, attribute_manager, evaluation="denyOverrides")
        by_enum = _engine([], role_manager, attribute_manager, evaluation=EvaluationStrategy.deny_overrides)
        assert by_str.strategy is by_enum.strategy is EvaluationStrategy.deny_overrides


# ── Diagnostics ────────────────────────────────────────────────────


class TestMatchingRules:
    def test_lists_rules_whose_condition_holds(self, role_manager, attribute_manager):
        rules = [
            _rule("allow_eng", "allow", ENGINEERING),
            _rule("deny_sales", "deny", SALES),
            _rule("any", "allow", resource="*"),
        ]
        engine = _engine(rules, role_manager, attribute_manager)
        matched = engine.matching_rules({}, "posts", "read", {"dept": "Engineering"})
        assert [r.id for r in matched] == ["allow_eng", "any"]


# ── Ownership (two-stage) ──────────────────────────────────────────


class TestOwnership:
    def test_own_permission_enforced_by_context_rule(self, role_manager, attribute_manager):
        rules = [_rule("own_posts", "allow", {"context.isOwner": True}, action="update")]
        engine = _engine(rules, role_manager, attribute_manager)
        assert engine.evaluate(["role_owner"], {}, "posts", "update", {"isOwner": True}) is True
        assert engine.evaluate(["role_owner"], {}, "posts", "update", {"isOwner": False}) is False
        assert engine.evaluate(["role_owner"], {}, "posts", "update") is False


# ── End-to-end scenarios ───────────────────────────────────────────


class TestClearanceScenario:
    RULES = [
        PolicyRule(
            id="p1",
            resource="documents",
            action="read",
            condition={"attributes.clearance": {"$gte": 3}},
            effect="allow",
        )
    ]

    def _engine(self, permissions, attribute_manager) -> PolicyEngine:
        roles = RoleManager({"user": Role(id="role_user", permissions=permissions)})
        return PolicyEngine(self.RULES, "deny", "firstApplicable", roles, attribute_manager)

    def test_role_gate_fails_first(self, attribute_manager):
        engine = self._engine(["posts:read"], attribute_manager)
        assert engine.evaluate(["role_user"], {"clearance": 3}, "documents", "read") is False

    def test_gate_passes_and_condition_matches(self, attribute_manager):
        engine = self._engine(["posts:read", "documents:read"], attribute_manager)
        assert engine.evaluate(["role_user"], {"clearance": 3}, "documents", "read", {}) is True

    def test_gate_passes_condition_fails_default_deny(self, attribute_manager):
        engine = self._engine(["posts:read", "documents:read"], attribute_manager)
        assert engine.evaluate(["role_user"], {"clearance": 2}, "documents", "read") is False


# ── Input isolation ────────────────────────────────────────────────


class TestInputsUntouched:
    @pytest.mark.parametrize("strategy", list(EvaluationStrategy))
    def test_evaluate_leaves_arguments_unchanged(self, role_manager, attribute_manager, strategy):
        rules = [
            _rule("deny_sales", "deny", {"context.dept": {"$in": ["Sales", "Ops"]}}),
            _rule("allow_eng", "allow", {**ENGINEERING, "attributes.clearance": {"$gte": 2}}),
            _rule("any", "allow", resource="*"),
        ]
        roles = ["role_user", "role_owner"]
        attributes = {"clearance": 3, "tags": ["a", "b"], "profile": {"level": 1}}
        context = {"dept": "Engineering", "nested": {"ids": [1, 2]}}
        snapshot = copy.deepcopy((roles, attributes, context, [r.model_dump() for r in rules]))

        engine = _engine(rules, role_manager, attribute_manager, evaluation=strategy)
        engine.evaluate(roles, attributes, "posts", "read", context)
        engine.matching_rules(attributes, "posts", "read", context)

        assert (roles, attributes, context, [r.model_dump() for r in rules]) == snapshot
