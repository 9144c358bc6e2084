"""HBAC: hybrid role- and attribute-based access control."""

from hbac.attribute import AttributeDefinition, AttributeManager, Condition, compile_condition
from hbac.cache import CacheManager, make_decision_key
from hbac.config import HBACConfig, load_config, parse_config
from hbac.errors import (
    AccessDeniedError,
    AuthenticationRequiredError,
    ConditionError,
    ConfigError,
    HBACError,
    InitializationError,
    InvalidAttributeError,
    InvalidRoleError,
    NotInitializedError,
)
from hbac.guard import protect
from hbac.hbac import HBAC
from hbac.interfaces import DatabaseConnector, UserAccessMap
from hbac.policy import Effect, EvaluationStrategy, PolicyEngine, PolicyRule
from hbac.role import Role, RoleManager

__version__ = "0.1.0"

__all__ = [
    "HBAC",
    "AccessDeniedError",
    "AttributeDefinition",
    "AttributeManager",
    "AuthenticationRequiredError",
    "CacheManager",
    "Condition",
    "ConditionError",
    "ConfigError",
    "DatabaseConnector",
    "Effect",
    "EvaluationStrategy",
    "HBACConfig",
    "HBACError",
    "InitializationError",
    "InvalidAttributeError",
    "InvalidRoleError",
    "NotInitializedError",
    "PolicyEngine",
    "PolicyRule",
    "Role",
    "RoleManager",
    "UserAccessMap",
    "compile_condition",
    "load_config",
    "make_decision_key",
    "parse_config",
    "protect",
]
