"""Exception hierarchy for the HBAC facade, config loader and guard.

The decision core (roles, attributes, policy engine, cache) never raises
for business-logic outcomes; everything there reduces to a boolean.
"""

from __future__ import annotations


class HBACError(Exception):
    """Base class for all HBAC errors."""


class ConfigError(HBACError, ValueError):
    """Raised when a configuration file is missing, unreadable, or invalid."""


class ConditionError(HBACError, ValueError):
    """Raised when a policy condition cannot be compiled."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"Invalid condition clause {path!r}: {message}")


class InitializationError(HBACError):
    """Raised when HBAC.initialize() fails; the cause is chained."""


class NotInitializedError(HBACError):
    def __init__(self) -> None:
        super().__init__("HBAC not initialized. Call initialize() first.")


class InvalidRoleError(HBACError):
    def __init__(self, role_id: str) -> None:
        self.role_id = role_id
        super().__init__(f"Invalid role ID: {role_id}")


class InvalidAttributeError(HBACError):
    def __init__(self, attribute_id: str, reason: str = "unknown attribute") -> None:
        self.attribute_id = attribute_id
        self.reason = reason
        super().__init__(f"Invalid attribute {attribute_id}: {reason}")


class AccessDeniedError(HBACError):
    """Raised by HBAC.check() and the route guard when access is denied."""

    def __init__(self, user_id: str, action: str, resource: str) -> None:
        self.user_id = user_id
        self.action = action
        self.resource = resource
        super().__init__("Access denied")


class AuthenticationRequiredError(HBACError):
    """Raised by the route guard when no user identifier can be extracted."""

    def __init__(self) -> None:
        super().__init__("Authentication required: no user identifier found")
