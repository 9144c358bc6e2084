"""HBAC facade: wires persistence, cache and the policy engine together.

Usage::

    hbac = HBAC("./hbac.yaml")
    await hbac.initialize()

    if await hbac.can("user123", "read", "posts"):
        ...
    await hbac.assign_role("user123", "role_editor")
    await hbac.set_attribute("user123", "attr_department", "Engineering")
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping
from typing import Any

from hbac.attribute.manager import AttributeManager
from hbac.cache.manager import CacheManager, make_decision_key
from hbac.config.loader import load_config
from hbac.config.models import HBACConfig
from hbac.db import create_connector
from hbac.errors import (
    AccessDeniedError,
    InitializationError,
    InvalidAttributeError,
    InvalidRoleError,
    NotInitializedError,
)
from hbac.interfaces.database import DatabaseConnector, UserAccessMap
from hbac.log import level_for
from hbac.policy.engine import PolicyEngine
from hbac.role.manager import RoleManager

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("hbac.audit")


class HBAC:
    """Hybrid (role + attribute) access control.

    Either pass a config file path, or an already-built ``HBACConfig``.
    A ``connector`` overrides the one named in ``config.database``.
    """

    def __init__(
        self,
        config_path: str | None = None,
        *,
        config: HBACConfig | None = None,
        connector: DatabaseConnector | None = None,
    ) -> None:
        self._config_path = config_path
        self._config = config
        self._connector = connector
        self._cache: CacheManager | None = None
        self._roles: RoleManager | None = None
        self._attributes: AttributeManager | None = None
        self._engine: PolicyEngine | None = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def config(self) -> HBACConfig:
        self._check_initialized()
        return self._config

    @property
    def cache(self) -> CacheManager:
        self._check_initialized()
        return self._cache

    @property
    def role_manager(self) -> RoleManager:
        self._check_initialized()
        return self._roles

    @property
    def attribute_manager(self) -> AttributeManager:
        self._check_initialized()
        return self._attributes

    @property
    def policy_engine(self) -> PolicyEngine:
        self._check_initialized()
        return self._engine

    async def initialize(self) -> None:
        """Load config and build every component. No-op when already initialized."""
        if self._initialized:
            return
        try:
            if self._config is None:
                self._config = load_config(self._config_path)
            config = self._config

            self._cache = CacheManager(config.cache)
            self._roles = RoleManager(config.roles)
            self._attributes = AttributeManager(config.attributes)
            if self._connector is None:
                self._connector = create_connector(config.database)
            await self._connector.initialize()

            self._engine = PolicyEngine(
                config.policy_rules,
                config.policies.default_effect,
                config.policies.evaluation,
                self._roles,
                self._attributes,
            )
        except Exception as e:
            raise InitializationError(f"Failed to initialize HBAC: {e}") from e

        self._initialized = True
        logger.info(
            "HBAC initialized: %d roles, %d attributes, %d policy rules (%s)",
            len(config.roles),
            len(config.attributes),
            len(config.policy_rules),
            config.policies.evaluation.value,
        )

    # -- decisions -------------------------------------------------------------

    async def can(
        self,
        user_id: str,
        action: str,
        resource: str,
        context: Mapping[str, Any] | None = None,
    ) -> bool:
        """Return whether ``user_id`` may perform ``action`` on ``resource``."""
        self._check_initialized()
        context = dict(context or {})

        key = make_decision_key(user_id, resource, action, context)
        cached = self._cache.get_permission_decision(key)
        if cached is not None:
            return cached

        generation = self._cache.generation(user_id)
        roles, attributes = await asyncio.gather(
            self._load_roles(user_id, generation),
            self._load_attributes(user_id, generation),
        )
        allowed = self._engine.evaluate(roles, attributes, resource, action, context)
        self._cache.set_permission_decision(key, allowed, user_id=user_id, generation=generation)
        self._audit(user_id, action, resource, allowed)
        return allowed

    async def check(
        self,
        user_id: str,
        action: str,
        resource: str,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        """Like ``can`` but raises AccessDeniedError on deny."""
        if not await self.can(user_id, action, resource, context):
            raise AccessDeniedError(user_id, action, resource)

    # -- reads -----------------------------------------------------------------

    async def get_user_roles(self, user_id: str) -> list[str]:
        self._check_initialized()
        return await self._load_roles(user_id, self._cache.generation(user_id))

    async def get_user_attributes(self, user_id: str) -> dict[str, Any]:
        self._check_initialized()
        return await self._load_attributes(user_id, self._cache.generation(user_id))

    async def get_user_access_map(self, user_id: str) -> UserAccessMap | None:
        self._check_initialized()
        return await self._connector.get_user_access_map(user_id)

    # -- mutations -------------------------------------------------------------

    async def assign_role(self, user_id: str, role_id: str) -> None:
        self._check_initialized()
        if self._roles.get_role(role_id) is None:
            raise InvalidRoleError(role_id)
        await self._connector.assign_role(user_id, role_id)
        self._cache.invalidate_user(user_id)
        logger.info("Assigned role %s to %s", role_id, user_id)

    async def remove_role(self, user_id: str, role_id: str) -> None:
        self._check_initialized()
        await self._connector.remove_role(user_id, role_id)
        self._cache.invalidate_user(user_id)
        logger.info("Removed role %s from %s", role_id, user_id)

    async def set_attribute(self, user_id: str, attribute_id: str, value: Any) -> None:
        self._check_initialized()
        attribute = self._attributes.get_attribute(attribute_id)
        if attribute is None:
            raise InvalidAttributeError(attribute_id)
        if not self._attributes.validate_attribute_value(attribute_id, value):
            raise InvalidAttributeError(
                attribute_id, f"expected {attribute.type}, got {type(value).__name__}"
            )
        await self._connector.set_attribute(user_id, attribute_id, value)
        self._cache.invalidate_user(user_id)
        logger.info("Set attribute %s for %s", attribute_id, user_id)

    # -- lifecycle -------------------------------------------------------------

    async def close(self) -> None:
        """Release the connector's resources. Safe to call more than once."""
        connector = self._connector
        if connector is None:
            return
        close = getattr(connector, "close", None)
        if close is not None:
            result = close()
            if inspect.isawaitable(result):
                await result
        self._initialized = False
        logger.debug("HBAC closed")

    # -- internals -------------------------------------------------------------

    async def _load_roles(self, user_id: str, generation: int) -> list[str]:
        cached = self._cache.get_user_roles(user_id)
        if cached is not None:
            return cached
        roles = await self._connector.get_user_roles(user_id)
        self._cache.set_user_roles(user_id, roles, generation=generation)
        return roles

    async def _load_attributes(self, user_id: str, generation: int) -> dict[str, Any]:
        cached = self._cache.get_user_attributes(user_id)
        if cached is not None:
            return cached
        attributes = await self._connector.get_user_attributes(user_id)
        self._cache.set_user_attributes(user_id, attributes, generation=generation)
        return attributes

    def _audit(self, user_id: str, action: str, resource: str, allowed: bool) -> None:
        audit = self._config.audit
        if not audit.enabled:
            return
        audit_logger.log(
            level_for(audit.level),
            "decision user=%s action=%s resource=%s result=%s",
            user_id,
            action,
            resource,
            "allow" if allowed else "deny",
        )

    def _check_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError()
