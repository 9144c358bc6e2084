"""Role lookup and the role-permission gate."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from hbac.role.models import SUPERUSER_PERMISSION, Role


class RoleManager:
    """Answers "do these roles grant resource:action?" over a static role map.

    The map is keyed by a human-readable name; lookups go by role ID.
    """

    def __init__(self, roles: Mapping[str, Role]) -> None:
        self._roles = dict(roles)
        self._by_id: dict[str, Role] = {role.id: role for role in self._roles.values()}

    def get_roles(self) -> dict[str, Role]:
        return dict(self._roles)

    def get_role(self, role_id: str) -> Role | None:
        return self._by_id.get(role_id)

    def get_permissions_for_roles(self, role_ids: Iterable[str]) -> set[str]:
        """Union of permissions across the given roles. Unknown IDs add nothing."""
        permissions: set[str] = set()
        for role_id in role_ids:
            role = self._by_id.get(role_id)
            if role is not None:
                permissions.update(role.permissions)
        return permissions

    def has_permission(self, role_ids: Iterable[str], resource: str, action: str) -> bool:
        """Check whether any of the roles grants ``resource:action``.

        A role holding ``*:*`` grants everything. Otherwise the union of
        permissions must contain the exact permission, a resource or action
        wildcard, or the ownership-qualified form. Ownership itself is only
        enforced by policy rules that inspect the call context.
        """
        role_ids = list(role_ids)
        if self._has_wildcard_permission(role_ids):
            return True

        permissions = self.get_permissions_for_roles(role_ids)
        candidates = (
            f"{resource}:{action}",
            f"{resource}:*",
            f"*:{action}",
            f"{resource}:{action}:own",
        )
        return any(candidate in permissions for candidate in candidates)

    def _has_wildcard_permission(self, role_ids: Iterable[str]) -> bool:
        for role_id in role_ids:
            role = self._by_id.get(role_id)
            if role is not None and SUPERUSER_PERMISSION in role.permissions:
                return True
        return False
