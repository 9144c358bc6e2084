"""Role-based permission model."""

from hbac.role.manager import RoleManager
from hbac.role.models import PERMISSION_RE, SUPERUSER_PERMISSION, Role, is_valid_permission

__all__ = [
    "PERMISSION_RE",
    "SUPERUSER_PERMISSION",
    "Role",
    "RoleManager",
    "is_valid_permission",
]
