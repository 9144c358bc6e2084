"""Shared test fixtures for HBAC."""

import logging

import pytest

from hbac.attribute.manager import AttributeManager
from hbac.attribute.models import AttributeDefinition
from hbac.config.models import HBACConfig
from hbac.role.manager import RoleManager
from hbac.role.models import Role


@pytest.fixture
def sample_config_dict():
    """Raw config mapping in the snake_case YAML layout."""
    return {
        "version": "1.0",
        "database": {"type": "memory"},
        "cache": {"enabled": True, "ttl": 60},
        "policies": {"default_effect": "deny", "evaluation": "firstApplicable"},
        "roles": {
            "admin": {"id": "role_admin", "permissions": ["*:*"]},
            "editor": {
                "id": "role_editor",
                "description": "Content editor",
                "permissions": ["posts:*", "comments:*", "documents:read"],
            },
            "user": {
                "id": "role_user",
                "permissions": ["posts:read", "posts:update:own", "comments:write"],
            },
        },
        "attributes": {
            "department": {"id": "attr_department", "type": "string"},
            "clearance": {"id": "attr_clearance", "type": "number"},
            "verified": {"id": "attr_verified", "type": "boolean"},
            "profile": {"id": "attr_profile", "type": "object"},
            "tags": {"id": "attr_tags", "type": "array"},
        },
        "policy_rules": [
            {
                "id": "policy_documents_clearance",
                "resource": "documents",
                "action": "read",
                "condition": {"attributes.clearance": {"$gte": 3}},
                "effect": "allow",
            },
            {
                "id": "policy_own_posts",
                "resource": "posts",
                "action": "update",
                "condition": {"context.isOwner": True},
                "effect": "allow",
            },
        ],
    }


@pytest.fixture
def sample_config(sample_config_dict) -> HBACConfig:
    return HBACConfig.model_validate(sample_config_dict)


@pytest.fixture
def roles() -> dict[str, Role]:
    return {
        "admin": Role(id="role_admin", permissions=("*:*",)),
        "editor": Role(id="role_editor", permissions=("posts:*", "comments:*")),
        "reader": Role(id="role_reader", permissions=("*:read",)),
        "owner": Role(id="role_owner", permissions=("posts:update:own",)),
        "user": Role(id="role_user", permissions=("posts:read",)),
    }


@pytest.fixture
def role_manager(roles) -> RoleManager:
    return RoleManager(roles)


@pytest.fixture
def attribute_manager() -> AttributeManager:
    return AttributeManager(
        {
            "department": AttributeDefinition(id="attr_department", type="string"),
            "clearance": AttributeDefinition(id="attr_clearance", type="number"),
            "verified": AttributeDefinition(id="attr_verified", type="boolean"),
            "profile": AttributeDefinition(id="attr_profile", type="object"),
            "tags": AttributeDefinition(id="attr_tags", type="array"),
        }
    )


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _reset_hbac_logger():
    """Undo configure_logging() so handlers never outlive a test's streams."""
    yield
    logger = logging.getLogger("hbac")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
