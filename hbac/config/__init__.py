from .loader import DEFAULT_CONFIG_TEMPLATE, load_config, parse_config
from .models import (
    AuditConfig,
    CacheConfig,
    DatabaseConfig,
    HBACConfig,
    PolicyConfig,
)

__all__ = [
    "AuditConfig",
    "CacheConfig",
    "DEFAULT_CONFIG_TEMPLATE",
    "DatabaseConfig",
    "HBACConfig",
    "PolicyConfig",
    "load_config",
    "parse_config",
]
