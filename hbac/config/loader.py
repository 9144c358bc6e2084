"""YAML/JSON config loading with env var expansion."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from hbac.errors import ConfigError

from .models import HBACConfig


def default_config_paths() -> list[Path]:
    return [
        Path("./hbac.yaml"),
        Path("./hbac.json"),
        Path.home() / ".hbac" / "config.yaml",
    ]


def load_config(path: str | None = None) -> HBACConfig:
    """Load config with resolution order: explicit path > project-local > user-global.

    JSON is a subset of YAML, so ``hbac.json`` files in the upstream
    camelCase layout load through the same parser.
    """
    if path is not None:
        explicit = Path(path)
        if not explicit.exists():
            raise ConfigError(f"Config file not found: {explicit}")
        candidates = [explicit]
    else:
        candidates = default_config_paths()

    for candidate in candidates:
        if not candidate.exists():
            continue
        try:
            with open(candidate) as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {candidate}: {e}") from e
        if raw is None:
            continue
        return parse_config(_expand_env_vars(raw), source=str(candidate))

    raise ConfigError(
        "No HBAC configuration found (looked in: "
        + ", ".join(str(p) for p in candidates)
        + ")"
    )


def parse_config(raw: object, source: str = "<config>") -> HBACConfig:
    """Validate an already-parsed config mapping."""
    if not isinstance(raw, dict):
        raise ConfigError(f"Invalid config in {source}: top level must be a mapping")
    try:
        return HBACConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {source}: {e}") from e


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings."""
    if isinstance(obj, str):
        return re.sub(r"\$\{(\w+)\}", lambda m: os.environ.get(m.group(1), ""), obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `hbac config init`
DEFAULT_CONFIG_TEMPLATE = """\
# hbac.yaml
version: "1.0"

# Where user -> role / attribute assignments live
database:
  type: "sqlite"               # memory | json | sqlite
  connection_string: ".hbac/access.db"

cache:
  enabled: true
  ttl: 300                     # seconds

audit:
  enabled: false
  level: "info"                # debug | info | warn | error

policies:
  default_effect: "deny"       # allow | deny
  evaluation: "firstApplicable"  # firstApplicable | allApplicable | denyOverrides

roles:
  admin:
    id: "role_admin"
    description: "Administrator"
    permissions: ["*:*"]
  editor:
    id: "role_editor"
    description: "Content editor"
    permissions: ["posts:*", "comments:*", "documents:read"]
  user:
    id: "role_user"
    description: "Regular user"
    permissions: ["posts:read", "posts:update:own", "comments:write"]

attributes:
  department:
    id: "attr_department"
    type: "string"
    description: "User department"
  clearance:
    id: "attr_clearance"
    type: "number"
    description: "Security clearance level"

policy_rules:
  - id: "policy_documents_clearance"
    name: "Clearance required for documents"
    resource: "documents"
    action: "read"
    condition:
      attributes.clearance: { "$gte": 3 }
    effect: "allow"
  - id: "policy_own_posts"
    name: "Users may only update their own posts"
    resource: "posts"
    action: "update"
    condition:
      context.isOwner: true
    effect: "allow"

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
