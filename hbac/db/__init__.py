"""Bundled persistence connectors."""

from collections.abc import Callable

from hbac.config.models import DatabaseConfig
from hbac.db.json_file import JsonFileConnector
from hbac.db.memory import InMemoryConnector
from hbac.db.sqlite import DEFAULT_DB_PATH, SQLiteConnector
from hbac.interfaces.database import DatabaseConnector

_CONNECTOR_MAP: dict[str, Callable[[DatabaseConfig], DatabaseConnector]] = {
    "memory": lambda config: InMemoryConnector(),
    "json": lambda config: JsonFileConnector(
        config.connection_string, table_name=config.table_name
    ),
    "sqlite": lambda config: SQLiteConnector(
        config.connection_string or DEFAULT_DB_PATH, table_name=config.table_name
    ),
}


def create_connector(config: DatabaseConfig) -> DatabaseConnector:
    """Instantiate the connector named by ``config.type``."""
    build = _CONNECTOR_MAP.get(config.type)
    if build is None:
        raise ValueError(
            f"Unsupported database type: {config.type!r}. "
            f"Supported: {', '.join(_CONNECTOR_MAP)}"
        )
    return build(config)


__all__ = [
    "DatabaseConnector",
    "InMemoryConnector",
    "JsonFileConnector",
    "SQLiteConnector",
    "create_connector",
]
