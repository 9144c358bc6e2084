"""DatabaseConnector backed by a local SQLite database."""

from __future__ import annotations

import json
import re
import sqlite3
import uuid
from pathlib import Path
from typing import Any

from hbac.interfaces.database import UserAccessMap

DEFAULT_DB_PATH = ".hbac/access.db"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_]\w*$")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS {table} (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL UNIQUE,
    role_ids_json TEXT NOT NULL DEFAULT '[]',
    attributes_json TEXT NOT NULL DEFAULT '{{}}'
);
"""


class SQLiteConnector:
    """One row per user; role IDs and attributes are stored as JSON columns.

    Read-modify-write mutations run under BEGIN IMMEDIATE so concurrent
    connections cannot interleave and lose an update.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH, table_name: str = "user_access_map") -> None:
        if not _IDENTIFIER_RE.fullmatch(table_name):
            raise ValueError(f"Invalid table name: {table_name!r}")
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.db_path = db_path
        self.table = table_name
        # Autocommit mode; transactions are opened explicitly for mutations
        self._conn = sqlite3.connect(db_path, isolation_level=None, timeout=5)

    async def initialize(self) -> None:
        if self.db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA.format(table=self.table))

    def close(self) -> None:
        self._conn.close()

    # -- DatabaseConnector protocol --------------------------------------------

    async def get_user_roles(self, user_id: str) -> list[str]:
        record = self._fetch(user_id)
        return record.role_ids if record else []

    async def get_user_attributes(self, user_id: str) -> dict[str, Any]:
        record = self._fetch(user_id)
        return record.attributes if record else {}

    async def assign_role(self, user_id: str, role_id: str) -> None:
        def mutate(record: UserAccessMap) -> None:
            if role_id not in record.role_ids:
                record.role_ids.append(role_id)

        self._update(user_id, mutate, create=True)

    async def remove_role(self, user_id: str, role_id: str) -> None:
        def mutate(record: UserAccessMap) -> None:
            record.role_ids = [r for r in record.role_ids if r != role_id]

        self._update(user_id, mutate, create=False)

    async def set_attribute(self, user_id: str, attribute_id: str, value: Any) -> None:
        def mutate(record: UserAccessMap) -> None:
            record.attributes[attribute_id] = value

        self._update(user_id, mutate, create=True)

    async def get_user_access_map(self, user_id: str) -> UserAccessMap | None:
        return self._fetch(user_id)

    # -- helpers ---------------------------------------------------------------

    def _fetch(self, user_id: str, cursor: sqlite3.Cursor | None = None) -> UserAccessMap | None:
        executor = cursor or self._conn
        row = executor.execute(
            f"SELECT id, user_id, role_ids_json, attributes_json FROM {self.table} WHERE user_id = ?",
            (user_id,),
        ).fetchone()
        if row is None:
            return None
        id_, user_id_, role_ids_json, attributes_json = row
        return UserAccessMap(
            id=id_,
            user_id=user_id_,
            role_ids=json.loads(role_ids_json),
            attributes=json.loads(attributes_json),
        )

    def _update(self, user_id: str, mutate, create: bool) -> None:
        cursor = self._conn.cursor()
        try:
            cursor.execute("BEGIN IMMEDIATE")
            record = self._fetch(user_id, cursor)
            if record is None:
                if not create:
                    cursor.execute("COMMIT")
                    return
                record = UserAccessMap(id=str(uuid.uuid4()), user_id=user_id)
            mutate(record)
            cursor.execute(
                f"INSERT INTO {self.table} (id, user_id, role_ids_json, attributes_json) "
                "VALUES (?, ?, ?, ?) "
                "ON CONFLICT(user_id) DO UPDATE SET "
                "role_ids_json = excluded.role_ids_json, attributes_json = excluded.attributes_json",
                (record.id, record.user_id, json.dumps(record.role_ids), json.dumps(record.attributes)),
            )
            cursor.execute("COMMIT")
        except Exception:
            self._conn.rollback()
            raise
