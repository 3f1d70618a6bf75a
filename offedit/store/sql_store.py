from __future__ import annotations

import re

from sqlalchemy import text
from sqlalchemy.engine import Engine

from .base import RecordStore


def _validate_identifier(name: str, identifier_type: str = "identifier") -> str:
    """
    Validate that a table name is safe for SQL interpolation.

    Identifiers MUST be trusted (hardcoded or configuration-supplied); this
    only rejects malformed names.

    Raises:
        TypeError: If identifier is not a string
        ValueError: If identifier contains unsafe characters or is too long
    """
    if not isinstance(name, str):
        raise TypeError(f"{identifier_type} must be a string, got {type(name).__name__}")

    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", name):
        raise ValueError(
            f"Invalid {identifier_type} {name!r}: "
            "must start with letter/underscore and contain only alphanumeric characters and underscores"
        )

    if len(name) > 64:
        raise ValueError(f"{identifier_type} {name!r} exceeds the 64-character limit")

    return name


class SqlRecordStore(RecordStore):
    """
    RecordStore kept in a two-column key/value table through SQLAlchemy.

    Each get/set/remove runs in its own short transaction. The table holds one
    row per key; the row is updated in place, or inserted when missing.

    value_type defaults to TEXT. On MySQL pass "MEDIUMTEXT", since TEXT stops
    at 64KB there.

    Usage:
        store = SqlRecordStore(create_engine("sqlite:///offedit.db"))
        store.create_table()
    """

    backend = "sql"

    def __init__(
        self,
        engine: Engine,
        table: str = "offedit_records",
        value_type: str = "TEXT",
    ) -> None:
        self.engine = engine
        self.table = _validate_identifier(table, "table")
        self.value_type = _validate_identifier(value_type, "column type")

    def create_table(self) -> None:
        """Create the backing table if it does not exist."""
        sql = (
            f"CREATE TABLE IF NOT EXISTS {self.table} ("
            "record_key VARCHAR(255) NOT NULL PRIMARY KEY, "
            f"record_value {self.value_type} NOT NULL)"
        )
        with self.engine.begin() as conn:
            conn.execute(text(sql))

    def _read(self, key: str) -> str | None:
        sql = f"SELECT record_value FROM {self.table} WHERE record_key = :k"
        with self.engine.connect() as conn:
            return conn.execute(text(sql), {"k": key}).scalar_one_or_none()

    def _write(self, key: str, value: str) -> None:
        update_sql = f"UPDATE {self.table} SET record_value = :v WHERE record_key = :k"
        insert_sql = f"INSERT INTO {self.table} (record_key, record_value) VALUES (:k, :v)"
        params = {"k": key, "v": value}
        with self.engine.begin() as conn:
            result = conn.execute(text(update_sql), params)
            # rowcount is 0 both for a missing row and (on MySQL) for an
            # unchanged value, so check existence before inserting.
            if result.rowcount == 0:
                exists = conn.execute(
                    text(f"SELECT 1 FROM {self.table} WHERE record_key = :k"), {"k": key}
                ).scalar_one_or_none()
                if exists is None:
                    conn.execute(text(insert_sql), params)

    def _delete(self, key: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(text(f"DELETE FROM {self.table} WHERE record_key = :k"), {"k": key})
