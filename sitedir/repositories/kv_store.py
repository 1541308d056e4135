import sqlite3

from sitedir.db.connection import kv_connection
from sitedir.repositories.base import AbstractKeyValueStore

SUBMISSIONS_NAMESPACE = "submissions"
SITES_NAMESPACE = "sites"
ADMIN_NAMESPACE = "admin"


class SqliteKeyValueStore(AbstractKeyValueStore):
    """One namespace of the kv_entries table. Every call opens its own connection."""

    def __init__(self, db_path: str, namespace: str) -> None:
        self._db_path = db_path
        self._namespace = namespace

    @property
    def namespace(self) -> str:
        return self._namespace

    def _execute(self, sql: str, params: tuple) -> list[sqlite3.Row]:
        with kv_connection(self._db_path) as conn:
            return conn.execute(sql, params).fetchall()

    def get(self, key: str) -> str | None:
        rows = self._execute(
            "SELECT value FROM kv_entries WHERE namespace = ? AND key = ?",
            (self._namespace, key),
        )
        return rows[0]["value"] if rows else None

    def put(self, key: str, value: str) -> None:
        self._execute(
            """
            INSERT INTO kv_entries (namespace, key, value)
            VALUES (?, ?, ?)
            ON CONFLICT(namespace, key) DO UPDATE SET
                value      = excluded.value,
                updated_at = CURRENT_TIMESTAMP
            """,
            (self._namespace, key, value),
        )

    def delete(self, key: str) -> None:
        self._execute(
            "DELETE FROM kv_entries WHERE namespace = ? AND key = ?",
            (self._namespace, key),
        )

    def list_keys(self, prefix: str = "") -> list[str]:
        # substr() rather than LIKE so "_" and "%" in prefixes match literally
        rows = self._execute(
            """
            SELECT key FROM kv_entries
            WHERE namespace = ? AND substr(key, 1, length(?)) = ?
            ORDER BY key
            """,
            (self._namespace, prefix, prefix),
        )
        return [row["key"] for row in rows]
