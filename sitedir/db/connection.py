"""
SQLite plumbing behind the key-value store.

Every store call gets its own short-lived connection, so SQLite's own
locking is the only thing serialising writers to a key. Schema changes live
as numbered .sql files next to this module and are applied by ensure_schema.
"""
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sitedir.services.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).parent / "migrations"
# Seconds a writer waits on another connection's lock before giving up.
BUSY_TIMEOUT = 10


def _open(db_path: str) -> sqlite3.Connection:
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=BUSY_TIMEOUT, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


@contextmanager
def kv_connection(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Yield a connection that commits on success and is always closed.
    Any sqlite3 error, on open or inside the block, becomes StoreUnavailableError.
    """
    try:
        conn = _open(db_path)
    except sqlite3.Error as exc:
        logger.error("[kv] cannot open store | db=%s | error=%s", db_path, exc)
        raise StoreUnavailableError(str(exc)) from exc
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as exc:
        logger.error("[kv] store call failed | db=%s | error=%s", db_path, exc)
        raise StoreUnavailableError(str(exc)) from exc
    finally:
        conn.close()


def _schema_versions(conn: sqlite3.Connection) -> set[str]:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS kv_schema_versions (
            version    TEXT PRIMARY KEY,
            applied_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    return {row["version"] for row in conn.execute("SELECT version FROM kv_schema_versions")}


def ensure_schema(db_path: str) -> list[str]:
    """Bring the kv_entries schema up to date. Returns the versions applied by this call."""
    with kv_connection(db_path) as conn:
        applied = _schema_versions(conn)
        conn.commit()
        pending = [p for p in sorted(SCHEMA_DIR.glob("*.sql")) if p.stem not in applied]
        for script in pending:
            conn.executescript(script.read_text())
            conn.execute("INSERT INTO kv_schema_versions (version) VALUES (?)", (script.stem,))
            conn.commit()
            logger.info("[kv] schema version applied | version=%s", script.stem)
    return [script.stem for script in pending]
