import pytest

from sitedir.db.connection import ensure_schema, kv_connection
from sitedir.repositories.entity_repository import EntityRepository
from sitedir.repositories.index_manager import IndexManager
from sitedir.repositories.kv_store import (
    ADMIN_NAMESPACE,
    SITES_NAMESPACE,
    SUBMISSIONS_NAMESPACE,
    SqliteKeyValueStore,
)
from sitedir.services.lifecycle_service import LifecycleCoordinator


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "sitedir.db")
    ensure_schema(path)
    return path


@pytest.fixture
def submissions_store(db_path):
    return SqliteKeyValueStore(db_path, SUBMISSIONS_NAMESPACE)


@pytest.fixture
def sites_store(db_path):
    return SqliteKeyValueStore(db_path, SITES_NAMESPACE)


@pytest.fixture
def admin_store(db_path):
    return SqliteKeyValueStore(db_path, ADMIN_NAMESPACE)


@pytest.fixture
def repository(submissions_store, sites_store):
    return EntityRepository(submissions_store, sites_store)


@pytest.fixture
def submission_index(submissions_store):
    return IndexManager(submissions_store)


@pytest.fixture
def site_index(sites_store):
    return IndexManager(sites_store)


@pytest.fixture
def coordinator(repository, submission_index, site_index):
    return LifecycleCoordinator(repository, submission_index, site_index, reviewer="admin")


@pytest.fixture
def submission_form() -> dict:
    return {
        "siteName": "Foo",
        "siteUrl": "https://foo.dev",
        "category": "dev",
        "description": "x",
        "email": "a@b.com",
    }


@pytest.fixture
def site_form() -> dict:
    return {
        "siteName": "Bar",
        "siteUrl": "https://bar.dev",
        "category": "tools",
        "description": "A tool",
    }


@pytest.fixture
def kv_dump(db_path):
    """Callable returning every stored raw value keyed by (namespace, key)."""

    def _dump() -> dict[tuple[str, str], str]:
        with kv_connection(db_path) as conn:
            rows = conn.execute("SELECT namespace, key, value FROM kv_entries").fetchall()
        return {(row["namespace"], row["key"]): row["value"] for row in rows}

    return _dump
