import pytest

from sitedir.db.connection import ensure_schema, kv_connection
from sitedir.repositories.kv_store import SqliteKeyValueStore
from sitedir.services.errors import StoreUnavailableError


def test_get_absent_key_returns_none(submissions_store):
    assert submissions_store.get("missing") is None


def test_put_then_get(submissions_store):
    submissions_store.put("k", "v1")
    assert submissions_store.get("k") == "v1"


def test_put_overwrites(submissions_store):
    submissions_store.put("k", "v1")
    submissions_store.put("k", "v2")
    assert submissions_store.get("k") == "v2"


def test_delete_and_delete_absent(submissions_store):
    submissions_store.put("k", "v")
    submissions_store.delete("k")
    submissions_store.delete("k")
    assert submissions_store.get("k") is None


def test_namespaces_are_isolated(submissions_store, sites_store):
    submissions_store.put("shared", "from-submissions")
    assert sites_store.get("shared") is None
    sites_store.put("shared", "from-sites")
    assert submissions_store.get("shared") == "from-submissions"


def test_list_keys_matches_prefix_literally(sites_store):
    for key in ("category_a", "category_b", "categoryXc", "sites_list", "site_1"):
        sites_store.put(key, "[]")
    assert sites_store.list_keys("category_") == ["category_a", "category_b"]
    assert sites_store.list_keys("site_") == ["site_1"]
    assert len(sites_store.list_keys()) == 5


def test_unmigrated_database_surfaces_store_unavailable(tmp_path):
    store = SqliteKeyValueStore(str(tmp_path / "empty.db"), "sites")
    with pytest.raises(StoreUnavailableError):
        store.get("anything")


def test_ensure_schema_applies_each_version_once(tmp_path, db_path):
    fresh = str(tmp_path / "nested" / "fresh.db")
    assert ensure_schema(fresh) == ["001_kv_entries"]
    assert ensure_schema(fresh) == []
    assert ensure_schema(db_path) == []


def test_kv_connection_rolls_back_and_wraps_errors(db_path, sites_store):
    with pytest.raises(StoreUnavailableError):
        with kv_connection(db_path) as conn:
            conn.execute(
                "INSERT INTO kv_entries (namespace, key, value) VALUES ('sites', 'k', 'v')"
            )
            conn.execute("SELECT * FROM no_such_table")
    assert sites_store.get("k") is None
