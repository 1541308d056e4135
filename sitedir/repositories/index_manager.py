import json

from sitedir.repositories.base import AbstractKeyValueStore

PENDING_SUBMISSIONS = "pending_submissions"
APPROVED_SUBMISSIONS = "approved_submissions"
REJECTED_SUBMISSIONS = "rejected_submissions"
SITES_LIST = "sites_list"
CATEGORY_PREFIX = "category_"

STATUS_LISTS = {
    "pending": PENDING_SUBMISSIONS,
    "approved": APPROVED_SUBMISSIONS,
    "rejected": REJECTED_SUBMISSIONS,
}


def category_key(category: str) -> str:
    return f"{CATEGORY_PREFIX}{category}"


class IndexManager:
    """
    Ordered id lists kept as JSON arrays under fixed keys.

    Every mutation re-reads and rewrites the whole list. Two writers on the
    same key can lose one of their updates; callers get no stronger guarantee.
    """

    def __init__(self, store: AbstractKeyValueStore) -> None:
        self._store = store

    def read(self, list_key: str) -> list[str]:
        raw = self._store.get(list_key)
        if raw is None:
            return []
        return json.loads(raw)

    def write(self, list_key: str, ids: list[str]) -> None:
        self._store.put(list_key, json.dumps(ids))

    def append(self, list_key: str, entity_id: str) -> None:
        ids = self.read(list_key)
        ids.append(entity_id)
        self.write(list_key, ids)

    def remove(self, list_key: str, entity_id: str) -> None:
        ids = self.read(list_key)
        self.write(list_key, [i for i in ids if i != entity_id])

    def drop(self, list_key: str) -> None:
        self._store.delete(list_key)

    def list_keys(self, prefix: str) -> list[str]:
        return self._store.list_keys(prefix)
