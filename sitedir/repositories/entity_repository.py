import json
import logging

from sitedir.models.directory import EntityKind, Site, Submission
from sitedir.repositories.base import AbstractKeyValueStore

logger = logging.getLogger(__name__)

_MODELS = {
    EntityKind.SUBMISSION: Submission,
    EntityKind.SITE: Site,
}


class EntityRepository:
    """
    CRUD over submissions and sites, one JSON document per entity id.
    Each call is a single store operation; nothing orders writes across keys.
    """

    def __init__(
        self,
        submissions_store: AbstractKeyValueStore,
        sites_store: AbstractKeyValueStore,
    ) -> None:
        self._stores = {
            EntityKind.SUBMISSION: submissions_store,
            EntityKind.SITE: sites_store,
        }

    def put(self, kind: EntityKind, entity_id: str, entity: Submission | Site) -> None:
        self._stores[kind].put(entity_id, json.dumps(entity.to_dict()))

    def get(self, kind: EntityKind, entity_id: str) -> Submission | Site | None:
        raw = self._stores[kind].get(entity_id)
        if raw is None:
            return None
        return _MODELS[kind].from_dict(json.loads(raw))

    def delete(self, kind: EntityKind, entity_id: str) -> None:
        self._stores[kind].delete(entity_id)

    def get_submission(self, submission_id: str) -> Submission | None:
        return self.get(EntityKind.SUBMISSION, submission_id)

    def get_site(self, site_id: str) -> Site | None:
        return self.get(EntityKind.SITE, site_id)

    def load_many(self, kind: EntityKind, entity_ids: list[str]) -> list:
        """Load entities in id order, skipping ids whose entity is gone."""
        entities = []
        for entity_id in entity_ids:
            entity = self.get(kind, entity_id)
            if entity is None:
                logger.debug("[repo] dangling index entry | kind=%s | id=%s", kind.value, entity_id)
                continue
            entities.append(entity)
        return entities
