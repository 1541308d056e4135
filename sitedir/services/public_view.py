from collections import defaultdict

from sitedir.models.directory import SITE_STATUS_ACTIVE, EntityKind, Site, newest_first_key
from sitedir.repositories.entity_repository import EntityRepository
from sitedir.repositories.index_manager import SITES_LIST, IndexManager


class PublicViewBuilder:
    """Read-only projection of active sites grouped by category."""

    def __init__(self, repository: EntityRepository, site_index: IndexManager) -> None:
        self._repository = repository
        self._site_index = site_index

    def get_public_sites(self) -> dict[str, list[Site]]:
        """Active sites keyed by category, each group newest addedAt first."""
        sites = self._repository.load_many(EntityKind.SITE, self._site_index.read(SITES_LIST))

        by_category: dict[str, list[Site]] = defaultdict(list)
        for site in sites:
            if site.status == SITE_STATUS_ACTIVE:
                by_category[site.category].append(site)

        for group in by_category.values():
            group.sort(key=lambda s: newest_first_key(s.added_at), reverse=True)
        return dict(by_category)
