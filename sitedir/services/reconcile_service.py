"""
Drift detection and repair for the list indices.

Entities are authoritative. The lists can fall behind when a multi-step
operation stops part-way or when two writers race on one list key. Nothing
in the request path calls this module; it runs only when an operator asks.
"""
import logging
from dataclasses import dataclass, field

from sitedir.models.directory import EntityKind, Site, Submission, newest_first_key
from sitedir.repositories.entity_repository import EntityRepository
from sitedir.repositories.index_manager import (
    CATEGORY_PREFIX,
    SITES_LIST,
    STATUS_LISTS,
    IndexManager,
    category_key,
)

logger = logging.getLogger(__name__)

SUBMISSION_ID_PREFIX = "submission_"
SITE_ID_PREFIX = "site_"


@dataclass
class ReconciliationReport:
    issues: list[str] = field(default_factory=list)
    submissions_checked: int = 0
    sites_checked: int = 0

    @property
    def is_consistent(self) -> bool:
        return not self.issues

    def add(self, message: str) -> None:
        self.issues.append(message)


def _merge_order(existing: list[str], wanted: dict, timestamp) -> list[str]:
    """Keep wanted ids in their existing order, then append the rest oldest first."""
    seen: set[str] = set()
    ordered = []
    for entity_id in existing:
        if entity_id in wanted and entity_id not in seen:
            ordered.append(entity_id)
            seen.add(entity_id)
    rest = [entity_id for entity_id in wanted if entity_id not in seen]
    rest.sort(key=lambda entity_id: newest_first_key(timestamp(wanted[entity_id])))
    return ordered + rest


class IndexReconciler:
    def __init__(
        self,
        repository: EntityRepository,
        submission_index: IndexManager,
        site_index: IndexManager,
    ) -> None:
        self._repository = repository
        self._submission_index = submission_index
        self._site_index = site_index

    def _load_submissions(self) -> dict[str, Submission]:
        ids = self._submission_index.list_keys(SUBMISSION_ID_PREFIX)
        return {s.id: s for s in self._repository.load_many(EntityKind.SUBMISSION, ids)}

    def _load_sites(self) -> dict[str, Site]:
        ids = self._site_index.list_keys(SITE_ID_PREFIX)
        return {s.id: s for s in self._repository.load_many(EntityKind.SITE, ids)}

    def _category_lists(self) -> dict[str, list[str]]:
        return {
            key: self._site_index.read(key)
            for key in self._site_index.list_keys(CATEGORY_PREFIX)
        }

    def check(self) -> ReconciliationReport:
        submissions = self._load_submissions()
        sites = self._load_sites()
        report = ReconciliationReport(
            submissions_checked=len(submissions), sites_checked=len(sites)
        )

        listed_in: dict[str, list[str]] = {}
        for status, list_key in STATUS_LISTS.items():
            for submission_id in self._submission_index.read(list_key):
                listed_in.setdefault(submission_id, []).append(status)
                submission = submissions.get(submission_id)
                if submission is None:
                    report.add(f"{list_key}: {submission_id} has no submission entity")
                elif submission.status.value != status:
                    report.add(
                        f"{list_key}: {submission_id} has status {submission.status.value}"
                    )

        for submission_id, statuses in listed_in.items():
            if len(statuses) > 1:
                report.add(f"{submission_id} is listed under {', '.join(statuses)}")
        for submission_id in submissions:
            if submission_id not in listed_in:
                report.add(f"{submission_id} is not in any status list")

        sites_list = self._site_index.read(SITES_LIST)
        in_sites_list = set(sites_list)
        for site_id in sites_list:
            if site_id not in sites:
                report.add(f"{SITES_LIST}: {site_id} has no site entity")
        for site_id in sites:
            if site_id not in in_sites_list:
                report.add(f"{site_id} is missing from {SITES_LIST}")

        filed_under: dict[str, list[str]] = {}
        for key, ids in self._category_lists().items():
            for site_id in ids:
                filed_under.setdefault(site_id, []).append(key)
                if site_id not in in_sites_list:
                    report.add(f"{key}: {site_id} is not in {SITES_LIST}")
                site = sites.get(site_id)
                if site is not None and category_key(site.category) != key:
                    report.add(f"{key}: {site_id} belongs to category {site.category!r}")
        for site_id, site in sites.items():
            if category_key(site.category) not in filed_under.get(site_id, []):
                report.add(f"{site_id} is missing from {category_key(site.category)}")

        logger.info(
            "[reconcile] check | submissions=%d | sites=%d | issues=%d",
            report.submissions_checked,
            report.sites_checked,
            len(report.issues),
        )
        return report

    def repair(self) -> ReconciliationReport:
        """Rewrite every index from the entities. Returns the drift found beforehand."""
        report = self.check()
        if report.is_consistent:
            return report

        submissions = self._load_submissions()
        for status, list_key in STATUS_LISTS.items():
            wanted = {sid: s for sid, s in submissions.items() if s.status.value == status}
            self._submission_index.write(
                list_key,
                _merge_order(self._submission_index.read(list_key), wanted, lambda s: s.submit_time),
            )

        sites = self._load_sites()
        sites_list = _merge_order(self._site_index.read(SITES_LIST), sites, lambda s: s.added_at)
        self._site_index.write(SITES_LIST, sites_list)

        existing_categories = self._category_lists()
        by_category: dict[str, dict[str, Site]] = {}
        for site_id in sites_list:
            site = sites[site_id]
            by_category.setdefault(category_key(site.category), {})[site_id] = site
        for key, wanted in by_category.items():
            self._site_index.write(
                key, _merge_order(existing_categories.get(key, []), wanted, lambda s: s.added_at)
            )
        for key in existing_categories:
            if key not in by_category:
                self._site_index.drop(key)

        logger.info("[reconcile] repaired | issues=%d", len(report.issues))
        return report
