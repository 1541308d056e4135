import logging

from sitedir.models.directory import (
    ADDED_BY_ADMIN,
    ADDED_BY_USER_SUBMISSION,
    SITE_STATUS_ACTIVE,
    EntityKind,
    Site,
    Submission,
    SubmissionStatus,
    new_entity_id,
    newest_first_key,
    utc_now_iso,
)
from sitedir.repositories.entity_repository import EntityRepository
from sitedir.repositories.index_manager import (
    APPROVED_SUBMISSIONS,
    PENDING_SUBMISSIONS,
    REJECTED_SUBMISSIONS,
    SITES_LIST,
    STATUS_LISTS,
    IndexManager,
    category_key,
)
from sitedir.services.errors import NotFoundError, ValidationError
from sitedir.services.validation import require_email, require_fields, require_url

logger = logging.getLogger(__name__)

SUBMIT_REQUIRED = ["siteName", "siteUrl", "category", "description", "email"]
ADD_SITE_REQUIRED = ["siteName", "siteUrl", "category", "description"]
REVIEW_ACTIONS = {"approve", "reject"}


def _clean(value: str | None) -> str:
    return value.strip() if value else ""


def _ensure_pending(submission: Submission) -> None:
    if submission.status is not SubmissionStatus.PENDING:
        raise ValidationError(
            f"Submission already {submission.status.value}", reason="already_reviewed"
        )


class LifecycleCoordinator:
    """
    Drives every multi-key mutation of the directory.

    Each step below is one store write and the sequence as a whole is not
    atomic. Entities are always written before the indices that point at
    them, so a failure part-way leaves stale indices but never loses an
    entity. There is no rollback: a retry after a failure may duplicate
    entities or index entries.
    """

    def __init__(
        self,
        repository: EntityRepository,
        submission_index: IndexManager,
        site_index: IndexManager,
        reviewer: str,
    ) -> None:
        self._repository = repository
        self._submission_index = submission_index
        self._site_index = site_index
        self._reviewer = reviewer

    # -- submissions ---------------------------------------------------------

    def submit(self, fields: dict[str, str | None]) -> str:
        """Validate and store a new pending submission. Returns its id."""
        require_fields(fields, SUBMIT_REQUIRED)
        require_url(fields["siteUrl"])
        require_email(fields["email"])

        submission = Submission(
            id=new_entity_id("submission"),
            site_name=_clean(fields["siteName"]),
            site_url=_clean(fields["siteUrl"]),
            category=fields["category"],
            description=_clean(fields["description"]),
            email=_clean(fields["email"]),
            keywords=_clean(fields.get("keywords")),
            logo_path=_clean(fields.get("logoPath")),
            contact=_clean(fields.get("contact")),
            submit_time=fields.get("submitTime") or utc_now_iso(),
        )

        self._repository.put(EntityKind.SUBMISSION, submission.id, submission)
        self._submission_index.append(PENDING_SUBMISSIONS, submission.id)

        logger.info(
            "[lifecycle] submitted | id=%s | url=%s | category=%s",
            submission.id,
            submission.site_url,
            submission.category,
        )
        return submission.id

    def review(self, submission_id: str | None, action: str | None) -> str | None:
        """Approve or reject a pending submission. Returns the new site id on approve."""
        if not submission_id or not action:
            raise ValidationError("Incomplete parameters", reason="missing_field")

        submission = self._load_submission(submission_id)
        if action not in REVIEW_ACTIONS:
            raise ValidationError("Invalid review action", reason="bad_action")
        _ensure_pending(submission)

        if action == "approve":
            return self._approve(submission)
        self._reject(submission)
        return None

    def approve(self, submission_id: str) -> str:
        submission = self._load_submission(submission_id)
        _ensure_pending(submission)
        return self._approve(submission)

    def reject(self, submission_id: str) -> None:
        submission = self._load_submission(submission_id)
        _ensure_pending(submission)
        self._reject(submission)

    def _load_submission(self, submission_id: str) -> Submission:
        submission = self._repository.get_submission(submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")
        return submission

    def _approve(self, submission: Submission) -> str:
        # The site goes live before the submission leaves the pending list:
        # a crash in between leaves a published site and a still-pending
        # submission, never an approved submission without its site.
        site = Site(
            id=new_entity_id("site"),
            site_name=submission.site_name,
            site_url=submission.site_url,
            category=submission.category,
            description=submission.description,
            keywords=submission.keywords,
            logo_path=submission.logo_path,
            added_by=ADDED_BY_USER_SUBMISSION,
            status=SITE_STATUS_ACTIVE,
        )
        self._publish_site(site)

        self._mark_reviewed(submission, SubmissionStatus.APPROVED)
        self._submission_index.remove(PENDING_SUBMISSIONS, submission.id)
        self._submission_index.append(APPROVED_SUBMISSIONS, submission.id)

        logger.info("[lifecycle] approved | submission=%s | site=%s", submission.id, site.id)
        return site.id

    def _reject(self, submission: Submission) -> None:
        self._mark_reviewed(submission, SubmissionStatus.REJECTED)
        self._submission_index.remove(PENDING_SUBMISSIONS, submission.id)
        self._submission_index.append(REJECTED_SUBMISSIONS, submission.id)

        logger.info("[lifecycle] rejected | submission=%s", submission.id)

    def _mark_reviewed(self, submission: Submission, status: SubmissionStatus) -> None:
        submission.status = status
        submission.reviewed_at = utc_now_iso()
        submission.reviewed_by = self._reviewer
        self._repository.put(EntityKind.SUBMISSION, submission.id, submission)

    # -- sites ---------------------------------------------------------------

    def admin_add_site(self, fields: dict[str, str | None]) -> str:
        """Publish a site directly, bypassing review. Returns its id."""
        require_fields(fields, ADD_SITE_REQUIRED)
        require_url(fields["siteUrl"])

        site = Site(
            id=new_entity_id("site"),
            site_name=_clean(fields["siteName"]),
            site_url=_clean(fields["siteUrl"]),
            category=fields["category"],
            description=_clean(fields["description"]),
            keywords=_clean(fields.get("keywords")),
            logo_path=_clean(fields.get("logoPath")),
            added_by=ADDED_BY_ADMIN,
            status=SITE_STATUS_ACTIVE,
        )
        self._publish_site(site)

        logger.info("[lifecycle] site added | id=%s | url=%s", site.id, site.site_url)
        return site.id

    def _publish_site(self, site: Site) -> None:
        self._repository.put(EntityKind.SITE, site.id, site)
        self._site_index.append(SITES_LIST, site.id)
        self._site_index.append(category_key(site.category), site.id)

    def delete_site(self, site_id: str | None) -> None:
        """
        Remove a site from its indices, then delete it.

        Sites that came from a submission also take that submission with them:
        the first submission (pending, then approved, then rejected) whose URL
        matches is deleted and no others, even if several share the URL.
        """
        if not site_id:
            raise ValidationError("Site id is required", reason="missing_field")

        site = self._repository.get_site(site_id)
        if site is None:
            raise NotFoundError("Site not found")

        self._site_index.remove(SITES_LIST, site_id)
        self._site_index.remove(category_key(site.category), site_id)
        self._repository.delete(EntityKind.SITE, site_id)

        removed_submission = None
        if site.added_by == ADDED_BY_USER_SUBMISSION:
            removed_submission = self._delete_first_submission_for_url(site.site_url)

        logger.info(
            "[lifecycle] site deleted | id=%s | url=%s | submission=%s",
            site_id,
            site.site_url,
            removed_submission,
        )

    def _delete_first_submission_for_url(self, site_url: str) -> str | None:
        snapshots = {
            list_key: self._submission_index.read(list_key)
            for list_key in (PENDING_SUBMISSIONS, APPROVED_SUBMISSIONS, REJECTED_SUBMISSIONS)
        }
        candidates = [sid for ids in snapshots.values() for sid in ids]

        for submission_id in candidates:
            submission = self._repository.get_submission(submission_id)
            if submission is None or submission.site_url != site_url:
                continue
            for list_key, ids in snapshots.items():
                if submission_id in ids:
                    self._submission_index.remove(list_key, submission_id)
            self._repository.delete(EntityKind.SUBMISSION, submission_id)
            return submission_id
        return None

    # -- admin reads ---------------------------------------------------------

    def get_submissions(self, status: str | None = "all") -> list[Submission]:
        """Submissions in one status list (or all three), newest submitTime first."""
        if status in STATUS_LISTS:
            ids = self._submission_index.read(STATUS_LISTS[status])
        else:
            ids = [
                submission_id
                for list_key in (PENDING_SUBMISSIONS, APPROVED_SUBMISSIONS, REJECTED_SUBMISSIONS)
                for submission_id in self._submission_index.read(list_key)
            ]
        submissions = self._repository.load_many(EntityKind.SUBMISSION, ids)
        submissions.sort(key=lambda s: newest_first_key(s.submit_time), reverse=True)
        return submissions

    def get_sites(self) -> list[Site]:
        sites = self._repository.load_many(EntityKind.SITE, self._site_index.read(SITES_LIST))
        sites.sort(key=lambda s: newest_first_key(s.added_at), reverse=True)
        return sites
