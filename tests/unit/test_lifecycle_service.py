import pytest

from sitedir.models.directory import EntityKind, Site, Submission, SubmissionStatus
from sitedir.services.errors import NotFoundError, ValidationError

STATUS_LISTS = ("pending_submissions", "approved_submissions", "rejected_submissions")


def _lists_containing(submission_index, submission_id):
    return [key for key in STATUS_LISTS if submission_id in submission_index.read(key)]


# submit

def test_submit_stores_pending_submission(coordinator, repository, submission_index, submission_form):
    submission_id = coordinator.submit(submission_form)

    assert submission_id.startswith("submission_")
    submission = repository.get_submission(submission_id)
    assert submission.status is SubmissionStatus.PENDING
    assert submission.reviewed_at is None
    assert submission.reviewed_by is None
    assert submission.site_url == "https://foo.dev"
    assert submission.keywords == ""
    assert submission_index.read("pending_submissions") == [submission_id]
    assert _lists_containing(submission_index, submission_id) == ["pending_submissions"]


def test_submit_trims_fields_but_keeps_category(coordinator, repository, submission_form):
    submission_form.update(
        siteName="  Foo  ", siteUrl=" https://foo.dev ", category=" dev ", contact=" @foo "
    )
    submission = repository.get_submission(coordinator.submit(submission_form))
    assert submission.site_name == "Foo"
    assert submission.site_url == "https://foo.dev"
    assert submission.category == " dev "
    assert submission.contact == "@foo"


def test_submit_uses_caller_submit_time(coordinator, repository, submission_form):
    submission_form["submitTime"] = "2024-01-02T03:04:05.000Z"
    submission = repository.get_submission(coordinator.submit(submission_form))
    assert submission.submit_time == "2024-01-02T03:04:05.000Z"


@pytest.mark.parametrize("field", ["siteName", "siteUrl", "category", "description", "email"])
def test_submit_requires_field(coordinator, submission_form, kv_dump, field):
    submission_form[field] = "   "
    with pytest.raises(ValidationError) as exc_info:
        coordinator.submit(submission_form)
    assert exc_info.value.reason == "missing_field"
    assert kv_dump() == {}


def test_submit_rejects_bad_url_without_writing(coordinator, submission_form, kv_dump):
    submission_form["siteUrl"] = "not-a-url"
    with pytest.raises(ValidationError) as exc_info:
        coordinator.submit(submission_form)
    assert exc_info.value.reason == "bad_url"
    assert kv_dump() == {}


def test_submit_rejects_bad_email_without_writing(coordinator, submission_form, kv_dump):
    submission_form["email"] = "a@b"
    with pytest.raises(ValidationError) as exc_info:
        coordinator.submit(submission_form)
    assert exc_info.value.reason == "bad_email"
    assert kv_dump() == {}


# admin add

def test_admin_add_site_indexes_site(coordinator, repository, site_index, site_form):
    site_id = coordinator.admin_add_site(site_form)

    site = repository.get_site(site_id)
    assert site.added_by == "admin"
    assert site.status == "active"
    assert site_index.read("sites_list") == [site_id]
    assert site_index.read("category_tools") == [site_id]


def test_admin_add_site_validates_url(coordinator, site_form, kv_dump):
    site_form["siteUrl"] = "not-a-url"
    with pytest.raises(ValidationError):
        coordinator.admin_add_site(site_form)
    assert kv_dump() == {}


def test_admin_add_site_does_not_need_email(coordinator, site_form):
    assert "email" not in site_form
    assert coordinator.admin_add_site(site_form).startswith("site_")


# review

def test_approve_moves_submission_and_publishes_site(
    coordinator, repository, submission_index, site_index, submission_form
):
    submission_form.update(keywords="a, b", logoPath="/logos/foo.png")
    submission_id = coordinator.submit(submission_form)

    site_id = coordinator.review(submission_id, "approve")

    submission = repository.get_submission(submission_id)
    assert submission.status is SubmissionStatus.APPROVED
    assert submission.reviewed_at is not None
    assert submission.reviewed_by == "admin"
    assert _lists_containing(submission_index, submission_id) == ["approved_submissions"]

    site = repository.get_site(site_id)
    assert site.added_by == "user_submission"
    assert site.status == "active"
    assert (site.site_name, site.site_url, site.category, site.description) == (
        "Foo", "https://foo.dev", "dev", "x"
    )
    assert (site.keywords, site.logo_path) == ("a, b", "/logos/foo.png")
    assert site_id in site_index.read("sites_list")
    assert site_id in site_index.read("category_dev")


def test_reject_moves_submission_without_site(
    coordinator, repository, submission_index, site_index, submission_form
):
    submission_id = coordinator.submit(submission_form)

    assert coordinator.review(submission_id, "reject") is None

    submission = repository.get_submission(submission_id)
    assert submission.status is SubmissionStatus.REJECTED
    assert submission.reviewed_at is not None
    assert _lists_containing(submission_index, submission_id) == ["rejected_submissions"]
    assert site_index.read("sites_list") == []


def test_status_lists_partition_submissions(coordinator, submission_index, submission_form):
    ids = [
        coordinator.submit({**submission_form, "siteUrl": f"https://site{i}.dev"})
        for i in range(6)
    ]
    coordinator.approve(ids[0])
    coordinator.reject(ids[1])
    coordinator.review(ids[2], "approve")
    coordinator.review(ids[3], "reject")

    listed = [sid for key in STATUS_LISTS for sid in submission_index.read(key)]
    assert sorted(listed) == sorted(ids)
    assert submission_index.read("pending_submissions") == ids[4:]
    assert submission_index.read("approved_submissions") == [ids[0], ids[2]]
    assert submission_index.read("rejected_submissions") == [ids[1], ids[3]]


def test_review_unknown_submission(coordinator):
    with pytest.raises(NotFoundError):
        coordinator.review("submission_0_nope", "approve")


def test_review_checks_existence_before_action(coordinator):
    with pytest.raises(NotFoundError):
        coordinator.review("submission_0_nope", "frobnicate")


def test_review_rejects_unknown_action(coordinator, submission_form):
    submission_id = coordinator.submit(submission_form)
    with pytest.raises(ValidationError) as exc_info:
        coordinator.review(submission_id, "frobnicate")
    assert exc_info.value.reason == "bad_action"


@pytest.mark.parametrize("submission_id,action", [(None, "approve"), ("x", None), ("", "")])
def test_review_requires_parameters(coordinator, submission_id, action):
    with pytest.raises(ValidationError) as exc_info:
        coordinator.review(submission_id, action)
    assert exc_info.value.reason == "missing_field"


def test_review_is_not_repeatable(coordinator, site_index, submission_form):
    submission_id = coordinator.submit(submission_form)
    coordinator.review(submission_id, "approve")

    with pytest.raises(ValidationError) as exc_info:
        coordinator.review(submission_id, "reject")
    assert exc_info.value.reason == "already_reviewed"
    assert len(site_index.read("sites_list")) == 1


def test_approve_after_partial_failure_leaves_site_published(
    coordinator, repository, submission_index, site_index, submission_form, monkeypatch
):
    submission_id = coordinator.submit(submission_form)

    def _fail(*args, **kwargs):
        raise RuntimeError("store went away")

    # Fail at the submission write, after the site has been published.
    monkeypatch.setattr(coordinator, "_mark_reviewed", _fail)
    with pytest.raises(RuntimeError):
        coordinator.review(submission_id, "approve")

    assert len(site_index.read("sites_list")) == 1
    assert repository.get_submission(submission_id).status is SubmissionStatus.PENDING
    assert submission_index.read("pending_submissions") == [submission_id]


# delete

def test_delete_admin_site_leaves_submissions(
    coordinator, repository, submission_index, site_index, site_form, submission_form
):
    submission_id = coordinator.submit({**submission_form, "siteUrl": site_form["siteUrl"]})
    site_id = coordinator.admin_add_site(site_form)

    coordinator.delete_site(site_id)

    assert repository.get_site(site_id) is None
    assert site_index.read("sites_list") == []
    assert site_index.read("category_tools") == []
    assert repository.get_submission(submission_id) is not None
    assert submission_index.read("pending_submissions") == [submission_id]


def test_delete_user_site_removes_its_submission(
    coordinator, repository, submission_index, site_index, submission_form
):
    submission_id = coordinator.submit(submission_form)
    site_id = coordinator.review(submission_id, "approve")

    coordinator.delete_site(site_id)

    assert repository.get_site(site_id) is None
    assert site_index.read("category_dev") == []
    assert repository.get_submission(submission_id) is None
    assert submission_index.read("approved_submissions") == []


def test_delete_user_site_removes_only_first_matching_submission(
    coordinator, repository, submission_index, submission_form
):
    approved_id = coordinator.submit(submission_form)
    site_id = coordinator.review(approved_id, "approve")
    # A later duplicate submission of the same URL, still pending.
    pending_id = coordinator.submit(submission_form)

    coordinator.delete_site(site_id)

    # Pending is scanned first, so the pending duplicate goes and the
    # approved submission that produced the site stays.
    assert repository.get_submission(pending_id) is None
    assert submission_index.read("pending_submissions") == []
    assert repository.get_submission(approved_id) is not None
    assert submission_index.read("approved_submissions") == [approved_id]


def test_delete_user_site_without_matching_submission(coordinator, repository, site_index):
    site = Site(
        id="site_1_orphan",
        site_name="Orphan",
        site_url="https://orphan.dev",
        category="misc",
        description="d",
        added_by="user_submission",
    )
    repository.put(EntityKind.SITE, site.id, site)
    site_index.append("sites_list", site.id)

    coordinator.delete_site(site.id)

    assert repository.get_site(site.id) is None


def test_delete_unknown_site(coordinator):
    with pytest.raises(NotFoundError):
        coordinator.delete_site("site_0_nope")


def test_delete_requires_site_id(coordinator):
    with pytest.raises(ValidationError):
        coordinator.delete_site("")


# admin reads

def _store_submission(repository, submission_index, submission_id, submit_time, status="pending"):
    submission = Submission(
        id=submission_id,
        site_name=submission_id,
        site_url=f"https://{submission_id}.dev",
        category="dev",
        description="d",
        email="a@b.com",
        submit_time=submit_time,
        status=SubmissionStatus(status),
    )
    repository.put(EntityKind.SUBMISSION, submission_id, submission)
    submission_index.append(f"{status}_submissions", submission_id)


def test_get_submissions_filters_and_sorts(coordinator, repository, submission_index):
    _store_submission(repository, submission_index, "s1", "2024-01-01T00:00:00.000Z")
    _store_submission(repository, submission_index, "s2", "2024-03-01T00:00:00.000Z", "approved")
    _store_submission(repository, submission_index, "s3", "2024-02-01T00:00:00.000Z", "rejected")
    _store_submission(repository, submission_index, "s4", "2024-04-01T00:00:00.000Z")

    assert [s.id for s in coordinator.get_submissions("pending")] == ["s4", "s1"]
    assert [s.id for s in coordinator.get_submissions("approved")] == ["s2"]
    assert [s.id for s in coordinator.get_submissions("all")] == ["s4", "s2", "s3", "s1"]
    assert [s.id for s in coordinator.get_submissions("bogus")] == ["s4", "s2", "s3", "s1"]


def test_get_submissions_skips_dangling_ids(coordinator, repository, submission_index):
    _store_submission(repository, submission_index, "s1", "2024-01-01T00:00:00.000Z")
    submission_index.append("pending_submissions", "s_gone")
    assert [s.id for s in coordinator.get_submissions("pending")] == ["s1"]


def test_get_sites_sorted_newest_first(coordinator, repository, site_index):
    for site_id, added_at in [("a", "2024-01-01T00:00:00Z"), ("b", "2024-05-01T00:00:00Z"), ("c", "garbage")]:
        site = Site(
            id=site_id, site_name=site_id, site_url="https://x.dev", category="tools",
            description="d", added_by="admin", added_at=added_at,
        )
        repository.put(EntityKind.SITE, site_id, site)
        site_index.append("sites_list", site_id)

    assert [s.id for s in coordinator.get_sites()] == ["b", "a", "c"]
