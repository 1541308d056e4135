import asyncio
import logging

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import HTMLResponse
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from sitedir.schemas.directory import (
    AddSiteRequest,
    DeleteSiteRequest,
    LoginRequest,
    ReviewRequest,
    SubmitRequest,
    envelope,
)
from sitedir.services.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

_FRONTEND_HINT = (
    "<p>This service only serves the /api endpoints. "
    "Host the static frontend separately and point it at this server.</p>"
)


async def require_admin(
    request: Request, authorization: str | None = Header(default=None)
) -> None:
    """Dependency: reject the request unless it carries the current admin token."""
    auth_service = request.app.state.auth_service
    await asyncio.to_thread(auth_service.verify, authorization)


async def _read_json(request: Request, model: type[BaseModel]) -> BaseModel:
    # Parsed regardless of Content-Type; browsers often post JSON as text/plain.
    try:
        data = await request.json()
    except ValueError:
        data = None
    if not isinstance(data, dict):
        logger.info("[api] malformed request body | path=%s", request.url.path)
        raise ValidationError("Malformed request body", reason="bad_body")
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        logger.info(
            "[api] invalid request body | path=%s | errors=%d", request.url.path, exc.error_count()
        )
        raise ValidationError("Malformed request body", reason="bad_body") from exc


def json_body(model: type[BaseModel]):
    """Dependency: the request body as model. Public routes only."""

    async def _parse(request: Request) -> BaseModel:
        return await _read_json(request, model)

    return _parse


def admin_json_body(model: type[BaseModel]):
    """Dependency: the request body as model, read only once the admin token checks out."""

    async def _parse(request: Request, _admin: None = Depends(require_admin)) -> BaseModel:
        return await _read_json(request, model)

    return _parse


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/", response_class=HTMLResponse)
@router.get("/index.html", response_class=HTMLResponse)
async def index() -> str:
    return _FRONTEND_HINT


@router.post("/api/submit")
async def submit(
    request: Request, payload: SubmitRequest = Depends(json_body(SubmitRequest))
) -> dict:
    coordinator = request.app.state.coordinator
    submission_id = await asyncio.to_thread(coordinator.submit, payload.as_form())
    return envelope(
        "Submitted successfully, we will review your site soon", submissionId=submission_id
    )


@router.post("/api/admin/login")
async def login(
    request: Request, payload: LoginRequest = Depends(json_body(LoginRequest))
) -> dict:
    auth_service = request.app.state.auth_service
    token = await asyncio.to_thread(auth_service.login, payload.username, payload.password)
    return envelope("Logged in", token=token)


@router.get("/api/admin/submissions", dependencies=[Depends(require_admin)])
async def list_submissions(request: Request, status: str = "all") -> dict:
    coordinator = request.app.state.coordinator
    submissions = await asyncio.to_thread(coordinator.get_submissions, status)
    return envelope("Fetched", submissions=[s.to_dict() for s in submissions])


@router.post("/api/admin/add-site")
async def add_site(
    request: Request, payload: AddSiteRequest = Depends(admin_json_body(AddSiteRequest))
) -> dict:
    coordinator = request.app.state.coordinator
    site_id = await asyncio.to_thread(coordinator.admin_add_site, payload.as_form())
    return envelope("Site added", siteId=site_id)


@router.post("/api/admin/review")
async def review(
    request: Request, payload: ReviewRequest = Depends(admin_json_body(ReviewRequest))
) -> dict:
    coordinator = request.app.state.coordinator
    site_id = await asyncio.to_thread(coordinator.review, payload.submission_id, payload.action)
    if site_id is None:
        return envelope("Submission rejected")
    return envelope("Approved and added to the site list", siteId=site_id)


@router.get("/api/admin/sites", dependencies=[Depends(require_admin)])
async def list_sites(request: Request) -> dict:
    coordinator = request.app.state.coordinator
    sites = await asyncio.to_thread(coordinator.get_sites)
    return envelope("Fetched", sites=[s.to_dict() for s in sites])


@router.post("/api/admin/delete-site")
async def delete_site(
    request: Request, payload: DeleteSiteRequest = Depends(admin_json_body(DeleteSiteRequest))
) -> dict:
    coordinator = request.app.state.coordinator
    await asyncio.to_thread(coordinator.delete_site, payload.site_id)
    return envelope("Site deleted")


@router.get("/api/sites")
async def public_sites(request: Request) -> dict:
    public_view = request.app.state.public_view
    grouped = await asyncio.to_thread(public_view.get_public_sites)
    return envelope(
        "Fetched",
        sitesByCategory={
            category: [site.to_dict() for site in sites] for category, sites in grouped.items()
        },
    )
