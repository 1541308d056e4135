import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from sitedir.api.routes import router
from sitedir.config import settings
from sitedir.db.connection import ensure_schema
from sitedir.repositories.entity_repository import EntityRepository
from sitedir.repositories.index_manager import IndexManager
from sitedir.repositories.kv_store import (
    ADMIN_NAMESPACE,
    SITES_NAMESPACE,
    SUBMISSIONS_NAMESPACE,
    SqliteKeyValueStore,
)
from sitedir.schemas.directory import error_envelope
from sitedir.services.auth_service import AdminCredentialStore, AuthService
from sitedir.services.errors import DirectoryError, StoreUnavailableError
from sitedir.services.lifecycle_service import LifecycleCoordinator
from sitedir.services.public_view import PublicViewBuilder

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def wire_services(state, db_path: str) -> None:
    """Build the store-backed services and attach them to app.state."""
    submissions_store = SqliteKeyValueStore(db_path, SUBMISSIONS_NAMESPACE)
    sites_store = SqliteKeyValueStore(db_path, SITES_NAMESPACE)
    admin_store = SqliteKeyValueStore(db_path, ADMIN_NAMESPACE)

    repository = EntityRepository(submissions_store, sites_store)
    submission_index = IndexManager(submissions_store)
    site_index = IndexManager(sites_store)

    state.coordinator = LifecycleCoordinator(
        repository, submission_index, site_index, reviewer=settings.ADMIN_USERNAME
    )
    state.public_view = PublicViewBuilder(repository, site_index)
    state.auth_service = AuthService(
        AdminCredentialStore(admin_store),
        username=settings.ADMIN_USERNAME,
        password=settings.ADMIN_PASSWORD,
        token_ttl_hours=settings.ADMIN_TOKEN_TTL_HOURS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    _configure_logging()
    logger.info("sitedir starting | db=%s | port=%s", settings.DB_PATH, settings.PORT)
    ensure_schema(settings.DB_PATH)
    wire_services(app.state, settings.DB_PATH)
    yield
    logger.info("sitedir shutting down")


def create_app() -> FastAPI:
    app = FastAPI(title="sitedir", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # Added after CORSMiddleware so it wraps it and answers every OPTIONS itself.
    @app.middleware("http")
    async def options_preflight(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=CORS_HEADERS)
        return await call_next(request)

    app.include_router(router)

    @app.exception_handler(DirectoryError)
    async def directory_error_handler(request: Request, exc: DirectoryError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=error_envelope(exc.message))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Unknown paths and wrong methods on known paths are both reported as 404.
        if exc.status_code in (404, 405):
            is_api = request.url.path.startswith("/api/")
            message = "API endpoint not found" if is_api else "Page not found"
            return JSONResponse(status_code=404, content=error_envelope(message))
        return JSONResponse(status_code=exc.status_code, content=error_envelope(str(exc.detail)))

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
        logger.error("[api] store unavailable | path=%s | error=%s", request.url.path, exc)
        return JSONResponse(status_code=500, content=error_envelope("Server error, please try again later"))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception")
        # Runs outside the CORS middleware, so the headers are added here.
        return JSONResponse(
            status_code=500,
            content=error_envelope("Server error, please try again later"),
            headers=CORS_HEADERS,
        )

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("sitedir.main:app", host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL)
