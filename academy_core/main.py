"""ASGI application: service wiring, error mapping and routers."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from academy_core.archive.router import router as archive_router
from academy_core.archive.service import ArchiveLifecycleManager
from academy_core.catalog.repository import CassandraCatalogRepository, CatalogRepository
from academy_core.catalog.router import router as catalog_router
from academy_core.catalog.router import videos_router as admin_videos_router
from academy_core.catalog.service import CatalogService
from academy_core.config import Settings, get_settings
from academy_core.core.context import get_request_id
from academy_core.core.database import init_async_cassandra, shutdown_async_cassandra
from academy_core.core.exceptions import AcademyError
from academy_core.core.logging import configure_structlog, get_logger
from academy_core.core.middleware import RequestContextMiddleware
from academy_core.core.redis import close_redis, connect_redis
from academy_core.enrollments.repository import (
    CassandraEnrollmentRepository,
    EnrollmentRepository,
)
from academy_core.enrollments.router import router as enrollments_router
from academy_core.enrollments.service import EnrollmentLedger
from academy_core.entitlements.router import router as videos_router
from academy_core.entitlements.service import EntitlementService
from academy_core.health import router as health_router
from academy_core.progress.aggregator import CourseProgressAggregator
from academy_core.progress.repository import (
    CassandraProgressRepository,
    ProgressRepository,
)
from academy_core.progress.router import router as progress_router
from academy_core.progress.service import ProgressService
from academy_core.progress.throttle import ProgressThrottle
from academy_core.progress.tracker import ProgressTracker


# Before any request is served, so import-time loggers share the config.
settings = get_settings()
configure_structlog(settings, file_output=not settings.is_testing)
logger = get_logger(__name__)


# Failure kind -> HTTP status
ERROR_STATUS_CODES: dict[str, int] = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "purchase_required": status.HTTP_403_FORBIDDEN,
    "course_unavailable": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "not_available": status.HTTP_409_CONFLICT,
    "capacity_reached": status.HTTP_409_CONFLICT,
    "already_enrolled": status.HTTP_409_CONFLICT,
    "invalid_state": status.HTTP_409_CONFLICT,
}


def install_services(
    app: FastAPI,
    *,
    catalog_repository: CatalogRepository,
    enrollment_repository: EnrollmentRepository,
    progress_repository: ProgressRepository,
    redis_client: redis.Redis | None,
    settings: Settings,
) -> None:
    """Build the service graph once and expose it on `app.state`."""
    catalog = CatalogService(catalog_repository)
    archive = ArchiveLifecycleManager(
        catalog_repository,
        default_grace_months=settings.archive_default_grace_months,
        inactive_months=settings.archive_inactive_after_months,
    )
    ledger = EnrollmentLedger(
        enrollment_repository,
        catalog_repository,
        max_attempts=settings.progress_cas_max_attempts,
    )
    entitlements = EntitlementService(catalog, ledger, archive)
    tracker = ProgressTracker(
        progress_repository,
        ProgressThrottle(redis_client, settings.progress_throttle_seconds),
        completion_threshold=settings.progress_completion_threshold,
        overshoot_tolerance=settings.progress_overshoot_tolerance,
        max_attempts=settings.progress_cas_max_attempts,
    )
    aggregator = CourseProgressAggregator(catalog, ledger, tracker)

    app.state.catalog_service = catalog
    app.state.archive_manager = archive
    app.state.enrollment_ledger = ledger
    app.state.entitlement_service = entitlements
    app.state.progress_service = ProgressService(
        catalog, ledger, entitlements, tracker, aggregator
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Connect backing stores and install the service graph.

    Without Redis the throttle keeps its window per process. Without
    Cassandra the app still serves health checks and reports "starting".
    """
    settings = get_settings()
    logger.info(
        "starting_application",
        version=settings.app_version,
        environment=settings.environment,
    )

    redis_client = None
    try:
        redis_client = await connect_redis()
    except (redis.RedisError, OSError) as e:
        logger.warning("redis_unavailable", error=str(e), throttle="per_process")

    try:
        session = await init_async_cassandra()
    except ConnectionError as e:
        logger.error("cassandra_unavailable", error=str(e))
    else:
        keyspace = settings.cassandra_keyspace
        install_services(
            app,
            catalog_repository=CassandraCatalogRepository(session, keyspace),
            enrollment_repository=CassandraEnrollmentRepository(session, keyspace),
            progress_repository=CassandraProgressRepository(session, keyspace),
            redis_client=redis_client,
            settings=settings,
        )
        logger.info("services_installed", shared_throttle=redis_client is not None)

    yield

    logger.info("shutting_down_application")
    await close_redis()
    await shutdown_async_cassandra()


def error_response(
    request: Request,
    status_code: int,
    kind: str,
    message: str,
    *,
    details: list | None = None,
    headers: dict[str, str] | None = None,
) -> ORJSONResponse:
    """Uniform error body: `{error, kind, message, status_code, request_id[, details]}`."""
    content = {
        "error": True,
        "kind": kind,
        "message": message,
        "status_code": status_code,
        "request_id": getattr(request.state, "request_id", None) or get_request_id(),
    }
    if details:
        content["details"] = details
    return ORJSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AcademyError)
    async def academy_error_handler(
        request: Request, exc: AcademyError
    ) -> ORJSONResponse:
        status_code = ERROR_STATUS_CODES.get(
            exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        logger.info("request_rejected", kind=exc.code, message=exc.message)
        return error_response(
            request,
            status_code,
            exc.code,
            exc.message,
            details=getattr(exc, "errors", None),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        logger.warning(
            "http_exception", status_code=exc.status_code, detail=str(exc.detail)
        )
        message = str(exc.detail)
        if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            message = "Internal server error"
        return error_response(
            request,
            exc.status_code,
            "http_error",
            message,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        # Malformed bodies (missing fields, wrong types). Range checks on
        # progress values are domain validation and answer 400 instead.
        details = [
            {
                "field": ".".join(str(part) for part in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        logger.warning("request_validation_error", details=details)
        return error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "validation_error",
            "Validation error",
            details=details,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        logger.exception("unhandled_exception", error_type=type(exc).__name__)
        return error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "An unexpected error occurred. Please try again later.",
        )


def create_app() -> FastAPI:
    settings = get_settings()
    expose_docs = settings.is_development

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course entitlement and progress tracking API",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if expose_docs else None,
        redoc_url="/redoc" if expose_docs else None,
        openapi_url="/openapi.json" if expose_docs else None,
    )

    # Added last so it wraps CORS and sees every response.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    register_exception_handlers(app)

    for router in (
        health_router,
        catalog_router,
        admin_videos_router,
        archive_router,
        enrollments_router,
        videos_router,
        progress_router,
    ):
        app.include_router(router)

    return app


app = create_app()
