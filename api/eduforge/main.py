"""EduForge progress API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from eduforge.analytics.router import router as analytics_router
from eduforge.analytics.service import CourseAnalyticsService
from eduforge.catalog.service import CourseCatalog
from eduforge.certificates.repository import (
    CassandraCertificateRepository,
    InMemoryCertificateRepository,
)
from eduforge.certificates.router import router as certificates_router
from eduforge.certificates.service import CertificateService
from eduforge.config import Settings, get_settings
from eduforge.core.context import get_request_id
from eduforge.core.logging import configure_structlog, get_logger
from eduforge.core.middleware import RequestContextMiddleware
from eduforge.core.redis import init_redis, shutdown_redis
from eduforge.health import router as health_router
from eduforge.progress.repository import (
    CassandraEnrollmentRepository,
    InMemoryEnrollmentRepository,
)
from eduforge.progress.router import course_progress_router, enrollments_router
from eduforge.progress.service import ProgressService
from eduforge.quizzes.repository import (
    CassandraQuizAttemptRepository,
    InMemoryQuizAttemptRepository,
)
from eduforge.quizzes.router import router as quizzes_router
from eduforge.quizzes.service import QuizService
from eduforge.reviews.repository import (
    CassandraReviewRepository,
    InMemoryReviewRepository,
)
from eduforge.reviews.router import router as reviews_router
from eduforge.reviews.service import ReviewService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def memory_repositories() -> dict[str, Any]:
    """In-process stores for the ``memory`` backend."""
    return {
        "enrollments": InMemoryEnrollmentRepository(),
        "attempts": InMemoryQuizAttemptRepository(),
        "certificates": InMemoryCertificateRepository(),
        "reviews": InMemoryReviewRepository(),
    }


def cassandra_repositories(session: Any, keyspace: str) -> dict[str, Any]:
    """Cassandra-backed stores sharing one session."""
    return {
        "enrollments": CassandraEnrollmentRepository(session, keyspace),
        "attempts": CassandraQuizAttemptRepository(session, keyspace),
        "certificates": CassandraCertificateRepository(session, keyspace),
        "reviews": CassandraReviewRepository(session, keyspace),
    }


def load_catalog(settings: Settings) -> CourseCatalog:
    """Load the course catalog file, or start with an empty catalog."""
    if not settings.catalog_path:
        logger.warning("catalog_empty", message="CATALOG_PATH not set")
        return CourseCatalog()
    return CourseCatalog.from_file(settings.catalog_path)


def init_services(
    app: FastAPI,
    settings: Settings,
    catalog: CourseCatalog,
    repositories: dict[str, Any],
    redis_client: Any = None,
) -> None:
    """Wire the domain services and publish them on ``app.state``."""
    certificate_service = CertificateService(
        repository=repositories["certificates"],
        enrollments=repositories["enrollments"],
        catalog=catalog,
        attempts=repositories["attempts"],
        persist_retries=settings.certificate_persist_retries,
    )
    app.state.certificate_service = certificate_service

    app.state.progress_service = ProgressService(
        repository=repositories["enrollments"],
        catalog=catalog,
        certificate_issuer=certificate_service,
        cas_max_attempts=settings.progress_cas_max_attempts,
    )

    app.state.quiz_service = QuizService(
        repository=repositories["attempts"],
        enrollments=repositories["enrollments"],
        catalog=catalog,
        default_passing_score=settings.quiz_default_passing_score,
    )

    app.state.review_service = ReviewService(
        repository=repositories["reviews"],
        catalog=catalog,
    )

    app.state.analytics_service = CourseAnalyticsService(
        enrollments=repositories["enrollments"],
        attempts=repositories["attempts"],
        certificates=repositories["certificates"],
        reviews=repositories["reviews"],
        catalog=catalog,
        redis=redis_client,
        cache_ttl_seconds=settings.analytics_cache_ttl_seconds,
    )
    logger.info(
        "services_initialized",
        storage_backend=settings.storage_backend,
        courses=len(catalog),
        redis_enabled=redis_client is not None,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        storage_backend=settings.storage_backend,
    )

    catalog = getattr(app.state, "catalog", None)
    if catalog is None:
        catalog = load_catalog(settings)
    app.state.catalog = catalog

    # Initialize Redis (non-critical - app works without it)
    redis_client = None
    if settings.redis_enabled:
        try:
            redis_client = await init_redis()
            logger.info("redis_initialized")
        except Exception as e:
            logger.warning(
                "redis_init_skipped",
                error=str(e),
                message="Running without Redis - analytics cache disabled",
            )

    shutdown_cassandra = None
    if settings.uses_cassandra:
        try:
            from eduforge.core.database.async_cassandra import (
                init_async_cassandra,
                shutdown_async_cassandra,
            )

            session = await init_async_cassandra()
            shutdown_cassandra = shutdown_async_cassandra
            logger.info("cassandra_initialized")
            init_services(
                app,
                settings,
                catalog,
                cassandra_repositories(session, settings.cassandra_keyspace),
                redis_client,
            )
        except Exception as e:
            logger.warning(
                "database_init_skipped",
                error=str(e),
                message="Running without database connection",
            )
    else:
        init_services(app, settings, catalog, memory_repositories(), redis_client)

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    if shutdown_cassandra is not None:
        await shutdown_cassandra()


def create_app(catalog: CourseCatalog | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        catalog: Course structure to serve. Loaded from ``catalog_path`` at
            startup when omitted.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course progress, quiz, certificate and analytics API",
        debug=False,  # Never expose stack traces in responses
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )
    app.state.catalog = catalog

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                or exc.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Details are logged; the response carries a generic message only.
        """
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(enrollments_router)
    app.include_router(course_progress_router)
    app.include_router(quizzes_router)
    app.include_router(certificates_router)
    app.include_router(reviews_router)
    app.include_router(analytics_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "EduForge progress API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
