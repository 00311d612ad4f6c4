"""HN Social API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from cassandra import DriverException
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from redis import RedisError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.admin.router import router as admin_router
from src.admin.service import AdminService
from src.comments.router import router as comments_router
from src.comments.service import CommentService
from src.config import get_settings
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.core.redis import init_redis, shutdown_redis
from src.health import router as health_router
from src.likes.router import router as likes_router
from src.likes.service import LikeService
from src.reports.router import router as reports_router
from src.reports.service import ReportService
from src.search.client import HackerNewsClient
from src.search.router import router as search_router
from src.search.service import SearchService
from src.stories.router import router as stories_router
from src.stories.service import StoryService
from src.users.router import router as users_router
from src.users.service import UserService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(
    settings, log_dir=Path(settings.log_dir), to_files=not settings.is_testing
)

logger = get_logger(__name__)


def init_services(app: FastAPI, session, hn_client: HackerNewsClient) -> None:
    """Build every service on one session and publish them on ``app.state``."""
    keyspace = get_settings().cassandra_keyspace

    user_service = UserService(session=session, keyspace=keyspace, hn_client=hn_client)
    comment_service = CommentService(
        session=session, keyspace=keyspace, hn_client=hn_client
    )
    story_service = StoryService(
        session=session,
        keyspace=keyspace,
        tree_builder=comment_service.tree_builder,
    )

    app.state.user_service = user_service
    app.state.comment_service = comment_service
    app.state.story_service = story_service
    app.state.like_service = LikeService(
        session=session,
        keyspace=keyspace,
        user_service=user_service,
        story_service=story_service,
        comment_service=comment_service,
        hn_client=hn_client,
        points_cache_ttl=get_settings().external_points_cache_ttl,
    )
    app.state.report_service = ReportService(
        session=session,
        keyspace=keyspace,
        user_service=user_service,
        story_service=story_service,
        comment_service=comment_service,
    )
    app.state.admin_service = AdminService(
        user_service=user_service,
        story_service=story_service,
        comment_service=comment_service,
    )
    app.state.search_service = SearchService(
        hn_client=hn_client, story_service=story_service
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
    )

    # Redis only caches upstream points; the app works without it
    try:
        await init_redis()
        logger.info("redis_initialized")
    except (RedisError, OSError) as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - external points are not cached",
        )

    hn_client = HackerNewsClient(settings)

    try:
        session = await init_async_cassandra()
        init_services(app, session, hn_client)
        logger.info("services_initialized")
    except (ConnectionError, DriverException) as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug stays off so Starlette never renders stack traces
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Hacker News style social API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

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
                or exc.status_code in (
                    status.HTTP_502_BAD_GATEWAY,
                    status.HTTP_503_SERVICE_UNAVAILABLE,
                )
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
            headers=getattr(exc, "headers", None),
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
        """Catch-all handler. Details go to the log, never to the client."""
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
    app.include_router(users_router)
    app.include_router(stories_router)
    app.include_router(comments_router)
    app.include_router(likes_router)
    app.include_router(reports_router)
    app.include_router(admin_router)
    app.include_router(search_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "HN Social API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()


def run() -> None:
    """Serve the app with uvicorn using the API server settings."""
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=settings.api_reload,
    )


if __name__ == "__main__":
    run()
