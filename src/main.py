"""Blog API - Main Application."""

import traceback
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.auth.router import router as auth_router
from src.auth.service import AuthService
from src.comments.router import router as comments_router
from src.comments.service import CommentService
from src.config import get_settings
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.exceptions import AppError
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.core.redis import init_redis, shutdown_redis
from src.health.router import router as health_router
from src.posts.router import router as posts_router
from src.posts.service import PostService
from src.reactions.router import router as reactions_router
from src.reactions.service import ReactionService
from src.users.router import router as users_router
from src.users.service import UserAdminService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)

VALUE_ERROR_PREFIX = "Value error, "


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

    # Initialize Redis (non-critical - reaction counts fall back to Cassandra)
    redis_client = None
    if settings.redis_enabled:
        try:
            redis_client = await init_redis()
            logger.info("redis_initialized")
        except Exception as e:
            logger.warning(
                "redis_init_skipped",
                error=str(e),
                message="Running without Redis - reaction count cache disabled",
            )

    # Initialize Cassandra (async)
    try:
        session = await init_async_cassandra()
        app.state.cassandra_session = session
        keyspace = settings.cassandra_keyspace
        logger.info("cassandra_initialized")

        app.state.auth_service = AuthService(session=session, keyspace=keyspace)
        app.state.comment_service = CommentService(session=session, keyspace=keyspace)
        app.state.post_service = PostService(
            session=session,
            keyspace=keyspace,
            comment_service=app.state.comment_service,
            slug_attempts=settings.slug_max_retries,
        )
        app.state.reaction_service = ReactionService(
            session=session,
            keyspace=keyspace,
            redis=redis_client,
            cache_ttl=settings.reaction_cache_ttl_seconds,
        )
        app.state.user_admin_service = UserAdminService(
            auth_service=app.state.auth_service,
            post_service=app.state.post_service,
            comment_service=app.state.comment_service,
            reaction_service=app.state.reaction_service,
        )
        logger.info("services_initialized", redis_enabled=redis_client is not None)

    except Exception as e:
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


def _error_body(request: Request, message: str, **extra: object) -> dict:
    request_id = (
        request.state.request_id
        if hasattr(request.state, "request_id")
        else get_request_id()
    )
    return {"success": False, "error": message, "request_id": request_id, **extra}


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Starlette debug stays off; the handlers below decide what reaches clients
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Blogging platform API",
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

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> ORJSONResponse:
        """Render domain errors into the failure envelope."""
        log = (
            logger.error
            if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
            else logger.warning
        )
        log(
            "app_error",
            code=exc.code,
            status_code=exc.status_code,
            error=exc.message,
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.message),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions (unknown routes, bad methods)."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Server Error"
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, message),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Render validation errors as 400 with per-field details."""
        details = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": str(err.get("msg", "Invalid value")).removeprefix(
                    VALUE_ERROR_PREFIX
                ),
            }
            for err in exc.errors()
        ]
        logger.warning(
            "validation_error",
            errors=details,
            path=request.url.path,
            method=request.method,
        )
        message = ", ".join(d["message"] for d in details) or "Validation error"
        return ORJSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(request, message, details=details),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        The stack trace is only returned in development.
        """
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        extra = {}
        if settings.is_development:
            extra["stack"] = traceback.format_exception(exc)
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, "Server Error", **extra),
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(posts_router)
    app.include_router(comments_router)
    app.include_router(reactions_router)
    app.include_router(users_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Blog API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn using the API settings."""
    import uvicorn  # noqa: PLC0415

    uvicorn.run(
        "src.main:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=settings.api_reload and settings.is_development,
        log_config=None,
    )
