"""FastAPI application factory and startup configuration.

Authentication is applied per router via `dependencies=[RequireApiKey]` rather
than a global middleware, so /health and /docs stay public.

The school registry is loaded once in the lifespan from SCHOOL_REGISTRY_PATH;
without a path the service starts with an empty registry.
"""
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bookfair.config import settings
from bookfair.core.exceptions import (
    AppException,
    RegistryUnavailableError,
    ValidationError,
)
from bookfair.core.logging import setup_logging, get_logger, set_correlation_id
from bookfair.api.v1.listings import router as listings_router
from bookfair.api.v1.schools import router as schools_router
from bookfair.api.deps import RequireApiKey
from bookfair.api.responses import fail, ok
from bookfair.services.registry_service import InMemorySchoolRegistry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown events."""
    setup_logging()
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)

    if not settings.api_key:
        logger.warning(
            "API_KEY not configured — endpoints are unprotected. "
            "Set API_KEY in .env before going to production."
        )

    if settings.school_registry_path:
        try:
            app.state.school_registry = InMemorySchoolRegistry.from_json_file(settings.school_registry_path)
        except RegistryUnavailableError as e:
            logger.warning(
                "School registry load failed: %s. Starting with an empty registry.",
                e.detail or e.message,
            )
            app.state.school_registry = InMemorySchoolRegistry()
    else:
        app.state.school_registry = InMemorySchoolRegistry()

    yield

    logger.info("Shutting down %s", settings.app_name)


def _error_response(request: Request, status_code: int, exc: AppException) -> JSONResponse:
    errors = exc.detail if isinstance(exc.detail, list) else [str(exc)]
    return JSONResponse(
        status_code=status_code,
        content=fail(str(exc), request, errors).model_dump(),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="BookFair discovery API — rank used-book listings and resolve school identities.",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def add_trace_id(request: Request, call_next):
        request.state.trace_id = set_correlation_id(str(uuid4()))
        response = await call_next(request)
        response.headers["X-Trace-Id"] = request.state.trace_id
        return response

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        trace_id = getattr(request.state, "trace_id", None)
        logger.exception("Unhandled exception [trace_id=%s]", trace_id, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=fail("Internal error", request, ["Internal server error"]).model_dump(),
        )

    @application.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return _error_response(request, 422, exc)

    @application.exception_handler(RegistryUnavailableError)
    async def registry_handler(request: Request, exc: RegistryUnavailableError):
        logger.error("School registry unavailable: %s", exc.message)
        return _error_response(request, 503, exc)

    _auth = [RequireApiKey]

    application.include_router(listings_router, prefix="/api/v1/listings", tags=["listings"], dependencies=_auth)
    application.include_router(schools_router, prefix="/api/v1/schools", tags=["schools"], dependencies=_auth)

    @application.get("/health", tags=["system"])
    async def health_check(request: Request):
        registry = getattr(request.app.state, "school_registry", None)
        return ok(
            {
                "status": "healthy",
                "version": settings.app_version,
                "school_clusters": len(registry) if registry is not None else 0,
            },
            "Health check completed",
            request,
        )

    return application


app = create_app()
