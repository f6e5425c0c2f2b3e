"""Property Hub FastAPI Application.

Main entry point for the backend API server. ``create_app`` is the
composition root: it builds the cache, limiter, property source, listing
service and assistant hub once and hangs them on ``app.state``.
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from property_hub import __version__
from property_hub.api import router
from property_hub.config import Settings
from property_hub.models import AppError, ErrorCode
from property_hub.services import (
    AssistantHub,
    DemoPropertySource,
    HttpPropertySource,
    ListingService,
    ListingSourceError,
    PropertySource,
    RedisCacheService,
)
from property_hub.utils.cache import ExpiringCache, sweep_periodically
from property_hub.utils.limiter import ConcurrencyLimiter

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def build_source(settings: Settings) -> PropertySource:
    if settings.listings_source == "http":
        return HttpPropertySource(
            base_url=settings.listings_api_url,
            api_key=settings.listings_api_key,
            timeout=settings.http_timeout,
        )
    return DemoPropertySource()


def _error_response(status_code: int, code: ErrorCode, message: str, user_message: str) -> JSONResponse:
    error = AppError(code=code, message=message, user_message=user_message)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error.model_dump(mode="json")},
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Wrap HTTP errors raised by routes in the error envelope."""
        if exc.status_code == 404:
            code, user_message = ErrorCode.NOT_FOUND, "We couldn't find what you were looking for."
        elif exc.status_code < 500:
            code, user_message = ErrorCode.INVALID_INPUT, "Invalid request. Please check your input."
        else:
            code, user_message = ErrorCode.API_ERROR, "Something went wrong. Please try again."
        response = _error_response(exc.status_code, code, str(exc.detail), user_message)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc: Exception):
        """Handle Pydantic validation errors."""
        return _error_response(
            422,
            ErrorCode.VALIDATION_ERROR,
            str(exc),
            "Invalid request format. Please check your input.",
        )

    @app.exception_handler(ListingSourceError)
    async def source_exception_handler(request: Request, exc: ListingSourceError):
        logger.warning(f"[SOURCE] {exc}")
        return _error_response(
            502,
            ErrorCode.SOURCE_ERROR,
            str(exc),
            "The listing provider is unavailable. Please try again shortly.",
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors."""
        logger.exception("Unhandled error")
        return _error_response(
            500,
            ErrorCode.API_ERROR,
            str(exc),
            "Something went wrong. Please try again.",
        )


def create_app(
    settings: Settings | None = None,
    source: PropertySource | None = None,
) -> FastAPI:
    """Build the application and wire its services."""
    settings = settings or Settings()
    for problem in settings.validate():
        logger.warning(f"[CONFIG] {problem}")

    cache = ExpiringCache(default_ttl=settings.cache_ttl)
    limiter = ConcurrencyLimiter(settings.max_concurrent_requests)
    source = source or build_source(settings)
    shared_cache = (
        RedisCacheService(settings.redis_url, default_ttl=int(settings.cache_ttl))
        if settings.redis_url
        else None
    )
    listing_service = ListingService(source, cache, limiter, shared_cache=shared_cache)
    hub = AssistantHub(listing_service)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        sweeper = asyncio.create_task(sweep_periodically(cache, settings.cache_sweep_interval))
        logger.info(
            f"[STARTUP] source={source.name} ttl={settings.cache_ttl:.0f}s "
            f"max_concurrent={limiter.max_concurrent} redis={'on' if shared_cache else 'off'}"
        )
        yield
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await source.close()
        if shared_cache is not None:
            await shared_cache.disconnect()

    app = FastAPI(
        title="Property Hub API",
        description="Cached, rate-limited listing search for the CRM dashboard",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.cache = cache
    app.state.limiter = limiter
    app.state.listing_service = listing_service
    app.state.assistant_hub = hub

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "cache_entries": len(cache)}

    return app


def main() -> None:
    import uvicorn

    settings = Settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
