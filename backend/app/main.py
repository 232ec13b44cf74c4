"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.app.api import admin, jobs, sources
from backend.app.core.config import Settings, get_settings
from jobharvest.errors import HarvestError, ScrapeTimeoutError
from jobharvest.service import HarvestService

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[HarvestService] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI app.

    A prebuilt service can be passed in (tests inject one with a fake
    transport); otherwise the lifespan builds one from settings.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        harvest = service or HarvestService.create(settings.to_crawl_config())
        app.state.service = harvest
        await harvest.queue.start()
        logger.info("Harvest service ready with %d sources", len(harvest.registry))

        # Start scheduler if not in debug mode
        scheduler = None
        if not settings.debug:
            from apscheduler.schedulers.asyncio import AsyncIOScheduler

            scheduler = AsyncIOScheduler()
            scheduler.add_job(
                harvest.refresh,
                "interval",
                minutes=settings.refresh_interval_minutes,
                id="cache_refresh",
            )
            scheduler.start()
            logger.info("Scheduler started, refreshing every %dm", settings.refresh_interval_minutes)

        yield

        # Cleanup
        if scheduler is not None:
            scheduler.shutdown(wait=False)
        await harvest.close()

    def _error_response(request: Request, status_code: int, error: str) -> JSONResponse:
        response = JSONResponse(
            status_code=status_code,
            content={"success": False, "error": error},
        )
        # Add CORS headers manually
        origin = request.headers.get("origin")
        if origin and origin in settings.cors_origins_list:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
        return response

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        description="Job listing crawler and cache API",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Every error leaves as {"success": false, "error": ...}
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(request, exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
            for err in exc.errors()
        )
        return _error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, errors or "Invalid request")

    @app.exception_handler(ScrapeTimeoutError)
    async def timeout_exception_handler(request: Request, exc: ScrapeTimeoutError):
        return _error_response(request, status.HTTP_504_GATEWAY_TIMEOUT, str(exc))

    @app.exception_handler(HarvestError)
    async def harvest_exception_handler(request: Request, exc: HarvestError):
        logger.error("Harvest error on %s: %s", request.url.path, exc)
        return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s", request.url.path)
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            str(exc) or "Unknown error",
        )

    # Routes
    app.include_router(sources.router, prefix=settings.api_prefix)
    app.include_router(jobs.router, prefix=settings.api_prefix)
    app.include_router(admin.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": "1.0.0",
            "docs": "/docs",
        }

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("backend.app.main:app", host="0.0.0.0", port=8000, reload=True)
