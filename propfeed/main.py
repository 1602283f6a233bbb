"""FastAPI application factory and startup configuration.

The lifespan builds the adapter fleet, the ScrapingManager, the scheduler and
the FeedService once, and stores the feed service on ``app.state``.
"""
from contextlib import asynccontextmanager
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from propfeed.adapters import build_adapters
from propfeed.api.responses import error_envelope, ok
from propfeed.api.v1.scraping import router as scraping_router
from propfeed.config import Settings, settings
from propfeed.core.exceptions import (
    AlreadyRunningError,
    AppException,
    ScrapingError,
    UnknownSourceError,
)
from propfeed.core.logging import get_logger, setup_logging
from propfeed.services.feed_service import FeedService
from propfeed.services.scheduler_service import ScrapeScheduler
from propfeed.services.scraper_service import ScrapingManager

logger = get_logger(__name__)


def build_feed_service(config: Settings) -> FeedService:
    """Wire adapters, manager and scheduler from settings."""
    manager = ScrapingManager(build_adapters(config), stagger_delay=config.stagger_delay_seconds)
    scheduler = ScrapeScheduler(manager, config.cron_schedules(), timezone=config.scheduler_timezone)
    return FeedService(manager, scheduler, history_limit=config.history_limit)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown events."""
    setup_logging()
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)

    feed: Optional[FeedService] = getattr(app.state, "feed_service", None)
    if feed is None:
        feed = build_feed_service(settings)
        app.state.feed_service = feed

    if settings.scheduler_enabled and feed.scheduler is not None:
        feed.scheduler.start()

    if settings.solve_captcha and not settings.captcha_api_key:
        logger.warning("CAPTCHA_API_KEY not set; detected CAPTCHAs will not be solved.")

    yield

    logger.info("Shutting down %s", settings.app_name)
    await feed.close()


def create_app(feed_service: Optional[FeedService] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``feed_service`` replaces the one the lifespan would build from settings.
    """
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Saudi real-estate listing feed: scrape, canonicalize and serve property listings.",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    if feed_service is not None:
        application.state.feed_service = feed_service

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def add_trace_id(request: Request, call_next):
        request.state.trace_id = str(uuid4())
        response = await call_next(request)
        response.headers["X-Trace-Id"] = request.state.trace_id
        return response

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        trace_id = getattr(request.state, "trace_id", None)
        logger.exception("Unhandled exception [trace_id=%s]", trace_id, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=error_envelope("Internal error", request, errors=["Internal server error"]),
        )

    @application.exception_handler(AlreadyRunningError)
    async def already_running_handler(request: Request, exc: AlreadyRunningError):
        return JSONResponse(status_code=409, content=error_envelope(exc.message, request))

    @application.exception_handler(UnknownSourceError)
    async def unknown_source_handler(request: Request, exc: UnknownSourceError):
        return JSONResponse(status_code=400, content=error_envelope(exc.message, request))

    @application.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        status_code = 500 if isinstance(exc, ScrapingError) else 400
        if status_code == 500:
            logger.error("Scraping error [trace_id=%s]: %s", getattr(request.state, "trace_id", None), exc.message)
        return JSONResponse(status_code=status_code, content=error_envelope(exc.message, request))

    application.include_router(scraping_router, prefix="/api/v1/scraping", tags=["scraping"])

    @application.get("/health", tags=["system"])
    async def health_check(request: Request):
        feed: Optional[FeedService] = getattr(request.app.state, "feed_service", None)
        guard = feed.manager.status() if feed is not None else {}
        return ok(
            {
                "status": "healthy" if feed is not None else "starting",
                "version": settings.app_version,
                "is_running": guard.get("is_running", False),
                "scheduler": feed.scheduler.enabled if feed is not None and feed.scheduler else False,
            },
            "Health check completed",
            request,
        )

    return application


app = create_app()
