import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vacancy_api.api.routes import error_response, router
from vacancy_api.config import settings
from vacancy_api.infrastructure.browser import BrowserSession
from vacancy_api.infrastructure.empty_seat_client import EmptySeatClient
from vacancy_api.infrastructure.vacancy_page_client import VacancyPageClient
from vacancy_api.services.retry import RetryPolicy
from vacancy_api.services.scheduler import VacancyScheduler
from vacancy_api.services.vacancy_cache import VacancyCache
from vacancy_api.services.vacancy_service import VacancyService

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    cache = VacancyCache(ttl_seconds=settings.cache_ttl, check_period=settings.cache_check_period)
    browser = BrowserSession(headless=settings.browser_headless)
    service = VacancyService(
        direct=EmptySeatClient(settings.api_url, settings.base_url, timeout=settings.request_timeout),
        rendered=VacancyPageClient(
            browser,
            settings.base_url,
            api_path_marker=settings.api_path_marker,
            navigation_timeout=settings.navigation_timeout,
            content_selector_timeout=settings.content_selector_timeout,
            content_populated_timeout=settings.content_populated_timeout,
            settle_delay=settings.settle_delay,
            debug_dump_dir=settings.debug_dump_dir,
        ),
        cache=cache,
        seat_name=settings.target_seat_name,
        category_id=settings.target_category_id,
        store_names=settings.store_names,
        retry_policy=RetryPolicy(max_attempts=settings.request_max_attempts),
    )
    scheduler = VacancyScheduler(
        service,
        settings.default_store_codes,
        interval_minutes=settings.schedule_interval_minutes,
        margin_minutes=settings.schedule_margin_minutes,
        max_attempts=settings.scheduler_max_attempts,
    )
    app.state.vacancy_service = service

    cache.start()
    if settings.scheduler_enabled:
        scheduler.start()
    logger.info("Vacancy API started (cache TTL %ss)", settings.cache_ttl)

    try:
        yield
    finally:
        scheduler.stop()
        await cache.stop()
        await browser.close()
        logger.info("Vacancy API stopped")


app = FastAPI(
    title="Vacancy API",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)
app.include_router(router)


@app.get("/")
async def index() -> dict:
    return {
        "success": True,
        "message": "Vacancy API",
        "version": app.version,
        "endpoints": {
            "GET /api/vacancy/{store_code}": "Get vacancy information for a store",
            "GET /api/cache/stats": "Get cache statistics",
            "POST /api/cache/clear": "Clear cache",
        },
    }


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    if any("store_code" in err.get("loc", ()) for err in exc.errors()):
        return error_response(400, "INVALID_STORE_CODE", "Store code must be a 5-digit number")
    return error_response(400, "INVALID_REQUEST", str(exc.errors()))


def run() -> None:
    uvicorn.run("vacancy_api.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
