from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Path, Query, Request
from fastapi.responses import JSONResponse

from vacancy_api.api.schemas import (
    CacheStatsData,
    CacheStatsResponse,
    DartVacancyResponse,
    ErrorDetail,
    ErrorResponse,
    MessageResponse,
    VacancyDataResponse,
    VacancyResponse,
)
from vacancy_api.infrastructure.models import VacancyRecord
from vacancy_api.services.vacancy_service import VacancyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

STORE_CODE_PATTERN = r"^\d{5}$"


def get_vacancy_service(request: Request) -> VacancyService:
    return request.app.state.vacancy_service


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _record_to_response(record: VacancyRecord) -> VacancyDataResponse:
    availability = record.availability
    return VacancyDataResponse(
        store_code=record.store_code,
        store_name=record.store_name,
        dart_vacancy=DartVacancyResponse(
            available=availability.available,
            total=availability.total,
            status=availability.status,
        ),
        last_updated=record.upstream_updated_at,
        fetched_at=record.fetched_at,
    )


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/vacancy/{store_code}", response_model=VacancyResponse)
async def get_vacancy(
    store_code: str = Path(pattern=STORE_CODE_PATTERN, description="5-digit store code"),
    no_cache: bool = Query(False, alias="noCache"),
    service: VacancyService = Depends(get_vacancy_service),
):
    if not no_cache:
        hit = service.cached(store_code)
        if hit is not None:
            record, age = hit
            return VacancyResponse(data=_record_to_response(record), cached=True, cache_age=age)

    logger.info("Fetching fresh data for store: %s", store_code)
    try:
        record = await service.acquire(store_code)
    except Exception as e:
        logger.exception("Failed to fetch vacancy data for %s", store_code)
        return error_response(500, "SCRAPING_ERROR", str(e) or "Failed to fetch vacancy data")
    return VacancyResponse(data=_record_to_response(record), cached=False)


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(service: VacancyService = Depends(get_vacancy_service)) -> CacheStatsResponse:
    stats = service.cache_stats()
    return CacheStatsResponse(
        data=CacheStatsData(hits=stats.hits, misses=stats.misses, count=stats.count, keys=stats.keys)
    )


@router.post("/cache/clear", response_model=MessageResponse)
async def clear_cache(service: VacancyService = Depends(get_vacancy_service)) -> MessageResponse:
    service.cache_clear()
    return MessageResponse(message="Cache cleared successfully")
