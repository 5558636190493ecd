from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from vacancy_api.infrastructure.models import VacancyStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DartVacancyResponse(CamelModel):
    available: int
    total: int
    status: VacancyStatus


class VacancyDataResponse(CamelModel):
    store_code: str = Field(alias="storeCode")
    store_name: str = Field(alias="storeName")
    dart_vacancy: DartVacancyResponse = Field(alias="dartVacancy")
    last_updated: datetime = Field(alias="lastUpdated")
    fetched_at: datetime = Field(alias="fetchedAt")


class VacancyResponse(CamelModel):
    success: bool = True
    data: VacancyDataResponse
    cached: bool
    cache_age: Optional[int] = Field(default=None, alias="cacheAge")


class CacheStatsData(BaseModel):
    hits: int
    misses: int
    count: int
    keys: list[str]


class CacheStatsResponse(BaseModel):
    success: bool = True
    data: CacheStatsData


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail
