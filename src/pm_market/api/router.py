"""pm_market REST endpoints (read-only, public).

GET /market/today                           current-period snapshot (404 until created)
GET /market/latest                          most recent market, optional ?status=
GET /market/today/history                   pool history of the current-period market
GET /markets/{market_id}                    snapshot by id
GET /markets/{market_id}/history            pool history, ?bucket_minutes=
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.container import ServiceContainer, get_container, get_db_session
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import MarketStatus
from src.pm_common.errors import MarketNotFoundError
from src.pm_common.response import ApiResponse, success_response

router = APIRouter(tags=["markets"])

_BucketMinutes = Query(None, ge=1, le=1440, description="Bucket width in minutes")


@router.get("/market/today")
async def get_today_market(
    request: Request,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await container.queries.current_snapshot(db)
    return success_response(result.model_dump(), request)


@router.get("/market/latest")
async def get_latest_market(
    request: Request,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: MarketStatus | None = Query(None),
) -> ApiResponse:
    result = await container.queries.latest_snapshot(db, status)
    return success_response(result.model_dump(), request)


@router.get("/market/today/history")
async def get_today_history(
    request: Request,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    bucket_minutes: int | None = _BucketMinutes,
) -> ApiResponse:
    market = await container.lifecycle.get_current_market(db)
    if market is None:
        raise MarketNotFoundError(container.lifecycle.calendar.current_market_id(utc_now()))
    result = await container.queries.history(
        db, market.id, bucket_minutes or container.history_bucket_minutes
    )
    return success_response(result.model_dump(), request)


@router.get("/markets/{market_id}")
async def get_market(
    market_id: str,
    request: Request,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await container.queries.snapshot(db, market_id)
    return success_response(result.model_dump(), request)


@router.get("/markets/{market_id}/history")
async def get_market_history(
    market_id: str,
    request: Request,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    bucket_minutes: int | None = _BucketMinutes,
) -> ApiResponse:
    result = await container.queries.history(
        db, market_id, bucket_minutes or container.history_bucket_minutes
    )
    return success_response(result.model_dump(), request)
