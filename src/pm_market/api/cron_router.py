"""Scheduled maintenance trigger, called by an external scheduler.

POST /cron/daily?secret=...   lock the previous period, ensure the current one
POST /cron/price?secret=...   refresh last_price of the current market
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.container import ServiceContainer, get_container, get_db_session
from src.pm_common.enums import MarketStatus
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import require_cron_secret
from src.pm_market.application.schemas import RollReportOut

router = APIRouter(
    prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)]
)


@router.post("/daily")
async def daily_roll(
    request: Request,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    report = await container.lifecycle.roll_period(db)
    return success_response(RollReportOut.from_domain(report).model_dump(by_alias=True), request)


@router.post("/price")
async def refresh_price(
    request: Request,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    market = await container.lifecycle.get_current_market(db)
    price = None
    if market is not None and market.status == MarketStatus.OPEN.value:
        price = await container.lifecycle.refresh_last_price(db, market.id)
    return success_response(
        {"market_id": market.id if market else None, "last_price": price}, request
    )
