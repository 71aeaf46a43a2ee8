# src/pm_admin/api/router.py
"""Admin REST API, guarded by the shared maintenance secret."""
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.container import ServiceContainer, get_container, get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import require_cron_secret

router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(require_cron_secret)]
)


class ResolveRequest(BaseModel):
    outcome: Literal["UP", "DOWN"]


@router.post("/markets/{market_id}/resolve")
async def resolve_market(
    market_id: str,
    body: ResolveRequest,
    request: Request,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await container.admin.resolve_market(market_id, body.outcome, db)
    return success_response(result, request)


@router.get("/invariants")
async def verify_invariants(
    request: Request,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await container.admin.verify_pool_invariants(db)
    return success_response(result, request)
