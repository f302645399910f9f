"""Ledger REST API: balances and events are public, credits are admin-only."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.ar_common.database import get_db_session
from src.ar_common.response import ApiResponse, page_response, success_response
from src.ar_gateway.auth.dependencies import require_admin
from src.ar_ledger.application.schemas import CreditRequest, EventResponse
from src.ar_ledger.application.service import LedgerService

router = APIRouter(prefix="/ledger", tags=["ledger"])

_service = LedgerService()


@router.get("/balances/{holder}")
async def get_balances(
    holder: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    balances = await _service.get_balances(db, holder)
    return success_response({"holder": holder, "balances": balances})


@router.post("/credits")
async def credit(
    body: CreditRequest,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        balance = await _service.credit(db, body.holder, body.denom, body.amount)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response({"holder": body.holder, "denom": body.denom, "balance": balance})


@router.get("/events")
async def list_events(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    subject: str | None = Query(None),
    cursor: int | None = Query(None, description="Return events older than this id"),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    rows, has_more = await _service.list_events(db, subject, cursor, limit)
    items = [EventResponse.from_domain(i, e).model_dump(mode="json") for i, e in rows]
    next_cursor = str(rows[-1][0]) if has_more and rows else None
    return page_response(items, next_cursor, has_more)
