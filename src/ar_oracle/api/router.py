"""Price feed REST API: reads are public, manual updates are admin-only."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.ar_common.block import current_block
from src.ar_common.database import get_db_session
from src.ar_common.pair import Pair
from src.ar_common.response import ApiResponse, success_response
from src.ar_gateway.auth.dependencies import require_admin
from src.ar_oracle.application.schemas import PriceResponse, UpdatePriceRequest
from src.ar_oracle.application.service import PriceFeedService

router = APIRouter(prefix="/prices", tags=["prices"])

_service = PriceFeedService()


@router.get("")
async def list_prices(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    entries = await _service.list_prices(db)
    return success_response(
        [PriceResponse.from_domain(e).model_dump(mode="json") for e in entries]
    )


@router.get("/{sell_denom}/{buy_denom}")
async def get_price(
    sell_denom: str,
    buy_denom: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    entry = await _service.get_price(db, Pair(sell_denom, buy_denom))
    return success_response(PriceResponse.from_domain(entry).model_dump(mode="json"))


@router.put("/{sell_denom}/{buy_denom}")
async def update_price(
    sell_denom: str,
    buy_denom: str,
    body: UpdatePriceRequest,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        entry = await _service.update_price(
            db, Pair(sell_denom, buy_denom), body.price, current_block()
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(PriceResponse.from_domain(entry).model_dump(mode="json"))
