"""Auction REST API.

Admin endpoints (create, policy updates, pause/resume, open) require the admin
token. Deposits, withdrawals and bids act on behalf of the calling address.
Settlement and cleanup can be driven by any authenticated caller.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.ar_auction.application.schemas import (
    ActiveAuctionResponse,
    AmountRequest,
    AuctionConfigResponse,
    BidResponse,
    ChainHaltSchema,
    CreateAuctionRequest,
    FinishAuctionRequest,
    FinishAuctionResponse,
    FundsResponse,
    MinAmountSchema,
    MmDataResponse,
    OpenAuctionRequest,
    PriceFreshnessSchema,
    StrategySchema,
    TwapPriceResponse,
)
from src.ar_auction.application.service import AuctionService
from src.ar_common.block import current_block
from src.ar_common.database import get_db_session
from src.ar_common.enums import AuctionStatus
from src.ar_common.pair import Pair
from src.ar_common.response import ApiResponse, success_response
from src.ar_gateway.auth.dependencies import get_current_caller, require_admin

router = APIRouter(tags=["auctions"])

_service = AuctionService()

_PAIR_PATH = "/auctions/{sell_denom}/{buy_denom}"


@router.get("/auctions")
async def list_pairs(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    pairs = await _service.list_pairs(db)
    return success_response(
        [{"sell_denom": p.sell_denom, "buy_denom": p.buy_denom} for p in pairs]
    )


@router.post("/auctions")
async def create_auction(
    body: CreateAuctionRequest,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        config = await _service.create_auction(
            db,
            Pair(body.sell_denom, body.buy_denom),
            body.strategy.to_domain(),
            body.chain_halt_config.to_domain(),
            body.price_freshness_strategy.to_domain(),
            current_block(),
            body.min_amount.to_domain() if body.min_amount else None,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(AuctionConfigResponse.from_domain(config).model_dump(mode="json"))


@router.get(_PAIR_PATH)
async def get_auction(
    sell_denom: str,
    buy_denom: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    pair = Pair(sell_denom, buy_denom)
    auction = await _service.get_auction(db, pair)
    price = None
    if auction.status == AuctionStatus.STARTED:
        price = await _service.get_current_price(db, pair, current_block())
    ids = await _service.get_ids(db, pair)
    data = ActiveAuctionResponse.from_domain(auction, price).model_dump(mode="json")
    data["auction_id"] = ids.curr
    data["next_auction_id"] = ids.next
    return success_response(data)


@router.get(_PAIR_PATH + "/config")
async def get_config(
    sell_denom: str,
    buy_denom: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    config = await _service.get_config(db, Pair(sell_denom, buy_denom))
    return success_response(AuctionConfigResponse.from_domain(config).model_dump(mode="json"))


@router.get(_PAIR_PATH + "/address")
async def resolve_pair(
    sell_denom: str,
    buy_denom: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    address = await _service.resolve_pair(db, Pair(sell_denom, buy_denom))
    return success_response(
        {"sell_denom": sell_denom, "buy_denom": buy_denom, "address": address}
    )


@router.get(_PAIR_PATH + "/strategy")
async def get_strategy(
    sell_denom: str,
    buy_denom: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    strategy = await _service.get_strategy(db, Pair(sell_denom, buy_denom))
    return success_response(
        StrategySchema(
            start_price_perc=strategy.start_price_perc, end_price_perc=strategy.end_price_perc
        ).model_dump()
    )


@router.put(_PAIR_PATH + "/strategy")
async def update_strategy(
    sell_denom: str,
    buy_denom: str,
    body: StrategySchema,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        await _service.update_strategy(db, Pair(sell_denom, buy_denom), body.to_domain())
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(body.model_dump())


@router.put(_PAIR_PATH + "/chain-halt")
async def update_chain_halt_config(
    sell_denom: str,
    buy_denom: str,
    body: ChainHaltSchema,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        config = await _service.update_chain_halt_config(
            db, Pair(sell_denom, buy_denom), body.to_domain()
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(AuctionConfigResponse.from_domain(config).model_dump(mode="json"))


@router.put(_PAIR_PATH + "/price-freshness")
async def update_price_freshness_strategy(
    sell_denom: str,
    buy_denom: str,
    body: PriceFreshnessSchema,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        config = await _service.update_price_freshness_strategy(
            db, Pair(sell_denom, buy_denom), body.to_domain()
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(AuctionConfigResponse.from_domain(config).model_dump(mode="json"))


@router.post(_PAIR_PATH + "/pause")
async def pause_auction(
    sell_denom: str,
    buy_denom: str,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        config = await _service.set_paused(db, Pair(sell_denom, buy_denom), True)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(AuctionConfigResponse.from_domain(config).model_dump(mode="json"))


@router.post(_PAIR_PATH + "/resume")
async def resume_auction(
    sell_denom: str,
    buy_denom: str,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        config = await _service.set_paused(db, Pair(sell_denom, buy_denom), False)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(AuctionConfigResponse.from_domain(config).model_dump(mode="json"))


@router.post(_PAIR_PATH + "/open")
async def open_auction(
    sell_denom: str,
    buy_denom: str,
    body: OpenAuctionRequest,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        auction = await _service.open_auction(
            db, Pair(sell_denom, buy_denom), body.end_block, current_block(), body.start_block
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(ActiveAuctionResponse.from_domain(auction).model_dump(mode="json"))


@router.post(_PAIR_PATH + "/funds")
async def auction_funds(
    sell_denom: str,
    buy_denom: str,
    body: AmountRequest,
    caller: Annotated[str, Depends(get_current_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        total = await _service.auction_funds(db, Pair(sell_denom, buy_denom), caller, body.amount)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response({"provider": caller, "next": total})


@router.delete(_PAIR_PATH + "/funds")
async def withdraw_funds(
    sell_denom: str,
    buy_denom: str,
    caller: Annotated[str, Depends(get_current_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        amount = await _service.withdraw_funds(db, Pair(sell_denom, buy_denom), caller)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response({"provider": caller, "withdrawn": amount})


@router.get(_PAIR_PATH + "/funds/{provider}")
async def get_funds_amount(
    sell_denom: str,
    buy_denom: str,
    provider: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    curr, nxt = await _service.get_funds_amount(db, Pair(sell_denom, buy_denom), provider)
    return success_response(FundsResponse(provider=provider, curr=curr, next=nxt).model_dump())


@router.post(_PAIR_PATH + "/bids")
async def bid(
    sell_denom: str,
    buy_denom: str,
    body: AmountRequest,
    caller: Annotated[str, Depends(get_current_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        outcome = await _service.bid(
            db, Pair(sell_denom, buy_denom), caller, body.amount, current_block()
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(BidResponse.from_domain(outcome).model_dump())


@router.post(_PAIR_PATH + "/finish")
async def finish_auction(
    sell_denom: str,
    buy_denom: str,
    body: FinishAuctionRequest,
    _caller: Annotated[str, Depends(get_current_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    limit = body.limit or settings.SETTLEMENT_DEFAULT_LIMIT
    try:
        auction, payouts = await _service.finish_auction(
            db, Pair(sell_denom, buy_denom), limit, current_block()
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(FinishAuctionResponse.from_domain(auction, payouts).model_dump())


@router.post(_PAIR_PATH + "/clean")
async def clean_auction(
    sell_denom: str,
    buy_denom: str,
    _caller: Annotated[str, Depends(get_current_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        auction_id = await _service.clean_auction(db, Pair(sell_denom, buy_denom))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response({"cleaned_auction_id": auction_id})


@router.get(_PAIR_PATH + "/twap")
async def get_twap_prices(
    sell_denom: str,
    buy_denom: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    samples = await _service.get_twap_prices(db, Pair(sell_denom, buy_denom))
    return success_response(
        [TwapPriceResponse.from_domain(s).model_dump(mode="json") for s in samples]
    )


@router.get(_PAIR_PATH + "/mm-data")
async def get_mm_data(
    sell_denom: str,
    buy_denom: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    pair = Pair(sell_denom, buy_denom)
    block = current_block()
    auction = await _service.get_auction(db, pair)
    price = await _service.get_current_price(db, pair, block)
    min_amount = await _service.get_min_amount(db, sell_denom)
    data = MmDataResponse(
        status=auction.status.value,
        available_amount=auction.available_amount,
        end_block=auction.end_block,
        current_price=price,
        block_height=block.height,
        min_start_auction=min_amount.start_auction,
    )
    return success_response(data.model_dump(mode="json"))


@router.get("/min-amounts/{denom}")
async def get_min_amount(
    denom: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    min_amount = await _service.get_min_amount(db, denom)
    return success_response(
        MinAmountSchema(send=min_amount.send, start_auction=min_amount.start_auction).model_dump()
    )


@router.put("/min-amounts/{denom}")
async def set_min_amount(
    denom: str,
    body: MinAmountSchema,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        await _service.set_min_amount(db, denom, body.to_domain())
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(body.model_dump())
