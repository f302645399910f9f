"""Round lifecycle: opening a round and applying bids.

Both functions are pure state transitions on ActiveAuction; the application
service loads state, calls them, moves tokens and persists the result.
"""

import logging
from decimal import Decimal

from src.ar_auction.domain.models import (
    ActiveAuction,
    AuctionConfig,
    AuctionIds,
    BidOutcome,
)
from src.ar_auction.domain.pricing import calc_buy_amount, calc_price, is_chain_halted
from src.ar_common.block import BlockInfo
from src.ar_common.decimals import floor_int, mul
from src.ar_common.enums import AuctionStatus
from src.ar_common.errors import (
    AuctionFinishedError,
    AuctionIsPausedError,
    AuctionNotClosedError,
    AuctionNotStartedError,
    InvalidAuctionEndBlockError,
    NoFundsForAuctionError,
)

logger = logging.getLogger(__name__)


def check_can_open(
    config: AuctionConfig,
    previous: ActiveAuction,
    next_funds: int,
    start_block: int,
    end_block: int,
) -> None:
    if config.paused:
        raise AuctionIsPausedError()
    if previous.status != AuctionStatus.AUCTION_CLOSED:
        raise AuctionNotClosedError()
    if end_block <= start_block:
        raise InvalidAuctionEndBlockError()
    if next_funds == 0:
        raise NoFundsForAuctionError()


def open_round(
    config: AuctionConfig,
    previous: ActiveAuction,
    ids: AuctionIds,
    next_funds: int,
    prices: tuple[Decimal, Decimal],
    block: BlockInfo,
    end_block: int,
    start_block: int | None = None,
) -> ActiveAuction:
    """Build the next round from the closed one and advance *ids* in place.

    The new round sells next_funds plus the previous sell leftover and starts
    with the previous buy leftover already resolved.
    """
    start = block.height if start_block is None else start_block
    check_can_open(config, previous, next_funds, start, end_block)

    start_price, end_price = prices
    total = next_funds + previous.leftovers[0]
    ids.curr = ids.next
    ids.next += 1

    return ActiveAuction(
        status=AuctionStatus.STARTED,
        start_block=start,
        end_block=end_block,
        start_price=start_price,
        end_price=end_price,
        available_amount=total,
        resolved_amount=previous.leftovers[1],
        total_amount=total,
        leftovers=[0, 0],
        last_checked_block=block,
    )


def apply_bid(
    auction: ActiveAuction, config: AuctionConfig, sent: int, block: BlockInfo
) -> BidOutcome:
    """Apply a bid of *sent* buy tokens at *block*, mutating *auction*."""
    if auction.status != AuctionStatus.STARTED:
        raise AuctionFinishedError()
    if auction.start_block > block.height:
        raise AuctionNotStartedError()
    if auction.end_block < block.height:
        raise AuctionFinishedError()
    if config.paused:
        raise AuctionIsPausedError()

    if is_chain_halted(config.chain_halt_config, auction.last_checked_block, block):
        logger.info("Chain halt detected for %s, finishing round", config.pair)
        auction.status = AuctionStatus.FINISHED
        auction.last_checked_block = block
        return BidOutcome(bought=0, refund=sent, halted=True)

    price = calc_price(auction, block.height)
    bought, refund = calc_buy_amount(price, sent)

    if bought > auction.available_amount:
        # Sold out: refund the part of the bid that cannot be filled
        refund += floor_int(mul(bought - auction.available_amount, price))
        bought = auction.available_amount
        auction.available_amount = 0
    else:
        auction.available_amount -= bought

    auction.resolved_amount += sent - refund
    if auction.available_amount == 0:
        auction.status = AuctionStatus.FINISHED
    auction.last_checked_block = block
    return BidOutcome(bought=bought, refund=refund)
