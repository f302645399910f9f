"""Paginated pro-rata settlement of a finished round.

settle_page() is called once per invocation with the next page of
(provider, deposit) rows in ascending provider order. It returns the payouts
for that page and moves the round either to CLOSING (more pages remain) or
to AUCTION_CLOSED (pass complete).

Conservation once AUCTION_CLOSED is reached:
  Σ buy_amount + leftovers[1] == resolved_amount
  Σ sell_refund + leftovers[0] == available_amount
"""

import logging
from decimal import Decimal

from src.ar_auction.domain.models import (
    TWAP_MAX_SAMPLES,
    ActiveAuction,
    ClosingCursor,
    Payout,
    TwapPrice,
)
from src.ar_common.block import BlockInfo
from src.ar_common.decimals import ceil_int, checked_sub, div, floor_int, fraction, mul
from src.ar_common.enums import AuctionStatus
from src.ar_common.errors import (
    AuctionClosedError,
    AuctionStillGoingError,
    InvalidLimitError,
)

logger = logging.getLogger(__name__)

DEFAULT_ROUNDING_THRESHOLD = Decimal("0.9999")


def check_can_settle(auction: ActiveAuction, height: int) -> None:
    if auction.status == AuctionStatus.AUCTION_CLOSED:
        raise AuctionClosedError()
    if (
        auction.status == AuctionStatus.STARTED
        and auction.end_block > height
        and auction.available_amount != 0
    ):
        raise AuctionStillGoingError()


def round_allocation(value: Decimal, threshold: Decimal) -> int:
    """Round up when the fractional part reaches *threshold*, else down."""
    if fraction(value) >= threshold:
        return ceil_int(value)
    return floor_int(value)


def settle_page(
    auction: ActiveAuction,
    funds: list[tuple[str, int]],
    limit: int,
    threshold: Decimal = DEFAULT_ROUNDING_THRESHOLD,
) -> list[Payout]:
    """Allocate one page of providers; mutates *auction* status and leftovers.

    *funds* must be at most *limit* rows, ascending by provider, starting
    strictly after the cursor stored in auction.closing.
    """
    if limit < 1:
        raise InvalidLimitError()

    cursor = auction.closing
    sold_sent = cursor.sold_sent if cursor else 0
    bought_sent = cursor.bought_sent if cursor else 0
    last_provider = cursor.last_provider if cursor else None

    payouts: list[Payout] = []
    for provider, amount in funds[:limit]:
        last_provider = provider
        if auction.resolved_amount == 0:
            # Nothing was bought: the whole deposit goes back
            payouts.append(Payout(provider=provider, sell_refund=amount, buy_amount=0))
            sold_sent += amount
            continue

        share = div(amount, auction.total_amount)
        bought = round_allocation(mul(auction.resolved_amount, share), threshold)
        bought_sent += bought

        refund = 0
        if auction.available_amount != 0:
            refund = floor_int(mul(auction.available_amount, share))
            sold_sent += refund
        payouts.append(Payout(provider=provider, sell_refund=refund, buy_amount=bought))

    if len(payouts) < limit:
        auction.leftovers = [
            checked_sub(auction.available_amount, sold_sent),
            checked_sub(auction.resolved_amount, bought_sent),
        ]
        auction.status = AuctionStatus.AUCTION_CLOSED
        auction.closing = None
        logger.debug(
            "Settlement complete: sold_sent=%d bought_sent=%d leftovers=%s",
            sold_sent, bought_sent, auction.leftovers,
        )
    else:
        assert last_provider is not None, "a full page always has a last provider"
        auction.status = AuctionStatus.CLOSING
        auction.closing = ClosingCursor(
            last_provider=last_provider, sold_sent=sold_sent, bought_sent=bought_sent
        )
    return payouts


def twap_sample(auction: ActiveAuction, block: BlockInfo) -> TwapPrice | None:
    """Average price of a closed round, or None when nothing was sold."""
    sold = auction.total_amount - auction.available_amount
    if auction.total_amount == 0 or sold == 0:
        return None
    return TwapPrice(price=div(auction.resolved_amount, sold), time=block.time)


def push_twap(queue: list[TwapPrice], sample: TwapPrice) -> list[TwapPrice]:
    """Newest first; the oldest sample is evicted once the queue is full."""
    queue = list(queue)
    if len(queue) >= TWAP_MAX_SAMPLES:
        queue.pop()
    queue.insert(0, sample)
    return queue
