"""Pure pricing functions for the decaying-price auction.

No I/O. Prices are Decimal units of buy token per 1 sell token.
"""

from decimal import Decimal

from src.ar_auction.domain.models import (
    ActiveAuction,
    AuctionStrategy,
    ChainHaltConfig,
    PriceFreshnessStrategy,
)
from src.ar_common.block import BlockInfo
from src.ar_common.datetime_utils import SECONDS_PER_DAY
from src.ar_common.decimals import bps, div, fixed_point, floor_int, mul, truncate
from src.ar_common.errors import PriceTooOldError

# Strategy percentages never move the price more than 75% off the feed
MAX_PRICE_PERCENTAGE = Decimal("0.75")


def calc_price(auction: ActiveAuction, height: int) -> Decimal:
    """Linear decay from start_price at start_block to end_price at end_block.

    *height* is clamped to [start_block, end_block].
    """
    height = min(max(height, auction.start_block), auction.end_block)
    block_diff = auction.end_block - auction.start_block
    if block_diff <= 0:
        return auction.start_price
    with fixed_point():
        price_per_block = div(auction.start_price - auction.end_price, block_diff)
        return truncate(auction.start_price - mul(price_per_block, height - auction.start_block))


def calc_buy_amount(price: Decimal, amount: int) -> tuple[int, int]:
    """How much sell token *amount* of buy token purchases at *price*.

    Returns (bought, leftover): bought = floor(amount / price) and leftover is
    the buy-token remainder, floored.

    >>> calc_buy_amount(Decimal("1.5"), 4)
    (2, 1)
    """
    bought = floor_int(div(amount, price))
    with fixed_point():
        leftover = floor_int(Decimal(amount) - mul(bought, price))
    return bought, leftover


def is_chain_halted(config: ChainHaltConfig, last_checked: BlockInfo, current: BlockInfo) -> bool:
    blocks_passed = current.height - last_checked.height
    time_diff = current.time - last_checked.time
    return time_diff > blocks_passed * config.block_avg + config.cap


def price_age_days(price_time: int, now: int) -> Decimal:
    return div(max(now - price_time, 0), SECONDS_PER_DAY)


def strategy_prices(
    feed_price: Decimal,
    feed_time: int,
    now: int,
    strategy: AuctionStrategy,
    freshness: PriceFreshnessStrategy,
) -> tuple[Decimal, Decimal]:
    """Start and end price of a new round around the feed price.

    Raises PriceTooOldError when the feed is older than the freshness limit.
    """
    age = price_age_days(feed_time, now)
    if age > freshness.limit:
        raise PriceTooOldError(int(age), int(freshness.limit))

    multiplier = freshness.multiplier_for(age)
    start_perc = min(mul(bps(strategy.start_price_perc), multiplier), MAX_PRICE_PERCENTAGE)
    end_perc = min(mul(bps(strategy.end_price_perc), multiplier), MAX_PRICE_PERCENTAGE)

    with fixed_point():
        start_price = feed_price + mul(feed_price, start_perc)
        end_price = feed_price - mul(feed_price, end_perc)
    return start_price, end_price
