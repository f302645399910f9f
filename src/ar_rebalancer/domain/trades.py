"""Turn PID outputs into auction deposits.

Values are in base-denom terms; a trade amount is converted back to sell
tokens with ceil(value * price). Sells are matched against buys in list
order, each trade respecting the auction's minimum send amount, the sell
target's min_balance and the per-cycle sell cap (max_limit * total_value).
"""

from decimal import Decimal

from src.ar_common.decimals import ZERO, ceil_int, div, fixed_point, mul
from src.ar_common.errors import NoMinAuctionAmountFoundError
from src.ar_common.pair import Pair
from src.ar_rebalancer.domain.models import RebalancerConfig, TargetHelper, Trade


def set_auction_min_amounts(
    to_sell: list[TargetHelper], min_send_amounts: dict[str, int]
) -> None:
    """Express each sell denom's minimum auction deposit in base-denom value."""
    for helper in to_sell:
        amount = min_send_amounts.get(helper.target.denom)
        if amount is None:
            raise NoMinAuctionAmountFoundError(helper.target.denom)
        helper.auction_min_send_value = div(amount, helper.price)


def _min_balance_trade(
    to_sell: list[TargetHelper], to_buy: list[TargetHelper]
) -> Trade | None:
    """Force a minimum-size sell into the min-balance target.

    When the min-balance target needs less than the smallest deposit the
    first sell denom's auction accepts, the main loop would never fill it.
    Sell exactly that minimum instead.
    """
    token_buy = next((t for t in to_buy if t.target.min_balance is not None), None)
    if token_buy is None or not to_sell:
        return None

    token_sell = to_sell[0]
    min_send = token_sell.auction_min_send_value
    if token_buy.value_to_trade >= min_send:
        return None

    with fixed_point():
        token_sell.value_to_trade = max(token_sell.value_to_trade - min_send, ZERO)
    token_buy.value_to_trade = ZERO
    return Trade(
        pair=Pair(token_sell.target.denom, token_buy.target.denom),
        amount=ceil_int(mul(min_send, token_sell.price)),
    )


def _clip_to_min_balance(token_sell: TargetHelper) -> bool:
    """Shrink the sell so the balance stays at or above min_balance.

    Returns False when nothing can be sold from this target.
    """
    min_balance = token_sell.target.min_balance
    if min_balance is None:
        return True

    sell_amount = ceil_int(mul(token_sell.value_to_trade, token_sell.price))
    if token_sell.balance_amount < sell_amount:
        return False
    if token_sell.balance_amount - sell_amount < min_balance:
        diff = token_sell.balance_amount - min_balance
        if diff <= 0:
            return False
        token_sell.value_to_trade = div(diff, token_sell.price)
    return True


def generate_trades(
    to_sell: list[TargetHelper],
    to_buy: list[TargetHelper],
    config: RebalancerConfig,
    total_value: Decimal,
) -> list[Trade]:
    trades: list[Trade] = []
    max_sell = mul(config.max_limit, total_value)

    if config.has_min_balance:
        trade = _min_balance_trade(to_sell, to_buy)
        if trade is not None:
            trades.append(trade)
            with fixed_point():
                max_sell = max(max_sell - to_sell[0].auction_min_send_value, ZERO)

    for token_sell in to_sell:
        min_send = token_sell.auction_min_send_value
        for token_buy in to_buy:
            if token_buy.value_to_trade == ZERO or token_sell.value_to_trade == ZERO:
                continue
            if max_sell == ZERO:
                continue

            if not _clip_to_min_balance(token_sell):
                continue

            if token_sell.value_to_trade < min_send:
                token_sell.value_to_trade = ZERO
                continue

            if token_buy.value_to_trade < min_send:
                continue

            if token_sell.value_to_trade > max_sell:
                token_sell.value_to_trade = max_sell
                if token_sell.value_to_trade < min_send:
                    continue

            matched = min(token_sell.value_to_trade, token_buy.value_to_trade)
            with fixed_point():
                token_sell.value_to_trade -= matched
                token_buy.value_to_trade -= matched
                max_sell -= matched

            trades.append(
                Trade(
                    pair=Pair(token_sell.target.denom, token_buy.target.denom),
                    amount=ceil_int(mul(matched, token_sell.price)),
                )
            )

    return trades
