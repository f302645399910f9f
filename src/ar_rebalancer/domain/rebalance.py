"""Single-account rebalance decision.

Pure function of (config, balances, prices, min amounts, time): no I/O, so
the system cycle can run it inside a savepoint and discard everything on
error.
"""

import logging
from dataclasses import replace
from decimal import Decimal

from src.ar_common.decimals import ONE, ZERO, div, fixed_point, floor_int
from src.ar_common.errors import MissingPriceForDenomError
from src.ar_common.pair import Pair
from src.ar_rebalancer.domain.models import RebalanceResult, RebalancerConfig, TargetHelper
from src.ar_rebalancer.domain.pid import calc_dt, do_pid
from src.ar_rebalancer.domain.targets import verify_targets
from src.ar_rebalancer.domain.trades import generate_trades, set_auction_min_amounts

logger = logging.getLogger(__name__)

EVENT_ACCOUNT_REBALANCE = "rebalancer-account-rebalance"
EVENT_ACCOUNT_PAUSE = "rebalancer-account-rebalance-pause"


def get_inputs(
    config: RebalancerConfig, balances: dict[str, int], prices: dict[Pair, Decimal]
) -> tuple[Decimal, list[TargetHelper]]:
    """Value every target in base-denom terms.

    Returns (total_value, helpers). Helpers wrap copies of the config's
    targets so overrides never leak into the stored config.
    """
    total_value = ZERO
    helpers: list[TargetHelper] = []
    for target in config.targets:
        if target.denom == config.base_denom:
            price = ONE
        else:
            price = prices.get(Pair(config.base_denom, target.denom))
            if price is None:
                raise MissingPriceForDenomError(target.denom)

        balance = balances.get(target.denom, 0)
        value = div(balance, price)
        with fixed_point():
            total_value += value
        helpers.append(
            TargetHelper(
                target=replace(target),
                price=price,
                balance_amount=balance,
                balance_value=value,
            )
        )
    return total_value, helpers


def verify_account_balance(total_value: int, min_value: int) -> bool:
    """An account is worth rebalancing when it holds something and at least
    the base denom's minimum."""
    return total_value != 0 and total_value >= min_value


def do_rebalance(
    account: str,
    config: RebalancerConfig,
    balances: dict[str, int],
    prices: dict[Pair, Decimal],
    min_values: dict[str, int],
    min_send_amounts: dict[str, int],
    now: int,
    cycle_period: int,
) -> RebalanceResult:
    total_value, helpers = get_inputs(config, balances, prices)

    min_value = min_values.get(config.base_denom, 0)
    if not verify_account_balance(floor_int(total_value), min_value):
        logger.info(
            "Account %s below minimum value (%s < %d), pausing", account, total_value, min_value
        )
        return RebalanceResult(
            config=config,
            trades=[],
            event_type=EVENT_ACCOUNT_PAUSE,
            event={"account": account, "total_value": str(total_value)},
            should_pause=True,
        )

    if config.has_min_balance:
        helpers = verify_targets(config, total_value, helpers)

    dt = calc_dt(now, config.last_rebalance, cycle_period)
    to_sell, to_buy = do_pid(total_value, helpers, config.pid, dt)

    for target in config.targets:
        helper = next((h for h in helpers if h.target.denom == target.denom), None)
        if helper is not None:
            target.update_last(helper.target)

    set_auction_min_amounts(to_sell, min_send_amounts)
    trades = generate_trades(to_sell, to_buy, config, total_value)

    config.last_rebalance = now
    return RebalanceResult(
        config=config,
        trades=trades,
        event_type=EVENT_ACCOUNT_REBALANCE,
        event={
            "account": account,
            "total_value": str(total_value),
            "trades": [
                {
                    "sell_denom": t.pair.sell_denom,
                    "buy_denom": t.pair.buy_denom,
                    "amount": t.amount,
                }
                for t in trades
            ],
        },
    )
