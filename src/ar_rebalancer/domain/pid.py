"""PID controller over target allocations.

For every target the error is the gap between the value the account should
hold (total_value * percentage) and the value it holds. A negative output
means the target is over-weight and should be sold, a positive one that it
should be bought.
"""

from decimal import Decimal

from src.ar_common.decimals import ONE, ZERO, div, fixed_point, is_negative, mul
from src.ar_rebalancer.domain.models import PID, TargetHelper

# dt never grows past this many cycles, however long an account was idle
MAX_PID_DT_VALUE = Decimal(10)


def calc_dt(now: int, last_rebalance: int, cycle_period: int) -> Decimal:
    if last_rebalance == 0:
        return ONE
    return min(div(now - last_rebalance, cycle_period), MAX_PID_DT_VALUE)


def do_pid(
    total_value: Decimal, targets: list[TargetHelper], pid: PID, dt: Decimal
) -> tuple[list[TargetHelper], list[TargetHelper]]:
    """Run one PID step per target; returns (to_sell, to_buy).

    Updates each helper's value_to_trade and its target's last_input/last_i.
    """
    to_sell: list[TargetHelper] = []
    to_buy: list[TargetHelper] = []

    for helper in targets:
        current = helper.balance_value
        target_value = mul(total_value, helper.target.percentage)

        with fixed_point():
            error = target_value - current
            p = mul(error, pid.p)
            i = helper.target.last_i + mul(mul(error, pid.i), dt)
            if helper.target.last_input is None:
                d = ZERO
            else:
                d = div(mul(current - helper.target.last_input, pid.d), dt)
            output = p + i - d

        helper.value_to_trade = abs(output)
        helper.target.last_input = current
        helper.target.last_i = i

        if output == ZERO:
            continue
        if is_negative(output):
            to_sell.append(helper)
        else:
            to_buy.append(helper)

    return to_sell, to_buy
