"""Min-balance override of target percentages."""

from decimal import Decimal

from src.ar_common.decimals import CLOSEST_TO_ONE, ONE, ZERO, div, fixed_point, mul
from src.ar_common.enums import TargetOverrideStrategy
from src.ar_common.errors import InvalidOverrideSumError, NoMinBalanceTargetFoundError
from src.ar_rebalancer.domain.models import RebalancerConfig, TargetHelper


def verify_targets(
    config: RebalancerConfig, total_value: Decimal, targets: list[TargetHelper]
) -> list[TargetHelper]:
    """Raise the min-balance target's percentage when its share of
    total_value would leave it under min_balance, and shrink the others to
    make room.

    Percentages are rewritten on the helpers' own target copies; the stored
    config keeps its original allocation.
    """
    floor_target = next((t for t in targets if t.target.min_balance is not None), None)
    if floor_target is None:
        raise NoMinBalanceTargetFoundError()

    min_balance_value = div(floor_target.target.min_balance or 0, floor_target.price)
    naive_value = mul(total_value, floor_target.target.percentage)
    if naive_value >= min_balance_value:
        return targets

    with fixed_point():
        if min_balance_value >= total_value:
            new_perc, leftover = ONE, ZERO
        else:
            new_perc = div(min_balance_value, total_value)
            leftover = ONE - new_perc

        old_leftover = ONE - floor_target.target.percentage
        new_total = new_perc

        for helper in targets:
            target = helper.target
            if target.denom == floor_target.target.denom:
                target.percentage = new_perc
                continue
            if leftover == ZERO:
                target.percentage = ZERO
                continue

            if config.target_override_strategy == TargetOverrideStrategy.PROPORTIONAL:
                target.percentage = mul(div(target.percentage, old_leftover), leftover)
            elif leftover >= target.percentage:
                leftover -= target.percentage
            else:
                target.percentage = leftover
                leftover = ZERO

            new_total += target.percentage

    if new_total > ONE or new_total < CLOSEST_TO_ONE:
        raise InvalidOverrideSumError(str(new_total))
    return targets
