"""Unit tests for the min-balance override of target percentages."""

from decimal import Decimal

import pytest

from src.ar_common.decimals import ONE, ZERO, bps, div
from src.ar_common.enums import TargetOverrideStrategy
from src.ar_common.errors import NoMinBalanceTargetFoundError
from src.ar_rebalancer.domain.models import PID, RebalancerConfig, Target, TargetHelper
from src.ar_rebalancer.domain.targets import verify_targets


def _helper(
    denom: str, target_bps: int, balance: int, price: str = "1", min_balance: int | None = None
) -> TargetHelper:
    return TargetHelper(
        target=Target.from_bps(denom, target_bps, min_balance),
        price=Decimal(price),
        balance_amount=balance,
        balance_value=div(balance, Decimal(price)),
    )


def _config(
    strategy: TargetOverrideStrategy = TargetOverrideStrategy.PROPORTIONAL,
) -> RebalancerConfig:
    return RebalancerConfig(
        base_denom="uusdc",
        targets=[],
        pid=PID(ONE, ZERO, ZERO),
        has_min_balance=True,
        target_override_strategy=strategy,
    )


def _percentages(helpers: list[TargetHelper]) -> dict[str, Decimal]:
    return {h.target.denom: h.target.percentage for h in helpers}


class TestVerifyTargets:
    def test_min_balance_raises_its_share(self) -> None:
        helpers = [
            _helper("untrn", 5000, 160, price="2"),
            _helper("uusdc", 5000, 20, min_balance=80),
        ]

        result = verify_targets(_config(), Decimal(100), helpers)

        assert _percentages(result) == {"untrn": Decimal("0.2"), "uusdc": Decimal("0.8")}

    def test_untouched_when_share_covers_min_balance(self) -> None:
        helpers = [
            _helper("untrn", 5000, 100),
            _helper("uusdc", 5000, 0, min_balance=40),
        ]

        result = verify_targets(_config(), Decimal(100), helpers)

        assert _percentages(result) == {"untrn": bps(5000), "uusdc": bps(5000)}

    def test_proportional_shrinks_others_evenly(self) -> None:
        helpers = [
            _helper("untrn", 5000, 50),
            _helper("uatom", 3000, 30),
            _helper("uusdc", 2000, 20, min_balance=80),
        ]

        result = verify_targets(_config(), Decimal(100), helpers)

        assert _percentages(result) == {
            "untrn": Decimal("0.125"),
            "uatom": Decimal("0.075"),
            "uusdc": Decimal("0.8"),
        }

    def test_priority_fills_in_list_order(self) -> None:
        helpers = [
            _helper("untrn", 5000, 50),
            _helper("uatom", 3000, 30),
            _helper("uusdc", 2000, 20, min_balance=80),
        ]

        result = verify_targets(
            _config(TargetOverrideStrategy.PRIORITY), Decimal(100), helpers
        )

        assert _percentages(result) == {
            "untrn": Decimal("0.2"),
            "uatom": ZERO,
            "uusdc": Decimal("0.8"),
        }

    def test_priority_keeps_targets_that_fit(self) -> None:
        helpers = [
            _helper("uatom", 1000, 10),
            _helper("untrn", 5000, 50),
            _helper("uusdc", 4000, 40, min_balance=60),
        ]

        result = verify_targets(
            _config(TargetOverrideStrategy.PRIORITY), Decimal(100), helpers
        )

        assert _percentages(result) == {
            "uatom": Decimal("0.1"),
            "untrn": Decimal("0.3"),
            "uusdc": Decimal("0.6"),
        }

    def test_min_balance_above_total_takes_everything(self) -> None:
        helpers = [
            _helper("untrn", 5000, 50),
            _helper("uusdc", 5000, 50, min_balance=500),
        ]

        result = verify_targets(_config(), Decimal(100), helpers)

        assert _percentages(result) == {"untrn": ZERO, "uusdc": ONE}

    def test_requires_min_balance_target(self) -> None:
        helpers = [_helper("untrn", 5000, 50), _helper("uusdc", 5000, 50)]
        with pytest.raises(NoMinBalanceTargetFoundError):
            verify_targets(_config(), Decimal(100), helpers)
