"""Unit tests for the PID step and dt computation."""

from decimal import Decimal

import pytest

from src.ar_common.decimals import ONE, ZERO, bps, div
from src.ar_common.errors import PIDErrorOverError
from src.ar_rebalancer.domain.models import PID, Target, TargetHelper
from src.ar_rebalancer.domain.pid import MAX_PID_DT_VALUE, calc_dt, do_pid


def _helper(denom: str, target_bps: int, value: int, last_input: str | None = None) -> TargetHelper:
    target = Target.from_bps(denom, target_bps)
    if last_input is not None:
        target.last_input = Decimal(last_input)
    return TargetHelper(target=target, price=ONE, balance_amount=value, balance_value=div(value, 1))


class TestCalcDt:
    def test_first_rebalance(self) -> None:
        assert calc_dt(500_000, 0, 86400) == ONE

    def test_one_period(self) -> None:
        assert calc_dt(86400 * 3, 86400 * 2, 86400) == ONE

    def test_half_period(self) -> None:
        assert calc_dt(86400 * 2 + 43200, 86400 * 2, 86400) == Decimal("0.5")

    def test_capped_after_long_idle(self) -> None:
        assert calc_dt(86400 * 100, 86400, 86400) == MAX_PID_DT_VALUE


class TestDoPid:
    def test_proportional_step(self) -> None:
        helpers = [_helper("untrn", 5000, 70), _helper("uusdc", 5000, 30)]

        to_sell, to_buy = do_pid(Decimal(100), helpers, PID(ONE, ZERO, ZERO), ONE)

        assert [h.target.denom for h in to_sell] == ["untrn"]
        assert [h.target.denom for h in to_buy] == ["uusdc"]
        assert to_sell[0].value_to_trade == Decimal(20)
        assert to_buy[0].value_to_trade == Decimal(20)
        assert helpers[0].target.last_input == Decimal(70)
        assert helpers[1].target.last_input == Decimal(30)

    def test_integral_accumulates_with_dt(self) -> None:
        helpers = [_helper("untrn", 5000, 70), _helper("uusdc", 5000, 30)]

        _, to_buy = do_pid(Decimal(100), helpers, PID(ZERO, Decimal("0.5"), ZERO), Decimal(2))

        assert to_buy[0].value_to_trade == Decimal(20)
        assert helpers[1].target.last_i == Decimal(20)
        assert helpers[0].target.last_i == Decimal(-20)

    def test_derivative_damps_output(self) -> None:
        helpers = [_helper("untrn", 5000, 70, last_input="80"), _helper("uusdc", 5000, 30, "20")]

        to_sell, to_buy = do_pid(Decimal(100), helpers, PID(ONE, ZERO, ONE), ONE)

        assert to_buy[0].value_to_trade == Decimal(10)
        assert to_sell[0].value_to_trade == Decimal(10)

    def test_balanced_account_trades_nothing(self) -> None:
        helpers = [_helper("untrn", 5000, 50), _helper("uusdc", 5000, 50)]

        to_sell, to_buy = do_pid(Decimal(100), helpers, PID(ONE, ONE, ONE), ONE)

        assert to_sell == []
        assert to_buy == []
        assert all(h.value_to_trade == ZERO for h in helpers)

    def test_uneven_targets(self) -> None:
        helpers = [
            _helper("untrn", 2000, 40),
            _helper("uatom", 3000, 30),
            _helper("uusdc", 5000, 30),
        ]

        to_sell, to_buy = do_pid(Decimal(100), helpers, PID(ONE, ZERO, ZERO), ONE)

        assert [h.target.denom for h in to_sell] == ["untrn"]
        assert [h.target.denom for h in to_buy] == ["uusdc"]
        assert to_sell[0].value_to_trade == Decimal(20)
        assert helpers[1].target.percentage == bps(3000)


class TestPIDVerify:
    def test_p_over_one(self) -> None:
        with pytest.raises(PIDErrorOverError):
            PID(Decimal("1.1"), ZERO, ZERO).verify()

    def test_i_over_one(self) -> None:
        with pytest.raises(PIDErrorOverError):
            PID(ZERO, Decimal(2), ZERO).verify()

    def test_d_is_unbounded(self) -> None:
        pid = PID(ONE, ONE, Decimal(5))
        assert pid.verify() is pid
