"""Unit tests for paginated pro-rata settlement and the TWAP queue."""

from decimal import Decimal

import pytest

from src.ar_auction.domain.models import TWAP_MAX_SAMPLES, ActiveAuction, TwapPrice
from src.ar_auction.domain.settlement import (
    check_can_settle,
    push_twap,
    round_allocation,
    settle_page,
    twap_sample,
)
from src.ar_common.block import BlockInfo
from src.ar_common.enums import AuctionStatus
from src.ar_common.errors import AuctionClosedError, AuctionStillGoingError, InvalidLimitError


def _finished(total: int, available: int, resolved: int) -> ActiveAuction:
    return ActiveAuction(
        status=AuctionStatus.FINISHED,
        start_block=100,
        end_block=200,
        start_price=Decimal(2),
        end_price=Decimal(1),
        available_amount=available,
        resolved_amount=resolved,
        total_amount=total,
        leftovers=[0, 0],
        last_checked_block=BlockInfo(200, 1_000_000),
    )


def _settle_all(
    auction: ActiveAuction, funds: list[tuple[str, int]], limit: int
) -> tuple[list, int]:
    """Drive settle_page to completion; returns (payouts, calls)."""
    payouts = []
    calls = 0
    while auction.status != AuctionStatus.AUCTION_CLOSED:
        start_after = auction.closing.last_provider if auction.closing else None
        page = [f for f in funds if start_after is None or f[0] > start_after][:limit]
        payouts.extend(settle_page(auction, page, limit))
        calls += 1
    return payouts, calls


class TestCheckCanSettle:
    def test_running_auction(self) -> None:
        auction = _finished(1000, 200, 0)
        auction.status = AuctionStatus.STARTED
        with pytest.raises(AuctionStillGoingError):
            check_can_settle(auction, 150)

    def test_started_auction_past_end(self) -> None:
        auction = _finished(1000, 200, 0)
        auction.status = AuctionStatus.STARTED
        check_can_settle(auction, 200)

    def test_sold_out_auction_settles_early(self) -> None:
        auction = _finished(1000, 0, 1500)
        auction.status = AuctionStatus.STARTED
        check_can_settle(auction, 150)

    def test_already_closed(self) -> None:
        auction = ActiveAuction.closed(BlockInfo(1, 1))
        with pytest.raises(AuctionClosedError):
            check_can_settle(auction, 150)


class TestSettlePage:
    def test_single_page(self) -> None:
        auction = _finished(1000, 200, 1200)
        payouts = settle_page(auction, [("a", 500), ("b", 300), ("c", 200)], 10)

        assert [(p.provider, p.buy_amount, p.sell_refund) for p in payouts] == [
            ("a", 600, 100),
            ("b", 360, 60),
            ("c", 240, 40),
        ]
        assert auction.status == AuctionStatus.AUCTION_CLOSED
        assert auction.leftovers == [0, 0]
        assert auction.closing is None

    def test_paginated_pass_stores_cursor(self) -> None:
        auction = _finished(1000, 200, 1200)
        settle_page(auction, [("a", 500), ("b", 300)], 2)

        assert auction.status == AuctionStatus.CLOSING
        assert auction.closing is not None
        assert auction.closing.last_provider == "b"
        assert auction.closing.sold_sent == 160
        assert auction.closing.bought_sent == 960

        settle_page(auction, [("c", 200)], 2)
        assert auction.status == AuctionStatus.AUCTION_CLOSED
        assert auction.leftovers == [0, 0]

    def test_full_last_page_needs_one_more_call(self) -> None:
        auction = _finished(1000, 200, 1200)
        funds = [("a", 500), ("b", 300), ("c", 200)]
        _, calls = _settle_all(auction, funds, 3)
        assert calls == 2

    def test_nothing_bought_refunds_deposits(self) -> None:
        auction = _finished(1000, 1000, 0)
        payouts = settle_page(auction, [("a", 600), ("b", 400)], 10)

        assert [(p.sell_refund, p.buy_amount) for p in payouts] == [(600, 0), (400, 0)]
        assert auction.leftovers == [0, 0]

    def test_rounding_dust_goes_to_leftovers(self) -> None:
        auction = _finished(3, 0, 10)
        payouts = settle_page(auction, [("a", 1), ("b", 1), ("c", 1)], 10)

        assert [p.buy_amount for p in payouts] == [3, 3, 3]
        assert auction.leftovers == [0, 1]

    def test_near_integer_shares_round_up(self) -> None:
        auction = _finished(3, 0, 3)
        payouts = settle_page(auction, [("a", 1), ("b", 1), ("c", 1)], 10)

        assert [p.buy_amount for p in payouts] == [1, 1, 1]
        assert auction.leftovers == [0, 0]

    def test_conservation_across_pages(self) -> None:
        funds = [
            ("p1", 123), ("p2", 456), ("p3", 789), ("p4", 1011),
            ("p5", 1213), ("p6", 1415), ("p7", 1617),
        ]
        total = sum(amount for _, amount in funds)
        auction = _finished(total, 1000, 9999)

        payouts, _ = _settle_all(auction, funds, 2)

        assert len(payouts) == len(funds)
        assert sum(p.buy_amount for p in payouts) + auction.leftovers[1] == 9999
        assert sum(p.sell_refund for p in payouts) + auction.leftovers[0] == 1000

    def test_page_size_does_not_change_payouts(self) -> None:
        funds = [("p1", 123), ("p2", 456), ("p3", 789), ("p4", 1011)]
        total = sum(amount for _, amount in funds)

        one_page, _ = _settle_all(_finished(total, 77, 5000), funds, 10)
        many_pages, _ = _settle_all(_finished(total, 77, 5000), funds, 1)

        assert one_page == many_pages

    def test_limit_must_be_positive(self) -> None:
        with pytest.raises(InvalidLimitError):
            settle_page(_finished(1000, 0, 10), [], 0)


class TestRoundAllocation:
    def test_threshold(self) -> None:
        threshold = Decimal("0.9999")
        assert round_allocation(Decimal("0.99995"), threshold) == 1
        assert round_allocation(Decimal("2.5"), threshold) == 2
        assert round_allocation(Decimal("4"), threshold) == 4


class TestTwap:
    def test_sample_is_average_sold_price(self) -> None:
        auction = _finished(1000, 200, 1200)
        sample = twap_sample(auction, BlockInfo(200, 5000))
        assert sample == TwapPrice(price=Decimal("1.5"), time=5000)

    def test_no_sample_when_nothing_sold(self) -> None:
        assert twap_sample(_finished(1000, 1000, 0), BlockInfo(200, 5000)) is None

    def test_queue_is_capped_newest_first(self) -> None:
        queue = [TwapPrice(Decimal(i), i) for i in range(TWAP_MAX_SAMPLES)]
        pushed = push_twap(queue, TwapPrice(Decimal(99), 99))

        assert len(pushed) == TWAP_MAX_SAMPLES
        assert pushed[0].time == 99
        assert pushed[-1].time == TWAP_MAX_SAMPLES - 2
        assert len(queue) == TWAP_MAX_SAMPLES
