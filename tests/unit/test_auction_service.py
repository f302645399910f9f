"""AuctionService flows against in-memory repositories."""

from decimal import Decimal

import pytest
from fakes import FakeAuctionRepository, FakeLedgerRepository, FakePriceRepository, FakeSession

from src.ar_auction.application.service import AuctionService
from src.ar_auction.domain.models import (
    AuctionStrategy,
    ChainHaltConfig,
    MinAmount,
    PriceFreshnessStrategy,
)
from src.ar_common.block import BlockInfo
from src.ar_common.enums import AuctionStatus
from src.ar_common.errors import (
    AuctionAmountTooLowError,
    AuctionExistsError,
    AuctionIsPausedError,
    AuctionNotClosedError,
    AuctionNotFoundError,
    AuctionStillGoingError,
    InsufficientBalanceError,
    NoFundsToWithdrawError,
    NoTokenMinAmountError,
)
from src.ar_common.pair import Pair
from src.ar_ledger.domain.models import escrow_address
from src.ar_oracle.application.service import PriceFeedService
from src.ar_oracle.domain.models import PriceEntry

T0 = 1_700_000_000
PAIR = Pair("untrn", "uusdc")
ESCROW = escrow_address("untrn", "uusdc")


def _block(height: int) -> BlockInfo:
    return BlockInfo(height, T0 + height * 6)


class _World:
    def __init__(self) -> None:
        self.ledger = FakeLedgerRepository()
        self.prices = FakePriceRepository()
        self.repo = FakeAuctionRepository()
        self.db = FakeSession(self.ledger, self.prices, self.repo)
        self.service = AuctionService(
            repo=self.repo, ledger=self.ledger, price_feed=PriceFeedService(repo=self.prices)
        )

    async def create(self) -> None:
        await self.service.create_auction(
            self.db,
            PAIR,
            AuctionStrategy(start_price_perc=1000, end_price_perc=1000),
            ChainHaltConfig(cap=600, block_avg=6),
            PriceFreshnessStrategy(limit=Decimal(3)),
            _block(1),
            MinAmount(send=10, start_auction=100),
        )

    def balance(self, holder: str, denom: str) -> int:
        return self.ledger.balances.get((holder, denom), 0)


@pytest.fixture
async def world() -> _World:
    w = _World()
    await w.create()
    await w.ledger.credit(w.db, "alice", "untrn", 1000)
    await w.ledger.credit(w.db, "carol", "untrn", 1000)
    await w.ledger.credit(w.db, "bob", "uusdc", 1000)
    await w.prices.upsert_price(w.db, PriceEntry(PAIR, Decimal(2), _block(100).time))
    return w


class TestCreateAuction:
    async def test_new_pair_starts_closed(self, world: _World) -> None:
        auction = await world.service.get_auction(world.db, PAIR)
        ids = await world.service.get_ids(world.db, PAIR)

        assert auction.status == AuctionStatus.AUCTION_CLOSED
        assert (ids.curr, ids.next) == (0, 1)
        assert await world.service.list_pairs(world.db) == [PAIR]

    async def test_duplicate_pair(self, world: _World) -> None:
        with pytest.raises(AuctionExistsError):
            await world.create()

    async def test_directory_lookup(self, world: _World) -> None:
        assert await world.service.resolve_pair(world.db, PAIR) == ESCROW
        with pytest.raises(AuctionNotFoundError):
            await world.service.resolve_pair(world.db, Pair("uatom", "uusdc"))

    async def test_requires_min_amount_for_sell_denom(self, world: _World) -> None:
        with pytest.raises(NoTokenMinAmountError):
            await world.service.create_auction(
                world.db,
                Pair("uatom", "uusdc"),
                AuctionStrategy(1000, 1000),
                ChainHaltConfig(cap=600, block_avg=6),
                PriceFreshnessStrategy(limit=Decimal(3)),
                _block(1),
            )


class TestFunds:
    async def test_deposit_moves_tokens_into_escrow(self, world: _World) -> None:
        total = await world.service.auction_funds(world.db, PAIR, "alice", 600)

        assert total == 600
        assert world.balance("alice", "untrn") == 400
        assert world.balance(ESCROW, "untrn") == 600
        assert await world.service.get_funds_amount(world.db, PAIR, "alice") == (0, 600)

    async def test_deposit_below_minimum(self, world: _World) -> None:
        with pytest.raises(AuctionAmountTooLowError):
            await world.service.auction_funds(world.db, PAIR, "alice", 5)

    async def test_deposit_into_paused_auction(self, world: _World) -> None:
        await world.service.set_paused(world.db, PAIR, True)
        with pytest.raises(AuctionIsPausedError):
            await world.service.auction_funds(world.db, PAIR, "alice", 600)

    async def test_deposit_more_than_balance(self, world: _World) -> None:
        with pytest.raises(InsufficientBalanceError):
            await world.service.auction_funds(world.db, PAIR, "alice", 5000)
        assert await world.service.get_funds_amount(world.db, PAIR, "alice") == (0, 0)

    async def test_withdraw(self, world: _World) -> None:
        await world.service.auction_funds(world.db, PAIR, "alice", 600)

        assert await world.service.withdraw_funds(world.db, PAIR, "alice") == 600
        assert world.balance("alice", "untrn") == 1000
        with pytest.raises(NoFundsToWithdrawError):
            await world.service.withdraw_funds(world.db, PAIR, "alice")


class TestRoundLifecycle:
    async def test_full_round(self, world: _World) -> None:
        await world.service.auction_funds(world.db, PAIR, "alice", 600)

        auction = await world.service.open_auction(world.db, PAIR, 200, _block(100))
        assert auction.status == AuctionStatus.STARTED
        assert auction.start_price == Decimal("2.2")
        assert auction.end_price == Decimal("1.8")
        assert auction.total_amount == 600
        assert len(world.ledger.events_of("auction-opened")) == 1

        outcome = await world.service.bid(world.db, PAIR, "bob", 220, _block(100))
        assert (outcome.bought, outcome.refund) == (100, 0)
        assert world.balance("bob", "untrn") == 100
        assert world.balance("bob", "uusdc") == 780

        with pytest.raises(AuctionStillGoingError):
            await world.service.finish_auction(world.db, PAIR, 10, _block(150))

        auction, payouts = await world.service.finish_auction(world.db, PAIR, 10, _block(200))
        assert auction.status == AuctionStatus.AUCTION_CLOSED
        assert [(p.provider, p.sell_refund, p.buy_amount) for p in payouts] == [
            ("alice", 500, 220)
        ]
        assert world.balance("alice", "untrn") == 900
        assert world.balance("alice", "uusdc") == 220
        assert world.balance(ESCROW, "untrn") == 0
        assert world.balance(ESCROW, "uusdc") == 0

        twap = await world.service.get_twap_prices(world.db, PAIR)
        assert [s.price for s in twap] == [Decimal("2.2")]
        assert len(world.ledger.events_of("auction-closed")) == 1

        assert await world.service.clean_auction(world.db, PAIR) == 1
        assert await world.repo.list_funds(world.db, PAIR, 1, None, 10) == []

    async def test_deposits_during_round_wait_for_next(self, world: _World) -> None:
        await world.service.auction_funds(world.db, PAIR, "alice", 600)
        await world.service.open_auction(world.db, PAIR, 200, _block(100))

        await world.service.auction_funds(world.db, PAIR, "alice", 50)

        assert await world.service.get_funds_amount(world.db, PAIR, "alice") == (600, 50)

    async def test_funds_and_open_lock_round_ids(self, world: _World) -> None:
        await world.service.auction_funds(world.db, PAIR, "alice", 600)
        auction = await world.service.open_auction(world.db, PAIR, 200, _block(100))
        await world.service.auction_funds(world.db, PAIR, "carol", 400)
        await world.service.withdraw_funds(world.db, PAIR, "carol")

        assert world.repo.locked_ids == [PAIR, PAIR, PAIR, PAIR]
        ids = await world.service.get_ids(world.db, PAIR)
        assert await world.repo.get_funds_sum(world.db, PAIR, ids.curr) == auction.total_amount

        await world.service.auction_funds(world.db, PAIR, "carol", 400)
        auction, _ = await world.service.finish_auction(world.db, PAIR, 10, _block(200))
        assert auction.status == AuctionStatus.AUCTION_CLOSED
        assert world.balance("alice", "untrn") == 1000
        assert world.balance(ESCROW, "untrn") == 400

    async def test_cannot_open_twice(self, world: _World) -> None:
        await world.service.auction_funds(world.db, PAIR, "alice", 600)
        await world.service.open_auction(world.db, PAIR, 200, _block(100))
        await world.service.auction_funds(world.db, PAIR, "carol", 600)

        with pytest.raises(AuctionNotClosedError):
            await world.service.open_auction(world.db, PAIR, 300, _block(150))

    async def test_paginated_settlement(self, world: _World) -> None:
        await world.service.auction_funds(world.db, PAIR, "alice", 600)
        await world.service.auction_funds(world.db, PAIR, "carol", 400)
        await world.service.open_auction(world.db, PAIR, 200, _block(100))

        auction, first = await world.service.finish_auction(world.db, PAIR, 1, _block(200))
        assert auction.status == AuctionStatus.CLOSING
        assert [p.provider for p in first] == ["alice"]

        auction, second = await world.service.finish_auction(world.db, PAIR, 1, _block(200))
        assert auction.status == AuctionStatus.CLOSING
        assert [p.provider for p in second] == ["carol"]

        auction, third = await world.service.finish_auction(world.db, PAIR, 1, _block(200))
        assert auction.status == AuctionStatus.AUCTION_CLOSED
        assert third == []

        # Nothing was bought, so every deposit came back
        assert world.balance("alice", "untrn") == 1000
        assert world.balance("carol", "untrn") == 1000
        assert await world.service.get_twap_prices(world.db, PAIR) == []

    async def test_second_round_sells_new_deposits(self, world: _World) -> None:
        await world.service.auction_funds(world.db, PAIR, "alice", 600)
        await world.service.open_auction(world.db, PAIR, 200, _block(100))
        await world.service.finish_auction(world.db, PAIR, 10, _block(200))
        await world.service.auction_funds(world.db, PAIR, "carol", 300)

        auction = await world.service.open_auction(world.db, PAIR, 400, _block(300))

        assert auction.total_amount == 300
        assert (await world.service.get_ids(world.db, PAIR)).curr == 2
