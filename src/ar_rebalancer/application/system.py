"""SystemRebalanceService: the paginated, resumable rebalance cycle.

One call processes up to *limit* active accounts in address order after the
stored cursor, against one price snapshot per cycle. Failures are isolated
with savepoints:

- an account whose decision fails is rolled back, recorded as a
  rebalancer-error event and skipped
- each trade is its own savepoint, so one rejected deposit leaves the
  account's other trades in place

The system status row is locked for the whole call.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.ar_auction.application.service import AuctionService
from src.ar_common.block import BlockInfo
from src.ar_common.errors import AppError, LimitIsZeroError, PairPriceIsZeroError, PriceIsZeroError
from src.ar_common.pair import Pair
from src.ar_ledger.domain.models import LedgerEvent
from src.ar_ledger.domain.repository import LedgerRepositoryProtocol
from src.ar_ledger.infrastructure.persistence import LedgerRepository
from src.ar_oracle.application.service import PriceFeedService
from src.ar_rebalancer.domain.cycle import next_status, resolve_position
from src.ar_rebalancer.domain.models import (
    PausedData,
    RebalanceResult,
    RebalancerConfig,
    SystemRebalanceStatus,
    Trade,
)
from src.ar_rebalancer.domain.rebalance import do_rebalance
from src.ar_rebalancer.domain.repository import RebalancerRepositoryProtocol
from src.ar_rebalancer.infrastructure.persistence import RebalancerRepository

logger = logging.getLogger(__name__)

EVENT_CYCLE = "rebalancer-cycle"
EVENT_ERROR = "rebalancer-error"
EVENT_TRADE_ERROR = "rebalancer-trade-error"


@dataclass
class CycleReport:
    status: SystemRebalanceStatus
    cycled_over: int
    rebalanced: list[str] = field(default_factory=list)
    paused: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    trades: int = 0


class SystemRebalanceService:
    def __init__(
        self,
        repo: RebalancerRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
        auctions: AuctionService | None = None,
        price_feed: PriceFeedService | None = None,
    ) -> None:
        self._repo: RebalancerRepositoryProtocol = repo or RebalancerRepository()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()
        self._auctions = auctions or AuctionService()
        self._price_feed = price_feed or PriceFeedService()

    async def snapshot_prices(self, db: AsyncSession) -> dict[Pair, Decimal]:
        """Price of every whitelisted denom against every base denom."""
        denoms = await self._repo.get_denom_whitelist(db)
        prices: dict[Pair, Decimal] = {}
        for base in await self._repo.get_base_denoms(db):
            for denom in denoms:
                if denom == base.denom:
                    continue
                pair = Pair(base.denom, denom)
                try:
                    entry = await self._price_feed.get_price(db, pair)
                except PriceIsZeroError:
                    raise PairPriceIsZeroError(str(pair)) from None
                prices[pair] = entry.price
        return prices

    async def execute_system_rebalance(
        self, db: AsyncSession, block: BlockInfo, limit: int | None = None
    ) -> CycleReport:
        status, cycle_period = await self._repo.get_system(db, for_update=True)
        limit = settings.DEFAULT_SYSTEM_LIMIT if limit is None else limit
        if limit == 0:
            raise LimitIsZeroError()

        position = resolve_position(status, block.time, cycle_period)
        prices = position.prices
        if prices is None:
            prices = await self.snapshot_prices(db)
            logger.info(
                "Rebalance cycle %d started with %d prices", position.cycle_start, len(prices)
            )

        configs = await self._repo.list_configs(db, position.start_after, limit + 1)
        fetched = len(configs)

        min_values = {b.denom: b.min_balance_limit for b in await self._repo.get_base_denoms(db)}
        min_send_amounts = await self._auctions.find_min_send_amounts(
            db, await self._repo.get_denom_whitelist(db)
        )

        report = CycleReport(status=status, cycled_over=fetched)
        last_account = position.start_after
        for account, config in configs[:limit]:
            last_account = account
            try:
                async with db.begin_nested():
                    result = await self._rebalance_account(
                        db, account, config, prices, min_values, min_send_amounts,
                        block.time, cycle_period,
                    )
            except AppError as exc:
                logger.warning("Rebalance of %s failed: %s", account, exc.message)
                report.failed.append(account)
                await self._ledger.write_event(
                    db,
                    LedgerEvent(
                        event_type=EVENT_ERROR,
                        subject=account,
                        payload={"error": exc.message, "code": exc.code},
                    ),
                )
                continue

            if result.should_pause:
                report.paused.append(account)
                continue

            report.rebalanced.append(account)
            for trade in result.trades:
                if await self._dispatch_trade(db, account, trade):
                    report.trades += 1

        report.status = next_status(
            fetched, limit, position.cycle_start, cycle_period, last_account, prices
        )
        await self._repo.save_status(db, report.status)
        await self._ledger.write_event(
            db,
            LedgerEvent(
                event_type=EVENT_CYCLE,
                subject="system",
                payload={"limit": limit, "cycled_over": fetched},
            ),
        )
        logger.info(
            "Rebalance batch done: %d accounts, %d trades, status %s",
            min(fetched, limit), report.trades, report.status.kind.value,
        )
        return report

    async def _rebalance_account(
        self,
        db: AsyncSession,
        account: str,
        config: RebalancerConfig,
        prices: dict[Pair, Decimal],
        min_values: dict[str, int],
        min_send_amounts: dict[str, int],
        now: int,
        cycle_period: int,
    ) -> RebalanceResult:
        balances = await self._ledger.get_balances(db, account, config.target_denoms())
        result = do_rebalance(
            account, config, balances, prices, min_values, min_send_amounts, now, cycle_period
        )

        if result.should_pause:
            result.config.paused_by = settings.REBALANCER_ADDRESS
            await self._repo.save_paused(
                db, account, PausedData.empty_balance(settings.REBALANCER_ADDRESS, result.config)
            )
            await self._repo.remove_config(db, account)
        else:
            await self._repo.save_config(db, account, result.config)

        await self._ledger.write_event(
            db, LedgerEvent(event_type=result.event_type, subject=account, payload=result.event)
        )
        return result

    async def _dispatch_trade(self, db: AsyncSession, account: str, trade: Trade) -> bool:
        try:
            async with db.begin_nested():
                await self._auctions.auction_funds(db, trade.pair, account, trade.amount)
        except AppError as exc:
            logger.warning(
                "Trade %d %s from %s failed: %s", trade.amount, trade.pair, account, exc.message
            )
            await self._ledger.write_event(
                db,
                LedgerEvent(
                    event_type=EVENT_TRADE_ERROR,
                    subject=account,
                    payload={
                        "sell_denom": trade.pair.sell_denom,
                        "buy_denom": trade.pair.buy_denom,
                        "amount": trade.amount,
                        "error": exc.message,
                    },
                ),
            )
            return False
        return True
