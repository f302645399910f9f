"""AuctionService: orchestrates the auction domain with storage and custody.

Each public method is one logical invocation. Nothing here commits: the router
(or the system rebalance cycle) owns the transaction, so a call either applies
all of its state changes and transfers or none of them.

The active auction row is read FOR UPDATE before any state transition, which
serializes concurrent invocations for the same pair. Deposits, withdrawals and
open_auction also lock the pair's round ids, so a deposit lands either in the
round being opened or in the one after it, never in between.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.ar_auction.domain.models import (
    ActiveAuction,
    AuctionConfig,
    AuctionIds,
    AuctionStrategy,
    BidOutcome,
    ChainHaltConfig,
    MinAmount,
    Payout,
    PriceFreshnessStrategy,
    TwapPrice,
)
from src.ar_auction.domain.pricing import calc_price, strategy_prices
from src.ar_auction.domain.repository import AuctionRepositoryProtocol
from src.ar_auction.domain.rounds import apply_bid, check_can_open, open_round
from src.ar_auction.domain.settlement import (
    check_can_settle,
    push_twap,
    settle_page,
    twap_sample,
)
from src.ar_auction.infrastructure.persistence import AuctionRepository
from src.ar_common.block import BlockInfo
from src.ar_common.decimals import to_decimal
from src.ar_common.enums import AuctionStatus, TransferReason
from src.ar_common.errors import (
    AuctionAmountTooLowError,
    AuctionExistsError,
    AuctionIsPausedError,
    AuctionNotClosedError,
    AuctionNotFoundError,
    InvalidLimitError,
    NoFundsToWithdrawError,
    NoTokenMinAmountError,
)
from src.ar_common.pair import Pair
from src.ar_ledger.domain.models import LedgerEvent, Transfer, escrow_address
from src.ar_ledger.domain.repository import LedgerRepositoryProtocol
from src.ar_ledger.infrastructure.persistence import LedgerRepository
from src.ar_oracle.application.service import PriceFeedService

logger = logging.getLogger(__name__)


class AuctionService:
    def __init__(
        self,
        repo: AuctionRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
        price_feed: PriceFeedService | None = None,
    ) -> None:
        self._repo: AuctionRepositoryProtocol = repo or AuctionRepository()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()
        self._price_feed = price_feed or PriceFeedService()

    # ------------------------------------------------------------------
    # Instantiation and admin policy
    # ------------------------------------------------------------------

    async def create_auction(
        self,
        db: AsyncSession,
        pair: Pair,
        strategy: AuctionStrategy,
        chain_halt_config: ChainHaltConfig,
        price_freshness_strategy: PriceFreshnessStrategy,
        block: BlockInfo,
        min_amount: MinAmount | None = None,
    ) -> AuctionConfig:
        pair.validate()
        strategy.validate()
        if await self._repo.get_config(db, pair) is not None:
            raise AuctionExistsError(str(pair))

        if min_amount is not None:
            await self._repo.set_min_amount(db, pair.sell_denom, min_amount)
        elif await self._repo.get_min_amount(db, pair.sell_denom) is None:
            raise NoTokenMinAmountError(pair.sell_denom)

        config = AuctionConfig(
            pair=pair,
            paused=False,
            chain_halt_config=chain_halt_config,
            price_freshness_strategy=price_freshness_strategy,
        )
        await self._repo.create_auction(db, config, strategy, ActiveAuction.closed(block))
        logger.info("Auction created for %s", pair)
        return config

    async def get_config(self, db: AsyncSession, pair: Pair) -> AuctionConfig:
        config = await self._repo.get_config(db, pair)
        if config is None:
            raise AuctionNotFoundError(str(pair))
        return config

    async def set_paused(self, db: AsyncSession, pair: Pair, paused: bool) -> AuctionConfig:
        config = await self.get_config(db, pair)
        config.paused = paused
        await self._repo.save_config(db, config)
        logger.info("Auction %s %s", pair, "paused" if paused else "resumed")
        return config

    async def update_strategy(
        self, db: AsyncSession, pair: Pair, strategy: AuctionStrategy
    ) -> AuctionStrategy:
        await self.get_config(db, pair)
        strategy.validate()
        await self._repo.save_strategy(db, pair, strategy)
        return strategy

    async def update_chain_halt_config(
        self, db: AsyncSession, pair: Pair, chain_halt_config: ChainHaltConfig
    ) -> AuctionConfig:
        config = await self.get_config(db, pair)
        config.chain_halt_config = chain_halt_config
        await self._repo.save_config(db, config)
        return config

    async def update_price_freshness_strategy(
        self, db: AsyncSession, pair: Pair, strategy: PriceFreshnessStrategy
    ) -> AuctionConfig:
        config = await self.get_config(db, pair)
        config.price_freshness_strategy = strategy
        await self._repo.save_config(db, config)
        return config

    async def set_min_amount(
        self, db: AsyncSession, denom: str, min_amount: MinAmount
    ) -> MinAmount:
        await self._repo.set_min_amount(db, denom, min_amount)
        return min_amount

    async def get_min_amount(self, db: AsyncSession, denom: str) -> MinAmount:
        min_amount = await self._repo.get_min_amount(db, denom)
        if min_amount is None:
            raise NoTokenMinAmountError(denom)
        return min_amount

    async def find_min_send_amounts(self, db: AsyncSession, denoms: list[str]) -> dict[str, int]:
        """Minimum deposit per denom; denoms without one are left out."""
        amounts: dict[str, int] = {}
        for denom in denoms:
            min_amount = await self._repo.get_min_amount(db, denom)
            if min_amount is not None:
                amounts[denom] = min_amount.send
        return amounts

    # ------------------------------------------------------------------
    # Funds
    # ------------------------------------------------------------------

    async def auction_funds(
        self, db: AsyncSession, pair: Pair, provider: str, amount: int
    ) -> int:
        """Deposit sell tokens for the next round; returns the provider's new total."""
        ids = await self._repo.get_ids(db, pair, for_update=True)
        config = await self.get_config(db, pair)
        if config.paused:
            raise AuctionIsPausedError()

        min_amount = await self.get_min_amount(db, pair.sell_denom)
        if amount < min_amount.send:
            raise AuctionAmountTooLowError(min_amount.send)

        await self._ledger.transfer(
            db,
            Transfer(
                sender=provider,
                recipient=escrow_address(pair.sell_denom, pair.buy_denom),
                denom=pair.sell_denom,
                amount=amount,
                reason=TransferReason.AUCTION_DEPOSIT,
                reference=f"{pair}#{ids.next}",
            ),
        )
        await self._repo.add_funds(db, pair, ids.next, provider, amount)
        return await self._repo.get_funds(db, pair, ids.next, provider)

    async def withdraw_funds(self, db: AsyncSession, pair: Pair, provider: str) -> int:
        """Withdraw a deposit that has not entered a round yet."""
        ids = await self._repo.get_ids(db, pair, for_update=True)
        await self.get_config(db, pair)
        amount = await self._repo.remove_funds(db, pair, ids.next, provider)
        if amount == 0:
            raise NoFundsToWithdrawError()

        await self._ledger.transfer(
            db,
            Transfer(
                sender=escrow_address(pair.sell_denom, pair.buy_denom),
                recipient=provider,
                denom=pair.sell_denom,
                amount=amount,
                reason=TransferReason.AUCTION_WITHDRAW,
                reference=f"{pair}#{ids.next}",
            ),
        )
        return amount

    async def get_funds_amount(
        self, db: AsyncSession, pair: Pair, provider: str
    ) -> tuple[int, int]:
        """(deposit in the current round, deposit waiting for the next round)."""
        ids = await self._repo.get_ids(db, pair)
        curr = await self._repo.get_funds(db, pair, ids.curr, provider)
        nxt = await self._repo.get_funds(db, pair, ids.next, provider)
        return curr, nxt

    # ------------------------------------------------------------------
    # Round lifecycle
    # ------------------------------------------------------------------

    async def _load_auction(self, db: AsyncSession, pair: Pair) -> ActiveAuction:
        auction = await self._repo.get_auction(db, pair, for_update=True)
        if auction is None:
            raise AuctionNotFoundError(str(pair))
        return auction

    async def open_auction(
        self,
        db: AsyncSession,
        pair: Pair,
        end_block: int,
        block: BlockInfo,
        start_block: int | None = None,
    ) -> ActiveAuction:
        config = await self.get_config(db, pair)
        previous = await self._load_auction(db, pair)
        ids = await self._repo.get_ids(db, pair, for_update=True)
        next_funds = await self._repo.get_funds_sum(db, pair, ids.next)
        start = block.height if start_block is None else start_block
        check_can_open(config, previous, next_funds, start, end_block)

        strategy = await self.get_strategy(db, pair)
        feed = await self._price_feed.get_price(db, pair)
        prices = strategy_prices(
            feed.price, feed.time, block.time, strategy, config.price_freshness_strategy
        )
        auction = open_round(config, previous, ids, next_funds, prices, block, end_block, start)
        await self._repo.save_ids(db, pair, ids)
        await self._repo.save_auction(db, pair, auction)
        await self._ledger.write_event(
            db,
            LedgerEvent(
                event_type="auction-opened",
                subject=str(pair),
                payload={
                    "auction_id": ids.curr,
                    "start_block": auction.start_block,
                    "end_block": auction.end_block,
                    "start_price": str(auction.start_price),
                    "end_price": str(auction.end_price),
                    "total_amount": auction.total_amount,
                },
            ),
        )
        logger.info(
            "Auction %s round %d opened: %d %s from %s to %s",
            pair, ids.curr, auction.total_amount, pair.sell_denom,
            auction.start_price, auction.end_price,
        )
        return auction

    async def bid(
        self, db: AsyncSession, pair: Pair, bidder: str, amount: int, block: BlockInfo
    ) -> BidOutcome:
        """Buy sell tokens with *amount* of buy tokens at the current decayed price."""
        config = await self.get_config(db, pair)
        auction = await self._load_auction(db, pair)
        outcome = apply_bid(auction, config, amount, block)

        escrow = escrow_address(pair.sell_denom, pair.buy_denom)
        await self._ledger.transfer(
            db,
            Transfer(bidder, escrow, pair.buy_denom, amount, TransferReason.BID_PAYMENT),
        )
        await self._ledger.transfer(
            db,
            Transfer(escrow, bidder, pair.sell_denom, outcome.bought, TransferReason.BID_FILL),
        )
        await self._ledger.transfer(
            db,
            Transfer(escrow, bidder, pair.buy_denom, outcome.refund, TransferReason.BID_REFUND),
        )
        await self._repo.save_auction(db, pair, auction)
        if auction.status == AuctionStatus.FINISHED:
            logger.info("Auction %s finished at block %d", pair, block.height)
        return outcome

    async def finish_auction(
        self, db: AsyncSession, pair: Pair, limit: int, block: BlockInfo
    ) -> tuple[ActiveAuction, list[Payout]]:
        """Settle up to *limit* providers; re-invoke until status is AUCTION_CLOSED."""
        if limit < 1:
            raise InvalidLimitError()
        auction = await self._load_auction(db, pair)
        check_can_settle(auction, block.height)

        ids = await self._repo.get_ids(db, pair)
        start_after = auction.closing.last_provider if auction.closing else None
        funds = await self._repo.list_funds(db, pair, ids.curr, start_after, limit)
        threshold = to_decimal(settings.SETTLEMENT_ROUNDING_THRESHOLD)
        payouts = settle_page(auction, funds, limit, threshold)

        escrow = escrow_address(pair.sell_denom, pair.buy_denom)
        reference = f"{pair}#{ids.curr}"
        for payout in payouts:
            await self._ledger.transfer(
                db,
                Transfer(
                    escrow, payout.provider, pair.sell_denom, payout.sell_refund,
                    TransferReason.SETTLEMENT_REFUND, reference,
                ),
            )
            await self._ledger.transfer(
                db,
                Transfer(
                    escrow, payout.provider, pair.buy_denom, payout.buy_amount,
                    TransferReason.SETTLEMENT_PAYOUT, reference,
                ),
            )

        if auction.status == AuctionStatus.AUCTION_CLOSED:
            sample = twap_sample(auction, block)
            if sample is not None:
                queue = await self._repo.get_twap_prices(db, pair)
                await self._repo.save_twap_prices(db, pair, push_twap(queue, sample))
            await self._ledger.write_event(
                db,
                LedgerEvent(
                    event_type="auction-closed",
                    subject=str(pair),
                    payload={
                        "auction_id": ids.curr,
                        "leftovers": auction.leftovers,
                        "twap": str(sample.price) if sample else None,
                    },
                ),
            )
            logger.info("Auction %s round %d closed", pair, ids.curr)

        await self._repo.save_auction(db, pair, auction)
        return auction, payouts

    async def clean_auction(self, db: AsyncSession, pair: Pair) -> int:
        """Drop the settled round's funds ledger; returns the cleaned round id."""
        auction = await self._load_auction(db, pair)
        if auction.status != AuctionStatus.AUCTION_CLOSED:
            raise AuctionNotClosedError()
        ids = await self._repo.get_ids(db, pair)
        await self._repo.clear_funds(db, pair, ids.curr)
        return ids.curr

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_auction(self, db: AsyncSession, pair: Pair) -> ActiveAuction:
        auction = await self._repo.get_auction(db, pair)
        if auction is None:
            raise AuctionNotFoundError(str(pair))
        return auction

    async def get_current_price(
        self, db: AsyncSession, pair: Pair, block: BlockInfo
    ) -> Decimal:
        auction = await self.get_auction(db, pair)
        return calc_price(auction, block.height)

    async def get_strategy(self, db: AsyncSession, pair: Pair) -> AuctionStrategy:
        strategy = await self._repo.get_strategy(db, pair)
        if strategy is None:
            raise AuctionNotFoundError(str(pair))
        return strategy

    async def get_ids(self, db: AsyncSession, pair: Pair) -> AuctionIds:
        await self.get_config(db, pair)
        return await self._repo.get_ids(db, pair)

    async def get_twap_prices(self, db: AsyncSession, pair: Pair) -> list[TwapPrice]:
        return await self._repo.get_twap_prices(db, pair)

    async def list_pairs(self, db: AsyncSession) -> list[Pair]:
        return await self._repo.list_pairs(db)

    async def resolve_pair(self, db: AsyncSession, pair: Pair) -> str:
        """Directory lookup: the escrow address of an existing auction."""
        await self.get_config(db, pair)
        return escrow_address(pair.sell_denom, pair.buy_denom)
