"""AuctionRepository: concrete implementation of AuctionRepositoryProtocol.

One auction_pairs row holds a pair's config, strategy and round ids; the
current round lives in active_auctions. Amounts are NUMERIC(39,0) and come
back from asyncpg as Decimal, so they are converted with int() on read.

Transaction ownership: the caller commits.
"""

import json
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ar_auction.domain.models import (
    ActiveAuction,
    AuctionConfig,
    AuctionIds,
    AuctionStrategy,
    ChainHaltConfig,
    ClosingCursor,
    MinAmount,
    PriceFreshnessStrategy,
    TwapPrice,
)
from src.ar_common.block import BlockInfo
from src.ar_common.enums import AuctionStatus
from src.ar_common.pair import Pair

# ---------------------------------------------------------------------------
# SQL: auction_pairs (config, strategy, ids)
# ---------------------------------------------------------------------------

_INSERT_PAIR_SQL = text("""
    INSERT INTO auction_pairs
        (sell_denom, buy_denom, paused, chain_halt_cap, chain_halt_block_avg,
         freshness_limit, freshness_multipliers, start_price_perc, end_price_perc,
         curr_id, next_id)
    VALUES
        (:sell_denom, :buy_denom, :paused, :chain_halt_cap, :chain_halt_block_avg,
         :freshness_limit, :freshness_multipliers, :start_price_perc, :end_price_perc,
         0, 1)
""")

_SELECT_PAIR_SQL = text("""
    SELECT sell_denom, buy_denom, paused, chain_halt_cap, chain_halt_block_avg,
           freshness_limit, freshness_multipliers, start_price_perc, end_price_perc,
           curr_id, next_id
    FROM auction_pairs
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom
""")

_LIST_PAIRS_SQL = text("""
    SELECT sell_denom, buy_denom FROM auction_pairs ORDER BY sell_denom, buy_denom
""")

_UPDATE_CONFIG_SQL = text("""
    UPDATE auction_pairs
    SET paused = :paused,
        chain_halt_cap = :chain_halt_cap,
        chain_halt_block_avg = :chain_halt_block_avg,
        freshness_limit = :freshness_limit,
        freshness_multipliers = :freshness_multipliers,
        updated_at = NOW()
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom
""")

_UPDATE_STRATEGY_SQL = text("""
    UPDATE auction_pairs
    SET start_price_perc = :start_price_perc,
        end_price_perc = :end_price_perc,
        updated_at = NOW()
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom
""")

_UPDATE_IDS_SQL = text("""
    UPDATE auction_pairs
    SET curr_id = :curr_id, next_id = :next_id, updated_at = NOW()
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom
""")

_SELECT_IDS_FOR_UPDATE_SQL = text("""
    SELECT curr_id, next_id
    FROM auction_pairs
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom
    FOR UPDATE
""")

# ---------------------------------------------------------------------------
# SQL: active_auctions
# ---------------------------------------------------------------------------

_AUCTION_COLUMNS = """
    status, start_block, end_block, start_price, end_price,
    available_amount, resolved_amount, total_amount, leftover_sell, leftover_buy,
    last_checked_height, last_checked_time,
    closing_last_provider, closing_sold_sent, closing_bought_sent
"""

_SELECT_AUCTION_SQL = text(f"""
    SELECT {_AUCTION_COLUMNS}
    FROM active_auctions
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom
""")

_SELECT_AUCTION_FOR_UPDATE_SQL = text(f"""
    SELECT {_AUCTION_COLUMNS}
    FROM active_auctions
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom
    FOR UPDATE
""")

_UPSERT_AUCTION_SQL = text("""
    INSERT INTO active_auctions
        (sell_denom, buy_denom, status, start_block, end_block, start_price, end_price,
         available_amount, resolved_amount, total_amount, leftover_sell, leftover_buy,
         last_checked_height, last_checked_time,
         closing_last_provider, closing_sold_sent, closing_bought_sent)
    VALUES
        (:sell_denom, :buy_denom, :status, :start_block, :end_block, :start_price, :end_price,
         :available_amount, :resolved_amount, :total_amount, :leftover_sell, :leftover_buy,
         :last_checked_height, :last_checked_time,
         :closing_last_provider, :closing_sold_sent, :closing_bought_sent)
    ON CONFLICT (sell_denom, buy_denom) DO UPDATE SET
        status = EXCLUDED.status,
        start_block = EXCLUDED.start_block,
        end_block = EXCLUDED.end_block,
        start_price = EXCLUDED.start_price,
        end_price = EXCLUDED.end_price,
        available_amount = EXCLUDED.available_amount,
        resolved_amount = EXCLUDED.resolved_amount,
        total_amount = EXCLUDED.total_amount,
        leftover_sell = EXCLUDED.leftover_sell,
        leftover_buy = EXCLUDED.leftover_buy,
        last_checked_height = EXCLUDED.last_checked_height,
        last_checked_time = EXCLUDED.last_checked_time,
        closing_last_provider = EXCLUDED.closing_last_provider,
        closing_sold_sent = EXCLUDED.closing_sold_sent,
        closing_bought_sent = EXCLUDED.closing_bought_sent,
        updated_at = NOW()
""")

# ---------------------------------------------------------------------------
# SQL: funds ledger
# ---------------------------------------------------------------------------

_GET_FUNDS_SQL = text("""
    SELECT amount FROM auction_funds
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom
      AND auction_id = :auction_id AND provider = :provider
""")

_ADD_FUNDS_SQL = text("""
    INSERT INTO auction_funds (sell_denom, buy_denom, auction_id, provider, amount)
    VALUES (:sell_denom, :buy_denom, :auction_id, :provider, :amount)
    ON CONFLICT (sell_denom, buy_denom, auction_id, provider) DO UPDATE
        SET amount = auction_funds.amount + EXCLUDED.amount
""")

_DELETE_FUNDS_SQL = text("""
    DELETE FROM auction_funds
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom
      AND auction_id = :auction_id AND provider = :provider
    RETURNING amount
""")

_ADD_FUNDS_SUM_SQL = text("""
    INSERT INTO auction_fund_sums (sell_denom, buy_denom, auction_id, amount)
    VALUES (:sell_denom, :buy_denom, :auction_id, :amount)
    ON CONFLICT (sell_denom, buy_denom, auction_id) DO UPDATE
        SET amount = auction_fund_sums.amount + EXCLUDED.amount
""")

_GET_FUNDS_SUM_SQL = text("""
    SELECT amount FROM auction_fund_sums
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom AND auction_id = :auction_id
""")

_LIST_FUNDS_SQL = text("""
    SELECT provider, amount FROM auction_funds
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom
      AND auction_id = :auction_id
      AND (CAST(:start_after AS VARCHAR) IS NULL OR provider > :start_after)
    ORDER BY provider ASC
    LIMIT :limit
""")

_CLEAR_FUNDS_SQL = text("""
    DELETE FROM auction_funds
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom AND auction_id = :auction_id
""")

_CLEAR_FUNDS_SUM_SQL = text("""
    DELETE FROM auction_fund_sums
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom AND auction_id = :auction_id
""")

# ---------------------------------------------------------------------------
# SQL: TWAP queue and minimum amounts
# ---------------------------------------------------------------------------

_LIST_TWAP_SQL = text("""
    SELECT price, observed_at FROM twap_prices
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom
    ORDER BY position ASC
""")

_CLEAR_TWAP_SQL = text("""
    DELETE FROM twap_prices WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom
""")

_INSERT_TWAP_SQL = text("""
    INSERT INTO twap_prices (sell_denom, buy_denom, position, price, observed_at)
    VALUES (:sell_denom, :buy_denom, :position, :price, :observed_at)
""")

_GET_MIN_AMOUNT_SQL = text("""
    SELECT send_amount, start_auction_amount FROM min_auction_amounts WHERE denom = :denom
""")

_UPSERT_MIN_AMOUNT_SQL = text("""
    INSERT INTO min_auction_amounts (denom, send_amount, start_auction_amount)
    VALUES (:denom, :send_amount, :start_auction_amount)
    ON CONFLICT (denom) DO UPDATE
        SET send_amount = EXCLUDED.send_amount,
            start_auction_amount = EXCLUDED.start_auction_amount,
            updated_at = NOW()
""")


def _pair_params(pair: Pair) -> dict[str, str]:
    return {"sell_denom": pair.sell_denom, "buy_denom": pair.buy_denom}


def _encode_multipliers(strategy: PriceFreshnessStrategy) -> str:
    return json.dumps([[str(days), str(mult)] for days, mult in strategy.multipliers])


def _decode_multipliers(raw: object) -> list[tuple[Decimal, Decimal]]:
    items = json.loads(raw) if isinstance(raw, str) else raw
    return [(Decimal(days), Decimal(mult)) for days, mult in items]  # type: ignore[union-attr]


def _row_to_config(row: object) -> AuctionConfig:
    return AuctionConfig(
        pair=Pair(row.sell_denom, row.buy_denom),  # type: ignore[attr-defined]
        paused=row.paused,  # type: ignore[attr-defined]
        chain_halt_config=ChainHaltConfig(
            cap=int(row.chain_halt_cap),  # type: ignore[attr-defined]
            block_avg=int(row.chain_halt_block_avg),  # type: ignore[attr-defined]
        ),
        price_freshness_strategy=PriceFreshnessStrategy(
            limit=Decimal(row.freshness_limit),  # type: ignore[attr-defined]
            multipliers=_decode_multipliers(row.freshness_multipliers),  # type: ignore[attr-defined]
        ),
    )


def _row_to_auction(row: object) -> ActiveAuction:
    r: Any = row
    closing = None
    if r.closing_last_provider is not None:
        closing = ClosingCursor(
            last_provider=r.closing_last_provider,
            sold_sent=int(r.closing_sold_sent),
            bought_sent=int(r.closing_bought_sent),
        )
    return ActiveAuction(
        status=AuctionStatus(r.status),
        start_block=int(r.start_block),
        end_block=int(r.end_block),
        start_price=Decimal(r.start_price),
        end_price=Decimal(r.end_price),
        available_amount=int(r.available_amount),
        resolved_amount=int(r.resolved_amount),
        total_amount=int(r.total_amount),
        leftovers=[int(r.leftover_sell), int(r.leftover_buy)],
        last_checked_block=BlockInfo(
            height=int(r.last_checked_height),
            time=int(r.last_checked_time),
        ),
        closing=closing,
    )


class AuctionRepository:
    """Concrete repository for every auction-scoped logical key."""

    async def create_auction(
        self,
        db: AsyncSession,
        config: AuctionConfig,
        strategy: AuctionStrategy,
        auction: ActiveAuction,
    ) -> None:
        await db.execute(
            _INSERT_PAIR_SQL,
            {
                **_pair_params(config.pair),
                "paused": config.paused,
                "chain_halt_cap": config.chain_halt_config.cap,
                "chain_halt_block_avg": config.chain_halt_config.block_avg,
                "freshness_limit": config.price_freshness_strategy.limit,
                "freshness_multipliers": _encode_multipliers(config.price_freshness_strategy),
                "start_price_perc": strategy.start_price_perc,
                "end_price_perc": strategy.end_price_perc,
            },
        )
        await self.save_auction(db, config.pair, auction)

    async def list_pairs(self, db: AsyncSession) -> list[Pair]:
        result = await db.execute(_LIST_PAIRS_SQL)
        return [Pair(row.sell_denom, row.buy_denom) for row in result.fetchall()]

    async def _get_pair_row(self, db: AsyncSession, pair: Pair) -> object | None:
        result = await db.execute(_SELECT_PAIR_SQL, _pair_params(pair))
        return result.fetchone()

    async def get_config(self, db: AsyncSession, pair: Pair) -> AuctionConfig | None:
        row = await self._get_pair_row(db, pair)
        return _row_to_config(row) if row is not None else None

    async def save_config(self, db: AsyncSession, config: AuctionConfig) -> None:
        await db.execute(
            _UPDATE_CONFIG_SQL,
            {
                **_pair_params(config.pair),
                "paused": config.paused,
                "chain_halt_cap": config.chain_halt_config.cap,
                "chain_halt_block_avg": config.chain_halt_config.block_avg,
                "freshness_limit": config.price_freshness_strategy.limit,
                "freshness_multipliers": _encode_multipliers(config.price_freshness_strategy),
            },
        )

    async def get_strategy(self, db: AsyncSession, pair: Pair) -> AuctionStrategy | None:
        row = await self._get_pair_row(db, pair)
        if row is None:
            return None
        return AuctionStrategy(
            start_price_perc=row.start_price_perc,  # type: ignore[attr-defined]
            end_price_perc=row.end_price_perc,  # type: ignore[attr-defined]
        )

    async def save_strategy(
        self, db: AsyncSession, pair: Pair, strategy: AuctionStrategy
    ) -> None:
        await db.execute(
            _UPDATE_STRATEGY_SQL,
            {
                **_pair_params(pair),
                "start_price_perc": strategy.start_price_perc,
                "end_price_perc": strategy.end_price_perc,
            },
        )

    async def get_ids(
        self, db: AsyncSession, pair: Pair, for_update: bool = False
    ) -> AuctionIds:
        if for_update:
            result = await db.execute(_SELECT_IDS_FOR_UPDATE_SQL, _pair_params(pair))
            row = result.fetchone()
        else:
            row = await self._get_pair_row(db, pair)
        if row is None:
            return AuctionIds()
        return AuctionIds(curr=int(row.curr_id), next=int(row.next_id))  # type: ignore[attr-defined]

    async def save_ids(self, db: AsyncSession, pair: Pair, ids: AuctionIds) -> None:
        await db.execute(
            _UPDATE_IDS_SQL, {**_pair_params(pair), "curr_id": ids.curr, "next_id": ids.next}
        )

    async def get_auction(
        self, db: AsyncSession, pair: Pair, for_update: bool = False
    ) -> ActiveAuction | None:
        sql = _SELECT_AUCTION_FOR_UPDATE_SQL if for_update else _SELECT_AUCTION_SQL
        result = await db.execute(sql, _pair_params(pair))
        row = result.fetchone()
        return _row_to_auction(row) if row is not None else None

    async def save_auction(self, db: AsyncSession, pair: Pair, auction: ActiveAuction) -> None:
        closing = auction.closing
        await db.execute(
            _UPSERT_AUCTION_SQL,
            {
                **_pair_params(pair),
                "status": auction.status.value,
                "start_block": auction.start_block,
                "end_block": auction.end_block,
                "start_price": auction.start_price,
                "end_price": auction.end_price,
                "available_amount": auction.available_amount,
                "resolved_amount": auction.resolved_amount,
                "total_amount": auction.total_amount,
                "leftover_sell": auction.leftovers[0],
                "leftover_buy": auction.leftovers[1],
                "last_checked_height": auction.last_checked_block.height,
                "last_checked_time": auction.last_checked_block.time,
                "closing_last_provider": closing.last_provider if closing else None,
                "closing_sold_sent": closing.sold_sent if closing else None,
                "closing_bought_sent": closing.bought_sent if closing else None,
            },
        )

    async def get_funds(
        self, db: AsyncSession, pair: Pair, auction_id: int, provider: str
    ) -> int:
        result = await db.execute(
            _GET_FUNDS_SQL,
            {**_pair_params(pair), "auction_id": auction_id, "provider": provider},
        )
        row = result.fetchone()
        return int(row.amount) if row is not None else 0

    async def add_funds(
        self, db: AsyncSession, pair: Pair, auction_id: int, provider: str, amount: int
    ) -> None:
        params = {**_pair_params(pair), "auction_id": auction_id, "amount": amount}
        await db.execute(_ADD_FUNDS_SQL, {**params, "provider": provider})
        await db.execute(_ADD_FUNDS_SUM_SQL, params)

    async def remove_funds(
        self, db: AsyncSession, pair: Pair, auction_id: int, provider: str
    ) -> int:
        """Delete a provider's deposit and subtract it from the sum; returns it (0 if none)."""
        result = await db.execute(
            _DELETE_FUNDS_SQL,
            {**_pair_params(pair), "auction_id": auction_id, "provider": provider},
        )
        row = result.fetchone()
        if row is None:
            return 0
        amount = int(row.amount)
        await db.execute(
            _ADD_FUNDS_SUM_SQL,
            {**_pair_params(pair), "auction_id": auction_id, "amount": -amount},
        )
        return amount

    async def get_funds_sum(self, db: AsyncSession, pair: Pair, auction_id: int) -> int:
        result = await db.execute(
            _GET_FUNDS_SUM_SQL, {**_pair_params(pair), "auction_id": auction_id}
        )
        row = result.fetchone()
        return int(row.amount) if row is not None else 0

    async def list_funds(
        self,
        db: AsyncSession,
        pair: Pair,
        auction_id: int,
        start_after: str | None,
        limit: int,
    ) -> list[tuple[str, int]]:
        result = await db.execute(
            _LIST_FUNDS_SQL,
            {
                **_pair_params(pair),
                "auction_id": auction_id,
                "start_after": start_after,
                "limit": limit,
            },
        )
        return [(row.provider, int(row.amount)) for row in result.fetchall()]

    async def clear_funds(self, db: AsyncSession, pair: Pair, auction_id: int) -> None:
        params = {**_pair_params(pair), "auction_id": auction_id}
        await db.execute(_CLEAR_FUNDS_SQL, params)
        await db.execute(_CLEAR_FUNDS_SUM_SQL, params)

    async def get_twap_prices(self, db: AsyncSession, pair: Pair) -> list[TwapPrice]:
        result = await db.execute(_LIST_TWAP_SQL, _pair_params(pair))
        return [
            TwapPrice(price=Decimal(row.price), time=int(row.observed_at))
            for row in result.fetchall()
        ]

    async def save_twap_prices(
        self, db: AsyncSession, pair: Pair, prices: list[TwapPrice]
    ) -> None:
        await db.execute(_CLEAR_TWAP_SQL, _pair_params(pair))
        for position, sample in enumerate(prices):
            await db.execute(
                _INSERT_TWAP_SQL,
                {
                    **_pair_params(pair),
                    "position": position,
                    "price": sample.price,
                    "observed_at": sample.time,
                },
            )

    async def get_min_amount(self, db: AsyncSession, denom: str) -> MinAmount | None:
        result = await db.execute(_GET_MIN_AMOUNT_SQL, {"denom": denom})
        row = result.fetchone()
        if row is None:
            return None
        return MinAmount(send=int(row.send_amount), start_auction=int(row.start_auction_amount))

    async def set_min_amount(self, db: AsyncSession, denom: str, min_amount: MinAmount) -> None:
        await db.execute(
            _UPSERT_MIN_AMOUNT_SQL,
            {
                "denom": denom,
                "send_amount": min_amount.send,
                "start_auction_amount": min_amount.start_auction,
            },
        )
