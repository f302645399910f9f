"""Repository Protocol for auction state.

Logical keys, all scoped per pair: config, strategy, ids, active auction,
funds ledger (auction_id, provider), funds sum (auction_id), TWAP queue.
Minimum amounts are keyed by denom.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ar_auction.domain.models import (
    ActiveAuction,
    AuctionConfig,
    AuctionIds,
    AuctionStrategy,
    MinAmount,
    TwapPrice,
)
from src.ar_common.pair import Pair


class AuctionRepositoryProtocol(Protocol):
    async def create_auction(
        self,
        db: AsyncSession,
        config: AuctionConfig,
        strategy: AuctionStrategy,
        auction: ActiveAuction,
    ) -> None: ...

    async def list_pairs(self, db: AsyncSession) -> list[Pair]: ...

    async def get_config(self, db: AsyncSession, pair: Pair) -> AuctionConfig | None: ...

    async def save_config(self, db: AsyncSession, config: AuctionConfig) -> None: ...

    async def get_strategy(self, db: AsyncSession, pair: Pair) -> AuctionStrategy | None: ...

    async def save_strategy(
        self, db: AsyncSession, pair: Pair, strategy: AuctionStrategy
    ) -> None: ...

    async def get_ids(
        self, db: AsyncSession, pair: Pair, for_update: bool = False
    ) -> AuctionIds: ...

    async def save_ids(self, db: AsyncSession, pair: Pair, ids: AuctionIds) -> None: ...

    async def get_auction(
        self, db: AsyncSession, pair: Pair, for_update: bool = False
    ) -> ActiveAuction | None: ...

    async def save_auction(self, db: AsyncSession, pair: Pair, auction: ActiveAuction) -> None: ...

    async def get_funds(
        self, db: AsyncSession, pair: Pair, auction_id: int, provider: str
    ) -> int: ...

    async def add_funds(
        self, db: AsyncSession, pair: Pair, auction_id: int, provider: str, amount: int
    ) -> None: ...

    async def remove_funds(
        self, db: AsyncSession, pair: Pair, auction_id: int, provider: str
    ) -> int: ...

    async def get_funds_sum(self, db: AsyncSession, pair: Pair, auction_id: int) -> int: ...

    async def list_funds(
        self,
        db: AsyncSession,
        pair: Pair,
        auction_id: int,
        start_after: str | None,
        limit: int,
    ) -> list[tuple[str, int]]: ...

    async def clear_funds(self, db: AsyncSession, pair: Pair, auction_id: int) -> None: ...

    async def get_twap_prices(self, db: AsyncSession, pair: Pair) -> list[TwapPrice]: ...

    async def save_twap_prices(
        self, db: AsyncSession, pair: Pair, prices: list[TwapPrice]
    ) -> None: ...

    async def get_min_amount(self, db: AsyncSession, denom: str) -> MinAmount | None: ...

    async def set_min_amount(
        self, db: AsyncSession, denom: str, min_amount: MinAmount
    ) -> None: ...
