"""PriceFeedService: the price query every auction and rebalance depends on.

Only manual updates are supported; a missing or zero price is a hard error
for every caller.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.ar_common.block import BlockInfo
from src.ar_common.decimals import to_decimal
from src.ar_common.errors import PriceIsZeroError, PriceNotFoundError
from src.ar_common.pair import Pair
from src.ar_oracle.domain.models import PriceEntry
from src.ar_oracle.domain.repository import PriceRepositoryProtocol
from src.ar_oracle.infrastructure.persistence import PriceRepository

logger = logging.getLogger(__name__)


class PriceFeedService:
    def __init__(self, repo: PriceRepositoryProtocol | None = None) -> None:
        self._repo: PriceRepositoryProtocol = repo or PriceRepository()

    async def get_price(self, db: AsyncSession, pair: Pair) -> PriceEntry:
        entry = await self._repo.get_price(db, pair)
        if entry is None:
            raise PriceNotFoundError(str(pair))
        if entry.price == 0:
            raise PriceIsZeroError(str(pair))
        return entry

    async def update_price(
        self, db: AsyncSession, pair: Pair, price: Decimal | str, block: BlockInfo
    ) -> PriceEntry:
        pair.validate()
        value = to_decimal(price)
        if value <= 0:
            raise PriceIsZeroError(str(pair))
        entry = PriceEntry(pair=pair, price=value, time=block.time)
        await self._repo.upsert_price(db, entry)
        logger.info("Price for %s set to %s at %d", pair, value, block.time)
        return entry

    async def list_prices(self, db: AsyncSession) -> list[PriceEntry]:
        return await self._repo.list_prices(db)
