from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ar_common.pair import Pair
from src.ar_oracle.domain.models import PriceEntry


class PriceRepositoryProtocol(Protocol):
    async def get_price(self, db: AsyncSession, pair: Pair) -> PriceEntry | None: ...

    async def upsert_price(self, db: AsyncSession, entry: PriceEntry) -> None: ...

    async def list_prices(self, db: AsyncSession) -> list[PriceEntry]: ...
