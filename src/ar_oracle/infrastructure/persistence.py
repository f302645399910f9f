"""PriceRepository: SQL access to the prices table."""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ar_common.pair import Pair
from src.ar_oracle.domain.models import PriceEntry

_GET_PRICE_SQL = text("""
    SELECT sell_denom, buy_denom, price, observed_at
    FROM prices
    WHERE sell_denom = :sell_denom AND buy_denom = :buy_denom
""")

_UPSERT_PRICE_SQL = text("""
    INSERT INTO prices (sell_denom, buy_denom, price, observed_at)
    VALUES (:sell_denom, :buy_denom, :price, :observed_at)
    ON CONFLICT (sell_denom, buy_denom) DO UPDATE
        SET price = EXCLUDED.price,
            observed_at = EXCLUDED.observed_at,
            updated_at = NOW()
""")

_LIST_PRICES_SQL = text("""
    SELECT sell_denom, buy_denom, price, observed_at
    FROM prices
    ORDER BY sell_denom, buy_denom
""")


def _row_to_price(row: object) -> PriceEntry:
    return PriceEntry(
        pair=Pair(row.sell_denom, row.buy_denom),  # type: ignore[attr-defined]
        price=Decimal(row.price),  # type: ignore[attr-defined]
        time=int(row.observed_at),  # type: ignore[attr-defined]
    )


class PriceRepository:
    async def get_price(self, db: AsyncSession, pair: Pair) -> PriceEntry | None:
        result = await db.execute(
            _GET_PRICE_SQL, {"sell_denom": pair.sell_denom, "buy_denom": pair.buy_denom}
        )
        row = result.fetchone()
        return _row_to_price(row) if row is not None else None

    async def upsert_price(self, db: AsyncSession, entry: PriceEntry) -> None:
        await db.execute(
            _UPSERT_PRICE_SQL,
            {
                "sell_denom": entry.pair.sell_denom,
                "buy_denom": entry.pair.buy_denom,
                "price": entry.price,
                "observed_at": entry.time,
            },
        )

    async def list_prices(self, db: AsyncSession) -> list[PriceEntry]:
        result = await db.execute(_LIST_PRICES_SQL)
        return [_row_to_price(row) for row in result.fetchall()]
