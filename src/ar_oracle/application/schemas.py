"""Pydantic schemas for the price feed API."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.ar_oracle.domain.models import PriceEntry


class UpdatePriceRequest(BaseModel):
    price: Decimal = Field(..., gt=0, description="Units of buy denom per 1 sell denom")


class PriceResponse(BaseModel):
    sell_denom: str
    buy_denom: str
    price: Decimal
    time: int

    @classmethod
    def from_domain(cls, entry: PriceEntry) -> "PriceResponse":
        return cls(
            sell_denom=entry.pair.sell_denom,
            buy_denom=entry.pair.buy_denom,
            price=entry.price,
            time=entry.time,
        )
