"""Price feed domain model."""

from dataclasses import dataclass
from decimal import Decimal

from src.ar_common.pair import Pair


@dataclass
class PriceEntry:
    """Latest known price for a pair: units of buy_denom per 1 sell_denom."""

    pair: Pair
    price: Decimal
    time: int  # unix seconds the price was observed at
