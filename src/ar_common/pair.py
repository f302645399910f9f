"""Ordered (sell_denom, buy_denom) pair: the identity of an auction market."""

from dataclasses import dataclass

from src.ar_common.errors import InvalidPairError


@dataclass(frozen=True, order=True)
class Pair:
    sell_denom: str
    buy_denom: str

    def validate(self) -> None:
        """Both denoms must be non-empty and distinct."""
        if not self.sell_denom or not self.buy_denom or self.sell_denom == self.buy_denom:
            raise InvalidPairError(self.sell_denom, self.buy_denom)

    def __str__(self) -> str:
        return f"{self.sell_denom}/{self.buy_denom}"
