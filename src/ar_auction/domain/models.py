"""Auction domain models: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from decimal import Decimal

from src.ar_common.block import BlockInfo
from src.ar_common.decimals import ONE, ZERO
from src.ar_common.enums import AuctionStatus
from src.ar_common.errors import InvalidAuctionStrategyError
from src.ar_common.pair import Pair

TWAP_MAX_SAMPLES = 10


@dataclass
class ChainHaltConfig:
    """A chain halt is assumed when wall-clock time since the last checked
    block exceeds blocks_passed * block_avg + cap (all in seconds)."""

    cap: int
    block_avg: int


@dataclass
class PriceFreshnessStrategy:
    """How much to widen the strategy percentages when the feed price is old.

    limit: days after which the price is rejected outright.
    multipliers: (age_days, multiplier), kept sorted by age descending.
    """

    limit: Decimal
    multipliers: list[tuple[Decimal, Decimal]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.multipliers = sorted(self.multipliers, key=lambda m: m[0], reverse=True)

    def multiplier_for(self, age_days: Decimal) -> Decimal:
        """First multiplier whose age is exceeded by *age_days*, else 1."""
        for days, multiplier in self.multipliers:
            if age_days > days:
                return multiplier
        return ONE


@dataclass
class AuctionStrategy:
    """Start/end price offsets from the feed price, in basis points."""

    start_price_perc: int
    end_price_perc: int

    def validate(self) -> None:
        if self.start_price_perc <= 0:
            raise InvalidAuctionStrategyError("start_price_perc must be positive")
        if self.end_price_perc <= 0 or self.end_price_perc >= 10000:
            raise InvalidAuctionStrategyError("end_price_perc must be between 1 and 9999")


@dataclass
class AuctionConfig:
    pair: Pair
    paused: bool
    chain_halt_config: ChainHaltConfig
    price_freshness_strategy: PriceFreshnessStrategy


@dataclass
class AuctionIds:
    """curr is the round being run or settled; deposits go to next."""

    curr: int = 0
    next: int = 1


@dataclass
class ClosingCursor:
    """Resumption payload of a paginated settlement (status CLOSING)."""

    last_provider: str
    sold_sent: int
    bought_sent: int


@dataclass
class ActiveAuction:
    status: AuctionStatus
    start_block: int
    end_block: int
    start_price: Decimal
    end_price: Decimal
    available_amount: int
    resolved_amount: int
    total_amount: int
    leftovers: list[int]  # [sell token, buy token]
    last_checked_block: BlockInfo
    closing: ClosingCursor | None = None

    @classmethod
    def closed(cls, block: BlockInfo) -> "ActiveAuction":
        """Zeroed round in AUCTION_CLOSED; the state of a freshly created pair."""
        return cls(
            status=AuctionStatus.AUCTION_CLOSED,
            start_block=0,
            end_block=0,
            start_price=ZERO,
            end_price=ZERO,
            available_amount=0,
            resolved_amount=0,
            total_amount=0,
            leftovers=[0, 0],
            last_checked_block=block,
        )


@dataclass
class TwapPrice:
    price: Decimal
    time: int


@dataclass
class MinAmount:
    """Per-denom minimum deposit (send) and minimum to start an auction."""

    send: int
    start_auction: int


@dataclass
class BidOutcome:
    bought: int  # sell token paid to the bidder
    refund: int  # buy token returned to the bidder
    halted: bool = False


@dataclass
class Payout:
    """What one provider receives from a settlement page."""

    provider: str
    sell_refund: int
    buy_amount: int
