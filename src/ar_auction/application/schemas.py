"""Pydantic schemas for the auction API."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.ar_auction.domain.models import (
    ActiveAuction,
    AuctionConfig,
    AuctionStrategy,
    BidOutcome,
    ChainHaltConfig,
    MinAmount,
    Payout,
    PriceFreshnessStrategy,
    TwapPrice,
)

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class StrategySchema(BaseModel):
    start_price_perc: int = Field(..., description="Start price offset above the feed, bps")
    end_price_perc: int = Field(..., description="End price offset below the feed, bps")

    def to_domain(self) -> AuctionStrategy:
        return AuctionStrategy(self.start_price_perc, self.end_price_perc)


class ChainHaltSchema(BaseModel):
    cap: int = Field(..., ge=0, description="Tolerated extra seconds before assuming a halt")
    block_avg: int = Field(..., ge=0, description="Expected seconds per block")

    def to_domain(self) -> ChainHaltConfig:
        return ChainHaltConfig(cap=self.cap, block_avg=self.block_avg)


class PriceFreshnessSchema(BaseModel):
    limit: Decimal = Field(..., ge=0, description="Days after which the feed price is rejected")
    multipliers: list[tuple[Decimal, Decimal]] = Field(
        default_factory=list, description="(age in days, multiplier) pairs"
    )

    def to_domain(self) -> PriceFreshnessStrategy:
        return PriceFreshnessStrategy(limit=self.limit, multipliers=list(self.multipliers))


class MinAmountSchema(BaseModel):
    send: int = Field(..., ge=0)
    start_auction: int = Field(..., ge=0)

    def to_domain(self) -> MinAmount:
        return MinAmount(send=self.send, start_auction=self.start_auction)


class CreateAuctionRequest(BaseModel):
    sell_denom: str
    buy_denom: str
    strategy: StrategySchema
    chain_halt_config: ChainHaltSchema
    price_freshness_strategy: PriceFreshnessSchema
    min_amount: MinAmountSchema | None = None


class OpenAuctionRequest(BaseModel):
    end_block: int = Field(..., gt=0)
    start_block: int | None = Field(None, ge=0, description="Defaults to the current height")


class AmountRequest(BaseModel):
    amount: int = Field(..., gt=0)


class FinishAuctionRequest(BaseModel):
    limit: int | None = Field(None, ge=1, description="Providers settled per call")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class AuctionConfigResponse(BaseModel):
    sell_denom: str
    buy_denom: str
    paused: bool
    chain_halt_config: ChainHaltSchema
    price_freshness_strategy: PriceFreshnessSchema

    @classmethod
    def from_domain(cls, config: AuctionConfig) -> "AuctionConfigResponse":
        freshness = config.price_freshness_strategy
        return cls(
            sell_denom=config.pair.sell_denom,
            buy_denom=config.pair.buy_denom,
            paused=config.paused,
            chain_halt_config=ChainHaltSchema(
                cap=config.chain_halt_config.cap,
                block_avg=config.chain_halt_config.block_avg,
            ),
            price_freshness_strategy=PriceFreshnessSchema(
                limit=freshness.limit, multipliers=freshness.multipliers
            ),
        )


class ActiveAuctionResponse(BaseModel):
    status: str
    start_block: int
    end_block: int
    start_price: Decimal
    end_price: Decimal
    current_price: Decimal | None = None
    available_amount: int
    resolved_amount: int
    total_amount: int
    leftovers: list[int]
    last_checked_height: int
    closing_cursor: str | None = None

    @classmethod
    def from_domain(
        cls, auction: ActiveAuction, current_price: Decimal | None = None
    ) -> "ActiveAuctionResponse":
        return cls(
            status=auction.status.value,
            start_block=auction.start_block,
            end_block=auction.end_block,
            start_price=auction.start_price,
            end_price=auction.end_price,
            current_price=current_price,
            available_amount=auction.available_amount,
            resolved_amount=auction.resolved_amount,
            total_amount=auction.total_amount,
            leftovers=list(auction.leftovers),
            last_checked_height=auction.last_checked_block.height,
            closing_cursor=auction.closing.last_provider if auction.closing else None,
        )


class BidResponse(BaseModel):
    bought: int
    refund: int
    halted: bool

    @classmethod
    def from_domain(cls, outcome: BidOutcome) -> "BidResponse":
        return cls(bought=outcome.bought, refund=outcome.refund, halted=outcome.halted)


class FinishAuctionResponse(BaseModel):
    status: str
    closed: bool
    payouts: list[dict[str, int | str]]

    @classmethod
    def from_domain(
        cls, auction: ActiveAuction, payouts: list[Payout]
    ) -> "FinishAuctionResponse":
        return cls(
            status=auction.status.value,
            closed=auction.closing is None,
            payouts=[
                {"provider": p.provider, "sell_refund": p.sell_refund, "buy_amount": p.buy_amount}
                for p in payouts
            ],
        )


class FundsResponse(BaseModel):
    provider: str
    curr: int
    next: int


class TwapPriceResponse(BaseModel):
    price: Decimal
    time: int

    @classmethod
    def from_domain(cls, sample: TwapPrice) -> "TwapPriceResponse":
        return cls(price=sample.price, time=sample.time)


class MmDataResponse(BaseModel):
    """Snapshot a market maker needs to decide whether to bid."""

    status: str
    available_amount: int
    end_block: int
    current_price: Decimal
    block_height: int
    min_start_auction: int | None = None
