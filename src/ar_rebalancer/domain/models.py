"""Rebalancer domain models: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from src.ar_common.decimals import ONE, ZERO, bps
from src.ar_common.enums import PauseReasonKind, SystemStatusKind, TargetOverrideStrategy
from src.ar_common.errors import PIDErrorOverError
from src.ar_common.pair import Pair


@dataclass
class Target:
    """One allocation line of an account.

    percentage is a fraction of one (bps / 10000). last_input and last_i are
    the PID state carried between cycles.
    """

    denom: str
    percentage: Decimal
    min_balance: int | None = None
    last_input: Decimal | None = None
    last_i: Decimal = ZERO

    @classmethod
    def from_bps(cls, denom: str, target_bps: int, min_balance: int | None = None) -> "Target":
        return cls(denom=denom, percentage=bps(target_bps), min_balance=min_balance)

    def update_last(self, other: "Target") -> None:
        self.last_input = other.last_input
        self.last_i = other.last_i

    def reset_pid_state(self) -> None:
        self.last_input = None
        self.last_i = ZERO


@dataclass
class PID:
    p: Decimal
    i: Decimal
    d: Decimal

    def verify(self) -> "PID":
        if self.p > ONE or self.i > ONE:
            raise PIDErrorOverError()
        return self


@dataclass
class RebalancerConfig:
    base_denom: str
    targets: list[Target]
    pid: PID
    max_limit: Decimal = ONE
    last_rebalance: int = 0
    has_min_balance: bool = False
    target_override_strategy: TargetOverrideStrategy = TargetOverrideStrategy.PROPORTIONAL
    trustee: str | None = None
    paused_by: str | None = None

    def target_denoms(self) -> list[str]:
        return [t.denom for t in self.targets]


@dataclass
class PausedData:
    pauser: str
    reason: PauseReasonKind
    config: RebalancerConfig
    reason_text: str | None = None

    @classmethod
    def account_reason(cls, pauser: str, reason: str, config: RebalancerConfig) -> "PausedData":
        return cls(pauser=pauser, reason=PauseReasonKind.ACCOUNT_REASON, config=config,
                   reason_text=reason)

    @classmethod
    def empty_balance(cls, rebalancer: str, config: RebalancerConfig) -> "PausedData":
        return cls(pauser=rebalancer, reason=PauseReasonKind.EMPTY_BALANCE, config=config)


@dataclass
class BaseDenom:
    denom: str
    min_balance_limit: int = 0


@dataclass
class SystemRebalanceStatus:
    """Tagged cycle state.

    timestamp means cycle_start for NOT_STARTED, cycle_started for PROCESSING
    and next_cycle for FINISHED. cursor and prices are only set while
    PROCESSING.
    """

    kind: SystemStatusKind
    timestamp: int
    cursor: str | None = None
    prices: dict[Pair, Decimal] = field(default_factory=dict)

    @classmethod
    def not_started(cls, cycle_start: int) -> "SystemRebalanceStatus":
        return cls(SystemStatusKind.NOT_STARTED, cycle_start)

    @classmethod
    def processing(
        cls, cycle_started: int, cursor: str, prices: dict[Pair, Decimal]
    ) -> "SystemRebalanceStatus":
        return cls(SystemStatusKind.PROCESSING, cycle_started, cursor, dict(prices))

    @classmethod
    def finished(cls, next_cycle: int) -> "SystemRebalanceStatus":
        return cls(SystemStatusKind.FINISHED, next_cycle)


@dataclass(frozen=True)
class Trade:
    """Move *amount* of pair.sell_denom into the (sell, buy) auction."""

    pair: Pair
    amount: int


@dataclass
class TargetHelper:
    """Working copy of a target for one rebalance pass.

    balance_value = balance_amount / price, in base-denom terms.
    value_to_trade is the unsigned PID output; auction_min_send_value is the
    auction's minimum send amount expressed in base-denom terms.
    """

    target: Target
    price: Decimal
    balance_amount: int
    balance_value: Decimal
    value_to_trade: Decimal = ZERO
    auction_min_send_value: Decimal = ZERO


@dataclass
class RebalanceResult:
    config: RebalancerConfig
    trades: list[Trade]
    event_type: str
    event: dict[str, Any]
    should_pause: bool = False
