"""Pydantic schemas for the rebalancer API."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.ar_common.enums import SystemStatusKind, TargetOverrideStrategy
from src.ar_rebalancer.application.system import CycleReport
from src.ar_rebalancer.domain.models import (
    PID,
    BaseDenom,
    PausedData,
    RebalancerConfig,
    SystemRebalanceStatus,
)
from src.ar_rebalancer.domain.registration import RegistrationData, TargetSpec, UpdateData

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class TargetRequest(BaseModel):
    denom: str = Field(..., min_length=1)
    bps: int = Field(..., ge=0, le=10000)
    min_balance: int | None = Field(None, ge=0)

    def to_spec(self) -> TargetSpec:
        return TargetSpec(denom=self.denom, bps=self.bps, min_balance=self.min_balance)


class PIDRequest(BaseModel):
    p: Decimal = Field(..., ge=0)
    i: Decimal = Field(..., ge=0)
    d: Decimal = Field(..., ge=0)

    def to_domain(self) -> PID:
        return PID(p=self.p, i=self.i, d=self.d)


class RegisterRequest(BaseModel):
    base_denom: str
    targets: list[TargetRequest]
    pid: PIDRequest
    max_limit_bps: int | None = None
    target_override_strategy: TargetOverrideStrategy = TargetOverrideStrategy.PROPORTIONAL
    trustee: str | None = None

    def to_domain(self) -> RegistrationData:
        return RegistrationData(
            base_denom=self.base_denom,
            targets=[t.to_spec() for t in self.targets],
            pid=self.pid.to_domain(),
            max_limit_bps=self.max_limit_bps,
            target_override_strategy=self.target_override_strategy,
            trustee=self.trustee,
        )


class UpdateRequest(BaseModel):
    trustee: str | None = None
    clear_trustee: bool = False
    base_denom: str | None = None
    targets: list[TargetRequest] | None = None
    pid: PIDRequest | None = None
    max_limit_bps: int | None = None
    target_override_strategy: TargetOverrideStrategy | None = None

    def to_domain(self) -> UpdateData:
        return UpdateData(
            trustee=self.trustee,
            clear_trustee=self.clear_trustee,
            base_denom=self.base_denom,
            targets=[t.to_spec() for t in self.targets] if self.targets else None,
            pid=self.pid.to_domain() if self.pid else None,
            max_limit_bps=self.max_limit_bps,
            target_override_strategy=self.target_override_strategy,
        )


class PauseRequest(BaseModel):
    sender: str
    reason: str | None = None


class ResumeRequest(BaseModel):
    sender: str


class SystemRebalanceRequest(BaseModel):
    limit: int | None = Field(None, ge=0)


class SystemStatusRequest(BaseModel):
    kind: SystemStatusKind
    timestamp: int = Field(..., ge=0, description="cycle_start or next_cycle, unix seconds")


class CyclePeriodRequest(BaseModel):
    period: int


class DenomWhitelistRequest(BaseModel):
    to_add: list[str] = Field(default_factory=list)
    to_remove: list[str] = Field(default_factory=list)


class BaseDenomSchema(BaseModel):
    denom: str
    min_balance_limit: int = Field(0, ge=0)


class BaseDenomWhitelistRequest(BaseModel):
    to_add: list[BaseDenomSchema] = Field(default_factory=list)
    to_remove: list[str] = Field(default_factory=list)

    def to_add_domain(self) -> list[BaseDenom]:
        return [BaseDenom(b.denom, b.min_balance_limit) for b in self.to_add]


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TargetResponse(BaseModel):
    denom: str
    percentage: Decimal
    min_balance: int | None
    last_input: Decimal | None
    last_i: Decimal


class RebalancerConfigResponse(BaseModel):
    account: str
    base_denom: str
    targets: list[TargetResponse]
    pid: PIDRequest
    max_limit: Decimal
    last_rebalance: int
    has_min_balance: bool
    target_override_strategy: TargetOverrideStrategy
    trustee: str | None
    paused_by: str | None

    @classmethod
    def from_domain(cls, account: str, config: RebalancerConfig) -> "RebalancerConfigResponse":
        return cls(
            account=account,
            base_denom=config.base_denom,
            targets=[
                TargetResponse(
                    denom=t.denom,
                    percentage=t.percentage,
                    min_balance=t.min_balance,
                    last_input=t.last_input,
                    last_i=t.last_i,
                )
                for t in config.targets
            ],
            pid=PIDRequest(p=config.pid.p, i=config.pid.i, d=config.pid.d),
            max_limit=config.max_limit,
            last_rebalance=config.last_rebalance,
            has_min_balance=config.has_min_balance,
            target_override_strategy=config.target_override_strategy,
            trustee=config.trustee,
            paused_by=config.paused_by,
        )


class PausedConfigResponse(BaseModel):
    pauser: str
    reason: str
    reason_text: str | None
    config: RebalancerConfigResponse

    @classmethod
    def from_domain(cls, account: str, paused: PausedData) -> "PausedConfigResponse":
        return cls(
            pauser=paused.pauser,
            reason=paused.reason.value,
            reason_text=paused.reason_text,
            config=RebalancerConfigResponse.from_domain(account, paused.config),
        )


class SystemStatusResponse(BaseModel):
    kind: SystemStatusKind
    timestamp: int
    cursor: str | None = None
    prices: list[tuple[str, str, Decimal]] = Field(default_factory=list)
    cycle_period: int | None = None

    @classmethod
    def from_domain(
        cls, status: SystemRebalanceStatus, cycle_period: int | None = None
    ) -> "SystemStatusResponse":
        return cls(
            kind=status.kind,
            timestamp=status.timestamp,
            cursor=status.cursor,
            prices=[(p.sell_denom, p.buy_denom, v) for p, v in status.prices.items()],
            cycle_period=cycle_period,
        )


class CycleReportResponse(BaseModel):
    status: SystemStatusResponse
    cycled_over: int
    rebalanced: list[str]
    paused: list[str]
    failed: list[str]
    trades: int

    @classmethod
    def from_domain(cls, report: CycleReport) -> "CycleReportResponse":
        return cls(
            status=SystemStatusResponse.from_domain(report.status),
            cycled_over=report.cycled_over,
            rebalanced=report.rebalanced,
            paused=report.paused,
            failed=report.failed,
            trades=report.trades,
        )
