"""Account registration rules and pause/resume authorization."""

from dataclasses import dataclass
from decimal import Decimal

from src.ar_common.decimals import ONE, bps
from src.ar_common.enums import TargetOverrideStrategy
from src.ar_common.errors import (
    AccountAlreadyPausedError,
    BaseDenomNotWhitelistedError,
    DenomNotWhitelistedError,
    InvalidMaxLimitRangeError,
    InvalidTargetPercentageError,
    MultipleMinBalanceTargetsError,
    NotAuthorizedToPauseError,
    NotAuthorizedToResumeError,
    TargetsMustBeUniqueError,
    TwoTargetsMinimumError,
)
from src.ar_rebalancer.domain.models import PID, BaseDenom, Target

TOTAL_BPS = 10000


@dataclass
class TargetSpec:
    """A target as submitted by the account."""

    denom: str
    bps: int
    min_balance: int | None = None

    def to_target(self) -> Target:
        return Target.from_bps(self.denom, self.bps, self.min_balance)


def validate_base_denom(base_denom: str, base_denoms: list[BaseDenom]) -> None:
    if not any(bd.denom == base_denom for bd in base_denoms):
        raise BaseDenomNotWhitelistedError(base_denom)


def validate_targets(
    targets: list[TargetSpec], denom_whitelist: list[str], require_two: bool = True
) -> bool:
    """Check a full target list; returns whether it carries a min_balance target."""
    if require_two and len(targets) < 2:
        raise TwoTargetsMinimumError()

    denoms = [t.denom for t in targets]
    if len(set(denoms)) != len(denoms):
        raise TargetsMustBeUniqueError()

    has_min_balance = False
    total_bps = 0
    for target in targets:
        total_bps += target.bps
        if target.min_balance is not None:
            if has_min_balance:
                raise MultipleMinBalanceTargetsError()
            has_min_balance = True
        if target.denom not in denom_whitelist:
            raise DenomNotWhitelistedError(target.denom)

    if total_bps != TOTAL_BPS:
        raise InvalidTargetPercentageError(str(bps(total_bps)))
    return has_min_balance


def parse_max_limit(max_limit_bps: int | None) -> Decimal:
    if max_limit_bps is None:
        return ONE
    if not 1 <= max_limit_bps <= TOTAL_BPS:
        raise InvalidMaxLimitRangeError()
    return bps(max_limit_bps)


def resolve_pauser(
    account: str, sender: str, trustee: str | None, current_pauser: str | None
) -> str:
    """Who is recorded as pausing *account* when *sender* asks to pause it.

    An account paused by its trustee can be taken over by the account itself
    so the trustee can no longer resume it.
    """
    if current_pauser is not None:
        if trustee is not None and current_pauser == trustee and sender == account:
            return account
        raise AccountAlreadyPausedError()

    if sender == account:
        return account
    if trustee is not None and sender == trustee:
        return trustee
    raise NotAuthorizedToPauseError()


def check_can_resume(account: str, sender: str, trustee: str | None, pauser: str) -> None:
    if sender == account:
        return
    if trustee is not None and sender == trustee and pauser == trustee:
        return
    raise NotAuthorizedToResumeError()


@dataclass
class RegistrationData:
    base_denom: str
    targets: list[TargetSpec]
    pid: PID
    max_limit_bps: int | None = None
    target_override_strategy: TargetOverrideStrategy = TargetOverrideStrategy.PROPORTIONAL
    trustee: str | None = None


@dataclass
class UpdateData:
    """Partial update; None leaves a field untouched.

    clear_trustee removes the trustee; it wins over *trustee*.
    """

    trustee: str | None = None
    clear_trustee: bool = False
    base_denom: str | None = None
    targets: list[TargetSpec] | None = None
    pid: PID | None = None
    max_limit_bps: int | None = None
    target_override_strategy: TargetOverrideStrategy | None = None
