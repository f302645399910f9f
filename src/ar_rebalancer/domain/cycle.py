"""System rebalance cycle state machine.

    NOT_STARTED{cycle_start} -> PROCESSING{cycle_started, cursor, prices}
        -> FINISHED{next_cycle} -> PROCESSING ...

A call either starts a fresh pass (no cursor, new price snapshot) or resumes
a PROCESSING pass with its cursor and cached prices. A PROCESSING pass whose
period has elapsed is abandoned and restarted.
"""

from dataclasses import dataclass
from decimal import Decimal

from src.ar_common.datetime_utils import start_of_cycle
from src.ar_common.enums import SystemStatusKind
from src.ar_common.errors import CycleNotStartedYetError
from src.ar_common.pair import Pair
from src.ar_rebalancer.domain.models import SystemRebalanceStatus


@dataclass
class CyclePosition:
    start_after: str | None
    cycle_start: int
    prices: dict[Pair, Decimal] | None


def resolve_position(status: SystemRebalanceStatus, now: int, period: int) -> CyclePosition:
    if status.kind == SystemStatusKind.NOT_STARTED:
        if now < status.timestamp:
            raise CycleNotStartedYetError(status.timestamp)
        return CyclePosition(None, start_of_cycle(now, period), None)

    if status.kind == SystemStatusKind.PROCESSING:
        if now >= status.timestamp + period:
            return CyclePosition(None, start_of_cycle(now, period), None)
        return CyclePosition(status.cursor, status.timestamp, status.prices)

    if now < status.timestamp:
        raise CycleNotStartedYetError(status.timestamp)
    return CyclePosition(None, status.timestamp, None)


def next_status(
    fetched: int,
    limit: int,
    cycle_start: int,
    period: int,
    last_account: str | None,
    prices: dict[Pair, Decimal],
) -> SystemRebalanceStatus:
    """*fetched* is how many configs the limit + 1 read returned."""
    if fetched <= limit or last_account is None:
        return SystemRebalanceStatus.finished(cycle_start + period)
    return SystemRebalanceStatus.processing(cycle_start, last_account, prices)
