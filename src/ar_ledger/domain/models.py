"""Ledger domain models: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.ar_common.enums import TransferReason


def escrow_address(sell_denom: str, buy_denom: str) -> str:
    """Holder id under which an auction keeps deposits and bids."""
    return f"auction:{sell_denom}:{buy_denom}"


@dataclass
class Transfer:
    sender: str
    recipient: str
    denom: str
    amount: int
    reason: TransferReason
    reference: str | None = None


@dataclass
class LedgerEvent:
    """Structured event appended to the events journal."""

    event_type: str
    subject: str
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
