"""Pydantic schemas for the ledger API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.ar_ledger.domain.models import LedgerEvent


class CreditRequest(BaseModel):
    holder: str = Field(..., min_length=1)
    denom: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)


class EventResponse(BaseModel):
    id: int
    event_type: str
    subject: str
    payload: dict[str, Any]
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, event_id: int, event: LedgerEvent) -> "EventResponse":
        return cls(
            id=event_id,
            event_type=event.event_type,
            subject=event.subject,
            payload=event.payload,
            created_at=event.created_at,
        )
