"""LedgerRepository: concrete implementation of LedgerRepositoryProtocol.

Balance mutations are atomic PostgreSQL UPDATE ... RETURNING statements; a
debit that returns 0 rows means the sender could not cover the amount.

Transaction ownership: the caller commits. Nothing here calls commit().
"""

import json

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ar_common.enums import TransferReason
from src.ar_common.errors import InsufficientBalanceError, InvalidAmountError
from src.ar_ledger.domain.models import LedgerEvent, Transfer

_GET_BALANCE_SQL = text("""
    SELECT amount FROM balances WHERE holder = :holder AND denom = :denom
""")

_LIST_BALANCES_SQL = text("""
    SELECT denom, amount FROM balances WHERE holder = :holder ORDER BY denom
""")

_CREDIT_SQL = text("""
    INSERT INTO balances (holder, denom, amount)
    VALUES (:holder, :denom, :amount)
    ON CONFLICT (holder, denom) DO UPDATE
        SET amount = balances.amount + EXCLUDED.amount,
            updated_at = NOW()
    RETURNING amount
""")

_DEBIT_SQL = text("""
    UPDATE balances
    SET amount = amount - :amount,
        updated_at = NOW()
    WHERE holder = :holder AND denom = :denom AND amount >= :amount
    RETURNING amount
""")

_INSERT_TRANSFER_SQL = text("""
    INSERT INTO transfers (sender, recipient, denom, amount, reason, reference)
    VALUES (:sender, :recipient, :denom, :amount, :reason, :reference)
""")

_INSERT_EVENT_SQL = text("""
    INSERT INTO events (event_type, subject, payload)
    VALUES (:event_type, :subject, :payload)
""")

_LIST_EVENTS_SQL = text("""
    SELECT id, event_type, subject, payload, created_at
    FROM events
    WHERE (CAST(:subject AS VARCHAR) IS NULL OR subject = :subject)
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")


class LedgerRepository:
    """Concrete repository: all operations atomic at the SQL level."""

    async def get_balance(self, db: AsyncSession, holder: str, denom: str) -> int:
        result = await db.execute(_GET_BALANCE_SQL, {"holder": holder, "denom": denom})
        row = result.fetchone()
        return int(row.amount) if row is not None else 0

    async def get_balances(
        self, db: AsyncSession, holder: str, denoms: list[str]
    ) -> dict[str, int]:
        held = await self.list_balances(db, holder)
        return {denom: held.get(denom, 0) for denom in denoms}

    async def list_balances(self, db: AsyncSession, holder: str) -> dict[str, int]:
        result = await db.execute(_LIST_BALANCES_SQL, {"holder": holder})
        return {row.denom: int(row.amount) for row in result.fetchall()}

    async def credit(self, db: AsyncSession, holder: str, denom: str, amount: int) -> int:
        """External deposit into custody; returns the new balance."""
        if amount <= 0:
            raise InvalidAmountError()
        result = await db.execute(
            _CREDIT_SQL, {"holder": holder, "denom": denom, "amount": amount}
        )
        new_balance = int(result.scalar_one())
        await db.execute(
            _INSERT_TRANSFER_SQL,
            {
                "sender": "external",
                "recipient": holder,
                "denom": denom,
                "amount": amount,
                "reason": TransferReason.EXTERNAL_DEPOSIT.value,
                "reference": None,
            },
        )
        return new_balance

    async def transfer(self, db: AsyncSession, transfer: Transfer) -> None:
        """Debit sender, credit recipient and journal the movement.

        Zero-amount transfers are no-ops; they are common for refunds.
        """
        if transfer.amount == 0:
            return
        if transfer.amount < 0:
            raise InvalidAmountError()

        params = {
            "holder": transfer.sender,
            "denom": transfer.denom,
            "amount": transfer.amount,
        }
        result = await db.execute(_DEBIT_SQL, params)
        if result.fetchone() is None:
            available = await self.get_balance(db, transfer.sender, transfer.denom)
            raise InsufficientBalanceError(
                transfer.sender, transfer.denom, transfer.amount, available
            )
        await db.execute(
            _CREDIT_SQL,
            {"holder": transfer.recipient, "denom": transfer.denom, "amount": transfer.amount},
        )
        await db.execute(
            _INSERT_TRANSFER_SQL,
            {
                "sender": transfer.sender,
                "recipient": transfer.recipient,
                "denom": transfer.denom,
                "amount": transfer.amount,
                "reason": transfer.reason.value,
                "reference": transfer.reference,
            },
        )

    async def write_event(self, db: AsyncSession, event: LedgerEvent) -> None:
        await db.execute(
            _INSERT_EVENT_SQL,
            {
                "event_type": event.event_type,
                "subject": event.subject,
                "payload": json.dumps(event.payload, default=str),
            },
        )

    async def list_events(
        self, db: AsyncSession, subject: str | None, cursor_id: int | None, limit: int
    ) -> list[tuple[int, LedgerEvent]]:
        result = await db.execute(
            _LIST_EVENTS_SQL, {"subject": subject, "cursor_id": cursor_id, "limit": limit}
        )
        events = []
        for row in result.fetchall():
            payload = row.payload if isinstance(row.payload, dict) else json.loads(row.payload)
            events.append(
                (
                    row.id,
                    LedgerEvent(
                        event_type=row.event_type,
                        subject=row.subject,
                        payload=payload,
                        created_at=row.created_at,
                    ),
                )
            )
        return events
