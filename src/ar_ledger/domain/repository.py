"""Ledger repository Protocol.

The ledger is the custody boundary: it holds native balances per holder and
is the only way value moves between holders. Auction escrows are ordinary
holders (see escrow_address).
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ar_ledger.domain.models import LedgerEvent, Transfer


class LedgerRepositoryProtocol(Protocol):
    async def get_balance(self, db: AsyncSession, holder: str, denom: str) -> int: ...

    async def get_balances(
        self, db: AsyncSession, holder: str, denoms: list[str]
    ) -> dict[str, int]: ...

    async def list_balances(self, db: AsyncSession, holder: str) -> dict[str, int]: ...

    async def credit(self, db: AsyncSession, holder: str, denom: str, amount: int) -> int: ...

    async def transfer(self, db: AsyncSession, transfer: Transfer) -> None: ...

    async def write_event(self, db: AsyncSession, event: LedgerEvent) -> None: ...

    async def list_events(
        self, db: AsyncSession, subject: str | None, cursor_id: int | None, limit: int
    ) -> list[tuple[int, LedgerEvent]]: ...
