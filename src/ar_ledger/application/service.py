"""LedgerService: custody reads, admin deposits and the event journal."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.ar_ledger.domain.models import LedgerEvent
from src.ar_ledger.domain.repository import LedgerRepositoryProtocol
from src.ar_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class LedgerService:
    def __init__(self, repo: LedgerRepositoryProtocol | None = None) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()

    async def get_balances(self, db: AsyncSession, holder: str) -> dict[str, int]:
        return await self._repo.list_balances(db, holder)

    async def credit(self, db: AsyncSession, holder: str, denom: str, amount: int) -> int:
        balance = await self._repo.credit(db, holder, denom, amount)
        logger.info("Credited %d %s to %s", amount, denom, holder)
        return balance

    async def list_events(
        self, db: AsyncSession, subject: str | None, cursor_id: int | None, limit: int
    ) -> tuple[list[tuple[int, LedgerEvent]], bool]:
        rows = await self._repo.list_events(db, subject, cursor_id, limit + 1)
        return rows[:limit], len(rows) > limit
