"""Unit tests for LedgerService and the escrow address helper."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fakes import FakeLedgerRepository

from src.ar_common.enums import TransferReason
from src.ar_common.errors import InsufficientBalanceError, InvalidAmountError
from src.ar_ledger.application.service import LedgerService
from src.ar_ledger.domain.models import LedgerEvent, Transfer, escrow_address


def test_escrow_address_is_per_pair() -> None:
    assert escrow_address("untrn", "uusdc") == "auction:untrn:uusdc"
    assert escrow_address("uusdc", "untrn") != escrow_address("untrn", "uusdc")


class TestCredit:
    async def test_returns_new_balance(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.credit.return_value = 150
        svc = LedgerService(repo=mock_repo)

        assert await svc.credit(MagicMock(), "alice", "untrn", 50) == 150
        mock_repo.credit.assert_called_once()

    async def test_rejects_non_positive_amount(self) -> None:
        svc = LedgerService(repo=FakeLedgerRepository())
        with pytest.raises(InvalidAmountError):
            await svc.credit(MagicMock(), "alice", "untrn", 0)


class TestBalances:
    async def test_lists_only_the_holders_balances(self) -> None:
        repo = FakeLedgerRepository()
        svc = LedgerService(repo=repo)
        db = MagicMock()
        await svc.credit(db, "alice", "untrn", 10)
        await svc.credit(db, "alice", "uusdc", 20)
        await svc.credit(db, "bob", "untrn", 30)

        assert await svc.get_balances(db, "alice") == {"untrn": 10, "uusdc": 20}

    async def test_overdraft_is_rejected(self) -> None:
        repo = FakeLedgerRepository()
        db = MagicMock()
        await repo.credit(db, "alice", "untrn", 10)

        with pytest.raises(InsufficientBalanceError):
            await repo.transfer(
                db, Transfer("alice", "bob", "untrn", 11, TransferReason.AUCTION_DEPOSIT)
            )
        assert await repo.get_balance(db, "alice", "untrn") == 10


class TestListEvents:
    async def test_newest_first_with_has_more(self) -> None:
        repo = FakeLedgerRepository()
        svc = LedgerService(repo=repo)
        db = MagicMock()
        for i in range(3):
            await repo.write_event(db, LedgerEvent("rebalancer-cycle", "system", {"n": i}))

        rows, has_more = await svc.list_events(db, None, None, 2)

        assert [event_id for event_id, _ in rows] == [3, 2]
        assert has_more

    async def test_cursor_and_subject_filter(self) -> None:
        repo = FakeLedgerRepository()
        svc = LedgerService(repo=repo)
        db = MagicMock()
        await repo.write_event(db, LedgerEvent("rebalancer-error", "acct-a"))
        await repo.write_event(db, LedgerEvent("rebalancer-error", "acct-b"))
        await repo.write_event(db, LedgerEvent("rebalancer-error", "acct-a"))

        rows, has_more = await svc.list_events(db, "acct-a", 3, 10)

        assert [event_id for event_id, _ in rows] == [1]
        assert not has_more
