"""Unit tests for PriceFeedService using a mock repository."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.ar_common.block import BlockInfo
from src.ar_common.errors import InvalidPairError, PriceIsZeroError, PriceNotFoundError
from src.ar_common.pair import Pair
from src.ar_oracle.application.service import PriceFeedService
from src.ar_oracle.domain.models import PriceEntry

PAIR = Pair("uusdc", "untrn")


class TestGetPrice:
    async def test_returns_entry(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.get_price.return_value = PriceEntry(PAIR, Decimal("2.5"), 1000)
        svc = PriceFeedService(repo=mock_repo)

        entry = await svc.get_price(MagicMock(), PAIR)

        assert entry.price == Decimal("2.5")
        mock_repo.get_price.assert_called_once()

    async def test_missing_price(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.get_price.return_value = None
        svc = PriceFeedService(repo=mock_repo)

        with pytest.raises(PriceNotFoundError):
            await svc.get_price(MagicMock(), PAIR)

    async def test_zero_price(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.get_price.return_value = PriceEntry(PAIR, Decimal(0), 1000)
        svc = PriceFeedService(repo=mock_repo)

        with pytest.raises(PriceIsZeroError):
            await svc.get_price(MagicMock(), PAIR)


class TestUpdatePrice:
    async def test_stamps_block_time(self) -> None:
        mock_repo = AsyncMock()
        svc = PriceFeedService(repo=mock_repo)

        entry = await svc.update_price(MagicMock(), PAIR, "2.75", BlockInfo(10, 5000))

        assert entry == PriceEntry(PAIR, Decimal("2.75"), 5000)
        mock_repo.upsert_price.assert_called_once()

    async def test_rejects_zero(self) -> None:
        svc = PriceFeedService(repo=AsyncMock())
        with pytest.raises(PriceIsZeroError):
            await svc.update_price(MagicMock(), PAIR, "0", BlockInfo(10, 5000))

    async def test_rejects_same_denom_pair(self) -> None:
        svc = PriceFeedService(repo=AsyncMock())
        with pytest.raises(InvalidPairError):
            await svc.update_price(MagicMock(), Pair("uusdc", "uusdc"), "1", BlockInfo(10, 5000))
