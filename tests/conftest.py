"""Shared test fixtures."""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")

from collections.abc import AsyncIterator  # noqa: E402
from dataclasses import dataclass  # noqa: E402

import pytest  # noqa: E402
from fakes import (  # noqa: E402
    FakeAuctionRepository,
    FakeLedgerRepository,
    FakePriceRepository,
    FakeRebalancerRepository,
    FakeSession,
)
from httpx import ASGITransport, AsyncClient  # noqa: E402

from config.settings import settings  # noqa: E402
from src.ar_auction.api import router as auction_api  # noqa: E402
from src.ar_auction.application.service import AuctionService  # noqa: E402
from src.ar_common.database import get_db_session  # noqa: E402
from src.ar_gateway.auth.jwt_handler import create_access_token  # noqa: E402
from src.ar_ledger.api import router as ledger_api  # noqa: E402
from src.ar_ledger.application.service import LedgerService  # noqa: E402
from src.ar_oracle.api import router as oracle_api  # noqa: E402
from src.ar_oracle.application.service import PriceFeedService  # noqa: E402
from src.ar_rebalancer.api import router as rebalancer_api  # noqa: E402
from src.ar_rebalancer.application.service import RebalancerService  # noqa: E402
from src.ar_rebalancer.application.system import SystemRebalanceService  # noqa: E402
from src.main import app  # noqa: E402


@dataclass
class Stores:
    ledger: FakeLedgerRepository
    prices: FakePriceRepository
    auctions: FakeAuctionRepository
    rebalancer: FakeRebalancerRepository


@pytest.fixture
def stores() -> Stores:
    return Stores(
        ledger=FakeLedgerRepository(),
        prices=FakePriceRepository(),
        auctions=FakeAuctionRepository(),
        rebalancer=FakeRebalancerRepository(),
    )


@pytest.fixture
def db_session(stores: Stores) -> FakeSession:
    return FakeSession(stores.ledger, stores.prices, stores.auctions, stores.rebalancer)


@pytest.fixture
async def client(
    stores: Stores, db_session: FakeSession, monkeypatch: pytest.MonkeyPatch
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client for testing FastAPI endpoints against in-memory stores."""
    price_feed = PriceFeedService(repo=stores.prices)
    auctions = AuctionService(repo=stores.auctions, ledger=stores.ledger, price_feed=price_feed)
    monkeypatch.setattr(oracle_api, "_service", price_feed)
    monkeypatch.setattr(ledger_api, "_service", LedgerService(repo=stores.ledger))
    monkeypatch.setattr(auction_api, "_service", auctions)
    monkeypatch.setattr(rebalancer_api, "_service", RebalancerService(repo=stores.rebalancer))
    monkeypatch.setattr(
        rebalancer_api,
        "_system",
        SystemRebalanceService(
            repo=stores.rebalancer, ledger=stores.ledger, auctions=auctions, price_feed=price_feed
        ),
    )

    async def _fake_db_session() -> AsyncIterator[FakeSession]:
        yield db_session

    app.dependency_overrides[get_db_session] = _fake_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def _auth(address: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(address)}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return _auth(settings.ADMIN_ADDRESS)


@pytest.fixture
def manager_headers() -> dict[str, str]:
    return _auth(settings.SERVICES_MANAGER_ADDRESS)


@pytest.fixture
def alice_headers() -> dict[str, str]:
    return _auth("alice")
