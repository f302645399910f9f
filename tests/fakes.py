"""In-memory repositories and session for service and API tests.

Every repository stores and returns deep copies, the way a database row
round-trip would. FakeSession.begin_nested() snapshots the registered stores
and restores them when the block raises, mirroring a savepoint rollback.
"""

import copy
from typing import Any

from src.ar_auction.domain.models import (
    ActiveAuction,
    AuctionConfig,
    AuctionIds,
    AuctionStrategy,
    MinAmount,
    TwapPrice,
)
from src.ar_common.errors import InsufficientBalanceError, InvalidAmountError
from src.ar_common.pair import Pair
from src.ar_ledger.domain.models import LedgerEvent, Transfer
from src.ar_oracle.domain.models import PriceEntry
from src.ar_rebalancer.domain.models import (
    BaseDenom,
    PausedData,
    RebalancerConfig,
    SystemRebalanceStatus,
)


class _Savepoint:
    def __init__(self, session: "FakeSession") -> None:
        self._session = session
        self._snapshot: list[dict[str, Any]] = []

    async def __aenter__(self) -> "_Savepoint":
        self._session.savepoints += 1
        self._snapshot = [copy.deepcopy(store.__dict__) for store in self._session.stores]
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        if exc_type is not None:
            self._session.savepoint_rollbacks += 1
            for store, state in zip(self._session.stores, self._snapshot):
                store.__dict__.clear()
                store.__dict__.update(state)
        return False


class FakeSession:
    def __init__(self, *stores: Any) -> None:
        self.stores = list(stores)
        self.commits = 0
        self.rollbacks = 0
        self.savepoints = 0
        self.savepoint_rollbacks = 0

    def begin_nested(self) -> _Savepoint:
        return _Savepoint(self)

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


class FakeLedgerRepository:
    def __init__(self) -> None:
        self.balances: dict[tuple[str, str], int] = {}
        self.transfers: list[Transfer] = []
        self.events: list[LedgerEvent] = []

    async def get_balance(self, db: Any, holder: str, denom: str) -> int:
        return self.balances.get((holder, denom), 0)

    async def get_balances(self, db: Any, holder: str, denoms: list[str]) -> dict[str, int]:
        return {denom: self.balances.get((holder, denom), 0) for denom in denoms}

    async def list_balances(self, db: Any, holder: str) -> dict[str, int]:
        return {
            denom: amount
            for (owner, denom), amount in sorted(self.balances.items())
            if owner == holder
        }

    async def credit(self, db: Any, holder: str, denom: str, amount: int) -> int:
        if amount <= 0:
            raise InvalidAmountError()
        self.balances[(holder, denom)] = self.balances.get((holder, denom), 0) + amount
        return self.balances[(holder, denom)]

    async def transfer(self, db: Any, transfer: Transfer) -> None:
        if transfer.amount == 0:
            return
        if transfer.amount < 0:
            raise InvalidAmountError()
        available = self.balances.get((transfer.sender, transfer.denom), 0)
        if available < transfer.amount:
            raise InsufficientBalanceError(
                transfer.sender, transfer.denom, transfer.amount, available
            )
        self.balances[(transfer.sender, transfer.denom)] = available - transfer.amount
        key = (transfer.recipient, transfer.denom)
        self.balances[key] = self.balances.get(key, 0) + transfer.amount
        self.transfers.append(copy.deepcopy(transfer))

    async def write_event(self, db: Any, event: LedgerEvent) -> None:
        self.events.append(copy.deepcopy(event))

    async def list_events(
        self, db: Any, subject: str | None, cursor_id: int | None, limit: int
    ) -> list[tuple[int, LedgerEvent]]:
        rows = [(i + 1, event) for i, event in enumerate(self.events)]
        rows = [
            (event_id, event)
            for event_id, event in reversed(rows)
            if (subject is None or event.subject == subject)
            and (cursor_id is None or event_id < cursor_id)
        ]
        return rows[:limit]

    def events_of(self, event_type: str) -> list[LedgerEvent]:
        return [e for e in self.events if e.event_type == event_type]


class FakePriceRepository:
    def __init__(self) -> None:
        self.entries: dict[Pair, PriceEntry] = {}

    async def get_price(self, db: Any, pair: Pair) -> PriceEntry | None:
        return copy.deepcopy(self.entries.get(pair))

    async def upsert_price(self, db: Any, entry: PriceEntry) -> None:
        self.entries[entry.pair] = copy.deepcopy(entry)

    async def list_prices(self, db: Any) -> list[PriceEntry]:
        return [copy.deepcopy(self.entries[p]) for p in sorted(self.entries)]


class FakeAuctionRepository:
    def __init__(self) -> None:
        self.configs: dict[Pair, AuctionConfig] = {}
        self.strategies: dict[Pair, AuctionStrategy] = {}
        self.ids: dict[Pair, AuctionIds] = {}
        self.auctions: dict[Pair, ActiveAuction] = {}
        self.funds: dict[tuple[Pair, int], dict[str, int]] = {}
        self.twap: dict[Pair, list[TwapPrice]] = {}
        self.min_amounts: dict[str, MinAmount] = {}
        self.locked_ids: list[Pair] = []

    async def create_auction(
        self,
        db: Any,
        config: AuctionConfig,
        strategy: AuctionStrategy,
        auction: ActiveAuction,
    ) -> None:
        self.configs[config.pair] = copy.deepcopy(config)
        self.strategies[config.pair] = copy.deepcopy(strategy)
        self.ids[config.pair] = AuctionIds()
        self.auctions[config.pair] = copy.deepcopy(auction)

    async def list_pairs(self, db: Any) -> list[Pair]:
        return sorted(self.configs)

    async def get_config(self, db: Any, pair: Pair) -> AuctionConfig | None:
        return copy.deepcopy(self.configs.get(pair))

    async def save_config(self, db: Any, config: AuctionConfig) -> None:
        self.configs[config.pair] = copy.deepcopy(config)

    async def get_strategy(self, db: Any, pair: Pair) -> AuctionStrategy | None:
        return copy.deepcopy(self.strategies.get(pair))

    async def save_strategy(self, db: Any, pair: Pair, strategy: AuctionStrategy) -> None:
        self.strategies[pair] = copy.deepcopy(strategy)

    async def get_ids(self, db: Any, pair: Pair, for_update: bool = False) -> AuctionIds:
        if for_update:
            self.locked_ids.append(pair)
        return copy.deepcopy(self.ids.get(pair, AuctionIds()))

    async def save_ids(self, db: Any, pair: Pair, ids: AuctionIds) -> None:
        self.ids[pair] = copy.deepcopy(ids)

    async def get_auction(
        self, db: Any, pair: Pair, for_update: bool = False
    ) -> ActiveAuction | None:
        return copy.deepcopy(self.auctions.get(pair))

    async def save_auction(self, db: Any, pair: Pair, auction: ActiveAuction) -> None:
        self.auctions[pair] = copy.deepcopy(auction)

    async def get_funds(self, db: Any, pair: Pair, auction_id: int, provider: str) -> int:
        return self.funds.get((pair, auction_id), {}).get(provider, 0)

    async def add_funds(
        self, db: Any, pair: Pair, auction_id: int, provider: str, amount: int
    ) -> None:
        ledger = self.funds.setdefault((pair, auction_id), {})
        ledger[provider] = ledger.get(provider, 0) + amount

    async def remove_funds(self, db: Any, pair: Pair, auction_id: int, provider: str) -> int:
        return self.funds.get((pair, auction_id), {}).pop(provider, 0)

    async def get_funds_sum(self, db: Any, pair: Pair, auction_id: int) -> int:
        return sum(self.funds.get((pair, auction_id), {}).values())

    async def list_funds(
        self,
        db: Any,
        pair: Pair,
        auction_id: int,
        start_after: str | None,
        limit: int,
    ) -> list[tuple[str, int]]:
        ledger = self.funds.get((pair, auction_id), {})
        rows = [
            (provider, ledger[provider])
            for provider in sorted(ledger)
            if start_after is None or provider > start_after
        ]
        return rows[:limit]

    async def clear_funds(self, db: Any, pair: Pair, auction_id: int) -> None:
        self.funds.pop((pair, auction_id), None)

    async def get_twap_prices(self, db: Any, pair: Pair) -> list[TwapPrice]:
        return copy.deepcopy(self.twap.get(pair, []))

    async def save_twap_prices(self, db: Any, pair: Pair, prices: list[TwapPrice]) -> None:
        self.twap[pair] = copy.deepcopy(prices)

    async def get_min_amount(self, db: Any, denom: str) -> MinAmount | None:
        return copy.deepcopy(self.min_amounts.get(denom))

    async def set_min_amount(self, db: Any, denom: str, min_amount: MinAmount) -> None:
        self.min_amounts[denom] = copy.deepcopy(min_amount)


class FakeRebalancerRepository:
    def __init__(self, cycle_period: int = 86400) -> None:
        self.configs: dict[str, RebalancerConfig] = {}
        self.paused: dict[str, PausedData] = {}
        self.denoms: set[str] = set()
        self.base_denoms: dict[str, BaseDenom] = {}
        self.status = SystemRebalanceStatus.not_started(0)
        self.cycle_period = cycle_period
        self.system_locks = 0

    async def get_config(self, db: Any, account: str) -> RebalancerConfig | None:
        return copy.deepcopy(self.configs.get(account))

    async def save_config(self, db: Any, account: str, config: RebalancerConfig) -> None:
        self.configs[account] = copy.deepcopy(config)

    async def remove_config(self, db: Any, account: str) -> None:
        self.configs.pop(account, None)

    async def list_configs(
        self, db: Any, start_after: str | None, limit: int
    ) -> list[tuple[str, RebalancerConfig]]:
        rows = [
            (account, copy.deepcopy(self.configs[account]))
            for account in sorted(self.configs)
            if start_after is None or account > start_after
        ]
        return rows[:limit]

    async def get_paused(self, db: Any, account: str) -> PausedData | None:
        return copy.deepcopy(self.paused.get(account))

    async def save_paused(self, db: Any, account: str, paused: PausedData) -> None:
        self.paused[account] = copy.deepcopy(paused)

    async def remove_paused(self, db: Any, account: str) -> None:
        self.paused.pop(account, None)

    async def get_denom_whitelist(self, db: Any) -> list[str]:
        return sorted(self.denoms)

    async def update_denom_whitelist(
        self, db: Any, to_add: list[str], to_remove: list[str]
    ) -> None:
        self.denoms.update(to_add)
        self.denoms.difference_update(to_remove)

    async def get_base_denoms(self, db: Any) -> list[BaseDenom]:
        return [copy.deepcopy(self.base_denoms[d]) for d in sorted(self.base_denoms)]

    async def update_base_denoms(
        self, db: Any, to_add: list[BaseDenom], to_remove: list[str]
    ) -> None:
        for base in to_add:
            self.base_denoms[base.denom] = copy.deepcopy(base)
        for denom in to_remove:
            self.base_denoms.pop(denom, None)

    async def get_system(
        self, db: Any, for_update: bool = False
    ) -> tuple[SystemRebalanceStatus, int]:
        if for_update:
            self.system_locks += 1
        return copy.deepcopy(self.status), self.cycle_period

    async def save_status(self, db: Any, status: SystemRebalanceStatus) -> None:
        self.status = copy.deepcopy(status)

    async def save_cycle_period(self, db: Any, period: int) -> None:
        self.cycle_period = period
