"""Rebalancer repository Protocol.

Active configs and paused configs live in separate registries; an account is
in at most one of them.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ar_rebalancer.domain.models import (
    BaseDenom,
    PausedData,
    RebalancerConfig,
    SystemRebalanceStatus,
)


class RebalancerRepositoryProtocol(Protocol):
    async def get_config(self, db: AsyncSession, account: str) -> RebalancerConfig | None: ...

    async def save_config(
        self, db: AsyncSession, account: str, config: RebalancerConfig
    ) -> None: ...

    async def remove_config(self, db: AsyncSession, account: str) -> None: ...

    async def list_configs(
        self, db: AsyncSession, start_after: str | None, limit: int
    ) -> list[tuple[str, RebalancerConfig]]: ...

    async def get_paused(self, db: AsyncSession, account: str) -> PausedData | None: ...

    async def save_paused(self, db: AsyncSession, account: str, paused: PausedData) -> None: ...

    async def remove_paused(self, db: AsyncSession, account: str) -> None: ...

    async def get_denom_whitelist(self, db: AsyncSession) -> list[str]: ...

    async def update_denom_whitelist(
        self, db: AsyncSession, to_add: list[str], to_remove: list[str]
    ) -> None: ...

    async def get_base_denoms(self, db: AsyncSession) -> list[BaseDenom]: ...

    async def update_base_denoms(
        self, db: AsyncSession, to_add: list[BaseDenom], to_remove: list[str]
    ) -> None: ...

    async def get_system(
        self, db: AsyncSession, for_update: bool = False
    ) -> tuple[SystemRebalanceStatus, int]: ...

    async def save_status(self, db: AsyncSession, status: SystemRebalanceStatus) -> None: ...

    async def save_cycle_period(self, db: AsyncSession, period: int) -> None: ...
