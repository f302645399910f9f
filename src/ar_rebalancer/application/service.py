"""RebalancerService: account registration, pause/resume and admin settings.

Registration calls come from the services manager on behalf of an account.
Nothing here commits; the router owns the transaction.

Every call that writes an account first locks the rebalancer_system row, the
same lock a system rebalance batch holds while it rewrites configs, so an
account is never changed underneath a running batch.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.ar_common.enums import SystemStatusKind
from src.ar_common.errors import (
    AccountAlreadyRegisteredError,
    AccountNotRegisteredError,
    CantUpdateStatusToProcessingError,
    InvalidCyclePeriodError,
    NotPausedError,
)
from src.ar_rebalancer.domain.models import (
    BaseDenom,
    PausedData,
    RebalancerConfig,
    SystemRebalanceStatus,
)
from src.ar_rebalancer.domain.registration import (
    RegistrationData,
    UpdateData,
    check_can_resume,
    parse_max_limit,
    resolve_pauser,
    validate_base_denom,
    validate_targets,
)
from src.ar_rebalancer.domain.repository import RebalancerRepositoryProtocol
from src.ar_rebalancer.infrastructure.persistence import RebalancerRepository

logger = logging.getLogger(__name__)


class RebalancerService:
    def __init__(self, repo: RebalancerRepositoryProtocol | None = None) -> None:
        self._repo: RebalancerRepositoryProtocol = repo or RebalancerRepository()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def _lock_accounts(self, db: AsyncSession) -> None:
        await self._repo.get_system(db, for_update=True)

    async def register(
        self, db: AsyncSession, account: str, data: RegistrationData
    ) -> RebalancerConfig:
        await self._lock_accounts(db)
        if (
            await self._repo.get_config(db, account) is not None
            or await self._repo.get_paused(db, account) is not None
        ):
            raise AccountAlreadyRegisteredError(account)

        validate_base_denom(data.base_denom, await self._repo.get_base_denoms(db))
        has_min_balance = validate_targets(
            data.targets, await self._repo.get_denom_whitelist(db)
        )

        config = RebalancerConfig(
            base_denom=data.base_denom,
            targets=[t.to_target() for t in data.targets],
            pid=data.pid.verify(),
            max_limit=parse_max_limit(data.max_limit_bps),
            has_min_balance=has_min_balance,
            target_override_strategy=data.target_override_strategy,
            trustee=data.trustee,
        )
        await self._repo.save_config(db, account, config)
        logger.info("Rebalancer account %s registered", account)
        return config

    async def update(
        self, db: AsyncSession, account: str, data: UpdateData
    ) -> RebalancerConfig:
        """Apply a partial update to an active or paused account."""
        await self._lock_accounts(db)
        paused = await self._repo.get_paused(db, account)
        config = paused.config if paused else await self._repo.get_config(db, account)
        if config is None:
            raise AccountNotRegisteredError(account)

        if data.clear_trustee:
            config.trustee = None
        elif data.trustee is not None:
            config.trustee = data.trustee

        if data.base_denom is not None:
            validate_base_denom(data.base_denom, await self._repo.get_base_denoms(db))
            config.base_denom = data.base_denom

        if data.targets:
            config.has_min_balance = validate_targets(
                data.targets, await self._repo.get_denom_whitelist(db)
            )
            config.targets = [t.to_target() for t in data.targets]

        if data.pid is not None:
            config.pid = data.pid.verify()
            for target in config.targets:
                target.reset_pid_state()

        if data.max_limit_bps is not None:
            config.max_limit = parse_max_limit(data.max_limit_bps)

        if data.target_override_strategy is not None:
            config.target_override_strategy = data.target_override_strategy

        if paused:
            await self._repo.save_paused(db, account, paused)
        else:
            await self._repo.save_config(db, account, config)
        return config

    async def deregister(self, db: AsyncSession, account: str) -> None:
        await self._lock_accounts(db)
        await self._repo.remove_config(db, account)
        await self._repo.remove_paused(db, account)
        logger.info("Rebalancer account %s deregistered", account)

    # ------------------------------------------------------------------
    # Pause / resume
    # ------------------------------------------------------------------

    async def pause(
        self, db: AsyncSession, account: str, sender: str, reason: str | None = None
    ) -> PausedData:
        await self._lock_accounts(db)
        paused = await self._repo.get_paused(db, account)
        if paused is not None:
            pauser = resolve_pauser(account, sender, paused.config.trustee, paused.pauser)
            paused.pauser = pauser
            paused.config.paused_by = pauser
            await self._repo.save_paused(db, account, paused)
            return paused

        config = await self._repo.get_config(db, account)
        if config is None:
            raise AccountNotRegisteredError(account)

        pauser = resolve_pauser(account, sender, config.trustee, None)
        config.paused_by = pauser
        paused = PausedData.account_reason(pauser, reason or "", config)
        await self._repo.save_paused(db, account, paused)
        await self._repo.remove_config(db, account)
        logger.info("Rebalancer account %s paused by %s", account, pauser)
        return paused

    async def resume(self, db: AsyncSession, account: str, sender: str) -> RebalancerConfig:
        await self._lock_accounts(db)
        paused = await self._repo.get_paused(db, account)
        if paused is None:
            raise NotPausedError()

        check_can_resume(account, sender, paused.config.trustee, paused.pauser)
        config = paused.config
        config.paused_by = None
        await self._repo.save_config(db, account, config)
        await self._repo.remove_paused(db, account)
        logger.info("Rebalancer account %s resumed by %s", account, sender)
        return config

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    async def update_denom_whitelist(
        self, db: AsyncSession, to_add: list[str], to_remove: list[str]
    ) -> list[str]:
        await self._repo.update_denom_whitelist(db, to_add, to_remove)
        return await self._repo.get_denom_whitelist(db)

    async def update_base_denom_whitelist(
        self, db: AsyncSession, to_add: list[BaseDenom], to_remove: list[str]
    ) -> list[BaseDenom]:
        await self._repo.update_base_denoms(db, to_add, to_remove)
        return await self._repo.get_base_denoms(db)

    async def update_cycle_period(self, db: AsyncSession, period: int) -> int:
        if period <= 0:
            raise InvalidCyclePeriodError()
        await self._repo.save_cycle_period(db, period)
        logger.info("Rebalance cycle period set to %ds", period)
        return period

    async def update_system_status(
        self, db: AsyncSession, status: SystemRebalanceStatus
    ) -> SystemRebalanceStatus:
        if status.kind == SystemStatusKind.PROCESSING:
            raise CantUpdateStatusToProcessingError()
        await self._repo.save_status(db, status)
        logger.info("System rebalance status set to %s at %d", status.kind.value, status.timestamp)
        return status

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_config(self, db: AsyncSession, account: str) -> RebalancerConfig:
        config = await self._repo.get_config(db, account)
        if config is None:
            raise AccountNotRegisteredError(account)
        return config

    async def get_paused_config(self, db: AsyncSession, account: str) -> PausedData:
        paused = await self._repo.get_paused(db, account)
        if paused is None:
            raise NotPausedError()
        return paused

    async def list_configs(
        self, db: AsyncSession, start_after: str | None, limit: int
    ) -> tuple[list[tuple[str, RebalancerConfig]], bool]:
        """One page of active configs, plus whether more remain."""
        rows = await self._repo.list_configs(db, start_after, limit + 1)
        return rows[:limit], len(rows) > limit

    async def get_system_status(self, db: AsyncSession) -> tuple[SystemRebalanceStatus, int]:
        return await self._repo.get_system(db)

    async def get_whitelists(self, db: AsyncSession) -> tuple[list[str], list[BaseDenom]]:
        return (
            await self._repo.get_denom_whitelist(db),
            await self._repo.get_base_denoms(db),
        )
