"""RebalancerRepository: concrete implementation of RebalancerRepositoryProtocol.

Configs are stored as JSONB documents keyed by account; Decimals travel as
strings so no precision is lost. The system status is a single row (id = 1)
that the cycle reads FOR UPDATE.

Transaction ownership: the caller commits.
"""

import json
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.ar_common.enums import PauseReasonKind, SystemStatusKind, TargetOverrideStrategy
from src.ar_common.pair import Pair
from src.ar_rebalancer.domain.models import (
    PID,
    BaseDenom,
    PausedData,
    RebalancerConfig,
    SystemRebalanceStatus,
    Target,
)

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_GET_CONFIG_SQL = text("""
    SELECT config FROM rebalancer_configs WHERE account = :account
""")

_UPSERT_CONFIG_SQL = text("""
    INSERT INTO rebalancer_configs (account, config)
    VALUES (:account, :config)
    ON CONFLICT (account) DO UPDATE
        SET config = EXCLUDED.config, updated_at = NOW()
""")

_DELETE_CONFIG_SQL = text("""
    DELETE FROM rebalancer_configs WHERE account = :account
""")

_LIST_CONFIGS_SQL = text("""
    SELECT account, config FROM rebalancer_configs
    WHERE (CAST(:start_after AS VARCHAR) IS NULL OR account > :start_after)
    ORDER BY account
    LIMIT :limit
""")

_GET_PAUSED_SQL = text("""
    SELECT pauser, reason, reason_text, config
    FROM rebalancer_paused_configs WHERE account = :account
""")

_UPSERT_PAUSED_SQL = text("""
    INSERT INTO rebalancer_paused_configs (account, pauser, reason, reason_text, config)
    VALUES (:account, :pauser, :reason, :reason_text, :config)
    ON CONFLICT (account) DO UPDATE
        SET pauser = EXCLUDED.pauser,
            reason = EXCLUDED.reason,
            reason_text = EXCLUDED.reason_text,
            config = EXCLUDED.config,
            updated_at = NOW()
""")

_DELETE_PAUSED_SQL = text("""
    DELETE FROM rebalancer_paused_configs WHERE account = :account
""")

_LIST_DENOMS_SQL = text("SELECT denom FROM denom_whitelist ORDER BY denom")

_ADD_DENOM_SQL = text("""
    INSERT INTO denom_whitelist (denom) VALUES (:denom) ON CONFLICT (denom) DO NOTHING
""")

_REMOVE_DENOM_SQL = text("DELETE FROM denom_whitelist WHERE denom = :denom")

_LIST_BASE_DENOMS_SQL = text("""
    SELECT denom, min_balance_limit FROM base_denom_whitelist ORDER BY denom
""")

_UPSERT_BASE_DENOM_SQL = text("""
    INSERT INTO base_denom_whitelist (denom, min_balance_limit)
    VALUES (:denom, :min_balance_limit)
    ON CONFLICT (denom) DO UPDATE SET min_balance_limit = EXCLUDED.min_balance_limit
""")

_REMOVE_BASE_DENOM_SQL = text("DELETE FROM base_denom_whitelist WHERE denom = :denom")

_GET_SYSTEM_SQL = text("""
    SELECT status, status_time, cursor, prices, cycle_period
    FROM rebalancer_system WHERE id = 1
""")

_GET_SYSTEM_FOR_UPDATE_SQL = text("""
    SELECT status, status_time, cursor, prices, cycle_period
    FROM rebalancer_system WHERE id = 1
    FOR UPDATE
""")

_UPSERT_STATUS_SQL = text("""
    INSERT INTO rebalancer_system (id, status, status_time, cursor, prices, cycle_period)
    VALUES (1, :status, :status_time, :cursor, :prices, :cycle_period)
    ON CONFLICT (id) DO UPDATE
        SET status = EXCLUDED.status,
            status_time = EXCLUDED.status_time,
            cursor = EXCLUDED.cursor,
            prices = EXCLUDED.prices,
            updated_at = NOW()
""")

_UPDATE_CYCLE_PERIOD_SQL = text("""
    UPDATE rebalancer_system SET cycle_period = :cycle_period, updated_at = NOW()
    WHERE id = 1
""")


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _load_json(value: Any) -> Any:
    return json.loads(value) if isinstance(value, str) else value


def config_to_dict(config: RebalancerConfig) -> dict[str, Any]:
    return {
        "base_denom": config.base_denom,
        "targets": [
            {
                "denom": t.denom,
                "percentage": str(t.percentage),
                "min_balance": t.min_balance,
                "last_input": None if t.last_input is None else str(t.last_input),
                "last_i": str(t.last_i),
            }
            for t in config.targets
        ],
        "pid": {"p": str(config.pid.p), "i": str(config.pid.i), "d": str(config.pid.d)},
        "max_limit": str(config.max_limit),
        "last_rebalance": config.last_rebalance,
        "has_min_balance": config.has_min_balance,
        "target_override_strategy": config.target_override_strategy.value,
        "trustee": config.trustee,
        "paused_by": config.paused_by,
    }


def config_from_dict(data: dict[str, Any]) -> RebalancerConfig:
    return RebalancerConfig(
        base_denom=data["base_denom"],
        targets=[
            Target(
                denom=t["denom"],
                percentage=Decimal(t["percentage"]),
                min_balance=t.get("min_balance"),
                last_input=None if t.get("last_input") is None else Decimal(t["last_input"]),
                last_i=Decimal(t.get("last_i", "0")),
            )
            for t in data["targets"]
        ],
        pid=PID(
            p=Decimal(data["pid"]["p"]),
            i=Decimal(data["pid"]["i"]),
            d=Decimal(data["pid"]["d"]),
        ),
        max_limit=Decimal(data["max_limit"]),
        last_rebalance=int(data.get("last_rebalance", 0)),
        has_min_balance=bool(data.get("has_min_balance", False)),
        target_override_strategy=TargetOverrideStrategy(
            data.get("target_override_strategy", TargetOverrideStrategy.PROPORTIONAL.value)
        ),
        trustee=data.get("trustee"),
        paused_by=data.get("paused_by"),
    )


def _prices_to_json(prices: dict[Pair, Decimal]) -> str:
    return json.dumps([[p.sell_denom, p.buy_denom, str(v)] for p, v in prices.items()])


def _prices_from_json(value: Any) -> dict[Pair, Decimal]:
    if value is None:
        return {}
    return {Pair(sell, buy): Decimal(price) for sell, buy, price in _load_json(value)}


class RebalancerRepository:
    """Concrete repository over the rebalancer_* and whitelist tables."""

    # ------------------------------------------------------------------
    # Configs
    # ------------------------------------------------------------------

    async def get_config(self, db: AsyncSession, account: str) -> RebalancerConfig | None:
        row = (await db.execute(_GET_CONFIG_SQL, {"account": account})).fetchone()
        if row is None:
            return None
        return config_from_dict(_load_json(row.config))

    async def save_config(
        self, db: AsyncSession, account: str, config: RebalancerConfig
    ) -> None:
        await db.execute(
            _UPSERT_CONFIG_SQL,
            {"account": account, "config": json.dumps(config_to_dict(config))},
        )

    async def remove_config(self, db: AsyncSession, account: str) -> None:
        await db.execute(_DELETE_CONFIG_SQL, {"account": account})

    async def list_configs(
        self, db: AsyncSession, start_after: str | None, limit: int
    ) -> list[tuple[str, RebalancerConfig]]:
        result = await db.execute(
            _LIST_CONFIGS_SQL, {"start_after": start_after, "limit": limit}
        )
        return [
            (row.account, config_from_dict(_load_json(row.config)))
            for row in result.fetchall()
        ]

    # ------------------------------------------------------------------
    # Paused registry
    # ------------------------------------------------------------------

    async def get_paused(self, db: AsyncSession, account: str) -> PausedData | None:
        row = (await db.execute(_GET_PAUSED_SQL, {"account": account})).fetchone()
        if row is None:
            return None
        return PausedData(
            pauser=row.pauser,
            reason=PauseReasonKind(row.reason),
            config=config_from_dict(_load_json(row.config)),
            reason_text=row.reason_text,
        )

    async def save_paused(self, db: AsyncSession, account: str, paused: PausedData) -> None:
        await db.execute(
            _UPSERT_PAUSED_SQL,
            {
                "account": account,
                "pauser": paused.pauser,
                "reason": paused.reason.value,
                "reason_text": paused.reason_text,
                "config": json.dumps(config_to_dict(paused.config)),
            },
        )

    async def remove_paused(self, db: AsyncSession, account: str) -> None:
        await db.execute(_DELETE_PAUSED_SQL, {"account": account})

    # ------------------------------------------------------------------
    # Whitelists
    # ------------------------------------------------------------------

    async def get_denom_whitelist(self, db: AsyncSession) -> list[str]:
        result = await db.execute(_LIST_DENOMS_SQL)
        return [row.denom for row in result.fetchall()]

    async def update_denom_whitelist(
        self, db: AsyncSession, to_add: list[str], to_remove: list[str]
    ) -> None:
        for denom in to_add:
            await db.execute(_ADD_DENOM_SQL, {"denom": denom})
        for denom in to_remove:
            await db.execute(_REMOVE_DENOM_SQL, {"denom": denom})

    async def get_base_denoms(self, db: AsyncSession) -> list[BaseDenom]:
        result = await db.execute(_LIST_BASE_DENOMS_SQL)
        return [
            BaseDenom(denom=row.denom, min_balance_limit=int(row.min_balance_limit))
            for row in result.fetchall()
        ]

    async def update_base_denoms(
        self, db: AsyncSession, to_add: list[BaseDenom], to_remove: list[str]
    ) -> None:
        for base in to_add:
            await db.execute(
                _UPSERT_BASE_DENOM_SQL,
                {"denom": base.denom, "min_balance_limit": base.min_balance_limit},
            )
        for denom in to_remove:
            await db.execute(_REMOVE_BASE_DENOM_SQL, {"denom": denom})

    # ------------------------------------------------------------------
    # System status
    # ------------------------------------------------------------------

    async def get_system(
        self, db: AsyncSession, for_update: bool = False
    ) -> tuple[SystemRebalanceStatus, int]:
        """(status, cycle_period). A missing row reads as NOT_STARTED at 0."""
        sql = _GET_SYSTEM_FOR_UPDATE_SQL if for_update else _GET_SYSTEM_SQL
        row = (await db.execute(sql)).fetchone()
        if row is None:
            return SystemRebalanceStatus.not_started(0), settings.CYCLE_PERIOD_SECONDS
        status = SystemRebalanceStatus(
            kind=SystemStatusKind(row.status),
            timestamp=int(row.status_time),
            cursor=row.cursor,
            prices=_prices_from_json(row.prices),
        )
        return status, int(row.cycle_period)

    async def save_status(self, db: AsyncSession, status: SystemRebalanceStatus) -> None:
        _, cycle_period = await self.get_system(db)
        await db.execute(
            _UPSERT_STATUS_SQL,
            {
                "status": status.kind.value,
                "status_time": status.timestamp,
                "cursor": status.cursor,
                "prices": _prices_to_json(status.prices) if status.prices else None,
                "cycle_period": cycle_period,
            },
        )

    async def save_cycle_period(self, db: AsyncSession, period: int) -> None:
        await db.execute(_UPDATE_CYCLE_PERIOD_SQL, {"cycle_period": period})
