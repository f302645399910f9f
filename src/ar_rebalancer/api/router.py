"""Rebalancer REST API.

Account registration and pause/resume are called by the services manager on
behalf of an account (pause/resume name the original sender in the body).
Whitelists, cycle period and status overrides are admin-only. The system
rebalance itself can be triggered by any authenticated caller.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.ar_common.block import current_block
from src.ar_common.database import get_db_session
from src.ar_common.response import ApiResponse, page_response, success_response
from src.ar_gateway.auth.dependencies import (
    get_current_caller,
    require_admin,
    require_services_manager,
)
from src.ar_rebalancer.application.schemas import (
    BaseDenomSchema,
    BaseDenomWhitelistRequest,
    CyclePeriodRequest,
    CycleReportResponse,
    DenomWhitelistRequest,
    PausedConfigResponse,
    PauseRequest,
    RebalancerConfigResponse,
    RegisterRequest,
    ResumeRequest,
    SystemRebalanceRequest,
    SystemStatusRequest,
    SystemStatusResponse,
    UpdateRequest,
)
from src.ar_rebalancer.application.service import RebalancerService
from src.ar_rebalancer.application.system import SystemRebalanceService
from src.ar_rebalancer.domain.models import SystemRebalanceStatus

router = APIRouter(prefix="/rebalancer", tags=["rebalancer"])

_service = RebalancerService()
_system = SystemRebalanceService()


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@router.get("/accounts")
async def list_configs(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cursor: str | None = Query(None, description="Last account of the previous page"),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    rows, has_more = await _service.list_configs(db, cursor, limit)
    items = [
        RebalancerConfigResponse.from_domain(account, config).model_dump(mode="json")
        for account, config in rows
    ]
    next_cursor = rows[-1][0] if has_more and rows else None
    return page_response(items, next_cursor, has_more)


@router.get("/accounts/{account}")
async def get_config(
    account: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    config = await _service.get_config(db, account)
    return success_response(
        RebalancerConfigResponse.from_domain(account, config).model_dump(mode="json")
    )


@router.get("/accounts/{account}/paused")
async def get_paused_config(
    account: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    paused = await _service.get_paused_config(db, account)
    return success_response(
        PausedConfigResponse.from_domain(account, paused).model_dump(mode="json")
    )


@router.post("/accounts/{account}")
async def register(
    account: str,
    body: RegisterRequest,
    _manager: Annotated[str, Depends(require_services_manager)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        config = await _service.register(db, account, body.to_domain())
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(
        RebalancerConfigResponse.from_domain(account, config).model_dump(mode="json")
    )


@router.patch("/accounts/{account}")
async def update(
    account: str,
    body: UpdateRequest,
    _manager: Annotated[str, Depends(require_services_manager)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        config = await _service.update(db, account, body.to_domain())
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(
        RebalancerConfigResponse.from_domain(account, config).model_dump(mode="json")
    )


@router.delete("/accounts/{account}")
async def deregister(
    account: str,
    _manager: Annotated[str, Depends(require_services_manager)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        await _service.deregister(db, account)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response({"account": account})


@router.post("/accounts/{account}/pause")
async def pause(
    account: str,
    body: PauseRequest,
    _manager: Annotated[str, Depends(require_services_manager)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        paused = await _service.pause(db, account, body.sender, body.reason)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(
        PausedConfigResponse.from_domain(account, paused).model_dump(mode="json")
    )


@router.post("/accounts/{account}/resume")
async def resume(
    account: str,
    body: ResumeRequest,
    _manager: Annotated[str, Depends(require_services_manager)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        config = await _service.resume(db, account, body.sender)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(
        RebalancerConfigResponse.from_domain(account, config).model_dump(mode="json")
    )


# ---------------------------------------------------------------------------
# System cycle
# ---------------------------------------------------------------------------


@router.post("/system-rebalance")
async def system_rebalance(
    body: SystemRebalanceRequest,
    _caller: Annotated[str, Depends(get_current_caller)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        report = await _system.execute_system_rebalance(db, current_block(), body.limit)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(CycleReportResponse.from_domain(report).model_dump(mode="json"))


@router.get("/system-status")
async def get_system_status(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    status, cycle_period = await _service.get_system_status(db)
    return success_response(
        SystemStatusResponse.from_domain(status, cycle_period).model_dump(mode="json")
    )


@router.put("/system-status")
async def update_system_status(
    body: SystemStatusRequest,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        status = await _service.update_system_status(
            db, SystemRebalanceStatus(kind=body.kind, timestamp=body.timestamp)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(SystemStatusResponse.from_domain(status).model_dump(mode="json"))


@router.put("/cycle-period")
async def update_cycle_period(
    body: CyclePeriodRequest,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        period = await _service.update_cycle_period(db, body.period)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response({"cycle_period": period})


# ---------------------------------------------------------------------------
# Whitelists
# ---------------------------------------------------------------------------


@router.get("/whitelists")
async def get_whitelists(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    denoms, base_denoms = await _service.get_whitelists(db)
    return success_response(
        {
            "denoms": denoms,
            "base_denoms": [
                BaseDenomSchema(denom=b.denom, min_balance_limit=b.min_balance_limit).model_dump()
                for b in base_denoms
            ],
        }
    )


@router.put("/whitelists/denoms")
async def update_denom_whitelist(
    body: DenomWhitelistRequest,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        denoms = await _service.update_denom_whitelist(db, body.to_add, body.to_remove)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response({"denoms": denoms})


@router.put("/whitelists/base-denoms")
async def update_base_denom_whitelist(
    body: BaseDenomWhitelistRequest,
    _admin: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    try:
        base_denoms = await _service.update_base_denom_whitelist(
            db, body.to_add_domain(), body.to_remove
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return success_response(
        {
            "base_denoms": [
                BaseDenomSchema(denom=b.denom, min_balance_limit=b.min_balance_limit).model_dump()
                for b in base_denoms
            ]
        }
    )
