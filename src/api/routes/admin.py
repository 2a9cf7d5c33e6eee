"""
Admin API Routes - Session and Rate-Limit Administration

Authentication is via Admin API Key, not user JWTs.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from config import ApplicationConfig
from src.api.error import ClientError, ServerError
from src.api.utils.admin_auth import verify_admin_api_key
from src.app.services.audit_trail import AuditTrail
from src.app.services.rate_limit_config_provider import RateLimitConfigProvider
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.admin import (
    BlockUserResponse,
    BlockUserUseCase,
    ExemptUserResponse,
    ExemptUserUseCase,
    GetRateLimitConfigUseCase,
    RateLimitConfigResponse,
    UpdateRateLimitConfigCommand,
    UpdateRateLimitConfigUseCase,
)
from src.app.use_cases.audit import ListAuditEventsUseCase
from src.app.use_cases.sessions import (
    ForceLogoutResponse,
    GetOnlineStatsUseCase,
    ListOnlineUsersUseCase,
    OnlineStatsResponse,
    OnlineUsersResponse,
    SessionManager,
)
from src.app.use_cases.usage import RateLimiter, UserUsageReport
from src.depends import (
    get_audit_trail,
    get_rate_limit_config_provider,
    get_rate_limiter,
    get_session_manager,
    get_unit_of_work,
)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/users/{user_id}/force-logout",
    status_code=status.HTTP_200_OK,
    response_model=ForceLogoutResponse,
)
async def force_logout(
    user_id: UUID,
    actor: str = Depends(verify_admin_api_key),
    session_manager: SessionManager = Depends(get_session_manager),
):
    """
    Terminate every active session of a user (ADMIN_FORCE_LOGOUT).

    Requires: X-Admin-API-Key header
    """
    result = await session_manager.force_logout_all(user_id, actor=actor)
    if result.is_err():
        raise ServerError(result.error)
    return result.value


@router.get(
    "/users/online",
    status_code=status.HTTP_200_OK,
    response_model=OnlineUsersResponse,
    dependencies=[Depends(verify_admin_api_key)],
)
async def online_users(
    minutes: int = Query(ApplicationConfig.ONLINE_WINDOW_MINUTES, ge=1, le=1440),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Users with an active session used within the last `minutes`."""
    result = await ListOnlineUsersUseCase(uow).execute(window_minutes=minutes)
    if result.is_err():
        raise ServerError(result.error)
    return result.value


@router.get(
    "/users/online/stats",
    status_code=status.HTTP_200_OK,
    response_model=OnlineStatsResponse,
    dependencies=[Depends(verify_admin_api_key)],
)
async def online_stats(uow: UnitOfWork = Depends(get_unit_of_work)):
    result = await GetOnlineStatsUseCase(uow).execute()
    if result.is_err():
        raise ServerError(result.error)
    return result.value


@router.get(
    "/rate-limit/config",
    status_code=status.HTTP_200_OK,
    response_model=RateLimitConfigResponse,
    dependencies=[Depends(verify_admin_api_key)],
)
async def get_rate_limit_config(
    uow: UnitOfWork = Depends(get_unit_of_work),
    config_provider: RateLimitConfigProvider = Depends(get_rate_limit_config_provider),
):
    result = await GetRateLimitConfigUseCase(uow, config_provider).execute()
    if result.is_err():
        raise ServerError(result.error)
    return result.value


@router.put(
    "/rate-limit/config",
    status_code=status.HTTP_200_OK,
    response_model=RateLimitConfigResponse,
)
async def update_rate_limit_config(
    command: UpdateRateLimitConfigCommand,
    actor: str = Depends(verify_admin_api_key),
    uow: UnitOfWork = Depends(get_unit_of_work),
    config_provider: RateLimitConfigProvider = Depends(get_rate_limit_config_provider),
    audit_trail: AuditTrail = Depends(get_audit_trail),
):
    """
    Partially update the rate-limit configuration.

    Raises:
        - 400 Bad Request: INVALID_CONFIG
    """
    use_case = UpdateRateLimitConfigUseCase(uow, config_provider, audit_trail)
    result = await use_case.execute(command, updated_by=actor)

    if result.is_err():
        error = result.error
        if error.code == "INVALID_CONFIG":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        raise ServerError(error)

    return result.value


class BlockUserRequest(BaseModel):
    user_id: UUID
    is_blocked: bool = True
    reason: Optional[str] = Field(default=None, max_length=500)


@router.post(
    "/rate-limit/block-user",
    status_code=status.HTTP_200_OK,
    response_model=BlockUserResponse,
)
async def block_user(
    request: BlockUserRequest,
    actor: str = Depends(verify_admin_api_key),
    uow: UnitOfWork = Depends(get_unit_of_work),
    config_provider: RateLimitConfigProvider = Depends(get_rate_limit_config_provider),
    audit_trail: AuditTrail = Depends(get_audit_trail),
):
    """
    Block or unblock a user's usage for today.

    Raises:
        - 404 Not Found: USER_NOT_FOUND
    """
    use_case = BlockUserUseCase(uow, config_provider, audit_trail)
    result = await use_case.execute(
        request.user_id, request.is_blocked, request.reason, actor=actor
    )

    if result.is_err():
        error = result.error
        if error.code == "USER_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value


@router.get(
    "/rate-limit/heavy-users",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(verify_admin_api_key)],
)
async def heavy_users(
    days: int = Query(7, ge=1, le=90),
    threshold: float = Query(0.85, gt=0),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Accounts whose average daily usage ratio suggests a shared account."""
    result = await rate_limiter.detect_potential_sharing(days=days, threshold=threshold)
    if result.is_err():
        raise ServerError(result.error)
    return {"days": days, "threshold": threshold, "users": result.value}


@router.get(
    "/rate-limit/stats",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(verify_admin_api_key)],
)
async def usage_stats(
    days: int = Query(7, ge=1, le=90),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    result = await rate_limiter.get_usage_stats(days=days)
    if result.is_err():
        raise ServerError(result.error)
    return {"days": days, "stats": result.value}


@router.get(
    "/rate-limit/user-usage/{user_id}",
    status_code=status.HTTP_200_OK,
    response_model=UserUsageReport,
    dependencies=[Depends(verify_admin_api_key)],
)
async def user_usage(
    user_id: UUID,
    days: int = Query(7, ge=1, le=90),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """
    Today's quota position of a user plus the last `days` days of usage.

    Raises:
        - 404 Not Found: USER_NOT_FOUND
    """
    result = await rate_limiter.get_user_usage(user_id, days=days)
    if result.is_err():
        error = result.error
        if error.code == "USER_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)
    return result.value


@router.get(
    "/rate-limit/module-stats",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(verify_admin_api_key)],
)
async def module_stats(
    days: int = Query(7, ge=1, le=90),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Per-module request totals, most requested first."""
    result = await rate_limiter.get_module_stats(days=days)
    if result.is_err():
        raise ServerError(result.error)
    return result.value


class ExemptUserRequest(BaseModel):
    user_id: UUID
    is_exempt: bool = True
    exemption_reason: Optional[str] = Field(default=None, max_length=500)


@router.post(
    "/rate-limit/exempt-user",
    status_code=status.HTTP_200_OK,
    response_model=ExemptUserResponse,
)
async def exempt_user(
    request: ExemptUserRequest,
    actor: str = Depends(verify_admin_api_key),
    uow: UnitOfWork = Depends(get_unit_of_work),
    config_provider: RateLimitConfigProvider = Depends(get_rate_limit_config_provider),
    audit_trail: AuditTrail = Depends(get_audit_trail),
):
    """
    Exempt a user from the daily limit, or revoke the exemption.

    Raises:
        - 404 Not Found: USER_NOT_FOUND
    """
    use_case = ExemptUserUseCase(uow, config_provider, audit_trail)
    result = await use_case.execute(
        request.user_id, request.is_exempt, request.exemption_reason, actor=actor
    )

    if result.is_err():
        error = result.error
        if error.code == "USER_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value


@router.post(
    "/maintenance/cleanup",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(verify_admin_api_key)],
)
async def cleanup(
    session_manager: SessionManager = Depends(get_session_manager),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Retention sweep for inactive sessions and old usage rows."""
    sessions_result = await session_manager.cleanup_expired()
    if sessions_result.is_err():
        raise ServerError(sessions_result.error)

    usage_result = await rate_limiter.reset_daily_usage()
    if usage_result.is_err():
        raise ServerError(usage_result.error)

    return {
        "deleted_sessions": sessions_result.value,
        "deleted_usage_rows": usage_result.value.deleted_rows,
        "usage_cutoff_date": usage_result.value.cutoff_date.isoformat(),
    }


@router.get(
    "/audit-events",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(verify_admin_api_key)],
)
async def audit_events(
    limit: int = Query(50, ge=1, le=500),
    action: Optional[str] = Query(None),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    result = await ListAuditEventsUseCase(uow).execute(limit=limit, action=action)
    if result.is_err():
        raise ServerError(result.error)
    return result.value
