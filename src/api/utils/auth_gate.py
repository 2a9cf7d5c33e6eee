"""
Auth Gate

Request-time enforcement for protected routes:
JWT user -> session validation -> (optionally) quota check.

    @router.post("/stories")
    async def write_story(
        quota: UsageDecision = Depends(enforce_quota("write-story", "Write Story")),
    ): ...
"""

from typing import Dict, Optional
from uuid import UUID

from fastapi import Depends, Request, Response, status
from pydantic import BaseModel

from config import ApplicationConfig
from src.api.error import ClientError
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.sessions import SessionContext, SessionManager
from src.app.use_cases.usage import RateLimiter, UsageDecision, UsageSnapshot
from src.app.use_cases.users import CurrentUser, LoadContextUseCase
from src.depends import get_current_user, get_rate_limiter, get_session_manager, get_unit_of_work

SESSION_ERROR_STATUS = {
    "SESSION_REQUIRED": status.HTTP_401_UNAUTHORIZED,
    "SESSION_INVALID": status.HTTP_401_UNAUTHORIZED,
    "SESSION_EXPIRED": status.HTTP_401_UNAUTHORIZED,
    "SESSION_TERMINATED": status.HTTP_403_FORBIDDEN,
}

QUOTA_ERROR_STATUS = {
    "DAILY_LIMIT_EXCEEDED": status.HTTP_429_TOO_MANY_REQUESTS,
    "ACCOUNT_BLOCKED": status.HTTP_429_TOO_MANY_REQUESTS,
    "SERVICE_MAINTENANCE": status.HTTP_503_SERVICE_UNAVAILABLE,
}


class AuthContext(BaseModel):
    user: CurrentUser
    session: SessionContext


def session_token_from(request: Request) -> Optional[str]:
    return request.headers.get(ApplicationConfig.SESSION_TOKEN_HEADER)


async def require_user(
    payload: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> CurrentUser:
    """JWT user, without a session check. Used by session endpoints themselves."""
    result = await LoadContextUseCase(uow).execute(UUID(payload["user_id"]))
    if result.is_err():
        error = result.error
        if error.code == "USER_DISABLED":
            raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
        raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
    return result.value


async def require_active_session(
    request: Request,
    user: CurrentUser = Depends(require_user),
    session_manager: SessionManager = Depends(get_session_manager),
) -> AuthContext:
    result = await session_manager.validate_session(session_token_from(request), user_id=user.id)
    if result.is_err():
        error = result.error
        raise ClientError(
            error,
            status_code=SESSION_ERROR_STATUS.get(error.code, status.HTTP_401_UNAUTHORIZED),
        )

    return AuthContext(user=user, session=result.value)


def usage_headers(usage: Optional[UsageSnapshot]) -> Dict[str, str]:
    if usage is None or usage.limit is None:
        return {}
    return {
        "X-Daily-Usage-Current": str(usage.current),
        "X-Daily-Usage-Limit": str(usage.limit),
        "X-Daily-Usage-Remaining": str(usage.remaining),
        "X-Daily-Usage-Percentage": str(usage.percentage),
    }


async def check_quota(
    response: Response,
    rate_limiter: RateLimiter,
    user: CurrentUser,
    module_id: str,
    module_name: str,
    module_weight: Optional[int] = None,
) -> UsageDecision:
    """Run the rate limiter and translate its outcome into headers or an error response."""
    result = await rate_limiter.check_and_record(user, module_id, module_name, module_weight)

    if result.is_err():
        error = result.error
        headers = {}
        if "usage" in error.details:
            headers.update(usage_headers(UsageSnapshot(**error.details["usage"])))
        if "retryAfter" in error.details:
            headers["Retry-After"] = str(error.details["retryAfter"])
        raise ClientError(
            error,
            status_code=QUOTA_ERROR_STATUS.get(error.code, status.HTTP_429_TOO_MANY_REQUESTS),
            headers=headers or None,
        )

    decision = result.value
    response.headers.update(usage_headers(decision.usage))
    if decision.warnings:
        # Highest threshold crossed by this request
        warning = decision.warnings[-1]
        response.headers["X-Usage-Warning"] = warning.message
        response.headers["X-Usage-Percentage"] = str(warning.percentage)
    return decision


def enforce_quota(module_id: str, module_name: str, module_weight: Optional[int] = None):
    """Dependency factory guarding a route with session validation and the daily quota."""

    async def dependency(
        response: Response,
        auth: AuthContext = Depends(require_active_session),
        rate_limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> UsageDecision:
        return await check_quota(
            response, rate_limiter, auth.user, module_id, module_name, module_weight
        )

    return dependency
