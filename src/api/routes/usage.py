from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field

from src.api.error import ServerError
from src.api.utils.auth_gate import AuthContext, check_quota, require_active_session
from src.app.use_cases.usage import RateLimiter, UsageDecision, UsageStatus
from src.depends import get_rate_limiter

router = APIRouter(prefix="/usage", tags=["Usage"])


class RecordUsageRequest(BaseModel):
    module_id: str = Field(..., min_length=1, max_length=100)
    module_name: str = Field(..., min_length=1, max_length=255)


@router.post("/record", status_code=status.HTTP_200_OK, response_model=UsageDecision)
async def record_usage(
    request: RecordUsageRequest,
    response: Response,
    auth: AuthContext = Depends(require_active_session),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """
    Account one request against the daily quota before the client runs a
    restricted module. The cost is the configured weight of the module;
    a client cannot choose it.

    Raises:
        - 429 Too Many Requests: DAILY_LIMIT_EXCEEDED or ACCOUNT_BLOCKED
        - 503 Service Unavailable: SERVICE_MAINTENANCE (with Retry-After)
    """
    return await check_quota(
        response,
        rate_limiter,
        auth.user,
        request.module_id,
        request.module_name,
    )


@router.get("/status", status_code=status.HTTP_200_OK, response_model=UsageStatus)
async def usage_status(
    auth: AuthContext = Depends(require_active_session),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    result = await rate_limiter.get_usage_status(auth.user)
    if result.is_err():
        raise ServerError(result.error)
    return result.value


@router.get("/history", status_code=status.HTTP_200_OK)
async def usage_history(
    days: int = Query(7, ge=1, le=90),
    auth: AuthContext = Depends(require_active_session),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Own usage of the last `days` days, newest first."""
    result = await rate_limiter.get_usage_history(auth.user.id, days=days)
    if result.is_err():
        raise ServerError(result.error)
    return {"days": days, "history": result.value}
