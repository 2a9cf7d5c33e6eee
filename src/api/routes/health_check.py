from fastapi import APIRouter, Depends, status
from sqlalchemy import text

from src.api.error import ServerError
from libs.result import Error
from src.depends import get_session

router = APIRouter(tags=["Health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(session=Depends(get_session)):
    """Liveness plus a database round-trip."""
    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        raise ServerError(Error("DATABASE_UNAVAILABLE", str(e)))
    return {"status": "ok", "database": "ok"}
