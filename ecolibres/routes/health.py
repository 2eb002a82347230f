from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..database import get_session, ping

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check")
async def health_check(session: AsyncSession = Depends(get_session)) -> dict:
    """Report the running environment and whether the user store answers."""
    settings = get_settings()
    database_ok = await ping(session)
    return {
        "status": "ok" if database_ok else "degraded",
        "app": settings.app_name,
        "environment": settings.environment,
        "database": "connected" if database_ok else "unavailable",
    }
