"""Back-office dashboard figures."""
from fastapi import APIRouter, Depends

from arena.models import User
from arena.models.base import async_session_factory
from arena.services.stats import dashboard_stats
from web.auth import require_admin_user

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats")
async def get_stats(admin: User = Depends(require_admin_user)):
    """Player count, coins in circulation, coins issued and coins spent on tournaments."""
    async with async_session_factory() as session:
        return await dashboard_stats(session)
