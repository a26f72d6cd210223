"""
Admin analytics endpoints.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from longa.api.auth import get_current_admin
from longa.database import get_db
from longa.models.user import User
from longa.schemas.api_responses import FinancialOverview
from longa.services.analytics import get_financial_overview

router = APIRouter(tags=["analytics"])


@router.get("/api/v1/admin/analytics/financial", response_model=FinancialOverview)
async def financial_overview(
    period: str = Query(default="30d", pattern="^(7d|30d|90d)$"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """Bookings, revenue, commission and payout totals for the period."""
    return await get_financial_overview(db, period=period)
