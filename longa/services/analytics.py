"""
Analytics service - admin financial overview for the dashboard.
"""
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, func, and_, desc
from sqlalchemy.ext.asyncio import AsyncSession

from longa.models.booking import Booking, BookingStatus
from longa.models.payout import Payout, PayoutStatus, PayoutType
from longa.models.user import User
from longa.schemas.api_responses import FinancialOverview, TopProvider

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90}


async def get_financial_overview(
    db: AsyncSession,
    period: str = "30d",
    top_n: int = 5,
) -> FinancialOverview:
    """Bookings, revenue and payout totals for the period."""
    days = PERIOD_DAYS.get(period, 30)
    since = datetime.now(timezone.utc) - timedelta(days=days)
    since_date = since.date()

    # Bookings by status (created in period)
    status_result = await db.execute(
        select(Booking.status, func.count(Booking.id))
        .where(Booking.created_at >= since)
        .group_by(Booking.status)
    )
    by_status = {status: count for status, count in status_result.all()}
    total_bookings = sum(by_status.values())

    # Completed revenue (completed in period)
    revenue_result = await db.execute(
        select(func.count(Booking.id), func.sum(Booking.total_amount)).where(
            and_(
                Booking.status == BookingStatus.COMPLETED,
                Booking.completed_at >= since,
            )
        )
    )
    completed_count, revenue = revenue_result.one()

    # Job payout split, failed (reversed) payouts excluded
    split_result = await db.execute(
        select(func.sum(Payout.platform_commission), func.sum(Payout.amount)).where(
            and_(
                Payout.payout_type == PayoutType.JOB,
                Payout.status != PayoutStatus.FAILED,
                Payout.scheduled_date >= since_date,
            )
        )
    )
    commission, earnings = split_result.one()

    # Payout totals by status
    payout_result = await db.execute(
        select(Payout.status, func.sum(Payout.amount))
        .where(Payout.scheduled_date >= since_date)
        .group_by(Payout.status)
    )
    payout_totals = {status: float(total or 0) for status, total in payout_result.all()}

    manual_result = await db.execute(
        select(func.sum(Payout.amount)).where(
            and_(
                Payout.payout_type == PayoutType.MANUAL,
                Payout.status != PayoutStatus.FAILED,
                Payout.scheduled_date >= since_date,
            )
        )
    )
    manual_total = manual_result.scalar()

    # Top providers by completed jobs
    top_result = await db.execute(
        select(User.id, User.full_name, func.count(Booking.id).label("jobs"))
        .join(Booking, Booking.provider_id == User.id)
        .where(
            and_(
                Booking.status == BookingStatus.COMPLETED,
                Booking.completed_at >= since,
            )
        )
        .group_by(User.id, User.full_name)
        .order_by(desc("jobs"))
        .limit(top_n)
    )
    top_rows = top_result.all()

    earnings_by_provider = {}
    if top_rows:
        earnings_result = await db.execute(
            select(Payout.provider_id, func.sum(Payout.amount))
            .where(
                and_(
                    Payout.provider_id.in_([row[0] for row in top_rows]),
                    Payout.payout_type == PayoutType.JOB,
                    Payout.status != PayoutStatus.FAILED,
                    Payout.scheduled_date >= since_date,
                )
            )
            .group_by(Payout.provider_id)
        )
        earnings_by_provider = {pid: float(total or 0) for pid, total in earnings_result.all()}

    return FinancialOverview(
        period=period if period in PERIOD_DAYS else "30d",
        total_bookings=total_bookings,
        bookings_by_status={status: by_status.get(status, 0) for status in BookingStatus.ALL},
        completed_bookings=completed_count or 0,
        completed_revenue=float(revenue or 0),
        platform_commission=float(commission or 0),
        provider_earnings=float(earnings or 0),
        pending_payouts_total=payout_totals.get(PayoutStatus.PENDING, 0.0),
        processed_payouts_total=(
            payout_totals.get(PayoutStatus.PROCESSED, 0.0)
            + payout_totals.get(PayoutStatus.COMPLETED, 0.0)
        ),
        manual_payouts_total=float(manual_total or 0),
        top_providers=[
            TopProvider(
                provider_id=str(pid),
                full_name=name,
                completed_jobs=jobs,
                earnings=earnings_by_provider.get(pid, 0.0),
            )
            for pid, name, jobs in top_rows
        ],
    )
