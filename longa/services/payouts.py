"""
Payout records - job payouts generated on completion, manual payouts
scheduled by admins, status updates and reversal on rollback.
"""
import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from longa.models.booking import Booking
from longa.models.package import PackageServiceInclusion
from longa.models.payout import Payout, PayoutStatus, PayoutType
from longa.models.service import Service
from longa.models.user import User, UserRole
from longa.services.commission import derive_job_payout, to_decimal
from longa.services.errors import NotFound, ValidationFailed
from longa.services.store import flush_or_fail, commit_or_fail

logger = logging.getLogger(__name__)

MANUAL_PAYOUT_REASONS = (
    "Marketing Bonus",
    "Referral Credit",
    "Performance Bonus",
    "Other",
)

SETTLED_STATUSES = (PayoutStatus.PROCESSED, PayoutStatus.COMPLETED)


async def _inclusion_fee(
    db: AsyncSession,
    package_id: Optional[uuid.UUID],
    service_id: uuid.UUID,
) -> Optional[Decimal]:
    """provider_fee_per_job for the service inside the booked package, if any."""
    if not package_id:
        return None
    result = await db.execute(
        select(PackageServiceInclusion.provider_fee_per_job).where(
            and_(
                PackageServiceInclusion.package_id == package_id,
                PackageServiceInclusion.service_id == service_id,
            )
        )
    )
    return result.scalar_one_or_none()


async def create_job_payout(
    db: AsyncSession,
    booking: Booking,
    provider: User,
) -> Payout:
    """
    Add the pending job payout for a completed booking to the session.

    Does not flush or commit - the caller owns the transaction so the payout
    lands together with the status change.
    """
    service = await db.get(Service, booking.service_id)
    if not service:
        raise NotFound("Service not found for booking")

    fee_per_job = await _inclusion_fee(db, booking.package_id, booking.service_id)
    split = derive_job_payout(
        booking.total_amount,
        service.service_type,
        commission_percentage=service.commission_percentage,
        provider_fee=service.provider_fee,
        provider_fee_per_job=fee_per_job,
    )

    payout = Payout(
        provider_id=provider.id,
        booking_id=booking.id,
        payee_name=provider.full_name,
        bank_mobile_number=provider.bank_mobile_number,
        amount=split.provider_earnings,
        gross_amount=split.total_amount,
        platform_commission=split.commission,
        net_amount=split.provider_earnings,
        commission_percentage=(
            float(split.commission_percentage) if split.commission_percentage is not None else None
        ),
        payout_type=PayoutType.JOB,
        status=PayoutStatus.PENDING,
        scheduled_date=datetime.now(timezone.utc).date(),
    )
    db.add(payout)

    logger.info(
        "Job payout created: %s earnings=%s commission=%s",
        booking.id, split.provider_earnings, split.commission,
        extra={"booking_id": str(booking.id), "provider_id": str(provider.id)},
    )
    return payout


async def reverse_pending_job_payouts(
    db: AsyncSession,
    booking_id: uuid.UUID,
    reason: str,
) -> tuple[int, int]:
    """
    Mark the booking's pending job payouts failed.
    Already settled payouts are left alone and alerted on.
    Returns (reversed, skipped). Does not commit.
    """
    result = await db.execute(
        select(Payout).where(
            and_(Payout.booking_id == booking_id, Payout.payout_type == PayoutType.JOB)
        )
    )
    payouts = result.scalars().all()

    reversed_count = 0
    skipped_count = 0
    for payout in payouts:
        if payout.status == PayoutStatus.PENDING:
            payout.status = PayoutStatus.FAILED
            payout.failure_reason = f"Reversed: booking rolled back ({reason})"
            reversed_count += 1
        elif payout.status in SETTLED_STATUSES:
            skipped_count += 1

    if skipped_count:
        logger.warning(
            "Rollback of booking %s left %d settled payout(s) untouched",
            booking_id, skipped_count,
            extra={"booking_id": str(booking_id)},
        )
        from longa.utils.alerting import send_alert, AlertType
        await send_alert(
            AlertType.PAYOUT_REVERSAL_SKIPPED,
            f"Booking {booking_id} rolled back with {skipped_count} settled payout(s) - manual adjustment needed",
            severity="warning",
            extra={"booking_id": str(booking_id)},
        )

    return reversed_count, skipped_count


async def create_manual_payout(
    db: AsyncSession,
    amount,
    reason: str,
    created_by: Optional[uuid.UUID] = None,
    provider_id: Optional[uuid.UUID] = None,
    payee_name: Optional[str] = None,
    bank_mobile_number: Optional[str] = None,
    notes: Optional[str] = None,
    scheduled_date: Optional[date] = None,
) -> Payout:
    """Schedule a manual payout to a provider or any named payee."""
    value = to_decimal(amount, "amount")
    if value <= 0:
        raise ValidationFailed("amount must be greater than 0")
    if reason not in MANUAL_PAYOUT_REASONS:
        raise ValidationFailed(f"reason must be one of: {', '.join(MANUAL_PAYOUT_REASONS)}")

    name = (payee_name or "").strip()
    if provider_id:
        provider = await db.get(User, provider_id)
        if not provider or provider.role != UserRole.PROVIDER:
            raise NotFound("Provider not found")
        name = name or provider.full_name
        bank_mobile_number = bank_mobile_number or provider.bank_mobile_number
    if not name:
        raise ValidationFailed("payee_name or provider_id is required")

    payout = Payout(
        provider_id=provider_id,
        booking_id=None,
        payee_name=name,
        bank_mobile_number=bank_mobile_number,
        amount=value,
        gross_amount=value,
        net_amount=value,
        payout_type=PayoutType.MANUAL,
        status=PayoutStatus.PENDING,
        scheduled_date=scheduled_date or datetime.now(timezone.utc).date(),
        reason=reason,
        notes=(notes or "").strip() or None,
        created_by=created_by,
    )
    db.add(payout)
    await flush_or_fail(db, "Create manual payout")
    await commit_or_fail(db, "Create manual payout")

    logger.info(
        "Manual payout scheduled: %s %s (%s)", name, value, reason,
        extra={"payout_id": str(payout.id), "user_id": str(created_by) if created_by else None},
    )
    return payout


async def update_payout_status(
    db: AsyncSession,
    payout_id: uuid.UUID,
    status: str,
    external_reference: Optional[str] = None,
    failure_reason: Optional[str] = None,
) -> Payout:
    if status not in PayoutStatus.ALL:
        raise ValidationFailed(f"Invalid payout status: {status}")

    payout = await db.get(Payout, payout_id)
    if not payout:
        raise NotFound("Payout not found")

    payout.status = status
    if status in SETTLED_STATUSES:
        payout.processed_at = datetime.now(timezone.utc)
    if external_reference is not None:
        payout.external_reference = external_reference.strip() or None
    if status == PayoutStatus.FAILED and failure_reason:
        payout.failure_reason = failure_reason.strip()

    await commit_or_fail(db, "Update payout status")
    logger.info(
        "Payout %s marked %s", payout_id, status,
        extra={"payout_id": str(payout_id), "action": "payout_status"},
    )
    return payout


async def list_payouts(
    db: AsyncSession,
    status: Optional[str] = None,
    payout_type: Optional[str] = None,
    provider_id: Optional[uuid.UUID] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[Payout], int]:
    """Filtered, paginated payouts, newest scheduled first. Status matches exactly."""
    conditions = []
    if status:
        conditions.append(Payout.status == status)
    if payout_type:
        conditions.append(Payout.payout_type == payout_type)
    if provider_id:
        conditions.append(Payout.provider_id == provider_id)
    if date_from:
        conditions.append(Payout.scheduled_date >= date_from)
    if date_to:
        conditions.append(Payout.scheduled_date <= date_to)

    count_query = select(func.count(Payout.id))
    query = select(Payout)
    if conditions:
        count_query = count_query.where(and_(*conditions))
        query = query.where(and_(*conditions))

    total = (await db.execute(count_query)).scalar() or 0
    query = (
        query.order_by(Payout.scheduled_date.desc(), Payout.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    payouts = list((await db.execute(query)).scalars().all())
    return payouts, total
