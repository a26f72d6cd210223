"""
Payout export - CSV of payouts in a scheduled-date window, plus optional
bulk marking of the exported rows as processed.

Export and marking are separate steps. The CSV is always produced; a marking
failure is reported on the result and the rows stay in their old status.
"""
import csv
import io
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from longa.models.booking import Booking
from longa.models.payout import Payout, PayoutExport, PayoutStatus, PayoutType
from longa.models.service import Service
from longa.models.user import User
from longa.services.errors import StoreWriteFailed, ValidationFailed
from longa.services.store import add_secondary, commit_or_fail

logger = logging.getLogger(__name__)

EXPORT_HEADER = [
    "Provider Name",
    "Bank/Mobile Number",
    "Service Type",
    "Job ID",
    "Service Name",
    "Job Date",
    "Payout Amount",
    "Payment Type/Notes",
]

MISSING_BANK_NUMBER = "Not provided"


@dataclass
class ExportRow:
    payout_id: uuid.UUID
    provider_name: str
    bank_mobile_number: str
    service_type: str
    job_id: str
    service_name: str
    job_date: str
    amount: Decimal
    notes: str


@dataclass
class ExportResult:
    filename: str
    content: str
    payout_ids: list[uuid.UUID] = field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    marked_processed: bool = False
    marking_error: Optional[str] = None

    @property
    def record_count(self) -> int:
        return len(self.payout_ids)


def export_filename(on: Optional[date] = None) -> str:
    """longa-payouts-<yyyymmdd>.csv"""
    on = on or datetime.now(timezone.utc).date()
    return f"longa-payouts-{on.strftime('%Y%m%d')}.csv"


def _format_percentage(pct: float) -> str:
    return f"{pct:g}%"


def build_export_row(
    payout: Payout,
    booking: Optional[Booking],
    service: Optional[Service],
    provider: Optional[User],
) -> ExportRow:
    """Flatten one payout (and its booking/service/provider) into an export row."""
    bank = payout.bank_mobile_number or (provider.bank_mobile_number if provider else None)

    if payout.payout_type == PayoutType.MANUAL:
        service_type = "Manual"
        service_name = payout.reason or "Manual Payout"
        notes = payout.reason or "Manual"
        if payout.notes:
            notes = f"{notes}: {payout.notes}"
    elif payout.commission_percentage is None:
        service_type = "Package"
        service_name = service.name if service else ""
        notes = "Fixed Package Fee"
    else:
        service_type = "One-Off"
        service_name = service.name if service else ""
        notes = f"Commission: {_format_percentage(payout.commission_percentage)}"

    job_date = booking.booking_date if booking else payout.scheduled_date
    return ExportRow(
        payout_id=payout.id,
        provider_name=payout.payee_name or (provider.full_name if provider else ""),
        bank_mobile_number=bank or MISSING_BANK_NUMBER,
        service_type=service_type,
        job_id=str(payout.booking_id) if payout.booking_id else "N/A",
        service_name=service_name,
        job_date=job_date.isoformat() if job_date else "",
        amount=Decimal(payout.amount),
        notes=notes,
    )


def _csv_amount(amount: Decimal):
    # Numbers are written unquoted; whole amounts without a decimal point
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


def render_csv(rows: list[ExportRow]) -> str:
    """Header row unquoted; string fields double-quoted; amount unquoted."""
    output = io.StringIO()
    csv.writer(output, lineterminator="\n").writerow(EXPORT_HEADER)
    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for row in rows:
        writer.writerow([
            row.provider_name,
            row.bank_mobile_number,
            row.service_type,
            row.job_id,
            row.service_name,
            row.job_date,
            _csv_amount(row.amount),
            row.notes,
        ])
    return output.getvalue()


def _validate_window(date_from: date, date_to: date, status: str) -> None:
    if not date_from or not date_to:
        raise ValidationFailed("date_from and date_to are required")
    if date_from > date_to:
        raise ValidationFailed("date_from must be on or before date_to")
    if status not in PayoutStatus.ALL:
        raise ValidationFailed(f"Invalid payout status: {status}")


async def fetch_export_rows(
    db: AsyncSession,
    date_from: date,
    date_to: date,
    status: str = PayoutStatus.PENDING,
) -> list[ExportRow]:
    """Payouts scheduled within [date_from, date_to] with the given status."""
    _validate_window(date_from, date_to, status)

    from longa.config import get_settings
    max_rows = get_settings().payout_export_max_rows

    result = await db.execute(
        select(Payout, Booking, Service, User)
        .outerjoin(Booking, Payout.booking_id == Booking.id)
        .outerjoin(Service, Booking.service_id == Service.id)
        .outerjoin(User, Payout.provider_id == User.id)
        .where(
            and_(
                Payout.status == status,
                Payout.scheduled_date >= date_from,
                Payout.scheduled_date <= date_to,
            )
        )
        .order_by(Payout.scheduled_date.asc(), Payout.created_at.asc())
        .limit(max_rows)
    )
    return [build_export_row(*row) for row in result.all()]


async def mark_payouts_processed(db: AsyncSession, payout_ids: list[uuid.UUID]) -> int:
    """Set exactly the given payouts to processed. Returns rows updated."""
    if not payout_ids:
        return 0
    now = datetime.now(timezone.utc)
    try:
        result = await db.execute(
            update(Payout)
            .where(Payout.id.in_(payout_ids))
            .values(status=PayoutStatus.PROCESSED, processed_at=now, updated_at=now)
        )
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Mark payouts processed failed: %s", str(e))
        raise StoreWriteFailed(f"Mark payouts processed failed: {e}") from e
    await commit_or_fail(db, "Mark payouts processed")
    return result.rowcount or 0


async def export_payouts(
    db: AsyncSession,
    date_from: date,
    date_to: date,
    status: str = PayoutStatus.PENDING,
    mark_processed: bool = False,
    exported_by: Optional[uuid.UUID] = None,
) -> ExportResult:
    """Build the CSV, optionally mark the exported rows processed, record the export."""
    rows = await fetch_export_rows(db, date_from, date_to, status)
    export = ExportResult(
        filename=export_filename(),
        content=render_csv(rows),
        payout_ids=[row.payout_id for row in rows],
        total_amount=sum((row.amount for row in rows), Decimal("0")),
    )

    if mark_processed and export.payout_ids:
        try:
            await mark_payouts_processed(db, export.payout_ids)
            export.marked_processed = True
        except StoreWriteFailed as e:
            export.marking_error = e.message
            from longa.utils.alerting import send_alert, AlertType
            await send_alert(
                AlertType.PAYOUT_MARKING_FAILED,
                f"Exported {export.record_count} payout(s) but marking failed: {e.message}",
                extra={"filename": export.filename},
            )

    recorded = await add_secondary(
        db,
        [PayoutExport(
            filename=export.filename,
            date_from=date_from,
            date_to=date_to,
            status_filter=status,
            record_count=export.record_count,
            total_amount=export.total_amount,
            marked_processed=export.marked_processed,
            exported_by=exported_by,
        )],
        "Payout export history",
        user_id=exported_by,
    )
    if recorded:
        try:
            await commit_or_fail(db, "Record payout export")
        except StoreWriteFailed as e:
            logger.warning("Export history not saved: %s", e.message)

    logger.info(
        "Payout export %s: %d row(s), total %s, marked=%s",
        export.filename, export.record_count, export.total_amount, export.marked_processed,
        extra={"user_id": str(exported_by) if exported_by else None, "action": "payout_export"},
    )
    return export


async def list_exports(db: AsyncSession, limit: int = 20) -> list[PayoutExport]:
    result = await db.execute(
        select(PayoutExport).order_by(PayoutExport.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())
