"""
Payout model - money owed to a provider (job payouts) or any payee (manual payouts).
Job payouts are created when a booking completes; manual payouts are
scheduled by an admin and carry no booking reference.
"""
import uuid
from datetime import datetime, timezone, date
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Text, Boolean, Integer, Float, Numeric, DateTime, Date, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from longa.database import Base


class PayoutType:
    JOB = "job"
    MANUAL = "manual"

    ALL = (JOB, MANUAL)


class PayoutStatus:
    """
    Both "processed" (export / admin marking) and "completed" (payment
    confirmation) are accepted. They are stored as given and never merged.
    """
    PENDING = "pending"
    PROCESSED = "processed"
    COMPLETED = "completed"
    FAILED = "failed"

    ALL = (PENDING, PROCESSED, COMPLETED, FAILED)


class Payout(Base):
    __tablename__ = "payouts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    provider_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )  # null for manual payouts to non-provider payees
    booking_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bookings.id")
    )

    # Payee details captured at creation time
    payee_name: Mapped[str] = mapped_column(String(200), nullable=False)
    bank_mobile_number: Mapped[Optional[str]] = mapped_column(String(50))

    # Amounts
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    gross_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    platform_commission: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    net_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    commission_percentage: Mapped[Optional[float]] = mapped_column(Float)

    payout_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PayoutType.JOB
    )  # job, manual
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PayoutStatus.PENDING
    )  # pending, processed, completed, failed

    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    external_reference: Mapped[Optional[str]] = mapped_column(String(100))
    failure_reason: Mapped[Optional[str]] = mapped_column(Text)

    reason: Mapped[Optional[str]] = mapped_column(String(100))  # Marketing Bonus, Referral Credit, ...
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    booking: Mapped[Optional["Booking"]] = relationship(lazy="selectin")

    __table_args__ = (
        Index("ix_payouts_provider_id", "provider_id"),
        Index("ix_payouts_booking_id", "booking_id"),
        Index("ix_payouts_status", "status"),
        Index("ix_payouts_scheduled_date", "scheduled_date"),
    )

    def __repr__(self) -> str:
        return f"<Payout {self.payout_type} {self.amount} status={self.status}>"


class PayoutExport(Base):
    """Export history - one row per CSV export."""
    __tablename__ = "payout_exports"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    filename: Mapped[str] = mapped_column(String(100), nullable=False)
    date_from: Mapped[date] = mapped_column(Date, nullable=False)
    date_to: Mapped[date] = mapped_column(Date, nullable=False)
    status_filter: Mapped[str] = mapped_column(String(20), nullable=False)
    record_count: Mapped[int] = mapped_column(Integer, default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    marked_processed: Mapped[bool] = mapped_column(Boolean, default=False)
    exported_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_payout_exports_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<PayoutExport {self.filename} rows={self.record_count}>"
