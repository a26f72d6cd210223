"""
Booking model - one scheduled service engagement between a client and a provider.
Lifecycle: pending → accepted → in_progress → completed.
Cancelled is reachable from pending, accepted and in_progress.
Bookings are never deleted; cancellation is a status value.
"""
import uuid
from datetime import datetime, timezone, date, time
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Text, Boolean, Integer, Numeric, DateTime, Date, Time, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from longa.database import Base


class BookingStatus:
    """Wire-level booking status values."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = (PENDING, ACCEPTED, IN_PROGRESS, COMPLETED, CANCELLED)

    # A provider reference may only be held in these states
    PROVIDER_ASSIGNED = frozenset({ACCEPTED, IN_PROGRESS, COMPLETED})
    # No further work happens on these
    TERMINAL = frozenset({COMPLETED, CANCELLED})


def provider_invariant_holds(status: str, provider_id: Optional[uuid.UUID]) -> bool:
    """A provider reference is only allowed while the booking is accepted, in progress or completed."""
    return provider_id is None or status in BookingStatus.PROVIDER_ASSIGNED


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("services.id"), nullable=False
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    provider_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )
    package_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("subscription_packages.id")
    )

    # Schedule
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    booking_time: Mapped[time] = mapped_column(Time, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=60)
    location_town: Mapped[Optional[str]] = mapped_column(String(100))

    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BookingStatus.PENDING
    )  # pending, accepted, in_progress, completed, cancelled
    emergency_booking: Mapped[bool] = mapped_column(Boolean, default=False)
    special_instructions: Mapped[Optional[str]] = mapped_column(Text)

    # Assignment and progress
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    check_in_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Cancellation
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)
    refund_status: Mapped[Optional[str]] = mapped_column(String(20))  # pending

    # Admin action trail: [{"action", "from_status", "to_status", "reason", "actor_id", "at", ...}]
    modification_history: Mapped[Optional[list]] = mapped_column(JSONB, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    service: Mapped["Service"] = relationship(lazy="selectin")
    client: Mapped["User"] = relationship(foreign_keys=[client_id], lazy="selectin")
    provider: Mapped[Optional["User"]] = relationship(foreign_keys=[provider_id], lazy="selectin")

    __table_args__ = (
        Index("ix_bookings_client_id", "client_id"),
        Index("ix_bookings_provider_id", "provider_id"),
        Index("ix_bookings_status", "status"),
        Index("ix_bookings_booking_date", "booking_date"),
        CheckConstraint(
            "provider_id IS NULL OR status IN ('accepted', 'in_progress', 'completed')",
            name="ck_bookings_provider_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Booking {self.booking_date} status={self.status}>"
