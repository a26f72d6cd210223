"""
Booking assignment log - append-only audit trail of every (re)assignment.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from longa.database import Base


class BookingAssignment(Base):
    __tablename__ = "booking_assignments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bookings.id"), nullable=False
    )
    provider_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    assigned_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )  # null when assigned by the auto-assignment worker
    assignment_reason: Mapped[Optional[str]] = mapped_column(Text)
    auto_assigned: Mapped[bool] = mapped_column(Boolean, default=False)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_booking_assignments_booking_id", "booking_id"),
        Index("ix_booking_assignments_provider_id", "provider_id"),
    )

    def __repr__(self) -> str:
        return f"<BookingAssignment auto={self.auto_assigned}>"
