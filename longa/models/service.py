"""
Service catalog model.
One-off services pay providers via commission_percentage; subscription
services pay a fixed provider_fee per job.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Text, Boolean, Integer, Float, Numeric, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column
from longa.database import Base


class ServiceType:
    ONE_OFF = "one-off"
    SUBSCRIPTION = "subscription"

    ALL = (ONE_OFF, SUBSCRIPTION)


class Service(Base):
    __tablename__ = "services"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    service_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ServiceType.ONE_OFF
    )  # one-off, subscription

    # Pricing
    client_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    commission_percentage: Mapped[Optional[float]] = mapped_column(Float)
    provider_fee: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))

    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    tags: Mapped[Optional[list]] = mapped_column(JSONB, default=list)
    coverage_areas: Mapped[Optional[list]] = mapped_column(JSONB, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_services_is_active", "is_active"),
        Index("ix_services_service_type", "service_type"),
    )

    def __repr__(self) -> str:
        return f"<Service {self.name} type={self.service_type}>"
