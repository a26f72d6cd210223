"""
Subscription packages and their service inclusion lines.
Each inclusion line fixes the provider fee paid per job for that service.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Text, Boolean, Integer, Numeric, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from longa.database import Base


class SubscriptionPackage(Base):
    __tablename__ = "subscription_packages"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    inclusions: Mapped[list["PackageServiceInclusion"]] = relationship(
        back_populates="package", lazy="selectin", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<SubscriptionPackage {self.name}>"


class PackageServiceInclusion(Base):
    __tablename__ = "package_service_inclusions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    package_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("subscription_packages.id"), nullable=False
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("services.id"), nullable=False
    )
    quantity_per_package: Mapped[int] = mapped_column(Integer, default=1)
    provider_fee_per_job: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    package: Mapped["SubscriptionPackage"] = relationship(back_populates="inclusions")

    __table_args__ = (
        UniqueConstraint("package_id", "service_id", name="uq_package_service"),
        Index("ix_inclusions_service_id", "service_id"),
    )

    def __repr__(self) -> str:
        return f"<PackageServiceInclusion fee={self.provider_fee_per_job}>"
