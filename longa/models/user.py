"""
User model - clients, providers and admins share one account table.
Providers carry the fields used for assignment ranking and payout export.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Boolean, Integer, Float, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from longa.database import Base


class UserRole:
    CLIENT = "client"
    PROVIDER = "provider"
    ADMIN = "admin"

    ALL = (CLIENT, PROVIDER, ADMIN)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.CLIENT
    )  # client, provider, admin
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Provider fields
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    rating: Mapped[Optional[float]] = mapped_column(Float)
    total_jobs: Mapped[int] = mapped_column(Integer, default=0)
    current_work_location: Mapped[Optional[str]] = mapped_column(String(100))
    bank_mobile_number: Mapped[Optional[str]] = mapped_column(String(50))
    verification_status: Mapped[str] = mapped_column(
        String(20), default="pending"
    )  # pending, verified, rejected

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_users_role", "role"),
        Index("ix_users_role_active", "role", "is_active"),
        Index("ix_users_work_location", "current_work_location"),
    )

    @property
    def is_provider(self) -> bool:
        return self.role == UserRole.PROVIDER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User {self.full_name} role={self.role}>"
