"""Initial schema - users, catalog, bookings, assignments, payouts, notifications, FAQs.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users (clients, providers, admins)
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(30)),
        sa.Column("role", sa.String(20), nullable=False, server_default="client"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("is_available", sa.Boolean, server_default=sa.true()),
        sa.Column("rating", sa.Float),
        sa.Column("total_jobs", sa.Integer, server_default="0"),
        sa.Column("current_work_location", sa.String(100)),
        sa.Column("bank_mobile_number", sa.String(50)),
        sa.Column("verification_status", sa.String(20), server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_role_active", "users", ["role", "is_active"])
    op.create_index("ix_users_work_location", "users", ["current_work_location"])

    # Service catalog
    op.create_table(
        "services",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("service_type", sa.String(20), nullable=False, server_default="one-off"),
        sa.Column("client_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("commission_percentage", sa.Float),
        sa.Column("provider_fee", sa.Numeric(12, 2)),
        sa.Column("duration_minutes", sa.Integer, nullable=False, server_default="60"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("tags", postgresql.JSONB, server_default="[]"),
        sa.Column("coverage_areas", postgresql.JSONB, server_default="[]"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_services_is_active", "services", ["is_active"])
    op.create_index("ix_services_service_type", "services", ["service_type"])

    # Subscription packages
    op.create_table(
        "subscription_packages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "package_service_inclusions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("package_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("subscription_packages.id"), nullable=False),
        sa.Column("service_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("services.id"), nullable=False),
        sa.Column("quantity_per_package", sa.Integer, server_default="1"),
        sa.Column("provider_fee_per_job", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("package_id", "service_id", name="uq_package_service"),
    )
    op.create_index("ix_inclusions_service_id", "package_service_inclusions", ["service_id"])

    # Bookings
    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("service_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("services.id"), nullable=False),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("package_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("subscription_packages.id")),
        sa.Column("booking_date", sa.Date, nullable=False),
        sa.Column("booking_time", sa.Time, nullable=False),
        sa.Column("duration_minutes", sa.Integer, server_default="60"),
        sa.Column("location_town", sa.String(100)),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("emergency_booking", sa.Boolean, server_default=sa.false()),
        sa.Column("special_instructions", sa.Text),
        sa.Column("assigned_at", sa.DateTime(timezone=True)),
        sa.Column("check_in_time", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("cancellation_reason", sa.Text),
        sa.Column("refund_status", sa.String(20)),
        sa.Column("modification_history", postgresql.JSONB, server_default="[]"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "provider_id IS NULL OR status IN ('accepted', 'in_progress', 'completed')",
            name="ck_bookings_provider_status",
        ),
    )
    op.create_index("ix_bookings_client_id", "bookings", ["client_id"])
    op.create_index("ix_bookings_provider_id", "bookings", ["provider_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_booking_date", "bookings", ["booking_date"])

    # Assignment audit log (append-only)
    op.create_table(
        "booking_assignments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("assigned_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("assignment_reason", sa.Text),
        sa.Column("auto_assigned", sa.Boolean, server_default=sa.false()),
        sa.Column("assigned_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_booking_assignments_booking_id", "booking_assignments", ["booking_id"])
    op.create_index("ix_booking_assignments_provider_id", "booking_assignments", ["provider_id"])

    # Payouts
    op.create_table(
        "payouts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id")),
        sa.Column("payee_name", sa.String(200), nullable=False),
        sa.Column("bank_mobile_number", sa.String(50)),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("gross_amount", sa.Numeric(12, 2)),
        sa.Column("platform_commission", sa.Numeric(12, 2)),
        sa.Column("net_amount", sa.Numeric(12, 2)),
        sa.Column("commission_percentage", sa.Float),
        sa.Column("payout_type", sa.String(20), nullable=False, server_default="job"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("scheduled_date", sa.Date, nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True)),
        sa.Column("external_reference", sa.String(100)),
        sa.Column("failure_reason", sa.Text),
        sa.Column("reason", sa.String(100)),
        sa.Column("notes", sa.Text),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_payouts_provider_id", "payouts", ["provider_id"])
    op.create_index("ix_payouts_booking_id", "payouts", ["booking_id"])
    op.create_index("ix_payouts_status", "payouts", ["status"])
    op.create_index("ix_payouts_scheduled_date", "payouts", ["scheduled_date"])

    op.create_table(
        "payout_exports",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("filename", sa.String(100), nullable=False),
        sa.Column("date_from", sa.Date, nullable=False),
        sa.Column("date_to", sa.Date, nullable=False),
        sa.Column("status_filter", sa.String(20), nullable=False),
        sa.Column("record_count", sa.Integer, server_default="0"),
        sa.Column("total_amount", sa.Numeric(12, 2), server_default="0"),
        sa.Column("marked_processed", sa.Boolean, server_default=sa.false()),
        sa.Column("exported_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_payout_exports_created_at", "payout_exports", ["created_at"])

    # Notifications
    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id")),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_user_unread", "notifications", ["user_id", "is_read"])

    # Support FAQs
    op.create_table(
        "support_faqs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("question", sa.Text, nullable=False),
        sa.Column("answer", sa.Text, nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("priority", sa.Integer, server_default="0"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("views", sa.Integer, server_default="0"),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("last_updated_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_support_faqs_category", "support_faqs", ["category"])
    op.create_index("ix_support_faqs_is_active", "support_faqs", ["is_active"])


def downgrade() -> None:
    op.drop_table("support_faqs")
    op.drop_table("notifications")
    op.drop_table("payout_exports")
    op.drop_table("payouts")
    op.drop_table("booking_assignments")
    op.drop_table("bookings")
    op.drop_table("package_service_inclusions")
    op.drop_table("subscription_packages")
    op.drop_table("services")
    op.drop_table("users")
