"""
Shared API helpers - id parsing, error translation and response builders.
"""
import math
import uuid
from typing import Optional

from fastapi import HTTPException

from longa.models.booking import Booking
from longa.models.booking_assignment import BookingAssignment
from longa.models.notification import Notification
from longa.models.payout import Payout, PayoutExport
from longa.models.service import Service
from longa.models.support_faq import SupportFAQ
from longa.models.user import User
from longa.schemas.api_responses import (
    AssignmentLogEntry,
    BookingSummary,
    FAQResponse,
    NotificationResponse,
    PayoutExportSummary,
    PayoutSummary,
    ProviderCandidate,
    ProviderProfile,
    ServiceResponse,
)
from longa.services.booking_lifecycle import allowed_actions
from longa.services.errors import LongaError


def parse_uuid(value: str, label: str = "ID") -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except (ValueError, AttributeError):
        raise HTTPException(status_code=400, detail=f"Invalid {label} format")


def http_error(error: LongaError) -> HTTPException:
    """Translate a service-layer error into an HTTPException."""
    return HTTPException(status_code=error.status_code, detail=error.message)


def page_count(total: int, per_page: int) -> int:
    return math.ceil(total / per_page) if total > 0 else 0


def _str_or_none(value: Optional[uuid.UUID]) -> Optional[str]:
    return str(value) if value else None


def _float_or_none(value) -> Optional[float]:
    return float(value) if value is not None else None


def booking_summary(booking: Booking) -> BookingSummary:
    return BookingSummary(
        id=str(booking.id),
        service_id=str(booking.service_id),
        client_id=str(booking.client_id),
        provider_id=_str_or_none(booking.provider_id),
        package_id=_str_or_none(booking.package_id),
        booking_date=booking.booking_date.isoformat(),
        booking_time=booking.booking_time.strftime("%H:%M"),
        duration_minutes=booking.duration_minutes,
        location_town=booking.location_town,
        total_amount=float(booking.total_amount),
        status=booking.status,
        emergency_booking=bool(booking.emergency_booking),
        special_instructions=booking.special_instructions,
        assigned_at=booking.assigned_at,
        check_in_time=booking.check_in_time,
        completed_at=booking.completed_at,
        cancellation_reason=booking.cancellation_reason,
        refund_status=booking.refund_status,
        allowed_actions=allowed_actions(booking.status),
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )


def assignment_entry(row: BookingAssignment) -> AssignmentLogEntry:
    return AssignmentLogEntry(
        id=str(row.id),
        provider_id=str(row.provider_id),
        assigned_by=_str_or_none(row.assigned_by),
        assignment_reason=row.assignment_reason,
        auto_assigned=bool(row.auto_assigned),
        assigned_at=row.assigned_at,
    )


def provider_candidate(user: User) -> ProviderCandidate:
    return ProviderCandidate(
        id=str(user.id),
        full_name=user.full_name,
        phone=user.phone,
        rating=user.rating,
        total_jobs=user.total_jobs or 0,
        current_work_location=user.current_work_location,
        is_available=bool(user.is_available),
    )


def provider_profile(user: User) -> ProviderProfile:
    return ProviderProfile(
        **provider_candidate(user).model_dump(),
        verification_status=user.verification_status or "pending",
        updated_at=user.updated_at,
    )


def payout_summary(payout: Payout) -> PayoutSummary:
    return PayoutSummary(
        id=str(payout.id),
        provider_id=_str_or_none(payout.provider_id),
        booking_id=_str_or_none(payout.booking_id),
        payee_name=payout.payee_name,
        bank_mobile_number=payout.bank_mobile_number,
        amount=float(payout.amount),
        gross_amount=_float_or_none(payout.gross_amount),
        platform_commission=_float_or_none(payout.platform_commission),
        net_amount=_float_or_none(payout.net_amount),
        commission_percentage=payout.commission_percentage,
        payout_type=payout.payout_type,
        status=payout.status,
        scheduled_date=payout.scheduled_date.isoformat(),
        processed_at=payout.processed_at,
        external_reference=payout.external_reference,
        failure_reason=payout.failure_reason,
        reason=payout.reason,
        notes=payout.notes,
        created_at=payout.created_at,
    )


def export_summary(export: PayoutExport) -> PayoutExportSummary:
    return PayoutExportSummary(
        id=str(export.id),
        filename=export.filename,
        date_from=export.date_from.isoformat(),
        date_to=export.date_to.isoformat(),
        status_filter=export.status_filter,
        record_count=export.record_count or 0,
        total_amount=float(export.total_amount or 0),
        marked_processed=bool(export.marked_processed),
        created_at=export.created_at,
    )


def service_response(service: Service) -> ServiceResponse:
    return ServiceResponse(
        id=str(service.id),
        name=service.name,
        description=service.description,
        service_type=service.service_type,
        client_price=float(service.client_price),
        commission_percentage=service.commission_percentage,
        provider_fee=_float_or_none(service.provider_fee),
        duration_minutes=service.duration_minutes,
        is_active=bool(service.is_active),
        tags=list(service.tags or []),
        coverage_areas=list(service.coverage_areas or []),
    )


def notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=str(notification.id),
        booking_id=_str_or_none(notification.booking_id),
        type=notification.type,
        title=notification.title,
        message=notification.message,
        is_read=bool(notification.is_read),
        created_at=notification.created_at,
    )


def faq_response(faq: SupportFAQ) -> FAQResponse:
    return FAQResponse(
        id=str(faq.id),
        question=faq.question,
        answer=faq.answer,
        category=faq.category,
        priority=faq.priority or 0,
        is_active=bool(faq.is_active),
        views=faq.views or 0,
    )
