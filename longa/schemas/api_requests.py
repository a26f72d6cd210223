"""
Request bodies. Business rules (required reasons, status checks) are
enforced in the service layer so they surface as 400/409, not 422.
"""
import uuid
from datetime import date, time
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class BookingCreateRequest(BaseModel):
    service_id: uuid.UUID
    booking_date: date
    booking_time: time
    location_town: str
    duration_minutes: Optional[int] = None
    package_id: Optional[uuid.UUID] = None
    emergency_booking: bool = False
    special_instructions: Optional[str] = Field(default=None, max_length=2000)


class StatusActionRequest(BaseModel):
    action: str
    reason: Optional[str] = None


class ReassignRequest(BaseModel):
    provider_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None


class BookingDetailsUpdate(BaseModel):
    booking_date: Optional[date] = None
    booking_time: Optional[time] = None
    duration_minutes: Optional[int] = None
    location_town: Optional[str] = None
    special_instructions: Optional[str] = None
    emergency_booking: Optional[bool] = None
    reason: Optional[str] = None


class ManualPayoutRequest(BaseModel):
    amount: Decimal
    reason: str
    provider_id: Optional[uuid.UUID] = None
    payee_name: Optional[str] = None
    bank_mobile_number: Optional[str] = None
    notes: Optional[str] = None
    scheduled_date: Optional[date] = None


class PayoutStatusUpdate(BaseModel):
    status: str
    external_reference: Optional[str] = None
    failure_reason: Optional[str] = None


class PayoutExportRequest(BaseModel):
    date_from: date
    date_to: date
    status: str = "pending"
    mark_processed: bool = False


class ServiceCreateRequest(BaseModel):
    name: str
    service_type: str = "one-off"
    client_price: Decimal
    commission_percentage: Optional[float] = None
    provider_fee: Optional[Decimal] = None
    duration_minutes: int = 60
    description: Optional[str] = None
    tags: list[str] = []
    coverage_areas: list[str] = []


class ServiceUpdateRequest(BaseModel):
    name: Optional[str] = None
    service_type: Optional[str] = None
    client_price: Optional[Decimal] = None
    commission_percentage: Optional[float] = None
    provider_fee: Optional[Decimal] = None
    duration_minutes: Optional[int] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    tags: Optional[list[str]] = None
    coverage_areas: Optional[list[str]] = None


class CommissionUpdateRequest(BaseModel):
    commission_percentage: float


class InclusionLine(BaseModel):
    service_id: uuid.UUID
    provider_fee_per_job: Decimal
    quantity_per_package: int = 1


class PackageCreateRequest(BaseModel):
    name: str
    price: Decimal
    description: Optional[str] = None
    inclusions: list[InclusionLine]


class FAQCreateRequest(BaseModel):
    question: str
    answer: str
    category: str = "general"
    priority: int = 0


class FAQUpdateRequest(BaseModel):
    question: Optional[str] = None
    answer: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None


class WorkLocationUpdate(BaseModel):
    location: str = Field(max_length=100)


class AvailabilityUpdate(BaseModel):
    is_available: bool
