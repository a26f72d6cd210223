"""
API response schemas for the client, provider and admin endpoints.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class UserSummary(BaseModel):
    id: str
    full_name: str
    email: str
    phone: Optional[str] = None
    role: str
    is_active: bool = True


class ProviderCandidate(BaseModel):
    id: str
    full_name: str
    phone: Optional[str] = None
    rating: Optional[float] = None
    total_jobs: int = 0
    current_work_location: Optional[str] = None
    is_available: bool = True


class ProviderProfile(ProviderCandidate):
    verification_status: str = "pending"
    updated_at: Optional[datetime] = None


class BookingSummary(BaseModel):
    id: str
    service_id: str
    client_id: str
    provider_id: Optional[str] = None
    package_id: Optional[str] = None
    booking_date: str
    booking_time: str
    duration_minutes: int
    location_town: Optional[str] = None
    total_amount: float
    status: str
    emergency_booking: bool = False
    special_instructions: Optional[str] = None
    assigned_at: Optional[datetime] = None
    check_in_time: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    refund_status: Optional[str] = None
    allowed_actions: list[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookingListResponse(BaseModel):
    bookings: list[BookingSummary]
    total: int
    page: int
    pages: int


class AssignmentLogEntry(BaseModel):
    id: str
    provider_id: str
    assigned_by: Optional[str] = None
    assignment_reason: Optional[str] = None
    auto_assigned: bool = False
    assigned_at: Optional[datetime] = None


class BookingDetailResponse(BaseModel):
    booking: BookingSummary
    modification_history: list[dict] = []
    assignments: list[AssignmentLogEntry] = []


class ReassignResponse(BaseModel):
    booking: BookingSummary
    provider: ProviderCandidate
    audit_logged: bool


class PayoutSummary(BaseModel):
    id: str
    provider_id: Optional[str] = None
    booking_id: Optional[str] = None
    payee_name: str
    bank_mobile_number: Optional[str] = None
    amount: float
    gross_amount: Optional[float] = None
    platform_commission: Optional[float] = None
    net_amount: Optional[float] = None
    commission_percentage: Optional[float] = None
    payout_type: str
    status: str
    scheduled_date: str
    processed_at: Optional[datetime] = None
    external_reference: Optional[str] = None
    failure_reason: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class PayoutListResponse(BaseModel):
    payouts: list[PayoutSummary]
    total: int
    page: int
    pages: int


class PayoutExportSummary(BaseModel):
    id: str
    filename: str
    date_from: str
    date_to: str
    status_filter: str
    record_count: int
    total_amount: float
    marked_processed: bool
    created_at: Optional[datetime] = None


class ServiceResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    service_type: str
    client_price: float
    commission_percentage: Optional[float] = None
    provider_fee: Optional[float] = None
    duration_minutes: int
    is_active: bool
    tags: list[str] = []
    coverage_areas: list[str] = []


class PayoutPreviewResponse(BaseModel):
    service_id: str
    service_name: str
    service_type: str
    client_price: float
    commission_percentage: Optional[float] = None
    provider_payout: float
    platform_commission: float


class InclusionResponse(BaseModel):
    service_id: str
    quantity_per_package: int
    provider_fee_per_job: float


class PackageResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: float
    is_active: bool
    inclusions: list[InclusionResponse] = []


class NotificationResponse(BaseModel):
    id: str
    booking_id: Optional[str] = None
    type: str
    title: str
    message: str
    is_read: bool
    created_at: Optional[datetime] = None


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class FAQResponse(BaseModel):
    id: str
    question: str
    answer: str
    category: str
    priority: int
    is_active: bool
    views: int


class TopProvider(BaseModel):
    provider_id: str
    full_name: str
    completed_jobs: int
    earnings: float


class FinancialOverview(BaseModel):
    period: str
    total_bookings: int = 0
    bookings_by_status: dict[str, int] = {}
    completed_bookings: int = 0
    completed_revenue: float = 0.0
    platform_commission: float = 0.0
    provider_earnings: float = 0.0
    pending_payouts_total: float = 0.0
    processed_payouts_total: float = 0.0
    manual_payouts_total: float = 0.0
    top_providers: list[TopProvider] = []
