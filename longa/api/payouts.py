"""
Payout endpoints - provider earnings view, admin payout management,
manual payouts and CSV export.
"""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from longa.api.auth import get_current_admin, get_current_provider
from longa.api.helpers import export_summary, http_error, page_count, parse_uuid, payout_summary
from longa.database import get_db
from longa.models.payout import PayoutStatus, PayoutType
from longa.models.user import User
from longa.schemas.api_requests import ManualPayoutRequest, PayoutExportRequest, PayoutStatusUpdate
from longa.schemas.api_responses import PayoutExportSummary, PayoutListResponse, PayoutSummary
from longa.services.errors import LongaError
from longa.services.payout_export import export_payouts, list_exports
from longa.services.payouts import create_manual_payout, list_payouts, update_payout_status

logger = logging.getLogger(__name__)
router = APIRouter(tags=["payouts"])


def _check_filters(status: Optional[str], payout_type: Optional[str]) -> None:
    if status and status not in PayoutStatus.ALL:
        raise HTTPException(status_code=400, detail=f"Invalid payout status: {status}")
    if payout_type and payout_type not in PayoutType.ALL:
        raise HTTPException(status_code=400, detail=f"Invalid payout type: {payout_type}")


def _header_value(text: str, limit: int = 200) -> str:
    """Single-line ASCII; headers are latin-1 encoded on the wire."""
    flat = " ".join(text.split())
    return flat.encode("ascii", "replace").decode("ascii")[:limit]


@router.get("/api/v1/payouts", response_model=PayoutListResponse)
async def my_payouts(
    status: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    provider: User = Depends(get_current_provider),
):
    """The calling provider's payouts."""
    _check_filters(status, None)
    payouts, total = await list_payouts(
        db, status=status, provider_id=provider.id, page=page, per_page=per_page,
    )
    return PayoutListResponse(
        payouts=[payout_summary(p) for p in payouts],
        total=total,
        page=page,
        pages=page_count(total, per_page),
    )


# === ADMIN ===

@router.get("/api/v1/admin/payouts", response_model=PayoutListResponse)
async def list_all(
    status: Optional[str] = Query(default=None),
    payout_type: Optional[str] = Query(default=None),
    provider_id: Optional[str] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    _check_filters(status, payout_type)
    payouts, total = await list_payouts(
        db,
        status=status,
        payout_type=payout_type,
        provider_id=parse_uuid(provider_id, "provider ID") if provider_id else None,
        date_from=date_from,
        date_to=date_to,
        page=page,
        per_page=per_page,
    )
    return PayoutListResponse(
        payouts=[payout_summary(p) for p in payouts],
        total=total,
        page=page,
        pages=page_count(total, per_page),
    )


@router.post("/api/v1/admin/payouts/manual", response_model=PayoutSummary, status_code=201)
async def schedule_manual_payout(
    payload: ManualPayoutRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """Schedule a bonus, referral credit or other payout not tied to a booking."""
    try:
        payout = await create_manual_payout(
            db,
            amount=payload.amount,
            reason=payload.reason,
            created_by=admin.id,
            provider_id=payload.provider_id,
            payee_name=payload.payee_name,
            bank_mobile_number=payload.bank_mobile_number,
            notes=payload.notes,
            scheduled_date=payload.scheduled_date,
        )
    except LongaError as e:
        raise http_error(e)
    return payout_summary(payout)


@router.put("/api/v1/admin/payouts/{payout_id}/status", response_model=PayoutSummary)
async def set_status(
    payout_id: str,
    payload: PayoutStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    try:
        payout = await update_payout_status(
            db,
            parse_uuid(payout_id, "payout ID"),
            payload.status,
            external_reference=payload.external_reference,
            failure_reason=payload.failure_reason,
        )
    except LongaError as e:
        raise http_error(e)
    return payout_summary(payout)


@router.post("/api/v1/admin/payouts/export")
async def export_csv(
    payload: PayoutExportRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """
    Download payouts scheduled in [date_from, date_to] as CSV.
    With mark_processed, the exported rows are then set to processed;
    the X-Payouts-Marked header reports whether that step succeeded.
    """
    try:
        result = await export_payouts(
            db,
            date_from=payload.date_from,
            date_to=payload.date_to,
            status=payload.status,
            mark_processed=payload.mark_processed,
            exported_by=admin.id,
        )
    except LongaError as e:
        raise http_error(e)

    headers = {
        "Content-Disposition": f"attachment; filename={result.filename}",
        "X-Payouts-Exported": str(result.record_count),
        "X-Payouts-Marked": "true" if result.marked_processed else "false",
    }
    if result.marking_error:
        headers["X-Payouts-Marking-Error"] = _header_value(result.marking_error)

    return StreamingResponse(
        iter([result.content]),
        media_type="text/csv",
        headers=headers,
    )


@router.get("/api/v1/admin/payouts/exports", response_model=list[PayoutExportSummary])
async def export_history(
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    exports = await list_exports(db, limit=limit)
    return [export_summary(e) for e in exports]
