"""
Support FAQ endpoints. Listing and view tracking are public.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from longa.api.auth import get_current_admin
from longa.api.helpers import faq_response, http_error, parse_uuid
from longa.database import get_db
from longa.models.user import User
from longa.schemas.api_requests import FAQCreateRequest, FAQUpdateRequest
from longa.schemas.api_responses import FAQResponse
from longa.services import support
from longa.services.errors import LongaError

logger = logging.getLogger(__name__)
router = APIRouter(tags=["support"])


@router.get("/api/v1/support/faqs", response_model=list[FAQResponse])
async def list_faqs(
    category: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=100),
    db: AsyncSession = Depends(get_db),
):
    faqs = await support.list_faqs(db, category=category, search=search)
    return [faq_response(f) for f in faqs]


@router.post("/api/v1/support/faqs/{faq_id}/view")
async def record_view(faq_id: str, db: AsyncSession = Depends(get_db)):
    try:
        views = await support.record_view(db, parse_uuid(faq_id, "FAQ ID"))
    except LongaError as e:
        raise http_error(e)
    return {"id": faq_id, "views": views}


@router.get("/api/v1/admin/support/faqs", response_model=list[FAQResponse])
async def list_all_faqs(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    faqs = await support.list_faqs(db, include_inactive=True)
    return [faq_response(f) for f in faqs]


@router.post("/api/v1/admin/support/faqs", response_model=FAQResponse, status_code=201)
async def create_faq(
    payload: FAQCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    try:
        faq = await support.create_faq(
            db,
            question=payload.question,
            answer=payload.answer,
            category=payload.category,
            priority=payload.priority,
            created_by=admin.id,
        )
    except LongaError as e:
        raise http_error(e)
    return faq_response(faq)


@router.put("/api/v1/admin/support/faqs/{faq_id}", response_model=FAQResponse)
async def update_faq(
    faq_id: str,
    payload: FAQUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    try:
        faq = await support.update_faq(
            db,
            parse_uuid(faq_id, "FAQ ID"),
            payload.model_dump(exclude_unset=True),
            updated_by=admin.id,
        )
    except LongaError as e:
        raise http_error(e)
    return faq_response(faq)


@router.delete("/api/v1/admin/support/faqs/{faq_id}", response_model=FAQResponse)
async def deactivate_faq(
    faq_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """FAQs are deactivated, not deleted."""
    try:
        faq = await support.deactivate_faq(db, parse_uuid(faq_id, "FAQ ID"), updated_by=admin.id)
    except LongaError as e:
        raise http_error(e)
    return faq_response(faq)
