"""
Support FAQ catalog - public listing with view tracking, admin maintenance.
"""
import logging
import uuid
from typing import Optional

from sqlalchemy import select, update, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from longa.models.support_faq import SupportFAQ
from longa.services.errors import NotFound, ValidationFailed
from longa.services.store import commit_or_fail, flush_or_fail

logger = logging.getLogger(__name__)

FAQ_CATEGORIES = ("general", "booking", "payment", "provider", "account")
FAQ_FIELDS = ("question", "answer", "category", "priority", "is_active")


def _check_category(category: str) -> None:
    if category not in FAQ_CATEGORIES:
        raise ValidationFailed(f"category must be one of: {', '.join(FAQ_CATEGORIES)}")


async def list_faqs(
    db: AsyncSession,
    category: Optional[str] = None,
    search: Optional[str] = None,
    include_inactive: bool = False,
) -> list[SupportFAQ]:
    """FAQs ordered by priority (highest first), then newest."""
    query = select(SupportFAQ)
    if not include_inactive:
        query = query.where(SupportFAQ.is_active == True)  # noqa: E712
    if category:
        query = query.where(SupportFAQ.category == category)
    needle = (search or "").strip().lower()
    if needle:
        pattern = f"%{needle}%"
        query = query.where(or_(
            func.lower(SupportFAQ.question).like(pattern),
            func.lower(SupportFAQ.answer).like(pattern),
        ))
    query = query.order_by(SupportFAQ.priority.desc(), SupportFAQ.created_at.desc())
    return list((await db.execute(query)).scalars().all())


async def get_faq(db: AsyncSession, faq_id: uuid.UUID) -> SupportFAQ:
    faq = await db.get(SupportFAQ, faq_id)
    if not faq:
        raise NotFound("FAQ not found")
    return faq


async def create_faq(
    db: AsyncSession,
    question: str,
    answer: str,
    category: str = "general",
    priority: int = 0,
    created_by: Optional[uuid.UUID] = None,
) -> SupportFAQ:
    question = (question or "").strip()
    answer = (answer or "").strip()
    if not question or not answer:
        raise ValidationFailed("question and answer are required")
    _check_category(category)

    faq = SupportFAQ(
        question=question,
        answer=answer,
        category=category,
        priority=priority,
        is_active=True,
        views=0,
        created_by=created_by,
        last_updated_by=created_by,
    )
    db.add(faq)
    await flush_or_fail(db, "Create FAQ")
    await commit_or_fail(db, "Create FAQ")
    logger.info("FAQ created in %s", category, extra={"user_id": str(created_by) if created_by else None})
    return faq


async def update_faq(
    db: AsyncSession,
    faq_id: uuid.UUID,
    changes: dict,
    updated_by: Optional[uuid.UUID] = None,
) -> SupportFAQ:
    unknown = set(changes) - set(FAQ_FIELDS)
    if unknown:
        raise ValidationFailed(f"Unknown FAQ fields: {', '.join(sorted(unknown))}")
    for key in ("question", "answer"):
        if key in changes and not (changes[key] or "").strip():
            raise ValidationFailed(f"{key} cannot be empty")
    if "category" in changes:
        _check_category(changes["category"])

    faq = await get_faq(db, faq_id)
    for key, value in changes.items():
        setattr(faq, key, value.strip() if isinstance(value, str) else value)
    faq.last_updated_by = updated_by
    await commit_or_fail(db, "Update FAQ")
    return faq


async def deactivate_faq(db: AsyncSession, faq_id: uuid.UUID, updated_by: Optional[uuid.UUID] = None) -> SupportFAQ:
    return await update_faq(db, faq_id, {"is_active": False}, updated_by=updated_by)


async def record_view(db: AsyncSession, faq_id: uuid.UUID) -> int:
    """Increment the view counter in the database. Returns the new count."""
    faq = await get_faq(db, faq_id)
    if not faq.is_active:
        raise NotFound("FAQ not found")
    await db.execute(
        update(SupportFAQ)
        .where(SupportFAQ.id == faq_id)
        .values(views=SupportFAQ.views + 1)
        .execution_options(synchronize_session=False)
    )
    await commit_or_fail(db, "Record FAQ view")
    await db.refresh(faq, attribute_names=["views"])
    return faq.views
