"""
Service and subscription-package catalog.
"""
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from longa.models.package import PackageServiceInclusion, SubscriptionPackage
from longa.models.service import Service, ServiceType
from longa.services.commission import provider_payout_preview, to_decimal
from longa.services.errors import NotFound, ValidationFailed
from longa.services.store import commit_or_fail, flush_or_fail

logger = logging.getLogger(__name__)

SERVICE_FIELDS = (
    "name",
    "description",
    "service_type",
    "client_price",
    "commission_percentage",
    "provider_fee",
    "duration_minutes",
    "is_active",
    "tags",
    "coverage_areas",
)

NON_NULL_SERVICE_FIELDS = ("name", "service_type", "client_price", "duration_minutes", "is_active")


@dataclass
class PayoutPreview:
    service_id: uuid.UUID
    service_name: str
    service_type: str
    client_price: Decimal
    commission_percentage: Optional[float]
    provider_payout: Decimal
    platform_commission: Decimal


def _validate_pricing(
    service_type: str,
    client_price,
    commission_percentage,
    provider_fee,
    duration_minutes,
) -> None:
    if service_type not in ServiceType.ALL:
        raise ValidationFailed(f"service_type must be one of: {', '.join(ServiceType.ALL)}")
    if to_decimal(client_price, "client_price") < 0:
        raise ValidationFailed("client_price cannot be negative")
    if duration_minutes is not None and duration_minutes <= 0:
        raise ValidationFailed("duration_minutes must be positive")

    if service_type == ServiceType.ONE_OFF:
        if commission_percentage is not None:
            pct = to_decimal(commission_percentage, "commission_percentage")
            if pct < 0 or pct > 100:
                raise ValidationFailed("commission_percentage must be between 0 and 100")
    else:
        if provider_fee is None:
            raise ValidationFailed("provider_fee is required for subscription services")
        if to_decimal(provider_fee, "provider_fee") < 0:
            raise ValidationFailed("provider_fee cannot be negative")


# === SERVICES ===

async def list_services(
    db: AsyncSession,
    active_only: bool = True,
    service_type: Optional[str] = None,
) -> list[Service]:
    query = select(Service)
    if active_only:
        query = query.where(Service.is_active == True)  # noqa: E712
    if service_type:
        query = query.where(Service.service_type == service_type)
    result = await db.execute(query.order_by(Service.name.asc()))
    return list(result.scalars().all())


async def get_service(db: AsyncSession, service_id: uuid.UUID) -> Service:
    service = await db.get(Service, service_id)
    if not service:
        raise NotFound("Service not found")
    return service


async def create_service(db: AsyncSession, data: dict) -> Service:
    """Add a catalog service. One-off services default to the configured commission."""
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationFailed("name is required")

    service_type = data.get("service_type") or ServiceType.ONE_OFF
    commission = data.get("commission_percentage")
    if service_type == ServiceType.ONE_OFF and commission is None:
        from longa.config import get_settings
        commission = get_settings().default_commission_percentage

    _validate_pricing(
        service_type,
        data.get("client_price"),
        commission,
        data.get("provider_fee"),
        data.get("duration_minutes"),
    )

    service = Service(
        name=name,
        description=data.get("description"),
        service_type=service_type,
        client_price=to_decimal(data["client_price"], "client_price"),
        commission_percentage=float(commission) if service_type == ServiceType.ONE_OFF else None,
        provider_fee=(
            to_decimal(data["provider_fee"], "provider_fee")
            if service_type == ServiceType.SUBSCRIPTION else None
        ),
        duration_minutes=data.get("duration_minutes") or 60,
        is_active=data.get("is_active", True),
        tags=list(data.get("tags") or []),
        coverage_areas=list(data.get("coverage_areas") or []),
    )
    db.add(service)
    await flush_or_fail(db, "Create service")
    await commit_or_fail(db, "Create service")
    logger.info("Service created: %s (%s)", name, service_type)
    return service


async def update_service(db: AsyncSession, service_id: uuid.UUID, changes: dict) -> Service:
    unknown = set(changes) - set(SERVICE_FIELDS)
    if unknown:
        raise ValidationFailed(f"Unknown service fields: {', '.join(sorted(unknown))}")
    cleared = sorted(f for f in NON_NULL_SERVICE_FIELDS if f in changes and changes[f] is None)
    if cleared:
        raise ValidationFailed(f"Fields cannot be cleared: {', '.join(cleared)}")

    service = await get_service(db, service_id)
    merged = {f: getattr(service, f) for f in SERVICE_FIELDS}
    merged.update(changes)
    if "name" in changes and not (changes["name"] or "").strip():
        raise ValidationFailed("name cannot be empty")
    _validate_pricing(
        merged["service_type"],
        merged["client_price"],
        merged["commission_percentage"],
        merged["provider_fee"],
        merged["duration_minutes"],
    )

    for key, value in changes.items():
        if key in ("client_price", "provider_fee") and value is not None:
            value = to_decimal(value, key)
        elif key == "commission_percentage" and value is not None:
            value = float(value)
        elif key in ("tags", "coverage_areas"):
            value = list(value or [])
        setattr(service, key, value)

    await commit_or_fail(db, "Update service")
    logger.info("Service updated: %s (%s)", service.name, ", ".join(sorted(changes)))
    return service


async def set_service_active(db: AsyncSession, service_id: uuid.UUID, is_active: bool) -> Service:
    service = await get_service(db, service_id)
    service.is_active = is_active
    await commit_or_fail(db, "Update service status")
    logger.info("Service %s %s", service.name, "activated" if is_active else "deactivated")
    return service


async def set_commission_percentage(
    db: AsyncSession,
    service_id: uuid.UUID,
    commission_percentage,
) -> Service:
    """Job payout configuration for one-off services."""
    pct = to_decimal(commission_percentage, "commission_percentage")
    if pct < 0 or pct > 100:
        raise ValidationFailed("commission_percentage must be between 0 and 100")
    service = await get_service(db, service_id)
    if service.service_type != ServiceType.ONE_OFF:
        raise ValidationFailed("Commission only applies to one-off services")
    service.commission_percentage = float(pct)
    await commit_or_fail(db, "Update commission")
    return service


def build_payout_preview(service: Service) -> PayoutPreview:
    client_price = to_decimal(service.client_price, "client_price")
    payout = provider_payout_preview(
        client_price,
        service.service_type,
        commission_percentage=service.commission_percentage,
        provider_fee=service.provider_fee,
    )
    return PayoutPreview(
        service_id=service.id,
        service_name=service.name,
        service_type=service.service_type,
        client_price=client_price,
        commission_percentage=service.commission_percentage,
        provider_payout=payout,
        platform_commission=client_price - payout,
    )


async def payout_configuration(db: AsyncSession) -> list[PayoutPreview]:
    """What a provider earns per job for every service at its listed price."""
    services = await list_services(db, active_only=False)
    return [build_payout_preview(s) for s in services]


# === PACKAGES ===

async def list_packages(db: AsyncSession, active_only: bool = True) -> list[SubscriptionPackage]:
    query = select(SubscriptionPackage)
    if active_only:
        query = query.where(SubscriptionPackage.is_active == True)  # noqa: E712
    result = await db.execute(query.order_by(SubscriptionPackage.name.asc()))
    return list(result.scalars().all())


async def get_package(db: AsyncSession, package_id: uuid.UUID) -> SubscriptionPackage:
    package = await db.get(SubscriptionPackage, package_id)
    if not package:
        raise NotFound("Package not found")
    return package


async def create_package(
    db: AsyncSession,
    name: str,
    price,
    inclusions: list[dict],
    description: Optional[str] = None,
) -> SubscriptionPackage:
    """
    Create a package with its inclusion lines.
    Each line: service_id, provider_fee_per_job, quantity_per_package (default 1).
    """
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("name is required")
    value = to_decimal(price, "price")
    if value < 0:
        raise ValidationFailed("price cannot be negative")
    if not inclusions:
        raise ValidationFailed("A package needs at least one service")

    lines = []
    seen = set()
    for line in inclusions:
        service_id = line.get("service_id")
        if service_id in seen:
            raise ValidationFailed("A service can only be included once per package")
        seen.add(service_id)
        fee = to_decimal(line.get("provider_fee_per_job"), "provider_fee_per_job")
        if fee < 0:
            raise ValidationFailed("provider_fee_per_job cannot be negative")
        quantity = line.get("quantity_per_package") or 1
        if quantity <= 0:
            raise ValidationFailed("quantity_per_package must be positive")
        if not await db.get(Service, service_id):
            raise NotFound(f"Service {service_id} not found")
        lines.append((service_id, quantity, fee))

    package = SubscriptionPackage(name=name, price=value, description=description, is_active=True)
    db.add(package)
    await flush_or_fail(db, "Create package")
    db.add_all([
        PackageServiceInclusion(
            package_id=package.id,
            service_id=service_id,
            quantity_per_package=quantity,
            provider_fee_per_job=fee,
        )
        for service_id, quantity, fee in lines
    ])
    await flush_or_fail(db, "Create package")
    await commit_or_fail(db, "Create package")
    logger.info("Package created: %s with %d service(s)", name, len(lines))
    return package


async def list_inclusions(db: AsyncSession, package_id: uuid.UUID) -> list[PackageServiceInclusion]:
    result = await db.execute(
        select(PackageServiceInclusion)
        .where(PackageServiceInclusion.package_id == package_id)
        .order_by(PackageServiceInclusion.created_at.asc())
    )
    return list(result.scalars().all())


async def set_inclusion_fee(
    db: AsyncSession,
    package_id: uuid.UUID,
    service_id: uuid.UUID,
    provider_fee_per_job,
) -> PackageServiceInclusion:
    fee = to_decimal(provider_fee_per_job, "provider_fee_per_job")
    if fee < 0:
        raise ValidationFailed("provider_fee_per_job cannot be negative")
    result = await db.execute(
        select(PackageServiceInclusion).where(
            and_(
                PackageServiceInclusion.package_id == package_id,
                PackageServiceInclusion.service_id == service_id,
            )
        )
    )
    inclusion = result.scalar_one_or_none()
    if not inclusion:
        raise NotFound("Service is not included in this package")
    inclusion.provider_fee_per_job = fee
    await commit_or_fail(db, "Update package fee")
    return inclusion


async def set_package_active(db: AsyncSession, package_id: uuid.UUID, is_active: bool) -> SubscriptionPackage:
    package = await get_package(db, package_id)
    package.is_active = is_active
    await commit_or_fail(db, "Update package status")
    return package
