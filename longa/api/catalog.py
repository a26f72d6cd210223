"""
Catalog endpoints - public service and package listings, admin maintenance
and the job payout configuration view.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from longa.api.auth import get_current_admin
from longa.api.helpers import http_error, parse_uuid, service_response
from longa.database import get_db
from longa.models.package import PackageServiceInclusion, SubscriptionPackage
from longa.models.user import User
from longa.schemas.api_requests import (
    CommissionUpdateRequest,
    PackageCreateRequest,
    ServiceCreateRequest,
    ServiceUpdateRequest,
)
from longa.schemas.api_responses import (
    InclusionResponse,
    PackageResponse,
    PayoutPreviewResponse,
    ServiceResponse,
)
from longa.services import catalog
from longa.services.errors import LongaError

logger = logging.getLogger(__name__)
router = APIRouter(tags=["catalog"])


def _package_response(
    package: SubscriptionPackage,
    inclusions: list[PackageServiceInclusion],
) -> PackageResponse:
    return PackageResponse(
        id=str(package.id),
        name=package.name,
        description=package.description,
        price=float(package.price),
        is_active=bool(package.is_active),
        inclusions=[
            InclusionResponse(
                service_id=str(line.service_id),
                quantity_per_package=line.quantity_per_package or 1,
                provider_fee_per_job=float(line.provider_fee_per_job),
            )
            for line in inclusions
        ],
    )


@router.get("/api/v1/services", response_model=list[ServiceResponse])
async def list_active_services(
    service_type: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    services = await catalog.list_services(db, active_only=True, service_type=service_type)
    return [service_response(s) for s in services]


@router.get("/api/v1/packages", response_model=list[PackageResponse])
async def list_active_packages(db: AsyncSession = Depends(get_db)):
    packages = await catalog.list_packages(db, active_only=True)
    return [_package_response(p, await catalog.list_inclusions(db, p.id)) for p in packages]


# === ADMIN ===

@router.get("/api/v1/admin/services", response_model=list[ServiceResponse])
async def list_all_services(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    services = await catalog.list_services(db, active_only=False)
    return [service_response(s) for s in services]


@router.post("/api/v1/admin/services", response_model=ServiceResponse, status_code=201)
async def create_service(
    payload: ServiceCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    try:
        service = await catalog.create_service(db, payload.model_dump())
    except LongaError as e:
        raise http_error(e)
    return service_response(service)


@router.put("/api/v1/admin/services/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: str,
    payload: ServiceUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    try:
        service = await catalog.update_service(
            db, parse_uuid(service_id, "service ID"), payload.model_dump(exclude_unset=True),
        )
    except LongaError as e:
        raise http_error(e)
    return service_response(service)


@router.post("/api/v1/admin/services/{service_id}/activate", response_model=ServiceResponse)
async def activate_service(
    service_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    try:
        service = await catalog.set_service_active(db, parse_uuid(service_id, "service ID"), True)
    except LongaError as e:
        raise http_error(e)
    return service_response(service)


@router.post("/api/v1/admin/services/{service_id}/deactivate", response_model=ServiceResponse)
async def deactivate_service(
    service_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    try:
        service = await catalog.set_service_active(db, parse_uuid(service_id, "service ID"), False)
    except LongaError as e:
        raise http_error(e)
    return service_response(service)


@router.get("/api/v1/admin/payout-configuration", response_model=list[PayoutPreviewResponse])
async def payout_configuration(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """Client price vs provider payout for every service."""
    previews = await catalog.payout_configuration(db)
    return [
        PayoutPreviewResponse(
            service_id=str(p.service_id),
            service_name=p.service_name,
            service_type=p.service_type,
            client_price=float(p.client_price),
            commission_percentage=p.commission_percentage,
            provider_payout=float(p.provider_payout),
            platform_commission=float(p.platform_commission),
        )
        for p in previews
    ]


@router.put("/api/v1/admin/services/{service_id}/commission", response_model=ServiceResponse)
async def update_commission(
    service_id: str,
    payload: CommissionUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    try:
        service = await catalog.set_commission_percentage(
            db, parse_uuid(service_id, "service ID"), payload.commission_percentage,
        )
    except LongaError as e:
        raise http_error(e)
    return service_response(service)


@router.post("/api/v1/admin/packages", response_model=PackageResponse, status_code=201)
async def create_package(
    payload: PackageCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    try:
        package = await catalog.create_package(
            db,
            name=payload.name,
            price=payload.price,
            description=payload.description,
            inclusions=[line.model_dump() for line in payload.inclusions],
        )
    except LongaError as e:
        raise http_error(e)
    return _package_response(package, await catalog.list_inclusions(db, package.id))


@router.post("/api/v1/admin/packages/{package_id}/deactivate", response_model=PackageResponse)
async def deactivate_package(
    package_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    package_uuid = parse_uuid(package_id, "package ID")
    try:
        package = await catalog.set_package_active(db, package_uuid, False)
    except LongaError as e:
        raise http_error(e)
    return _package_response(package, await catalog.list_inclusions(db, package_uuid))
