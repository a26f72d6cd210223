"""
Tests for provider self-service: work location and availability,
and how both feed candidate lookup and auto-assignment.
"""
from datetime import datetime, timezone

import pytest
from fastapi import HTTPException

from longa.api.providers import change_availability, change_location, my_profile
from longa.models.booking import BookingStatus
from longa.schemas.api_requests import AvailabilityUpdate, WorkLocationUpdate
from longa.services.assignment import auto_assign_booking, fetch_candidates
from longa.services.errors import PermissionDenied, ValidationFailed
from longa.services.providers import set_availability, update_work_location
from tests.factories import make_booking, make_provider, make_service, make_user

LONG_AGO = datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestUpdateWorkLocation:
    async def test_sets_location_and_stamps_updated_at(self, db):
        provider = await make_provider(db, current_work_location="Rundu", updated_at=LONG_AGO)

        result = await update_work_location(db, provider, "  Oshakati ")

        assert result.current_work_location == "Oshakati"
        assert result.updated_at > LONG_AGO

    async def test_blank_location_rejected(self, db):
        provider = await make_provider(db, current_work_location="Rundu")
        with pytest.raises(ValidationFailed):
            await update_work_location(db, provider, "   ")
        assert provider.current_work_location == "Rundu"

    async def test_client_cannot_set_location(self, db):
        client = await make_user(db)
        with pytest.raises(PermissionDenied):
            await update_work_location(db, client, "Windhoek")

    async def test_new_location_used_by_auto_assign(self, db):
        client = await make_user(db)
        provider = await make_provider(db, current_work_location="Rundu", rating=4.2)
        service = await make_service(db)
        booking = await make_booking(db, service, client, location_town="Windhoek")

        assert await auto_assign_booking(db, booking) is None

        await update_work_location(db, provider, "Windhoek")
        chosen = await auto_assign_booking(db, booking)

        assert chosen.id == provider.id
        assert booking.status == BookingStatus.ACCEPTED


class TestSetAvailability:
    async def test_toggle_stamps_updated_at(self, db):
        provider = await make_provider(db, updated_at=LONG_AGO)

        result = await set_availability(db, provider, False)

        assert result.is_available is False
        assert result.updated_at > LONG_AGO

    async def test_unavailable_provider_leaves_candidate_list(self, db):
        client = await make_user(db)
        provider = await make_provider(db, full_name="Anna")
        service = await make_service(db)
        booking = await make_booking(db, service, client)

        before = await fetch_candidates(db, booking.id, availability="available")
        assert [p.id for p in before] == [provider.id]

        await set_availability(db, provider, False)

        assert await fetch_candidates(db, booking.id, availability="available") == []
        unavailable = await fetch_candidates(db, booking.id, availability="unavailable")
        assert [p.id for p in unavailable] == [provider.id]

    async def test_unavailable_provider_not_auto_assigned(self, db):
        client = await make_user(db)
        provider = await make_provider(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client, location_town="Windhoek")

        await set_availability(db, provider, False)

        assert await auto_assign_booking(db, booking) is None
        assert booking.provider_id is None


class TestProviderEndpoints:
    async def test_profile(self, db):
        provider = await make_provider(db, full_name="Maria", verification_status="verified")
        result = await my_profile(provider=provider)
        assert result.full_name == "Maria"
        assert result.verification_status == "verified"
        assert result.current_work_location == "Windhoek"

    async def test_change_location(self, db):
        provider = await make_provider(db)
        result = await change_location(
            payload=WorkLocationUpdate(location="Walvis Bay"), db=db, provider=provider,
        )
        assert result.current_work_location == "Walvis Bay"

    async def test_change_location_blank_is_400(self, db):
        provider = await make_provider(db)
        with pytest.raises(HTTPException) as exc:
            await change_location(payload=WorkLocationUpdate(location=" "), db=db, provider=provider)
        assert exc.value.status_code == 400

    async def test_change_availability(self, db):
        provider = await make_provider(db)
        result = await change_availability(
            payload=AvailabilityUpdate(is_available=False), db=db, provider=provider,
        )
        assert result.is_available is False
