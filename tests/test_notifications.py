"""
Tests for longa/services/notifications.py - booking event messages and read state.
"""
import uuid
from datetime import date

import pytest

from longa.models.booking import BookingStatus
from longa.services.errors import NotFound
from longa.services.notifications import (
    build_booking_notifications,
    list_notifications,
    mark_all_read,
    mark_read,
)
from longa.services.store import add_secondary
from tests.factories import make_booking, make_provider, make_service, make_user


class TestBuildNotifications:
    async def test_client_and_provider(self, db):
        client = await make_user(db)
        provider = await make_provider(db)
        service = await make_service(db)
        booking = await make_booking(
            db, service, client, provider=provider, status=BookingStatus.ACCEPTED,
            booking_date=date(2026, 11, 5),
        )

        rows = build_booking_notifications(booking, "accept")

        assert [r.user_id for r in rows] == [client.id, provider.id]
        assert rows[0].message == "A provider has accepted your booking for 05 Nov 2026."
        assert all(r.booking_id == booking.id for r in rows)

    async def test_begin_only_tells_client(self, db):
        client = await make_user(db)
        provider = await make_provider(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client, provider=provider, status=BookingStatus.IN_PROGRESS)

        rows = build_booking_notifications(booking, "begin")

        assert [r.user_id for r in rows] == [client.id]
        assert rows[0].type == "booking_started"

    async def test_explicit_provider_after_release(self, db):
        client = await make_user(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client, status=BookingStatus.CANCELLED)
        released = uuid.uuid4()

        rows = build_booking_notifications(booking, "mark_provider_no_show", provider_id=released)

        assert rows[1].user_id == released
        assert rows[1].type == "booking_cancelled"

    async def test_unknown_event(self, db):
        client = await make_user(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client)
        assert build_booking_notifications(booking, "teleport") == []


class TestReadState:
    async def _seed(self, db, count=3):
        client = await make_user(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client)
        for _ in range(count):
            await add_secondary(db, build_booking_notifications(booking, "cancel_with_refund"), "seed")
        await db.commit()
        return client

    async def test_list_and_unread_count(self, db):
        client = await self._seed(db)

        notifications, unread = await list_notifications(db, client.id)

        assert len(notifications) == 3
        assert unread == 3

    async def test_mark_one_read(self, db):
        client = await self._seed(db)
        notifications, _ = await list_notifications(db, client.id)

        result = await mark_read(db, client.id, notifications[0].id)

        assert result.is_read is True
        assert result.read_at is not None
        _, unread = await list_notifications(db, client.id)
        assert unread == 2
        unread_only, _ = await list_notifications(db, client.id, unread_only=True)
        assert len(unread_only) == 2

    async def test_cannot_read_someone_elses(self, db):
        client = await self._seed(db, count=1)
        stranger = await make_user(db)
        notifications, _ = await list_notifications(db, client.id)
        with pytest.raises(NotFound):
            await mark_read(db, stranger.id, notifications[0].id)

    async def test_mark_all_read(self, db):
        client = await self._seed(db)
        assert await mark_all_read(db, client.id) == 3
        _, unread = await list_notifications(db, client.id)
        assert unread == 0
