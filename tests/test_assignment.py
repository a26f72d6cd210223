"""
Tests for longa/services/assignment.py - candidate ranking, reassignment, auto-assignment.
"""
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import func, select

from longa.models.booking import BookingStatus
from longa.models.booking_assignment import BookingAssignment
from longa.services.assignment import (
    auto_assign_booking,
    fetch_candidates,
    filter_candidates,
    find_unassigned_bookings,
    list_assignment_history,
    rank_for_auto_assign,
    reassign_booking,
)
from longa.services.errors import InvalidTransition, NotFound, ValidationFailed
from longa.utils.alerting import AlertType
from tests.factories import (
    make_admin,
    make_booking,
    make_provider,
    make_service,
    make_user,
)


def _provider(name, rating=None, phone=None, location="Windhoek", available=True, total_jobs=0):
    """Create a mock provider User."""
    p = MagicMock()
    p.id = uuid.uuid4()
    p.full_name = name
    p.phone = phone
    p.rating = rating
    p.current_work_location = location
    p.is_available = available
    p.total_jobs = total_jobs
    return p


async def _audit_count(db, booking_id):
    result = await db.execute(
        select(func.count(BookingAssignment.id)).where(BookingAssignment.booking_id == booking_id)
    )
    return result.scalar()


# ---------------------------------------------------------------------------
# filter_candidates
# ---------------------------------------------------------------------------

class TestFilterCandidates:
    def test_current_provider_excluded(self):
        p1 = _provider("Anna", rating=4.9)
        p2 = _provider("Ben", rating=4.1)
        p3 = _provider("Cleo", rating=3.0)

        result = filter_candidates([p1, p2, p3], current_provider_id=p1.id)

        assert result == [p2, p3]

    def test_sorted_by_rating_desc(self):
        low = _provider("Low", rating=2.0)
        high = _provider("High", rating=5.0)
        mid = _provider("Mid", rating=3.5)
        assert filter_candidates([low, high, mid]) == [high, mid, low]

    def test_missing_rating_sorts_as_zero(self):
        unrated = _provider("New", rating=None)
        rated = _provider("Old", rating=1.0)
        assert filter_candidates([unrated, rated]) == [rated, unrated]

    def test_ties_keep_incoming_order(self):
        a = _provider("A", rating=4.0)
        b = _provider("B", rating=4.0)
        c = _provider("C", rating=4.0)
        assert filter_candidates([b, c, a]) == [b, c, a]

    def test_search_matches_name_case_insensitive(self):
        maria = _provider("Maria Nangolo")
        john = _provider("John Doe")
        assert filter_candidates([maria, john], search="  MARIA ") == [maria]

    def test_search_matches_phone(self):
        p = _provider("Peter", phone="+264811234567")
        q = _provider("Quinn", phone="+264819999999")
        assert filter_candidates([p, q], search="1234") == [p]

    def test_location_is_exact(self):
        wdh = _provider("W", location="Windhoek")
        wdh_north = _provider("WN", location="Windhoek North")
        assert filter_candidates([wdh, wdh_north], location="Windhoek") == [wdh]

    def test_location_all_is_no_filter(self):
        wdh = _provider("W", rating=4.0, location="Windhoek")
        swk = _provider("S", rating=4.5, location="Swakopmund")
        assert filter_candidates([wdh, swk], location="all") == [swk, wdh]

    def test_availability_filters(self):
        on = _provider("On", available=True)
        off = _provider("Off", available=False)
        assert filter_candidates([on, off], availability="available") == [on]
        assert filter_candidates([on, off], availability="unavailable") == [off]
        assert filter_candidates([on, off], availability="all") == [on, off]

    def test_bad_availability(self):
        with pytest.raises(ValidationFailed):
            filter_candidates([], availability="busy")


class TestRankForAutoAssign:
    def test_local_available_only(self):
        local = _provider("Local", rating=3.0)
        away = _provider("Away", rating=5.0, location="Rundu")
        busy = _provider("Busy", rating=5.0, available=False)
        assert rank_for_auto_assign([local, away, busy], "Windhoek") == [local]

    def test_experience_breaks_rating_tie(self):
        junior = _provider("Junior", rating=4.5, total_jobs=3)
        senior = _provider("Senior", rating=4.5, total_jobs=40)
        assert rank_for_auto_assign([junior, senior], "Windhoek") == [senior, junior]

    def test_no_town_no_candidates(self):
        assert rank_for_auto_assign([_provider("X")], None) == []


# ---------------------------------------------------------------------------
# fetch_candidates
# ---------------------------------------------------------------------------

class TestFetchCandidates:
    async def test_pool_is_active_providers_without_current(self, db):
        client = await make_user(db)
        current = await make_provider(db, full_name="Current", rating=5.0)
        other = await make_provider(db, full_name="Other", rating=4.0)
        await make_provider(db, full_name="Retired", rating=4.8, is_active=False)
        service = await make_service(db)
        booking = await make_booking(db, service, client, provider=current, status=BookingStatus.ACCEPTED)

        result = await fetch_candidates(db, booking.id)

        assert [p.id for p in result] == [other.id]

    async def test_unknown_booking(self, db):
        with pytest.raises(NotFound):
            await fetch_candidates(db, uuid.uuid4())


# ---------------------------------------------------------------------------
# reassign_booking
# ---------------------------------------------------------------------------

class TestReassignBooking:
    async def test_missing_provider_rejected_before_any_query(self):
        db = AsyncMock()
        admin = MagicMock()
        with pytest.raises(ValidationFailed, match="Select a provider"):
            await reassign_booking(db, uuid.uuid4(), None, "reason", admin)
        db.get.assert_not_awaited()
        db.flush.assert_not_awaited()

    async def test_missing_reason(self, db):
        client = await make_user(db)
        admin = await make_admin(db)
        provider = await make_provider(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client)

        with pytest.raises(ValidationFailed, match="reason"):
            await reassign_booking(db, booking.id, provider.id, "   ", admin)
        assert booking.provider_id is None
        assert await _audit_count(db, booking.id) == 0

    async def test_pending_becomes_accepted(self, db):
        client = await make_user(db)
        admin = await make_admin(db)
        provider = await make_provider(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client)

        result = await reassign_booking(db, booking.id, provider.id, "Emergency cover", admin)

        assert result.audit_logged is True
        assert result.booking.status == BookingStatus.ACCEPTED
        assert result.booking.provider_id == provider.id
        assert result.booking.assigned_at is not None

        history = await list_assignment_history(db, booking.id)
        assert len(history) == 1
        assert history[0].provider_id == provider.id
        assert history[0].assigned_by == admin.id
        assert history[0].assignment_reason == "Emergency cover"
        assert history[0].auto_assigned is False

    async def test_in_progress_keeps_status(self, db):
        client = await make_user(db)
        admin = await make_admin(db)
        old = await make_provider(db)
        new = await make_provider(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client, provider=old, status=BookingStatus.IN_PROGRESS)

        result = await reassign_booking(db, booking.id, new.id, "Provider fell ill", admin)

        assert result.booking.status == BookingStatus.IN_PROGRESS
        entry = result.booking.modification_history[-1]
        assert entry["action"] == "reassign"
        assert entry["previous_provider_id"] == str(old.id)
        assert entry["new_provider_id"] == str(new.id)

    async def test_same_provider_rejected(self, db):
        client = await make_user(db)
        admin = await make_admin(db)
        provider = await make_provider(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client, provider=provider, status=BookingStatus.ACCEPTED)
        with pytest.raises(ValidationFailed, match="already assigned"):
            await reassign_booking(db, booking.id, provider.id, "swap", admin)

    async def test_client_is_not_a_candidate(self, db):
        client = await make_user(db)
        admin = await make_admin(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client)
        with pytest.raises(ValidationFailed, match="not an active provider"):
            await reassign_booking(db, booking.id, client.id, "swap", admin)

    async def test_terminal_booking_rejected(self, db):
        client = await make_user(db)
        admin = await make_admin(db)
        provider = await make_provider(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client, status=BookingStatus.CANCELLED)
        with pytest.raises(InvalidTransition):
            await reassign_booking(db, booking.id, provider.id, "swap", admin)

    async def test_audit_failure_keeps_reassignment(self, db, mock_alert):
        client = await make_user(db)
        admin = await make_admin(db)
        provider = await make_provider(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client)

        def broken_log(booking_id, provider_id, reason, assigned_by, auto_assigned=False):
            # provider_id is NOT NULL - the insert fails inside the savepoint
            return BookingAssignment(booking_id=booking_id, provider_id=None, assigned_by=assigned_by)

        with patch("longa.services.assignment.build_assignment_log", side_effect=broken_log):
            result = await reassign_booking(db, booking.id, provider.id, "Cover shift", admin)

        assert result.audit_logged is False
        assert result.booking.provider_id == provider.id
        assert result.booking.status == BookingStatus.ACCEPTED
        assert await _audit_count(db, booking.id) == 0
        alert_types = [c.args[0] for c in mock_alert.call_args_list]
        assert AlertType.SECONDARY_WRITE_FAILED in alert_types


# ---------------------------------------------------------------------------
# Auto-assignment
# ---------------------------------------------------------------------------

class TestAutoAssign:
    async def test_picks_best_local_provider(self, db):
        client = await make_user(db)
        await make_provider(db, full_name="Good", rating=4.0)
        best = await make_provider(db, full_name="Best", rating=4.9)
        await make_provider(db, full_name="Elsewhere", rating=5.0, current_work_location="Rundu")
        service = await make_service(db)
        booking = await make_booking(db, service, client, location_town="Windhoek")

        chosen = await auto_assign_booking(db, booking)

        assert chosen.id == best.id
        assert booking.status == BookingStatus.ACCEPTED
        assert booking.provider_id == best.id
        history = await list_assignment_history(db, booking.id)
        assert history[0].auto_assigned is True
        assert history[0].assigned_by is None
        assert booking.modification_history[-1]["actor_id"] is None

    async def test_no_local_provider(self, db):
        client = await make_user(db)
        await make_provider(db, current_work_location="Rundu")
        service = await make_service(db)
        booking = await make_booking(db, service, client, location_town="Katima Mulilo")

        assert await auto_assign_booking(db, booking) is None
        assert booking.status == BookingStatus.PENDING
        assert booking.provider_id is None

    async def test_already_assigned_is_skipped(self, db):
        client = await make_user(db)
        provider = await make_provider(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client, provider=provider, status=BookingStatus.ACCEPTED)
        assert await auto_assign_booking(db, booking) is None

    async def test_find_unassigned_respects_age_and_status(self, db):
        client = await make_user(db)
        provider = await make_provider(db)
        service = await make_service(db)
        old = datetime.now(timezone.utc) - timedelta(hours=2)
        stale = await make_booking(db, service, client, created_at=old)
        await make_booking(db, service, client)  # too recent
        await make_booking(
            db, service, client, provider=provider, status=BookingStatus.ACCEPTED, created_at=old,
        )
        urgent = await make_booking(db, service, client, created_at=old, emergency_booking=True)

        result = await find_unassigned_bookings(db, older_than_minutes=30)

        assert [b.id for b in result] == [urgent.id, stale.id]
