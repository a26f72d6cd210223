"""
Tests for longa/services/payout_export.py - CSV layout, date window, marking.
"""
import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from longa.models.booking import BookingStatus
from longa.models.payout import PayoutStatus, PayoutType
from longa.models.service import ServiceType
from longa.services.errors import StoreWriteFailed, ValidationFailed
from longa.services.payout_export import (
    EXPORT_HEADER,
    ExportRow,
    build_export_row,
    export_filename,
    export_payouts,
    fetch_export_rows,
    list_exports,
    render_csv,
)
from longa.utils.alerting import AlertType
from tests.factories import (
    make_booking,
    make_payout,
    make_provider,
    make_service,
    make_user,
)

HEADER_LINE = (
    "Provider Name,Bank/Mobile Number,Service Type,Job ID,Service Name,"
    "Job Date,Payout Amount,Payment Type/Notes"
)

MARCH_START = date(2026, 3, 1)
MARCH_END = date(2026, 3, 31)


def _row(**overrides):
    values = dict(
        payout_id=uuid.uuid4(),
        provider_name="Maria Shikongo",
        bank_mobile_number="0811234567",
        service_type="One-Off",
        job_id="b-1",
        service_name="Deep Clean",
        job_date="2026-03-10",
        amount=Decimal("850.00"),
        notes="Commission: 15%",
    )
    values.update(overrides)
    return ExportRow(**values)


def _payout(**attrs):
    """Create a mock Payout object."""
    payout = MagicMock()
    payout.id = uuid.uuid4()
    payout.payout_type = PayoutType.JOB
    payout.payee_name = "Maria Shikongo"
    payout.bank_mobile_number = "0811234567"
    payout.booking_id = uuid.uuid4()
    payout.commission_percentage = 15.0
    payout.amount = Decimal("850.00")
    payout.reason = None
    payout.notes = None
    payout.scheduled_date = date(2026, 3, 12)
    for key, value in attrs.items():
        setattr(payout, key, value)
    return payout


# ---------------------------------------------------------------------------
# Pure formatting
# ---------------------------------------------------------------------------

class TestRenderCsv:
    def test_header_is_unquoted(self):
        content = render_csv([])
        assert content == HEADER_LINE + "\n"
        assert EXPORT_HEADER[0] == "Provider Name"

    def test_strings_quoted_amount_bare(self):
        content = render_csv([_row()])
        line = content.splitlines()[1]
        assert line == (
            '"Maria Shikongo","0811234567","One-Off","b-1","Deep Clean",'
            '"2026-03-10",850,"Commission: 15%"'
        )

    def test_fractional_amount(self):
        line = render_csv([_row(amount=Decimal("99.50"))]).splitlines()[1]
        assert ",99.5," in line

    def test_embedded_quotes_escaped(self):
        line = render_csv([_row(provider_name='Anna "AJ" Jacobs')]).splitlines()[1]
        assert line.startswith('"Anna ""AJ"" Jacobs",')

    def test_filename(self):
        assert export_filename(date(2026, 3, 9)) == "longa-payouts-20260309.csv"


class TestBuildExportRow:
    def test_one_off(self):
        payout = _payout()
        booking = MagicMock(booking_date=date(2026, 3, 10))
        service = MagicMock()
        service.name = "Deep Clean"

        row = build_export_row(payout, booking, service, None)

        assert row.service_type == "One-Off"
        assert row.notes == "Commission: 15%"
        assert row.job_id == str(payout.booking_id)
        assert row.job_date == "2026-03-10"
        assert row.service_name == "Deep Clean"

    def test_fractional_commission_percentage(self):
        row = build_export_row(_payout(commission_percentage=12.5), None, None, None)
        assert row.notes == "Commission: 12.5%"

    def test_package(self):
        row = build_export_row(_payout(commission_percentage=None), None, None, None)
        assert row.service_type == "Package"
        assert row.notes == "Fixed Package Fee"

    def test_manual(self):
        payout = _payout(
            payout_type=PayoutType.MANUAL, booking_id=None, commission_percentage=None,
            reason="Referral Credit", notes="Brought in 3 clients", bank_mobile_number=None,
        )
        row = build_export_row(payout, None, None, None)
        assert row.service_type == "Manual"
        assert row.job_id == "N/A"
        assert row.service_name == "Referral Credit"
        assert row.notes == "Referral Credit: Brought in 3 clients"
        assert row.job_date == "2026-03-12"
        assert row.bank_mobile_number == "Not provided"

    def test_bank_number_falls_back_to_provider(self):
        provider = MagicMock(bank_mobile_number="0819998888")
        row = build_export_row(_payout(bank_mobile_number=None), None, None, provider)
        assert row.bank_mobile_number == "0819998888"


# ---------------------------------------------------------------------------
# Database-backed export
# ---------------------------------------------------------------------------

async def _job_payout(db, scheduled, status=PayoutStatus.PENDING, amount=Decimal("850.00")):
    client = await make_user(db)
    provider = await make_provider(db)
    service = await make_service(db)
    booking = await make_booking(db, service, client, provider=provider, status=BookingStatus.COMPLETED)
    return await make_payout(
        db, provider=provider, booking=booking, scheduled_date=scheduled, status=status, amount=amount,
    )


class TestFetchExportRows:
    async def test_window_and_status(self, db):
        inside = await _job_payout(db, date(2026, 3, 10))
        edge = await _job_payout(db, MARCH_END)
        await _job_payout(db, date(2026, 4, 1))
        await _job_payout(db, date(2026, 3, 15), status=PayoutStatus.PROCESSED)

        rows = await fetch_export_rows(db, MARCH_START, MARCH_END)

        assert [r.payout_id for r in rows] == [inside.id, edge.id]
        assert rows[0].service_name == "Deep Clean"

    async def test_manual_payout_included(self, db):
        manual = await make_payout(
            db, payout_type=PayoutType.MANUAL, reason="Marketing Bonus",
            commission_percentage=None, scheduled_date=date(2026, 3, 3),
        )
        rows = await fetch_export_rows(db, MARCH_START, MARCH_END)
        assert rows[0].payout_id == manual.id
        assert rows[0].service_type == "Manual"
        assert rows[0].job_id == "N/A"

    async def test_inverted_window(self, db):
        with pytest.raises(ValidationFailed):
            await fetch_export_rows(db, MARCH_END, MARCH_START)

    async def test_unknown_status(self, db):
        with pytest.raises(ValidationFailed):
            await fetch_export_rows(db, MARCH_START, MARCH_END, status="paid")


class TestExportPayouts:
    async def test_export_without_marking(self, db):
        payout = await _job_payout(db, date(2026, 3, 10))

        result = await export_payouts(db, MARCH_START, MARCH_END)

        assert result.record_count == 1
        assert result.total_amount == Decimal("850.00")
        assert result.marked_processed is False
        assert result.content.startswith(HEADER_LINE + "\n")
        assert payout.status == PayoutStatus.PENDING

    async def test_marking_touches_only_exported_rows(self, db):
        first = await _job_payout(db, date(2026, 3, 10))
        second = await _job_payout(db, date(2026, 3, 20), amount=Decimal("400.50"))
        outside = await _job_payout(db, date(2026, 4, 2))

        result = await export_payouts(db, MARCH_START, MARCH_END, mark_processed=True)

        assert result.marked_processed is True
        assert result.marking_error is None
        assert result.total_amount == Decimal("1250.50")
        assert first.status == PayoutStatus.PROCESSED
        assert second.status == PayoutStatus.PROCESSED
        assert outside.status == PayoutStatus.PENDING

        # A second export over the same window finds nothing pending
        again = await export_payouts(db, MARCH_START, MARCH_END)
        assert again.record_count == 0

    async def test_marking_failure_is_reported(self, db, mock_alert):
        payout = await _job_payout(db, date(2026, 3, 10))

        with patch(
            "longa.services.payout_export.mark_payouts_processed",
            new_callable=AsyncMock,
            side_effect=StoreWriteFailed("Mark payouts processed failed: database locked"),
        ):
            result = await export_payouts(db, MARCH_START, MARCH_END, mark_processed=True)

        assert result.record_count == 1
        assert result.marked_processed is False
        assert "database locked" in result.marking_error
        assert payout.status == PayoutStatus.PENDING
        mock_alert.assert_called_once()
        assert mock_alert.call_args[0][0] == AlertType.PAYOUT_MARKING_FAILED

    async def test_history_recorded(self, db):
        await _job_payout(db, date(2026, 3, 10))
        exporter = await make_user(db)

        result = await export_payouts(
            db, MARCH_START, MARCH_END, mark_processed=True, exported_by=exporter.id,
        )

        history = await list_exports(db)
        assert len(history) == 1
        assert history[0].filename == result.filename
        assert history[0].record_count == 1
        assert history[0].marked_processed is True
        assert history[0].exported_by == exporter.id
        assert history[0].status_filter == "pending"

    async def test_package_payout_row(self, db):
        client = await make_user(db)
        provider = await make_provider(db)
        service = await make_service(db, name="Weekly Tidy", service_type=ServiceType.SUBSCRIPTION)
        booking = await make_booking(db, service, client, provider=provider, status=BookingStatus.COMPLETED)
        await make_payout(
            db, provider=provider, booking=booking, commission_percentage=None,
            amount=Decimal("300.00"), scheduled_date=date(2026, 3, 8),
        )

        result = await export_payouts(db, MARCH_START, MARCH_END)

        line = result.content.splitlines()[1]
        assert '"Package"' in line
        assert '"Weekly Tidy"' in line
        assert ",300," in line
        assert line.endswith('"Fixed Package Fee"')
