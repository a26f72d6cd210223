"""
Payout derivation tests - commission split, fixed fees, model selection.
"""
from decimal import Decimal

import pytest

from longa.services.commission import (
    derive_commission,
    derive_fixed_fee,
    derive_job_payout,
    provider_payout_preview,
    to_decimal,
)
from longa.services.errors import ValidationFailed


class TestDeriveCommission:
    def test_fifteen_percent_of_thousand(self):
        split = derive_commission(1000, 15)
        assert split.commission == Decimal("150")
        assert split.provider_earnings == Decimal("850")
        assert split.commission_percentage == Decimal("15")
        assert not split.is_fixed_fee

    def test_default_percentage_is_fifteen(self):
        split = derive_commission(Decimal("1000"))
        assert split.commission == Decimal("150")
        assert split.commission_percentage == Decimal("15")

    def test_half_unit_rounds_up(self):
        """10% of 125 is 12.5, which rounds to 13."""
        split = derive_commission(125, 10)
        assert split.commission == Decimal("13")
        assert split.provider_earnings == Decimal("112")

    def test_commission_plus_earnings_equals_total(self):
        for total in ("0", "1", "333.33", "999.99", "12345.67"):
            split = derive_commission(total, "17.5")
            assert split.commission + split.provider_earnings == Decimal(total)

    def test_zero_and_hundred_percent(self):
        assert derive_commission(800, 0).provider_earnings == Decimal("800")
        assert derive_commission(800, 100).provider_earnings == Decimal("0")

    def test_percentage_out_of_range_rejected(self):
        with pytest.raises(ValidationFailed):
            derive_commission(1000, 101)
        with pytest.raises(ValidationFailed):
            derive_commission(1000, -1)

    def test_negative_total_rejected(self):
        with pytest.raises(ValidationFailed):
            derive_commission(-5, 15)

    def test_float_input_has_no_binary_artefacts(self):
        split = derive_commission(0.1 + 0.2, 0)
        assert split.total_amount == Decimal("0.30000000000000004")
        assert derive_commission(19.99, 15).total_amount == Decimal("19.99")


class TestToDecimal:
    def test_rejects_missing_and_bool(self):
        with pytest.raises(ValidationFailed):
            to_decimal(None)
        with pytest.raises(ValidationFailed):
            to_decimal(True)

    def test_rejects_garbage(self):
        with pytest.raises(ValidationFailed, match="must be a number"):
            to_decimal("ten", "price")

    def test_rejects_infinity(self):
        with pytest.raises(ValidationFailed):
            to_decimal("Infinity")


class TestFixedFee:
    def test_provider_gets_fee(self):
        split = derive_fixed_fee(600, 400)
        assert split.provider_earnings == Decimal("400")
        assert split.commission == Decimal("200")
        assert split.is_fixed_fee

    def test_negative_fee_rejected(self):
        with pytest.raises(ValidationFailed):
            derive_fixed_fee(600, -1)


class TestDeriveJobPayout:
    def test_inclusion_fee_wins(self):
        split = derive_job_payout(
            600, "subscription", commission_percentage=15,
            provider_fee=300, provider_fee_per_job=350,
        )
        assert split.provider_earnings == Decimal("350")

    def test_subscription_uses_service_fee(self):
        split = derive_job_payout(600, "subscription", provider_fee=300)
        assert split.provider_earnings == Decimal("300")

    def test_subscription_without_fee_falls_back_to_commission(self):
        split = derive_job_payout(600, "subscription", commission_percentage=10)
        assert split.commission == Decimal("60")

    def test_one_off_ignores_service_fee(self):
        split = derive_job_payout(1000, "one-off", commission_percentage=15, provider_fee=999)
        assert split.provider_earnings == Decimal("850")

    def test_preview(self):
        assert provider_payout_preview(1000, "one-off", 20) == Decimal("800")
        assert provider_payout_preview(1000, "subscription", provider_fee=450) == Decimal("450")
