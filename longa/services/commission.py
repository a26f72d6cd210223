"""
Payout derivation - splits a booking amount into platform commission and provider earnings.

Two mutually exclusive models, selected by service type:
- one-off services: commission = round(total * pct / 100), provider keeps the rest
- package / subscription services: provider gets a fixed fee per job

Pure functions, no I/O. Commission is rounded to the nearest whole currency
unit with halves rounded up, so commission + provider_earnings == total always.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from longa.services.errors import ValidationFailed

DEFAULT_COMMISSION_PERCENTAGE = Decimal("15")

Amount = Union[Decimal, int, float, str]

_WHOLE_UNIT = Decimal("1")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PayoutSplit:
    total_amount: Decimal
    commission: Decimal
    provider_earnings: Decimal
    commission_percentage: Optional[Decimal] = None  # None for fixed-fee payouts

    @property
    def is_fixed_fee(self) -> bool:
        return self.commission_percentage is None


def to_decimal(value: Amount, field: str = "amount") -> Decimal:
    """Convert a numeric input to Decimal via its string form (no float artefacts)."""
    if value is None or isinstance(value, bool):
        raise ValidationFailed(f"{field} is required")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationFailed(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationFailed(f"{field} must be a finite number")
    return result


def derive_commission(
    total_amount: Amount,
    commission_percentage: Optional[Amount] = None,
) -> PayoutSplit:
    """Split a one-off booking amount. Percentage defaults to 15 when unspecified."""
    amount = to_decimal(total_amount, "total_amount")
    if commission_percentage is None:
        pct = DEFAULT_COMMISSION_PERCENTAGE
    else:
        pct = to_decimal(commission_percentage, "commission_percentage")

    if amount < 0:
        raise ValidationFailed("total_amount cannot be negative")
    if pct < 0 or pct > _HUNDRED:
        raise ValidationFailed("commission_percentage must be between 0 and 100")

    commission = (amount * pct / _HUNDRED).quantize(_WHOLE_UNIT, rounding=ROUND_HALF_UP)
    return PayoutSplit(
        total_amount=amount,
        commission=commission,
        provider_earnings=amount - commission,
        commission_percentage=pct,
    )


def derive_fixed_fee(total_amount: Amount, provider_fee: Amount) -> PayoutSplit:
    """Split a package/subscription job: the provider gets the configured fee per job."""
    amount = to_decimal(total_amount, "total_amount")
    fee = to_decimal(provider_fee, "provider_fee")
    if fee < 0:
        raise ValidationFailed("provider_fee cannot be negative")
    return PayoutSplit(
        total_amount=amount,
        commission=amount - fee,
        provider_earnings=fee,
        commission_percentage=None,
    )


def derive_job_payout(
    total_amount: Amount,
    service_type: str,
    commission_percentage: Optional[Amount] = None,
    provider_fee: Optional[Amount] = None,
    provider_fee_per_job: Optional[Amount] = None,
) -> PayoutSplit:
    """
    Pick the payout model for a completed job.

    An inclusion line's provider_fee_per_job wins (package booking), then a
    subscription service's provider_fee. Everything else is commission-based.
    """
    if provider_fee_per_job is not None:
        return derive_fixed_fee(total_amount, provider_fee_per_job)
    if service_type == "subscription" and provider_fee is not None:
        return derive_fixed_fee(total_amount, provider_fee)
    return derive_commission(total_amount, commission_percentage)


def provider_payout_preview(
    client_price: Amount,
    service_type: str,
    commission_percentage: Optional[Amount] = None,
    provider_fee: Optional[Amount] = None,
) -> Decimal:
    """What a provider would earn for one job at the listed client price."""
    split = derive_job_payout(
        client_price,
        service_type,
        commission_percentage=commission_percentage,
        provider_fee=provider_fee,
    )
    return split.provider_earnings
