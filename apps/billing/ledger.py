"""
Money primitives.

Rounding rule: the platform fee is rounded half-up to cents and the
technician share is whatever remains, so the two always add back up to the
gross amount exactly.
"""
from collections import namedtuple
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from apps.cores.exceptions import ValidationError

CENT = Decimal("0.01")
# largest value a DecimalField(max_digits=12, decimal_places=2) holds
MAX_AMOUNT = Decimal("9999999999.99")

Split = namedtuple("Split", ["amount_total", "platform_fee", "tech_receives"])


def to_money(value) -> Decimal:
    try:
        amount = Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid amount: {value!r}.")
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}.")
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"Amount must not exceed {MAX_AMOUNT}.")
    return amount


def platform_fee(amount, fee_pct) -> Decimal:
    return (Decimal(amount) * Decimal(fee_pct) / Decimal("100")).quantize(
        CENT,
        rounding=ROUND_HALF_UP,
    )


def split(amount, fee_pct) -> Split:
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Budget amount must be greater than zero.")

    fee_pct = Decimal(fee_pct)
    if fee_pct < 0 or fee_pct > 100:
        raise ValidationError("Platform fee percentage must be between 0 and 100.")

    fee = platform_fee(amount, fee_pct)
    return Split(amount_total=amount, platform_fee=fee, tech_receives=amount - fee)
