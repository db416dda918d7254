"""Conversion between human decimal strings and fixed-point integers.

Every ledger program works in integers scaled by ``10**precision``. The
precision is always passed in explicitly: the same logical value (a price)
lives at 18 decimals while the amount a user pays for it is settled in the
base asset at 6 decimals.

Rounding is directional. Anything a user is asked to approve or pay is
rounded up so an escrow is never under-funded; anything previewed as coming
back to a user is rounded down.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Union

from priceinsure.errors import ValidationError

DecimalLike = Union[str, int, Decimal]

BASE_ASSET_DECIMALS = 6
INSTRUMENT_DECIMALS = 18
PRICE_DECIMALS = 18

# Largest value a ledger integer can hold
MAX_FIXED_POINT = 2**256 - 1


class Rounding(str, Enum):
    """Rounding direction when precision is dropped."""

    UP = "up"      # ceiling, for obligations
    DOWN = "down"  # floor, for payouts


@dataclass(frozen=True)
class Asset:
    """A token address with its immutable precision."""

    address: str
    precision: int
    symbol: Optional[str] = None

    def to_fixed_point(self, value: DecimalLike) -> int:
        return to_fixed_point(value, self.precision)

    def from_fixed_point(self, value: int) -> str:
        return from_fixed_point(value, self.precision)


def _check_precision(precision: int) -> None:
    if not isinstance(precision, int) or isinstance(precision, bool) or precision < 0:
        raise ValueError(f"Invalid precision: {precision!r}")


def _bounded(scaled: int, value, field: str) -> int:
    if scaled > MAX_FIXED_POINT:
        raise ValidationError(f"{field} is too large: {value}", {"field": field})
    return scaled


def to_fixed_point(value: DecimalLike, precision: int, field: str = "value") -> int:
    """Parse a non-negative decimal into an integer scaled by ``10**precision``.

    Args:
        value: Decimal string (e.g. "20000", "0.001"), Decimal or int
        precision: Number of decimals of the target representation
        field: Field name used in error messages

    Returns:
        Fixed-point integer

    Raises:
        ValidationError: If the value is not numeric or negative, has more
            fractional digits than ``precision`` allows, or does not fit a
            ledger integer once scaled
    """
    _check_precision(precision)

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a decimal number", {"field": field})

    if isinstance(value, int):
        if value < 0:
            raise ValidationError(f"{field} must not be negative", {"field": field})
        if value > MAX_FIXED_POINT:
            raise ValidationError(f"{field} is too large: {value}", {"field": field})
        return _bounded(value * 10**precision, value, field)

    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} is not a valid decimal number: {value!r}", {"field": field})

    if not number.is_finite():
        raise ValidationError(f"{field} must be finite", {"field": field})

    sign, digits, exponent = number.as_tuple()
    # Trailing zeros carry no value; without them the last digit is significant
    significant = len(digits)
    while significant and digits[significant - 1] == 0:
        significant -= 1
    if not significant:
        return 0
    if sign:
        raise ValidationError(f"{field} must not be negative", {"field": field})

    # Bound the magnitude before building any integer so "1e10000000" is
    # rejected without scaling.
    if number.adjusted() + precision > 77:
        raise ValidationError(f"{field} is too large: {value}", {"field": field})

    shift = exponent + len(digits) - significant + precision
    if shift < 0:
        raise ValidationError(
            f"{field} has more than {precision} decimal places: {value}",
            {"field": field, "precision": precision},
        )

    # Work on the exact digits; Decimal arithmetic would round at context precision.
    coefficient = int("".join(str(d) for d in digits[:significant]))
    return _bounded(coefficient * 10**shift, value, field)


def from_fixed_point(value: int, precision: int) -> str:
    """Format a fixed-point integer as a canonical decimal string.

    No exponent, no trailing fractional zeros, no trailing dot:
    ``from_fixed_point(20_000_000, 6) == "20"``.
    """
    _check_precision(precision)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Fixed-point value must be an integer: {value!r}")
    if value < 0:
        raise ValidationError(f"Fixed-point value must not be negative: {value}")

    whole, fraction = divmod(value, 10**precision)
    if not fraction:
        return str(whole)
    digits = str(fraction).rjust(precision, "0").rstrip("0")
    return f"{whole}.{digits}"


def rescale(value: int, from_precision: int, to_precision: int, rounding: Rounding) -> int:
    """Re-express a fixed-point integer at another precision."""
    _check_precision(from_precision)
    _check_precision(to_precision)
    if value < 0:
        raise ValidationError(f"Fixed-point value must not be negative: {value}")

    if to_precision >= from_precision:
        return value * 10 ** (to_precision - from_precision)

    quotient, remainder = divmod(value, 10 ** (from_precision - to_precision))
    if remainder and rounding == Rounding.UP:
        quotient += 1
    return quotient


def mul_fixed_point(
    a: int,
    a_precision: int,
    b: int,
    b_precision: int,
    out_precision: int,
    rounding: Rounding,
) -> int:
    """Exact product of two fixed-point integers at ``out_precision``."""
    return rescale(a * b, a_precision + b_precision, out_precision, rounding)


def payment_obligation(
    amount: int,
    price: int,
    amount_precision: int = INSTRUMENT_DECIMALS,
    price_precision: int = PRICE_DECIMALS,
    settlement_precision: int = BASE_ASSET_DECIMALS,
) -> int:
    """Amount a user must pay for ``amount`` units at ``price``.

    Always rounded up: the result is never below the exact product and
    exceeds it by one base unit only when the product has a remainder at
    ``settlement_precision``.
    """
    return mul_fixed_point(
        amount, amount_precision, price, price_precision, settlement_precision, Rounding.UP
    )


def refund_preview(
    amount: int,
    price: int,
    amount_precision: int = INSTRUMENT_DECIMALS,
    price_precision: int = PRICE_DECIMALS,
    settlement_precision: int = BASE_ASSET_DECIMALS,
) -> int:
    """Amount a user can expect back for ``amount`` units at ``price`` (rounded down)."""
    return mul_fixed_point(
        amount, amount_precision, price, price_precision, settlement_precision, Rounding.DOWN
    )
