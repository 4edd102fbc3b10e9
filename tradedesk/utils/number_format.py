"""Number coercion and rounding utilities for form input and money amounts."""
from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

ZERO = Decimal('0')
CENT = Decimal('0.01')
UNIT = Decimal('1')

# Anything larger is treated as a typo, like non-numeric input.
MAX_INPUT = Decimal('1e12')

# Products of capped inputs stay far below this many digits.
_WIDE = Context(prec=100)


def to_decimal(value: Any) -> Decimal:
    """
    Coerce raw user or API input into a Decimal.

    Rules:
    - None, empty strings and non-numeric text become 0
    - NaN and infinities become 0
    - Booleans are not numbers here and become 0
    - Values beyond MAX_INPUT become 0
    - Comma decimal separators are accepted (12,5 -> 12.5)

    Never raises.
    """
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, Decimal):
        number = value
    else:
        if isinstance(value, str):
            value = value.strip().replace(',', '.')
            if not value:
                return ZERO
        try:
            number = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            return ZERO

    if not number.is_finite() or abs(number) > MAX_INPUT:
        return ZERO
    return number


def to_non_negative(value: Any) -> Decimal:
    """Coerce input like to_decimal and clamp negatives to 0."""
    number = to_decimal(value)
    return number if number > 0 else ZERO


def round_money(value: Decimal) -> Decimal:
    """Round to two decimals, half away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP, context=_WIDE)


def round_whole(value: Decimal) -> Decimal:
    """Round to whole units, half away from zero."""
    return value.quantize(UNIT, rounding=ROUND_HALF_UP, context=_WIDE)


def decimal_str(value: Decimal) -> str:
    """Serialize a Decimal for JSON payloads without exponent notation."""
    if value == value.to_integral_value():
        return str(value.quantize(UNIT, context=_WIDE))
    return format(value.normalize(), 'f')


def to_optional_id(value: Any) -> Optional[int]:
    """Parse a record id. Empty, zero and malformed values mean "no record"."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None
