from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

DATE_FORMAT = "%d.%m.%Y"


class DecimalRestrictions(str, Enum):
    NO = "NO"
    ZERO = "ZERO"
    POSITIVE = "POSITIVE"
    STRICTLY_POSITIVE = "STRICTLY_POSITIVE"
    NEGATIVE_OR_ZERO = "NEGATIVE_OR_ZERO"
    STRICTLY_NEGATIVE = "STRICTLY_NEGATIVE"


def today() -> date:
    return date.today()


def parse_date(value: str, date_format: str = DATE_FORMAT) -> date:
    if not isinstance(value, str):
        raise ValueError(f"Invalid date: {value!r}")
    try:
        return datetime.strptime(value, date_format).date()
    except ValueError as exc:
        raise ValueError(f"Invalid date: {value!r}") from exc


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def _matches(value: Decimal, restrictions: DecimalRestrictions) -> bool:
    if restrictions is DecimalRestrictions.ZERO:
        return value == 0
    if restrictions is DecimalRestrictions.POSITIVE:
        return value >= 0
    if restrictions is DecimalRestrictions.STRICTLY_POSITIVE:
        return value > 0
    if restrictions is DecimalRestrictions.NEGATIVE_OR_ZERO:
        return value <= 0
    if restrictions is DecimalRestrictions.STRICTLY_NEGATIVE:
        return value < 0
    return True


def parse_decimal(
    value: str | int | float | Decimal,
    restrictions: DecimalRestrictions = DecimalRestrictions.NO,
) -> Decimal:
    """Parse a decimal from its text form.

    Floats are converted through ``str`` so that ``0.1`` stays ``Decimal("0.1")``.
    Booleans, NaN and infinities are rejected.
    """
    if isinstance(value, bool) or not isinstance(value, (str, int, float, Decimal)):
        raise ValueError(f"Invalid decimal value: {value!r}")
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid decimal value: {value!r}") from exc
    if not parsed.is_finite():
        raise ValueError(f"Invalid decimal value: {value!r}")
    if not _matches(parsed, restrictions):
        raise ValueError(f"The value doesn't match the specified restrictions: {value!r}")
    return parsed
