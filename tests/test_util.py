from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from investments.util import DecimalRestrictions, format_date, parse_date, parse_decimal


def test_parse_and_format_date() -> None:
    assert parse_date("05.01.2020") == date(2020, 1, 5)
    assert parse_date("5.1.2020") == date(2020, 1, 5)
    assert format_date(date(2020, 1, 5)) == "05.01.2020"


def test_parse_decimal_keeps_text_precision() -> None:
    assert parse_decimal("0.1") == Decimal("0.1")
    assert parse_decimal(0.1) == Decimal("0.1")
    assert parse_decimal(15) == Decimal(15)
    assert str(parse_decimal("10.50")) == "10.50"


def test_parse_decimal_rejects_non_numbers() -> None:
    for raw in ("abc", "", "NaN", "Infinity", True, None):
        with pytest.raises(ValueError):
            parse_decimal(raw)


def test_parse_decimal_restrictions() -> None:
    assert parse_decimal("1", DecimalRestrictions.STRICTLY_POSITIVE) == Decimal(1)
    assert parse_decimal("0", DecimalRestrictions.POSITIVE) == Decimal(0)
    assert parse_decimal("-1", DecimalRestrictions.STRICTLY_NEGATIVE) == Decimal(-1)
    with pytest.raises(ValueError, match="restrictions"):
        parse_decimal("0", DecimalRestrictions.STRICTLY_POSITIVE)
    with pytest.raises(ValueError, match="restrictions"):
        parse_decimal("1", DecimalRestrictions.NEGATIVE_OR_ZERO)
