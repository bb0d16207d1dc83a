from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

import investments.config as config_module
from investments.brokers import Broker
from investments.config import parse_cash_flows, parse_config_date, parse_tax_payment_day, parse_weight
from investments.taxes import TaxPaymentDay, TaxPaymentDayKind


def test_date_parses_day_month_year() -> None:
    parsed = parse_config_date("31.12.2020")
    assert (parsed.day, parsed.month, parsed.year) == (31, 12, 2020)


def test_date_rejects_other_formats() -> None:
    for raw in ("2020-12-31", "31/12/2020", "31.13.2020", "", 20201231):
        with pytest.raises(ValueError, match="Invalid date"):
            parse_config_date(raw)


def test_weight_is_stored_as_exact_fraction() -> None:
    assert parse_weight("45%") == Decimal("0.45")
    assert str(parse_weight("45%")) == "0.45"
    assert parse_weight("0%") == Decimal(0)
    assert parse_weight("100%") == Decimal(1)
    assert parse_weight("+45%") == Decimal("0.45")


def test_weight_rejects_malformed_values() -> None:
    for raw in ("101%", "45", "-5%", "4.5%", "%", "abc%", " 45%", 45):
        with pytest.raises(ValueError, match="Invalid weight"):
            parse_weight(raw)


def test_tax_payment_day_on_close() -> None:
    tax_payment_day = parse_tax_payment_day("on-close")
    assert tax_payment_day == TaxPaymentDay.on_close()
    assert tax_payment_day.kind is TaxPaymentDayKind.ON_CLOSE


def test_tax_payment_day_fixed_day() -> None:
    assert parse_tax_payment_day("15.3") == TaxPaymentDay.fixed(month=3, day=15)
    assert parse_tax_payment_day("15.10") == TaxPaymentDay.fixed(month=10, day=15)
    assert parse_tax_payment_day("01.04") == TaxPaymentDay.fixed(month=4, day=1)


def test_tax_payment_day_rejects_invalid_calendar_days() -> None:
    for raw in ("31.4", "29.2", "0.3", "15.13", "15", "15.3.2020", "15.3\n", "on close", "", 15.3):
        with pytest.raises(ValueError, match="Invalid tax payment day"):
            parse_tax_payment_day(raw)


def test_tax_payment_day_rejects_leap_day_in_leap_year(monkeypatch) -> None:
    monkeypatch.setattr(config_module, "today", lambda: date(2024, 6, 1))
    with pytest.raises(ValueError, match="Invalid tax payment day"):
        parse_tax_payment_day("29.2")
    assert parse_tax_payment_day("28.2") == TaxPaymentDay.fixed(month=2, day=28)


def test_cash_flows_are_sorted_by_date() -> None:
    cash_flows = parse_cash_flows({"01.03.2020": "200", "15.01.2020": "100.5", "01.02.2020": 50})
    assert cash_flows == (
        (date(2020, 1, 15), Decimal("100.5")),
        (date(2020, 2, 1), Decimal("50")),
        (date(2020, 3, 1), Decimal("200")),
    )
    assert tuple(sorted(cash_flows, key=lambda cash_flow: cash_flow[0])) == cash_flows


def test_cash_flows_reject_non_positive_amounts() -> None:
    for raw in ("0", "-100", "abc", "NaN"):
        with pytest.raises(ValueError, match="Invalid amount") as exc_info:
            parse_cash_flows({"01.01.2020": raw})
        assert repr(raw) in str(exc_info.value)


def test_cash_flows_reject_invalid_dates_and_shapes() -> None:
    with pytest.raises(ValueError, match="Invalid date"):
        parse_cash_flows({"2020-01-01": "100"})
    with pytest.raises(ValueError, match="Invalid cash flows"):
        parse_cash_flows([("01.01.2020", "100")])


def test_broker_tokens() -> None:
    assert Broker.from_token("interactive-brokers") is Broker.INTERACTIVE_BROKERS
    assert Broker.from_token("open-broker") is Broker.OPEN_BROKER
    assert Broker.tokens() == ("interactive-brokers", "open-broker")


def test_broker_unknown_token_lists_accepted_tokens() -> None:
    with pytest.raises(ValueError, match="unknown variant") as exc_info:
        Broker.from_token("ib")
    message = str(exc_info.value)
    assert "'ib'" in message
    assert "interactive-brokers" in message
    assert "open-broker" in message
