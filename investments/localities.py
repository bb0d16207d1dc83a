from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class Country:
    name: str
    currency: str
    tax_rate: Decimal


def russia() -> Country:
    return Country(name="Russia", currency="RUB", tax_rate=Decimal("0.13"))
