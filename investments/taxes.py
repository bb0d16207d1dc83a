from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class TaxPaymentDayKind(str, Enum):
    ON_CLOSE = "ON_CLOSE"
    DAY = "DAY"


@dataclass(frozen=True, slots=True)
class TaxPaymentDay:
    """When tax on a portfolio's income is due.

    ``ON_CLOSE`` means the tax is withheld when the position is closed, ``DAY``
    means it is paid on a fixed day of the year following the income.
    """

    kind: TaxPaymentDayKind
    month: int | None = None
    day: int | None = None

    @classmethod
    def on_close(cls) -> "TaxPaymentDay":
        return cls(kind=TaxPaymentDayKind.ON_CLOSE)

    @classmethod
    def fixed(cls, month: int, day: int) -> "TaxPaymentDay":
        return cls(kind=TaxPaymentDayKind.DAY, month=month, day=day)

    @classmethod
    def default(cls) -> "TaxPaymentDay":
        return cls.fixed(month=3, day=15)

    @property
    def is_on_close(self) -> bool:
        return self.kind is TaxPaymentDayKind.ON_CLOSE

    def payment_date(self, income_date: date) -> date:
        if self.is_on_close:
            return income_date
        return date(income_date.year + 1, self.month, self.day)

    def __str__(self) -> str:
        if self.is_on_close:
            return "on-close"
        return f"{self.day:02d}.{self.month:02d}"
