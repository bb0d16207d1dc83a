from __future__ import annotations

from enum import Enum


class Broker(str, Enum):
    INTERACTIVE_BROKERS = "interactive-brokers"
    OPEN_BROKER = "open-broker"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def tokens(cls) -> tuple[str, ...]:
        return tuple(BROKER_TOKENS)

    @classmethod
    def from_token(cls, token: object) -> "Broker":
        if isinstance(token, Broker):
            return token
        broker = BROKER_TOKENS.get(token) if isinstance(token, str) else None
        if broker is None:
            expected = ", ".join(cls.tokens())
            raise ValueError(f"unknown variant {token!r}, expected one of: {expected}")
        return broker


BROKER_TOKENS: dict[str, Broker] = {
    "interactive-brokers": Broker.INTERACTIVE_BROKERS,
    "open-broker": Broker.OPEN_BROKER,
}

_DISPLAY_NAMES: dict[Broker, str] = {
    Broker.INTERACTIVE_BROKERS: "Interactive Brokers",
    Broker.OPEN_BROKER: "Open Broker",
}
