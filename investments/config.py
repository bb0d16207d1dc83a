from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import date, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Annotated, Any

import yaml
from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainValidator,
    ValidationError,
    model_validator,
)

from investments.brokers import Broker
from investments.localities import Country, russia
from investments.taxes import TaxPaymentDay
from investments.util import DecimalRestrictions, format_date, parse_date, parse_decimal, today

LOGGER = logging.getLogger(__name__)

DEFAULT_CACHE_EXPIRE_TIME = timedelta(minutes=1)
SUPPORTED_PORTFOLIO_CURRENCIES = frozenset({"RUB", "USD"})

_PROCESS_SETTINGS = ("db_path", "cache_expire_time")
_TAX_PAYMENT_DAY_RE = re.compile(r"(?P<day>[0-9]+)\.(?P<month>[0-9]+)")
_WEIGHT_RE = re.compile(r"\+?[0-9]+")


class ConfigError(Exception):
    pass


class ConfigStructureError(ConfigError):
    """The document can't be parsed into the configuration schema."""


class ConfigValidationError(ConfigError):
    """Individually valid values violate a relationship between fields or entries."""


def parse_config_date(value: object) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    return parse_date(value)


def parse_amount(value: object) -> Decimal:
    return parse_decimal(value)


def parse_weight(value: object) -> Decimal:
    if not isinstance(value, str) or not value.endswith("%"):
        raise ValueError(f"Invalid weight: {value}")
    number = value[:-1]
    if not _WEIGHT_RE.fullmatch(number) or int(number) > 100:
        raise ValueError(f"Invalid weight: {value}")
    return Decimal(int(number)) / Decimal(100)


def parse_tax_payment_day(value: object) -> TaxPaymentDay:
    if isinstance(value, TaxPaymentDay):
        return value
    if value == "on-close":
        return TaxPaymentDay.on_close()

    match = _TAX_PAYMENT_DAY_RE.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"Invalid tax payment day: {value!r}")
    day = int(match.group("day"))
    month = int(match.group("month"))
    # The policy has to be evaluable in every year.
    if (day, month) == (29, 2):
        raise ValueError(f"Invalid tax payment day: {value!r}")
    try:
        date(today().year, month, day)
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Invalid tax payment day: {value!r}") from exc
    return TaxPaymentDay.fixed(month=month, day=day)


def parse_cash_flows(value: object) -> tuple[tuple[date, Decimal], ...]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Invalid cash flows: expected a mapping of dates to amounts, got {value!r}")
    cash_flows: list[tuple[date, Decimal]] = []
    for raw_date, raw_amount in value.items():
        flow_date = parse_date(raw_date)
        try:
            amount = parse_decimal(raw_amount, DecimalRestrictions.STRICTLY_POSITIVE)
        except ValueError as exc:
            raise ValueError(f"Invalid amount: {raw_amount!r}") from exc
        cash_flows.append((flow_date, amount))
    cash_flows.sort(key=lambda cash_flow: cash_flow[0])
    return tuple(cash_flows)


ConfigDate = Annotated[date, PlainValidator(parse_config_date)]
Amount = Annotated[Decimal, PlainValidator(parse_amount)]
Weight = Annotated[Decimal, PlainValidator(parse_weight)]
CashFlows = Annotated[tuple[tuple[date, Decimal], ...], PlainValidator(parse_cash_flows)]
TaxPaymentDayField = Annotated[TaxPaymentDay, PlainValidator(parse_tax_payment_day)]
BrokerField = Annotated[Broker, PlainValidator(Broker.from_token)]
MergePerformance = Annotated[dict[str, frozenset[str]], AfterValidator(MappingProxyType)]


def _to_kebab(name: str) -> str:
    return name.replace("_", "-")


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=_to_kebab,
        populate_by_name=True,
    )


class DepositConfig(_ConfigModel):
    name: str
    open_date: ConfigDate
    close_date: ConfigDate
    currency: str | None = None
    amount: Amount
    interest: Amount
    capitalization: bool = False
    contributions: CashFlows = ()


class AssetAllocationConfig(_ConfigModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    symbol: str | None = None
    weight: Weight
    restrict_buying: bool | None = None
    restrict_selling: bool | None = None
    assets: tuple[AssetAllocationConfig, ...] | None = None

    def collect_stock_symbols(self, symbols: set[str]) -> None:
        if self.symbol is not None:
            symbols.add(self.symbol)
        for asset in self.assets or ():
            asset.collect_stock_symbols(symbols)


class PortfolioConfig(_ConfigModel):
    name: str
    broker: BrokerField
    statements: str

    currency: str | None = None
    min_trade_volume: Amount | None = None
    min_cash_assets: Amount | None = None
    restrict_buying: bool | None = None
    restrict_selling: bool | None = None

    merge_performance: MergePerformance = Field(default_factory=lambda: MappingProxyType({}))
    assets: tuple[AssetAllocationConfig, ...] = ()
    tax_payment_day: TaxPaymentDayField = Field(default_factory=TaxPaymentDay.default)
    tax_deductions: CashFlows = ()

    def get_stock_symbols(self) -> set[str]:
        symbols: set[str] = set()
        for asset in self.assets:
            asset.collect_stock_symbols(symbols)
        return symbols

    def get_tax_country(self) -> Country:
        return russia()


class TransactionCommissionSpec(_ConfigModel):
    fixed_amount: Amount


CommissionSpecs = Annotated[dict[str, TransactionCommissionSpec], AfterValidator(MappingProxyType)]


class BrokerConfig(_ConfigModel):
    deposit_commissions: CommissionSpecs


class BrokersConfig(_ConfigModel):
    interactive_brokers: BrokerConfig | None = None
    open_broker: BrokerConfig | None = None

    def get(self, broker: Broker) -> BrokerConfig | None:
        if broker is Broker.INTERACTIVE_BROKERS:
            return self.interactive_brokers
        return self.open_broker


class AlphaVantageConfig(_ConfigModel):
    api_key: str


class Config(_ConfigModel):
    # Assigned by the application, never read from the document.
    db_path: str = ""
    cache_expire_time: timedelta = DEFAULT_CACHE_EXPIRE_TIME

    deposits: tuple[DepositConfig, ...] = ()
    portfolios: tuple[PortfolioConfig, ...]
    brokers: BrokersConfig
    alphavantage: AlphaVantageConfig

    @model_validator(mode="before")
    @classmethod
    def reject_process_settings(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            for name in _PROCESS_SETTINGS:
                for key in (name, _to_kebab(name)):
                    if key in data:
                        raise ValueError(f"Unknown field: {key}")
        return data

    def get_portfolio(self, name: str) -> PortfolioConfig:
        for portfolio in self.portfolios:
            if portfolio.name == name:
                return portfolio
        raise ConfigError(f"{name!r} portfolio is not defined in the configuration file")

    def with_db_path(self, db_path: str | Path) -> "Config":
        return self.model_copy(update={"db_path": str(db_path)})


class _ConfigLoader(yaml.SafeLoader):
    """Safe loader that keeps number and timestamp scalars as text.

    Dates (``31.12.2020``), tax days (``15.10``) and amounts are parsed by the
    schema from exactly what the user wrote. Repeated mapping keys are an error.
    """

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        seen: set[Any] = set()
        for key_node, _value_node in node.value:
            # Merge keys may legitimately be overridden by explicit ones.
            if key_node.tag == "tag:yaml.org,2002:merge":
                continue
            key = self.construct_object(key_node, deep=deep)
            try:
                duplicate = key in seen
            except TypeError:
                continue
            if duplicate:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key {key!r}",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


_TEXT_SCALAR_TAGS = frozenset(
    {
        "tag:yaml.org,2002:int",
        "tag:yaml.org,2002:float",
        "tag:yaml.org,2002:timestamp",
    }
)
_ConfigLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _TEXT_SCALAR_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _format_validation_error(exc: ValidationError) -> str:
    messages: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(messages)


def parse_config(data: Any, source: str = "<config>") -> Config:
    """Build a candidate configuration without cross-field validation."""
    try:
        return Config.model_validate(data if data is not None else {})
    except ValidationError as exc:
        raise ConfigStructureError(
            f"Error while parsing {source}: {_format_validation_error(exc)}"
        ) from exc


def validate_config(config: Config) -> None:
    for deposit in config.deposits:
        if deposit.open_date > deposit.close_date:
            raise ConfigValidationError(
                f"Invalid {deposit.name!r} deposit dates: "
                f"{format_date(deposit.open_date)} -> {format_date(deposit.close_date)}"
            )

        for contribution_date, _amount in deposit.contributions:
            if contribution_date < deposit.open_date or contribution_date > deposit.close_date:
                raise ConfigValidationError(
                    f"Invalid {deposit.name!r} deposit contribution date: {format_date(contribution_date)}"
                )

    portfolio_names: set[str] = set()
    for portfolio in config.portfolios:
        if portfolio.name in portfolio_names:
            raise ConfigValidationError(f"Duplicate portfolio name: {portfolio.name!r}")
        portfolio_names.add(portfolio.name)

        if portfolio.currency is not None and portfolio.currency not in SUPPORTED_PORTFOLIO_CURRENCIES:
            raise ConfigValidationError(f"Unsupported portfolio currency: {portfolio.currency}")

        # Symbols may be merged differently in different portfolios.
        symbols_to_merge: set[str] = set()
        for master_symbol, slave_symbols in portfolio.merge_performance.items():
            for symbol in (master_symbol, *sorted(slave_symbols)):
                if symbol in symbols_to_merge:
                    raise ConfigValidationError(
                        f"Invalid performance merging configuration: Duplicated {symbol} symbol"
                    )
                symbols_to_merge.add(symbol)


def expand_home(path: str) -> str:
    if path == "~" or path.startswith("~/"):
        return str(Path.home()) + path[1:]
    return path


def normalize_statement_paths(config: Config) -> Config:
    portfolios = tuple(
        portfolio.model_copy(update={"statements": expand_home(portfolio.statements)})
        for portfolio in config.portfolios
    )
    return config.model_copy(update={"portfolios": portfolios})


def load_config(path: str | Path) -> Config:
    config_path = Path(path)
    LOGGER.debug("Loading configuration from %s", config_path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Unable to read configuration file {str(config_path)!r}: {exc}") from exc

    try:
        raw = yaml.load(text, Loader=_ConfigLoader)
    except yaml.YAMLError as exc:
        raise ConfigStructureError(f"Error while parsing {config_path}: {exc}") from exc

    config = parse_config(raw, source=str(config_path))
    validate_config(config)
    config = normalize_statement_paths(config)
    LOGGER.info(
        "Configuration loaded: portfolios=%d deposits=%d",
        len(config.portfolios),
        len(config.deposits),
    )
    return config
