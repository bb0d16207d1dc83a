from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from investments.config import Config, ConfigError, DepositConfig, PortfolioConfig, load_config
from investments.util import format_date

LOGGER = logging.getLogger("investments")

DEFAULT_CONFIG_DIR = "~/.investments"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Personal investment tracking tool")
    parser.add_argument(
        "--config",
        default=os.getenv("INVESTMENTS_CONFIG", f"{DEFAULT_CONFIG_DIR}/config.yaml"),
        help="Path to YAML config",
    )
    parser.add_argument("--portfolio", default=None, help="Show only the given portfolio")
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def format_portfolio(portfolio: PortfolioConfig) -> str:
    symbols = ",".join(sorted(portfolio.get_stock_symbols())) or "-"
    lines = [
        f"Portfolio {portfolio.name}",
        f"  broker: {portfolio.broker.display_name}",
        f"  statements: {portfolio.statements}",
        f"  currency: {portfolio.currency or '-'}",
        f"  symbols: {symbols}",
        f"  tax payment day: {portfolio.tax_payment_day}",
    ]
    for master_symbol, slave_symbols in sorted(portfolio.merge_performance.items()):
        lines.append(f"  merge: {master_symbol} <- {','.join(sorted(slave_symbols))}")
    for deduction_date, amount in portfolio.tax_deductions:
        lines.append(f"  tax deduction: {format_date(deduction_date)} {amount}")
    return "\n".join(lines)


def format_deposit(deposit: DepositConfig) -> str:
    return (
        f"Deposit {deposit.name}: {format_date(deposit.open_date)} -> {format_date(deposit.close_date)}"
        f" amount={deposit.amount} interest={deposit.interest}%"
        f" capitalization={'yes' if deposit.capitalization else 'no'}"
        f" contributions={len(deposit.contributions)}"
    )


def show_config(config: Config, portfolio_name: str | None = None) -> None:
    if portfolio_name is not None:
        print(format_portfolio(config.get_portfolio(portfolio_name)))
        return
    for portfolio in config.portfolios:
        print(format_portfolio(portfolio))
    for deposit in config.deposits:
        print(format_deposit(deposit))


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    load_dotenv()
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    config_path = Path(args.config).expanduser()
    try:
        config = load_config(config_path)
        config = config.with_db_path(config_path.parent / "db.sqlite")
        LOGGER.debug("Database path: %s", config.db_path)
        show_config(config, args.portfolio)
    except ConfigError as exc:
        LOGGER.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
