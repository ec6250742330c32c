"""Click CLI commands for alpaca-trade."""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime
from typing import Any

import click

from alpaca_trade.client import REST
from alpaca_trade.config import RESTConfig, load_config
from alpaca_trade.errors import AlpacaError
from alpaca_trade.mappers import entity_to_dict
from alpaca_trade.timeframe import TimeFrame
from alpaca_trade.utils.logging import (
    VALID_LOG_FORMATS,
    VALID_LOG_LEVELS,
    get_logger,
    setup_logging,
)

logger = get_logger(__name__)


def _load_config() -> RESTConfig:
    try:
        return load_config()
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e


def _echo_entities(entities: Iterable[Any]) -> int:
    count = 0
    for entity in entities:
        click.echo(json.dumps(entity_to_dict(entity)))
        count += 1
    return count


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(sorted(VALID_LOG_LEVELS), case_sensitive=False),
    help="Log level (default: WARNING).",
)
@click.option(
    "--log-format",
    default="console",
    type=click.Choice(sorted(VALID_LOG_FORMATS)),
    help="Log output format (default: console).",
)
def cli(log_level: str, log_format: str) -> None:
    """alpaca-trade: query the Alpaca trading and market data API."""
    setup_logging(level=log_level, log_format=log_format)


@cli.command()
def account() -> None:
    """Show the account summary."""
    try:
        with REST(_load_config()) as api:
            _echo_entities([api.get_account()])
    except AlpacaError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
def positions() -> None:
    """List open positions."""
    try:
        with REST(_load_config()) as api:
            _echo_entities(api.list_positions())
    except AlpacaError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.option(
    "--status",
    default="open",
    type=click.Choice(["open", "closed", "all"]),
    help="Order status filter (default: open).",
)
@click.option("--limit", default=None, type=int, help="Maximum orders to return.")
def orders(status: str, limit: int | None) -> None:
    """List orders."""
    try:
        with REST(_load_config()) as api:
            _echo_entities(api.list_orders(status=status, limit=limit))
    except AlpacaError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.argument("symbols", nargs=-1, required=True)
@click.option(
    "--timeframe", default="1Day", help="Bar timeframe, e.g. 1Min, 15Min, 1Hour, 1Day."
)
@click.option(
    "--start",
    default=None,
    type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]),
    help="Start (YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS).",
)
@click.option(
    "--end",
    default=None,
    type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]),
    help="End (YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS).",
)
@click.option("--limit", default=None, type=click.IntRange(min=1), help="Maximum bars.")
@click.option(
    "--adjustment",
    default="raw",
    type=click.Choice(["raw", "split", "dividend", "all"]),
    help="Corporate action adjustment (default: raw).",
)
def bars(
    symbols: tuple[str, ...],
    timeframe: str,
    start: datetime | None,
    end: datetime | None,
    limit: int | None,
    adjustment: str,
) -> None:
    """Stream historical bars for one or more SYMBOLS as JSON lines."""
    try:
        tf = TimeFrame.parse(timeframe)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--timeframe") from e

    wanted = [s.strip().upper() for s in symbols]
    symbol_or_symbols: str | list[str] = wanted[0] if len(wanted) == 1 else wanted

    try:
        with REST(_load_config()) as api:
            count = _echo_entities(
                api.get_bars(
                    symbol_or_symbols,
                    tf,
                    start=start,
                    stop=end,
                    adjustment=adjustment,
                    limit=limit,
                )
            )
    except AlpacaError as e:
        raise click.ClickException(str(e)) from e

    logger.info("Bars written", symbols=wanted, timeframe=str(tf), count=count)


@cli.command()
def config() -> None:
    """Show the effective configuration (secret masked)."""
    cfg = _load_config()

    click.echo("=== Alpaca REST Configuration ===\n")
    click.echo(f"Key ID:       {cfg.key_id or '(not set)'}")
    click.echo(f"Secret Key:   {'***' if cfg.secret_key else '(not set)'}")
    click.echo(f"Base URL:     {cfg.base_url}")
    click.echo(f"Data URL:     {cfg.data_url}")
    click.echo("")

    click.echo("[Retry]")
    click.echo(f"  Max Retries:  {cfg.retry_max}")
    click.echo(f"  Wait (s):     {cfg.retry_wait}")
    click.echo(f"  Status Codes: {', '.join(str(c) for c in sorted(cfg.retry_codes))}")
