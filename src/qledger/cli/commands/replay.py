"""Ledger replay command."""

import sys
from datetime import date, datetime

import click
import yaml
from rich.console import Console

from qledger.cli.ui.formatters import create_holdings_table, create_import_errors_table, create_overview_table
from qledger.errors import LedgerError
from qledger.services.portfolio import LedgerService
from qledger.services.quotes import CachingQuoteProvider, StaticQuoteProvider, TTLCache
from qledger.services.storage import InMemoryLedgerRepository, load_ledger_file
from qledger.system import LoggerFactory, SystemConfig

console = Console()
logger = LoggerFactory.get_logger()


@click.command("replay")
@click.argument("ledger_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--portfolio", "portfolio_id", type=int, help="Portfolio id (defaults to the file's, then the config's)")
@click.option("--as-of", "as_of", type=click.DateTime(formats=["%Y-%m-%d"]), help="Valuation date (YYYY-MM-DD)")
@click.option("--all", "show_all", is_flag=True, help="Also list liquidated holdings")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Path to qledger.yaml")
def replay_command(
    ledger_path: str,
    portfolio_id: int | None,
    as_of: datetime | None,
    show_all: bool,
    config_path: str | None,
):
    """
    Import a YAML ledger file and print holdings and the portfolio overview.

    Entries dated after the valuation date are rejected as future-dated.
    The portfolio id comes from --portfolio, else the ledger file, else
    ledger.default_portfolio_id in the config.

    Examples:
        qledger replay ledger.yaml
        qledger replay ledger.yaml --as-of 2024-06-28 --all
    """
    try:
        config = SystemConfig.load(config_path)
        LoggerFactory.configure(config.logging.to_logger_config())

        ledger = load_ledger_file(ledger_path)
        pid = portfolio_id
        if pid is None:
            pid = ledger.portfolio_id if ledger.portfolio_id is not None else config.ledger.default_portfolio_id
        valuation_date = as_of.date() if as_of is not None else date.today()

        quotes = CachingQuoteProvider(
            StaticQuoteProvider(ledger.quotes),
            TTLCache(ttl_seconds=config.quotes.cache_ttl_seconds),
        )
        service = LedgerService(
            InMemoryLedgerRepository(),
            quotes=quotes,
            fee_config=config.ledger.fee_config(),
            clock=lambda: valuation_date,
            strict_recompute=config.ledger.strict_recompute,
        )

        for entry in ledger.transfers:
            service.add_transfer(pid, entry.kind, entry.amount, entry.transfer_date, entry.comment)

        result = service.bulk_import(pid, ledger.transactions)
        overview = service.compute_portfolio_overview(pid, as_of=valuation_date)

    except (LedgerError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger.error("cli.replay.failed", path=ledger_path, error=str(e))
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    console.print(
        f"Imported [green]{result.success_count}[/green] transactions, "
        f"[red]{result.failure_count}[/red] rejected"
    )
    if result.errors:
        console.print(create_import_errors_table(result))
    for symbol, reason in sorted(result.recompute_errors.items()):
        console.print(f"[yellow]Warning: holding {symbol} could not be rebuilt: {reason}[/yellow]")

    console.print(create_holdings_table(overview.holdings, include_inactive=show_all))
    console.print(create_overview_table(overview))
