"""Fee calculation command."""

import sys
from decimal import Decimal, InvalidOperation

import click
import yaml
from rich.console import Console

from qledger.cli.ui.formatters import create_fee_table
from qledger.services.fees import FeeCalculator, TradeDirection
from qledger.system import SystemConfig

console = Console()


@click.command("fees")
@click.argument("symbol")
@click.option("--side", type=click.Choice(["buy", "sell"]), default="buy", show_default=True, help="Trade side")
@click.option("--amount", required=True, help="Trade amount (shares x price)")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Path to qledger.yaml")
def fees_command(symbol: str, side: str, amount: str, config_path: str | None):
    """
    Show the fees charged on a trade.

    Examples:
        qledger fees 600000 --side sell --amount 10000
        qledger fees 510300 --amount 50000
    """
    try:
        value = Decimal(amount)
    except InvalidOperation:
        console.print(f"[red]Error: invalid amount '{amount}'[/red]")
        sys.exit(1)

    try:
        config = SystemConfig.load(config_path)
        calculator = FeeCalculator(config.ledger.fee_config())
        breakdown = calculator.calculate(symbol, TradeDirection(side), value)
    except (ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    console.print(create_fee_table(symbol.strip().upper(), side, value, breakdown))
    console.print(f"[dim]{breakdown.description}[/dim]")
