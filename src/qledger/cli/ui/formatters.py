"""Rich table formatters for CLI output."""

from decimal import ROUND_HALF_UP, Decimal

from rich.table import Table

from qledger.services.fees import FeeBreakdown
from qledger.services.portfolio.models import BulkImportResult, HoldingDetail, PortfolioOverview

_CENT = Decimal("0.01")


def format_money(value: Decimal) -> str:
    """Format an amount with thousands separators and 2 decimals."""
    return f"{value.quantize(_CENT, rounding=ROUND_HALF_UP):,}"


def format_rate(value: Decimal) -> str:
    """Format a fraction as a percentage with 2 decimals."""
    return f"{(value * 100).quantize(_CENT, rounding=ROUND_HALF_UP)}%"


def format_pnl(value: Decimal, text: str | None = None) -> str:
    """Colour a P&L figure green when positive and red when negative."""
    text = text if text is not None else format_money(value)
    if value > 0:
        return f"[green]{text}[/green]"
    if value < 0:
        return f"[red]{text}[/red]"
    return text


def create_fee_table(symbol: str, side: str, amount: Decimal, fees: FeeBreakdown) -> Table:
    """
    Create a Rich table for a fee breakdown.

    Args:
        symbol: Security code
        side: "buy" or "sell"
        amount: Trade amount
        fees: Calculated fees

    Returns:
        Populated Rich Table
    """
    instrument = fees.instrument
    table = Table(title=f"Fees - {side.upper()} {symbol} ({instrument.exchange.value} {instrument.kind.value})")
    table.add_column("Item", style="cyan", no_wrap=True)
    table.add_column("Amount", style="white", justify="right")

    table.add_row("Trade amount", format_money(amount))
    table.add_row("Commission", format_money(fees.commission))
    table.add_row("Stamp tax", format_money(fees.stamp_tax))
    table.add_row("Transfer fee", format_money(fees.transfer_fee))
    table.add_row("Total", format_money(fees.total), style="bold")
    return table


def create_holdings_table(details: list[HoldingDetail], include_inactive: bool = False) -> Table:
    """
    Create a Rich table of valued holdings.

    Args:
        details: Holding details to show
        include_inactive: Also show liquidated holdings

    Returns:
        Populated Rich Table
    """
    table = Table(title="Holdings", show_header=True, header_style="bold cyan")
    table.add_column("Symbol", style="green", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Shares", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Hold Cost", justify="right")
    table.add_column("Diluted Cost", justify="right")
    table.add_column("Market Value", justify="right", style="yellow")
    table.add_column("Float P&L", justify="right")
    table.add_column("Float %", justify="right")
    table.add_column("Day P&L", justify="right")
    table.add_column("Accum P&L", justify="right")

    for detail in details:
        if not detail.is_active and not include_inactive:
            continue
        table.add_row(
            detail.symbol,
            detail.name,
            f"{detail.shares.normalize():f}",
            format_money(detail.price),
            f"{detail.hold_cost:.4f}",
            f"{detail.diluted_cost:.4f}",
            format_money(detail.market_value),
            format_pnl(detail.float_amount),
            format_pnl(detail.float_rate, format_rate(detail.float_rate)),
            format_pnl(detail.day_float_amount),
            format_pnl(detail.accum_amount),
            style=None if detail.is_active else "dim",
        )
    return table


def create_overview_table(overview: PortfolioOverview) -> Table:
    """
    Create a Rich table of portfolio totals.

    Args:
        overview: Portfolio overview

    Returns:
        Populated Rich Table
    """
    table = Table(title=f"Portfolio {overview.portfolio_id} - {overview.as_of.isoformat()}")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Amount", justify="right")
    table.add_column("Rate", justify="right")

    table.add_row("Total assets", format_money(overview.total_assets), "")
    table.add_row("Market value", format_money(overview.market_value), "")
    table.add_row("Cash", format_money(overview.cash), "")
    table.add_row("Principal", format_money(overview.principal), "")
    table.add_row(
        "Float P&L",
        format_pnl(overview.float_amount),
        format_pnl(overview.float_rate, format_rate(overview.float_rate)),
    )
    table.add_row(
        "Day P&L",
        format_pnl(overview.day_float_amount),
        format_pnl(overview.day_float_rate, format_rate(overview.day_float_rate)),
    )
    table.add_row(
        "Accum P&L",
        format_pnl(overview.accum_amount),
        format_pnl(overview.accum_rate, format_rate(overview.accum_rate)),
    )
    return table


def create_import_errors_table(result: BulkImportResult) -> Table:
    """
    Create a Rich table of rejected import rows.

    Args:
        result: Bulk import outcome

    Returns:
        Populated Rich Table
    """
    table = Table(title=f"Rejected rows ({result.failure_count})")
    table.add_column("Row", style="yellow", justify="right")
    table.add_column("Symbol", style="green")
    table.add_column("Reason", style="red")
    for error in result.errors:
        table.add_row(str(error.index + 1), error.symbol or "-", error.message)
    return table
