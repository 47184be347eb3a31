"""CLI UI components - table formatters."""

from qledger.cli.ui.formatters import (
    create_fee_table,
    create_holdings_table,
    create_import_errors_table,
    create_overview_table,
)

__all__ = [
    "create_fee_table",
    "create_holdings_table",
    "create_import_errors_table",
    "create_overview_table",
]
