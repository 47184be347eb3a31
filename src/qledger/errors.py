"""Error hierarchy for the ledger engine.

Every failure the engine reports derives from LedgerError so callers can
catch the whole family at their boundary:

- ValidationError: the caller submitted malformed input
- StateError: the request would violate an invariant of the recorded history
- RecomputeFailure: derived state could not be rebuilt from history
- QuoteUnavailable: a valuation needed a quote that the provider could not supply
"""


class LedgerError(Exception):
    """Base exception for ledger errors."""

    pass


class ValidationError(LedgerError):
    """Raised when a transaction or transfer request is malformed."""

    pass


class StateError(LedgerError):
    """Raised when a request conflicts with the recorded history.

    Examples are selling with no open position, selling more shares than
    held, or a gap in the stored cycle numbering.
    """

    pass


class RecomputeFailure(LedgerError):
    """Raised when a holding cannot be re-derived from its history."""

    def __init__(self, portfolio_id: int, symbol: str, reason: str) -> None:
        self.portfolio_id = portfolio_id
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"Failed to recompute holding {symbol} in portfolio {portfolio_id}: {reason}")


class QuoteUnavailable(LedgerError):
    """Raised when an active holding has no quote to value it with."""

    pass
