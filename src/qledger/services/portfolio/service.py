"""Ledger service: the public write and query surface.

Orchestrates a write end to end:
1. Validate the request
2. Take the (portfolio, symbol) lock
3. Check the candidate history (share conservation, cycle rules)
4. Run the kind's handler to produce the canonical record
5. Assign the position cycle and persist
6. Recompute the holding from the full history

A recompute failure after a committed write does not undo the write: it is
logged and reported in WriteResult.recompute_error, or raised when the
service runs with ``strict_recompute``.
"""

import sys
from collections import defaultdict
from collections.abc import Callable, Sequence
from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from qledger.errors import LedgerError, QuoteUnavailable, RecomputeFailure, StateError, ValidationError
from qledger.result import Err, Ok, Result
from qledger.services.fees import FeeConfig
from qledger.services.portfolio.aggregator import PortfolioAggregator
from qledger.services.portfolio.cycle_manager import PositionCycleManager
from qledger.services.portfolio.holding_service import HoldingService
from qledger.services.portfolio.interface import ILedgerRepository, IQuoteProvider
from qledger.services.portfolio.locks import KeyedLock
from qledger.services.portfolio.models import (
    BulkImportResult,
    CashPosition,
    Holding,
    HoldingDetail,
    ImportRowError,
    PortfolioOverview,
    Quote,
    Transfer,
    TransferKind,
    WriteResult,
)
from qledger.services.portfolio.processor import RunningTotals, TransactionProcessor
from qledger.services.transactions import (
    Transaction,
    TransactionInput,
    TransactionKind,
    TransactionRecord,
    TransactionValidator,
    get_handler,
    parse_input,
)
from qledger.system import LoggerFactory

logger = LoggerFactory.get_logger()

_APPEND_ID = sys.maxsize
_ZERO = Decimal("0")
_TEN = Decimal("10")


class LedgerService:
    """
    Transaction ledger with derived holdings.

    Attributes:
        repository: Ledger storage
        quotes: Quote source used for valuations
        fee_config: Default fee settings for writes
        strict_recompute: Raise recompute failures instead of reporting them

    Example:
        >>> service = LedgerService(InMemoryLedgerRepository(), quotes=provider)
        >>> result = service.create_transaction(
        ...     TransactionInput(
        ...         portfolio_id=1,
        ...         symbol="600000",
        ...         kind=TransactionKind.BUY,
        ...         trade_date=date(2024, 3, 1),
        ...         shares=Decimal("1000"),
        ...         price=Decimal("10"),
        ...     )
        ... )
        >>> result.holding.shares
        Decimal('1000')
    """

    def __init__(
        self,
        repository: ILedgerRepository,
        quotes: IQuoteProvider | None = None,
        fee_config: FeeConfig | None = None,
        clock: Callable[[], date] = date.today,
        locks: KeyedLock | None = None,
        strict_recompute: bool = False,
    ) -> None:
        """
        Initialize ledger service.

        Args:
            repository: Ledger storage
            quotes: Quote source (required for valuations without explicit quotes)
            fee_config: Default fee settings (defaults to FeeConfig())
            clock: Returns today's date; used to reject future-dated writes
            locks: Lock registry (share one between services on the same store)
            strict_recompute: Raise RecomputeFailure from writes
        """
        self.repository = repository
        self.quotes = quotes
        self.fee_config = fee_config or FeeConfig()
        self.strict_recompute = strict_recompute
        self._clock = clock
        self._locks = locks or KeyedLock()
        self._validator = TransactionValidator()
        self._processor = TransactionProcessor()
        self._cycles = PositionCycleManager(repository)
        self._holdings = HoldingService(repository, self._locks, self._processor)
        self._aggregator = PortfolioAggregator(repository, self._holdings)

    # ==================== Transaction Processing ====================

    def process_transaction(
        self,
        request: TransactionInput,
        fee_config: FeeConfig | None = None,
        held_shares: Decimal | None = None,
    ) -> Result[TransactionRecord]:
        """
        Validate a request and produce its canonical record without persisting.

        Args:
            request: Transaction request
            fee_config: Fee settings (defaults to the service's)
            held_shares: Shares held for dividend valuation; read from the
                stored holding, or replayed, when omitted

        Returns:
            Ok(TransactionRecord) or Err(ValidationError/StateError)
        """
        validated = self._validator.validate(request, self._clock())
        if isinstance(validated, Err):
            return validated

        if held_shares is None:
            try:
                held_shares = self._current_shares(request.portfolio_id, request.symbol)
            except StateError as e:
                return Err(e)

        handler = get_handler(request.kind)
        return handler.process(request, fee_config or self.fee_config, held_shares)

    def create_transaction(self, request: TransactionInput) -> WriteResult:
        """
        Record a new transaction and recompute its holding.

        Args:
            request: Transaction request

        Returns:
            WriteResult with the persisted transaction and holding

        Raises:
            ValidationError: If the request is malformed
            StateError: If the request would break the history (e.g. an over-sell)
            RecomputeFailure: Only with ``strict_recompute``
        """
        request = self._validate(request)
        with self._locks.hold(request.portfolio_id, request.symbol):
            txn = self._insert(request, prefer_holding=True)
            return self._after_write(txn, [txn.symbol])

    def update_transaction(self, transaction_id: int, request: TransactionInput) -> WriteResult:
        """
        Replace a transaction, keeping its id, and recompute.

        The symbol may change; both the old and the new symbol are then
        recomputed.

        Raises:
            ValidationError: If the request is malformed or the id is unknown
            StateError: If the edited history would be inconsistent
            RecomputeFailure: Only with ``strict_recompute``
        """
        existing = self._require_transaction(transaction_id)
        request = self._validate(request)
        if request.portfolio_id != existing.portfolio_id:
            raise ValidationError("A transaction cannot be moved to another portfolio")

        symbols = sorted({existing.symbol, request.symbol})
        with self._locks.hold_many(existing.portfolio_id, symbols):
            target = self._history_without(request.portfolio_id, request.symbol, transaction_id)
            index, held = self._position(target, request.trade_date, transaction_id)
            record = self._handle(request, held)
            candidate = target[:index] + [record] + target[index:]
            cycle_ids = PositionCycleManager.derive_cycle_ids(candidate).unwrap()

            if existing.symbol != request.symbol:
                remaining = self._history_without(existing.portfolio_id, existing.symbol, transaction_id)
                PositionCycleManager.derive_cycle_ids(remaining).unwrap()

            txn = self.repository.replace_transaction(transaction_id, record, cycle_ids[index])
            for symbol in symbols:
                self._cycles.renumber_cycles(existing.portfolio_id, symbol)
                self._revalue_dividends(existing.portfolio_id, symbol)

            logger.info(
                "ledger.transaction.updated",
                transaction_id=transaction_id,
                portfolio_id=txn.portfolio_id,
                symbol=txn.symbol,
                kind=txn.kind.name,
            )
            return self._after_write(self.repository.get_transaction(transaction_id) or txn, symbols)

    def delete_transaction(self, transaction_id: int) -> WriteResult:
        """
        Delete a transaction and recompute its holding.

        Raises:
            ValidationError: If the id is unknown
            StateError: If the remaining history would be inconsistent
                (e.g. deleting a buy that a later sell depends on)
            RecomputeFailure: Only with ``strict_recompute``
        """
        existing = self._require_transaction(transaction_id)
        with self._locks.hold(existing.portfolio_id, existing.symbol):
            history = self.repository.list_transactions(existing.portfolio_id, existing.symbol)
            remaining = [t for t in history if t.id != transaction_id]
            PositionCycleManager.derive_cycle_ids(remaining).unwrap()

            deleted = self.repository.delete_transaction(transaction_id)
            self._cycles.renumber_cycles(existing.portfolio_id, existing.symbol)
            self._revalue_dividends(existing.portfolio_id, existing.symbol)
            logger.info(
                "ledger.transaction.deleted",
                transaction_id=transaction_id,
                portfolio_id=deleted.portfolio_id,
                symbol=deleted.symbol,
            )
            return self._after_write(deleted, [deleted.symbol])

    def bulk_import(self, portfolio_id: int, rows: Sequence[TransactionInput | dict[str, Any]]) -> BulkImportResult:
        """
        Import many transactions with one recompute per symbol.

        Rows are grouped by symbol and written in (trade_date, input order).
        A failing row is reported by its original index and does not stop
        the rest; a failing recompute is reported per symbol.

        Args:
            portfolio_id: Portfolio every row is written to
            rows: TransactionInput objects or plain mappings

        Returns:
            BulkImportResult with counts and per-row errors
        """
        errors: list[ImportRowError] = []
        groups: dict[str, list[tuple[int, TransactionInput]]] = defaultdict(list)

        for index, row in enumerate(rows):
            parsed = self._parse_row(portfolio_id, row)
            if isinstance(parsed, Ok):
                parsed = self._validator.validate(parsed.value, self._clock())
            if isinstance(parsed, Err):
                symbol = row.symbol if isinstance(row, TransactionInput) else row.get("symbol")
                errors.append(ImportRowError(index=index, symbol=symbol, message=str(parsed.error)))
                continue
            groups[parsed.value.symbol].append((index, parsed.value))

        success_count = 0
        recompute_errors: dict[str, str] = {}

        for symbol in sorted(groups):
            ordered = sorted(groups[symbol], key=lambda item: (item[1].trade_date, item[0]))
            with self._locks.hold(portfolio_id, symbol):
                for index, request in ordered:
                    try:
                        self._insert(request, prefer_holding=False)
                        success_count += 1
                    except LedgerError as e:
                        errors.append(ImportRowError(index=index, symbol=symbol, message=str(e)))
                try:
                    self._holdings.recompute(portfolio_id, symbol)
                except RecomputeFailure as e:
                    recompute_errors[symbol] = e.reason

        errors.sort(key=lambda err: err.index)
        logger.info(
            "ledger.bulk_import.completed",
            portfolio_id=portfolio_id,
            rows=len(rows),
            success_count=success_count,
            failure_count=len(errors),
            symbols=len(groups),
        )
        return BulkImportResult(
            success_count=success_count,
            failure_count=len(errors),
            errors=errors,
            recompute_errors=recompute_errors,
        )

    # ==================== Holdings ====================

    def recompute_holding(self, portfolio_id: int, symbol: str) -> Holding | None:
        """
        Re-derive one holding from history.

        Raises:
            RecomputeFailure: If the holding cannot be rebuilt
        """
        return self._holdings.recompute(portfolio_id, symbol.strip().upper())

    def recompute_portfolio(self, portfolio_id: int) -> dict[str, Holding | None]:
        """
        Re-derive every holding of a portfolio.

        Raises:
            RecomputeFailure: On the first symbol that fails
        """
        return self._holdings.recompute_all(portfolio_id)

    def list_holdings(self, portfolio_id: int, include_inactive: bool = False) -> list[Holding]:
        """Persisted holdings of a portfolio, sorted by symbol."""
        return self.repository.list_holdings(portfolio_id, include_inactive=include_inactive)

    def list_transactions(self, portfolio_id: int, symbol: str) -> list[Transaction]:
        """A symbol's transactions in ledger order."""
        return self.repository.list_transactions(portfolio_id, symbol.strip().upper())

    def compute_holding_detail(
        self,
        portfolio_id: int,
        symbol: str,
        quote: Quote | None = None,
        as_of: date | None = None,
    ) -> HoldingDetail | None:
        """
        Value one symbol.

        Args:
            portfolio_id: Portfolio
            symbol: Security code
            quote: Quote to value with (fetched from ``quotes`` when omitted)
            as_of: Day for the day P&L (defaults to today)

        Returns:
            HoldingDetail, or None when the symbol has no history

        Raises:
            QuoteUnavailable: If no quote is given and none can be fetched
            RecomputeFailure: If the history is inconsistent
        """
        symbol = symbol.strip().upper()
        if quote is None:
            quote = self.quotes.get_quote(symbol) if self.quotes is not None else None
            if quote is None:
                raise QuoteUnavailable(f"No quote available for {symbol}")
        return self._holdings.compute_holding_detail(portfolio_id, symbol, quote, as_of or self._clock())

    def compute_portfolio_overview(self, portfolio_id: int, as_of: date | None = None) -> PortfolioOverview:
        """
        Value the whole portfolio.

        Raises:
            QuoteUnavailable: If no quote provider is configured, or an
                active holding has no quote
            RecomputeFailure: If a history is inconsistent
        """
        if self.quotes is None:
            raise QuoteUnavailable("No quote provider configured")
        return self._aggregator.compute_overview(portfolio_id, self.quotes, as_of or self._clock())

    # ==================== Cash ====================

    def add_transfer(
        self,
        portfolio_id: int,
        kind: TransferKind,
        amount: Decimal,
        transfer_date: date,
        comment: str | None = None,
    ) -> Transfer:
        """
        Record a deposit or withdrawal.

        Raises:
            ValidationError: If the amount is not positive or the date is in the future
        """
        if transfer_date > self._clock():
            raise ValidationError(f"Transfer date {transfer_date.isoformat()} is in the future")
        try:
            transfer = Transfer(
                portfolio_id=portfolio_id,
                kind=kind,
                amount=amount,
                transfer_date=transfer_date,
                comment=comment,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid transfer: {e.errors()[0]['msg']}") from e

        stored = self.repository.add_transfer(transfer)
        logger.info(
            "ledger.transfer.recorded",
            portfolio_id=portfolio_id,
            kind=stored.kind.name,
            amount=str(stored.amount),
        )
        return stored

    def compute_cash(self, portfolio_id: int) -> CashPosition:
        """Cash balance and principal of a portfolio."""
        return self._aggregator.compute_cash(portfolio_id)

    # ==================== Internals ====================

    def _validate(self, request: TransactionInput) -> TransactionInput:
        result = self._validator.validate(request, self._clock())
        if isinstance(result, Err):
            logger.warning(
                "ledger.transaction.rejected",
                portfolio_id=request.portfolio_id,
                symbol=request.symbol,
                kind=request.kind.name,
                reason=str(result.error),
            )
            raise result.error
        return result.value

    @staticmethod
    def _parse_row(portfolio_id: int, row: TransactionInput | dict[str, Any]) -> Result[TransactionInput]:
        if isinstance(row, TransactionInput):
            if row.portfolio_id != portfolio_id:
                row = row.model_copy(update={"portfolio_id": portfolio_id})
            return Ok(row)
        return parse_input({**row, "portfolio_id": portfolio_id})

    def _require_transaction(self, transaction_id: int) -> Transaction:
        txn = self.repository.get_transaction(transaction_id)
        if txn is None:
            raise ValidationError(f"Transaction {transaction_id} does not exist")
        return txn

    def _history_without(self, portfolio_id: int, symbol: str, transaction_id: int) -> list[Transaction]:
        return [t for t in self.repository.list_transactions(portfolio_id, symbol) if t.id != transaction_id]

    def _current_shares(self, portfolio_id: int, symbol: str) -> Decimal:
        """Shares held now: from the stored holding, else by replay."""
        holding = self.repository.get_holding(portfolio_id, symbol)
        if holding is not None:
            return holding.shares
        history = self.repository.list_transactions(portfolio_id, symbol)
        return self._processor.replay(history).unwrap().total_shares

    def _position(self, history: list[Transaction], trade_date: date, txn_id: int) -> tuple[int, Decimal]:
        """Insertion index of an event in an ordered history, and the shares held just before it."""
        key = (trade_date, txn_id)
        index = sum(1 for txn in history if txn.sort_key <= key)
        held = self._processor.replay(history[:index]).unwrap().total_shares
        return index, held

    def _handle(self, request: TransactionInput, held_shares: Decimal) -> TransactionRecord:
        result = get_handler(request.kind).process(request, self.fee_config, held_shares)
        if isinstance(result, Err):
            raise result.error
        return result.value

    def _insert(self, request: TransactionInput, prefer_holding: bool) -> Transaction:
        """
        Check, handle and persist a new event; caller holds the symbol lock.

        Raises:
            StateError: If the event would break the history
            ValidationError: If the handler rejects the request
        """
        history = self.repository.list_transactions(request.portfolio_id, request.symbol)
        index, shares_before = self._position(history, request.trade_date, _APPEND_ID)
        appended = index == len(history)

        # The stored holding only values a dividend; cycle ids follow the replay.
        held = shares_before
        if appended and prefer_holding:
            holding = self.repository.get_holding(request.portfolio_id, request.symbol)
            if holding is not None:
                held = holding.shares

        record = self._handle(request, held)
        candidate = history[:index] + [record] + history[index:]
        cycle_ids = PositionCycleManager.derive_cycle_ids(candidate).unwrap()

        if appended:
            cycle_id = self._cycles.assign_cycle_id(request.portfolio_id, request.symbol, request.kind, shares_before)
        else:
            cycle_id = cycle_ids[index]

        txn = self.repository.add_transaction(record, cycle_id)
        self._cycles.renumber_cycles(request.portfolio_id, request.symbol)
        if not appended:
            self._revalue_dividends(request.portfolio_id, request.symbol)
        txn = self.repository.get_transaction(txn.id) or txn

        logger.info(
            "ledger.transaction.created",
            transaction_id=txn.id,
            portfolio_id=txn.portfolio_id,
            symbol=txn.symbol,
            kind=txn.kind.name,
            trade_date=txn.trade_date.isoformat(),
            cycle_id=txn.cycle_id,
        )
        return txn

    def _revalue_dividends(self, portfolio_id: int, symbol: str) -> None:
        """
        Re-value stored dividend cash amounts after the history changed.

        Each dividend is valued on the shares held just before it; an edit
        earlier in the history moves that count. Caller holds the symbol lock.
        """
        acc = RunningTotals()
        for txn in self.repository.list_transactions(portfolio_id, symbol):
            if txn.kind == TransactionKind.DIVIDEND:
                held = acc.total_shares
                if held * (txn.per10_dividend or _ZERO) / _TEN != txn.amount:
                    request = TransactionInput(
                        portfolio_id=txn.portfolio_id,
                        symbol=txn.symbol,
                        name=txn.name,
                        kind=txn.kind,
                        trade_date=txn.trade_date,
                        per10_dividend=txn.per10_dividend,
                        per10_transfer=txn.per10_transfer,
                        per10_bonus=txn.per10_bonus,
                        tax=txn.tax,
                        comment=txn.comment,
                    )
                    txn = self.repository.replace_transaction(txn.id, self._handle(request, held), txn.cycle_id)
                    logger.info(
                        "ledger.dividend.revalued",
                        transaction_id=txn.id,
                        portfolio_id=portfolio_id,
                        symbol=symbol,
                        held_shares=str(held),
                        amount=str(txn.amount),
                    )
            acc.apply(txn)

    def _after_write(self, txn: Transaction, symbols: list[str]) -> WriteResult:
        holding: Holding | None = None
        failures: list[str] = []
        for symbol in symbols:
            try:
                recomputed = self._holdings.recompute(txn.portfolio_id, symbol)
            except RecomputeFailure as e:
                if self.strict_recompute:
                    raise
                failures.append(str(e))
                continue
            if symbol == txn.symbol:
                holding = recomputed

        return WriteResult(
            transaction=txn,
            holding=holding,
            recompute_error="; ".join(failures) or None,
        )
