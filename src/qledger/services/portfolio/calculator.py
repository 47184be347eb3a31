"""Financial calculations over replayed aggregates.

Pure functions that turn SharesAggregates and a quote into cost basis and
P&L. All arithmetic is Decimal; every division by zero resolves to zero.

Usage:
    >>> from qledger.services.portfolio.calculator import hold_cost, diluted_cost
    >>> hold_cost(current_cycle)
    Decimal('10.005000')
    >>> diluted_cost(all_history)
    Decimal('8.022000')
"""

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict

from qledger.services.portfolio.models import DayTradingData, SharesAggregate

_ZERO = Decimal("0")
COST_QUANTUM = Decimal("0.000001")


class PnL(BaseModel):
    """An amount with its rate and the basis the rate was taken over."""

    amount: Decimal
    rate: Decimal
    basis: Decimal

    model_config = ConfigDict(frozen=True)


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator, or 0 when the denominator is 0."""
    if denominator == 0:
        return _ZERO
    return numerator / denominator


def _quantize_cost(value: Decimal) -> Decimal:
    return value.quantize(COST_QUANTUM, rounding=ROUND_HALF_UP)


def hold_cost(current_cycle: SharesAggregate) -> Decimal:
    """
    Per-share cost of the current position cycle.

    (buy_amount + buy_commission) / buy_shares, 0 when nothing was bought.

    Args:
        current_cycle: Aggregate of the current cycle's transactions

    Returns:
        Cost per share, quantized to 6 places
    """
    if current_cycle.buy_shares <= 0:
        return _ZERO
    return _quantize_cost((current_cycle.buy_amount + current_cycle.buy_commission) / current_cycle.buy_shares)


def diluted_cost(all_history: SharesAggregate) -> Decimal:
    """
    Per-share cost net of everything realised over the symbol's lifetime.

    (buys - sells + all fees - dividends) / shares held, 0 when flat.
    Can be negative once sells and dividends exceed total outlay.

    Args:
        all_history: Aggregate of every transaction of the symbol

    Returns:
        Cost per share, quantized to 6 places
    """
    if all_history.total_shares <= 0:
        return _ZERO
    outlay = all_history.buy_amount - all_history.sell_amount + all_history.total_fees - all_history.dividends
    return _quantize_cost(outlay / all_history.total_shares)


def market_value(shares: Decimal, price: Decimal) -> Decimal:
    """shares * price."""
    return shares * price


def float_pnl(price: Decimal, cost: Decimal, shares: Decimal) -> PnL:
    """
    Unrealised P&L of the current cycle.

    amount = (price - hold_cost) * shares; rate = amount / (hold_cost * shares).

    Args:
        price: Quote price
        cost: Hold cost per share
        shares: Shares held
    """
    basis = cost * shares
    amount = (price - cost) * shares
    return PnL(amount=amount, rate=safe_divide(amount, basis), basis=basis)


def accum_pnl(value: Decimal, all_history: SharesAggregate) -> PnL:
    """
    Lifetime P&L of a symbol.

    amount = market_value - (buys + all fees) + sells + dividends;
    rate = amount / (buys + buy commission).

    Args:
        value: Current market value
        all_history: Aggregate of every transaction of the symbol
    """
    cost_basis = all_history.buy_amount + all_history.total_fees
    amount = value - cost_basis + all_history.sell_amount + all_history.dividends
    basis = all_history.buy_amount + all_history.buy_commission
    return PnL(amount=amount, rate=safe_divide(amount, basis), basis=basis)


def day_pnl(
    price: Decimal,
    change: Decimal,
    shares: Decimal,
    cost: Decimal,
    day: DayTradingData,
) -> PnL:
    """
    Today's P&L.

    When the position was held at yesterday's close with positive value:
        amount = shares * price - yesterday_shares * (price - change)
                 + today_sells - today_buys
        rate   = amount / (yesterday_value + today_buys)

    Otherwise (position opened today):
        amount = (price - hold_cost) * shares + today_sells - today_buys
        rate   = amount / today_buys

    Args:
        price: Quote price
        change: Price change versus the previous close
        shares: Shares held now
        cost: Hold cost per share
        day: Yesterday's shares and today's trade amounts
    """
    yesterday_value = day.yesterday_shares * (price - change)
    net_trades = day.today_sell_amount - day.today_buy_amount

    if yesterday_value > 0:
        amount = market_value(shares, price) - yesterday_value + net_trades
        basis = yesterday_value + day.today_buy_amount
    else:
        amount = (price - cost) * shares + net_trades
        basis = day.today_buy_amount

    return PnL(amount=amount, rate=safe_divide(amount, basis), basis=basis)
