"""
Replays the event stream against starting capital: capital, shares, equity,
running-peak drawdown and closed trades.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Sequence

from strategy_engine.analytics.metrics import summarize
from strategy_engine.core.types import (
    EquityPoint,
    EventKind,
    PerformanceSummary,
    SignalEvent,
    Trade,
    is_defined,
)

logger = logging.getLogger("strategy_engine.analytics")


@dataclass
class AccountingResult:
    summary: PerformanceSummary
    equity_curve: List[EquityPoint] = field(default_factory=list)
    trades: List[Trade] = field(default_factory=list)


class PerformanceAccountant:
    """
    Bar-by-bar ledger for one run. Call on_bar() for every bar in order, passing the
    event emitted at that bar (if any), then finish().
    A position still open at the end is marked to the last price but is not a trade.
    """

    def __init__(self, start_capital: float = 10000.0):
        self.start_capital = start_capital
        self.capital = start_capital
        self.shares = 0.0
        self.entry_price = 0.0
        self.entry_index = -1
        self.peak = start_capital
        self.max_drawdown = 0.0
        self.last_price: Optional[float] = None
        self.trades: List[Trade] = []
        self.equity_curve: List[EquityPoint] = []

    @property
    def equity(self) -> float:
        if self.shares and self.last_price is not None:
            return self.capital + self.shares * self.last_price
        return self.capital

    def on_bar(self, index: int, price: Optional[float], event: Optional[SignalEvent] = None) -> None:
        if not is_defined(price) or price <= 0:
            logger.debug("Bar %d: price %s not usable, skipped", index, price)
            return
        self.last_price = price
        if event is not None:
            if event.kind is EventKind.BUY:
                self._buy(event)
            else:
                self._sell(event)

        equity = self.capital + self.shares * price
        self.peak = max(self.peak, equity)
        drawdown = (self.peak - equity) / self.peak if self.peak > 0 else 0.0
        self.max_drawdown = max(self.max_drawdown, drawdown)
        self.equity_curve.append(EquityPoint(index=index, capital=self.capital, shares=self.shares, equity=equity))

    def _buy(self, event: SignalEvent) -> None:
        if self.shares > 0:
            logger.warning("Bar %d: buy while already holding %.6f shares ignored", event.index, self.shares)
            return
        invest = self.capital * event.size_fraction
        self.shares = invest / event.price
        self.capital -= invest
        self.entry_price = event.price
        self.entry_index = event.index

    def _sell(self, event: SignalEvent) -> None:
        if self.shares <= 0:
            logger.warning("Bar %d: %s with no open position ignored", event.index, event.kind.value)
            return
        proceeds = self.shares * event.price
        cost = self.shares * self.entry_price
        pnl = proceeds - cost
        self.capital += proceeds
        reason = event.reason.value if event.reason is not None else event.kind.value
        self.trades.append(Trade(
            entry_index=self.entry_index,
            exit_index=event.index,
            entry_price=self.entry_price,
            exit_price=event.price,
            shares=self.shares,
            pnl=pnl,
            pnl_pct=pnl / cost * 100.0 if cost > 0 else 0.0,
            exit_reason=reason,
        ))
        self.shares = 0.0
        self.entry_price = 0.0
        self.entry_index = -1

    def finish(self) -> AccountingResult:
        final_value = self.equity
        if self.shares > 0:
            logger.debug("Open position of %.6f shares marked to %.4f", self.shares, self.last_price)
        summary = summarize(
            start_capital=self.start_capital,
            final_value=final_value,
            trades=self.trades,
            equity=[p.equity for p in self.equity_curve],
            max_dd=self.max_drawdown,
        )
        return AccountingResult(summary=summary, equity_curve=list(self.equity_curve), trades=list(self.trades))


def replay(
    prices: Sequence[Optional[float]],
    events: Iterable[SignalEvent],
    start_capital: float = 10000.0,
) -> AccountingResult:
    """Account a price series and its events (at most one per bar index)."""
    by_index: Mapping[int, SignalEvent] = {e.index: e for e in events}
    acct = PerformanceAccountant(start_capital)
    for i, price in enumerate(prices):
        acct.on_bar(i, price, by_index.get(i))
    return acct.finish()
