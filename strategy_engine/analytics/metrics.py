"""
Performance metrics: Sharpe, Sortino, drawdown, win rate, profit factor, expectancy.
Ratios assume per-bar returns taken from the equity curve.
"""

from __future__ import annotations
from typing import List, Sequence

import numpy as np

from strategy_engine.core.types import PerformanceSummary, Trade


def equity_returns(equity: Sequence[float]) -> List[float]:
    """Bar-to-bar simple returns; bars following a non-positive equity are skipped."""
    if len(equity) < 2:
        return []
    arr = np.asarray(equity, dtype=float)
    prev = arr[:-1]
    ok = prev > 0
    return ((arr[1:][ok] - prev[ok]) / prev[ok]).tolist()


def sharpe_ratio(returns: List[float], risk_free_rate: float = 0.0, periods_per_year: float = 252.0) -> float:
    """Annualized Sharpe. returns = list of period returns."""
    if not returns:
        return 0.0
    arr = np.array(returns)
    excess = arr - risk_free_rate / periods_per_year
    if excess.std() <= 1e-12:
        return 0.0
    return float(np.sqrt(periods_per_year) * excess.mean() / excess.std())


def sortino_ratio(returns: List[float], risk_free_rate: float = 0.0, periods_per_year: float = 252.0) -> float:
    """Annualized Sortino (downside deviation)."""
    if not returns:
        return 0.0
    arr = np.array(returns)
    excess = arr - risk_free_rate / periods_per_year
    downside = arr[arr < 0]
    if len(downside) == 0 or downside.std() <= 1e-12:
        return sharpe_ratio(returns, risk_free_rate, periods_per_year)
    return float(np.sqrt(periods_per_year) * excess.mean() / downside.std())


def drawdown_series(equity: Sequence[float]) -> np.ndarray:
    """Per-bar drawdown from the running peak, as a fraction (0.15 = 15% below peak)."""
    arr = np.asarray(equity, dtype=float)
    if arr.size == 0:
        return arr
    peak = np.maximum.accumulate(arr)
    safe_peak = np.where(peak > 0, peak, 1.0)
    return np.where(peak > 0, (peak - arr) / safe_peak, 0.0)


def max_drawdown(equity: Sequence[float]) -> float:
    """Largest drawdown fraction over the curve, 0 for an empty curve."""
    dd = drawdown_series(equity)
    return float(dd.max()) if dd.size else 0.0


def win_rate(pnls: List[float]) -> float:
    """Percent of trades with positive PnL (0 with no trades)."""
    if not pnls:
        return 0.0
    return sum(1 for p in pnls if p > 0) / len(pnls) * 100.0


def profit_factor(pnls: List[float]) -> float:
    """Gross profit / gross loss. inf when there are wins and no losses, 0 with neither."""
    wins = sum(p for p in pnls if p > 0)
    losses = sum(-p for p in pnls if p < 0)
    if losses <= 0:
        return float("inf") if wins > 0 else 0.0
    return wins / losses


def expectancy(pnls: List[float]) -> float:
    """Average PnL per trade."""
    if not pnls:
        return 0.0
    return sum(pnls) / len(pnls)


def summarize(
    start_capital: float,
    final_value: float,
    trades: Sequence[Trade],
    equity: Sequence[float],
    max_dd: float,
    risk_free_rate: float = 0.0,
    periods_per_year: float = 252.0,
) -> PerformanceSummary:
    """
    Build the run summary from closed trades and the per-bar equity curve.
    max_dd is passed in because the accountant tracks it bar by bar.
    """
    pnls = [t.pnl for t in trades]
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]
    rets = equity_returns(equity)
    return PerformanceSummary(
        final_value=final_value,
        total_return_pct=(final_value / start_capital - 1.0) * 100.0,
        trade_count=len(pnls),
        win_rate_pct=win_rate(pnls),
        max_drawdown=max_dd,
        profit_factor=profit_factor(pnls),
        winning_trades=len(wins),
        losing_trades=len(losses),
        avg_win=sum(wins) / len(wins) if wins else 0.0,
        avg_loss=sum(losses) / len(losses) if losses else 0.0,
        expectancy=expectancy(pnls),
        avg_profit_per_trade_pct=sum(t.pnl_pct for t in trades) / len(trades) if trades else 0.0,
        sharpe_ratio=sharpe_ratio(rets, risk_free_rate, periods_per_year),
        sortino_ratio=sortino_ratio(rets, risk_free_rate, periods_per_year),
    )
