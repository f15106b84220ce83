"""Analytics: event replay accounting and performance metrics (Sharpe, Sortino, drawdown, etc.)."""

from strategy_engine.analytics.accountant import AccountingResult, PerformanceAccountant, replay
from strategy_engine.analytics.metrics import (
    summarize,
    sharpe_ratio,
    sortino_ratio,
    max_drawdown,
    win_rate,
    profit_factor,
    expectancy,
)

__all__ = [
    "AccountingResult",
    "PerformanceAccountant",
    "replay",
    "summarize",
    "sharpe_ratio",
    "sortino_ratio",
    "max_drawdown",
    "win_rate",
    "profit_factor",
    "expectancy",
]
