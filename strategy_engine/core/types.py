"""
Core data types for bars, indicator snapshots, positions, events and results.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Mapping, Optional, Tuple


class PositionState(str, Enum):
    FLAT = "FLAT"
    LONG = "LONG"


class EventKind(str, Enum):
    BUY = "buy"
    SELL = "sell"
    STOP = "stop"
    TAKE_PROFIT = "take_profit"

    @property
    def is_exit(self) -> bool:
        return self is not EventKind.BUY


class ExitReason(str, Enum):
    """Exit causes, listed in reporting priority order."""
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    TRAILING_STOP = "trailing_stop"
    MAX_HOLDING = "max_holding"
    SIGNAL = "signal"


EXIT_PRIORITY: Tuple[ExitReason, ...] = tuple(ExitReason)


def is_defined(value: Optional[float]) -> bool:
    """True for a computed, finite number. None, NaN and infinities are undefined."""
    if value is None:
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


@dataclass(frozen=True)
class Bar:
    """OHLCV candle at a position in the series."""
    index: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    time: Optional[datetime] = None


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicator values at one bar. Missing or undefined entries read as None."""
    index: int
    values: Mapping[str, Optional[float]] = field(default_factory=dict)

    def get(self, name: str) -> Optional[float]:
        return self.values.get(name)

    def defined(self, *names: str) -> bool:
        return all(self.values.get(n) is not None for n in names)

    @classmethod
    def empty(cls, index: int = -1) -> "IndicatorSnapshot":
        return cls(index=index, values={})


@dataclass(frozen=True)
class Position:
    """Single long position owned by the state machine. FLAT carries no entry data."""
    state: PositionState = PositionState.FLAT
    entry_price: float = 0.0
    entry_index: int = -1
    highest_price_since_entry: float = 0.0
    size_fraction: float = 0.0

    @property
    def is_long(self) -> bool:
        return self.state is PositionState.LONG

    @classmethod
    def flat(cls) -> "Position":
        return cls()

    @classmethod
    def open_long(cls, price: float, index: int, size_fraction: float) -> "Position":
        return cls(
            state=PositionState.LONG,
            entry_price=price,
            entry_index=index,
            highest_price_since_entry=price,
            size_fraction=size_fraction,
        )

    def bars_held(self, index: int) -> int:
        return index - self.entry_index if self.is_long else 0


@dataclass(frozen=True)
class SignalEvent:
    """Buy or exit emitted by the state machine at a bar."""
    kind: EventKind
    index: int
    price: float
    size_fraction: float = 0.0
    reason: Optional[ExitReason] = None
    triggers: FrozenSet[ExitReason] = frozenset()

    @property
    def is_exit(self) -> bool:
        return self.kind.is_exit


@dataclass(frozen=True)
class EquityPoint:
    index: int
    capital: float
    shares: float
    equity: float


@dataclass(frozen=True)
class Trade:
    """Closed long trade for analytics."""
    entry_index: int
    exit_index: int
    entry_price: float
    exit_price: float
    shares: float
    pnl: float
    pnl_pct: float
    exit_reason: str  # "stop_loss" | "take_profit" | "trailing_stop" | "max_holding" | "signal"


@dataclass(frozen=True)
class PerformanceSummary:
    """Run statistics. max_drawdown is a fraction in [0, 1]; profit_factor may be inf."""
    final_value: float
    total_return_pct: float
    trade_count: int
    win_rate_pct: float
    max_drawdown: float
    profit_factor: float
    winning_trades: int = 0
    losing_trades: int = 0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    expectancy: float = 0.0
    avg_profit_per_trade_pct: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0

    @classmethod
    def neutral(cls, start_capital: float) -> "PerformanceSummary":
        return cls(
            final_value=start_capital,
            total_return_pct=0.0,
            trade_count=0,
            win_rate_pct=0.0,
            max_drawdown=0.0,
            profit_factor=0.0,
        )

    def as_dict(self) -> Dict[str, float]:
        return {
            "final_value": self.final_value,
            "total_return_pct": self.total_return_pct,
            "trade_count": self.trade_count,
            "win_rate_pct": self.win_rate_pct,
            "max_drawdown": self.max_drawdown,
            "profit_factor": self.profit_factor,
        }
