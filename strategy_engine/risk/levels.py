"""
ATR-based exit levels for an open long: fixed stop, fixed target, trailing stop.
The trailing stop only counts when it sits above the fixed stop, so it can tighten
the exit but never loosen it.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import FrozenSet, Optional

from strategy_engine.core.params import StrategyParams
from strategy_engine.core.types import Bar, ExitReason, Position


@dataclass(frozen=True)
class ExitLevels:
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    trailing_stop: Optional[float] = None

    @property
    def trailing_active(self) -> bool:
        """Trailing level exists and is tighter than the fixed stop."""
        if self.trailing_stop is None:
            return False
        return self.stop_loss is None or self.trailing_stop > self.stop_loss


def compute_exit_levels(position: Position, atr: float, params: StrategyParams) -> ExitLevels:
    """Levels for bar i from the entry, the running high since entry and ATR[i]."""
    entry = position.entry_price
    stop = None
    target = None
    trailing = None
    if params.stop_loss_atr_multiple is not None:
        stop = entry - params.stop_loss_atr_multiple * atr
    if params.take_profit_atr_multiple is not None:
        target = entry + params.take_profit_atr_multiple * atr
    if params.trailing_stop_enabled:
        trailing = position.highest_price_since_entry - params.trailing_stop_atr_multiple * atr
    return ExitLevels(stop_loss=stop, take_profit=target, trailing_stop=trailing)


def check_exits(
    bar: Bar,
    position: Position,
    levels: ExitLevels,
    params: StrategyParams,
) -> FrozenSet[ExitReason]:
    """Risk-driven exit conditions that hold on this bar (signal exits are decided by the caller)."""
    hits = set()
    if levels.stop_loss is not None and bar.low <= levels.stop_loss:
        hits.add(ExitReason.STOP_LOSS)
    if levels.take_profit is not None and bar.high >= levels.take_profit:
        hits.add(ExitReason.TAKE_PROFIT)
    if levels.trailing_active and bar.low <= levels.trailing_stop:
        hits.add(ExitReason.TRAILING_STOP)
    if params.max_holding_bars is not None and position.bars_held(bar.index) >= params.max_holding_bars:
        hits.add(ExitReason.MAX_HOLDING)
    return frozenset(hits)
