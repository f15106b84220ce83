"""
Single-position lifecycle: FLAT <-> LONG.

step() is a pure function of (position, bar inputs); PositionStateMachine only keeps
the current position between calls. At most one transition happens per bar.
"""

from __future__ import annotations
import dataclasses
import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional

from strategy_engine.core.params import StrategyParams
from strategy_engine.core.types import (
    EXIT_PRIORITY,
    Bar,
    EventKind,
    ExitReason,
    Position,
    SignalEvent,
)
from strategy_engine.risk.levels import ExitLevels, check_exits, compute_exit_levels
from strategy_engine.risk.sizer import RiskSizer
from strategy_engine.signals.scorer import Score

logger = logging.getLogger("strategy_engine.engine")


@dataclass(frozen=True)
class BarInputs:
    """
    What the state machine sees at bar i.
    ready is False when price, ATR or any required indicator is undefined at i;
    such a bar never changes the position.
    """
    index: int
    bar: Bar
    atr: Optional[float]
    score: Score
    ready: bool = True


@dataclass(frozen=True)
class Transition:
    position: Position
    event: Optional[SignalEvent] = None
    levels: Optional[ExitLevels] = None
    triggers: FrozenSet[ExitReason] = frozenset()


def exit_reason(triggers: FrozenSet[ExitReason]) -> Optional[ExitReason]:
    """First trigger in priority order; None when nothing fired."""
    for reason in EXIT_PRIORITY:
        if reason in triggers:
            return reason
    return None


def _exit_kind(triggers: FrozenSet[ExitReason]) -> EventKind:
    if ExitReason.STOP_LOSS in triggers:
        return EventKind.STOP
    if ExitReason.TAKE_PROFIT in triggers:
        return EventKind.TAKE_PROFIT
    return EventKind.SELL


def step(
    position: Position,
    inputs: BarInputs,
    params: StrategyParams,
    sizer: RiskSizer,
) -> Transition:
    """Next position and the event emitted at this bar, if any."""
    if not inputs.ready:
        return Transition(position=position)

    bar = inputs.bar
    price = bar.close

    if not position.is_long:
        score = inputs.score
        if score.buy < params.min_signals_for_buy or not score.entry_allowed:
            return Transition(position=position)
        size = sizer.size(inputs.atr, price)
        opened = Position.open_long(price, inputs.index, size.fraction)
        event = SignalEvent(kind=EventKind.BUY, index=inputs.index, price=price, size_fraction=size.fraction)
        return Transition(position=opened, event=event)

    held = position
    if price > position.highest_price_since_entry:
        held = dataclasses.replace(position, highest_price_since_entry=price)
    levels = compute_exit_levels(held, inputs.atr, params)
    triggers = set(check_exits(bar, held, levels, params))
    if inputs.score.sell >= params.min_signals_for_sell:
        triggers.add(ExitReason.SIGNAL)
    triggers = frozenset(triggers)

    if not triggers:
        return Transition(position=held, levels=levels)

    event = SignalEvent(
        kind=_exit_kind(triggers),
        index=inputs.index,
        price=price,
        size_fraction=held.size_fraction,
        reason=exit_reason(triggers),
        triggers=triggers,
    )
    return Transition(position=Position.flat(), event=event, levels=levels, triggers=triggers)


class PositionStateMachine:
    """Owns the position for one (strategy, instrument) run."""

    def __init__(self, params: StrategyParams, sizer: Optional[RiskSizer] = None):
        self.params = params
        self.sizer = sizer or RiskSizer.from_params(params)
        self.position = Position.flat()

    def advance(self, inputs: BarInputs) -> Transition:
        transition = step(self.position, inputs, self.params, self.sizer)
        if transition.event is not None:
            ev = transition.event
            if ev.is_exit:
                logger.debug(
                    "Bar %d: %s at %.4f (reason=%s, triggers=%s)",
                    ev.index, ev.kind.value, ev.price, ev.reason.value,
                    ",".join(sorted(t.value for t in ev.triggers)),
                )
            else:
                logger.debug("Bar %d: buy at %.4f size=%.4f", ev.index, ev.price, ev.size_fraction)
        self.position = transition.position
        return transition

    def reset(self) -> None:
        self.position = Position.flat()
