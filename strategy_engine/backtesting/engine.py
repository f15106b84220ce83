"""
Backtest engine: no lookahead, one bar at a time, exits filled at the bar close.
Bar i only ever sees indicator values at i and i-1.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd

from strategy_engine.analytics.accountant import PerformanceAccountant
from strategy_engine.analytics.metrics import drawdown_series
from strategy_engine.core.errors import ConfigurationError, InsufficientDataError
from strategy_engine.core.params import StrategyParams
from strategy_engine.core.types import (
    EquityPoint,
    ExitReason,
    PerformanceSummary,
    SignalEvent,
    Trade,
)
from strategy_engine.data.feed import IndicatorFeed, SeriesLike
from strategy_engine.engine.state_machine import BarInputs, PositionStateMachine, Transition
from strategy_engine.signals.predicates import crossover_pairs
from strategy_engine.signals.scorer import Score
from strategy_engine.strategies.base import StrategyVariant
from strategy_engine.strategies.presets import get_variant

logger = logging.getLogger("strategy_engine.backtest")

SIGNAL_COLUMNS = (
    "buy_signal", "sell_signal", "stop_signal", "take_profit_signal", "position_size",
    "buy_score", "sell_score", "exit_reason", "stop_loss_level", "take_profit_level", "trailing_stop_level",
)

IndicatorInput = Optional[Union[pd.DataFrame, Mapping[str, SeriesLike]]]


@dataclass
class BacktestResult:
    """
    Backtest output for one (strategy, instrument) run.
    signals: one row per bar (0/1 signal columns, position_size, scores, exit reason, active levels).
    """
    symbol: str
    variant: str
    params: StrategyParams
    warmup: int
    summary: PerformanceSummary
    signals: pd.DataFrame
    equity_curve: pd.DataFrame
    events: List[SignalEvent] = field(default_factory=list)
    trades: List[Trade] = field(default_factory=list)

    @property
    def buy_signal(self) -> List[int]:
        return self.signals["buy_signal"].tolist()

    @property
    def sell_signal(self) -> List[int]:
        return self.signals["sell_signal"].tolist()

    @property
    def stop_signal(self) -> List[int]:
        return self.signals["stop_signal"].tolist()

    @property
    def take_profit_signal(self) -> List[int]:
        return self.signals["take_profit_signal"].tolist()

    @property
    def position_size(self) -> List[float]:
        return self.signals["position_size"].tolist()


def resolve_params(
    variant: StrategyVariant,
    params: Optional[Union[StrategyParams, Mapping[str, Any]]] = None,
) -> StrategyParams:
    """Variant defaults, a mapping of overrides on top of them, or a full StrategyParams; always validated."""
    if params is None or isinstance(params, Mapping):
        return variant.build_params(params)
    return params.validate(crossover_pairs(variant.predicates))


class BacktestEngine:
    """
    Runs one strategy variant over a pre-computed indicator feed.
    strict=False turns too-short input into an all-neutral result; strict=True raises.
    """

    def __init__(
        self,
        variant: Union[str, StrategyVariant],
        params: Optional[Union[StrategyParams, Mapping[str, Any]]] = None,
        start_capital: float = 10000.0,
        strict: bool = False,
    ):
        self.variant = get_variant(variant) if isinstance(variant, str) else variant
        self.params = resolve_params(self.variant, params)
        if not start_capital > 0:
            raise ConfigurationError(f"start_capital must be positive, got {start_capital}")
        self.start_capital = float(start_capital)
        self.strict = strict

    def run(
        self,
        ohlcv: pd.DataFrame,
        indicators: IndicatorInput = None,
        symbol: str = "",
    ) -> BacktestResult:
        """
        Scan the series bar by bar.
        Setup errors (ConfigurationError, MissingIndicatorError, InsufficientDataError when strict)
        are raised before the first bar; nothing inside the scan raises.
        """
        feed = IndicatorFeed(ohlcv, indicators)
        required = self.variant.required_indicators
        feed.require(required)
        n = len(feed)
        warmup = max(feed.warmup_bars(required), self.params.warmup_bars)
        if n <= warmup:
            err = InsufficientDataError(n, warmup)
            if self.strict:
                raise err
            logger.warning("%s %s: %s; returning neutral result", self.variant.name, symbol or "-", err)
            return self._neutral_result(ohlcv, feed, symbol, warmup)

        logger.info("Backtest %s %s: %d bars, warm-up %d", self.variant.name, symbol or "-", n, warmup)
        scorer = self.variant.scorer(self.params, warmup)
        machine = PositionStateMachine(self.params)
        accountant = PerformanceAccountant(self.start_capital)
        closes = feed.closes()
        events: List[SignalEvent] = []
        rows: List[Dict[str, Any]] = []

        for i in range(n):
            bar = feed.bar(i)
            current = feed.snapshot(i, required)
            ready = i >= warmup and feed.price_defined(i) and current.defined(*required)
            score = Score.neutral()
            if ready:
                position = machine.position
                score = scorer.score(
                    i,
                    current,
                    feed.snapshot(i - 1, required),
                    bar,
                    entry_price=position.entry_price if position.is_long else None,
                )
            transition = machine.advance(BarInputs(index=i, bar=bar, atr=current.get("atr"), score=score, ready=ready))
            accountant.on_bar(i, closes[i], transition.event)
            if transition.event is not None:
                events.append(transition.event)
            rows.append(_signal_row(transition, score))

        accounting = accountant.finish()
        summary = accounting.summary
        logger.info(
            "Backtest %s %s done: trades=%d return=%.2f%% max_dd=%.2f%% pf=%s",
            self.variant.name, symbol or "-", summary.trade_count, summary.total_return_pct,
            summary.max_drawdown * 100.0, f"{summary.profit_factor:.2f}",
        )
        return BacktestResult(
            symbol=symbol,
            variant=self.variant.name,
            params=self.params,
            warmup=warmup,
            summary=summary,
            signals=pd.DataFrame(rows, index=ohlcv.index, columns=list(SIGNAL_COLUMNS)),
            equity_curve=_equity_frame(accounting.equity_curve),
            events=events,
            trades=accounting.trades,
        )

    def _neutral_result(self, ohlcv: pd.DataFrame, feed: IndicatorFeed, symbol: str, warmup: int) -> BacktestResult:
        rows = [_signal_row(None, Score.neutral()) for _ in range(len(feed))]
        flat = [
            EquityPoint(index=i, capital=self.start_capital, shares=0.0, equity=self.start_capital)
            for i in range(len(feed))
        ]
        return BacktestResult(
            symbol=symbol,
            variant=self.variant.name,
            params=self.params,
            warmup=warmup,
            summary=PerformanceSummary.neutral(self.start_capital),
            signals=pd.DataFrame(rows, index=ohlcv.index, columns=list(SIGNAL_COLUMNS)),
            equity_curve=_equity_frame(flat),
        )


def _signal_row(transition: Optional[Transition], score: Score) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "buy_signal": 0,
        "sell_signal": 0,
        "stop_signal": 0,
        "take_profit_signal": 0,
        "position_size": 0.0,
        "buy_score": score.buy,
        "sell_score": score.sell,
        "exit_reason": None,
        "stop_loss_level": None,
        "take_profit_level": None,
        "trailing_stop_level": None,
    }
    if transition is None:
        return row
    event = transition.event
    if event is not None and not event.is_exit:
        row["buy_signal"] = 1
        row["position_size"] = event.size_fraction
    elif event is not None:
        row["sell_signal"] = 1
        row["stop_signal"] = int(ExitReason.STOP_LOSS in event.triggers)
        row["take_profit_signal"] = int(ExitReason.TAKE_PROFIT in event.triggers)
        row["exit_reason"] = event.reason.value
    elif transition.position.is_long:
        row["position_size"] = transition.position.size_fraction
    levels = transition.levels
    if levels is not None:
        row["stop_loss_level"] = levels.stop_loss
        row["take_profit_level"] = levels.take_profit
        row["trailing_stop_level"] = levels.trailing_stop if levels.trailing_active else None
    return row


def _equity_frame(points: List[EquityPoint]) -> pd.DataFrame:
    frame = pd.DataFrame(
        [(p.index, p.capital, p.shares, p.equity) for p in points],
        columns=["bar", "capital", "shares", "equity"],
    )
    frame["drawdown"] = drawdown_series(frame["equity"].to_numpy())
    return frame
