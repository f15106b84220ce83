"""
Signal scorer: sums the weights of the predicates that hold at bar i.
Scores are floored at zero so penalty predicates never produce a negative count.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from strategy_engine.core.params import StrategyParams
from strategy_engine.core.types import Bar, IndicatorSnapshot
from strategy_engine.signals.predicates import BarContext, Predicate

logger = logging.getLogger("strategy_engine.signals")


@dataclass(frozen=True)
class Score:
    """Buy/sell score at one bar plus the names of the predicates that fired."""
    buy: int = 0
    sell: int = 0
    fired_buy: Tuple[str, ...] = ()
    fired_sell: Tuple[str, ...] = ()
    entry_allowed: bool = True

    @classmethod
    def neutral(cls) -> "Score":
        return cls()


class SignalScorer:
    """
    Evaluates a declarative predicate set. Bars inside the warm-up window score (0, 0).
    entry_filters must all hold for a buy to be allowed; they do not add to the score.
    """

    def __init__(
        self,
        buy_predicates: Sequence[Predicate],
        sell_predicates: Sequence[Predicate],
        params: StrategyParams,
        entry_filters: Sequence[Predicate] = (),
        warmup: int = 0,
    ):
        self.buy_predicates = tuple(buy_predicates)
        self.sell_predicates = tuple(sell_predicates)
        self.entry_filters = tuple(entry_filters)
        self.params = params
        self.warmup = warmup

    @property
    def required_indicators(self) -> Tuple[str, ...]:
        names = set()
        for p in self.buy_predicates + self.sell_predicates + self.entry_filters:
            names.update(p.inputs)
        return tuple(sorted(names))

    def score(
        self,
        index: int,
        current: IndicatorSnapshot,
        previous: IndicatorSnapshot,
        bar: Bar,
        entry_price: Optional[float] = None,
    ) -> Score:
        if index < self.warmup:
            return Score.neutral()
        ctx = BarContext(
            index=index,
            current=current,
            previous=previous,
            bar=bar,
            params=self.params,
            entry_price=entry_price,
        )
        buy, fired_buy = _sum(self.buy_predicates, ctx)
        sell, fired_sell = _sum(self.sell_predicates, ctx)
        entry_allowed = all(f.evaluate(ctx) for f in self.entry_filters)
        return Score(
            buy=max(0, buy),
            sell=max(0, sell),
            fired_buy=fired_buy,
            fired_sell=fired_sell,
            entry_allowed=entry_allowed,
        )


def _sum(predicates: Sequence[Predicate], ctx: BarContext) -> Tuple[int, Tuple[str, ...]]:
    total = 0
    fired = []
    for p in predicates:
        if p.evaluate(ctx):
            total += p.weight
            fired.append(p.name)
    return total, tuple(fired)
