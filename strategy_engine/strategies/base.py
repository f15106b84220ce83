"""Strategy variant: named predicate sets plus default parameters."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from strategy_engine.core.params import StrategyParams
from strategy_engine.signals.predicates import Predicate, crossover_pairs
from strategy_engine.signals.scorer import SignalScorer

# Risk management reads ATR on every bar, whatever the predicates use
RISK_INDICATORS: Tuple[str, ...] = ("atr",)


@dataclass(frozen=True)
class StrategyVariant:
    """
    A strategy is configuration data: ordered buy/sell predicates (score adjustments are
    predicates with non-unit or negative weight), entry filters and default params.
    """
    name: str
    description: str
    buy: Tuple[Predicate, ...]
    sell: Tuple[Predicate, ...]
    entry_filters: Tuple[Predicate, ...] = ()
    defaults: StrategyParams = field(default_factory=StrategyParams)

    @property
    def predicates(self) -> Tuple[Predicate, ...]:
        return self.buy + self.sell + self.entry_filters

    @property
    def required_indicators(self) -> Tuple[str, ...]:
        names = set(RISK_INDICATORS)
        for p in self.predicates:
            names.update(p.inputs)
        return tuple(sorted(names))

    def build_params(self, overrides: Optional[Mapping[str, Any]] = None) -> StrategyParams:
        """Variant defaults overlaid with overrides, validated (ConfigurationError on bad values)."""
        params = StrategyParams.from_mapping(overrides or {}, base=self.defaults)
        return params.validate(crossover_pairs(self.predicates))

    def scorer(self, params: StrategyParams, warmup: int = 0) -> SignalScorer:
        return SignalScorer(
            buy_predicates=self.buy,
            sell_predicates=self.sell,
            params=params,
            entry_filters=self.entry_filters,
            warmup=warmup,
        )
