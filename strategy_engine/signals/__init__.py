"""Signals: named predicates and the buy/sell scorer."""

from strategy_engine.signals.predicates import BarContext, Predicate
from strategy_engine.signals.scorer import Score, SignalScorer

__all__ = ["BarContext", "Predicate", "Score", "SignalScorer"]
