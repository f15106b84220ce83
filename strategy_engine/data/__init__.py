"""Data: aligned OHLCV + indicator feed."""

from strategy_engine.data.feed import IndicatorFeed, to_optional

__all__ = ["IndicatorFeed", "to_optional"]
