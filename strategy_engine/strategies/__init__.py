"""Strategies: variant definition and shipped presets."""

from strategy_engine.strategies.base import StrategyVariant
from strategy_engine.strategies.presets import VARIANTS, get_variant, variant_names

__all__ = ["StrategyVariant", "VARIANTS", "get_variant", "variant_names"]
