"""
Setup errors. Raised before a scan starts; per-bar conditions never raise.
"""

from __future__ import annotations
from typing import Iterable, Tuple


class StrategyEngineError(Exception):
    """Base class for engine errors."""


class ConfigurationError(StrategyEngineError):
    """Invalid strategy parameters, variant definition or run settings."""


class InsufficientDataError(StrategyEngineError):
    """Series shorter than the combined indicator warm-up."""

    def __init__(self, n_bars: int, warmup: int):
        self.n_bars = n_bars
        self.warmup = warmup
        super().__init__(f"{n_bars} bars available, warm-up needs more than {warmup}")


class MissingIndicatorError(StrategyEngineError):
    """A predicate or risk rule references a series the feed does not provide."""

    def __init__(self, missing: Iterable[str]):
        self.missing: Tuple[str, ...] = tuple(sorted(set(missing)))
        super().__init__(f"missing indicator series: {', '.join(self.missing)}")
