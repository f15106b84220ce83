"""Core: config, params, types, errors, logging."""

from strategy_engine.core.config import load_config, RunConfig
from strategy_engine.core.errors import (
    StrategyEngineError,
    ConfigurationError,
    InsufficientDataError,
    MissingIndicatorError,
)
from strategy_engine.core.params import StrategyParams
from strategy_engine.core.types import (
    Bar,
    EventKind,
    ExitReason,
    IndicatorSnapshot,
    PerformanceSummary,
    Position,
    PositionState,
    SignalEvent,
    Trade,
)
from strategy_engine.core.logger import setup_logging

__all__ = [
    "load_config",
    "RunConfig",
    "StrategyEngineError",
    "ConfigurationError",
    "InsufficientDataError",
    "MissingIndicatorError",
    "StrategyParams",
    "Bar",
    "EventKind",
    "ExitReason",
    "IndicatorSnapshot",
    "PerformanceSummary",
    "Position",
    "PositionState",
    "SignalEvent",
    "Trade",
    "setup_logging",
]
