"""Backtesting: bar-by-bar engine and thread-pool batch runner."""

from strategy_engine.backtesting.engine import BacktestEngine, BacktestResult
from strategy_engine.backtesting.batch import BatchJob, BatchOutcome, run_batch

__all__ = ["BacktestEngine", "BacktestResult", "BatchJob", "BatchOutcome", "run_batch"]
