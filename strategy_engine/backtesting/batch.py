"""
Run independent (strategy, instrument) backtests on a thread pool.
Each job owns its feed, state machine and accountant; nothing is shared between jobs.
"""

from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from strategy_engine.backtesting.engine import BacktestEngine, BacktestResult, IndicatorInput
from strategy_engine.core.errors import ConfigurationError, StrategyEngineError
from strategy_engine.core.params import StrategyParams
from strategy_engine.strategies.base import StrategyVariant

logger = logging.getLogger("strategy_engine.batch")


@dataclass(frozen=True)
class BatchJob:
    label: str
    variant: Union[str, StrategyVariant]
    ohlcv: pd.DataFrame
    indicators: IndicatorInput = None
    params: Optional[Union[StrategyParams, Mapping[str, Any]]] = None
    start_capital: float = 10000.0
    strict: bool = False


@dataclass(frozen=True)
class BatchOutcome:
    """Result of one job, or the setup error that stopped it."""
    label: str
    result: Optional[BacktestResult] = None
    error: Optional[StrategyEngineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _run_job(job: BatchJob) -> BacktestResult:
    engine = BacktestEngine(job.variant, params=job.params, start_capital=job.start_capital, strict=job.strict)
    return engine.run(job.ohlcv, job.indicators, symbol=job.label)


def run_batch(jobs: Sequence[BatchJob], max_workers: int = 4) -> Dict[str, BatchOutcome]:
    """
    Run all jobs; outcomes keyed by label in submission order.
    A setup error in one job is recorded on its outcome and does not stop the others.
    """
    if max_workers < 1:
        raise ConfigurationError(f"max_workers must be >= 1, got {max_workers}")
    labels = [job.label for job in jobs]
    if len(set(labels)) != len(labels):
        raise ConfigurationError("batch job labels must be unique")

    outcomes: List[Optional[BatchOutcome]] = [None] * len(jobs)
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {pool.submit(_run_job, job): idx for idx, job in enumerate(jobs)}
        for future in as_completed(futures):
            idx = futures[future]
            label = jobs[idx].label
            try:
                outcomes[idx] = BatchOutcome(label=label, result=future.result())
            except StrategyEngineError as exc:
                logger.error("Job %s failed: %s", label, exc)
                outcomes[idx] = BatchOutcome(label=label, error=exc)

    ok = sum(1 for o in outcomes if o.ok)
    logger.info("Batch finished: %d/%d jobs ok", ok, len(jobs))
    return {o.label: o for o in outcomes}
