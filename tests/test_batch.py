"""Unit tests for backtesting.batch."""

import numpy as np
import pandas as pd
import pytest
from strategy_engine.backtesting.batch import BatchJob, run_batch
from strategy_engine.backtesting.engine import BacktestEngine
from strategy_engine.core.errors import ConfigurationError, MissingIndicatorError
from strategy_engine.core.params import StrategyParams
from strategy_engine.signals.predicates import crosses_above, crosses_below
from strategy_engine.strategies.base import StrategyVariant

CROSS = StrategyVariant(
    name="cross",
    description="fast/slow crossover",
    buy=(crosses_above("fast", "slow"),),
    sell=(crosses_below("fast", "slow"),),
    defaults=StrategyParams(min_signals_for_buy=1, min_signals_for_sell=1, take_profit_atr_multiple=None),
)


def _data(seed, n=120):
    rng = np.random.default_rng(seed)
    close = 50.0 + np.cumsum(rng.normal(0.0, 1.0, n))
    ohlcv = pd.DataFrame({
        "open": close, "high": close + 1.0, "low": close - 1.0, "close": close,
        "volume": np.full(n, 100.0),
    })
    fast = pd.Series(close).rolling(5).mean()
    slow = pd.Series(close).rolling(20).mean()
    atr = pd.Series(np.full(n, 1.0))
    return ohlcv, {"fast": fast, "slow": slow, "atr": atr}


def test_batch_matches_sequential_runs():
    jobs = []
    for i, label in enumerate(["AAA", "BBB", "CCC", "DDD"]):
        ohlcv, ind = _data(seed=i)
        jobs.append(BatchJob(label=label, variant=CROSS, ohlcv=ohlcv, indicators=ind))
    outcomes = run_batch(jobs, max_workers=3)
    assert list(outcomes) == ["AAA", "BBB", "CCC", "DDD"]
    for job in jobs:
        outcome = outcomes[job.label]
        assert outcome.ok
        expected = BacktestEngine(CROSS).run(job.ohlcv, job.indicators, symbol=job.label)
        assert outcome.result.summary == expected.summary
        assert outcome.result.symbol == job.label


def test_setup_error_reported_per_job():
    ohlcv, ind = _data(seed=1)
    broken = {k: v for k, v in ind.items() if k != "atr"}
    outcomes = run_batch([
        BatchJob(label="good", variant=CROSS, ohlcv=ohlcv, indicators=ind),
        BatchJob(label="bad", variant=CROSS, ohlcv=ohlcv, indicators=broken),
        BatchJob(label="bad_params", variant=CROSS, ohlcv=ohlcv, indicators=ind, params={"nope": 1}),
    ], max_workers=2)
    assert outcomes["good"].ok
    assert isinstance(outcomes["bad"].error, MissingIndicatorError)
    assert isinstance(outcomes["bad_params"].error, ConfigurationError)
    assert outcomes["bad"].result is None


def test_duplicate_labels_rejected():
    ohlcv, ind = _data(seed=2)
    job = BatchJob(label="X", variant=CROSS, ohlcv=ohlcv, indicators=ind)
    with pytest.raises(ConfigurationError):
        run_batch([job, job])


def test_worker_count_validated():
    with pytest.raises(ConfigurationError):
        run_batch([], max_workers=0)


def test_empty_batch():
    assert run_batch([]) == {}
