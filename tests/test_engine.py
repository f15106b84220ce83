"""End-to-end tests for backtesting.engine."""

import numpy as np
import pandas as pd
import pytest
from strategy_engine.backtesting.engine import BacktestEngine
from strategy_engine.core.errors import ConfigurationError, InsufficientDataError, MissingIndicatorError
from strategy_engine.core.params import StrategyParams
from strategy_engine.signals.predicates import crosses_above, crosses_below
from strategy_engine.strategies.base import StrategyVariant
from strategy_engine.strategies.presets import get_variant

CROSS = StrategyVariant(
    name="cross",
    description="fast/slow crossover",
    buy=(crosses_above("fast", "slow"),),
    sell=(crosses_below("fast", "slow"),),
    defaults=StrategyParams(
        min_signals_for_buy=1,
        min_signals_for_sell=1,
        stop_loss_atr_multiple=None,
        take_profit_atr_multiple=None,
        min_position_size_pct=1.0,
    ),
)

CLOSES = [100, 100, 100, 101, 110, 108, 100, 102, 104, 95, 96, 97]
FAST = [None, 9, 11, 11, 9, 9, 11, 11, 11, 9, 9, 9]


def _frame(closes=CLOSES):
    close = np.asarray(closes, dtype=float)
    return pd.DataFrame({
        "open": close,
        "high": close + 0.5,
        "low": close - 0.5,
        "close": close,
        "volume": np.full(len(close), 1000.0),
    })


def _indicators(fast=FAST):
    n = len(fast)
    return {"fast": fast, "slow": [10.0] * n, "atr": [None] + [1.0] * (n - 1)}


def test_crossover_round_trips():
    result = BacktestEngine(CROSS).run(_frame(), _indicators(), symbol="TEST")
    s = result.summary
    assert result.warmup == 1
    assert [i for i, v in enumerate(result.buy_signal) if v] == [2, 6]
    assert [i for i, v in enumerate(result.sell_signal) if v] == [4, 9]
    assert s.trade_count == 2
    assert s.win_rate_pct == 50.0
    assert result.trades[0].pnl == pytest.approx(1000.0)
    assert result.trades[1].pnl == pytest.approx(-550.0)
    assert s.final_value == pytest.approx(10450.0)
    assert s.total_return_pct == pytest.approx(4.5)
    assert s.profit_factor == pytest.approx(1000.0 / 550.0)
    assert s.max_drawdown == pytest.approx((11440.0 - 10450.0) / 11440.0)


def test_position_size_column():
    result = BacktestEngine(CROSS).run(_frame(), _indicators())
    sizes = result.position_size
    assert sizes[2] == 1.0 and sizes[3] == 1.0
    assert sizes[4] == 0.0 and sizes[5] == 0.0
    assert all(0.0 <= x <= 1.0 for x in sizes)


def test_undefined_indicator_holds_position():
    fast = list(FAST)
    fast[4] = None
    result = BacktestEngine(CROSS).run(_frame(), _indicators(fast))
    # bar 4 is a hold, bar 5 has no previous value, so the exit waits for bar 9
    assert [i for i, v in enumerate(result.sell_signal) if v] == [9]
    assert result.position_size[4] == 1.0
    assert result.summary.trade_count == 1


def test_stop_loss_exit_via_engine():
    frame = _frame()
    frame.loc[3, "low"] = 96.0
    result = BacktestEngine(CROSS, params={"stop_loss_atr_multiple": 3.0}).run(frame, _indicators())
    assert result.stop_signal[3] == 1
    assert result.sell_signal[3] == 1
    assert result.signals["exit_reason"].iloc[3] == "stop_loss"
    assert result.signals["stop_loss_level"].iloc[3] == pytest.approx(97.0)
    assert result.trades[0].exit_price == 101.0


def test_zero_close_bar_is_a_hold():
    closes = list(CLOSES)
    closes[2] = 0.0
    result = BacktestEngine(CROSS).run(_frame(closes), _indicators())
    # the cross at bar 2 is skipped and no new cross happens until bar 6
    assert result.buy_signal[2] == 0
    assert [i for i, v in enumerate(result.buy_signal) if v] == [6]
    assert [i for i, v in enumerate(result.sell_signal) if v] == [9]
    assert result.summary.trade_count == sum(result.sell_signal) == 1
    assert result.trades[0].entry_price == 100.0


def test_never_buy_and_sell_on_same_bar():
    result = BacktestEngine(CROSS).run(_frame(), _indicators())
    assert not any(b and s for b, s in zip(result.buy_signal, result.sell_signal))


def test_all_undefined_indicators_give_neutral_result():
    n = len(CLOSES)
    result = BacktestEngine(CROSS).run(_frame(), {"fast": [None] * n, "slow": [None] * n, "atr": [None] * n})
    assert sum(result.buy_signal) == 0
    assert sum(result.sell_signal) == 0
    assert result.summary.trade_count == 0
    assert result.summary.total_return_pct == 0.0
    assert result.summary.profit_factor == 0.0
    assert len(result.signals) == n


def test_strict_mode_raises_on_insufficient_data():
    n = len(CLOSES)
    with pytest.raises(InsufficientDataError):
        BacktestEngine(CROSS, strict=True).run(_frame(), {"fast": [None] * n, "slow": [None] * n, "atr": [1.0] * n})


def test_warmup_floor_from_params():
    result = BacktestEngine(CROSS, params={"warmup_bars": 5}).run(_frame(), _indicators())
    assert result.warmup == 5
    assert [i for i, v in enumerate(result.buy_signal) if v] == [6]


def test_missing_indicator_fails_before_scan():
    with pytest.raises(MissingIndicatorError):
        BacktestEngine(CROSS).run(_frame(), {"fast": FAST, "slow": [10.0] * len(FAST)})


def test_invalid_setup_rejected():
    with pytest.raises(ConfigurationError):
        BacktestEngine(CROSS, start_capital=0.0)
    with pytest.raises(ConfigurationError):
        BacktestEngine("no_such_variant")
    with pytest.raises(ConfigurationError):
        BacktestEngine(CROSS, params={"min_signals_for_buy": 0})


def _random_feed(names, n=300, seed=7):
    rng = np.random.default_rng(seed)
    close = 100.0 + np.cumsum(rng.normal(0.0, 1.5, n))
    close = np.maximum(close, 5.0)
    ohlcv = pd.DataFrame({
        "open": close,
        "high": close + rng.uniform(0.1, 2.0, n),
        "low": close - rng.uniform(0.1, 2.0, n),
        "close": close,
        "volume": rng.uniform(500.0, 3000.0, n),
    })
    indicators = {}
    for name in names:
        if name in ohlcv.columns:
            continue
        if name == "atr":
            values = rng.uniform(0.5, 4.0, n)
        elif name in ("rsi", "mfi", "stoch_k", "stoch_d"):
            values = rng.uniform(0.0, 100.0, n)
        elif name == "williams_r":
            values = rng.uniform(-100.0, 0.0, n)
        elif name == "volume_sma":
            values = rng.uniform(500.0, 3000.0, n)
        else:
            values = close + rng.normal(0.0, 2.0, n)
        values[:20] = np.nan
        indicators[name] = values
    return ohlcv, indicators


@pytest.mark.parametrize("name", ["volatility_breakout", "adaptive_trend", "hybrid_adaptive", "intraday", "crypto_momentum"])
def test_presets_hold_invariants(name):
    variant = get_variant(name)
    ohlcv, indicators = _random_feed(variant.required_indicators)
    first = BacktestEngine(variant).run(ohlcv, indicators)
    second = BacktestEngine(variant).run(ohlcv, indicators)

    assert not any(b and s for b, s in zip(first.buy_signal, first.sell_signal))
    assert all(v == 0 for v in first.buy_signal[:20])
    exits = sum(1 for e in first.events if e.is_exit)
    assert first.summary.trade_count == exits
    assert 0.0 <= first.summary.max_drawdown <= 1.0
    params = first.params
    for size, buy in zip(first.position_size, first.buy_signal):
        assert 0.0 <= size <= 1.0
        if buy:
            assert params.min_position_size_pct <= size <= params.max_position_size_pct
    # same inputs, same outputs
    assert first.summary == second.summary
    assert first.signals.equals(second.signals)
