"""Unit tests for core.params and strategy variant presets."""

import pytest
from strategy_engine.core.errors import ConfigurationError
from strategy_engine.core.params import StrategyParams
from strategy_engine.strategies.presets import VARIANTS, get_variant, variant_names


def test_defaults_validate():
    assert StrategyParams().validate() == StrategyParams()


@pytest.mark.parametrize("changes", [
    {"rsi_oversold": 80.0, "rsi_overbought": 70.0},
    {"rsi_overbought": 120.0},
    {"strong_trend_pct": -1.0},
    {"volume_threshold": 0.0},
    {"min_signals_for_buy": 0},
    {"min_signals_for_sell": True},
    {"stop_loss_atr_multiple": -2.0},
    {"trailing_stop_enabled": True, "trailing_stop_atr_multiple": 0.0},
    {"max_holding_bars": 0},
    {"min_position_size_pct": 0.5, "max_position_size_pct": 0.25},
    {"position_size_basis": 0.9, "max_position_size_pct": 0.5},
    {"max_position_size_pct": 0.0},
    {"high_volatility_size_scale": 0.0},
    {"atr_position_size_factor": 0.0},
    {"williams_oversold": -10.0},
    {"warmup_bars": -1},
    {"atr_multiplier": float("nan")},
])
def test_invalid_params_rejected(changes):
    with pytest.raises(ConfigurationError):
        StrategyParams(**changes).validate()


def test_fast_period_must_be_shorter_than_slow():
    params = StrategyParams(indicator_periods={"sma_short": 50, "sma_long": 20})
    with pytest.raises(ConfigurationError, match="sma_short"):
        params.validate([("sma_short", "sma_long")])
    # pairs without known periods are not checked
    params.validate([("ema_fast", "ema_slow")])


def test_cap_basis_defaults_to_max():
    assert StrategyParams(max_position_size_pct=0.3).cap_basis == 0.3
    assert StrategyParams(position_size_basis=0.2, max_position_size_pct=0.3).cap_basis == 0.2


def test_from_mapping_overlays_base():
    base = StrategyParams(rsi_oversold=25.0)
    params = StrategyParams.from_mapping({"min_signals_for_buy": 2, "indicator_periods": {"a": "5"}}, base=base)
    assert params.rsi_oversold == 25.0
    assert params.min_signals_for_buy == 2
    assert params.indicator_periods == {"a": 5}


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ConfigurationError, match="bogus"):
        StrategyParams.from_mapping({"bogus": 1})


def test_all_presets_build_valid_params():
    for name in variant_names():
        variant = get_variant(name)
        params = variant.build_params()
        assert params == variant.defaults
        assert "atr" in variant.required_indicators


def test_unknown_variant():
    with pytest.raises(ConfigurationError, match="unknown strategy variant"):
        get_variant("nope")


def test_variant_overrides_validated():
    with pytest.raises(ConfigurationError):
        VARIANTS["hybrid_adaptive"].build_params({"min_signals_for_buy": 0})
    params = VARIANTS["hybrid_adaptive"].build_params({"max_position_size_pct": 0.1})
    assert params.cap_basis == 0.1


def test_variant_rejects_inverted_crossover_periods():
    with pytest.raises(ConfigurationError):
        VARIANTS["intraday"].build_params({"indicator_periods": {"ema_fast": 30, "ema_slow": 10}})


def test_breakout_variant_weights_volume_breakout():
    weights = {p.name: p.weight for p in VARIANTS["volatility_breakout"].buy}
    assert weights["volatility_breakout_volume"] == 2


def test_hybrid_variant_penalises_ranging_market():
    variant = VARIANTS["hybrid_adaptive"]
    assert {p.name: p.weight for p in variant.buy}["ranging_calm_market"] == -1
    assert {p.name: p.weight for p in variant.sell}["underwater_high_volatility"] == 1
