"""
Shipped strategy variants. Each one is a predicate list plus defaults; the engine is shared.

Indicator names expected in the feed:
  sma_short, sma_long, ema_short, ema_mid, ema_long, ema_fast, ema_slow, rsi, roc,
  bb_upper, bb_middle, bb_lower, macd, macd_signal, atr, obv, obv_ema, volume_sma,
  stoch_k, stoch_d, williams_r, psar, mfi
"""

from __future__ import annotations
from typing import Dict, List

from strategy_engine.core.errors import ConfigurationError
from strategy_engine.core.params import StrategyParams
from strategy_engine.signals.predicates import (
    all_of,
    any_of,
    above,
    above_level,
    atr_momentum,
    below,
    below_level,
    close_at_or_above,
    close_at_or_below,
    crosses_above,
    crosses_below,
    falling,
    high_relative_volume,
    obv_divergence,
    obv_trend,
    price_divergence,
    ranging_calm_market,
    rising,
    roc_acceleration,
    stacked,
    strong_trend,
    underwater_in_high_volatility,
    volatility_breakout,
    volume_confirmation,
)
from strategy_engine.strategies.base import StrategyVariant


def _rsi_reversal(bullish: bool):
    if bullish:
        return all_of("rsi_oversold_rising", below_level("rsi", "rsi_oversold"), rising("rsi"))
    return all_of("rsi_overbought_falling", above_level("rsi", "rsi_overbought"), falling("rsi"))


def _ema_trend(bullish: bool):
    return stacked("ema_short", "ema_mid", "ema_long", bullish=bullish,
                   name="bullish_ema_trend" if bullish else "bearish_ema_trend")


def _obv_with_volume(bullish: bool):
    return all_of(
        "obv_rising_volume" if bullish else "obv_falling_volume",
        obv_trend(bullish=bullish),
        high_relative_volume(),
    )


VOLATILITY_BREAKOUT = StrategyVariant(
    name="volatility_breakout",
    description="Band breakouts confirmed by volume, weighted toward volatility; full-capital entries, signal exits only.",
    buy=(
        crosses_above("sma_short", "sma_long"),
        below_level("rsi", "rsi_oversold"),
        rising("rsi"),
        close_at_or_below("bb_lower"),
        crosses_above("macd", "macd_signal"),
        all_of("volatility_breakout_volume", volatility_breakout(bullish=True), high_relative_volume()).weighted(2),
        obv_divergence(bullish=True),
        atr_momentum(bullish=True),
    ),
    sell=(
        crosses_below("sma_short", "sma_long"),
        above_level("rsi", "rsi_overbought"),
        falling("rsi"),
        close_at_or_above("bb_upper"),
        crosses_below("macd", "macd_signal"),
        all_of("volatility_breakdown_volume", volatility_breakout(bullish=False), high_relative_volume()).weighted(2),
        obv_divergence(bullish=False),
        atr_momentum(bullish=False),
    ),
    defaults=StrategyParams(
        rsi_overbought=75.0,
        rsi_oversold=25.0,
        atr_multiplier=3.0,
        high_volatility_atr_pct=2.0,
        volume_threshold=1.5,
        stop_loss_atr_multiple=None,
        take_profit_atr_multiple=None,
        position_size_basis=1.0,
        min_position_size_pct=1.0,
        max_position_size_pct=1.0,
        indicator_periods={"sma_short": 5, "sma_long": 20},
    ),
)

ADAPTIVE_TREND = StrategyVariant(
    name="adaptive_trend",
    description="EMA trend filter with mean-reversion entries, fixed ATR stop and target, ATR-scaled size.",
    buy=(
        crosses_above("ema_short", "ema_mid"),
        all_of("strong_bullish_trend", _ema_trend(True), strong_trend("ema_short", "ema_long")),
        _rsi_reversal(True),
        all_of("lower_band_in_uptrend", close_at_or_below("bb_lower"), _ema_trend(True)),
        crosses_above("macd", "macd_signal"),
        _obv_with_volume(True),
        price_divergence("macd", bullish=True),
        atr_momentum(bullish=True),
    ),
    sell=(
        crosses_below("ema_short", "ema_mid"),
        all_of("strong_bearish_trend", _ema_trend(False), strong_trend("ema_short", "ema_long")),
        _rsi_reversal(False),
        all_of("upper_band_in_downtrend", close_at_or_above("bb_upper"), _ema_trend(False)),
        crosses_below("macd", "macd_signal"),
        _obv_with_volume(False),
        price_divergence("macd", bullish=False),
        atr_momentum(bullish=False),
    ),
    defaults=StrategyParams(
        strong_trend_pct=2.0,
        high_volatility_atr_pct=1.5,
        volume_threshold=1.2,
        stop_loss_atr_multiple=3.0,
        take_profit_atr_multiple=4.0,
        position_size_basis=1.0,
        min_position_size_pct=0.1,
        max_position_size_pct=1.0,
        atr_position_size_factor=2.0,
        indicator_periods={"ema_short": 5, "ema_mid": 21, "ema_long": 50},
    ),
)

HYBRID_ADAPTIVE = StrategyVariant(
    name="hybrid_adaptive",
    description="EMA and SMA trend, momentum and volume signals with a trailing stop and volatility-reduced size.",
    buy=(
        _ema_trend(True),
        above("sma_short", "sma_long", name="bullish_sma_trend"),
        crosses_above("ema_short", "ema_mid"),
        crosses_above("sma_short", "sma_long"),
        all_of("strong_bullish_trend", strong_trend("ema_short", "ema_long"), _ema_trend(True)),
        _rsi_reversal(True),
        all_of(
            "lower_band_in_uptrend",
            close_at_or_below("bb_lower"),
            any_of("any_bullish_trend", _ema_trend(True), above("sma_short", "sma_long")),
        ),
        crosses_above("macd", "macd_signal"),
        _obv_with_volume(True),
        price_divergence("macd", bullish=True),
        roc_acceleration(bullish=True),
        ranging_calm_market().weighted(-1),
    ),
    sell=(
        _ema_trend(False),
        below("sma_short", "sma_long", name="bearish_sma_trend"),
        crosses_below("ema_short", "ema_mid"),
        crosses_below("sma_short", "sma_long"),
        all_of("strong_bearish_trend", strong_trend("ema_short", "ema_long"), _ema_trend(False)),
        _rsi_reversal(False),
        all_of(
            "upper_band_in_downtrend",
            close_at_or_above("bb_upper"),
            any_of("any_bearish_trend", _ema_trend(False), below("sma_short", "sma_long")),
        ),
        crosses_below("macd", "macd_signal"),
        _obv_with_volume(False),
        price_divergence("macd", bullish=False),
        roc_acceleration(bullish=False),
        underwater_in_high_volatility(),
        ranging_calm_market().weighted(-1),
    ),
    defaults=StrategyParams(
        strong_trend_pct=2.5,
        high_volatility_atr_pct=1.5,
        band_proximity_pct=0.5,
        volume_threshold=1.3,
        stop_loss_atr_multiple=3.0,
        take_profit_atr_multiple=4.5,
        trailing_stop_enabled=True,
        trailing_stop_atr_multiple=2.5,
        min_position_size_pct=0.0,
        max_position_size_pct=0.25,
        atr_position_size_factor=2.0,
        high_volatility_size_scale=0.75,
        indicator_periods={"ema_short": 8, "ema_mid": 21, "ema_long": 50, "sma_short": 10, "sma_long": 50},
    ),
)

INTRADAY = StrategyVariant(
    name="intraday",
    description="Minute-bar oscillator confluence with a volume entry filter, tight ATR stop and target, time-boxed holds.",
    buy=(
        crosses_above("ema_fast", "ema_slow"),
        above("close", "ema_fast", name="close_above_ema_fast"),
        _rsi_reversal(True),
        all_of("williams_r_bullish", below_level("williams_r", "williams_oversold"), rising("williams_r")),
        any_of("stoch_bullish", crosses_above("stoch_k", "stoch_d"), below_level("stoch_k", "stoch_oversold")),
        above("close", "psar", name="psar_bullish"),
        close_at_or_below("bb_lower"),
        below_level("mfi", "mfi_oversold"),
        price_divergence("rsi", bullish=True),
    ),
    sell=(
        crosses_below("ema_fast", "ema_slow"),
        below("close", "ema_fast", name="close_below_ema_fast"),
        _rsi_reversal(False),
        all_of("williams_r_bearish", above_level("williams_r", "williams_overbought"), falling("williams_r")),
        any_of("stoch_bearish", crosses_below("stoch_k", "stoch_d"), above_level("stoch_k", "stoch_overbought")),
        below("close", "psar", name="psar_bearish"),
        close_at_or_above("bb_upper"),
        above_level("mfi", "mfi_overbought"),
    ),
    entry_filters=(volume_confirmation(),),
    defaults=StrategyParams(
        volume_threshold=1.2,
        entry_volume_filter=True,
        stop_loss_atr_multiple=2.0,
        take_profit_atr_multiple=3.0,
        max_holding_bars=60,
        position_size_basis=1.0,
        min_position_size_pct=1.0,
        max_position_size_pct=1.0,
        indicator_periods={"ema_fast": 8, "ema_slow": 21},
    ),
)

CRYPTO_MOMENTUM = StrategyVariant(
    name="crypto_momentum",
    description=(
        "EMA cross confirmed by oversold RSI or strong ROC; 3 ATR trailing stop "
        "in place of a fixed 7.5% trail, fixed 5% size."
    ),
    buy=(
        all_of(
            "ema_cross_with_momentum",
            crosses_above("ema_short", "ema_long"),
            any_of("rsi_or_roc", below_level("rsi", "rsi_oversold"), above_level("roc", "min_roc_threshold")),
        ),
    ),
    sell=(
        above_level("rsi", "rsi_overbought"),
        crosses_below("ema_short", "ema_long"),
    ),
    defaults=StrategyParams(
        min_roc_threshold=5.0,
        min_signals_for_buy=1,
        min_signals_for_sell=1,
        stop_loss_atr_multiple=None,
        take_profit_atr_multiple=None,
        trailing_stop_enabled=True,
        trailing_stop_atr_multiple=3.0,
        position_size_basis=0.05,
        min_position_size_pct=0.05,
        max_position_size_pct=0.05,
        indicator_periods={"ema_short": 9, "ema_long": 21},
    ),
)

VARIANTS: Dict[str, StrategyVariant] = {
    v.name: v
    for v in (VOLATILITY_BREAKOUT, ADAPTIVE_TREND, HYBRID_ADAPTIVE, INTRADAY, CRYPTO_MOMENTUM)
}


def variant_names() -> List[str]:
    return list(VARIANTS)


def get_variant(name: str) -> StrategyVariant:
    try:
        return VARIANTS[name]
    except KeyError:
        raise ConfigurationError(
            f"unknown strategy variant '{name}' (available: {', '.join(VARIANTS)})"
        ) from None
