"""
Strategy parameters: thresholds, multiples and sizing bounds. Validated before any scan.
Indicator lookback periods belong to the indicator layer; only their ordering is checked here.
"""

from __future__ import annotations
import dataclasses
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from strategy_engine.core.errors import ConfigurationError


@dataclass(frozen=True)
class StrategyParams:
    # Momentum
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0
    strong_momentum_pct: float = 1.0
    strong_trend_pct: float = 2.5
    min_roc_threshold: float = 5.0
    # Bands / volatility
    atr_multiplier: float = 3.0
    band_proximity_pct: float = 0.5
    high_volatility_atr_pct: float = 1.5
    # Oscillator bands
    stoch_oversold: float = 20.0
    stoch_overbought: float = 80.0
    mfi_oversold: float = 20.0
    mfi_overbought: float = 80.0
    williams_oversold: float = -80.0
    williams_overbought: float = -20.0
    # Volume
    volume_threshold: float = 1.5
    entry_volume_filter: bool = False
    # Signal counts
    min_signals_for_buy: int = 3
    min_signals_for_sell: int = 3
    # Exits (None disables the level)
    stop_loss_atr_multiple: Optional[float] = 3.0
    take_profit_atr_multiple: Optional[float] = 4.5
    trailing_stop_enabled: bool = False
    trailing_stop_atr_multiple: float = 2.5
    max_holding_bars: Optional[int] = None
    # Sizing
    position_size_basis: Optional[float] = None  # None: size against max_position_size_pct
    min_position_size_pct: float = 0.0
    max_position_size_pct: float = 1.0
    atr_position_size_factor: float = 2.0
    high_volatility_size_scale: float = 1.0
    # Warm-up floor on top of the data-derived one
    warmup_bars: int = 0
    indicator_periods: Mapping[str, int] = field(default_factory=dict)

    @property
    def cap_basis(self) -> float:
        """Numerator of the ATR sizing formula."""
        if self.position_size_basis is None:
            return self.max_position_size_pct
        return self.position_size_basis

    def replace(self, **changes: Any) -> "StrategyParams":
        return dataclasses.replace(self, **changes)

    def validate(self, crossover_pairs: Iterable[Tuple[str, str]] = ()) -> "StrategyParams":
        """Raise ConfigurationError on the first invalid field. Returns self for chaining."""
        for name in (
            "strong_momentum_pct", "strong_trend_pct", "atr_multiplier", "band_proximity_pct",
            "high_volatility_atr_pct", "min_roc_threshold",
        ):
            _require_non_negative(name, getattr(self, name))

        for name in ("rsi_oversold", "rsi_overbought", "stoch_oversold", "stoch_overbought",
                     "mfi_oversold", "mfi_overbought"):
            value = getattr(self, name)
            _require_finite(name, value)
            if not 0.0 <= value <= 100.0:
                raise ConfigurationError(f"{name} must be within [0, 100], got {value}")
        if self.rsi_oversold >= self.rsi_overbought:
            raise ConfigurationError(
                f"rsi_oversold ({self.rsi_oversold}) must be below rsi_overbought ({self.rsi_overbought})"
            )
        if self.stoch_oversold >= self.stoch_overbought:
            raise ConfigurationError("stoch_oversold must be below stoch_overbought")
        if self.mfi_oversold >= self.mfi_overbought:
            raise ConfigurationError("mfi_oversold must be below mfi_overbought")
        if not -100.0 <= self.williams_oversold < self.williams_overbought <= 0.0:
            raise ConfigurationError("williams bands must satisfy -100 <= oversold < overbought <= 0")

        _require_positive("volume_threshold", self.volume_threshold)
        for name in ("min_signals_for_buy", "min_signals_for_sell"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigurationError(f"{name} must be an integer >= 1, got {value!r}")

        for name in ("stop_loss_atr_multiple", "take_profit_atr_multiple"):
            value = getattr(self, name)
            if value is not None:
                _require_positive(name, value)
        if self.trailing_stop_enabled:
            _require_positive("trailing_stop_atr_multiple", self.trailing_stop_atr_multiple)
        if self.max_holding_bars is not None and self.max_holding_bars < 1:
            raise ConfigurationError(f"max_holding_bars must be >= 1, got {self.max_holding_bars}")

        _require_positive("atr_position_size_factor", self.atr_position_size_factor)
        lo, basis, hi = self.min_position_size_pct, self.cap_basis, self.max_position_size_pct
        for name, value in (("min_position_size_pct", lo), ("position_size_basis", basis),
                            ("max_position_size_pct", hi)):
            _require_finite(name, value)
        if not 0.0 <= lo <= basis <= hi <= 1.0:
            raise ConfigurationError(
                "sizing must satisfy 0 <= min_position_size_pct <= position_size_basis "
                f"<= max_position_size_pct <= 1, got {lo}, {basis}, {hi}"
            )
        if hi <= 0.0:
            raise ConfigurationError("max_position_size_pct must be positive")
        if not 0.0 < self.high_volatility_size_scale <= 1.0:
            raise ConfigurationError("high_volatility_size_scale must be within (0, 1]")
        if self.warmup_bars < 0:
            raise ConfigurationError(f"warmup_bars must be >= 0, got {self.warmup_bars}")

        for fast, slow in crossover_pairs:
            fast_p = self.indicator_periods.get(fast)
            slow_p = self.indicator_periods.get(slow)
            if fast_p is not None and slow_p is not None and fast_p >= slow_p:
                raise ConfigurationError(
                    f"fast period {fast}={fast_p} must be shorter than slow period {slow}={slow_p}"
                )
        return self

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in dataclasses.fields(cls))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base: Optional["StrategyParams"] = None) -> "StrategyParams":
        """Overlay a plain mapping (e.g. the YAML strategy section) on base. Unknown keys are rejected."""
        base = base or cls()
        known = set(cls.field_names())
        unknown = sorted(k for k in data if k not in known)
        if unknown:
            raise ConfigurationError(f"unknown strategy parameter(s): {', '.join(unknown)}")
        changes: Dict[str, Any] = dict(data)
        if "indicator_periods" in changes:
            changes["indicator_periods"] = {str(k): int(v) for k, v in (changes["indicator_periods"] or {}).items()}
        return dataclasses.replace(base, **changes)


def _require_finite(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ConfigurationError(f"{name} must be a finite number, got {value!r}")


def _require_non_negative(name: str, value: Any) -> None:
    _require_finite(name, value)
    if value < 0:
        raise ConfigurationError(f"{name} must be non-negative, got {value}")


def _require_positive(name: str, value: Any) -> None:
    _require_finite(name, value)
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
