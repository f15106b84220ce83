"""
Named signal predicates. Each predicate declares the series it reads at bar i and i-1;
if any of them is undefined the predicate is simply false.

Variants are assembled from these factories, so adding or removing a condition is a
change to a list, not to control flow.
"""

from __future__ import annotations
import dataclasses
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Tuple

from strategy_engine.core.params import StrategyParams
from strategy_engine.core.types import Bar, IndicatorSnapshot


@dataclass(frozen=True)
class BarContext:
    """Everything a predicate may look at for bar i. Nothing after i is reachable."""
    index: int
    current: IndicatorSnapshot
    previous: IndicatorSnapshot
    bar: Bar
    params: StrategyParams
    entry_price: Optional[float] = None

    def now(self, name: str) -> float:
        return self.current.values[name]

    def prev(self, name: str) -> float:
        return self.previous.values[name]


@dataclass(frozen=True)
class Predicate:
    name: str
    fn: Callable[[BarContext], bool]
    requires: Tuple[str, ...] = ()
    requires_prev: Tuple[str, ...] = ()
    weight: int = 1
    needs_position: bool = False
    children: Tuple["Predicate", ...] = field(default=(), repr=False)
    crossover: Tuple[str, ...] = ()

    def evaluate(self, ctx: BarContext) -> bool:
        if self.needs_position and ctx.entry_price is None:
            return False
        if not ctx.current.defined(*self.requires):
            return False
        if self.requires_prev and not ctx.previous.defined(*self.requires_prev):
            return False
        return bool(self.fn(ctx))

    def weighted(self, weight: int) -> "Predicate":
        return dataclasses.replace(self, weight=weight)

    def named(self, name: str) -> "Predicate":
        return dataclasses.replace(self, name=name)

    @property
    def inputs(self) -> Tuple[str, ...]:
        """All series this predicate (and its children) reads."""
        names = set(self.requires) | set(self.requires_prev)
        for child in self.children:
            names.update(child.inputs)
        return tuple(sorted(names))


# -------------------------
# Helpers on raw numbers
# -------------------------

def pct_change(ctx: BarContext) -> Optional[float]:
    """Close-to-close change in percent; None when the previous close is zero."""
    prev_close = ctx.prev("close")
    if prev_close == 0:
        return None
    return (ctx.now("close") - prev_close) / prev_close * 100.0


def is_high_volatility(ctx: BarContext, atr: str = "atr") -> bool:
    return ctx.now(atr) > ctx.now("close") * ctx.params.high_volatility_atr_pct / 100.0


def trend_strength_pct(ctx: BarContext, short: str, long: str) -> Optional[float]:
    long_val = ctx.now(long)
    if long_val == 0:
        return None
    return abs(ctx.now(short) - long_val) / abs(long_val) * 100.0


# -------------------------
# Combinators
# -------------------------

def all_of(name: str, *preds: Predicate) -> Predicate:
    return Predicate(name, lambda ctx: all(p.evaluate(ctx) for p in preds), children=tuple(preds))


def any_of(name: str, *preds: Predicate) -> Predicate:
    return Predicate(name, lambda ctx: any(p.evaluate(ctx) for p in preds), children=tuple(preds))


# -------------------------
# Trend
# -------------------------

def crosses_above(fast: str, slow: str, name: Optional[str] = None) -> Predicate:
    return Predicate(
        name or f"{fast}_cross_above_{slow}",
        lambda ctx: ctx.now(fast) > ctx.now(slow) and ctx.prev(fast) <= ctx.prev(slow),
        requires=(fast, slow),
        requires_prev=(fast, slow),
        crossover=(fast, slow),
    )


def crosses_below(fast: str, slow: str, name: Optional[str] = None) -> Predicate:
    return Predicate(
        name or f"{fast}_cross_below_{slow}",
        lambda ctx: ctx.now(fast) < ctx.now(slow) and ctx.prev(fast) >= ctx.prev(slow),
        requires=(fast, slow),
        requires_prev=(fast, slow),
        crossover=(fast, slow),
    )


def above(a: str, b: str, name: Optional[str] = None) -> Predicate:
    return Predicate(name or f"{a}_above_{b}", lambda ctx: ctx.now(a) > ctx.now(b), requires=(a, b))


def below(a: str, b: str, name: Optional[str] = None) -> Predicate:
    return Predicate(name or f"{a}_below_{b}", lambda ctx: ctx.now(a) < ctx.now(b), requires=(a, b))


def stacked(short: str, mid: str, long: str, bullish: bool = True, name: Optional[str] = None) -> Predicate:
    """short > mid > long (bullish) or short < mid < long (bearish)."""
    if bullish:
        fn = lambda ctx: ctx.now(short) > ctx.now(mid) > ctx.now(long)
    else:
        fn = lambda ctx: ctx.now(short) < ctx.now(mid) < ctx.now(long)
    return Predicate(name or ("bullish_stack" if bullish else "bearish_stack"), fn, requires=(short, mid, long))


def strong_trend(short: str, long: str, name: str = "strong_trend") -> Predicate:
    """Spread between short and long average above strong_trend_pct of the long average."""
    def fn(ctx: BarContext) -> bool:
        strength = trend_strength_pct(ctx, short, long)
        return strength is not None and strength > ctx.params.strong_trend_pct
    return Predicate(name, fn, requires=(short, long))


# -------------------------
# Momentum / oscillators
# -------------------------

def rising(series: str, name: Optional[str] = None) -> Predicate:
    return Predicate(name or f"{series}_rising", lambda ctx: ctx.now(series) > ctx.prev(series),
                     requires=(series,), requires_prev=(series,))


def falling(series: str, name: Optional[str] = None) -> Predicate:
    return Predicate(name or f"{series}_falling", lambda ctx: ctx.now(series) < ctx.prev(series),
                     requires=(series,), requires_prev=(series,))


def below_level(series: str, param: str, name: Optional[str] = None) -> Predicate:
    """series < params.<param>."""
    return Predicate(name or f"{series}_below_{param}",
                     lambda ctx: ctx.now(series) < getattr(ctx.params, param), requires=(series,))


def above_level(series: str, param: str, name: Optional[str] = None) -> Predicate:
    """series > params.<param>."""
    return Predicate(name or f"{series}_above_{param}",
                     lambda ctx: ctx.now(series) > getattr(ctx.params, param), requires=(series,))


def atr_momentum(atr: str = "atr", bullish: bool = True, name: Optional[str] = None) -> Predicate:
    """High volatility bar with a strong close-to-close move in the given direction."""
    def fn(ctx: BarContext) -> bool:
        change = pct_change(ctx)
        if change is None or not is_high_volatility(ctx, atr):
            return False
        if abs(change) <= ctx.params.strong_momentum_pct:
            return False
        return change > 0 if bullish else change < 0
    return Predicate(name or ("atr_momentum_up" if bullish else "atr_momentum_down"), fn,
                     requires=(atr, "close"), requires_prev=("close",))


def roc_acceleration(roc: str = "roc", bullish: bool = True, name: Optional[str] = None) -> Predicate:
    """Rate of change accelerating (decelerating) while price moves up (down)."""
    def fn(ctx: BarContext) -> bool:
        change = pct_change(ctx)
        if change is None:
            return False
        if bullish:
            return ctx.now(roc) > ctx.prev(roc) and change > 0
        return ctx.now(roc) < ctx.prev(roc) and change < 0
    return Predicate(name or ("roc_accelerating" if bullish else "roc_decelerating"), fn,
                     requires=(roc, "close"), requires_prev=(roc, "close"))


def price_divergence(indicator: str, bullish: bool = True, name: Optional[str] = None) -> Predicate:
    """Close moves against the indicator: lower close with a rising indicator (bullish) or the reverse."""
    if bullish:
        fn = lambda ctx: ctx.now("close") < ctx.prev("close") and ctx.now(indicator) > ctx.prev(indicator)
    else:
        fn = lambda ctx: ctx.now("close") > ctx.prev("close") and ctx.now(indicator) < ctx.prev(indicator)
    return Predicate(name or f"{indicator}_{'bullish' if bullish else 'bearish'}_divergence", fn,
                     requires=(indicator, "close"), requires_prev=(indicator, "close"))


# -------------------------
# Volatility bands
# -------------------------

def close_at_or_below(band: str, name: Optional[str] = None) -> Predicate:
    return Predicate(name or f"close_at_{band}", lambda ctx: ctx.now("close") <= ctx.now(band),
                     requires=("close", band))


def close_at_or_above(band: str, name: Optional[str] = None) -> Predicate:
    return Predicate(name or f"close_at_{band}", lambda ctx: ctx.now("close") >= ctx.now(band),
                     requires=("close", band))


def volatility_breakout(middle: str = "bb_middle", atr: str = "atr", bullish: bool = True,
                        name: Optional[str] = None) -> Predicate:
    """High above middle + k*ATR (bullish) or low below middle - k*ATR (bearish)."""
    if bullish:
        fn = lambda ctx: ctx.now("high") > ctx.now(middle) + ctx.now(atr) * ctx.params.atr_multiplier
        requires = ("high", middle, atr)
    else:
        fn = lambda ctx: ctx.now("low") < ctx.now(middle) - ctx.now(atr) * ctx.params.atr_multiplier
        requires = ("low", middle, atr)
    return Predicate(name or ("volatility_breakout" if bullish else "volatility_breakdown"), fn,
                     requires=requires)


def near_band_middle(middle: str = "bb_middle", name: str = "near_band_middle") -> Predicate:
    def fn(ctx: BarContext) -> bool:
        mid = ctx.now(middle)
        if mid == 0:
            return False
        return abs(ctx.now("close") - mid) / abs(mid) * 100.0 < ctx.params.band_proximity_pct
    return Predicate(name, fn, requires=("close", middle))


def high_volatility(atr: str = "atr", name: str = "high_volatility") -> Predicate:
    return Predicate(name, lambda ctx: is_high_volatility(ctx, atr), requires=(atr, "close"))


# -------------------------
# Volume
# -------------------------

def high_relative_volume(average: str = "volume_sma", name: str = "high_relative_volume") -> Predicate:
    return Predicate(name, lambda ctx: ctx.now("volume") > ctx.now(average) * ctx.params.volume_threshold,
                     requires=("volume", average))


def obv_trend(obv: str = "obv", obv_average: str = "obv_ema", bullish: bool = True,
              name: Optional[str] = None) -> Predicate:
    """OBV above its average and rising (bullish), or below and falling."""
    if bullish:
        fn = lambda ctx: ctx.now(obv) > ctx.now(obv_average) and ctx.now(obv) > ctx.prev(obv)
    else:
        fn = lambda ctx: ctx.now(obv) < ctx.now(obv_average) and ctx.now(obv) < ctx.prev(obv)
    return Predicate(name or ("obv_rising" if bullish else "obv_falling"), fn,
                     requires=(obv, obv_average), requires_prev=(obv,))


def obv_divergence(obv: str = "obv", bullish: bool = True, name: Optional[str] = None) -> Predicate:
    """OBV moving against price: accumulation on a down close (bullish) or distribution on an up close."""
    if bullish:
        fn = lambda ctx: ctx.now(obv) > ctx.prev(obv) and ctx.now("close") < ctx.prev("close")
    else:
        fn = lambda ctx: ctx.now(obv) < ctx.prev(obv) and ctx.now("close") > ctx.prev("close")
    return Predicate(name or ("obv_bullish_divergence" if bullish else "obv_bearish_divergence"), fn,
                     requires=(obv, "close"), requires_prev=(obv, "close"))


# -------------------------
# Position-aware adjustments
# -------------------------

def underwater_in_high_volatility(atr: str = "atr", name: str = "underwater_high_volatility") -> Predicate:
    """Open position below its entry on a high volatility bar."""
    return Predicate(
        name,
        lambda ctx: is_high_volatility(ctx, atr) and ctx.now("close") < ctx.entry_price,
        requires=(atr, "close"),
        needs_position=True,
    )


def ranging_calm_market(middle: str = "bb_middle", short: str = "ema_short", long: str = "ema_long",
                        atr: str = "atr", name: str = "ranging_calm_market") -> Predicate:
    """Calm bar hugging the middle band without a strong trend; used as a score penalty."""
    near = near_band_middle(middle)
    trend = strong_trend(short, long)

    def fn(ctx: BarContext) -> bool:
        return not is_high_volatility(ctx, atr) and near.fn(ctx) and not trend.fn(ctx)
    return Predicate(name, fn, requires=(atr, "close", middle, short, long))


# -------------------------
# Entry filters
# -------------------------

def volume_confirmation(average: str = "volume_sma", name: str = "volume_confirmation") -> Predicate:
    """Passes unless params.entry_volume_filter is set and volume is not above average * threshold."""
    def fn(ctx: BarContext) -> bool:
        if not ctx.params.entry_volume_filter:
            return True
        return ctx.now("volume") > ctx.now(average) * ctx.params.volume_threshold
    return Predicate(name, fn, requires=("volume", average))


def crossover_pairs(preds: Iterable[Predicate]) -> Tuple[Tuple[str, str], ...]:
    """(fast, slow) pairs of every crossover predicate, including nested ones."""
    pairs = []
    stack = list(preds)
    while stack:
        p = stack.pop()
        stack.extend(p.children)
        if p.crossover:
            pairs.append(p.crossover)
    return tuple(dict.fromkeys(pairs))
