"""
Aligned OHLCV + indicator feed. Converts NaN warm-up markers to None at the boundary
so the engine never compares floating-point NaN.
"""

from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from strategy_engine.core.errors import ConfigurationError, MissingIndicatorError
from strategy_engine.core.types import Bar, IndicatorSnapshot

logger = logging.getLogger("strategy_engine.data")

OHLCV_COLUMNS = ("open", "high", "low", "close", "volume")

SeriesLike = Union[pd.Series, np.ndarray, Sequence[Optional[float]]]


def to_optional(values: SeriesLike) -> List[Optional[float]]:
    """Float list with None for every NaN/None/inf position."""
    raw = values.to_numpy() if isinstance(values, pd.Series) else list(values)
    arr = pd.to_numeric(pd.Series(raw, dtype=object), errors="coerce").to_numpy(dtype=float)
    mask = np.isfinite(arr)
    return [float(v) if ok else None for v, ok in zip(arr, mask)]


class IndicatorFeed:
    """
    Fully materialized input for one (strategy, instrument) run.
    ohlcv: DataFrame with open/high/low/close/volume (optional time column).
    indicators: DataFrame or name -> series mapping, each exactly len(ohlcv) long.
    """

    def __init__(
        self,
        ohlcv: pd.DataFrame,
        indicators: Optional[Union[pd.DataFrame, Mapping[str, SeriesLike]]] = None,
    ):
        missing_cols = [c for c in OHLCV_COLUMNS if c not in ohlcv.columns]
        if missing_cols:
            raise ConfigurationError(f"OHLCV frame missing column(s): {', '.join(missing_cols)}")
        self._n = len(ohlcv)
        self._ohlcv: Dict[str, List[Optional[float]]] = {c: to_optional(ohlcv[c]) for c in OHLCV_COLUMNS}
        self._times: Optional[List] = None
        if "time" in ohlcv.columns:
            self._times = [None if pd.isna(t) else pd.Timestamp(t).to_pydatetime() for t in ohlcv["time"]]

        self._series: Dict[str, List[Optional[float]]] = {}
        if indicators is None:
            items: Iterable = ()
        elif isinstance(indicators, pd.DataFrame):
            items = ((str(c), indicators[c]) for c in indicators.columns)
        else:
            items = indicators.items()
        for name, values in items:
            series = to_optional(values)
            if len(series) != self._n:
                raise ConfigurationError(
                    f"indicator '{name}' has {len(series)} values, expected {self._n} (one per bar)"
                )
            self._series[name] = series
        # Raw prices and volume double as predicate inputs
        for col in OHLCV_COLUMNS:
            self._series.setdefault(col, self._ohlcv[col])

    def __len__(self) -> int:
        return self._n

    @property
    def names(self) -> List[str]:
        return sorted(self._series)

    def require(self, names: Iterable[str]) -> None:
        """Fail fast if any referenced series is absent."""
        missing = [n for n in names if n not in self._series]
        if missing:
            raise MissingIndicatorError(missing)

    def series(self, name: str) -> List[Optional[float]]:
        if name not in self._series:
            raise MissingIndicatorError([name])
        return self._series[name]

    def bar(self, i: int) -> Bar:
        o = self._ohlcv
        return Bar(
            index=i,
            open=_or_nan(o["open"][i]),
            high=_or_nan(o["high"][i]),
            low=_or_nan(o["low"][i]),
            close=_or_nan(o["close"][i]),
            volume=_or_nan(o["volume"][i]),
            time=self._times[i] if self._times is not None else None,
        )

    def price_defined(self, i: int) -> bool:
        """High, low and close are defined and the close is positive."""
        o = self._ohlcv
        if any(o[c][i] is None for c in ("high", "low", "close")):
            return False
        return o["close"][i] > 0

    def closes(self) -> List[Optional[float]]:
        return self._ohlcv["close"]

    def snapshot(self, i: int, names: Optional[Iterable[str]] = None) -> IndicatorSnapshot:
        """Values at bar i. Indices before the first bar yield an empty snapshot."""
        if i < 0:
            return IndicatorSnapshot.empty(i)
        keys = self._series.keys() if names is None else names
        return IndicatorSnapshot(index=i, values={k: self._series[k][i] for k in keys})

    def first_defined_index(self, name: str) -> Optional[int]:
        for i, v in enumerate(self.series(name)):
            if v is not None:
                return i
        return None

    def warmup_bars(self, names: Iterable[str]) -> int:
        """
        Combined warm-up: first bar at which every named series is defined.
        A series that is never defined pushes the warm-up past the end of the feed.
        """
        warmup = 0
        for name in names:
            first = self.first_defined_index(name)
            if first is None:
                logger.debug("Series '%s' never defined; whole feed is warm-up", name)
                return self._n
            warmup = max(warmup, first)
        return warmup


def _or_nan(value: Optional[float]) -> float:
    return float("nan") if value is None else value
