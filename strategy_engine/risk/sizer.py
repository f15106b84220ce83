"""
Volatility-based position sizing.
Size = cap_basis / (atr_position_size_factor * ATR / price), clamped to [lower, upper]:
the wider the ATR relative to price, the smaller the fraction of capital committed.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from strategy_engine.core.params import StrategyParams
from strategy_engine.core.types import is_defined

logger = logging.getLogger("strategy_engine.risk")


@dataclass(frozen=True)
class SizeResult:
    """Sizing outcome: fraction of capital to invest + how it was reached."""
    fraction: float
    raw: float
    clamped: bool = False
    reason: str = ""


class RiskSizer:
    """
    Converts ATR and price into a capital fraction.
    Zero/undefined ATR or zero price falls back to the cap basis (no volatility penalty).
    """

    def __init__(
        self,
        cap_basis: float,
        lower_bound: float,
        upper_bound: float,
        atr_position_size_factor: float,
        high_volatility_atr_pct: Optional[float] = None,
        high_volatility_scale: float = 1.0,
    ):
        self.cap_basis = cap_basis
        self.lower_bound = lower_bound
        self.upper_bound = upper_bound
        self.atr_position_size_factor = atr_position_size_factor
        self.high_volatility_atr_pct = high_volatility_atr_pct
        self.high_volatility_scale = high_volatility_scale

    @classmethod
    def from_params(cls, params: StrategyParams) -> "RiskSizer":
        return cls(
            cap_basis=params.cap_basis,
            lower_bound=params.min_position_size_pct,
            upper_bound=params.max_position_size_pct,
            atr_position_size_factor=params.atr_position_size_factor,
            high_volatility_atr_pct=params.high_volatility_atr_pct,
            high_volatility_scale=params.high_volatility_size_scale,
        )

    def _basis(self, atr: float, price: float) -> float:
        """Cap basis, reduced on high volatility bars (ATR above a % of price)."""
        if self.high_volatility_atr_pct is not None and self.high_volatility_scale < 1.0:
            if atr > price * self.high_volatility_atr_pct / 100.0:
                return self.cap_basis * self.high_volatility_scale
        return self.cap_basis

    def size(self, atr: Optional[float], price: Optional[float]) -> SizeResult:
        if not is_defined(atr) or atr <= 0:
            logger.debug("Sizing fallback: ATR %s not usable, using cap basis %.4f", atr, self.cap_basis)
            return SizeResult(fraction=self.cap_basis, raw=self.cap_basis, reason="atr unavailable")
        if not is_defined(price) or price <= 0:
            logger.debug("Sizing fallback: price %s not usable, using cap basis %.4f", price, self.cap_basis)
            return SizeResult(fraction=self.cap_basis, raw=self.cap_basis, reason="price unavailable")

        normalized_vol = self.atr_position_size_factor * atr / price
        raw = self._basis(atr, price) / normalized_vol
        fraction = min(max(raw, self.lower_bound), self.upper_bound)
        return SizeResult(fraction=fraction, raw=raw, clamped=fraction != raw)
