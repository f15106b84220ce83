"""Unit tests for risk.sizer."""

import pytest
from strategy_engine.core.params import StrategyParams
from strategy_engine.risk.sizer import RiskSizer


def _sizer(**kw):
    args = dict(cap_basis=1.0, lower_bound=0.1, upper_bound=1.0, atr_position_size_factor=2.0)
    args.update(kw)
    return RiskSizer(**args)


def test_size_inverse_to_normalized_volatility():
    # 1.0 / (2 * 10 / 100) = 2.5 -> clamped to 1.0
    r = _sizer().size(atr=10.0, price=100.0)
    assert r.raw == pytest.approx(2.5)
    assert r.fraction == 1.0
    assert r.clamped


def test_size_unclamped_inside_band():
    r = _sizer().size(atr=100.0, price=100.0)  # 1 / (2 * 100 / 100) = 0.5
    assert r.fraction == pytest.approx(0.5)
    assert not r.clamped


def test_size_clamped_to_lower_bound():
    r = _sizer().size(atr=1000.0, price=100.0)  # 1 / 20 = 0.05
    assert r.fraction == 0.1


@pytest.mark.parametrize("atr,price,reason", [
    (0.0, 100.0, "atr unavailable"),
    (None, 100.0, "atr unavailable"),
    (float("nan"), 100.0, "atr unavailable"),
    (float("inf"), 100.0, "atr unavailable"),
    (2.0, 0.0, "price unavailable"),
    (2.0, float("inf"), "price unavailable"),
])
def test_degenerate_inputs_fall_back_to_cap_basis(atr, price, reason):
    r = _sizer(cap_basis=0.25, lower_bound=0.0, upper_bound=0.25).size(atr=atr, price=price)
    assert r.fraction == 0.25
    assert r.reason == reason


def test_high_volatility_scales_cap_basis():
    sizer = _sizer(cap_basis=0.25, lower_bound=0.0, upper_bound=0.25,
                   high_volatility_atr_pct=1.5, high_volatility_scale=0.75)
    # ATR 2 on price 100 is 2% > 1.5%: basis 0.1875 / (2 * 0.02) = 4.6875 -> capped at 0.25
    assert sizer.size(atr=2.0, price=100.0).raw == pytest.approx(0.1875 / 0.04)
    # ATR 1 on price 100 is calm: 0.25 / 0.02
    assert sizer.size(atr=1.0, price=100.0).raw == pytest.approx(12.5)


def test_from_params_uses_max_as_default_basis():
    params = StrategyParams(max_position_size_pct=0.25, min_position_size_pct=0.0)
    sizer = RiskSizer.from_params(params)
    assert sizer.cap_basis == 0.25
    assert sizer.upper_bound == 0.25
    assert sizer.size(atr=50.0, price=100.0).fraction == pytest.approx(0.25)


def test_size_never_exceeds_bounds():
    sizer = _sizer(lower_bound=0.2, upper_bound=0.6, cap_basis=0.4)
    for atr in (0.01, 0.5, 3.0, 40.0, 500.0):
        f = sizer.size(atr=atr, price=100.0).fraction
        assert 0.2 <= f <= 0.6
