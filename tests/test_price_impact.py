import math
from dataclasses import dataclass

import pytest

from clmm.errors import CLMMError
from clmm.price_impact import (
    ImpactSeverity,
    PriceImpactResult,
    calculate_impermanent_loss,
    calculate_optimal_swap_amount,
    calculate_price_impact,
    classify_impact_severity,
    estimate_swap_output,
    get_recommended_slippage_bps,
)
from clmm.tick_math import Q96


@dataclass
class _Pool:
    sqrt_price_x96: int
    liquidity: int
    fee: int


def _test_pool(liquidity=10**24):
    return _Pool(sqrt_price_x96=1000000000000000000000000, liquidity=liquidity, fee=300)


def _unit_pool(liquidity=1_000_000, fee=0):
    return _Pool(sqrt_price_x96=Q96, liquidity=liquidity, fee=fee)


def test_price_impact_calculation():
    result = calculate_price_impact(_test_pool(), 1000, True)
    assert isinstance(result, PriceImpactResult)
    assert 0 <= result.impact_bps <= 10000
    assert result.expected_price >= 0.0
    assert result.severity == classify_impact_severity(result.impact_bps)


def test_impact_severity_classification():
    assert classify_impact_severity(25) == ImpactSeverity.NEGLIGIBLE
    assert classify_impact_severity(150) == ImpactSeverity.LOW
    assert classify_impact_severity(350) == ImpactSeverity.MEDIUM
    assert classify_impact_severity(1000) == ImpactSeverity.HIGH
    assert classify_impact_severity(5000) == ImpactSeverity.CRITICAL


@pytest.mark.parametrize(
    "impact, severity",
    [
        (0, ImpactSeverity.NEGLIGIBLE),
        (50, ImpactSeverity.NEGLIGIBLE),
        (51, ImpactSeverity.LOW),
        (200, ImpactSeverity.LOW),
        (201, ImpactSeverity.MEDIUM),
        (500, ImpactSeverity.MEDIUM),
        (501, ImpactSeverity.HIGH),
        (2000, ImpactSeverity.HIGH),
        (2001, ImpactSeverity.CRITICAL),
    ],
)
def test_severity_boundaries(impact, severity):
    assert classify_impact_severity(impact) == severity


def test_recommended_slippage():
    assert get_recommended_slippage_bps(25) == 10
    assert get_recommended_slippage_bps(150) == 50
    assert get_recommended_slippage_bps(350) == 100
    assert get_recommended_slippage_bps(1000) == 200
    assert get_recommended_slippage_bps(5000) == 500


def test_severity_labels():
    assert ImpactSeverity.NEGLIGIBLE.color_code() == "🟢"
    assert ImpactSeverity.CRITICAL.color_code() == "💀"
    assert ImpactSeverity.MEDIUM.description() == (
        "Medium impact - consider reducing amount"
    )


def test_zero_liquidity_is_critical():
    pool = _test_pool(liquidity=0)
    result = calculate_price_impact(pool, 1000, True)
    assert result.impact_bps == 10000
    assert result.severity == ImpactSeverity.CRITICAL
    assert math.isinf(result.price_change)
    assert estimate_swap_output(pool, 1000, True) == 0
    assert calculate_optimal_swap_amount(pool, 100, True) == 0


def test_estimate_deducts_fee():
    pool = _unit_pool(fee=300)
    assert estimate_swap_output(pool, 10000, True) == 9700


def test_unit_price_has_no_impact():
    result = calculate_price_impact(_unit_pool(), 1000, True)
    assert result.impact_bps == 0
    assert result.severity == ImpactSeverity.NEGLIGIBLE


def test_optimal_swap_amount_capped_at_tenth_of_liquidity():
    pool = _unit_pool()
    optimal = calculate_optimal_swap_amount(pool, 100, True)
    assert 0 < optimal <= pool.liquidity // 10
    assert optimal == pool.liquidity // 10


def test_optimal_swap_amount_none_within_target():
    assert calculate_optimal_swap_amount(_test_pool(), 100, True) == 0


def test_optimal_swap_amount_underflow_raises():
    with pytest.raises(CLMMError):
        calculate_optimal_swap_amount(_test_pool(liquidity=5), 100, True)


def test_tiny_price_divides_by_zero():
    pool = _Pool(sqrt_price_x96=1, liquidity=10**6, fee=0)
    with pytest.raises(CLMMError):
        estimate_swap_output(pool, 1000, True)


def test_impermanent_loss_matches_hold_value():
    loss = calculate_impermanent_loss(Q96, 2 * Q96, Q96 + Q96 // 2, 10**18)
    assert loss == 0.0


def test_impermanent_loss_without_liquidity():
    assert calculate_impermanent_loss(Q96, 2 * Q96, Q96, 0) == 0.0