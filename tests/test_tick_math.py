import pytest

from clmm.errors import CLMMError, ErrorCode
from clmm.tick_math import (
    MAX_TICK,
    MIN_TICK,
    Q96,
    U256_MAX,
    get_next_sqrt_price_from_amount0_rounding_up,
    get_next_sqrt_price_from_amount1_rounding_down,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
    mul_div,
    mul_div_rounding_up,
)


def test_get_sqrt_ratio_at_tick():
    ratio = get_sqrt_ratio_at_tick(0)
    assert ratio > 0

    ratio_min = get_sqrt_ratio_at_tick(MIN_TICK)
    ratio_max = get_sqrt_ratio_at_tick(MAX_TICK)
    assert ratio_max > ratio_min


@pytest.mark.parametrize("tick", [MIN_TICK - 1, MAX_TICK + 1])
def test_tick_math_bounds(tick):
    with pytest.raises(CLMMError) as excinfo:
        get_sqrt_ratio_at_tick(tick)
    assert excinfo.value.code is ErrorCode.INVALID_TICK_RANGE


def test_ratio_at_zero_is_even_start_constant():
    assert get_sqrt_ratio_at_tick(0) == 0xFFFCB933BD6FAD37AA2D162D1A594001


def test_positive_tick_is_inverted_above_tick_zero():
    assert get_sqrt_ratio_at_tick(1) > get_sqrt_ratio_at_tick(0)
    assert get_sqrt_ratio_at_tick(1) <= U256_MAX


@pytest.mark.parametrize("price", [0, 1, 4295128738, U256_MAX])
def test_tick_at_sqrt_ratio_rejects_out_of_range(price):
    with pytest.raises(CLMMError) as excinfo:
        get_tick_at_sqrt_ratio(price)
    assert excinfo.value.code is ErrorCode.INVALID_PRICE


def test_tick_at_sqrt_ratio_overflows_for_in_range_price():
    with pytest.raises(CLMMError) as excinfo:
        get_tick_at_sqrt_ratio(Q96)
    assert excinfo.value.code is ErrorCode.MATH_OVERFLOW


def test_mul_div_zero_denominator():
    with pytest.raises(CLMMError) as excinfo:
        mul_div(100, 200, 0)
    assert excinfo.value.code is ErrorCode.MATH_OVERFLOW


def test_mul_div_does_not_depend_on_denominator():
    assert mul_div(100, 200, 1000) == mul_div(100, 200, 7)


def test_mul_div_overflow_of_low_words():
    with pytest.raises(CLMMError) as excinfo:
        mul_div(1 << 40, 1 << 40, 1)
    assert excinfo.value.code is ErrorCode.MATH_OVERFLOW


def test_mul_div_rounding_up_adds_one_on_remainder():
    assert mul_div_rounding_up(3, 1, 2) == mul_div(3, 1, 2) + 1
    assert mul_div_rounding_up(4, 1, 2) == mul_div(4, 1, 2)


def test_amount0_requires_liquidity():
    with pytest.raises(CLMMError) as excinfo:
        get_next_sqrt_price_from_amount0_rounding_up(Q96, 0, 10, True)
    assert excinfo.value.code is ErrorCode.INSUFFICIENT_LIQUIDITY


def test_amount0_removal_raises_price():
    result = get_next_sqrt_price_from_amount0_rounding_up(Q96 + 1, 1000, 1, False)
    assert result > Q96


def test_amount1_add_at_unit_price():
    assert get_next_sqrt_price_from_amount1_rounding_down(Q96, 1000, 10, True) == 1010


def test_amount1_remove_at_unit_price():
    assert get_next_sqrt_price_from_amount1_rounding_down(Q96, 1000, 10, False) == 990


def test_amount1_remove_too_much():
    with pytest.raises(CLMMError) as excinfo:
        get_next_sqrt_price_from_amount1_rounding_down(Q96, 5, 10, False)
    assert excinfo.value.code is ErrorCode.INSUFFICIENT_LIQUIDITY