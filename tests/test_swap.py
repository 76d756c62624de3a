from collections import deque
from dataclasses import dataclass, field

import pytest

from clmm.dynamic_fee import MarketHistory
from clmm.errors import CLMMError, ErrorCode
from clmm.mev_protection import MevConfig, OracleObservation, default_config
from clmm.swap import (
    SwapResult,
    calculate_price_impact,
    estimate_swap_output,
    execute_swap,
    update_dynamic_fees,
)
from clmm.tick_math import Q96, U256_MAX

RECIPIENT = bytes(32)


@dataclass
class Pool:
    sqrt_price_x96: int = Q96
    liquidity: int = 10**12
    tick: int = 0
    tick_spacing: int = 60
    fee: int = 30
    unlocked: bool = True
    dynamic_fee_enabled: bool = False
    last_fee_adjustment: int = 0
    last_sequence_number: int = 0
    mev_config: MevConfig = field(default_factory=default_config)
    fee_growth_global0_x128: int = 0
    fee_growth_global1_x128: int = 0
    updated_at: int = 0

    def update_timestamp(self, timestamp):
        self.updated_at = timestamp


def observations(price=Q96):
    return deque(
        [
            OracleObservation(timestamp=3800, price=price, tick=0, liquidity=10**12),
            OracleObservation(timestamp=3900, price=price, tick=0, liquidity=10**12),
        ]
    )


def run_swap(pool, amount_in, zero_for_one, limit, obs=None, sequence=1, timestamp=4000):
    return execute_swap(
        pool,
        amount_in,
        zero_for_one,
        limit,
        RECIPIENT,
        MarketHistory(),
        observations() if obs is None else obs,
        timestamp,
        sequence,
    )


def test_price_impact_calculation_swap_math():
    impact = calculate_price_impact(Pool(), 1000, True)
    assert 0 <= impact <= 10000
    assert impact == 30


def test_price_impact_without_liquidity_is_full():
    assert calculate_price_impact(Pool(liquidity=0), 1000, True) == 10000


def test_price_impact_zero_output_is_full():
    assert calculate_price_impact(Pool(), 1000, False) == 10000


def test_swap_output_estimation_swap_math():
    pool = Pool()
    amount_out = estimate_swap_output(pool, 1000, True)
    assert amount_out > 0
    assert amount_out == 997


def test_swap_output_estimation_without_liquidity():
    assert estimate_swap_output(Pool(liquidity=0), 1000, True) == 0


def test_update_dynamic_fees_disabled():
    pool = Pool()
    history = MarketHistory()
    assert update_dynamic_fees(pool, history, 4000, Q96, 1000, 30) is False
    assert len(history.prices) == 0
    assert pool.fee == 30


def test_update_dynamic_fees_too_soon():
    pool = Pool(dynamic_fee_enabled=True, last_fee_adjustment=1000)
    history = MarketHistory()
    assert update_dynamic_fees(pool, history, 2000, Q96, 1000, 30) is False
    assert pool.last_fee_adjustment == 1000


def test_update_dynamic_fees_adjusts():
    pool = Pool(dynamic_fee_enabled=True)
    history = MarketHistory()
    assert update_dynamic_fees(pool, history, 4000, Q96, 1000, 30) is True
    assert pool.fee == 20
    assert pool.last_fee_adjustment == 4000
    assert len(history.prices) == 1
    assert history.impacts[0].price_impact == 30


def test_zero_amount_swap_succeeds():
    pool = Pool()
    obs = observations()
    result = run_swap(pool, 0, True, U256_MAX, obs=obs, sequence=1)
    assert isinstance(result, SwapResult)
    assert result.amount_in == 0
    assert result.amount_out == 0
    assert result.price_impact == 10000
    assert result.final_sqrt_price == Q96
    assert result.final_tick == 0
    assert result.fee_adjusted is False
    assert result.current_fee == 30
    assert result.mev_protected is True
    assert result.twap_price == Q96
    assert pool.last_sequence_number == 1
    assert len(obs) == 3
    assert obs[-1].timestamp == 4000
    assert pool.updated_at > 0


def test_swap_adjusts_dynamic_fee():
    pool = Pool(dynamic_fee_enabled=True)
    result = run_swap(pool, 0, True, U256_MAX)
    assert result.fee_adjusted is True
    assert result.current_fee == 55
    assert pool.last_fee_adjustment == 4000


def test_locked_pool_rejected():
    with pytest.raises(CLMMError) as info:
        run_swap(Pool(unlocked=False), 1000, True, U256_MAX)
    assert info.value.code == ErrorCode.UNAUTHORIZED


def test_invalid_price_limit_rejected():
    with pytest.raises(CLMMError) as info:
        run_swap(Pool(), 1000, True, Q96 - 1)
    assert info.value.code == ErrorCode.INVALID_PRICE


def test_out_of_order_sequence_rejected():
    pool = Pool(last_sequence_number=5)
    with pytest.raises(CLMMError) as info:
        run_swap(pool, 1000, True, U256_MAX, sequence=5)
    assert info.value.code == ErrorCode.INVALID_INSTRUCTION
    assert pool.last_sequence_number == 5


def test_missing_oracle_rejected():
    with pytest.raises(CLMMError) as info:
        run_swap(Pool(), 1000, True, U256_MAX, obs=deque())
    assert info.value.code == ErrorCode.INVALID_ORACLE


def test_limit_below_twap_rejected():
    obs = observations(price=Q96 * 105 // 100)
    with pytest.raises(CLMMError) as info:
        run_swap(Pool(), 1000, True, Q96, obs=obs)
    assert info.value.code == ErrorCode.INVALID_PRICE


def test_swap_without_liquidity_overflows():
    with pytest.raises(CLMMError) as info:
        run_swap(Pool(liquidity=0), 1000, True, U256_MAX)
    assert info.value.code == ErrorCode.MATH_OVERFLOW


def test_zero_for_one_step_overflows():
    pool = Pool(liquidity=10**6)
    with pytest.raises(CLMMError) as info:
        run_swap(pool, 1000, True, U256_MAX)
    assert info.value.code == ErrorCode.MATH_OVERFLOW
    assert pool.sqrt_price_x96 == Q96


def test_one_for_zero_step_overflows():
    pool = Pool()
    with pytest.raises(CLMMError) as info:
        run_swap(pool, 1000, False, Q96)
    assert info.value.code == ErrorCode.MATH_OVERFLOW
    assert pool.sqrt_price_x96 == Q96
    assert pool.last_sequence_number == 0