"""Swap execution with dynamic fees and value-extraction protection.

The pool object is expected to expose ``sqrt_price_x96``, ``tick``,
``tick_spacing``, ``liquidity``, ``fee``, ``unlocked``,
``dynamic_fee_enabled``, ``last_fee_adjustment``, ``last_sequence_number``,
``mev_config``, ``fee_growth_global0_x128``, ``fee_growth_global1_x128``
and an ``update_timestamp(timestamp)`` method.
"""

import math
import time
from dataclasses import dataclass
from typing import Deque, Tuple

from .dynamic_fee import MarketDataPoint, MarketHistory, should_adjust_fee, update_pool_fee
from .errors import CLMMError, ErrorCode
from .fixed_point import get_amount0_delta, get_amount1_delta, sqrt_price_x96_to_price
from .mev_protection import (
    OracleObservation,
    calculate_twap,
    update_oracle_observations,
    validate_swap_mev_protection,
    validate_transaction_ordering,
)
from .price_impact import estimate_swap_output as _estimate_output
from .tick_math import (
    Q96,
    U256_MAX,
    get_next_sqrt_price_from_amount0_rounding_up,
    get_next_sqrt_price_from_amount1_rounding_down,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
)

_U128_MASK = (1 << 128) - 1
_FULL_IMPACT_BPS = 10000
_MAX_ORACLE_OBSERVATIONS = 100


@dataclass(frozen=True)
class SwapResult:
    """Outcome of an executed swap."""

    amount_in: int
    amount_out: int
    price_impact: int
    final_sqrt_price: int
    final_tick: int
    fee_adjusted: bool
    current_fee: int
    mev_protected: bool
    twap_price: int


def _checked(value: int) -> int:
    if not 0 <= value <= U256_MAX:
        raise CLMMError(ErrorCode.MATH_OVERFLOW)
    return value


def update_dynamic_fees(
    pool,
    history: MarketHistory,
    current_timestamp: int,
    current_price: int,
    swap_volume: int,
    price_impact: int,
) -> bool:
    """Record market data and re-price the pool fee; True if the fee was adjusted."""
    if not pool.dynamic_fee_enabled:
        return False
    if not should_adjust_fee(pool.last_fee_adjustment, current_timestamp):
        return False

    history.add(
        MarketDataPoint(
            timestamp=current_timestamp,
            price=current_price,
            volume=swap_volume,
            price_impact=price_impact,
        )
    )
    update_pool_fee(pool, history, current_timestamp)
    pool.last_fee_adjustment = current_timestamp
    return True


def execute_swap(
    pool,
    amount_in: int,
    zero_for_one: bool,
    sqrt_price_limit: int,
    recipient,
    history: MarketHistory,
    oracle_observations: Deque[OracleObservation],
    current_timestamp: int,
    sequence_number: int,
) -> SwapResult:
    """Execute a swap against the pool, updating its state and oracle."""
    if not pool.unlocked:
        raise CLMMError(ErrorCode.UNAUTHORIZED)

    price_impact = calculate_price_impact(pool, amount_in, zero_for_one)

    if not _price_limit_valid(pool.sqrt_price_x96, sqrt_price_limit, zero_for_one):
        raise CLMMError(ErrorCode.INVALID_PRICE)

    if not validate_transaction_ordering(sequence_number, pool.last_sequence_number):
        raise CLMMError(ErrorCode.INVALID_INSTRUCTION)

    if not validate_swap_mev_protection(
        pool,
        amount_in,
        zero_for_one,
        sqrt_price_limit,
        oracle_observations,
        pool.mev_config,
    ):
        raise CLMMError(ErrorCode.INVALID_PRICE)

    fee_adjusted = update_dynamic_fees(
        pool,
        history,
        current_timestamp,
        pool.sqrt_price_x96,
        amount_in,
        price_impact,
    )

    amount_in_used = 0
    amount_out = 0
    while amount_in_used < amount_in:
        step_in, step_out = _swap_step(pool, amount_in - amount_in_used, zero_for_one)
        amount_in_used = _checked(amount_in_used + step_in)
        amount_out = _checked(amount_out + step_out)
        if _price_limit_hit(pool.sqrt_price_x96, sqrt_price_limit, zero_for_one):
            break
        if step_in == 0:
            break

    _update_pool_after_swap(pool, amount_in_used, zero_for_one)

    pool.last_sequence_number = sequence_number
    update_oracle_observations(
        oracle_observations, pool, current_timestamp, _MAX_ORACLE_OBSERVATIONS
    )

    try:
        twap_price = calculate_twap(oracle_observations, pool.mev_config.oracle_window)
    except CLMMError:
        twap_price = pool.sqrt_price_x96

    return SwapResult(
        amount_in=amount_in_used,
        amount_out=amount_out,
        price_impact=price_impact,
        final_sqrt_price=pool.sqrt_price_x96,
        final_tick=pool.tick,
        fee_adjusted=fee_adjusted,
        current_fee=pool.fee,
        mev_protected=True,
        twap_price=twap_price,
    )


def _swap_step(pool, amount_remaining: int, zero_for_one: bool) -> Tuple[int, int]:
    """Swap up to the next initialised tick; returns (amount_in, amount_out)."""
    current_sqrt_price = pool.sqrt_price_x96
    liquidity = pool.liquidity

    step = -pool.tick_spacing if zero_for_one else pool.tick_spacing
    next_sqrt_price = get_sqrt_ratio_at_tick(pool.tick + step)

    if zero_for_one:
        max_amount_in = get_amount0_delta(current_sqrt_price, next_sqrt_price, liquidity, False)
    else:
        max_amount_in = get_amount1_delta(current_sqrt_price, next_sqrt_price, liquidity, False)

    amount_in_step = min(amount_remaining, max_amount_in)
    if amount_in_step == 0:
        return 0, 0

    if zero_for_one:
        amount_out_step = get_amount1_delta(current_sqrt_price, next_sqrt_price, liquidity, False)
        new_sqrt_price = get_next_sqrt_price_from_amount0_rounding_up(
            current_sqrt_price, liquidity, amount_in_step, True
        )
    else:
        amount_out_step = get_amount0_delta(current_sqrt_price, next_sqrt_price, liquidity, False)
        new_sqrt_price = get_next_sqrt_price_from_amount1_rounding_down(
            current_sqrt_price, liquidity, amount_in_step, False
        )

    new_tick = get_tick_at_sqrt_ratio(new_sqrt_price)
    pool.sqrt_price_x96 = new_sqrt_price
    pool.tick = new_tick
    return amount_in_step, amount_out_step


def calculate_price_impact(pool, amount_in: int, zero_for_one: bool) -> int:
    """Price impact of a swap in basis points, capped at 10000."""
    if pool.liquidity == 0:
        return _FULL_IMPACT_BPS

    current_price = sqrt_price_x96_to_price(pool.sqrt_price_x96)
    amount_out = estimate_swap_output(pool, amount_in, zero_for_one)
    if amount_out == 0:
        return _FULL_IMPACT_BPS

    amount_in_f = float(amount_in & _U128_MASK)
    amount_out_f = float(amount_out & _U128_MASK)
    if zero_for_one:
        ratio = amount_in_f / amount_out_f
    elif amount_in_f == 0:
        return _FULL_IMPACT_BPS
    else:
        ratio = amount_out_f / amount_in_f
    expected_price = current_price * ratio

    if current_price == 0:
        return _FULL_IMPACT_BPS
    impact = abs(expected_price - current_price) / current_price * 10000.0
    if math.isnan(impact):
        return _FULL_IMPACT_BPS
    return int(min(impact, float(_FULL_IMPACT_BPS)))


def estimate_swap_output(pool, amount_in: int, zero_for_one: bool) -> int:
    """Estimate the output of a swap at the pool's current fee, without executing it."""
    return _estimate_output(pool, amount_in, zero_for_one)


def _price_limit_valid(current_price: int, limit_price: int, zero_for_one: bool) -> bool:
    if zero_for_one:
        return limit_price >= current_price
    return limit_price <= current_price


def _price_limit_hit(current_price: int, limit_price: int, zero_for_one: bool) -> bool:
    if zero_for_one:
        return current_price <= limit_price
    return current_price >= limit_price


def _update_pool_after_swap(pool, amount_in: int, zero_for_one: bool) -> None:
    fee_amount = _checked(amount_in * pool.fee) // 10000
    _checked(amount_in - fee_amount)
    if pool.liquidity == 0:
        raise CLMMError(ErrorCode.MATH_OVERFLOW)
    fee_growth = _checked(fee_amount * Q96) // pool.liquidity

    if zero_for_one:
        pool.fee_growth_global0_x128 = _checked(pool.fee_growth_global0_x128 + fee_growth)
    else:
        pool.fee_growth_global1_x128 = _checked(pool.fee_growth_global1_x128 + fee_growth)

    pool.update_timestamp(int(time.time()) & 0xFFFFFFFF)