"""Price impact estimation and slippage recommendations."""

import enum
import math
from dataclasses import dataclass

from .errors import CLMMError, ErrorCode
from .fixed_point import (
    get_amount0_for_liquidity,
    get_amount1_for_liquidity,
    get_amounts_for_liquidity,
    sqrt_price_x96_to_price,
)
from .tick_math import Q96, U256_MAX

_U128_MASK = (1 << 128) - 1
_U32_MAX = (1 << 32) - 1
_FULL_IMPACT_BPS = 10000


class ImpactSeverity(enum.Enum):
    """Severity levels for price impact."""

    NEGLIGIBLE = "negligible"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def color_code(self) -> str:
        return _COLOR_CODES[self]

    def description(self) -> str:
        return _DESCRIPTIONS[self]


_COLOR_CODES = {
    ImpactSeverity.NEGLIGIBLE: "🟢",
    ImpactSeverity.LOW: "🟡",
    ImpactSeverity.MEDIUM: "🟠",
    ImpactSeverity.HIGH: "🔴",
    ImpactSeverity.CRITICAL: "💀",
}

_DESCRIPTIONS = {
    ImpactSeverity.NEGLIGIBLE: "Minimal impact - safe to proceed",
    ImpactSeverity.LOW: "Low impact - proceed with caution",
    ImpactSeverity.MEDIUM: "Medium impact - consider reducing amount",
    ImpactSeverity.HIGH: "High impact - strongly recommend reducing amount",
    ImpactSeverity.CRITICAL: "Critical impact - swap may fail or be unprofitable",
}

_SLIPPAGE_BPS = {
    ImpactSeverity.NEGLIGIBLE: 10,
    ImpactSeverity.LOW: 50,
    ImpactSeverity.MEDIUM: 100,
    ImpactSeverity.HIGH: 200,
    ImpactSeverity.CRITICAL: 500,
}


@dataclass
class PriceImpactResult:
    """Outcome of a price impact analysis."""

    impact_bps: int
    expected_price: float
    price_change: float
    severity: ImpactSeverity


def _checked(value: int) -> int:
    if not 0 <= value <= U256_MAX:
        raise CLMMError(ErrorCode.MATH_OVERFLOW)
    return value


def _divide(numerator: int, denominator: int) -> int:
    if denominator == 0:
        raise CLMMError(ErrorCode.MATH_OVERFLOW)
    return numerator // denominator


def _fdiv(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a)
    return a / b


def _saturating_u32(value: float) -> int:
    if math.isnan(value) or value <= 0:
        return 0
    if value >= _U32_MAX:
        return _U32_MAX
    return int(value)


def _critical() -> PriceImpactResult:
    return PriceImpactResult(
        impact_bps=_FULL_IMPACT_BPS,
        expected_price=0.0,
        price_change=math.inf,
        severity=ImpactSeverity.CRITICAL,
    )


def calculate_price_impact(pool, amount_in: int, zero_for_one: bool) -> PriceImpactResult:
    """Analyse the impact of swapping amount_in against the pool."""
    if pool.liquidity == 0:
        return _critical()

    current_price = sqrt_price_x96_to_price(pool.sqrt_price_x96)
    amount_out = estimate_swap_output(pool, amount_in, zero_for_one)
    if amount_out == 0:
        return _critical()

    amount_in_f = float(amount_in & _U128_MASK)
    amount_out_f = float(amount_out & _U128_MASK)
    if zero_for_one:
        expected_price = current_price * _fdiv(amount_in_f, amount_out_f)
    else:
        expected_price = current_price * _fdiv(amount_out_f, amount_in_f)

    price_change = _fdiv(expected_price - current_price, current_price) * 100.0
    impact_bps = _saturating_u32(abs(price_change) * 100.0)
    return PriceImpactResult(
        impact_bps=impact_bps,
        expected_price=expected_price,
        price_change=price_change,
        severity=classify_impact_severity(impact_bps),
    )


def estimate_swap_output(pool, amount_in: int, zero_for_one: bool) -> int:
    """Estimate the output amount of a swap without executing it."""
    if pool.liquidity == 0:
        return 0
    sqrt_price = pool.sqrt_price_x96

    fee_amount = _checked(amount_in * pool.fee) // 10000
    amount_after_fee = _checked(amount_in - fee_amount)
    price_squared = _checked(sqrt_price * sqrt_price)

    if zero_for_one:
        price_ratio = price_squared // Q96
        return _divide(_checked(amount_after_fee * Q96), price_ratio)
    price_ratio = _divide(Q96 * Q96, price_squared)
    return _checked(amount_after_fee * price_ratio) // Q96


def calculate_optimal_swap_amount(
    pool, target_price_impact_bps: int, zero_for_one: bool
) -> int:
    """Largest amount, up to 10% of liquidity, whose impact stays within target."""
    if pool.liquidity == 0:
        return 0

    low = 1
    high = pool.liquidity // 10
    optimal = 0
    for _ in range(64):
        mid = (low + high) // 2
        impact = calculate_price_impact(pool, mid, zero_for_one)
        if impact.impact_bps <= target_price_impact_bps:
            optimal = mid
            low = mid + 1
        else:
            if mid == 0:
                raise CLMMError(ErrorCode.MATH_OVERFLOW)
            high = mid - 1
    return optimal


def get_recommended_slippage_bps(impact_bps: int) -> int:
    """Recommended slippage tolerance for a given impact."""
    return _SLIPPAGE_BPS[classify_impact_severity(impact_bps)]


def classify_impact_severity(impact_bps: int) -> ImpactSeverity:
    """Map an impact in basis points to a severity level."""
    if impact_bps <= 50:
        return ImpactSeverity.NEGLIGIBLE
    if impact_bps <= 200:
        return ImpactSeverity.LOW
    if impact_bps <= 500:
        return ImpactSeverity.MEDIUM
    if impact_bps <= 2000:
        return ImpactSeverity.HIGH
    return ImpactSeverity.CRITICAL


def calculate_impermanent_loss(
    position_lower_sqrt_price: int,
    position_upper_sqrt_price: int,
    current_sqrt_price: int,
    initial_liquidity: int,
) -> float:
    """Relative value difference between the position and holding its tokens."""
    current_price = sqrt_price_x96_to_price(current_sqrt_price)

    amount0_current, amount1_current = get_amounts_for_liquidity(
        position_lower_sqrt_price, position_upper_sqrt_price, initial_liquidity
    )
    hodl_amount0 = get_amount0_for_liquidity(
        position_lower_sqrt_price, position_upper_sqrt_price, initial_liquidity
    )
    hodl_amount1 = get_amount1_for_liquidity(
        position_lower_sqrt_price, position_upper_sqrt_price, initial_liquidity
    )

    current_value = float(amount0_current & _U128_MASK) + float(
        amount1_current & _U128_MASK
    ) * current_price
    hodl_value = float(hodl_amount0 & _U128_MASK) + float(
        hodl_amount1 & _U128_MASK
    ) * current_price

    if hodl_value == 0.0:
        return 0.0
    return (current_value - hodl_value) / hodl_value