"""Fixed-point helpers for Q64.96 sqrt prices and liquidity amounts."""

import math

from .errors import CLMMError, ErrorCode
from .tick_math import Q96, U256_MAX

_U128_MASK = (1 << 128) - 1
_Q96_FLOAT = 79228162514264337593543950336.0


def _checked(value: int) -> int:
    if not 0 <= value <= U256_MAX:
        raise CLMMError(ErrorCode.MATH_OVERFLOW)
    return value


def _ordered(a: int, b: int) -> tuple[int, int]:
    return (a, b) if a < b else (b, a)


def mul_div_rounding_up(x: int, y: int, denominator: int) -> int:
    """x * y / denominator, rounded up."""
    result = mul_div(x, y, denominator)
    if _checked(x * y) % denominator:
        return _checked(result + 1)
    return result


def mul_div(x: int, y: int, denominator: int) -> int:
    """x * y / denominator, rounded down."""
    if denominator == 0:
        raise CLMMError(ErrorCode.MATH_OVERFLOW)
    return _checked(x * y // denominator)


def sqrt(x: int) -> int:
    """Integer square root, rounded down."""
    if x == 0:
        return 0
    _checked(x + 1)
    return math.isqrt(x)


def get_amount0_for_liquidity(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    """Amount of token0 for liquidity between two sqrt prices."""
    lower, upper = (sqrt_b, sqrt_a) if sqrt_a > sqrt_b else (sqrt_a, sqrt_b)
    try:
        scaled = mul_div(lower, upper, Q96)
    except CLMMError:
        scaled = 0
    return _checked(scaled * liquidity) // Q96


def get_amount1_for_liquidity(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    """Amount of token1 for liquidity between two sqrt prices."""
    lower, upper = (sqrt_b, sqrt_a) if sqrt_a > sqrt_b else (sqrt_a, sqrt_b)
    return _checked((upper - lower) * liquidity) // Q96


def get_amount0_delta(
    sqrt_price_a: int, sqrt_price_b: int, liquidity: int, round_up: bool
) -> int:
    """Token0 delta for a move between two sqrt prices."""
    start, end = _ordered(sqrt_price_a, sqrt_price_b)
    numerator1 = (liquidity << 96) & U256_MAX
    numerator2 = end - start
    product = _checked(numerator1 * numerator2)
    denominator = _checked(end * start)

    amount0 = div_rounding_up(product, denominator)
    if round_up and product % denominator:
        return _checked(amount0 + 1)
    return amount0


def get_amount1_delta(
    sqrt_price_a: int, sqrt_price_b: int, liquidity: int, round_up: bool
) -> int:
    """Token1 delta for a move between two sqrt prices."""
    start, end = _ordered(sqrt_price_a, sqrt_price_b)
    numerator = _checked(liquidity * (end - start))
    if round_up:
        return div_rounding_up(numerator, Q96)
    return numerator // Q96


def div_rounding_up(numerator: int, denominator: int) -> int:
    """Integer division rounded up."""
    quotient, remainder = divmod(numerator, denominator)
    return quotient + 1 if remainder else quotient


def price_to_sqrt_price_x96(price: float) -> int:
    """Convert a price to a Q64.96 sqrt price, saturating to 128 bits."""
    root = math.sqrt(price) if price >= 0 else math.nan
    scaled = root * _Q96_FLOAT
    if math.isnan(scaled) or scaled <= 0:
        return 0
    if scaled >= 2.0**128:
        return _U128_MASK
    return int(scaled)


def sqrt_price_x96_to_price(sqrt_price_x96: int) -> float:
    """Convert a Q64.96 sqrt price (low 128 bits) back to a price."""
    root = (sqrt_price_x96 & _U128_MASK) / _Q96_FLOAT
    return root * root


def get_liquidity_for_amounts(
    sqrt_price_a: int, sqrt_price_b: int, amount0: int, amount1: int
) -> int:
    """Liquidity supported by both amounts over a price range."""
    lower, upper = _ordered(sqrt_price_a, sqrt_price_b)
    if upper == lower:
        return 0
    amount0_liquidity = _checked(_checked(amount0 * lower) * upper) // Q96
    amount1_liquidity = _checked(amount1 * Q96) // (upper - lower)
    return min(amount0_liquidity, amount1_liquidity)


def get_amounts_for_liquidity(
    sqrt_price_a: int, sqrt_price_b: int, liquidity: int
) -> tuple[int, int]:
    """Token0 and token1 amounts for liquidity over a price range."""
    lower, upper = _ordered(sqrt_price_a, sqrt_price_b)
    return (
        get_amount0_for_liquidity(lower, upper, liquidity),
        get_amount1_for_liquidity(lower, upper, liquidity),
    )