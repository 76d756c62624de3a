"""Fee adjustment driven by volatility, volume and price impact."""

import math
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .errors import CLMMError, ErrorCode

BASE_FEE_BPS = 30
MIN_FEE_BPS = 1
MAX_FEE_BPS = 100
VOLATILITY_WINDOW = 24
VOLUME_WINDOW = 24
PRICE_IMPACT_WINDOW = 12
ADJUSTMENT_INTERVAL = 3600

HIGH_VOLATILITY = 0.05
LOW_VOLATILITY = 0.01
HIGH_VOLUME = 1_000_000_000_000
LOW_VOLUME = 10_000_000_000
HIGH_IMPACT_BPS = 500
LOW_IMPACT_BPS = 100

_U64_MASK = (1 << 64) - 1


@dataclass(frozen=True)
class MarketDataPoint:
    """One observation of market conditions."""

    timestamp: int
    price: int
    volume: int
    price_impact: int


@dataclass
class FeeAdjustment:
    """Record of a fee change applied to a pool."""

    old_fee: int
    new_fee: int
    adjustment_reason: str
    timestamp: int


@dataclass
class MarketHistory:
    """Rolling windows of market data used for fee decisions."""

    prices: deque = field(default_factory=lambda: deque(maxlen=VOLATILITY_WINDOW))
    volumes: deque = field(default_factory=lambda: deque(maxlen=VOLUME_WINDOW))
    impacts: deque = field(default_factory=lambda: deque(maxlen=PRICE_IMPACT_WINDOW))

    def add(self, point: MarketDataPoint) -> None:
        """Append a point to every window, dropping the oldest when full."""
        self.prices.append(point)
        self.volumes.append(point)
        self.impacts.append(point)


def _price_to_float(value: int) -> float:
    # Each 64-bit word is weighted by successive powers of 256.
    words = ((value >> (64 * i)) & _U64_MASK for i in range(4))
    result = sum(word * 256.0**i for i, word in enumerate(words))
    if math.isinf(result):
        raise CLMMError(ErrorCode.INVALID_PRICE)
    return result


def calculate_volatility(price_history: Iterable[MarketDataPoint]) -> float:
    """Coefficient of variation of the prices; 0.0 with fewer than two points."""
    points = list(price_history)
    if len(points) < 2:
        return 0.0
    prices = [_price_to_float(point.price) for point in points]
    mean = sum(prices) / len(prices)
    variance = sum((price - mean) ** 2 for price in prices) / len(prices)
    if mean == 0:
        return math.nan
    return math.sqrt(variance) / mean


def calculate_average_volume(volume_history: Iterable[MarketDataPoint]) -> int:
    """Integer mean of the volumes; 0 for an empty history."""
    volumes = [point.volume for point in volume_history]
    if not volumes:
        return 0
    return sum(volumes) // len(volumes)


def calculate_average_price_impact(impact_history: Iterable[MarketDataPoint]) -> int:
    """Integer mean of the price impacts; 0 for an empty history."""
    impacts = [point.price_impact for point in impact_history]
    if not impacts:
        return 0
    return sum(impacts) // len(impacts)


def calculate_fee_adjustment(current_fee: int, history: MarketHistory) -> int:
    """New fee in basis points for the given market history, clamped to bounds."""
    adjustment = 0

    volatility = calculate_volatility(history.prices)
    if volatility > HIGH_VOLATILITY:
        adjustment += 20
    elif volatility < LOW_VOLATILITY:
        adjustment -= 10

    avg_volume = calculate_average_volume(history.volumes)
    if avg_volume > HIGH_VOLUME:
        adjustment -= 15
    elif avg_volume < LOW_VOLUME:
        adjustment += 10

    avg_impact = calculate_average_price_impact(history.impacts)
    if avg_impact > HIGH_IMPACT_BPS:
        adjustment += 25
    elif avg_impact < LOW_IMPACT_BPS:
        adjustment -= 10

    return max(MIN_FEE_BPS, min(MAX_FEE_BPS, current_fee + adjustment))


def update_pool_fee(
    pool, history: MarketHistory, timestamp: Optional[int] = None
) -> FeeAdjustment:
    """Apply the computed fee to the pool and describe the change."""
    old_fee = pool.fee
    new_fee = calculate_fee_adjustment(old_fee, history)
    reason = generate_adjustment_reason(history)
    pool.fee = new_fee
    if timestamp is None:
        timestamp = int(time.time()) & 0xFFFFFFFF
    return FeeAdjustment(
        old_fee=old_fee,
        new_fee=new_fee,
        adjustment_reason=reason,
        timestamp=timestamp,
    )


def generate_adjustment_reason(history: MarketHistory) -> str:
    """Human-readable explanation of the market conditions behind a fee change."""
    reasons = []

    try:
        volatility = calculate_volatility(history.prices)
    except CLMMError:
        volatility = None
    if volatility is not None:
        if volatility > HIGH_VOLATILITY:
            reasons.append("High market volatility")
        elif volatility < LOW_VOLATILITY:
            reasons.append("Low market volatility")

    avg_volume = calculate_average_volume(history.volumes)
    if avg_volume > HIGH_VOLUME:
        reasons.append("High trading volume")
    elif avg_volume < LOW_VOLUME:
        reasons.append("Low trading volume")

    avg_impact = calculate_average_price_impact(history.impacts)
    if avg_impact > HIGH_IMPACT_BPS:
        reasons.append("High price impact")
    elif avg_impact < LOW_IMPACT_BPS:
        reasons.append("Low price impact")

    if not reasons:
        return "Market conditions stable"
    return "Adjustment based on: " + ", ".join(reasons)


def should_adjust_fee(last_adjustment: int, current_time: int) -> bool:
    """True once at least an hour has passed since the last adjustment."""
    if current_time < last_adjustment:
        raise ValueError("current time precedes the last adjustment")
    return current_time - last_adjustment >= ADJUSTMENT_INTERVAL