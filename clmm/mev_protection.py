"""Protection against value extraction: TWAP checks, batching and ordering."""

import struct
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional, Union

from .errors import CLMMError, ErrorCode
from .tick_math import U256_MAX

_U32_MAX = (1 << 32) - 1
_MEV_CONFIG_FORMAT = "<IIIBIB"
_MEV_CONFIG_SIZE = struct.calcsize(_MEV_CONFIG_FORMAT)


def _checked(value: int) -> int:
    if not 0 <= value <= U256_MAX:
        raise CLMMError(ErrorCode.MATH_OVERFLOW)
    return value


def _saturating_sub(a: int, b: int) -> int:
    return a - b if a > b else 0


def _deviation_bps(price: int, reference: int) -> int:
    """Absolute deviation of price from reference, in basis points."""
    if reference == 0:
        raise CLMMError(ErrorCode.MATH_OVERFLOW)
    return _checked(abs(price - reference) * 10000) // reference


@dataclass(frozen=True)
class OracleObservation:
    """A pool price sample used for TWAP calculation."""

    timestamp: int
    price: int
    tick: int
    liquidity: int


@dataclass(frozen=True)
class BatchAuctionEntry:
    """A swap waiting in a batch auction."""

    user: bytes
    amount_in: int
    min_amount_out: int
    zero_for_one: bool
    timestamp: int
    sequence_number: int


@dataclass(frozen=True)
class SwapOperation:
    """A batched swap."""

    user: bytes
    amount_in: int
    min_amount_out: int
    zero_for_one: bool
    sqrt_price_limit: int


@dataclass(frozen=True)
class AddLiquidityOperation:
    """A batched liquidity deposit."""

    user: bytes
    pool_id: bytes
    tick_lower: int
    tick_upper: int
    amount_0: int
    amount_1: int


@dataclass(frozen=True)
class RemoveLiquidityOperation:
    """A batched liquidity withdrawal."""

    user: bytes
    pool_id: bytes
    position_id: bytes
    liquidity_amount: int


BatchOperation = Union[SwapOperation, AddLiquidityOperation, RemoveLiquidityOperation]


@dataclass
class BatchState:
    """Queue of pending operations and the counters of a batch."""

    operations: Deque[BatchOperation] = field(default_factory=deque)
    total_operations: int = 0
    batch_start_time: int = 0
    last_execution_time: int = 0
    gas_budget: int = 0
    gas_used: int = 0
    successful_operations: int = 0
    failed_operations: int = 0


@dataclass(frozen=True)
class BatchStatistics:
    """Summary of a batch's progress."""

    total_operations: int
    successful_operations: int
    failed_operations: int
    elapsed_time: int
    success_rate: int
    gas_used: int
    gas_budget: int


@dataclass
class MevConfig:
    """Settings for the protection checks."""

    oracle_window: int
    min_update_interval: int
    max_slippage_bps: int
    batch_auction_enabled: bool
    batch_window: int
    oracle_enabled: bool

    def to_bytes(self) -> bytes:
        """Serialize as little-endian u32 fields and one-byte booleans."""
        try:
            return struct.pack(
                _MEV_CONFIG_FORMAT,
                self.oracle_window,
                self.min_update_interval,
                self.max_slippage_bps,
                1 if self.batch_auction_enabled else 0,
                self.batch_window,
                1 if self.oracle_enabled else 0,
            )
        except struct.error as exc:
            raise ValueError(f"field out of range: {exc}") from exc

    @classmethod
    def from_bytes(cls, data: bytes) -> "MevConfig":
        """Parse bytes produced by to_bytes."""
        if len(data) != _MEV_CONFIG_SIZE:
            raise ValueError(
                f"expected {_MEV_CONFIG_SIZE} bytes, got {len(data)}"
            )
        window, interval, slippage, batch_flag, batch_window, oracle_flag = (
            struct.unpack(_MEV_CONFIG_FORMAT, data)
        )
        for flag in (batch_flag, oracle_flag):
            if flag not in (0, 1):
                raise ValueError(f"invalid boolean byte: {flag}")
        return cls(
            oracle_window=window,
            min_update_interval=interval,
            max_slippage_bps=slippage,
            batch_auction_enabled=bool(batch_flag),
            batch_window=batch_window,
            oracle_enabled=bool(oracle_flag),
        )


@dataclass(frozen=True)
class MevProtectionStatus:
    """Snapshot of the TWAP check for a pool."""

    twap_price: int
    spot_price: int
    deviation_bps: int
    oracle_observations_count: int
    protection_enabled: bool


def default_config() -> MevConfig:
    """Default protection settings."""
    return MevConfig(
        oracle_window=300,
        min_update_interval=60,
        max_slippage_bps=1000,
        batch_auction_enabled=True,
        batch_window=30,
        oracle_enabled=True,
    )


def validate_twap_vs_spot(observations, spot_price: int, config: MevConfig) -> bool:
    """True if the spot price is within the allowed slippage of the TWAP."""
    if not config.oracle_enabled or len(observations) < 2:
        return True
    twap = calculate_twap(observations, config.oracle_window)
    return _deviation_bps(spot_price, twap) <= config.max_slippage_bps


def calculate_twap(observations, window: int) -> int:
    """Time-weighted average price over the trailing window."""
    samples = list(observations)
    if len(samples) < 2:
        raise CLMMError(ErrorCode.INVALID_ORACLE)

    current_time = samples[-1].timestamp
    window_start = _saturating_sub(current_time, window)
    valid = sorted(
        (obs for obs in samples if obs.timestamp >= window_start),
        key=lambda obs: obs.timestamp,
    )
    if not valid:
        raise CLMMError(ErrorCode.INVALID_ORACLE)

    weighted_sum = 0
    total_weight = 0
    prev = valid[0]
    for obs in valid[1:]:
        start = max(prev.timestamp, window_start)
        end = min(obs.timestamp, current_time)
        if end > start:
            duration = end - start
            avg_price = _checked(prev.price + obs.price) // 2
            weighted_sum = _checked(weighted_sum + _checked(avg_price * duration))
            total_weight += duration
        prev = obs

    if total_weight == 0:
        raise CLMMError(ErrorCode.INVALID_ORACLE)
    return weighted_sum // total_weight


def validate_update_frequency(last_update: int, current_time: int, config: MevConfig) -> bool:
    """True if enough time has passed since the last update."""
    return _saturating_sub(current_time, last_update) >= config.min_update_interval


def process_batch_auction(
    pending_swaps: Deque[BatchAuctionEntry], current_time: int, config: MevConfig
) -> List[BatchAuctionEntry]:
    """Remove and return the leading swaps whose batch window has elapsed."""
    if not config.batch_auction_enabled:
        return []
    executed = []
    while pending_swaps and (
        _saturating_sub(current_time, pending_swaps[0].timestamp) >= config.batch_window
    ):
        executed.append(pending_swaps.popleft())
    return executed


def process_enhanced_batch(
    batch_state: BatchState, current_time: int, config: MevConfig
) -> List[BatchOperation]:
    """Execute queued operations once the batch window has elapsed."""
    if _saturating_sub(current_time, batch_state.batch_start_time) < config.batch_window:
        return []
    if batch_state.gas_used >= batch_state.gas_budget:
        return []

    executed = []
    while batch_state.operations:
        if batch_state.gas_used >= batch_state.gas_budget:
            break
        executed.append(batch_state.operations.popleft())
        batch_state.successful_operations += 1

    batch_state.last_execution_time = current_time
    return executed


def add_to_batch(batch_state: BatchState, operation: BatchOperation, current_time: int) -> None:
    """Queue an operation, starting the batch clock if the queue was empty."""
    if not batch_state.operations:
        batch_state.batch_start_time = current_time
        batch_state.last_execution_time = current_time
    batch_state.operations.append(operation)
    batch_state.total_operations += 1


def get_batch_stats(batch_state: BatchState) -> BatchStatistics:
    """Summarise a batch's counters."""
    elapsed = _saturating_sub(batch_state.last_execution_time, batch_state.batch_start_time)
    if batch_state.total_operations > 0:
        success_rate = batch_state.successful_operations * 100 // batch_state.total_operations
    else:
        success_rate = 0
    return BatchStatistics(
        total_operations=batch_state.total_operations,
        successful_operations=batch_state.successful_operations,
        failed_operations=batch_state.failed_operations,
        elapsed_time=elapsed,
        success_rate=success_rate,
        gas_used=batch_state.gas_used,
        gas_budget=batch_state.gas_budget,
    )


def create_batch_state(gas_budget: int) -> BatchState:
    """An empty batch with the given gas budget."""
    return BatchState(gas_budget=gas_budget)


def validate_transaction_ordering(sequence_number: int, last_processed_sequence: int) -> bool:
    """True if the sequence number directly follows the last processed one."""
    return sequence_number == last_processed_sequence + 1


def calculate_mev_resistant_fee(
    spot_price: int, twap_price: int, base_fee: int, config: Optional[MevConfig] = None
) -> int:
    """Raise the fee with the spot price's deviation from the TWAP."""
    deviation = _deviation_bps(spot_price, twap_price)
    fee = base_fee
    if deviation > 500:
        fee = min(fee * 3, _U32_MAX)
    elif deviation > 200:
        fee = min(fee * 2, _U32_MAX)
    elif deviation > 100:
        if fee * 3 > _U32_MAX:
            raise CLMMError(ErrorCode.MATH_OVERFLOW)
        fee = fee * 3 // 2
    return max(min(fee, 1000), 1)


def update_oracle_observations(
    observations: Deque[OracleObservation], pool, current_time: int, max_observations: int
) -> None:
    """Record the pool's current state, keeping at most max_observations."""
    observations.append(
        OracleObservation(
            timestamp=current_time,
            price=pool.sqrt_price_x96,
            tick=pool.tick,
            liquidity=pool.liquidity,
        )
    )
    while len(observations) > max_observations:
        observations.popleft()


def validate_swap_mev_protection(
    pool,
    amount_in: int,
    zero_for_one: bool,
    sqrt_price_limit: int,
    oracle_observations,
    config: MevConfig,
) -> bool:
    """Check the pool price and the swap's price limit against the TWAP."""
    if not validate_twap_vs_spot(oracle_observations, pool.sqrt_price_x96, config):
        return False
    twap = calculate_twap(oracle_observations, config.oracle_window)
    if zero_for_one:
        return sqrt_price_limit >= twap
    return sqrt_price_limit <= twap


def get_mev_protection_status(pool, oracle_observations, config: MevConfig) -> MevProtectionStatus:
    """Current TWAP, spot price and their deviation for a pool."""
    twap = calculate_twap(oracle_observations, config.oracle_window)
    spot = pool.sqrt_price_x96
    return MevProtectionStatus(
        twap_price=twap,
        spot_price=spot,
        deviation_bps=_deviation_bps(spot, twap) & _U32_MAX,
        oracle_observations_count=len(oracle_observations),
        protection_enabled=config.oracle_enabled,
    )