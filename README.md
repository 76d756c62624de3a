# clmm

Pure-Python math for a concentrated-liquidity market maker (CLMM). Prices are
kept as square roots in Q64.96 fixed point, and all large quantities are plain
Python integers checked against the unsigned 256-bit range. Every failing
operation raises `clmm.errors.CLMMError`, whose `code` attribute is an
`ErrorCode`.

The package has no runtime dependencies.

## Install

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Modules

- `clmm.errors`: `ErrorCode` (an `IntEnum` numbered 0 to 7, each with a
  `message`) and the `CLMMError` exception.
- `clmm.tick_math`: `MIN_TICK`, `MAX_TICK`, `Q96`, `get_sqrt_ratio_at_tick`,
  `get_tick_at_sqrt_ratio`, and the next-price helpers
  `get_next_sqrt_price_from_amount0_rounding_up` and
  `get_next_sqrt_price_from_amount1_rounding_down`. Note that
  `tick_math.mul_div` returns the product of the low 64-bit words of its two
  factors (raising on overflow of 64 bits) and only checks the denominator
  against zero; `tick_math.mul_div_rounding_up` builds on it.
- `clmm.fixed_point`: a full-precision `mul_div` and `mul_div_rounding_up`,
  integer `sqrt`, `div_rounding_up`, amount deltas
  (`get_amount0_delta`, `get_amount1_delta`), amount/liquidity conversions
  (`get_amount0_for_liquidity`, `get_amount1_for_liquidity`,
  `get_amounts_for_liquidity`, `get_liquidity_for_amounts`), and
  `price_to_sqrt_price_x96` / `sqrt_price_x96_to_price`.
- `clmm.dynamic_fee`: `MarketDataPoint`, the `MarketHistory` rolling windows
  (24 prices, 24 volumes, 12 impacts), `calculate_volatility`,
  `calculate_average_volume`, `calculate_average_price_impact`,
  `calculate_fee_adjustment`, `generate_adjustment_reason`, `update_pool_fee`
  (returns a `FeeAdjustment`) and `should_adjust_fee` (one-hour interval).
  Fees are kept between 1 and 100 basis points.
- `clmm.price_impact`: `calculate_price_impact` (returns a
  `PriceImpactResult`), `estimate_swap_output`,
  `calculate_optimal_swap_amount` (binary search up to 10% of liquidity),
  `classify_impact_severity`, `get_recommended_slippage_bps`,
  `calculate_impermanent_loss`, and the `ImpactSeverity` enum with
  `color_code()` and `description()`.
- `clmm.mev_protection`: `calculate_twap`, `validate_twap_vs_spot`,
  `validate_update_frequency`, `validate_transaction_ordering`,
  `validate_swap_mev_protection`, `get_mev_protection_status`,
  `calculate_mev_resistant_fee`, `update_oracle_observations`, batch auctions
  (`process_batch_auction`) and operation batches (`create_batch_state`,
  `add_to_batch`, `process_enhanced_batch`, `get_batch_stats`). `MevConfig`
  serialises to 18 little-endian bytes with `to_bytes()` and is read back
  with `MevConfig.from_bytes()`; `default_config()` gives the default settings.
- `clmm.social`: `SocialMediaData`, `SocialMediaConfig`
  (`social_media_config()` gives defaults), `text_similarity` (Jaccard index
  of words), `analyze_social_media_sentiment` (returns `SocialMediaMetrics`),
  `validate_enhanced_mev_protection`, `add_social_media_data` and
  `generate_social_mev_report` (returns `SocialMevReport`).
- `clmm.swap`: `execute_swap` (returns a `SwapResult`),
  `update_dynamic_fees`, `calculate_price_impact` (basis points, capped at
  10000) and `estimate_swap_output`.

## The pool object

The swap, price impact, fee and protection functions take a pool object that
you supply. Any object with these attributes works: `sqrt_price_x96`, `tick`,
`tick_spacing`, `liquidity`, `fee`, `unlocked`, `dynamic_fee_enabled`,
`last_fee_adjustment`, `last_sequence_number`, `mev_config`,
`fee_growth_global0_x128`, `fee_growth_global1_x128`, and an
`update_timestamp(timestamp)` method. Functions that change the pool set
these attributes in place.

## Example

```python
from clmm import dynamic_fee, fixed_point, tick_math
from clmm.errors import CLMMError

sqrt_price = fixed_point.price_to_sqrt_price_x96(100.0)
print(fixed_point.sqrt_price_x96_to_price(sqrt_price))  # about 100.0

print(fixed_point.mul_div(100, 200, 1000))  # 20

history = dynamic_fee.MarketHistory()
history.add(dynamic_fee.MarketDataPoint(timestamp=0, price=1000, volume=5, price_impact=0))
print(dynamic_fee.calculate_fee_adjustment(30, history))  # 20

try:
    tick_math.get_sqrt_ratio_at_tick(10**7)
except CLMMError as exc:
    print(exc.code.name)  # INVALID_TICK_RANGE
```

## What this package does not do

It is a library of calculations only. It has no pool, position or tick state
types of its own, no storage, no multi-pool routing, no instruction handling
or account processing, and no command-line program. Swaps move the price one
tick spacing at a time from the pool's current tick; there is no tick bitmap
or record of initialised ticks.