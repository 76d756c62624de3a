"""Concentrated-liquidity market maker math: ticks, fixed point, swaps, fees and MEV protection."""

__version__ = "0.1.0"

__all__ = [
    "errors",
    "tick_math",
    "fixed_point",
    "dynamic_fee",
    "price_impact",
    "mev_protection",
    "social",
    "swap",
]