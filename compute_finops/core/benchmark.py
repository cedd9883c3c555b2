"""
Benchmark GPU price feed.

Deterministic per-class spot and 7-day average prices per unit, standing
in for a market data feed. A shock multiplier scales every price to
simulate market movement.
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional

from compute_finops.config.loader import DEFAULT_ONPREM_CAPACITY, CapacitySpec
from .determinism import stable_unit_hash

BASE_PRICE = 0.018
BASE_PRICE_SPAN = 0.022
DRIFT_SPAN = 0.004
DRIFT_SALT = "7"


@dataclass(frozen=True)
class BenchmarkQuote:
    """Benchmark prices for one GPU class, per unit."""
    gpu_class: str
    spot: float
    avg_7d: float
    spread_pct: float
    volatility_7d_pct: float


@dataclass(frozen=True)
class FeedRow:
    """A quote plus the implied price of a full rig-day."""
    quote: BenchmarkQuote
    price_per_rig_day: float


def benchmark_quote(gpu_class: str, shock_multiplier: float = 1.0) -> BenchmarkQuote:
    """Quote for ``gpu_class`` scaled by ``shock_multiplier`` (1 + shock fraction).

    Prices are floored at 0, so any multiplier is accepted.
    """
    h = stable_unit_hash(gpu_class)
    base = BASE_PRICE + h * BASE_PRICE_SPAN
    drift = (stable_unit_hash(gpu_class + DRIFT_SALT) - 0.5) * DRIFT_SPAN
    return BenchmarkQuote(
        gpu_class=gpu_class,
        spot=max(0.0, (base + drift) * shock_multiplier),
        avg_7d=max(0.0, base * shock_multiplier),
        spread_pct=0.02 + h * 0.03,
        volatility_7d_pct=0.08 + h * 0.12,
    )


def benchmark_feed(
    capacity: Optional[Mapping[str, CapacitySpec]] = None,
    shock_pct: float = 0.0,
) -> List[FeedRow]:
    """Quotes for every class in the capacity table, in table order."""
    capacity = DEFAULT_ONPREM_CAPACITY if capacity is None else capacity
    rows = []
    for gpu_class, spec in capacity.items():
        quote = benchmark_quote(gpu_class, 1 + shock_pct)
        rows.append(FeedRow(quote=quote, price_per_rig_day=quote.spot * spec.units_per_rig_per_day))
    return rows
