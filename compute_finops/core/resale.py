"""
Idle-capacity resale model.

Owned GPU capacity that internal workloads leave unused can be sold on a
marketplace. Idle units are accumulated per day against a fixed capacity
table, then priced off the benchmark feed.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from compute_finops.config.loader import FinanceConfig, ResaleParams
from compute_finops.ledger.models import UsageRecord, Vendor
from .aggregation import aggregate_nested
from .benchmark import benchmark_quote

logger = logging.getLogger(__name__)

TOTAL_LABEL = "Total"


@dataclass(frozen=True)
class ResaleRow:
    """Resale economics for one GPU class, or the totals row (``price`` is None)."""
    gpu_class: str
    idle_units: float
    resale_units: float
    price: Optional[float]
    revenue: float
    incremental_cost: float
    fees: float
    contribution: float


@dataclass(frozen=True)
class ResaleModel:
    rows: List[ResaleRow]
    totals: ResaleRow


def idle_units_by_class(
    records: Iterable[UsageRecord],
    config: Optional[FinanceConfig] = None,
) -> Dict[str, float]:
    """Idle owned units per GPU class, summed over days with on-prem usage.

    On each such day a class in the capacity table contributes
    ``max(0, capacity - used)``, or its full capacity when it saw no use.
    On-prem usage on classes outside the table is ignored.
    """
    config = config or FinanceConfig()
    capacity = config.onprem_capacity
    onprem = [r for r in records if r.vendor == Vendor.ON_PREM]
    used = aggregate_nested(onprem, "date", "gpu_class")

    idle = {gpu_class: 0.0 for gpu_class in capacity}
    unknown = set()
    for by_class in used.values():
        for gpu_class, spec in capacity.items():
            day_used = by_class[gpu_class].units if gpu_class in by_class else 0.0
            idle[gpu_class] += max(0.0, spec.daily_capacity - day_used)
        unknown.update(c for c in by_class if c not in capacity)

    if unknown:
        logger.warning("Ignoring on-prem usage on GPU classes without capacity: %s", sorted(unknown))
    return idle


def build_resale_model(
    records: Iterable[UsageRecord],
    params: Optional[ResaleParams] = None,
    shock_pct: float = 0.0,
    config: Optional[FinanceConfig] = None,
) -> ResaleModel:
    """Model resale revenue and contribution per GPU class.

    Args:
        records: Usage records
        params: Resale knobs (sell-through, pricing, costs, fees)
        shock_pct: Benchmark price shock as a fraction (0.1 means +10%)
        config: Engine configuration (capacity table)

    Returns:
        Rows sorted by contribution descending, plus a totals row
    """
    params = params or ResaleParams()
    config = config or FinanceConfig()
    idle = idle_units_by_class(records, config)

    rows = []
    for gpu_class, idle_units in idle.items():
        resale_units = idle_units * params.sell_through
        price = benchmark_quote(gpu_class, 1 + shock_pct).spot * params.price_pct_of_benchmark
        revenue = resale_units * price
        fees = revenue * params.marketplace_fee_pct
        incremental_cost = resale_units * params.incremental_cost_per_unit
        rows.append(ResaleRow(
            gpu_class=gpu_class,
            idle_units=idle_units,
            resale_units=resale_units,
            price=price,
            revenue=revenue,
            incremental_cost=incremental_cost,
            fees=fees,
            contribution=revenue - incremental_cost - fees,
        ))

    totals = ResaleRow(
        gpu_class=TOTAL_LABEL,
        idle_units=sum(r.idle_units for r in rows),
        resale_units=sum(r.resale_units for r in rows),
        price=None,
        revenue=sum(r.revenue for r in rows),
        incremental_cost=sum(r.incremental_cost for r in rows),
        fees=sum(r.fees for r in rows),
        contribution=sum(r.contribution for r in rows),
    )
    rows.sort(key=lambda r: r.contribution, reverse=True)
    return ResaleModel(rows=rows, totals=totals)
