"""
Customer unit economics and margin guardrails.

Revenue is not metered here: each customer's revenue is back-solved from
its compute cost using a deterministic, customer-specific margin. The
guardrails then flag customers priced below the target or floor margin
and recommend the uplift that would bring them back.

Status rules:
- FAIL: gross margin < floor
- WARN: gross margin < target
- OK: otherwise
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from compute_finops.config.loader import GuardrailThresholds
from compute_finops.ledger.models import UsageRecord
from .aggregation import aggregate
from .determinism import stable_unit_hash

logger = logging.getLogger(__name__)

MARGIN_BASE = 0.15
MARGIN_SPAN = 0.40


class GuardrailStatus(Enum):
    """Guardrail verdict for a customer."""
    OK = "OK"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass(frozen=True)
class CustomerEconomics:
    """Unit economics for one customer.

    ``gross_margin_pct`` is a fraction (0.42 means 42%). Prices and costs
    are per unit (NCC).
    """
    customer: str
    cost: float
    units: float
    revenue: float
    gross_margin_pct: float
    price_per_unit: float
    cost_per_unit: float
    min_price_at_floor: float
    min_price_at_target: float
    status: GuardrailStatus
    recommendation: str


def implied_margin(customer: str) -> float:
    """Deterministic margin for a customer, in [0.15, 0.55)."""
    return MARGIN_BASE + stable_unit_hash(customer) * MARGIN_SPAN


def implied_revenue(customer: str, cost: float) -> float:
    """Revenue that yields the customer's implied margin on ``cost``."""
    return cost / (1 - implied_margin(customer))


def classify_margin(gross_margin: float, thresholds: GuardrailThresholds) -> GuardrailStatus:
    """Bucket a gross margin fraction against the guardrails."""
    if gross_margin < thresholds.floor_gm:
        return GuardrailStatus.FAIL
    if gross_margin < thresholds.target_gm:
        return GuardrailStatus.WARN
    return GuardrailStatus.OK


def min_price_for_margin(cost_per_unit: float, margin: float, fallback: float) -> float:
    """Lowest unit price that achieves ``margin``; ``fallback`` when margin >= 1."""
    if margin >= 1:
        return fallback
    return cost_per_unit / (1 - margin)


def _recommendation(
    status: GuardrailStatus,
    price_per_unit: float,
    min_price_at_floor: float,
    min_price_at_target: float,
) -> str:
    if status == GuardrailStatus.FAIL:
        uplift = min_price_at_floor / price_per_unit - 1 if min_price_at_floor and price_per_unit else 0.0
        return (
            f"Raise price floor by {uplift * 100:.0f}% or reduce COGS; "
            "enforce minimums/commits."
        )
    if status == GuardrailStatus.WARN:
        uplift = min_price_at_target / price_per_unit - 1 if min_price_at_target and price_per_unit else 0.0
        return (
            f"Tighten discounts (~{uplift * 100:.0f}% uplift) or migrate workload "
            "to cheaper GPUs/providers."
        )
    return "Within guardrails - monitor and preserve pricing power."


def build_customer_economics(
    records: Iterable[UsageRecord],
    thresholds: Optional[GuardrailThresholds] = None,
) -> List[CustomerEconomics]:
    """Compute economics and guardrail status for every billable customer.

    Args:
        records: Usage records; records without a customer are ignored
        thresholds: Margin guardrails (defaults to target 50%, floor 35%)

    Returns:
        One entry per customer, sorted by cost descending (empty for no customers)
    """
    thresholds = thresholds or GuardrailThresholds()
    billable = [r for r in records if r.is_billable]

    results = []
    for totals in aggregate(billable, "customer"):
        customer = totals.key
        revenue = implied_revenue(customer, totals.cost)
        gross_margin = (revenue - totals.cost) / revenue if revenue > 0 else 0.0
        cost_per_unit = totals.cost / totals.units if totals.units else 0.0
        price_per_unit = revenue / totals.units if totals.units else 0.0
        min_floor = min_price_for_margin(cost_per_unit, thresholds.floor_gm, price_per_unit)
        min_target = min_price_for_margin(cost_per_unit, thresholds.target_gm, price_per_unit)
        status = classify_margin(gross_margin, thresholds)

        results.append(CustomerEconomics(
            customer=customer,
            cost=totals.cost,
            units=totals.units,
            revenue=revenue,
            gross_margin_pct=gross_margin,
            price_per_unit=price_per_unit,
            cost_per_unit=cost_per_unit,
            min_price_at_floor=min_floor,
            min_price_at_target=min_target,
            status=status,
            recommendation=_recommendation(status, price_per_unit, min_floor, min_target),
        ))

    results.sort(key=lambda e: e.cost, reverse=True)
    logger.debug(
        "Customer economics: %d customers, %d FAIL, %d WARN",
        len(results),
        sum(1 for e in results if e.status == GuardrailStatus.FAIL),
        sum(1 for e in results if e.status == GuardrailStatus.WARN),
    )
    return results


def status_by_customer(economics: Iterable[CustomerEconomics]) -> Dict[str, GuardrailStatus]:
    """Index guardrail status by customer name."""
    return {e.customer: e.status for e in economics}
