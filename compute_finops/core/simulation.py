"""
What-if scenario simulation.

Composes the engine's levers into one baseline-vs-scenario P&L:

1. Baseline KPIs from unmodified records
2. Price uplift for customers in WARN/FAIL guardrail status
3. Vendor cost shift, repriced by the vendor unit-cost index
4. Commit discounts on each vendor's reserved variable cost
5. Idle-capacity resale revenue and costs

The simulation is read-only and deterministic: the same records and
levers always produce the same result. Everything is kept at full
precision; call ``ScenarioResult.rounded()`` at the presentation edge.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from compute_finops.config.loader import FinanceConfig, ScenarioParams
from compute_finops.ledger.models import UsageRecord, Vendor
from .baseline import PnLSnapshot, compute_baseline, snapshot
from .cost_split import split_cost
from .guardrails import GuardrailStatus, build_customer_economics, implied_revenue, status_by_customer
from .resale import ResaleRow, build_resale_model

logger = logging.getLogger(__name__)

UPLIFT_STATUSES = (GuardrailStatus.WARN, GuardrailStatus.FAIL)


@dataclass(frozen=True)
class ScenarioDetail:
    """Intermediate values kept for auditability."""
    variable_cost_by_vendor: Dict[Vendor, float]
    fixed_cost: float
    uplift_by_customer: Dict[str, float]
    resale_totals: Optional[ResaleRow] = None


@dataclass(frozen=True)
class ScenarioResult:
    """Baseline, scenario and their difference (scenario - baseline)."""
    baseline: PnLSnapshot
    scenario: PnLSnapshot
    deltas: PnLSnapshot
    detail: ScenarioDetail

    def rounded(self) -> "ScenarioResult":
        """Copy with KPI snapshots rounded for presentation."""
        return ScenarioResult(
            baseline=self.baseline.rounded(),
            scenario=self.scenario.rounded(),
            deltas=self.deltas.rounded(),
            detail=self.detail,
        )


def _uplift_map(records: List[UsageRecord], params: ScenarioParams, config: FinanceConfig) -> Dict[str, float]:
    factor = 1 + params.price_uplift_pct / 100
    statuses = status_by_customer(build_customer_economics(records, config.thresholds))
    return {
        customer: factor if status in UPLIFT_STATUSES else 1.0
        for customer, status in statuses.items()
    }


def _variable_cost_by_vendor(records: List[UsageRecord]) -> Dict[Vendor, float]:
    by_vendor = {vendor: 0.0 for vendor in Vendor}
    for record in records:
        by_vendor[record.vendor] += split_cost(record).variable
    return by_vendor


def apply_vendor_shift(
    by_vendor: Dict[Vendor, float],
    params: ScenarioParams,
    config: FinanceConfig,
) -> Dict[Vendor, float]:
    """Move a share of one vendor's variable cost to another, repriced by unit index."""
    shifted = dict(by_vendor)
    shift = params.vendor_shift
    if shift is None or not shift.is_active:
        return shifted

    moved = shifted[shift.from_vendor] * shift.pct
    ratio = config.unit_index(shift.to_vendor) / config.unit_index(shift.from_vendor)
    shifted[shift.from_vendor] -= moved
    shifted[shift.to_vendor] += moved * ratio
    logger.debug(
        "Shifted %.2f from %s to %s at index ratio %.3f",
        moved, shift.from_vendor.value, shift.to_vendor.value, ratio,
    )
    return shifted


def apply_commit_discounts(
    by_vendor: Dict[Vendor, float],
    params: ScenarioParams,
    config: FinanceConfig,
) -> Dict[Vendor, float]:
    """Discount each vendor's reserved share of variable cost by the commit rate."""
    discounted = {}
    for vendor, eligible in by_vendor.items():
        reserved = params.reserved_by_vendor.get(vendor, 0.0)
        discounted[vendor] = eligible - eligible * reserved * config.commit_discount
    return discounted


def run_scenario(
    records: Iterable[UsageRecord],
    params: Optional[ScenarioParams] = None,
    config: Optional[FinanceConfig] = None,
) -> ScenarioResult:
    """Simulate the P&L impact of the given levers.

    Args:
        records: Usage records (never modified)
        params: Scenario levers; defaults to the neutral scenario
        config: Engine configuration (guardrails, unit index, commit discount, capacity)

    Returns:
        ScenarioResult with baseline, scenario, deltas and audit detail.
        A neutral scenario reproduces the baseline.
    """
    records = list(records)
    params = params or ScenarioParams.neutral()
    config = config or FinanceConfig()

    baseline = compute_baseline(records)

    uplift = _uplift_map(records, params, config)
    revenue = 0.0
    for record in records:
        if record.is_billable:
            revenue += implied_revenue(record.customer, record.cost) * uplift.get(record.customer, 1.0)

    fixed_cost = sum(split_cost(r).fixed for r in records)
    by_vendor = _variable_cost_by_vendor(records)
    by_vendor = apply_vendor_shift(by_vendor, params, config)
    by_vendor = apply_commit_discounts(by_vendor, params, config)
    variable = sum(by_vendor.values())

    resale_totals = None
    if params.resale is not None:
        resale_totals = build_resale_model(records, params.resale, params.market_shock_pct, config).totals
        revenue += resale_totals.revenue
        variable += resale_totals.incremental_cost + resale_totals.fees

    scenario = snapshot(revenue, fixed_cost, variable)
    logger.debug(
        "Scenario over %d records: revenue %.2f -> %.2f, cogs %.2f -> %.2f",
        len(records), baseline.revenue, scenario.revenue, baseline.cogs, scenario.cogs,
    )
    return ScenarioResult(
        baseline=baseline,
        scenario=scenario,
        deltas=scenario - baseline,
        detail=ScenarioDetail(
            variable_cost_by_vendor=by_vendor,
            fixed_cost=fixed_cost,
            uplift_by_customer=uplift,
            resale_totals=resale_totals,
        ),
    )
