"""
Misallocation and customer-margin insights.

Highlights departments leaning on metered (variable) compute, projects
with the highest cost per unit, and customers priced under the margin
guardrails.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from compute_finops.config.loader import FinanceConfig
from compute_finops.ledger.models import UsageRecord
from .aggregation import aggregate
from .guardrails import CustomerEconomics, GuardrailStatus, build_customer_economics
from .spend import DepartmentSpend, spend_by_department

VARIABLE_HEAVY_SHARE = 0.7
MIN_PROJECT_COST = 500.0
TOP_N = 6


@dataclass(frozen=True)
class CostlyProject:
    department: str
    project: str
    cost: float
    units: float
    cost_per_unit: float


@dataclass(frozen=True)
class InsightsReport:
    variable_heavy_departments: List[DepartmentSpend]
    costly_projects: List[CostlyProject]
    customers_below_floor: List[CustomerEconomics]
    customers_below_target: List[CustomerEconomics]


def build_insights(
    records: Iterable[UsageRecord],
    config: Optional[FinanceConfig] = None,
    variable_share_threshold: float = VARIABLE_HEAVY_SHARE,
    min_project_cost: float = MIN_PROJECT_COST,
    limit: int = TOP_N,
) -> InsightsReport:
    """Collect the headline insights for a ledger.

    Args:
        records: Usage records
        config: Engine configuration (margin guardrails)
        variable_share_threshold: Variable share at or above which a department is flagged
        min_project_cost: Projects at or below this cost are ignored as noise
        limit: Maximum entries per project/customer list
    """
    records = list(records)
    config = config or FinanceConfig()

    heavy = [
        d for d in spend_by_department(records)
        if d.cost > 0 and d.variable_share >= variable_share_threshold
    ]
    heavy.sort(key=lambda d: d.variable_share, reverse=True)

    projects = [
        CostlyProject(
            department=t.key[0].value,
            project=t.key[1],
            cost=t.cost,
            units=t.units,
            cost_per_unit=t.cost_per_unit,
        )
        for t in aggregate(records, ("department", "project"))
        if t.units > 0 and t.cost > min_project_cost
    ]
    projects.sort(key=lambda p: p.cost_per_unit, reverse=True)

    economics = build_customer_economics(records, config.thresholds)
    below_floor = sorted(
        (e for e in economics if e.status == GuardrailStatus.FAIL), key=lambda e: e.gross_margin_pct
    )
    below_target = sorted(
        (e for e in economics if e.status == GuardrailStatus.WARN), key=lambda e: e.gross_margin_pct
    )

    return InsightsReport(
        variable_heavy_departments=heavy,
        costly_projects=projects[:limit],
        customers_below_floor=below_floor[:limit],
        customers_below_target=below_target[:limit],
    )
