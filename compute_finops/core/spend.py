"""
Spend reports.

Compute spend by department and project, and the top external customers
with their provider mix.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from compute_finops.ledger.models import UsageRecord, Vendor
from .aggregation import GroupTotals, aggregate, group_records


@dataclass(frozen=True)
class ProjectSpend:
    """Spend for one department/project pair."""
    department: str
    project: str
    units: float
    cost: float
    fixed: float
    variable: float


@dataclass(frozen=True)
class DepartmentSpend:
    """Spend rolled up to a department."""
    department: str
    units: float
    cost: float
    fixed: float
    variable: float

    @property
    def variable_share(self) -> float:
        return self.variable / self.cost if self.cost else 0.0


@dataclass(frozen=True)
class CustomerSpend:
    """Spend attributed to one external customer."""
    customer: str
    units: float
    cost: float
    fixed: float
    variable: float
    project_count: int
    cost_by_vendor: Dict[Vendor, float] = field(default_factory=dict)


def spend_by_department_project(records: Iterable[UsageRecord]) -> List[ProjectSpend]:
    """Spend per department/project, sorted by cost descending."""
    rows = [
        ProjectSpend(
            department=t.key[0].value,
            project=t.key[1],
            units=t.units,
            cost=t.cost,
            fixed=t.fixed,
            variable=t.variable,
        )
        for t in aggregate(records, ("department", "project"))
    ]
    rows.sort(key=lambda r: r.cost, reverse=True)
    return rows


def spend_by_department(records: Iterable[UsageRecord]) -> List[DepartmentSpend]:
    """Spend per department in first-seen order."""
    return [_department_row(t) for t in aggregate(records, "department")]


def _department_row(totals: GroupTotals) -> DepartmentSpend:
    return DepartmentSpend(
        department=totals.key.value,
        units=totals.units,
        cost=totals.cost,
        fixed=totals.fixed,
        variable=totals.variable,
    )


def top_customers(records: Iterable[UsageRecord], limit: int = 20) -> List[CustomerSpend]:
    """Largest external customers by cost, with per-vendor cost mix."""
    billable = [r for r in records if r.is_billable]
    grouped = group_records(billable, "customer")

    rows = []
    for totals in aggregate(billable, "customer"):
        customer_records = grouped[totals.key]
        cost_by_vendor = {vendor: 0.0 for vendor in Vendor}
        for record in customer_records:
            cost_by_vendor[record.vendor] += record.cost
        rows.append(CustomerSpend(
            customer=totals.key,
            units=totals.units,
            cost=totals.cost,
            fixed=totals.fixed,
            variable=totals.variable,
            project_count=len({r.project for r in customer_records}),
            cost_by_vendor=cost_by_vendor,
        ))

    rows.sort(key=lambda r: r.cost, reverse=True)
    return rows[:limit]
