"""
Budget vs provider billing reconciliation.

For each day with usage at the reconciled provider, the internal cost
anchors a deterministic plan (budget, within +/-5%) and a deterministic
bill (within +/-2%). The daily variance (billed - budget) is then
allocated to departments pro-rata by their share of that provider's
actual cost on the same day.

Negative variances are allocated with the same sign; shares are never
re-derived from absolute values.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from compute_finops.config.loader import FinanceConfig, ReconciliationThresholds
from compute_finops.ledger.models import UsageRecord
from .aggregation import aggregate, group_records
from .determinism import stable_unit_hash

logger = logging.getLogger(__name__)

BUDGET_SALT = "budget"
BILLED_SALT = "billed"


class ReconciliationStatus(Enum):
    """Daily variance bucket."""
    OK = "OK"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass(frozen=True)
class ReconciliationRow:
    """One day of budget vs billing. ``variance_pct`` is in percent."""
    date: str
    internal: float
    budget: float
    billed: float
    variance: float
    variance_pct: float
    status: ReconciliationStatus


@dataclass(frozen=True)
class AllocationRow:
    """A department's share of the period's variance."""
    department: str
    actual_usage: float
    share_pct: float
    allocated_variance: float


@dataclass(frozen=True)
class ReconciliationTotals:
    budget: float = 0.0
    billed: float = 0.0
    variance: float = 0.0


@dataclass(frozen=True)
class ReconciliationResult:
    rows: List[ReconciliationRow]
    allocations: List[AllocationRow]
    totals: ReconciliationTotals

    @property
    def has_failures(self) -> bool:
        return any(r.status == ReconciliationStatus.FAIL for r in self.rows)


def budget_factor(day: str) -> float:
    """Deterministic plan multiplier for a day, in [0.95, 1.05]."""
    return 0.95 + stable_unit_hash(BUDGET_SALT + day) * 0.10


def billed_factor(day: str) -> float:
    """Deterministic billing multiplier for a day, in [0.98, 1.02]."""
    return 0.98 + (stable_unit_hash(BILLED_SALT + day) - 0.5) * 0.04


def classify_variance(variance_pct: float, thresholds: ReconciliationThresholds) -> ReconciliationStatus:
    """Bucket a variance percent by its magnitude."""
    magnitude = abs(variance_pct)
    if magnitude < thresholds.ok_pct:
        return ReconciliationStatus.OK
    if magnitude < thresholds.warn_pct:
        return ReconciliationStatus.WARN
    return ReconciliationStatus.FAIL


def reconcile_budget_vs_billing(
    records: Iterable[UsageRecord],
    config: Optional[FinanceConfig] = None,
) -> ReconciliationResult:
    """Reconcile budget against billing and allocate variance to departments.

    Args:
        records: Usage records; only the reconciled provider's rows are used
        config: Engine configuration (provider and status thresholds)

    Returns:
        Daily rows sorted by date, allocations sorted by absolute
        allocated variance descending, and period totals. Empty input
        yields empty rows and zero totals.
    """
    config = config or FinanceConfig()
    vendor = config.reconciliation_vendor
    provider_records = [r for r in records if r.vendor == vendor]
    by_day = group_records(provider_records, "date")

    rows: List[ReconciliationRow] = []
    actual_by_dept = {}
    allocated_by_dept = {}

    for day in sorted(by_day):
        day_records = by_day[day]
        internal = sum(r.cost for r in day_records)
        budget = internal * budget_factor(day)
        billed = internal * billed_factor(day)
        variance = billed - budget
        variance_pct = variance / budget * 100 if budget else 0.0
        rows.append(ReconciliationRow(
            date=day,
            internal=internal,
            budget=budget,
            billed=billed,
            variance=variance,
            variance_pct=variance_pct,
            status=classify_variance(variance_pct, config.reconciliation),
        ))

        for dept in aggregate(day_records, "department"):
            name = dept.key.value
            share = dept.cost / internal if internal > 0 else 0.0
            actual_by_dept[name] = actual_by_dept.get(name, 0.0) + dept.cost
            allocated_by_dept[name] = allocated_by_dept.get(name, 0.0) + variance * share

    grand_actual = sum(actual_by_dept.values())
    allocations = [
        AllocationRow(
            department=name,
            actual_usage=actual,
            share_pct=actual / grand_actual * 100 if grand_actual > 0 else 0.0,
            allocated_variance=allocated_by_dept[name],
        )
        for name, actual in actual_by_dept.items()
    ]
    allocations.sort(key=lambda a: abs(a.allocated_variance), reverse=True)

    totals = ReconciliationTotals(
        budget=sum(r.budget for r in rows),
        billed=sum(r.billed for r in rows),
        variance=sum(r.variance for r in rows),
    )
    logger.debug(
        "Reconciled %d days for %s: variance %.2f across %d departments",
        len(rows), vendor.value, totals.variance, len(allocations),
    )
    return ReconciliationResult(rows=rows, allocations=allocations, totals=totals)
