"""
Fixed vs variable cost decomposition.

Owned (on-prem) capacity is a fixed cost; metered providers are variable.
"""

from dataclasses import dataclass

from compute_finops.ledger.models import UsageRecord, Vendor


@dataclass(frozen=True)
class CostSplit:
    """Cost of one record split into fixed and variable parts."""
    fixed: float
    variable: float

    @property
    def total(self) -> float:
        return self.fixed + self.variable


def split_cost(record: UsageRecord) -> CostSplit:
    """Classify a record's cost. ``fixed + variable`` equals ``record.cost`` exactly."""
    fixed = record.cost if record.vendor == Vendor.ON_PREM else 0.0
    return CostSplit(fixed=fixed, variable=record.cost - fixed)
