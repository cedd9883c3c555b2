"""
Baseline P&L snapshot.

Revenue, compute COGS and margin computed directly from unmodified
records. The scenario engine compares against this snapshot.
"""

from dataclasses import dataclass, fields
from typing import Dict, Iterable, List

from compute_finops.ledger.models import UsageRecord
from .cost_split import split_cost
from .guardrails import implied_revenue
from .money import round_money


@dataclass(frozen=True)
class PnLSnapshot:
    """P&L KPIs. ``gross_margin_pct`` is in percent (42.0 means 42%)."""
    revenue: float = 0.0
    cogs: float = 0.0
    gross_profit: float = 0.0
    gross_margin_pct: float = 0.0
    fixed: float = 0.0
    variable: float = 0.0

    def __sub__(self, other: "PnLSnapshot") -> "PnLSnapshot":
        return PnLSnapshot(**{
            f.name: getattr(self, f.name) - getattr(other, f.name) for f in fields(self)
        })

    def rounded(self) -> "PnLSnapshot":
        """Copy with every KPI rounded to 2 decimals for presentation."""
        return PnLSnapshot(**{f.name: round_money(getattr(self, f.name)) for f in fields(self)})

    def as_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class DailyPnL:
    """Revenue against compute COGS for one day."""
    date: str
    revenue: float
    cogs: float


def snapshot(revenue: float, fixed: float, variable: float) -> PnLSnapshot:
    """Build a snapshot from revenue and the cost split; margin is 0 without revenue."""
    cogs = fixed + variable
    gross_profit = revenue - cogs
    margin = gross_profit / revenue * 100 if revenue > 0 else 0.0
    return PnLSnapshot(
        revenue=revenue,
        cogs=cogs,
        gross_profit=gross_profit,
        gross_margin_pct=margin,
        fixed=fixed,
        variable=variable,
    )


def compute_baseline(records: Iterable[UsageRecord]) -> PnLSnapshot:
    """Compute baseline KPIs at full precision.

    COGS is summed directly from record cost; revenue is implied per
    billable record from its customer's margin.
    """
    revenue = cogs = fixed = variable = 0.0
    for record in records:
        split = split_cost(record)
        cogs += record.cost
        fixed += split.fixed
        variable += split.variable
        if record.is_billable:
            revenue += implied_revenue(record.customer, record.cost)

    gross_profit = revenue - cogs
    return PnLSnapshot(
        revenue=revenue,
        cogs=cogs,
        gross_profit=gross_profit,
        gross_margin_pct=gross_profit / revenue * 100 if revenue > 0 else 0.0,
        fixed=fixed,
        variable=variable,
    )


def daily_revenue_and_cogs(records: Iterable[UsageRecord]) -> List[DailyPnL]:
    """Daily revenue vs COGS, sorted by date. Days with no billable usage show 0 revenue."""
    revenue_by_day: Dict[str, float] = {}
    cogs_by_day: Dict[str, float] = {}
    for record in records:
        revenue_by_day.setdefault(record.date, 0.0)
        if record.is_billable:
            revenue_by_day[record.date] += implied_revenue(record.customer, record.cost)
        cogs_by_day[record.date] = cogs_by_day.get(record.date, 0.0) + record.cost

    return [
        DailyPnL(date=day, revenue=revenue_by_day[day], cogs=cogs_by_day[day])
        for day in sorted(cogs_by_day)
    ]
