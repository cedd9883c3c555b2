"""
Generic aggregation over usage records.

One grouping fold used by every report: group by any key (a single
field, a composite tuple, or a function), sum cost, units and the
fixed/variable split per group, and keep groups in first-seen order.
Summation happens in input order, so totals are reproducible for a
given record sequence.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Iterable, List, Sequence, Union

from compute_finops.ledger.models import UsageRecord
from .cost_split import split_cost

logger = logging.getLogger(__name__)

KeyFunc = Callable[[UsageRecord], Hashable]


@dataclass(frozen=True)
class GroupTotals:
    """Summed measures for one group of records."""
    key: Hashable
    cost: float = 0.0
    units: float = 0.0
    fixed: float = 0.0
    variable: float = 0.0
    record_count: int = 0

    def __add__(self, other: "GroupTotals") -> "GroupTotals":
        return GroupTotals(
            key=self.key,
            cost=self.cost + other.cost,
            units=self.units + other.units,
            fixed=self.fixed + other.fixed,
            variable=self.variable + other.variable,
            record_count=self.record_count + other.record_count,
        )

    @property
    def cost_per_unit(self) -> float:
        """Average cost per unit, 0 when no units were consumed."""
        return self.cost / self.units if self.units else 0.0

    @property
    def variable_share(self) -> float:
        """Variable fraction of cost, 0 when there is no cost."""
        return self.variable / self.cost if self.cost else 0.0


class _Accumulator:
    __slots__ = ("cost", "units", "fixed", "variable", "count")

    def __init__(self):
        self.cost = 0.0
        self.units = 0.0
        self.fixed = 0.0
        self.variable = 0.0
        self.count = 0

    def add(self, record: UsageRecord) -> None:
        split = split_cost(record)
        self.cost += record.cost
        self.units += record.units
        self.fixed += split.fixed
        self.variable += split.variable
        self.count += 1

    def freeze(self, key: Hashable) -> GroupTotals:
        return GroupTotals(key, self.cost, self.units, self.fixed, self.variable, self.count)


def field_key(*fields: str) -> KeyFunc:
    """Build a key function from record attribute names.

    One field yields the bare value; several yield a tuple.
    """
    if not fields:
        raise ValueError("at least one field is required")
    if len(fields) == 1:
        name = fields[0]
        return lambda record: getattr(record, name)
    return lambda record: tuple(getattr(record, name) for name in fields)


def _as_key(key: Union[str, Sequence[str], KeyFunc]) -> KeyFunc:
    if callable(key):
        return key
    if isinstance(key, str):
        return field_key(key)
    return field_key(*key)


def group_records(
    records: Iterable[UsageRecord],
    key: Union[str, Sequence[str], KeyFunc],
) -> Dict[Hashable, List[UsageRecord]]:
    """Partition records by key, preserving first-seen group order and record order."""
    key_func = _as_key(key)
    groups: Dict[Hashable, List[UsageRecord]] = {}
    for record in records:
        groups.setdefault(key_func(record), []).append(record)
    return groups


def aggregate(
    records: Iterable[UsageRecord],
    key: Union[str, Sequence[str], KeyFunc],
) -> List[GroupTotals]:
    """Sum measures per group.

    Args:
        records: Usage records
        key: Attribute name, sequence of names (composite key) or key function

    Returns:
        One GroupTotals per group, in first-seen order
    """
    key_func = _as_key(key)
    accumulators: Dict[Hashable, _Accumulator] = {}
    for record in records:
        group_key = key_func(record)
        acc = accumulators.get(group_key)
        if acc is None:
            acc = accumulators[group_key] = _Accumulator()
        acc.add(record)
    return [acc.freeze(k) for k, acc in accumulators.items()]


def aggregate_nested(
    records: Iterable[UsageRecord],
    outer: Union[str, Sequence[str], KeyFunc],
    inner: Union[str, Sequence[str], KeyFunc],
) -> Dict[Hashable, Dict[Hashable, GroupTotals]]:
    """Two-level aggregation, e.g. date -> GPU class.

    Both levels keep first-seen order.
    """
    outer_func = _as_key(outer)
    inner_func = _as_key(inner)
    composite = aggregate(records, lambda r: (outer_func(r), inner_func(r)))

    nested: Dict[Hashable, Dict[Hashable, GroupTotals]] = {}
    for totals in composite:
        outer_key, inner_key = totals.key
        nested.setdefault(outer_key, {})[inner_key] = GroupTotals(
            inner_key, totals.cost, totals.units, totals.fixed, totals.variable, totals.record_count
        )
    return nested


def total(records: Iterable[UsageRecord]) -> GroupTotals:
    """Grand totals over all records (zeros for an empty sequence)."""
    acc = _Accumulator()
    for record in records:
        acc.add(record)
    return acc.freeze(None)


def merge_aggregates(*partials: Iterable[GroupTotals]) -> List[GroupTotals]:
    """Merge partial aggregates computed over disjoint record chunks.

    Sums are associative, so chunks may be aggregated independently and
    merged in any order. Group order follows first appearance across the
    partials as given.
    """
    merged: Dict[Hashable, GroupTotals] = {}
    for partial in partials:
        for totals in partial:
            if totals.key in merged:
                merged[totals.key] = merged[totals.key] + totals
            else:
                merged[totals.key] = totals
    logger.debug("Merged %d partial aggregates into %d groups", len(partials), len(merged))
    return list(merged.values())
