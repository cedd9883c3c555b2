"""
Unit tests for budget vs billing reconciliation.
"""

from datetime import date

import pytest

from compute_finops.config.loader import FinanceConfig, ReconciliationThresholds
from compute_finops.core.reconciliation import (
    ReconciliationStatus,
    billed_factor,
    budget_factor,
    classify_variance,
    reconcile_budget_vs_billing,
)
from compute_finops.ledger.generator import generate_usage_records
from compute_finops.ledger.models import UsageRecord, Vendor


def _record(**overrides) -> UsageRecord:
    values = dict(
        date="2024-01-01",
        department="Platform",
        project="Model Gateway",
        vendor="AWS",
        gpu_class="A100-80GB",
        units=100,
        cost=10.0,
    )
    values.update(overrides)
    return UsageRecord(**values)


@pytest.fixture
def ledger():
    return generate_usage_records(30, 42, date(2024, 3, 31))


class TestFactors:
    """Test deterministic budget and billing multipliers."""

    def test_factor_ranges(self):
        """Verify budget stays within +/-5% and billing within +/-2%."""
        for day in range(1, 29):
            iso = f"2024-02-{day:02d}"
            assert 0.95 <= budget_factor(iso) <= 1.05
            assert 0.98 <= billed_factor(iso) <= 1.02

    def test_factors_are_stable(self):
        """Verify the same day always gets the same factors."""
        assert budget_factor("2024-01-01") == budget_factor("2024-01-01")
        assert billed_factor("2024-01-01") == billed_factor("2024-01-01")


class TestClassifyVariance:
    """Test variance status buckets."""

    def setup_method(self):
        self.thresholds = ReconciliationThresholds()

    def test_buckets(self):
        """Verify OK below 1%, WARN below 3%, FAIL otherwise."""
        assert classify_variance(0.5, self.thresholds) == ReconciliationStatus.OK
        assert classify_variance(1.0, self.thresholds) == ReconciliationStatus.WARN
        assert classify_variance(2.99, self.thresholds) == ReconciliationStatus.WARN
        assert classify_variance(3.0, self.thresholds) == ReconciliationStatus.FAIL

    def test_uses_magnitude(self):
        """Verify negative variances are bucketed by magnitude."""
        assert classify_variance(-0.5, self.thresholds) == ReconciliationStatus.OK
        assert classify_variance(-4.0, self.thresholds) == ReconciliationStatus.FAIL


class TestReconcile:
    """Test the full reconciliation."""

    def test_empty_input(self):
        """Verify empty input yields no rows and zero totals."""
        result = reconcile_budget_vs_billing([])
        assert result.rows == []
        assert result.allocations == []
        assert result.totals.budget == 0.0
        assert result.totals.variance == 0.0
        assert not result.has_failures

    def test_only_reconciled_vendor_counts(self):
        """Verify other vendors' usage is ignored."""
        records = [_record(vendor="Coreweave"), _record(vendor="On-Prem")]
        result = reconcile_budget_vs_billing(records)
        assert result.rows == []
        assert result.allocations == []

    def test_configurable_vendor(self):
        """Verify the reconciled provider can be changed in config."""
        records = [_record(vendor="Coreweave", cost=20.0), _record(cost=5.0)]
        result = reconcile_budget_vs_billing(records, FinanceConfig(reconciliation_vendor=Vendor.COREWEAVE))
        [row] = result.rows
        assert row.internal == 20.0

    def test_row_arithmetic(self):
        """Verify budget, billed and variance derive from the day's internal cost."""
        records = [_record(cost=60.0), _record(cost=40.0, department="Research", project="Tokenizer Lab")]
        [row] = reconcile_budget_vs_billing(records).rows
        assert row.internal == 100.0
        assert row.budget == pytest.approx(100.0 * budget_factor("2024-01-01"))
        assert row.billed == pytest.approx(100.0 * billed_factor("2024-01-01"))
        assert row.variance == pytest.approx(row.billed - row.budget)
        assert row.variance_pct == pytest.approx(row.variance / row.budget * 100)
        assert row.status == classify_variance(row.variance_pct, ReconciliationThresholds())

    def test_single_day_allocation_split(self):
        """Verify a day's variance is split pro-rata by department cost."""
        records = [_record(cost=60.0), _record(cost=40.0, department="Research", project="Tokenizer Lab")]
        result = reconcile_budget_vs_billing(records)
        variance = result.rows[0].variance
        by_department = {a.department: a for a in result.allocations}
        assert by_department["Platform"].allocated_variance == pytest.approx(variance * 0.6)
        assert by_department["Research"].allocated_variance == pytest.approx(variance * 0.4)
        assert by_department["Platform"].share_pct == pytest.approx(60.0)

    def test_rows_sorted_by_date(self, ledger):
        """Verify daily rows are in date order."""
        dates = [row.date for row in reconcile_budget_vs_billing(ledger).rows]
        assert dates == sorted(dates)

    def test_allocations_sum_to_variance(self, ledger):
        """Verify allocated variance sums to total variance."""
        result = reconcile_budget_vs_billing(ledger)
        allocated = sum(a.allocated_variance for a in result.allocations)
        assert allocated == pytest.approx(result.totals.variance, abs=1e-6)
        assert sum(a.share_pct for a in result.allocations) == pytest.approx(100.0)

    def test_allocations_sorted_by_magnitude(self, ledger):
        """Verify allocations are ordered by absolute variance descending."""
        magnitudes = [abs(a.allocated_variance) for a in reconcile_budget_vs_billing(ledger).allocations]
        assert magnitudes == sorted(magnitudes, reverse=True)

    def test_totals(self, ledger):
        """Verify period totals sum the daily rows."""
        result = reconcile_budget_vs_billing(ledger)
        assert result.totals.budget == pytest.approx(sum(r.budget for r in result.rows))
        assert result.totals.billed == pytest.approx(sum(r.billed for r in result.rows))
        assert result.totals.variance == pytest.approx(result.totals.billed - result.totals.budget)

    def test_has_failures_follows_thresholds(self, ledger):
        """Verify wide thresholds clear every failure."""
        config = FinanceConfig(reconciliation=ReconciliationThresholds(ok_pct=50.0, warn_pct=100.0))
        result = reconcile_budget_vs_billing(ledger, config)
        assert result.rows
        assert all(r.status == ReconciliationStatus.OK for r in result.rows)
        assert not result.has_failures
