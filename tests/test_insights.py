"""
Unit tests for misallocation and margin insights.
"""

from datetime import date

import pytest

from compute_finops.config.loader import FinanceConfig, GuardrailThresholds
from compute_finops.core.guardrails import GuardrailStatus
from compute_finops.core.insights import build_insights
from compute_finops.ledger.generator import generate_usage_records
from compute_finops.ledger.models import UsageRecord


def _record(**overrides) -> UsageRecord:
    values = dict(
        date="2024-01-01",
        department="Audio",
        project="Stable Audio",
        vendor="AWS",
        gpu_class="A100-40GB",
        units=1000,
        cost=600.0,
    )
    values.update(overrides)
    return UsageRecord(**values)


class TestVariableHeavy:
    """Test detection of departments leaning on metered compute."""

    def test_flags_variable_heavy_departments(self):
        """Verify departments at or above the share threshold are flagged."""
        records = [
            _record(department="Audio", cost=700.0),
            _record(department="Audio", vendor="On-Prem", cost=300.0),
            _record(department="Research", project="Tokenizer Lab", vendor="On-Prem", cost=900.0),
            _record(department="Research", project="Tokenizer Lab", cost=100.0),
        ]
        report = build_insights(records)
        assert [d.department for d in report.variable_heavy_departments] == ["Audio"]
        assert report.variable_heavy_departments[0].variable_share == pytest.approx(0.7)

    def test_sorted_by_share(self):
        """Verify flagged departments are ordered by variable share."""
        records = [
            _record(department="Audio", cost=800.0),
            _record(department="Audio", vendor="On-Prem", cost=200.0),
            _record(department="Platform", project="Model Gateway", cost=1000.0),
        ]
        report = build_insights(records)
        assert [d.department for d in report.variable_heavy_departments] == ["Platform", "Audio"]


class TestCostlyProjects:
    """Test the highest cost-per-unit projects."""

    def test_noise_filter_and_order(self):
        """Verify small projects are skipped and the rest sorted by unit cost."""
        records = [
            _record(project="Stable Audio", units=1000, cost=600.0),
            _record(project="Podcast Cleaner", units=1000, cost=900.0),
            _record(department="Research", project="Tokenizer Lab", units=10, cost=400.0),
        ]
        report = build_insights(records)
        assert [p.project for p in report.costly_projects] == ["Podcast Cleaner", "Stable Audio"]
        assert report.costly_projects[0].cost_per_unit == pytest.approx(0.9)

    def test_limit(self):
        """Verify the list is capped."""
        records = generate_usage_records(30, 42, date(2024, 3, 31))
        report = build_insights(records, min_project_cost=0.0, limit=3)
        assert len(report.costly_projects) == 3


class TestCustomerMargins:
    """Test customers priced below the guardrails."""

    def test_split_by_status(self):
        """Verify FAIL and WARN customers are listed separately, worst margin first."""
        config = FinanceConfig(thresholds=GuardrailThresholds(target_gm=0.40, floor_gm=0.30))
        records = [
            _record(customer="Acme Studios"),
            _record(customer="Acme"),
            _record(customer="Photon Labs"),
            _record(customer="Zed"),
        ]
        report = build_insights(records, config)
        assert [e.customer for e in report.customers_below_floor] == ["Zed", "Photon Labs"]
        assert [e.customer for e in report.customers_below_target] == ["Acme"]
        assert all(e.status == GuardrailStatus.FAIL for e in report.customers_below_floor)

    def test_empty(self):
        """Verify an empty ledger produces empty insights."""
        report = build_insights([])
        assert report.variable_heavy_departments == []
        assert report.costly_projects == []
        assert report.customers_below_floor == []
        assert report.customers_below_target == []
