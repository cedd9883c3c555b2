"""
Unit tests for customer economics and margin guardrails.
"""

from datetime import date

import pytest

from compute_finops.config.loader import GuardrailThresholds
from compute_finops.core.guardrails import (
    GuardrailStatus,
    build_customer_economics,
    classify_margin,
    implied_margin,
    implied_revenue,
    min_price_for_margin,
    status_by_customer,
)
from compute_finops.ledger.generator import generate_usage_records
from compute_finops.ledger.models import UsageRecord


def _record(customer="Acme", **overrides) -> UsageRecord:
    values = dict(
        date="2024-01-01",
        department="Product",
        project="SDXL API",
        vendor="On-Prem",
        gpu_class="H100-80GB",
        units=100,
        cost=10.0,
        customer=customer,
    )
    values.update(overrides)
    return UsageRecord(**values)


class TestImpliedMargin:
    """Test the deterministic customer margin."""

    def test_margin_range(self):
        """Verify margins fall in [0.15, 0.55)."""
        for name in ("Acme", "Acme Studios", "Photon Labs", "NovaBank", "Zed", ""):
            assert 0.15 <= implied_margin(name) < 0.55

    def test_margin_is_stable(self):
        """Verify the same customer always gets the same margin."""
        assert implied_margin("RetailCo") == implied_margin("RetailCo")

    def test_known_margin(self):
        """Verify the margin for a known customer name."""
        assert implied_margin("Acme") == pytest.approx(0.369824, abs=1e-6)

    def test_revenue_back_solves_margin(self):
        """Verify implied revenue reproduces the margin."""
        revenue = implied_revenue("Acme", 10.0)
        assert (revenue - 10.0) / revenue == pytest.approx(implied_margin("Acme"))


class TestClassifyMargin:
    """Test guardrail boundaries."""

    def setup_method(self):
        self.thresholds = GuardrailThresholds(target_gm=0.50, floor_gm=0.35)

    def test_floor_is_warn(self):
        """Verify a margin exactly at the floor is WARN."""
        assert classify_margin(0.35, self.thresholds) == GuardrailStatus.WARN

    def test_below_floor_is_fail(self):
        """Verify a margin just below the floor is FAIL."""
        assert classify_margin(0.3499, self.thresholds) == GuardrailStatus.FAIL

    def test_target_is_ok(self):
        """Verify a margin exactly at the target is OK."""
        assert classify_margin(0.50, self.thresholds) == GuardrailStatus.OK

    def test_between_is_warn(self):
        """Verify a margin between floor and target is WARN."""
        assert classify_margin(0.42, self.thresholds) == GuardrailStatus.WARN


class TestMinPrice:
    """Test minimum price calculations."""

    def test_min_price(self):
        """Verify the minimum price achieves the margin."""
        assert min_price_for_margin(0.1, 0.5, 99.0) == pytest.approx(0.2)

    def test_full_margin_falls_back(self):
        """Verify a margin of 1 returns the fallback price."""
        assert min_price_for_margin(0.1, 1.0, 0.25) == 0.25


class TestCustomerEconomics:
    """Test per-customer economics."""

    def test_single_on_prem_record(self):
        """Verify economics for one customer on owned capacity."""
        [econ] = build_customer_economics([_record()])
        margin = implied_margin("Acme")
        assert econ.customer == "Acme"
        assert econ.cost == 10.0
        assert econ.revenue == pytest.approx(10.0 / (1 - margin))
        assert econ.gross_margin_pct == pytest.approx(margin)
        assert econ.cost_per_unit == pytest.approx(0.1)
        assert econ.price_per_unit == pytest.approx(econ.revenue / 100)
        assert econ.min_price_at_floor == pytest.approx(0.1 / 0.65)
        assert econ.min_price_at_target == pytest.approx(0.2)
        assert econ.status == GuardrailStatus.WARN

    def test_records_without_customer_ignored(self):
        """Verify internal usage does not create customer entries."""
        records = [_record(customer=None), _record(customer=None, cost=50.0)]
        assert build_customer_economics(records) == []

    def test_sorted_by_cost_descending(self):
        """Verify customers are ordered by cost, highest first."""
        records = [
            _record("Photon Labs", cost=5.0),
            _record("Acme", cost=30.0),
            _record("Zed", cost=12.0),
        ]
        assert [e.customer for e in build_customer_economics(records)] == ["Acme", "Zed", "Photon Labs"]

    def test_zero_units(self):
        """Verify zero units yields zero per-unit figures instead of failing."""
        [econ] = build_customer_economics([_record(units=0, cost=10.0)])
        assert econ.cost_per_unit == 0.0
        assert econ.price_per_unit == 0.0

    def test_target_of_one_uses_fallback(self):
        """Verify a 100% target margin falls back to the current price."""
        thresholds = GuardrailThresholds(target_gm=1.0, floor_gm=0.35)
        [econ] = build_customer_economics([_record()], thresholds)
        assert econ.min_price_at_target == econ.price_per_unit

    def test_statuses_and_recommendations(self):
        """Verify each status gets its matching recommendation."""
        thresholds = GuardrailThresholds(target_gm=0.40, floor_gm=0.30)
        records = [
            _record("Acme Studios", cost=30.0),
            _record("Acme", cost=20.0),
            _record("Photon Labs", cost=10.0),
        ]
        economics = build_customer_economics(records, thresholds)
        statuses = status_by_customer(economics)
        assert statuses == {
            "Acme Studios": GuardrailStatus.OK,
            "Acme": GuardrailStatus.WARN,
            "Photon Labs": GuardrailStatus.FAIL,
        }
        by_name = {e.customer: e for e in economics}
        assert by_name["Acme Studios"].recommendation.startswith("Within guardrails")
        assert by_name["Acme"].recommendation.startswith("Tighten discounts")
        assert by_name["Photon Labs"].recommendation.startswith("Raise price floor by")

    def test_fail_recommendation_uplift(self):
        """Verify the FAIL uplift brings price up to the floor price."""
        [econ] = build_customer_economics([_record("Photon Labs")])
        uplift = econ.min_price_at_floor / econ.price_per_unit - 1
        assert f"{uplift * 100:.0f}%" in econ.recommendation

    def test_generated_ledger(self):
        """Verify every generated customer has a consistent entry."""
        records = generate_usage_records(30, 42, date(2024, 3, 31))
        economics = build_customer_economics(records)
        billed = {r.customer for r in records if r.customer}
        assert {e.customer for e in economics} == billed
        for econ in economics:
            assert econ.revenue > econ.cost
            assert econ.gross_margin_pct == pytest.approx(implied_margin(econ.customer))
