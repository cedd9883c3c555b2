"""
Configuration for Compute FinOps.

Guardrail thresholds, vendor cost index, capacity table and scenario
knobs, with documented defaults and YAML loaders.
"""

from .loader import (
    CapacitySpec,
    FinanceConfig,
    GuardrailThresholds,
    ReconciliationThresholds,
    ResaleParams,
    ScenarioParams,
    VendorShift,
    load_finance_config,
    load_scenario_params,
)

__all__ = [
    "CapacitySpec",
    "FinanceConfig",
    "GuardrailThresholds",
    "ReconciliationThresholds",
    "ResaleParams",
    "ScenarioParams",
    "VendorShift",
    "load_finance_config",
    "load_scenario_params",
]
