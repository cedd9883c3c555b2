"""
Configuration management and loading.

Every tunable the engine uses is an explicit, validated value passed into
the computation that needs it. Defaults reproduce the stock studio
settings; YAML files overlay them.
"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from compute_finops.core.errors import ConfigurationError
from compute_finops.ledger.models import Vendor


def _check_fraction(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(name, value, "must be a number")
    if not math.isfinite(value):
        raise ConfigurationError(name, value, "must be finite")
    if value < 0 or value > 1:
        raise ConfigurationError(name, value, "must be between 0 and 1")


def _check_non_negative(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(name, value, "must be a number")
    if not math.isfinite(value):
        raise ConfigurationError(name, value, "must be finite")
    if value < 0:
        raise ConfigurationError(name, value, "cannot be negative")


def _vendor(name: str, value: Any) -> Vendor:
    if isinstance(value, Vendor):
        return value
    try:
        return Vendor(value)
    except ValueError:
        valid = [v.value for v in Vendor]
        raise ConfigurationError(name, value, f"must be one of: {valid}")


@dataclass(frozen=True)
class GuardrailThresholds:
    """Gross-margin guardrails for customer pricing (fractions, not percent)."""
    target_gm: float = 0.50
    floor_gm: float = 0.35

    def __post_init__(self):
        """Validate the floor sits strictly below the target."""
        _check_fraction("target_gm", self.target_gm)
        _check_fraction("floor_gm", self.floor_gm)
        if self.floor_gm >= self.target_gm:
            raise ConfigurationError(
                "floor_gm", self.floor_gm, f"must be below target_gm ({self.target_gm})"
            )


@dataclass(frozen=True)
class CapacitySpec:
    """Owned capacity for one GPU class."""
    rig_count: int
    units_per_rig_per_day: float

    def __post_init__(self):
        """Validate capacity values are non-negative."""
        if isinstance(self.rig_count, bool) or not isinstance(self.rig_count, int):
            raise ConfigurationError("rig_count", self.rig_count, "must be an integer")
        if self.rig_count < 0:
            raise ConfigurationError("rig_count", self.rig_count, "cannot be negative")
        _check_non_negative("units_per_rig_per_day", self.units_per_rig_per_day)

    @property
    def daily_capacity(self) -> float:
        """Units the whole class can deliver in one day."""
        return self.rig_count * self.units_per_rig_per_day


@dataclass(frozen=True)
class ReconciliationThresholds:
    """Status buckets by absolute variance percent: OK below ok_pct, WARN below warn_pct."""
    ok_pct: float = 1.0
    warn_pct: float = 3.0

    def __post_init__(self):
        _check_non_negative("ok_pct", self.ok_pct)
        _check_non_negative("warn_pct", self.warn_pct)
        if self.ok_pct >= self.warn_pct:
            raise ConfigurationError("ok_pct", self.ok_pct, f"must be below warn_pct ({self.warn_pct})")


DEFAULT_VENDOR_UNIT_INDEX: Dict[Vendor, float] = {
    Vendor.AWS: 1.0,
    Vendor.COREWEAVE: 0.9,
    Vendor.ON_PREM: 0.75,
    Vendor.OPENAI: 1.1,
}

DEFAULT_ONPREM_CAPACITY: Dict[str, CapacitySpec] = {
    "H100-80GB": CapacitySpec(rig_count=8, units_per_rig_per_day=12000),
    "A100-80GB": CapacitySpec(rig_count=12, units_per_rig_per_day=9000),
    "A100-40GB": CapacitySpec(rig_count=10, units_per_rig_per_day=6500),
    "RTX-A6000": CapacitySpec(rig_count=16, units_per_rig_per_day=4000),
}

DEFAULT_COMMIT_DISCOUNT = 0.20


@dataclass(frozen=True)
class FinanceConfig:
    """Complete engine configuration.

    Attributes:
        thresholds: Customer margin guardrails
        vendor_unit_index: Relative unit cost per vendor, used to reprice shifted spend
        commit_discount: Discount earned on the reserved share of a vendor's variable cost
        onprem_capacity: Owned capacity per GPU class
        reconciliation_vendor: Provider whose bill is reconciled against budget
        reconciliation: Variance status buckets
    """
    thresholds: GuardrailThresholds = field(default_factory=GuardrailThresholds)
    vendor_unit_index: Mapping[Vendor, float] = field(
        default_factory=lambda: dict(DEFAULT_VENDOR_UNIT_INDEX)
    )
    commit_discount: float = DEFAULT_COMMIT_DISCOUNT
    onprem_capacity: Mapping[str, CapacitySpec] = field(
        default_factory=lambda: dict(DEFAULT_ONPREM_CAPACITY)
    )
    reconciliation_vendor: Vendor = Vendor.AWS
    reconciliation: ReconciliationThresholds = field(default_factory=ReconciliationThresholds)

    def __post_init__(self):
        """Validate the cost index covers every vendor and the discount is a fraction."""
        for vendor in Vendor:
            if vendor not in self.vendor_unit_index:
                raise ConfigurationError(
                    f"vendor_unit_index.{vendor.value}", None, "is required for every vendor"
                )
            value = self.vendor_unit_index[vendor]
            _check_non_negative(f"vendor_unit_index.{vendor.value}", value)
            if value == 0:
                raise ConfigurationError(f"vendor_unit_index.{vendor.value}", value, "must be > 0")
        _check_fraction("commit_discount", self.commit_discount)
        object.__setattr__(
            self, "reconciliation_vendor", _vendor("reconciliation_vendor", self.reconciliation_vendor)
        )

    def unit_index(self, vendor: Vendor) -> float:
        """Relative unit cost for ``vendor``."""
        return self.vendor_unit_index[vendor]


@dataclass(frozen=True)
class ResaleParams:
    """Knobs for reselling idle owned capacity on a marketplace."""
    sell_through: float = 0.6
    price_pct_of_benchmark: float = 0.9
    incremental_cost_per_unit: float = 0.003
    marketplace_fee_pct: float = 0.05

    def __post_init__(self):
        _check_fraction("sell_through", self.sell_through)
        _check_non_negative("price_pct_of_benchmark", self.price_pct_of_benchmark)
        _check_non_negative("incremental_cost_per_unit", self.incremental_cost_per_unit)
        _check_fraction("marketplace_fee_pct", self.marketplace_fee_pct)


@dataclass(frozen=True)
class VendorShift:
    """Move ``pct`` of one vendor's variable spend to another vendor."""
    from_vendor: Vendor
    to_vendor: Vendor
    pct: float

    def __post_init__(self):
        object.__setattr__(self, "from_vendor", _vendor("vendor_shift.from", self.from_vendor))
        object.__setattr__(self, "to_vendor", _vendor("vendor_shift.to", self.to_vendor))
        _check_fraction("vendor_shift.pct", self.pct)

    @property
    def is_active(self) -> bool:
        """True when the shift actually moves spend."""
        return self.pct > 0 and self.from_vendor != self.to_vendor


@dataclass(frozen=True)
class ScenarioParams:
    """What-if levers for the scenario engine.

    Attributes:
        price_uplift_pct: Price increase in percent for WARN/FAIL customers
        reserved_by_vendor: Fraction of each vendor's variable cost under commitment
        vendor_shift: Optional vendor-to-vendor spend move
        resale: Optional idle-capacity resale knobs
        market_shock_pct: Fractional benchmark price shock (0.1 means +10%)
    """
    price_uplift_pct: float = 0.0
    reserved_by_vendor: Mapping[Vendor, float] = field(default_factory=dict)
    vendor_shift: Optional[VendorShift] = None
    resale: Optional[ResaleParams] = None
    market_shock_pct: float = 0.0

    def __post_init__(self):
        _check_non_negative("price_uplift_pct", self.price_uplift_pct)
        reserved = {}
        for vendor, fraction in self.reserved_by_vendor.items():
            key = _vendor("reserved_by_vendor", vendor)
            _check_fraction(f"reserved_by_vendor.{key.value}", fraction)
            reserved[key] = fraction
        object.__setattr__(self, "reserved_by_vendor", reserved)
        if isinstance(self.market_shock_pct, bool) or not isinstance(self.market_shock_pct, (int, float)):
            raise ConfigurationError("market_shock_pct", self.market_shock_pct, "must be a number")
        if not math.isfinite(self.market_shock_pct):
            raise ConfigurationError("market_shock_pct", self.market_shock_pct, "must be finite")
        if self.market_shock_pct < -1:
            raise ConfigurationError("market_shock_pct", self.market_shock_pct, "must be >= -1")

    @classmethod
    def neutral(cls) -> "ScenarioParams":
        """Scenario that changes nothing."""
        return cls()

    @classmethod
    def default(cls) -> "ScenarioParams":
        """Stock studio settings."""
        return cls(
            price_uplift_pct=8.0,
            reserved_by_vendor={Vendor.AWS: 0.4, Vendor.COREWEAVE: 0.3, Vendor.OPENAI: 0.2},
            vendor_shift=VendorShift(Vendor.AWS, Vendor.COREWEAVE, 0.2),
            resale=ResaleParams(),
            market_shock_pct=0.0,
        )


def _read_yaml(path: str, kind: str) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"{kind} file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in {kind.lower()} file {path}: {e}")

    if not raw:
        raise ConfigurationError(path, raw, "configuration file is empty")
    if not isinstance(raw, dict):
        raise ConfigurationError(path, type(raw).__name__, "top level must be a mapping")
    return raw


def _check_keys(data: Any, allowed: set, path: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ConfigurationError(path, data, "must be a dictionary")
    unknown = set(data.keys()) - allowed
    if unknown:
        raise ConfigurationError(path, sorted(unknown), "unknown keys")
    return data


def load_finance_config(path: str) -> FinanceConfig:
    """Load and validate engine configuration from a YAML file.

    Sections are optional; anything omitted keeps its default. Unknown
    keys are rejected so a typo never silently falls back to a default.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated FinanceConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ConfigurationError: If a value is missing, unknown or out of range
    """
    raw = _read_yaml(path, "Finance config")
    _check_keys(
        raw,
        {'guardrails', 'vendor_unit_index', 'commit_discount', 'onprem_capacity', 'reconciliation'},
        "config",
    )

    thresholds = GuardrailThresholds()
    if 'guardrails' in raw:
        data = _check_keys(raw['guardrails'], {'target_gm', 'floor_gm'}, "guardrails")
        thresholds = GuardrailThresholds(
            target_gm=data.get('target_gm', thresholds.target_gm),
            floor_gm=data.get('floor_gm', thresholds.floor_gm),
        )

    unit_index = dict(DEFAULT_VENDOR_UNIT_INDEX)
    if 'vendor_unit_index' in raw:
        data = _check_keys(raw['vendor_unit_index'], {v.value for v in Vendor}, "vendor_unit_index")
        for name, value in data.items():
            unit_index[Vendor(name)] = value

    capacity = dict(DEFAULT_ONPREM_CAPACITY)
    if 'onprem_capacity' in raw:
        data = raw['onprem_capacity']
        if not isinstance(data, dict):
            raise ConfigurationError("onprem_capacity", data, "must be a dictionary")
        capacity = {}
        for gpu_class, spec in data.items():
            spec = _check_keys(spec, {'rigs', 'units_per_rig_per_day'}, f"onprem_capacity.{gpu_class}")
            for required in ('rigs', 'units_per_rig_per_day'):
                if required not in spec:
                    raise ConfigurationError(
                        f"onprem_capacity.{gpu_class}.{required}", None, "is required"
                    )
            capacity[str(gpu_class)] = CapacitySpec(
                rig_count=spec['rigs'],
                units_per_rig_per_day=spec['units_per_rig_per_day'],
            )

    reconciliation_vendor = Vendor.AWS
    reconciliation = ReconciliationThresholds()
    if 'reconciliation' in raw:
        data = _check_keys(
            raw['reconciliation'], {'vendor', 'ok_threshold_pct', 'warn_threshold_pct'}, "reconciliation"
        )
        reconciliation_vendor = _vendor("reconciliation.vendor", data.get('vendor', Vendor.AWS))
        reconciliation = ReconciliationThresholds(
            ok_pct=data.get('ok_threshold_pct', reconciliation.ok_pct),
            warn_pct=data.get('warn_threshold_pct', reconciliation.warn_pct),
        )

    return FinanceConfig(
        thresholds=thresholds,
        vendor_unit_index=unit_index,
        commit_discount=raw.get('commit_discount', DEFAULT_COMMIT_DISCOUNT),
        onprem_capacity=capacity,
        reconciliation_vendor=reconciliation_vendor,
        reconciliation=reconciliation,
    )


def load_scenario_params(path: str) -> ScenarioParams:
    """Load and validate scenario levers from a YAML file.

    Example::

        price_uplift_pct: 8
        reserved_by_vendor: {AWS: 0.4, Coreweave: 0.3}
        vendor_shift: {from: AWS, to: Coreweave, pct: 0.2}
        resale: {sell_through: 0.6, price_pct_of_benchmark: 0.9}
        market_shock_pct: -0.1

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ConfigurationError: If a value is unknown or out of range
    """
    raw = _read_yaml(path, "Scenario")
    _check_keys(
        raw,
        {'price_uplift_pct', 'reserved_by_vendor', 'vendor_shift', 'resale', 'market_shock_pct'},
        "scenario",
    )

    reserved = raw.get('reserved_by_vendor') or {}
    _check_keys(reserved, {v.value for v in Vendor}, "reserved_by_vendor")

    vendor_shift = None
    if raw.get('vendor_shift') is not None:
        data = _check_keys(raw['vendor_shift'], {'from', 'to', 'pct'}, "vendor_shift")
        for required in ('from', 'to', 'pct'):
            if required not in data:
                raise ConfigurationError(f"vendor_shift.{required}", None, "is required")
        vendor_shift = VendorShift(data['from'], data['to'], data['pct'])

    resale = None
    if raw.get('resale') is not None:
        data = _check_keys(
            raw['resale'],
            {'sell_through', 'price_pct_of_benchmark', 'incremental_cost_per_unit', 'marketplace_fee_pct'},
            "resale",
        )
        resale = ResaleParams(**data)

    return ScenarioParams(
        price_uplift_pct=raw.get('price_uplift_pct', 0.0),
        reserved_by_vendor=reserved,
        vendor_shift=vendor_shift,
        resale=resale,
        market_shock_pct=raw.get('market_shock_pct', 0.0),
    )
