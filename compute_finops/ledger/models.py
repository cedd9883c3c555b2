"""
Data models for the usage ledger.

One record is one department/project/day observation of compute usage.
"""

import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from compute_finops.core.errors import InvalidInputError


class Department(str, Enum):
    """Departments that consume compute."""
    GENAI = "GenAI"
    PRODUCT = "Product"
    AUDIO = "Audio"
    PLATFORM = "Platform"
    RESEARCH = "Research"


class Vendor(str, Enum):
    """Compute providers. ON_PREM is owned capacity; the rest are metered."""
    AWS = "AWS"
    COREWEAVE = "Coreweave"
    ON_PREM = "On-Prem"
    OPENAI = "OpenAI"


def parse_enum(enum_cls, value, field: str):
    """Coerce a raw value (member or its string value) into ``enum_cls``."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        valid = [member.value for member in enum_cls]
        raise InvalidInputError(field, value, f"must be one of: {valid}")


@dataclass(frozen=True)
class UsageRecord:
    """Immutable record of compute usage for financial analysis.

    ``units`` are normalized compute credits (NCC); ``cost`` is USD.
    Only records with a ``customer`` contribute to revenue.
    """
    date: str  # YYYY-MM-DD
    department: Department
    project: str
    vendor: Vendor
    gpu_class: str
    units: float
    cost: float
    customer: Optional[str] = None

    def __post_init__(self):
        """Validate and normalize fields at the ledger boundary."""
        if not isinstance(self.date, str):
            raise InvalidInputError("date", self.date, "must be an ISO date string")
        try:
            day = date.fromisoformat(self.date)
        except ValueError:
            day = None
        # Grouping, hashing and windowing all key on the extended YYYY-MM-DD form.
        if day is None or day.isoformat() != self.date:
            raise InvalidInputError("date", self.date, "must be an ISO date (YYYY-MM-DD)")

        object.__setattr__(self, "department", parse_enum(Department, self.department, "department"))
        object.__setattr__(self, "vendor", parse_enum(Vendor, self.vendor, "vendor"))

        if not self.project or not str(self.project).strip():
            raise InvalidInputError("project", self.project, "cannot be empty")
        if not self.gpu_class or not str(self.gpu_class).strip():
            raise InvalidInputError("gpu_class", self.gpu_class, "cannot be empty")
        if self.customer is not None and not str(self.customer).strip():
            raise InvalidInputError("customer", self.customer, "cannot be blank when set")

        for name in ("units", "cost"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidInputError(name, value, "must be a number")
            if not math.isfinite(value):
                raise InvalidInputError(name, value, "must be finite")
            if value < 0:
                raise InvalidInputError(name, value, "cannot be negative")

    @property
    def is_billable(self) -> bool:
        """True when the usage is attributed to an external customer."""
        return self.customer is not None
