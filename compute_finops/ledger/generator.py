"""
Synthetic ledger producer.

Builds a reproducible usage ledger from a seed so the engine can be
exercised without a real metering feed.
"""

import math
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from compute_finops.core.determinism import SeededSequence
from compute_finops.core.errors import InvalidInputError
from compute_finops.core.money import round_money
from .models import Department, UsageRecord, Vendor

PROJECTS: Dict[Department, Tuple[str, ...]] = {
    Department.GENAI: ("Stable Diffusion v3", "Style Transfer", "Image Embedder"),
    Department.PRODUCT: ("SDXL API", "Realtime Gen", "Batch Inference"),
    Department.AUDIO: ("Stable Audio", "Podcast Cleaner"),
    Department.PLATFORM: ("Model Gateway", "Telemetry Fabric"),
    Department.RESEARCH: ("LMM Prototype", "Tokenizer Lab"),
}

CUSTOMERS = (
    "Acme Studios",
    "Photon Labs",
    "RetailCo",
    "MediaForge",
    "NovaBank",
    "BioSynth",
    "IndieDev",
)

VENDORS = (Vendor.AWS, Vendor.COREWEAVE, Vendor.ON_PREM, Vendor.OPENAI)
GPU_CLASSES = ("A100-40GB", "A100-80GB", "H100-80GB", "RTX-A6000")

# Only customer-facing departments carry billable usage.
BILLABLE_DEPARTMENTS = (Department.PRODUCT, Department.GENAI)


def _pick(sequence: SeededSequence, options):
    return options[int(next(sequence) * len(options))]


def generate_usage_records(
    days: int = 30,
    seed: int = 42,
    end_date: Optional[date] = None,
) -> List[UsageRecord]:
    """Generate a deterministic ledger covering ``days`` days ending at ``end_date``.

    Draw order per department/project/day is vendor, GPU class, units,
    unit price, then (for billable departments) the customer gate and
    customer pick. The same seed and end date always yield the same ledger.

    Args:
        days: Number of calendar days to cover
        seed: Seed for the deterministic sequence
        end_date: Last day of the ledger (defaults to today)

    Returns:
        Records ordered by date, department, project

    Raises:
        InvalidInputError: If days is not positive or the seed is invalid
    """
    if days <= 0:
        raise InvalidInputError("days", days, "must be > 0")
    sequence = SeededSequence(seed)
    end = end_date or date.today()
    start = end - timedelta(days=days - 1)

    records = []
    for offset in range(days):
        day = (start + timedelta(days=offset)).isoformat()
        for department, projects in PROJECTS.items():
            for project in projects:
                vendor = _pick(sequence, VENDORS)
                gpu_class = _pick(sequence, GPU_CLASSES)
                units = max(5, math.floor(next(sequence) * 500 + 0.5))
                unit_price = 0.02 + next(sequence) * 0.08
                cost = round_money(units * unit_price)
                customer = None
                if department in BILLABLE_DEPARTMENTS and next(sequence) > 0.4:
                    customer = _pick(sequence, CUSTOMERS)
                records.append(UsageRecord(
                    date=day,
                    department=department,
                    project=project,
                    vendor=vendor,
                    gpu_class=gpu_class,
                    units=units,
                    cost=cost,
                    customer=customer,
                ))
    return records
