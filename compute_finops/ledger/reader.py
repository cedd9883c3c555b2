"""
CSV ledger reader.

Loads usage records from a CSV export with a header row. Every row is
validated through UsageRecord, so a bad row fails loudly with its line
number.
"""

import csv
from pathlib import Path
from typing import List

from compute_finops.core.errors import InvalidInputError
from .models import UsageRecord

REQUIRED_COLUMNS = ("date", "department", "project", "vendor", "gpu_class", "units", "cost")
OPTIONAL_COLUMNS = ("customer",)


def load_usage_records(path: str) -> List[UsageRecord]:
    """Load and validate usage records from a CSV file.

    Args:
        path: Path to the CSV ledger

    Returns:
        Records in file order

    Raises:
        FileNotFoundError: If the file doesn't exist
        InvalidInputError: If a column is missing or a row is malformed
    """
    ledger_path = Path(path)
    if not ledger_path.exists():
        raise FileNotFoundError(f"Ledger file not found: {path}")

    with open(ledger_path, "r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        columns = set(reader.fieldnames or [])
        missing = [c for c in REQUIRED_COLUMNS if c not in columns]
        if missing:
            raise InvalidInputError("columns", sorted(columns), f"missing required columns {missing}")

        records = []
        # Line 1 is the header.
        for line_no, row in enumerate(reader, start=2):
            records.append(_parse_row(row, line_no))
    return records


def _parse_row(row: dict, line_no: int) -> UsageRecord:
    values = {}
    for name in ("units", "cost"):
        raw = (row.get(name) or "").strip()
        try:
            values[name] = float(raw)
        except ValueError:
            raise InvalidInputError(f"line {line_no}.{name}", raw, "must be a number")

    customer = (row.get("customer") or "").strip() or None
    try:
        return UsageRecord(
            date=(row.get("date") or "").strip(),
            department=(row.get("department") or "").strip(),
            project=(row.get("project") or "").strip(),
            vendor=(row.get("vendor") or "").strip(),
            gpu_class=(row.get("gpu_class") or "").strip(),
            units=values["units"],
            cost=values["cost"],
            customer=customer,
        )
    except InvalidInputError as e:
        raise InvalidInputError(f"line {line_no}.{e.field}", e.value, e.message) from e
