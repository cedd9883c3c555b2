"""
Usage ledger.

Defines the immutable usage record and the producers that feed records
into the financial engine.
"""

from .models import Department, UsageRecord, Vendor

__all__ = ["Department", "UsageRecord", "Vendor"]
