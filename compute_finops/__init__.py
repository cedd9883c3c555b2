"""
Compute FinOps.

Financial views over a ledger of per-day, per-project compute usage:
cost decomposition, customer unit economics, budget reconciliation,
idle-capacity resale and scenario simulation.
"""

__version__ = "0.1.0"
