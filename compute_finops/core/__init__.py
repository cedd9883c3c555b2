"""
Core modules for Compute FinOps.

This package contains the pure financial computations: cost splitting,
aggregation, customer guardrails, reconciliation, benchmark pricing,
idle resale and scenario simulation.
"""
