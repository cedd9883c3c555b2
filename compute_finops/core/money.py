"""
Presentation rounding.

Computations keep full float precision; rounding happens only when a
value leaves the engine for display or comparison at a reporting
boundary.
"""

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
RATE_QUANTUM = Decimal("0.0001")


def round_money(amount: float) -> float:
    """Round a currency amount half-up to cents."""
    return float(Decimal(repr(amount)).quantize(CENT, rounding=ROUND_HALF_UP))


def round_rate(value: float) -> float:
    """Round a per-unit price or ratio half-up to 4 decimal places."""
    return float(Decimal(repr(value)).quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP))
