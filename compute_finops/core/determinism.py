"""
Deterministic numeric sources.

Stand-ins for external price and billing feeds. Nothing here touches a
platform random source: every value is a pure function of a seed or a
key string, so the same inputs reproduce bit-identical outputs.
"""

from typing import Iterator

from .errors import InvalidInputError

MODULUS = 2147483647  # 2**31 - 1
MULTIPLIER = 48271

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
AVALANCHE_MULTIPLIER = 0x5BD1E995
UINT32_MASK = 0xFFFFFFFF
UINT32_MAX = 4294967295


class SeededSequence:
    """Restartable Lehmer sequence of floats in [0, 1).

    Each step computes ``x = (x * 48271) mod (2**31 - 1)`` and yields
    ``x / (2**31 - 1)``.
    """

    def __init__(self, seed: int):
        if isinstance(seed, bool) or not isinstance(seed, int):
            raise InvalidInputError("seed", seed, "must be an integer")
        if seed <= 0 or seed % MODULUS == 0:
            raise InvalidInputError(
                "seed", seed, f"must be positive and not a multiple of {MODULUS}"
            )
        self.seed = seed
        self._state = seed % MODULUS

    def __iter__(self) -> Iterator[float]:
        return self

    def __next__(self) -> float:
        return self.next_float()

    def next_float(self) -> float:
        """Advance the recurrence and return the next value."""
        self._state = (self._state * MULTIPLIER) % MODULUS
        return self._state / MODULUS

    def reset(self) -> None:
        """Restart the sequence from its seed."""
        self._state = self.seed % MODULUS


def stable_hash32(key: str) -> int:
    """Hash a string to an unsigned 32-bit integer.

    FNV-1a over the UTF-8 bytes of ``key``, folded through two
    xor-shift/multiply avalanche rounds.
    """
    h = FNV_OFFSET_BASIS
    for byte in key.encode("utf-8"):
        h ^= byte
        h = (h * FNV_PRIME) & UINT32_MASK
    h ^= h >> 13
    h = (h * AVALANCHE_MULTIPLIER) & UINT32_MASK
    h ^= h >> 15
    return h


def stable_unit_hash(key: str) -> float:
    """Map a string to a referentially stable value in the unit interval."""
    return stable_hash32(key) / UINT32_MAX
