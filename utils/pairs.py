"""Key normalization for symmetric relations stored as one row per unordered pair."""
from typing import Tuple


def canonical_pair(a: int, b: int) -> Tuple[int, int]:
    """Return ``(low, high)`` for the unordered pair ``{a, b}``.

    Every read or write of a pair-keyed row goes through this function, so
    ``(a, b)`` and ``(b, a)`` always resolve to the same storage key.
    """
    if a == b:
        raise ValueError(f"A pair needs two distinct ids, got {a} twice")
    return (a, b) if a < b else (b, a)
