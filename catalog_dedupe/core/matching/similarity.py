"""
String similarity for normalized titles.

Edit distance comes from rapidfuzz; only the normalization wrapper lives here.
"""

from __future__ import annotations

from rapidfuzz.distance import Levenshtein

from .models import InvalidArgumentError


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit cost insert/delete/substitute."""
    _require_str(a, "a")
    _require_str(b, "b")
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """
    Normalized Levenshtein similarity in [0, 1].

    ``1 - distance / max(len(a), len(b))``; two empty strings are identical (1.0).

    Examples:
        similarity("dune", "dune")  → 1.0
        similarity("kitten", "sitting") → 0.571...
    """
    longest = max(len(_require_str(a, "a")), len(_require_str(b, "b")))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


def _require_str(value: str, name: str) -> str:
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{name} must be a string, got {type(value).__name__}")
    return value
