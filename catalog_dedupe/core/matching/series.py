"""
Series/volume variation detection.

Titles like "Chronicles of Narnia Vol 1" and "Chronicles of Narnia Vol 2" are
nearly identical strings but distinct items. The detector here is meant to be
passed to the matcher as its exclusion predicate.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .models import ConfigurationError
from .normalize import normalize_title
from .similarity import similarity

ORDINALS = {
    "first": "1",
    "second": "2",
    "third": "3",
    "fourth": "4",
    "fifth": "5",
    "sixth": "6",
    "seventh": "7",
    "eighth": "8",
    "ninth": "9",
    "tenth": "10",
}

# Each pattern captures the sequence value in group 1. A trailing "of M" is
# consumed so "Part 2 of 4" strips down to the same base as "Part 1".
_OF_TOTAL = r"(?:\s*(?:of|/)\s*\d+)?"
SEQUENCE_PATTERNS = [
    re.compile(
        r"\b(?:vol|volume|part|book|chapter|episode|issue)\.?\s*#?\s*(\d+)" + _OF_TOTAL + r"\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b(?:no|number)\.?\s*#?\s*(\d+)" + _OF_TOTAL + r"\b", re.IGNORECASE),
    re.compile(r"#\s*(\d+)\b"),
    re.compile(r"\b(\d+)\s*(?:of|/)\s*\d+\b", re.IGNORECASE),
    re.compile(
        r"\b(" + "|".join(ORDINALS) + r")\s+(?:volume|part|book|chapter)\b",
        re.IGNORECASE,
    ),
]


def extract_sequence_markers(title: str) -> tuple[str, ...]:
    """
    Return the distinct sequence values found in a raw title, in order of appearance.

    Examples:
        "Narnia Vol 1"            → ("1",)
        "Lessons (03 of 12)"      → ("3",)
        "Second Book of Verse"    → ("2",)
        "The Great Gatsby"        → ()
    """
    found: list[tuple[int, str]] = []
    for pattern in SEQUENCE_PATTERNS:
        for match in pattern.finditer(title):
            found.append((match.start(), _canonical_value(match.group(1))))
    found.sort()
    # Overlapping patterns ("Part 1 of 3", "No. #5") report one value twice.
    return tuple(dict.fromkeys(value for _, value in found))


def strip_sequence_markers(title: str) -> str:
    """Normalized base title with every sequence marker removed."""
    base = title
    for pattern in SEQUENCE_PATTERNS:
        base = pattern.sub(" ", base)
    return normalize_title(base)


def _canonical_value(raw: str) -> str:
    lowered = raw.lower()
    if lowered in ORDINALS:
        return ORDINALS[lowered]
    return str(int(lowered))


@dataclass(frozen=True, slots=True)
class SeriesVariationDetector:
    """
    Exclusion predicate for distinct volumes/parts of one series.

    Two titles are a series variation when both carry sequence markers, the
    markers differ, and their base titles (markers removed) are more similar
    than ``base_threshold``.

    Usage:
        detector = SeriesVariationDetector()
        detector("Narnia Vol 1", "Narnia Vol 2")  # True
        detector("Narnia Vol 1", "Narnia vol. 1")  # False: same volume
    """

    base_threshold: float = 0.8

    def __post_init__(self) -> None:
        if not 0.0 <= self.base_threshold <= 1.0:
            raise ConfigurationError(
                f"base_threshold must be within [0, 1], got {self.base_threshold}"
            )

    def __call__(self, title_a: str, title_b: str) -> bool:
        markers_a = extract_sequence_markers(title_a)
        markers_b = extract_sequence_markers(title_b)
        if not markers_a or not markers_b:
            return False
        if markers_a == markers_b:
            return False
        base_a = strip_sequence_markers(title_a)
        base_b = strip_sequence_markers(title_b)
        return similarity(base_a, base_b) > self.base_threshold
