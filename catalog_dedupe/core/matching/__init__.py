"""
Duplicate title matching domain logic.

This module handles:
- Title normalization
- Normalized Levenshtein similarity
- Series/volume variation detection
- Duplicate grouping (greedy or transitive) and canonical selection

All logic is pure business logic with no I/O dependencies.
"""

from __future__ import annotations

from .matcher import MatchOptions, TitleMatcher, analyze_records, find_duplicate_groups
from .models import (
    ConfigurationError,
    DedupeResult,
    DuplicateGroup,
    InvalidArgumentError,
    MatcherError,
    PairMatch,
    PairNote,
    Record,
)
from .normalize import core_title, normalize_title, strip_qualifiers
from .series import SeriesVariationDetector, extract_sequence_markers, strip_sequence_markers
from .similarity import edit_distance, similarity

__all__ = [
    "ConfigurationError",
    "DedupeResult",
    "DuplicateGroup",
    "InvalidArgumentError",
    "MatchOptions",
    "MatcherError",
    "PairMatch",
    "PairNote",
    "Record",
    "SeriesVariationDetector",
    "TitleMatcher",
    "analyze_records",
    "core_title",
    "edit_distance",
    "extract_sequence_markers",
    "find_duplicate_groups",
    "normalize_title",
    "similarity",
    "strip_qualifiers",
    "strip_sequence_markers",
]
