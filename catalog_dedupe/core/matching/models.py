"""
Domain models for duplicate title matching.

These are plain data models; the only behaviour they carry is input checking.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


class MatcherError(Exception):
    """Base class for matcher failures (always programming or configuration errors)."""


class InvalidArgumentError(MatcherError, ValueError):
    """Raised when records or titles handed to the matcher are malformed."""


class ConfigurationError(MatcherError, ValueError):
    """Raised when matcher options are degenerate or inconsistent."""


@dataclass(frozen=True, slots=True)
class Record:
    """
    A titled item to deduplicate.

    Example:
        Record(id="7f3c...", title="A Christmas Carol", order_key="2020-01-01")
    """
    id: Any
    """Opaque unique identifier, supplied by the caller"""

    title: str
    """Free text label used for comparison"""

    order_key: Any = None
    """Comparable value choosing the canonical record; input order when absent"""

    author: Optional[str] = None
    """Shown in reports; compared only when an author penalty is configured"""


@dataclass(slots=True)
class DuplicateGroup:
    """
    Records judged to be the same item.

    ``members`` is ordered canonical first; every group has at least two members.
    """
    members: list[Record]

    @property
    def canonical(self) -> Record:
        return self.members[0]

    @property
    def duplicates(self) -> list[Record]:
        return self.members[1:]

    def __len__(self) -> int:
        return len(self.members)

    def ids(self) -> list[Any]:
        return [record.id for record in self.members]


@dataclass(slots=True)
class PairMatch:
    """
    Result of comparing two titles.

    Contains whether they match, the rule that decided it, and why.
    """
    matches: bool
    """Whether the two titles should be grouped"""

    strategy: Optional[str] = None
    """exact, high_similarity, containment, series_variation, or None"""

    similarity: float = 0.0
    """Normalized Levenshtein similarity of the normalized titles"""

    details: Optional[str] = None
    """Human-readable explanation of the decision"""


@dataclass(frozen=True, slots=True)
class PairNote:
    """A pair of records worth reporting even though they were not grouped."""
    first: Record
    second: Record
    similarity: float
    reason: str


@dataclass(slots=True)
class DedupeResult:
    """
    Everything a matching run found.

    Groups are the actionable output; review and series pairs are informational.
    """
    groups: list[DuplicateGroup] = field(default_factory=list)
    review_pairs: list[PairNote] = field(default_factory=list)
    series_pairs: list[PairNote] = field(default_factory=list)
    statistics: dict[str, int] = field(default_factory=dict)

    @property
    def total_records(self) -> int:
        return self.statistics.get("records", 0)

    @property
    def duplicate_count(self) -> int:
        """Number of records that would be marked as duplicates."""
        return sum(len(group) - 1 for group in self.groups)

    @property
    def unique_count(self) -> int:
        return self.total_records - self.duplicate_count
