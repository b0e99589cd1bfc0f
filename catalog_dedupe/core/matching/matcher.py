"""
Fuzzy duplicate grouping for titled records.

This module provides the matching rules and two grouping strategies:
- Greedy (default): each unclaimed record anchors a group and claims every
  later unclaimed record that matches the anchor itself
- Transitive: union-find over every matching pair, groups are the
  connected components

All functions are pure and have no I/O dependencies.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Callable, Optional

from .models import (
    ConfigurationError,
    DedupeResult,
    DuplicateGroup,
    InvalidArgumentError,
    PairMatch,
    PairNote,
    Record,
)
from .normalize import core_title, normalize_title
from .similarity import similarity

logger = logging.getLogger(__name__)

STRATEGIES = ("greedy", "transitive")

ExclusionPredicate = Callable[[str, str], bool]


@dataclass(frozen=True, slots=True)
class MatchOptions:
    """Thresholds and switches for one matching run."""

    exact_match_always_groups: bool = True
    """Identical normalized titles always group"""

    high_similarity_threshold: float = 0.95
    """Similarity at or above this groups two records outright"""

    containment_threshold: float = 0.85
    """Similarity needed when one normalized title contains the other"""

    exclude_variation: Optional[ExclusionPredicate] = None
    """Called with two raw titles; True keeps the pair apart"""

    review_threshold: float = 0.85
    """Ungrouped pairs at or above this are reported for manual review"""

    strategy: str = "greedy"
    """greedy or transitive"""

    author_penalty: float = 0.0
    """Subtracted from title similarity when both authors are known and differ; 0 disables"""

    author_similarity_threshold: float = 0.7
    """Authors less similar than this count as different"""

    def validate(self) -> None:
        for name in (
            "high_similarity_threshold",
            "containment_threshold",
            "review_threshold",
            "author_penalty",
            "author_similarity_threshold",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{name} must be a number, got {value!r}")
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")
        if self.containment_threshold > self.high_similarity_threshold:
            raise ConfigurationError(
                "containment_threshold "
                f"({self.containment_threshold}) must not exceed "
                f"high_similarity_threshold ({self.high_similarity_threshold})"
            )
        if self.exclude_variation is not None and not callable(self.exclude_variation):
            raise ConfigurationError("exclude_variation must be callable")
        if self.strategy not in STRATEGIES:
            raise ConfigurationError(
                f"strategy must be one of {', '.join(STRATEGIES)}, got {self.strategy!r}"
            )


@dataclass(slots=True)
class _Entry:
    index: int
    record: Record
    normalized: str
    core: str
    author: str


@dataclass(slots=True)
class _Run:
    result: DedupeResult
    pending_review: list[tuple[int, int, PairNote]] = field(default_factory=list)


class TitleMatcher:
    """
    Groups duplicate records by normalized title similarity.

    Usage:
        matcher = TitleMatcher(MatchOptions(exclude_variation=SeriesVariationDetector()))
        result = matcher.analyze(records)
        for group in result.groups:
            print(group.canonical.title, [r.id for r in group.duplicates])

    The matcher holds only its options; every run owns its own state.
    """

    def __init__(self, options: MatchOptions | None = None) -> None:
        self.options = options or MatchOptions()
        self.options.validate()

    def compare(
        self,
        title_a: str,
        title_b: str,
        *,
        author_a: Optional[str] = None,
        author_b: Optional[str] = None,
    ) -> PairMatch:
        """
        Decide whether two raw titles are duplicates.

        Rules are applied in order:
        1. Exclusion predicate (series variation): never grouped
        2. Exact normalized match (when enabled and no author penalty applies)
        3. Similarity at/above the high threshold
        4. Containment with similarity at/above the containment threshold

        With ``author_penalty`` set, similarity is reduced by the penalty when
        both authors are given and differ.
        """
        a = _Entry(0, Record(id=0, title=title_a, author=author_a), *_keys(title_a, author_a))
        b = _Entry(1, Record(id=1, title=title_b, author=author_b), *_keys(title_b, author_b))
        return self._compare_entries(a, b)

    def find_duplicate_groups(self, records: Sequence[Record]) -> list[DuplicateGroup]:
        return self.analyze(records).groups

    def analyze(self, records: Sequence[Record]) -> DedupeResult:
        """
        Partition records into duplicate groups and collect review notes.

        Args:
            records: Records in input order (the order matters for greedy grouping)

        Returns:
            DedupeResult with groups ordered by their first member's input position

        Raises:
            InvalidArgumentError: on malformed input
        """
        entries = self._prepare(records)
        result = DedupeResult(
            statistics={
                "records": len(entries),
                "comparisons": 0,
                "exact": 0,
                "high_similarity": 0,
                "containment": 0,
                "series_excluded": 0,
                "review": 0,
            }
        )
        run = _Run(result=result)
        if self.options.strategy == "transitive":
            clusters = self._transitive_clusters(entries, run)
        else:
            clusters = self._greedy_clusters(entries, run)

        group_of: dict[int, int] = {}
        for number, cluster in enumerate(clusters):
            result.groups.append(DuplicateGroup(members=_canonical_order(cluster)))
            for entry in cluster:
                group_of[entry.index] = number

        # A near-miss pair can still share a group through a bridging record.
        result.review_pairs = [
            note
            for first, second, note in run.pending_review
            if group_of.get(first, -1) != group_of.get(second, -2)
        ]
        result.statistics["review"] = len(result.review_pairs)
        logger.info(
            "Matched %d record(s): %d group(s), %d duplicate(s), %d pair(s) for review",
            len(entries),
            len(result.groups),
            result.duplicate_count,
            len(result.review_pairs),
        )
        return result

    def _prepare(self, records: Sequence[Record]) -> list[_Entry]:
        if isinstance(records, (str, bytes)) or not isinstance(records, Sequence):
            raise InvalidArgumentError(
                f"records must be a list of Record, got {type(records).__name__}"
            )
        entries: list[_Entry] = []
        seen_ids: set = set()
        for index, record in enumerate(records):
            if not isinstance(record, Record):
                raise InvalidArgumentError(
                    f"records[{index}] must be a Record, got {type(record).__name__}"
                )
            if not isinstance(record.title, str):
                raise InvalidArgumentError(
                    f"record {record.id!r} has no title (got {type(record.title).__name__})"
                )
            try:
                duplicate_id = record.id in seen_ids
                seen_ids.add(record.id)
            except TypeError as exc:
                raise InvalidArgumentError(f"record id {record.id!r} is not hashable") from exc
            if duplicate_id:
                raise InvalidArgumentError(f"duplicate record id {record.id!r}")
            entries.append(_Entry(index, record, *_keys(record.title, record.author)))
        return entries

    def _greedy_clusters(self, entries: list[_Entry], run: _Run) -> list[list[_Entry]]:
        claimed = [False] * len(entries)
        clusters: list[list[_Entry]] = []
        for i, anchor in enumerate(entries):
            if claimed[i]:
                continue
            cluster = [anchor]
            for j in range(i + 1, len(entries)):
                if claimed[j]:
                    continue
                candidate = entries[j]
                if self._evaluate(anchor, candidate, run).matches:
                    cluster.append(candidate)
                    claimed[j] = True
            claimed[i] = True
            if len(cluster) > 1:
                clusters.append(cluster)
        return clusters

    def _transitive_clusters(self, entries: list[_Entry], run: _Run) -> list[list[_Entry]]:
        edges: list[tuple[int, int, PairMatch]] = []
        excluded: set[tuple[int, int]] = set()
        for i in range(len(entries)):
            for j in range(i + 1, len(entries)):
                match = self._evaluate(entries[i], entries[j], run)
                if match.matches:
                    edges.append((i, j, match))
                elif match.strategy == "series_variation":
                    excluded.add((i, j))

        parent = list(range(len(entries)))
        members = {i: [i] for i in range(len(entries))}

        def find(i: int) -> int:
            while parent[i] != i:
                parent[i] = parent[parent[i]]
                i = parent[i]
            return i

        # Every pair is evaluated before any union so a bridging record can
        # never pull an excluded pair into one component.
        for i, j, match in edges:
            root_i, root_j = find(i), find(j)
            if root_i == root_j:
                continue
            blocked = next(
                (
                    (a, b)
                    for a in members[root_i]
                    for b in members[root_j]
                    if (min(a, b), max(a, b)) in excluded
                ),
                None,
            )
            if blocked is not None:
                logger.debug(
                    "Not joining %r with %r: would group series variation %r / %r",
                    entries[j].record.title,
                    entries[i].record.title,
                    entries[blocked[0]].record.title,
                    entries[blocked[1]].record.title,
                )
                run.pending_review.append(
                    (
                        i,
                        j,
                        PairNote(
                            entries[i].record,
                            entries[j].record,
                            match.similarity,
                            "matched, but kept apart from a series variation",
                        ),
                    )
                )
                continue
            # Lower index stays root so components keep input order.
            keep, merged = min(root_i, root_j), max(root_i, root_j)
            parent[merged] = keep
            members[keep].extend(members.pop(merged))

        return [
            [entries[k] for k in sorted(members[root])]
            for root in sorted(members)
            if len(members[root]) > 1
        ]

    def _evaluate(self, first: _Entry, second: _Entry, run: _Run) -> PairMatch:
        match = self._compare_entries(first, second)
        stats = run.result.statistics
        stats["comparisons"] += 1
        if match.strategy == "series_variation":
            stats["series_excluded"] += 1
            run.result.series_pairs.append(
                PairNote(first.record, second.record, match.similarity, match.details or "")
            )
            return match
        if match.matches:
            stats[match.strategy] += 1
            logger.debug(
                "Grouped %r with %r (%s, %.3f)",
                second.record.title,
                first.record.title,
                match.strategy,
                match.similarity,
            )
            return match
        if match.similarity >= self.options.review_threshold:
            run.pending_review.append(
                (
                    first.index,
                    second.index,
                    PairNote(first.record, second.record, match.similarity, "similar but below thresholds"),
                )
            )
        return match

    def _author_penalty(self, first: _Entry, second: _Entry) -> float:
        options = self.options
        if not options.author_penalty or not first.author or not second.author:
            return 0.0
        if similarity(first.author, second.author) < options.author_similarity_threshold:
            return options.author_penalty
        return 0.0

    def _compare_entries(self, first: _Entry, second: _Entry) -> PairMatch:
        options = self.options
        title_a, title_b = first.record.title, second.record.title
        norm_a, norm_b = first.normalized, second.normalized
        if options.exclude_variation is not None and options.exclude_variation(title_a, title_b):
            return PairMatch(
                matches=False,
                strategy="series_variation",
                details=f"'{title_a}' and '{title_b}' are distinct parts of a series",
            )

        penalty = self._author_penalty(first, second)
        if options.exact_match_always_groups and norm_a == norm_b and not penalty:
            return PairMatch(
                matches=True,
                strategy="exact",
                similarity=1.0,
                details=f"Identical normalized titles: '{norm_a}'",
            )

        sim = max(0.0, similarity(norm_a, norm_b) - penalty)
        note = f" (author penalty {penalty})" if penalty else ""
        if sim >= options.high_similarity_threshold:
            return PairMatch(
                matches=True,
                strategy="high_similarity",
                similarity=sim,
                details=f"Similarity {sim:.3f} >= {options.high_similarity_threshold}{note}",
            )

        if norm_a != norm_b and (norm_a in norm_b or norm_b in norm_a):
            # The shorter title against the longer one's qualifier-free core:
            # "dune" vs core "dune" of "Dune (Deluxe Edition)".
            if len(norm_a) <= len(norm_b):
                core_sim = similarity(norm_a, second.core)
            else:
                core_sim = similarity(first.core, norm_b)
            contained_sim = max(sim, core_sim - penalty)
            if contained_sim >= options.containment_threshold:
                return PairMatch(
                    matches=True,
                    strategy="containment",
                    similarity=sim,
                    details=(
                        f"'{norm_a}' and '{norm_b}' overlap, "
                        f"core similarity {contained_sim:.3f} >= {options.containment_threshold}{note}"
                    ),
                )

        return PairMatch(
            matches=False, similarity=sim, details=f"No matching rule succeeded{note}"
        )


def _keys(title: str, author: Optional[str]) -> tuple[str, str, str]:
    """Normalized title, qualifier-free core and normalized author ("" when unknown)."""
    return normalize_title(title), core_title(title), normalize_title(author or "")


def _canonical_order(cluster: list[_Entry]) -> list[Record]:
    """Earliest order_key first; records without a key follow in input order."""

    def sort_key(entry: _Entry):
        if entry.record.order_key is None:
            return (1, 0, entry.index)
        return (0, entry.record.order_key, entry.index)

    keyed = [entry for entry in cluster if entry.record.order_key is not None]
    try:
        ordered = sorted(cluster, key=sort_key)
    except TypeError as exc:
        kinds = sorted({type(entry.record.order_key).__name__ for entry in keyed})
        raise InvalidArgumentError(
            f"order_key values are not comparable ({', '.join(kinds)})"
        ) from exc
    return [entry.record for entry in ordered]


def find_duplicate_groups(
    records: Sequence[Record], options: MatchOptions | None = None
) -> list[DuplicateGroup]:
    """Group duplicate records; see TitleMatcher.analyze."""
    return TitleMatcher(options).find_duplicate_groups(records)


def analyze_records(records: Sequence[Record], options: MatchOptions | None = None) -> DedupeResult:
    return TitleMatcher(options).analyze(records)
