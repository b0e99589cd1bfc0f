from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .core.matching import DedupeResult, PairNote, Record

logger = logging.getLogger(__name__)


def _book(record: Record, *, keep: bool) -> dict[str, Any]:
    return {
        "id": record.id,
        "title": record.title,
        "author": record.author,
        "order_key": record.order_key,
        "keep_this": keep,
        "mark_as_duplicate": not keep,
    }


def _pair(note: PairNote) -> dict[str, Any]:
    return {
        "first": {"id": note.first.id, "title": note.first.title},
        "second": {"id": note.second.id, "title": note.second.title},
        "similarity": round(note.similarity, 4),
        "reason": note.reason,
    }


def build_report(result: DedupeResult, *, strategy: str = "greedy") -> dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "strategy": strategy,
        "total_records": result.total_records,
        "duplicate_groups": len(result.groups),
        "total_duplicates": result.duplicate_count,
        "unique_records": result.unique_count,
        "statistics": dict(result.statistics),
        "groups": [
            {
                "group_id": index,
                "title": group.canonical.title,
                "count": len(group),
                "books": [
                    _book(record, keep=position == 0)
                    for position, record in enumerate(group.members)
                ],
            }
            for index, group in enumerate(result.groups, start=1)
        ],
        "review_pairs": [_pair(note) for note in result.review_pairs],
        "series_pairs": [_pair(note) for note in result.series_pairs],
    }


def write_report(report: dict[str, Any], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(report, fh, indent=2, default=str)
        fh.write("\n")
    logger.info("Duplicate report written to %s", path)
    return path


def print_report(result: DedupeResult, *, max_groups: int = 20) -> None:
    """Print a human-readable summary of duplicate groups and review pairs."""
    print("\n=== Duplicate Detection Report ===\n")
    print(f"  Records analyzed:   {result.total_records}")
    print(f"  Duplicate groups:   {len(result.groups)}")
    print(f"  Marked duplicates:  {result.duplicate_count}")
    print(f"  Unique records:     {result.unique_count}")
    print(f"  Needs review:       {len(result.review_pairs)}")
    print(f"  Series kept apart:  {len(result.series_pairs)}")

    if result.groups and max_groups:
        print("\n--- GROUPS (largest first) ---")
        largest = sorted(result.groups, key=lambda group: -len(group))[:max_groups]
        for group in largest:
            print(f"\n  Keep: {group.canonical.title} [{group.canonical.id}]")
            for record in group.duplicates:
                print(f"    - {record.title} [{record.id}]")
        if len(result.groups) > max_groups:
            print(f"\n  ... and {len(result.groups) - max_groups} more group(s)")

    if result.review_pairs and max_groups:
        print("\n--- POSSIBLE DUPLICATES (manual review) ---")
        for note in result.review_pairs[:max_groups]:
            print(
                f"  {note.similarity:.1%}  {note.first.title!r} vs {note.second.title!r}"
            )
