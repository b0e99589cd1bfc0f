from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import Settings
from ..core.matching import TitleMatcher
from ..report import build_report, print_report, write_report
from ..sources import load_records
from ..store import CatalogStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MarkSummary:
    groups: int
    marked: int
    missing: int
    reset: int
    dry_run: bool


def run(store: CatalogStore, settings: Settings, *, dry_run: bool = False) -> MarkSummary:
    """Detect duplicates in the catalog and flag every non-canonical member."""
    options = settings.matching.to_options()
    source = settings.source.model_copy(update={"path": None})
    records = load_records(source, store=store)
    logger.info("Loaded %d book(s) from %s", len(records), store.path)

    result = TitleMatcher(options).analyze(records)
    print_report(result, max_groups=settings.report.max_groups_displayed)
    if settings.report.output is not None:
        write_report(build_report(result, strategy=options.strategy), settings.report.output)

    if dry_run:
        for group in result.groups:
            for record in group.duplicates:
                print(f"[dry-run] Would mark {record.title!r} [{record.id}] as duplicate")
        return MarkSummary(
            groups=len(result.groups),
            marked=0,
            missing=0,
            reset=0,
            dry_run=True,
        )

    marks = [
        (record.id, group.canonical.id) for group in result.groups for record in group.duplicates
    ]
    reset, marked, missing_ids = store.apply_duplicate_marks(marks)
    if reset:
        logger.info("Reset %d stale duplicate flag(s)", reset)
    for book_id in missing_ids:
        logger.warning("Book %s vanished before it could be marked", book_id)
    missing = len(missing_ids)

    store.append_audit_event(
        "mark_complete",
        {
            "records": result.total_records,
            "groups": len(result.groups),
            "marked": marked,
            "missing": missing,
            "reset": reset,
            "strategy": options.strategy,
        },
    )
    print(f"Marked {marked} book(s) as duplicates across {len(result.groups)} group(s).")
    return MarkSummary(
        groups=len(result.groups),
        marked=marked,
        missing=missing,
        reset=reset,
        dry_run=False,
    )
