from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..config import Settings
from ..core.matching import DedupeResult, TitleMatcher
from ..report import build_report, print_report, write_report
from ..sources import load_records
from ..store import CatalogStore

logger = logging.getLogger(__name__)


def run(
    settings: Settings,
    *,
    input_path: Optional[Path] = None,
    report_path: Optional[Path] = None,
    store: Optional[CatalogStore] = None,
    quiet: bool = False,
) -> DedupeResult:
    options = settings.matching.to_options()
    records = load_records(settings.source, path=input_path, store=store)
    logger.info("Loaded %d record(s)", len(records))

    result = TitleMatcher(options).analyze(records)

    if not quiet:
        print_report(result, max_groups=settings.report.max_groups_displayed)

    out = report_path or settings.report.output
    if out is not None:
        write_report(build_report(result, strategy=options.strategy), out)
    if store is not None:
        store.append_audit_event(
            "detect_complete",
            {
                "records": result.total_records,
                "groups": len(result.groups),
                "duplicates": result.duplicate_count,
                "review_pairs": len(result.review_pairs),
                "strategy": options.strategy,
                "report_path": str(out) if out else None,
            },
        )
    return result
