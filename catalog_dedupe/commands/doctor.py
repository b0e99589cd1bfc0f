from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..config import Settings
from ..core.matching import MatcherError
from ..sources import detect_format, load_records
from ..store import CatalogStore


@dataclass(frozen=True, slots=True)
class Check:
    label: str
    status: str
    detail: Optional[str] = None

    def render(self) -> str:
        if self.detail:
            return f"{self.label}: {self.status} ({self.detail})"
        return f"{self.label}: {self.status}"


@dataclass(slots=True)
class DoctorReport:
    checks: list[Check] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(check.status != "ERROR" for check in self.checks)

    def add(self, label: str, status: str, detail: Optional[str] = None) -> None:
        self.checks.append(Check(label, status, detail))

    def lines(self) -> list[str]:
        return [check.render() for check in self.checks]


def _check_matching(settings: Settings, report: DoctorReport) -> None:
    matching = settings.matching
    try:
        matching.to_options()
    except MatcherError as exc:
        report.add("Matching thresholds", "ERROR", str(exc))
        return
    report.add(
        "Matching thresholds",
        "OK",
        f"high={matching.high_similarity_threshold} "
        f"containment={matching.containment_threshold} "
        f"review={matching.review_threshold}",
    )
    if matching.review_threshold > matching.containment_threshold:
        report.add(
            "Review threshold",
            "WARNING",
            "above containment_threshold; near-misses may go unreported",
        )
    report.add("Strategy", "OK", matching.strategy)
    if matching.exclude_series_variations:
        report.add("Series exclusion", "ENABLED", f"base_threshold={matching.series_base_threshold}")
    else:
        report.add("Series exclusion", "DISABLED", "volumes of one series may be grouped")
    if matching.author_penalty:
        report.add(
            "Author check",
            "ENABLED",
            f"penalty={matching.author_penalty} below {matching.author_similarity_threshold}",
        )
    else:
        report.add("Author check", "DISABLED", "same titles by different authors still group")


def _check_source(settings: Settings, report: DoctorReport) -> None:
    path = settings.source.path
    if path is None:
        report.add("Record source", "OK", "catalog store")
        return
    if not path.exists():
        report.add("Record source", "ERROR", f"missing: {path}")
        return
    try:
        fmt = detect_format(path, settings.source.format)
        records = load_records(settings.source, path=path)
    except (MatcherError, ValueError, OSError) as exc:
        report.add("Record source", "ERROR", str(exc))
        return
    report.add("Record source", "OK", f"{len(records)} {fmt} record(s) in {path.name}")


def _check_store(settings: Settings, report: DoctorReport) -> None:
    store_path = Path(settings.store.path)
    if not store_path.exists():
        report.add("Catalog", "WARNING", f"not created yet: {store_path}")
        return
    store = CatalogStore(store_path)
    try:
        books = store.count_books()
        duplicates = len(store.list_duplicates())
    finally:
        store.close()
    report.add("Catalog", "OK", f"{books} book(s), {duplicates} flagged duplicate(s)")


def run(settings: Settings) -> DoctorReport:
    report = DoctorReport()
    _check_matching(settings, report)
    _check_source(settings, report)
    _check_store(settings, report)
    output = settings.report.output
    if output is None:
        report.add("Report file", "DISABLED")
    elif not output.parent.exists():
        report.add("Report file", "WARNING", f"directory will be created: {output.parent}")
    else:
        report.add("Report file", "OK", str(output))
    return report
