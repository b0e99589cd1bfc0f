"""
Record loading for the matcher.

The matcher refuses to guess about missing titles; this is where that decision
is made explicitly (``missing_title`` = error, skip or empty).
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from .config import SourceSettings
from .core.matching import InvalidArgumentError, Record
from .store import CatalogStore

logger = logging.getLogger(__name__)

FORMAT_BY_SUFFIX = {
    ".csv": "csv",
    ".json": "json",
    ".jsonl": "jsonl",
    ".ndjson": "jsonl",
    ".sqlite": "sqlite",
    ".sqlite3": "sqlite",
    ".db": "sqlite",
}


def detect_format(path: Path, declared: str = "auto") -> str:
    if declared != "auto":
        return declared
    fmt = FORMAT_BY_SUFFIX.get(path.suffix.lower())
    if fmt is None:
        raise ValueError(f"Cannot infer record format from {path.name}; set source.format")
    return fmt


def load_records(
    settings: SourceSettings,
    *,
    path: Optional[Path] = None,
    store: Optional[CatalogStore] = None,
) -> list[Record]:
    """
    Load records from the configured source.

    Args:
        settings: Source field mapping and policies
        path: Overrides settings.path (e.g. from the command line)
        store: Catalog to read when no file is given

    Returns:
        Records in source order
    """
    source_path = path or settings.path
    if source_path is None:
        if store is None:
            raise ValueError("No record source configured (set source.path or use the catalog)")
        return records_from_rows(store.list_books(), _store_mapping(settings))

    source_path = Path(source_path)
    if not source_path.exists():
        raise FileNotFoundError(f"Record source not found: {source_path}")
    fmt = detect_format(source_path, settings.format)
    if fmt == "sqlite":
        catalog = CatalogStore(source_path)
        try:
            return records_from_rows(catalog.list_books(), _store_mapping(settings))
        finally:
            catalog.close()
    if fmt == "csv":
        rows = _rows_from_csv(source_path)
    elif fmt == "json":
        rows = _rows_from_json(source_path)
    else:
        rows = _rows_from_jsonl(source_path)
    return records_from_rows(rows, settings)


def records_from_rows(rows: Iterable[dict[str, Any]], settings: SourceSettings) -> list[Record]:
    records: list[Record] = []
    skipped = 0
    for position, row in enumerate(rows, start=1):
        record_id = row.get(settings.id_field)
        if record_id is None or record_id == "":
            raise InvalidArgumentError(f"row {position} has no {settings.id_field!r} value")
        title = row.get(settings.title_field)
        if title is None:
            if settings.missing_title == "skip":
                logger.warning("Skipping record %s: missing %s", record_id, settings.title_field)
                skipped += 1
                continue
            if settings.missing_title == "empty":
                title = ""
            else:
                raise InvalidArgumentError(
                    f"record {record_id!r} has no {settings.title_field!r} value"
                )
        title = _title_text(title, record_id, settings.title_field)
        author = row.get(settings.author_field) if settings.author_field else None
        order_key = None
        if settings.order_field:
            order_key = parse_order_key(row.get(settings.order_field), settings.order_type)
        records.append(
            Record(
                id=record_id,
                title=title,
                order_key=order_key,
                author=str(author) if author not in (None, "") else None,
            )
        )
    if skipped:
        logger.info("Skipped %d record(s) without a title", skipped)
    return records


def _title_text(title: Any, record_id: Any, field: str) -> str:
    if isinstance(title, str):
        return title
    # JSON sources can carry bare numbers ("1984"); anything else is malformed.
    if isinstance(title, (int, float)) and not isinstance(title, bool):
        logger.warning("Record %s: numeric %s %r read as text", record_id, field, title)
        return str(title)
    raise InvalidArgumentError(
        f"record {record_id!r} has a non-text {field!r} value ({type(title).__name__})"
    )


def parse_order_key(value: Any, order_type: str) -> Any:
    """Convert a raw ordering value; blanks become None (input order)."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        if order_type == "number":
            return float(value)
        if order_type == "datetime":
            if isinstance(value, datetime):
                return value
            text = str(value)
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)
            if parsed.tzinfo is None:
                return parsed
            # Mixed naive/aware values are not comparable; keep everything naive UTC.
            return parsed.astimezone(timezone.utc).replace(tzinfo=None)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"invalid {order_type} order key {value!r}") from exc
    return str(value)


def _rows_from_csv(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8-sig", newline="") as fh:
        reader = csv.DictReader(fh)
        return [dict(row) for row in reader]


def _rows_from_json(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if isinstance(payload, dict):
        # Exports sometimes wrap the list: {"books": [...]}
        lists = [value for value in payload.values() if isinstance(value, list)]
        if len(lists) != 1:
            raise ValueError(f"{path.name}: expected a JSON array of records")
        payload = lists[0]
    if not isinstance(payload, list):
        raise ValueError(f"{path.name}: expected a JSON array of records")
    return [_require_object(item, path) for item in payload]


def _rows_from_jsonl(path: Path) -> list[dict[str, Any]]:
    rows = []
    with path.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if line:
                rows.append(_require_object(json.loads(line), path))
    return rows


def _require_object(item: Any, path: Path) -> dict[str, Any]:
    if not isinstance(item, dict):
        raise ValueError(f"{path.name}: every record must be a JSON object")
    return item


def _store_mapping(settings: SourceSettings) -> SourceSettings:
    """Catalog rows always use the catalog's own column names."""
    return settings.model_copy(
        update={
            "id_field": "id",
            "title_field": "title",
            "order_field": "created_at",
            "author_field": "author",
        }
    )
