from __future__ import annotations

from pathlib import Path

from ..config import Settings
from ..sources import detect_format, load_records
from ..store import CatalogStore


def run(store: CatalogStore, settings: Settings, path: Path) -> int:
    if detect_format(path, settings.source.format) == "sqlite":
        raise SystemExit("Import expects a CSV or JSON file, not a catalog database")
    records = load_records(settings.source, path=path)
    count = store.upsert_records(records)
    store.append_audit_event("import_complete", {"source": str(path), "records": count})
    print(f"Imported {count} record(s) into {store.path}")
    return count
