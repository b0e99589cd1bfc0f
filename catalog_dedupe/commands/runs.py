from __future__ import annotations

import json
from typing import Any, Optional

from ..store import CatalogStore

# Payload keys shown inline, in this order; anything else is listed below.
SUMMARY_KEYS = ("records", "groups", "duplicates", "marked", "reset", "strategy")


def _summary(payload: dict[str, Any]) -> str:
    parts = [f"{key}={payload[key]}" for key in SUMMARY_KEYS if key in payload]
    return " ".join(parts)


def run(
    store: CatalogStore,
    *,
    limit: int = 20,
    event: Optional[str] = None,
    since: Optional[str] = None,
    json_output: bool = False,
) -> list[dict[str, Any]]:
    """List recorded detect/mark/import runs, newest first."""
    since_id: int | None = None
    since_ts: str | None = None
    since = (since or "").strip()
    if since.isdigit():
        since_id = int(since)
    elif since:
        since_ts = since

    events = store.list_audit_events(limit=limit, event=event, since_id=since_id, since=since_ts)
    if json_output:
        print(json.dumps(events, indent=2, sort_keys=True))
        return events
    if not events:
        print("No recorded runs.")
        return events

    for entry in events:
        payload = entry.get("payload") or {}
        print(f"#{entry['id']:<5} {entry['created_at']}  {entry['event']:<16} {_summary(payload)}")
        extra = sorted(key for key in payload if key not in SUMMARY_KEYS)
        for key in extra:
            if payload[key] is not None:
                print(f"       {key}: {payload[key]}")
    return events
