"""
Client-side view of signals, merged from listing snapshots and push events.

The snapshot fetch and the push channel race with each other, so every merge
operation is idempotent and safe in any order:

- a snapshot replaces the view wholesale;
- ``signal:created`` inserts a record unless its id is already present;
- ``signal:deleted`` (and a local optimistic delete) removes the id if present.

A delete that overtakes a snapshot already in flight may be undone by that
snapshot; the next snapshot repairs it.
"""
import threading
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

SIGNAL_CREATED = "signal:created"
SIGNAL_DELETED = "signal:deleted"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _event_time(record: dict) -> datetime:
    raw = record.get("eventTimestamp")
    if not isinstance(raw, str):
        return _EPOCH
    try:
        value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class SignalView:
    """Ordered (newest event first), duplicate-free list of signal records."""

    def __init__(self, on_change: Optional[Callable[["SignalView"], None]] = None):
        self._records: List[dict] = []
        self._lock = threading.Lock()
        self._on_change = on_change

    def replace(self, records: Iterable[dict]) -> None:
        """Seed the view from a snapshot, dropping duplicate ids."""
        seen = set()
        fresh = []
        for record in records:
            record_id = record.get("id")
            if record_id is None or record_id in seen:
                continue
            seen.add(record_id)
            fresh.append(record)
        with self._lock:
            self._records = fresh
        self._changed()

    def apply_created(self, record: dict) -> bool:
        """Insert ``record`` unless its id is already in the view."""
        record_id = record.get("id")
        if record_id is None:
            return False
        when = _event_time(record)
        with self._lock:
            if any(existing.get("id") == record_id for existing in self._records):
                return False
            # Front for the newest record; otherwise keep descending order
            position = 0
            while position < len(self._records) and _event_time(self._records[position]) > when:
                position += 1
            self._records.insert(position, record)
        self._changed()
        return True

    def apply_deleted(self, record_id: str) -> bool:
        """Remove ``record_id``; a no-op when it is not in the view."""
        with self._lock:
            remaining = [record for record in self._records if record.get("id") != record_id]
            removed = len(remaining) != len(self._records)
            self._records = remaining
        if removed:
            self._changed()
        return removed

    # A successful DELETE removes the entry right away; the later push echo
    # then finds nothing to remove.
    remove_local = apply_deleted

    def apply_event(self, message: dict) -> bool:
        """Dispatch one push message. Unknown events are ignored."""
        event = message.get("event")
        data = message.get("data") or {}
        if not isinstance(data, dict):
            return False
        if event == SIGNAL_CREATED:
            return self.apply_created(data)
        if event == SIGNAL_DELETED:
            return self.apply_deleted(data.get("id"))
        return False

    def records(self) -> List[dict]:
        with self._lock:
            return list(self._records)

    def ids(self) -> List[str]:
        with self._lock:
            return [record.get("id") for record in self._records]

    def clear(self) -> None:
        with self._lock:
            self._records = []
        self._changed()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return any(record.get("id") == record_id for record in self._records)

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self)
