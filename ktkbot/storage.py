"""
Persistent storage for the baseline of known events.

This module manages the events file (events.json by default):

    [
      {"id": "...", "title": "...", "date_time": "2021-06-14T18:00:00+02:00",
       "class_info": ["..."]},
      ...
    ]

Design rationale:
- the file always holds the complete baseline and is overwritten in full
- records are written in a stable order so the file diffs cleanly
- loading is strict: anything that is not exactly this shape raises
  PersistenceError, and the caller decides how to recover
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Set

from ktkbot.errors import PersistenceError
from ktkbot.model import Event


def load_events(path: str | Path) -> Set[Event]:
    """
    Load the stored events from `path`.

    Raises PersistenceError if the file is missing, unreadable,
    not valid JSON, or does not match the record schema.
    """
    events_path = Path(path)

    try:
        data = json.loads(events_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise PersistenceError(f"Failed to read {events_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise PersistenceError(f"Invalid JSON in {events_path}: {exc}") from exc

    if not isinstance(data, list):
        raise PersistenceError(f"Expected a list of events in {events_path}, found {type(data).__name__}")

    events: Set[Event] = set()
    for i, record in enumerate(data):
        try:
            events.add(Event.from_dict(record))
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Invalid event #{i} in {events_path}: {exc}") from exc

    return events


def save_events(events: Iterable[Event], path: str | Path) -> None:
    """
    Overwrite `path` with `events`.

    Creates parent directories if needed.
    """
    events_path = Path(path)

    # sorted by time, ties broken by id for a deterministic file
    records = [e.to_dict() for e in sorted(events, key=lambda e: (e.timestamp, e.id))]

    try:
        events_path.parent.mkdir(parents=True, exist_ok=True)
        events_path.write_text(json.dumps(records, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"Failed to write {events_path}: {exc}") from exc
