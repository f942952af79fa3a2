"""
Central data model: the Event record.

An Event is identified by the row id it was scraped from and nothing else.
Two events with the same id are the same event, even if the listing has
changed their title or time in the meantime. This is what makes set
difference between a fetched listing and the stored baseline meaningful.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, List

# Listing times are read as a fixed UTC+2, summer and winter alike.
LISTING_TZ = timezone(timedelta(hours=2))


@dataclass(eq=False)
class Event:
    """
    One bookable time slot from the listing.
    """

    id: str
    title: str
    timestamp: datetime
    class_info: List[str] = field(default_factory=list)

    # -----------------------------------------------------------------------
    # Identity
    # -----------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Event):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    # -----------------------------------------------------------------------
    # Ordering (same id -> equal, otherwise by timestamp)
    # -----------------------------------------------------------------------

    def _cmp(self, other: Event) -> int:
        if self.id == other.id:
            return 0
        if self.timestamp < other.timestamp:
            return -1
        if self.timestamp > other.timestamp:
            return 1
        return 0

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Event):
            return NotImplemented
        return self._cmp(other) < 0

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Event):
            return NotImplemented
        return self._cmp(other) <= 0

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Event):
            return NotImplemented
        return self._cmp(other) > 0

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Event):
            return NotImplemented
        return self._cmp(other) >= 0

    # -----------------------------------------------------------------------
    # Persisted record shape
    # -----------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "date_time": self.timestamp.isoformat(),
            "class_info": list(self.class_info),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """
        Build an Event from one persisted record.

        Raises ValueError (or TypeError) if the record does not have the
        expected shape. The storage layer turns these into PersistenceError.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Expected an object, found {type(data).__name__}")

        for key in ("id", "title", "date_time"):
            if not isinstance(data.get(key), str):
                raise ValueError(f"Field {key!r} missing or not a string")

        class_info = data.get("class_info")
        if not isinstance(class_info, list) or not all(isinstance(x, str) for x in class_info):
            raise ValueError("Field 'class_info' missing or not a list of strings")

        timestamp = datetime.fromisoformat(data["date_time"])
        if timestamp.tzinfo is None:
            raise ValueError(f"Field 'date_time' has no UTC offset: {data['date_time']!r}")

        return cls(
            id=data["id"],
            title=data["title"],
            timestamp=timestamp,
            class_info=list(class_info),
        )
