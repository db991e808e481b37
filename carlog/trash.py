"""Soft-delete lifecycle for service entries."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .service_entry import EntryState, ServiceEntry


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-02T03:04:05.678Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


class TrashedServiceEntry:
    """A service entry that was moved to the trash."""

    state = EntryState.TRASHED

    def __init__(self, entry: ServiceEntry, deleted_at: str):
        self.entry = entry
        self.deleted_at = deleted_at

    @property
    def id(self) -> Optional[str]:
        return self.entry.id

    def restore(self) -> ServiceEntry:
        """Return a copy of the entry as it was before it was trashed."""
        return self.entry.copy()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrashedServiceEntry":
        entry = ServiceEntry.from_dict(data)
        deleted_at = entry.deleted_at
        entry.deleted_at = None
        return cls(entry, deleted_at)

    def to_dict(self) -> Dict[str, Any]:
        d = self.entry.to_dict()
        if self.deleted_at is not None:
            d["deletedAt"] = self.deleted_at
        return d

    def __repr__(self) -> str:
        return f"TrashedServiceEntry(id={self.id!r}, deleted_at={self.deleted_at!r})"


def trash_entry(entry: ServiceEntry, now: datetime) -> TrashedServiceEntry:
    """Move an active entry into the trashed state.

    An entry that already carries a deletedAt stamp keeps it.
    """
    trashed = entry.copy()
    deleted_at = trashed.deleted_at or format_timestamp(now)
    trashed.deleted_at = None
    return TrashedServiceEntry(trashed, deleted_at)
