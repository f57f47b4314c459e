"""
Link value types shared by the manager and every storage backend.

`Link` is what the store hands back; it is frozen so callers cannot mutate a
record behind the store's back. Updates go through `LinkManager.update_link`.
`NewLink` is the insert payload: the store assigns `id`, `visitors` and
`created_at`.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

__all__ = ["Link", "NewLink", "utcnow"]


def utcnow() -> datetime:
    """Timezone-aware current UTC time; every timestamp in the core uses this."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NewLink:
    url: str
    hash: str
    visible: bool = True
    expires_at: Optional[datetime] = None
    title: Optional[str] = None


@dataclass(frozen=True)
class Link:
    id: int
    url: str
    hash: str
    visible: bool
    visitors: int
    created_at: datetime
    expires_at: Optional[datetime] = None
    title: Optional[str] = None

    def expired(self, now: Optional[datetime] = None) -> bool:
        """True when `expires_at` is set and already in the past."""
        if self.expires_at is None:
            return False
        return self.expires_at < (now or utcnow())

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Link":
        """Build a Link from a dict row (psycopg `dict_row` or the in-memory store)."""
        return cls(
            id=int(row["id"]),
            url=row["url"],
            hash=row["hash"],
            visible=bool(row["visible"]),
            visitors=int(row["visitors"] or 0),
            created_at=row["created_at"],
            expires_at=row.get("expires_at"),
            title=row.get("title"),
        )
