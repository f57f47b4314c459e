"""
Storage module for the Shortlink Platform (in-memory implementation).

Responsibilities:
    - Save links and assign ids / creation timestamps
    - Enforce hash uniqueness with a secondary index
    - Atomic visitor counting
    - Ordered listing of visible links

Design:
    - This is an in-memory reference implementation that satisfies the BaseStorage contract.
    - A single lock guards every read and write, so uniqueness and increments hold
      when FastAPI serves requests from its threadpool.
    - Records are stored as plain dicts and handed out as frozen `Link` values.
    - For production, switch to the PostgreSQL backend via the storage factory.

LLM Prompt Example:
    "Explain how this in-memory storage can be swapped for a database-backed layer
     without changing the manager or API code, by adhering to a narrow BaseStorage interface."
"""

import itertools
import threading
from typing import Any, Dict, List, Optional

from ..errors import DuplicateHashError
from ..models import Link, NewLink, utcnow
from .base import UPDATABLE_FIELDS, BaseStorage


class Storage(BaseStorage):
    def __init__(self):
        """
        Initialize empty storage.

        Internal schema:
            self.links = {
                id: {
                    "id": int, "url": str, "hash": str, "visible": bool,
                    "visitors": int, "created_at": datetime,
                    "expires_at": Optional[datetime], "title": Optional[str],
                }
            }
            self._by_hash = { hash: id }   # unique index
        """
        self.links: Dict[int, Dict[str, Any]] = {}
        self._by_hash: Dict[str, int] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def insert(self, new_link: NewLink) -> Link:
        """
        Insert a link, rejecting a hash that is already indexed.

        Raises:
            DuplicateHashError: If the hash is taken (mirrors a UNIQUE violation).
        """
        with self._lock:
            if new_link.hash in self._by_hash:
                raise DuplicateHashError(new_link.hash)
            link_id = next(self._ids)
            row = {
                "id": link_id,
                "url": new_link.url,
                "hash": new_link.hash,
                "visible": new_link.visible,
                "visitors": 0,
                "created_at": utcnow(),
                "expires_at": new_link.expires_at,
                "title": new_link.title,
            }
            self.links[link_id] = row
            self._by_hash[new_link.hash] = link_id
            return Link.from_row(row)

    def find_by_hash(self, hash_value: str) -> Optional[Link]:
        with self._lock:
            link_id = self._by_hash.get(hash_value)
            if link_id is None:
                return None
            return Link.from_row(self.links[link_id])

    def find_by_id(self, link_id: int) -> Optional[Link]:
        with self._lock:
            row = self.links.get(link_id)
            return Link.from_row(row) if row else None

    def increment_visitors(self, link_id: int) -> Optional[int]:
        """
        Increment the visitor counter under the store lock.

        Returns:
            Optional[int]: New count, or None if the link is gone.
        """
        with self._lock:
            row = self.links.get(link_id)
            if row is None:
                return None
            row["visitors"] += 1
            return row["visitors"]

    def update(self, link_id: int, fields: Dict[str, Any]) -> Optional[Link]:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")
        with self._lock:
            row = self.links.get(link_id)
            if row is None:
                return None
            row.update(fields)
            return Link.from_row(row)

    def delete(self, link_id: int) -> bool:
        with self._lock:
            row = self.links.pop(link_id, None)
            if row is None:
                return False
            self._by_hash.pop(row["hash"], None)
            return True

    def delete_all(self) -> int:
        with self._lock:
            removed = len(self.links)
            self.links.clear()
            self._by_hash.clear()
            return removed

    def list_visible(self, offset: int, limit: int) -> List[Link]:
        """
        Visible links, newest first; ids break created_at ties so the order is total.
        """
        with self._lock:
            rows = [row for row in self.links.values() if row["visible"]]
            rows.sort(key=lambda r: (r["created_at"], r["id"]), reverse=True)
            return [Link.from_row(r) for r in rows[offset:offset + limit]]
