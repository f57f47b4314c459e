"""
Base storage interface for the Shortlink Platform.

Purpose:
    Define a small, stable contract that multiple storage backends
    (in-memory, PostgreSQL) can implement without requiring changes to
    business logic.

Contract highlights:
    - Lookups return None as the not-found signal; every other failure is
      raised as `StorageFailure`.
    - `insert` raises `DuplicateHashError` when the hash is taken. This is the
      authoritative uniqueness guard; the manager's pre-check is only optimistic.
    - `increment_visitors` must be atomic at the storage level. Callers never
      read the counter, add one and write it back.

Testing & Coverage:
    These are abstract methods and are not executed directly in tests.
    We annotate them with `# pragma: no cover` so coverage tools don't
    penalize the project for un-runnable abstract declarations.

LLM Prompt Example:
    "Show how a narrow, explicit storage interface enables dependency
    injection and easy backend swapping without touching service code."
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models import Link, NewLink

# Columns an explicit update may touch. Counters, identity and the URL are immutable.
UPDATABLE_FIELDS = frozenset({"expires_at", "title", "visible"})


class BaseStorage(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod  # pragma: no cover
    def insert(self, new_link: NewLink) -> Link:
        """
        Persist a new link and return it with store-assigned fields.

        Raises:
            DuplicateHashError: If another record already owns `new_link.hash`.
            StorageFailure: On any other persistence error.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def find_by_hash(self, hash_value: str) -> Optional[Link]:
        """
        Retrieve a link by its (already lowercased) hash, or None.

        LLM Prompt Example:
            "Discuss how to implement read-through caching for high QPS redirects."
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def find_by_id(self, link_id: int) -> Optional[Link]:
        """Retrieve a link by primary key, or None."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def increment_visitors(self, link_id: int) -> Optional[int]:
        """
        Atomically add one to the visitor counter.

        Returns:
            Optional[int]: The post-increment count, or None if the id does not exist.

        LLM Prompt Example:
            "Explain how to make increments atomic with a single SQL UPDATE."
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def update(self, link_id: int, fields: Dict[str, Any]) -> Optional[Link]:
        """
        Apply an explicit partial update limited to UPDATABLE_FIELDS.

        Returns:
            Optional[Link]: The updated link, or None if the id does not exist.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def delete(self, link_id: int) -> bool:
        """Hard-delete one link. Returns True if a record was removed."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def delete_all(self) -> int:
        """Remove every link. Returns the number of removed records."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def list_visible(self, offset: int, limit: int) -> List[Link]:
        """
        Return up to `limit` visible links after skipping `offset`,
        ordered by created_at DESC, id DESC.
        """
        raise NotImplementedError
