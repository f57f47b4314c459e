"""
LinkManager module for the Shortlink Platform.

Responsibilities:
    - Create links with generated or custom (alias) hashes
    - Validate URLs, titles, aliases and expiry, reporting every violation at once
    - Guarantee hash uniqueness with a bounded generate-and-check loop
    - Resolve hashes (expiry aware) and count visits atomically
    - Explicit updates, deletion and paginated listing

Design notes:
    - Generated hashes are random (fudge + URL, see hash_generator), so the same URL
      shortened twice yields two independent links. There is no dedupe by long URL.
    - Custom hashes act as vanity codes: no regeneration, an existing owner is an error.
    - The pre-insert lookup is optimistic. The store's unique constraint is the
      authority; a violation without a custom hash just costs one retry attempt.
    - Visit counting is delegated to a single atomic store operation.
    - Authorization is not this module's concern; callers are already authorized.

LLM Prompt Example:
    "Explain how an optimistic existence check combined with a unique index and a
    bounded retry loop guarantees short-hash uniqueness under concurrent creates."
"""

import logging
import re
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional
from urllib.parse import urlparse

from ..config import settings
from ..errors import (
    AliasTaken,
    DuplicateHashError,
    HashExhausted,
    NotFound,
    StorageFailure,
    ValidationFailed,
)
from ..models import Link, NewLink, utcnow
from ..storage.base import UPDATABLE_FIELDS, BaseStorage
from .hash_generator import get_strategy_from_config
from .paginator import Page, Paginator

log = logging.getLogger(__name__)

AliasPattern = re.compile(r"^[a-z0-9_-]{1,32}$")
MAX_TITLE_LENGTH = 255

# Single-segment paths served by main.py before the catch-all redirect route
RESERVED_HASHES = frozenset({"api", "docs", "health", "redoc"})

HashStrategy = Callable[[str], str]  # (url) -> hash


def normalize_url(url: str) -> str:
    """Strip trailing slashes; 'https://example.com/' -> 'https://example.com'."""
    return (url or "").rstrip("/")


def expiry_after(seconds: int) -> Optional[datetime]:
    """Absolute expiry `seconds` from now, or None when it overflows datetime."""
    try:
        return utcnow() + timedelta(seconds=seconds)
    except OverflowError:
        return None


class LinkManager:
    """
    Coordinates creation, resolution and mutation rules for links.

    LLM Prompt Example:
        "Show how DI of a storage backend and a hash strategy keeps the link
        lifecycle testable without a database or real randomness."
    """

    def __init__(
        self,
        storage: BaseStorage,
        hash_strategy: Optional[HashStrategy] = None,
        max_attempts: Optional[int] = None,
        paginator: Optional[Paginator] = None,
    ):
        """
        Initialize LinkManager with a storage backend.

        Args:
            storage (BaseStorage): Backend storage instance.
            hash_strategy (Optional[HashStrategy]): Callable (url) -> hash; resolved
                from settings.HASH_STRATEGY when omitted.
            max_attempts (Optional[int]): Generated-hash retry budget
                (settings.MAX_HASH_ATTEMPTS by default).
            paginator (Optional[Paginator]): Listing helper; built on `storage` when omitted.
        """
        self.storage = storage
        self.hash_strategy = hash_strategy or get_strategy_from_config()
        self.max_attempts = max_attempts or settings.MAX_HASH_ATTEMPTS
        self.paginator = paginator or Paginator(storage)

    # ---------------------------------------------------------------------
    # Validation Helpers
    # ---------------------------------------------------------------------
    @staticmethod
    def _is_valid_url(url: str) -> bool:
        """http/https scheme and a network location; no whitespace."""
        if any(ch.isspace() for ch in url):
            return False
        try:
            parsed = urlparse(url)
        except ValueError:
            return False
        return parsed.scheme in {"http", "https"} and bool(parsed.netloc)

    def _validate(
        self,
        url: str,
        title: Optional[str] = None,
        custom_hash: Optional[str] = None,
        expires_in: Optional[int] = None,
    ) -> None:
        """
        Collect every violation for a candidate link.

        Raises:
            ValidationFailed: With all violations joined by ", ".
        """
        errors: List[str] = []
        if not url:
            errors.append("URL cannot be empty")
        elif not self._is_valid_url(url):
            errors.append("Invalid URL")
        if title is not None and len(title) > MAX_TITLE_LENGTH:
            errors.append(f"Title cannot be longer than {MAX_TITLE_LENGTH} characters")
        if custom_hash is not None and not AliasPattern.match(custom_hash):
            errors.append("Custom hash must be 1-32 characters of a-z, 0-9, '-' or '_'")
        elif custom_hash in RESERVED_HASHES:
            errors.append(f"Custom hash '{custom_hash}' is reserved")
        if expires_in is not None:
            if expires_in < 0:
                errors.append("Expiration cannot be negative")
            elif expiry_after(expires_in) is None:
                errors.append("Expiration is too far in the future")
        if errors:
            raise ValidationFailed(errors)

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def create_link(
        self,
        url: str,
        visible: bool = True,
        custom_hash: Optional[str] = None,
        title: Optional[str] = None,
        expires_in: Optional[int] = None,
    ) -> Link:
        """
        Create a link for a URL, optionally under a custom hash.

        Rules:
            - Trailing slashes are trimmed from the URL.
            - If custom_hash provided: it is lowercased; if another link owns it -> AliasTaken,
              else it is used as-is (no regeneration).
            - Otherwise generate hashes until one is free, at most `max_attempts` times.
            - Validation failures are aggregated; nothing is persisted on failure.

        Args:
            url (str): Long URL to shorten.
            visible (bool): Whether the link shows up in public listings.
            custom_hash (Optional[str]): Vanity hash requested by the caller.
            title (Optional[str]): Up to 255 characters.
            expires_in (Optional[int]): Seconds from now until the link expires.

        Returns:
            Link: The persisted link (visitors = 0).

        Raises:
            ValidationFailed, AliasTaken, HashExhausted, StorageFailure
        """
        url = normalize_url(url)
        expires_at = None
        if expires_in is not None and expires_in >= 0:
            expires_at = expiry_after(expires_in)

        # 1) Alias-first handling
        if custom_hash is not None:
            alias = custom_hash.strip().lower()
            if self.storage.find_by_hash(alias) is not None:
                raise AliasTaken(alias)
            self._validate(url, title, alias, expires_in)
            try:
                link = self.storage.insert(NewLink(url, alias, visible, expires_at, title))
            except DuplicateHashError:
                # Lost the race to a concurrent create of the same alias
                raise AliasTaken(alias) from None
            log.info("Created link id=%s hash=%s (custom)", link.id, link.hash)
            return link

        # 2) Generated hash: optimistic check, store constraint is the authority
        self._validate(url, title, None, expires_in)
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.hash_strategy(url).lower()
            if candidate in RESERVED_HASHES or self.storage.find_by_hash(candidate) is not None:
                log.debug("Hash collision on %s (attempt %d)", candidate, attempt)
                continue
            try:
                link = self.storage.insert(NewLink(url, candidate, visible, expires_at, title))
            except DuplicateHashError:
                log.debug("Hash %s taken between check and insert (attempt %d)", candidate, attempt)
                continue
            log.info("Created link id=%s hash=%s", link.id, link.hash)
            return link

        log.error("Hash generation exhausted after %d attempts", self.max_attempts)
        raise HashExhausted(self.max_attempts)

    def resolve(self, hash_value: str) -> Link:
        """
        Resolve a hash to its link and count the visit.

        Returns:
            Link: The link carrying the post-increment visitor count.

        Raises:
            NotFound: Unknown hash, or the link has expired (the record is kept).
        """
        link = self.storage.find_by_hash((hash_value or "").lower())
        if link is None or link.expired():
            raise NotFound(hash_value)

        try:
            visitors = self.storage.increment_visitors(link.id)
        except StorageFailure:
            # The redirect is still honored when counting fails
            log.warning("Could not count visit for link id=%s", link.id, exc_info=True)
            return link
        if visitors is None:
            # Deleted between lookup and increment
            raise NotFound(hash_value)
        return replace(link, visitors=visitors)

    def get_link(self, link_id: int) -> Link:
        link = self.storage.find_by_id(link_id)
        if link is None:
            raise NotFound(link_id)
        return link

    def update_link(self, link_id: int, **fields: Any) -> Link:
        """
        Explicit partial update of expires_at, title and/or visible.

        Raises:
            ValidationFailed: Unknown/immutable fields, an over-long title, or an
                expiry that is not a timezone-aware datetime.
            NotFound: No link with this id.
        """
        errors: List[str] = []
        unknown = sorted(set(fields) - UPDATABLE_FIELDS)
        if unknown:
            errors.append(f"Fields cannot be updated: {', '.join(unknown)}")
        title = fields.get("title")
        if title is not None and len(title) > MAX_TITLE_LENGTH:
            errors.append(f"Title cannot be longer than {MAX_TITLE_LENGTH} characters")
        expires_at = fields.get("expires_at")
        if expires_at is not None:
            if not isinstance(expires_at, datetime):
                errors.append("Expiration must be a timestamp")
            elif expires_at.tzinfo is None or expires_at.utcoffset() is None:
                errors.append("Expiration must be timezone-aware")
        if errors:
            raise ValidationFailed(errors)

        link = self.storage.update(link_id, fields)
        if link is None:
            raise NotFound(link_id)
        return link

    def delete_link(self, link_id: int) -> None:
        if not self.storage.delete(link_id):
            raise NotFound(link_id)
        log.info("Deleted link id=%s", link_id)

    def delete_all(self) -> int:
        """Administrative wipe, meant for fixture resets. No safety checks."""
        removed = self.storage.delete_all()
        log.warning("Deleted all links (%d removed)", removed)
        return removed

    def list_links(self, page: int = 1, per_page: Optional[int] = None) -> Page:
        return self.paginator.paginate(page, per_page)
