"""
Unit tests for LinkManager.

Covers:
    - URL normalization and validation (aggregated messages)
    - Custom hash handling (lowercasing, conflicts, format)
    - Collision retry on generated hashes and the exhaustion error
    - Store-level uniqueness races (check passes, insert loses)
    - Resolution: visit counting, case-insensitivity, expiry, increment failures
    - Explicit updates, deletion and bulk deletion

LLM Prompt Example:
    "Show how to unit test a URL shortener lifecycle that validates input,
    reserves aliases, retries hash collisions, and counts visits atomically."
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from shortlink_platform.errors import (
    AliasTaken,
    DuplicateHashError,
    HashExhausted,
    NotFound,
    StorageFailure,
    ValidationFailed,
)
from shortlink_platform.manager.link_manager import LinkManager, normalize_url
from shortlink_platform.models import NewLink, utcnow


# -------------------------
# Creation & validation
# -------------------------

@pytest.mark.parametrize(
    "raw,expected",
    [
        ("https://example.com/", "https://example.com"),
        ("https://example.com/path///", "https://example.com/path"),
        ("https://example.com/path?q=1", "https://example.com/path?q=1"),
        ("http://example.com", "http://example.com"),
    ],
)
def test_create_then_resolve_returns_normalized_url(manager, raw, expected):
    link = manager.create_link(raw)
    assert link.url == expected
    assert len(link.hash) == 8
    assert link.visitors == 0
    assert manager.resolve(link.hash).url == expected


def test_normalize_url_handles_none():
    assert normalize_url(None) == ""


@pytest.mark.parametrize(
    "url,message",
    [
        ("", "URL cannot be empty"),
        ("/", "URL cannot be empty"),
        ("invalid url", "Invalid URL"),
        ("not-a-url", "Invalid URL"),
        ("ftp://bad.example.com", "Invalid URL"),
        ("https:///missing-host", "Invalid URL"),
        ("javascript:alert(1)", "Invalid URL"),
    ],
)
def test_invalid_urls_fail_and_persist_nothing(manager, storage, url, message):
    with pytest.raises(ValidationFailed) as ei:
        manager.create_link(url)
    assert str(ei.value) == message
    assert storage.links == {}


def test_validation_aggregates_all_violations(manager, storage):
    with pytest.raises(ValidationFailed) as ei:
        manager.create_link("", title="t" * 256, expires_in=-1)
    assert ei.value.errors == [
        "URL cannot be empty",
        "Title cannot be longer than 255 characters",
        "Expiration cannot be negative",
    ]
    assert str(ei.value) == (
        "URL cannot be empty, Title cannot be longer than 255 characters, Expiration cannot be negative"
    )
    assert storage.links == {}


def test_title_at_limit_is_accepted(manager):
    link = manager.create_link("https://example.com", title="t" * 255)
    assert len(link.title) == 255


def test_validation_failed_is_a_value_error(manager):
    with pytest.raises(ValueError):
        manager.create_link("")


def test_expires_in_sets_future_expiry(manager):
    before = utcnow()
    link = manager.create_link("https://example.com", expires_in=60)
    assert before + timedelta(seconds=59) < link.expires_at <= utcnow() + timedelta(seconds=60)
    assert not link.expired()


def test_visibility_and_title_are_stored(manager):
    link = manager.create_link("https://example.com", visible=False, title="Hidden")
    stored = manager.get_link(link.id)
    assert stored.visible is False
    assert stored.title == "Hidden"


def test_same_url_twice_gets_two_links(manager):
    a = manager.create_link("https://example.com")
    b = manager.create_link("https://example.com")
    assert a.id != b.id
    assert a.hash != b.hash


# -------------------------
# Custom hashes
# -------------------------

def test_custom_hash_used_verbatim(manager):
    link = manager.create_link("https://example.com", custom_hash="promo1")
    assert link.hash == "promo1"
    assert manager.resolve("promo1").url == "https://example.com"


def test_custom_hash_is_lowercased(manager):
    link = manager.create_link("https://example.com", custom_hash="Promo-2024")
    assert link.hash == "promo-2024"
    assert manager.resolve("PROMO-2024").id == link.id


def test_custom_hash_conflict_raises_and_keeps_existing(manager):
    first = manager.create_link("https://one.com", custom_hash="promo1", title="first")
    with pytest.raises(AliasTaken):
        manager.create_link("https://two.com", custom_hash="promo1")
    assert manager.get_link(first.id) == first


def test_custom_hash_conflict_wins_over_validation(manager):
    manager.create_link("https://one.com", custom_hash="promo1")
    with pytest.raises(AliasTaken):
        manager.create_link("", custom_hash="promo1")


@pytest.mark.parametrize("alias", ["has space", "bad!", "a" * 33, ""])
def test_custom_hash_format(manager, alias):
    with pytest.raises(ValidationFailed, match="Custom hash must be"):
        manager.create_link("https://example.com", custom_hash=alias)


def test_custom_hash_race_maps_to_alias_taken(manager, monkeypatch):
    manager.storage.insert(NewLink(url="https://first.com", hash="promo1"))
    # The optimistic check misses the concurrent insert
    monkeypatch.setattr(manager.storage, "find_by_hash", lambda _h: None)
    with pytest.raises(AliasTaken):
        manager.create_link("https://second.com", custom_hash="promo1")


# -------------------------
# Collision handling
# -------------------------

def test_collision_retries_until_free(scripted_manager):
    mgr = scripted_manager(["aaaaaaaa", "aaaaaaaa", "aaaaaaaa", "bbbbbbbb"])
    first = mgr.create_link("https://one.com")
    second = mgr.create_link("https://two.com")
    assert first.hash == "aaaaaaaa"
    assert second.hash == "bbbbbbbb"
    assert mgr.hash_strategy.calls == 4


def test_generated_hash_is_lowercased(scripted_manager):
    mgr = scripted_manager(["ABCDEFGH"])
    assert mgr.create_link("https://one.com").hash == "abcdefgh"


def test_collision_budget_exhausted(scripted_manager, storage):
    mgr = scripted_manager(["aaaaaaaa"], max_attempts=5)
    mgr.create_link("https://one.com")
    with pytest.raises(HashExhausted) as ei:
        mgr.create_link("https://two.com")
    assert ei.value.attempts == 5
    assert mgr.hash_strategy.calls == 6
    assert len(storage.links) == 1


def test_uniqueness_race_on_insert_is_retried(scripted_manager, storage, monkeypatch):
    """
    The pre-insert lookup passes but the store's unique index rejects the insert;
    the manager must treat it as a collision and try the next hash.
    """
    storage.insert(NewLink(url="https://winner.com", hash="aaaaaaaa"))
    mgr = scripted_manager(["aaaaaaaa", "cccccccc"])
    monkeypatch.setattr(storage, "find_by_hash", lambda _h: None)
    link = mgr.create_link("https://loser.com")
    assert link.hash == "cccccccc"


def test_other_storage_failures_propagate(manager):
    with patch.object(manager.storage, "insert", side_effect=StorageFailure("disk full")):
        with pytest.raises(StorageFailure):
            manager.create_link("https://example.com")


def test_default_attempt_budget_from_settings(storage):
    from shortlink_platform.config import settings
    assert LinkManager(storage).max_attempts == settings.MAX_HASH_ATTEMPTS


# -------------------------
# Resolution
# -------------------------

def test_resolve_counts_each_visit(manager):
    link = manager.create_link("https://example.com/")
    assert manager.resolve(link.hash).visitors == 1
    assert manager.resolve(link.hash).visitors == 2
    assert manager.get_link(link.id).visitors == 2


def test_resolve_is_case_insensitive(manager):
    link = manager.create_link("https://example.com")
    assert manager.resolve(link.hash.upper()).id == link.id


def test_resolve_unknown_hash(manager):
    with pytest.raises(NotFound):
        manager.resolve("nope1234")


def test_resolve_expired_link_is_not_found_but_kept(manager):
    link = manager.create_link("https://example.com")
    manager.update_link(link.id, expires_at=utcnow() - timedelta(seconds=100))
    with pytest.raises(NotFound):
        manager.resolve(link.hash)
    kept = manager.get_link(link.id)
    assert kept.visitors == 0  # expired hits are not counted


def test_resolve_future_expiry_succeeds(manager):
    link = manager.create_link("https://example.com", expires_in=1000)
    assert manager.resolve(link.hash).visitors == 1


def test_resolve_created_already_expired(manager):
    link = manager.create_link("https://example.com", expires_in=0)
    manager.update_link(link.id, expires_at=utcnow() - timedelta(microseconds=1))
    with pytest.raises(NotFound):
        manager.resolve(link.hash)


def test_increment_failure_still_resolves(manager):
    link = manager.create_link("https://example.com")
    with patch.object(manager.storage, "increment_visitors", side_effect=StorageFailure("timeout")):
        resolved = manager.resolve(link.hash)
    assert resolved.url == "https://example.com"
    assert resolved.visitors == 0


def test_link_deleted_between_lookup_and_increment(manager):
    link = manager.create_link("https://example.com")
    with patch.object(manager.storage, "increment_visitors", return_value=None):
        with pytest.raises(NotFound):
            manager.resolve(link.hash)


def test_lookup_failure_propagates(manager):
    with patch.object(manager.storage, "find_by_hash", side_effect=StorageFailure("down")):
        with pytest.raises(StorageFailure):
            manager.resolve("whatever")


# -------------------------
# Updates & deletion
# -------------------------

def test_update_link_fields(manager):
    link = manager.create_link("https://example.com")
    updated = manager.update_link(link.id, title="New", visible=False)
    assert updated.title == "New"
    assert updated.visible is False
    assert updated.hash == link.hash


def test_update_link_rejects_immutable_and_bad_values(manager):
    link = manager.create_link("https://example.com")
    with pytest.raises(ValidationFailed) as ei:
        manager.update_link(link.id, visitors=0, url="https://x.com", title="t" * 300, expires_at="tomorrow")
    assert ei.value.errors == [
        "Fields cannot be updated: url, visitors",
        "Title cannot be longer than 255 characters",
        "Expiration must be a timestamp",
    ]


def test_update_missing_link(manager):
    with pytest.raises(NotFound):
        manager.update_link(123, title="x")


def test_delete_link(manager):
    link = manager.create_link("https://example.com")
    manager.delete_link(link.id)
    with pytest.raises(NotFound):
        manager.get_link(link.id)
    with pytest.raises(NotFound):
        manager.resolve(link.hash)


def test_delete_missing_link(manager):
    with pytest.raises(NotFound):
        manager.delete_link(999)


def test_delete_all(manager, storage):
    for i in range(3):
        manager.create_link(f"https://example.com/{i}")
    assert manager.delete_all() == 3
    assert storage.links == {}


# -------------------------
# Store-level invariants seen through the manager
# -------------------------

def test_insert_duplicate_is_authoritative(storage):
    storage.insert(NewLink(url="https://a.com", hash="dupdupdu"))
    with pytest.raises(DuplicateHashError):
        storage.insert(NewLink(url="https://b.com", hash="dupdupdu"))


# -------------------------
# Reserved hashes and expiry bounds
# -------------------------

@pytest.mark.parametrize("alias", ["health", "docs", "redoc", "api", "Health"])
def test_custom_hash_cannot_shadow_app_routes(manager, storage, alias):
    with pytest.raises(ValidationFailed) as ei:
        manager.create_link("https://example.com", custom_hash=alias)
    assert ei.value.errors == [f"Custom hash '{alias.lower()}' is reserved"]
    assert storage.links == {}


def test_generated_reserved_hash_is_skipped(scripted_manager):
    mgr = scripted_manager(["docs", "abcd2345"])
    assert mgr.create_link("https://example.com").hash == "abcd2345"
    assert mgr.hash_strategy.calls == 2


def test_expires_in_beyond_datetime_range(manager, storage):
    with pytest.raises(ValidationFailed) as ei:
        manager.create_link("", expires_in=10**12)
    assert ei.value.errors == ["URL cannot be empty", "Expiration is too far in the future"]
    with pytest.raises(ValidationFailed, match="too far in the future"):
        manager.create_link("https://example.com", expires_in=10**20)
    assert storage.links == {}


def test_update_rejects_naive_expiry(manager):
    link = manager.create_link("https://example.com")
    with pytest.raises(ValidationFailed) as ei:
        manager.update_link(link.id, expires_at=datetime.now() - timedelta(seconds=5))
    assert ei.value.errors == ["Expiration must be timezone-aware"]
    assert manager.get_link(link.id).expires_at is None
    assert manager.resolve(link.hash).visitors == 1


def test_update_accepts_non_utc_aware_expiry(manager):
    link = manager.create_link("https://example.com")
    plus_two = timezone(timedelta(hours=2))
    manager.update_link(link.id, expires_at=datetime.now(plus_two) - timedelta(seconds=5))
    with pytest.raises(NotFound):
        manager.resolve(link.hash)
