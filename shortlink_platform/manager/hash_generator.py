"""
Hash generation strategies for shortlink_platform.

Provided strategies:
- FudgeStrategy: random fudge bytes + url -> base32 (RFC 4648, no padding) -> lowercase -> truncate to L

Common helpers:
- _safe_len: Resolve/normalize desired hash length from argument/config (clamped to [4, 32])

Configuration (via shortlink_platform.config.settings):
- HASH_STRATEGY: "fudge" (default)
- HASH_LENGTH: Default hash length (default 8; clamped 4..32)
- FUDGE_LENGTH: Random bytes prepended to the URL before encoding (default 6, never less)

Notes:
- Hashes are non-deterministic on purpose: shortening the same URL twice yields two
  independent links, and two calls with the same URL must not reliably collide.
- Uniqueness is NOT the strategy's job. LinkManager checks the store after each
  attempt and the store's unique constraint is the final authority.
- base32 keeps the alphabet URL-safe and case-insensitive ([a-z2-7] once lowercased),
  which is what lets lookups normalize hashes to lowercase.

LLM Prompt Example:
    "Explain why mixing random entropy into a hashed URL and relying on a storage
    unique index is simpler than deterministic hashing with collision extension."
"""

import base64
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Type

from shortlink_platform.config import settings


def _safe_len(length: Optional[int]) -> int:
    """
    Resolve desired hash length from arg or config, clamped to [4, 32].
    """
    L = int(length) if length is not None else int(getattr(settings, "HASH_LENGTH", 8))
    return max(4, min(32, L))


class BaseStrategy(ABC):
    """Abstract base for hash generation strategies."""
    @abstractmethod
    def generate(self, url: str, *, length: Optional[int] = None) -> str:
        """
        Generate a short hash for the given URL.
        - length: desired truncated length
        """
        raise NotImplementedError

    def __call__(self, url: str) -> str:
        return self.generate(url)


@dataclass(frozen=True)
class FudgeStrategy(BaseStrategy):
    """
    Random fudge + URL -> base32 -> lowercase -> truncate.

    A fresh fudge of raw bytes is drawn from `secrets` on every call. base32 packs
    5 bits per output character, so the first L characters encode the first
    ceil(5L/8) bytes of the payload. The fudge always covers that prefix: every
    character of the hash is random (40 bits for the default length of 8) and
    the URL bytes never reach the truncated output. The fudge is stretched
    when a long hash is requested so the output always has enough characters,
    even for an empty URL.
    """
    fudge_length: int = 6
    length: Optional[int] = None

    def generate(self, url: str, *, length: Optional[int] = None) -> str:
        L = _safe_len(length if length is not None else self.length)
        # base32 emits 8 characters per 5 input bytes
        needed = -(-L * 5 // 8)
        fudge = secrets.token_bytes(max(6, self.fudge_length, needed))
        encoded = base64.b32encode(fudge + url.encode("utf-8")).decode("ascii")
        return encoded.rstrip("=").lower()[:L]


# Strategy registry and factory
STRATEGY_REGISTRY: Dict[str, Type[BaseStrategy]] = {
    "fudge": FudgeStrategy,
    "random": FudgeStrategy,
}


def get_strategy_from_config(name: Optional[str] = None) -> BaseStrategy:
    """
    Resolve the active strategy from parameter or settings.HASH_STRATEGY.
    Unknown names fall back to the fudge strategy.
    """
    key = (name or getattr(settings, "HASH_STRATEGY", "fudge") or "fudge").strip().lower()
    cls = STRATEGY_REGISTRY.get(key) or STRATEGY_REGISTRY["fudge"]
    return cls(
        fudge_length=int(getattr(settings, "FUDGE_LENGTH", 6)),
        length=int(getattr(settings, "HASH_LENGTH", 8)),
    )


def generate_hash(url: str, length: Optional[int] = None) -> str:
    """
    Facade used by scripts and callers that don't hold a strategy instance.
    Calls the strategy selected by settings.HASH_STRATEGY.
    """
    return get_strategy_from_config().generate(url, length=length)
