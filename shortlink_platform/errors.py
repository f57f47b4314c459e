"""
Error taxonomy for the link lifecycle.

Client-correctable errors (`ValidationFailed`, `AliasTaken`) also derive from
`ValueError`, and `NotFound` from `LookupError`, so callers that only care about
the broad category can keep catching the builtin types.

Server-side errors (`HashExhausted`, `StorageFailure`) carry a message meant for
logs; the HTTP layer replaces it with an opaque detail.
"""

from typing import Iterable, List

__all__ = [
    "LinkError",
    "ValidationFailed",
    "AliasTaken",
    "HashExhausted",
    "NotFound",
    "StorageFailure",
    "DuplicateHashError",
]


class LinkError(Exception):
    """Base class for every error raised by the link core."""


class ValidationFailed(LinkError, ValueError):
    """
    One or more field violations on a candidate link.

    Attributes:
        errors (List[str]): Individual violations, in the order they were found.
    """

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__(", ".join(self.errors))


class AliasTaken(LinkError, ValueError):
    """A custom hash was requested that another link already owns."""

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__(f"Custom hash '{alias}' is already taken")


class HashExhausted(LinkError):
    """The generated-hash retry budget ran out without finding a free hash."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"No unused hash found after {attempts} attempts")


class NotFound(LinkError, LookupError):
    """Unknown id or hash, or a hash whose link has expired."""


class StorageFailure(LinkError):
    """Underlying persistence error not otherwise classified."""


class DuplicateHashError(StorageFailure):
    """The store's uniqueness constraint on `hash` rejected an insert."""

    def __init__(self, hash_value: str):
        self.hash = hash_value
        super().__init__(f"Hash '{hash_value}' already exists")
