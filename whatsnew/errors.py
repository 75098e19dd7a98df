"""
Exception hierarchy for snapshot loading, tree building and diffing.

Everything raised here is fatal: a snapshot that triggers one of these is
corrupt or self-inconsistent, and there is no safe partial result.
"""
from __future__ import annotations


class WhatsNewError(Exception):
    """Base class for all errors raised by this package."""


class InvalidVersionFormat(WhatsNewError, ValueError):
    """A release identifier does not match the supported version shapes."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Unsupported version value: {value!r}")
        self.value = value


class DuplicateEntity(WhatsNewError):
    """A module, package, class or member was added twice under one parent."""


class MissingParent(WhatsNewError):
    """An ``add_*`` call referenced a module, package or class that does not exist."""


class MalformedSnapshot(WhatsNewError):
    """A persisted snapshot document is missing required keys or has bad values."""


class ConflictingEntity(WhatsNewError):
    """Two findings for the same report entry disagree on its structural identity."""
