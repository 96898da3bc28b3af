"""Exceptions raised by the record stores and the linkage service."""

from __future__ import annotations


class RecordStoreError(Exception):
    """Base exception for record store failures (unavailable, bad filter...)."""

    pass


class RecordNotFoundError(RecordStoreError):
    """Raised when an update targets a record that does not exist."""

    pass


class StaleRecordError(RecordStoreError):
    """Raised when a conditional update's expected values no longer hold."""

    pass


class LinkageError(Exception):
    """Raised when linking a user or creating a player from signup fails.

    The underlying store error is chained as ``__cause__``. Writes that
    succeeded before the failure are not rolled back.
    """

    pass


class PlayerNotFoundError(LinkageError):
    """Raised when the chosen player record does not exist."""

    pass


class PlayerAlreadyLinkedError(LinkageError):
    """Raised when a guarded link targets a player claimed by another user."""

    pass
