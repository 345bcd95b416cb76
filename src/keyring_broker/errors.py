"""Exception taxonomy for the keyring broker.

Validation errors are raised before any state is touched. ``StorageError``
is raised after an in-memory mutation has already happened, so callers
should treat it as "mutation may not be durable yet".
"""

from __future__ import annotations


class KeyringError(Exception):
    """Base class for every error the broker reports to a caller."""


class NotFoundError(KeyringError, LookupError):
    """Unknown account or request id."""


class DuplicateAddressError(KeyringError, ValueError):
    """An account with the same address already exists."""


class InvalidDataError(KeyringError, ValueError):
    """An approval payload or RPC argument has the wrong shape."""


class UnsupportedMethodError(KeyringError, ValueError):
    """The method is not in the dispatch table."""


class PermissionDeniedError(KeyringError, PermissionError):
    """The calling origin is not allowed to invoke the operation."""


class StorageError(KeyringError):
    """The keyring state could not be written to (or read from) storage."""
