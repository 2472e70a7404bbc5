"""Errors raised by the catalog, the ledger and the loan workflow.

Every error carries a message meant to be shown to the user as-is; the
adapters (HTTP API, CLI) catch ``LibraryError`` and report it without
touching session state.
"""


class LibraryError(Exception):
    """Base class for rejected library operations."""


class ValidationError(LibraryError):
    """A required field is missing or empty, or a field cannot be set."""


class NotFoundError(LibraryError):
    """A referenced book or borrow record does not exist."""


class ConflictError(LibraryError):
    """The operation would break a circulation invariant."""
