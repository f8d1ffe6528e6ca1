"""Failures surfaced by the document store layer."""

from __future__ import annotations


class DocumentStoreError(Exception):
    """Base class for errors reported by a document store."""


class StoreUnavailableError(DocumentStoreError):
    """The store could not be reached or failed to answer a query."""


class InvalidCursorError(DocumentStoreError, ValueError):
    """A pagination cursor was malformed or did not come from this store."""
