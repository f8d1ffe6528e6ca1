"""Sequential, cursor-driven traversal of the daily document collection."""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from datastore.document_store import (
    DocumentFilter,
    DocumentPage,
    DocumentStore,
    PaginationCursor,
)
from models.documents import DailyDocument

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 5


class CursorWalker:
    """Fetch pages one at a time; page N+1 is requested only once page N's cursor is known."""

    def __init__(self, store: DocumentStore, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        if page_size < 1:
            raise ValueError("Page size must be at least 1.")
        self.store = store
        self.page_size = page_size

    def fetch_page(
        self,
        document_filter: Optional[DocumentFilter] = None,
        cursor: Optional[PaginationCursor] = None,
        page_size: Optional[int] = None,
        descending: bool = True,
    ) -> DocumentPage:
        size = self.page_size if page_size is None else page_size
        return self.store.fetch_documents(
            document_filter=document_filter,
            cursor=cursor,
            page_size=size,
            descending=descending,
        )

    def iter_pages(
        self,
        document_filter: Optional[DocumentFilter] = None,
        cursor: Optional[PaginationCursor] = None,
        descending: bool = True,
    ) -> Iterator[DocumentPage]:
        """Lazily yield pages until a short page signals the end.

        The generator is finite and cannot be restarted; start a new one from
        a fresh cursor instead.
        """
        page_number = 0
        while True:
            page = self.fetch_page(document_filter, cursor, descending=descending)
            page_number += 1
            logger.debug(
                "Fetched document page",
                extra={"page_number": page_number, "document_count": len(page.documents)},
            )
            if page.documents:
                yield page
            if not page.has_more:
                return
            cursor = page.next_cursor

    def iter_documents(
        self,
        document_filter: Optional[DocumentFilter] = None,
        cursor: Optional[PaginationCursor] = None,
        descending: bool = True,
    ) -> Iterator[DailyDocument]:
        for page in self.iter_pages(document_filter, cursor, descending=descending):
            yield from page.documents
