from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List, Optional, Protocol

from datastore.errors import InvalidCursorError, StoreUnavailableError
from models.documents import DailyDocument
from models.records import DateRange, validate_day
from settings import get_settings


@dataclass(frozen=True)
class PaginationCursor:
    """Opaque reference to the last document of a fetched page."""

    day: str
    doc_id: str

    @classmethod
    def from_document(cls, document: DailyDocument) -> "PaginationCursor":
        return cls(day=document.day or "", doc_id=document.doc_id)

    def encode(self) -> str:
        raw = json.dumps({"day": self.day, "doc_id": self.doc_id}, separators=(",", ":"))
        return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")

    @classmethod
    def decode(cls, token: str) -> "PaginationCursor":
        try:
            raw = base64.urlsafe_b64decode(token.encode("ascii"))
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeError, binascii.Error, ValueError) as exc:
            raise InvalidCursorError(f"Cursor {token!r} could not be decoded.") from exc
        if not isinstance(payload, dict):
            raise InvalidCursorError(f"Cursor {token!r} has an unexpected shape.")
        day = payload.get("day")
        doc_id = payload.get("doc_id")
        if not isinstance(day, str) or not isinstance(doc_id, str) or not doc_id:
            raise InvalidCursorError(f"Cursor {token!r} is missing its document key.")
        # Documents without a day sort under the empty key.
        if day:
            try:
                validate_day(day)
            except ValueError as exc:
                raise InvalidCursorError(f"Cursor {token!r} carries an invalid day.") from exc
        return cls(day=day, doc_id=doc_id)

    def sort_key(self) -> tuple[str, str]:
        return (self.day, self.doc_id)


@dataclass(frozen=True)
class DocumentFilter:
    tag_id: Optional[str] = None
    date_range: Optional[DateRange] = None

    def matches(self, document: DailyDocument) -> bool:
        if self.tag_id is not None and document.tag_id != self.tag_id:
            return False
        if self.date_range is not None:
            if not document.day or not self.date_range.contains(document.day):
                return False
        return True


@dataclass
class DocumentPage:
    """One page of documents plus the cursor needed to request the next one.

    ``has_more`` is only a hint: a full page may be the last one, which the
    following (empty) fetch reveals.
    """

    documents: List[DailyDocument]
    next_cursor: Optional[PaginationCursor]
    has_more: bool


class DocumentStore(Protocol):
    """Query surface the reading pipeline needs from a document store."""

    def list_tag_ids(self) -> set[str]:
        ...

    def fetch_documents(
        self,
        document_filter: Optional[DocumentFilter] = None,
        cursor: Optional[PaginationCursor] = None,
        page_size: int = 5,
        descending: bool = True,
    ) -> DocumentPage:
        ...


def _sort_key(document: DailyDocument) -> tuple[str, str]:
    return (document.day or "", document.doc_id)


def validate_cursor(cursor: object) -> Optional[PaginationCursor]:
    if cursor is None:
        return None
    if not isinstance(cursor, PaginationCursor) or not cursor.doc_id:
        raise InvalidCursorError(f"Unsupported pagination cursor {cursor!r}.")
    return cursor


class MockDocumentStore:
    """In-memory daily document collection with optional JSON persistence."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._documents: Dict[str, DailyDocument] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_document(self, document: DailyDocument) -> None:
        self.put_documents([document])

    def put_documents(self, documents: Iterable[DailyDocument]) -> None:
        with self._lock:
            for document in documents:
                self._documents[document.doc_id] = document.model_copy(deep=True)
            self._persist()

    def get_document(self, doc_id: str) -> Optional[DailyDocument]:
        with self._lock:
            document = self._documents.get(doc_id)
            if document is None:
                return None
            return document.model_copy(deep=True)

    def scan(self) -> list[DailyDocument]:
        """Return deep copies of every stored document."""

        with self._lock:
            return [document.model_copy(deep=True) for document in self._documents.values()]

    def list_tag_ids(self) -> set[str]:
        # Full collection scan; acceptable for the collection sizes this store holds.
        with self._lock:
            return {document.tag_id for document in self._documents.values() if document.tag_id}

    def fetch_documents(
        self,
        document_filter: Optional[DocumentFilter] = None,
        cursor: Optional[PaginationCursor] = None,
        page_size: int = 5,
        descending: bool = True,
    ) -> DocumentPage:
        if page_size < 1:
            raise ValueError("Page size must be at least 1.")
        start_after = validate_cursor(cursor)
        criteria = document_filter or DocumentFilter()

        with self._lock:
            candidates = [doc for doc in self._documents.values() if criteria.matches(doc)]
        candidates.sort(key=_sort_key, reverse=descending)

        if start_after is not None:
            boundary = start_after.sort_key()
            if descending:
                candidates = [doc for doc in candidates if _sort_key(doc) < boundary]
            else:
                candidates = [doc for doc in candidates if _sort_key(doc) > boundary]

        page = [doc.model_copy(deep=True) for doc in candidates[:page_size]]
        next_cursor = PaginationCursor.from_document(page[-1]) if page else start_after
        return DocumentPage(
            documents=page,
            next_cursor=next_cursor,
            has_more=len(page) == page_size,
        )

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            doc_id: document.model_dump(mode="json")
            for doc_id, document in self._documents.items()
        }
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            raise StoreUnavailableError(
                f"Could not write collection {self.name!r} to {self.persistence_path}."
            ) from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for doc_id, payload in data.items():
            document = DailyDocument.model_validate(payload)
            self._documents[doc_id] = document


@lru_cache
def build_default_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> MockDocumentStore:
    settings = get_settings()
    collection = settings.collection_name if name is None else name
    store_path = settings.store_persistence_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return MockDocumentStore(name=collection, persistence_path=persistence)
