"""
Mapping store client: paginated scans over student↔faculty assignment rows.

The mapping rows live in a separate Appwrite project with their own
credentials. Nothing links them to the primary store, so every id read from
here may or may not resolve there.

Pagination contract:
    - Equality filter on one key plus limit/offset.
    - A page shorter than the page size ends the enumeration; total counts
      reported by the backend are ignored.
    - Every call starts again at offset 0.
"""
from __future__ import annotations

from typing import AsyncIterator, List, Optional, Protocol

from .appwrite import DatabasesClient, query_equal, query_limit, query_offset
from .domain import MappingEntry


PAGE_SIZE = 100
FACULTY_KEY = "facultyId"
STUDENT_KEY = "studentId"
ALLOWED_KEYS = frozenset({FACULTY_KEY, STUDENT_KEY})


class MappingStoreProtocol(Protocol):
    async def list_by_key(self, store_key: str, value: str) -> List[MappingEntry]:
        ...

    async def first_by_key(self, store_key: str, value: str) -> Optional[MappingEntry]:
        ...


class MappingStore:
    """Reads assignment rows from the mapping collection."""

    def __init__(self, db: DatabasesClient, *, collection: str, page_size: int = PAGE_SIZE) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._db = db
        self.collection = collection
        self.page_size = page_size

    @staticmethod
    def _check_key(store_key: str) -> None:
        if store_key not in ALLOWED_KEYS:
            raise ValueError("invalid store key")

    async def iter_pages(self, store_key: str, value: str) -> AsyncIterator[List[MappingEntry]]:
        """Yield pages of rows whose `store_key` equals `value`, in store order.

        Each page is one round trip. StoreUnavailableError propagates and
        aborts the scan.
        """
        self._check_key(store_key)
        offset = 0
        while True:
            docs = await self._db.list_documents(
                self.collection,
                [query_equal(store_key, value), query_limit(self.page_size), query_offset(offset)],
            )
            yield [MappingEntry.from_document(d) for d in docs]
            if len(docs) < self.page_size:
                return
            offset += self.page_size

    async def iter_by_key(self, store_key: str, value: str) -> AsyncIterator[MappingEntry]:
        async for page in self.iter_pages(store_key, value):
            for entry in page:
                yield entry

    async def list_by_key(self, store_key: str, value: str) -> List[MappingEntry]:
        return [entry async for entry in self.iter_by_key(store_key, value)]

    async def first_by_key(self, store_key: str, value: str) -> Optional[MappingEntry]:
        """Return the first row for `value` using a single limit-1 query."""
        self._check_key(store_key)
        docs = await self._db.list_documents(self.collection, [query_equal(store_key, value), query_limit(1)])
        return MappingEntry.from_document(docs[0]) if docs else None


__all__ = ["MappingStore", "MappingStoreProtocol", "PAGE_SIZE", "FACULTY_KEY", "STUDENT_KEY"]
