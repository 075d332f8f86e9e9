"""
Directory adapter for Student/Faculty records (primary Appwrite project).

Why:
    Session validation and mentee resolution need to find people by email or
    by document id. This adapter wraps the few Appwrite Databases calls behind
    small async functions that return domain dataclasses (no raw documents
    leave this module).

Errors:
    - A record that does not exist yields None.
    - Transport/backend failures raise StoreUnavailableError; callers decide
      whether that is fatal.
"""
from __future__ import annotations

from typing import List, Optional, Protocol, Sequence
import re

from .appwrite import DatabasesClient, query_equal, query_limit, query_offset
from .domain import Faculty, Student


STUDENT_PAGE_SIZE = 100


class DirectoryProtocol(Protocol):
    async def find_faculty_by_email(self, email: str) -> Optional[Faculty]:
        ...

    async def find_student_by_email(self, email: str) -> Optional[Student]:
        ...

    async def get_faculty(self, doc_id: str) -> Optional[Faculty]:
        ...

    async def get_student(self, doc_id: str) -> Optional[Student]:
        ...


class RecordsDirectory:
    """Query facade over the Student and Faculty collections."""

    def __init__(self, db: DatabasesClient, *, student_collection: str, faculty_collection: str) -> None:
        self._db = db
        self.student_collection = student_collection
        self.faculty_collection = faculty_collection

    async def _first(self, collection: str, attribute: str, value: str) -> Optional[dict]:
        docs = await self._db.list_documents(collection, [query_equal(attribute, value), query_limit(1)])
        return docs[0] if docs else None

    async def find_faculty_by_email(self, email: str) -> Optional[Faculty]:
        if not (email or "").strip():
            return None
        doc = await self._first(self.faculty_collection, "email", email)
        return Faculty.from_document(doc) if doc else None

    async def find_student_by_email(self, email: str) -> Optional[Student]:
        if not (email or "").strip():
            return None
        doc = await self._first(self.student_collection, "email", email)
        return Student.from_document(doc) if doc else None

    async def get_faculty(self, doc_id: str) -> Optional[Faculty]:
        if not (doc_id or "").strip():
            return None
        doc = await self._db.get_document(self.faculty_collection, doc_id)
        return Faculty.from_document(doc) if doc else None

    async def get_student(self, doc_id: str) -> Optional[Student]:
        if not (doc_id or "").strip():
            return None
        doc = await self._db.get_document(self.student_collection, doc_id)
        return Student.from_document(doc) if doc else None

    async def list_students(self, *, page_size: int = STUDENT_PAGE_SIZE) -> List[Student]:
        """Return every student, paging until a short page is returned."""
        page_size = max(1, int(page_size))
        out: List[Student] = []
        offset = 0
        while True:
            docs = await self._db.list_documents(
                self.student_collection, [query_limit(page_size), query_offset(offset)]
            )
            out.extend(Student.from_document(d) for d in docs)
            if len(docs) < page_size:
                return out
            offset += page_size


def filter_students(students: Sequence[Student], term: str) -> List[Student]:
    """Case-insensitive substring filter over the directory-visible fields.

    An empty or whitespace-only term returns all students unchanged.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return list(students)
    out: List[Student] = []
    for s in students:
        haystack = (s.name, s.roll_no, s.email, s.department, s.school)
        if any(needle in (field or "").lower() for field in haystack):
            out.append(s)
    return out


_splitter = re.compile(r"[^A-Za-z0-9]+")


def humanize_identifier(s: str) -> str:
    """Turn an email/username into a human display name.

    Rules:
    - For emails, use the part before '@'.
    - Split on non-alphanumeric separators (._- etc.).
    - Title-case each token and join with a single space.
    """
    if not s:
        return ""
    s = str(s)
    if "@" in s:
        s = s.split("@", 1)[0]
    parts = [p for p in _splitter.split(s) if p]
    if not parts:
        return ""
    return " ".join(p[:1].upper() + p[1:].lower() for p in parts)


__all__ = ["DirectoryProtocol", "RecordsDirectory", "filter_students", "humanize_identifier", "STUDENT_PAGE_SIZE"]
