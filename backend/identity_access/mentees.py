"""
Mentee resolution: faculty id → assigned Student records.

Why:
    Assignments live in the mapping store, the people live in the primary
    store. Resolving a mentor's mentees means scanning one and hydrating from
    the other, with no integrity guarantee between them.

Behavior:
    1. Load the faculty record to learn its legacy `nameId` (optional).
    2. Scan mapping rows by `facultyId`; keep distinct student ids in
       first-seen order.
    3. Only when that scan returns zero rows, re-scan by `nameId`.
    4. Hydrate each student id one at a time; a missing or failing record is
       skipped, the rest is still returned.
    A failing scan (step 2/3) yields an empty result: a partially enumerated
    id list cannot be resumed, so it is never returned.
"""
from __future__ import annotations

from typing import List, Optional
import logging

from .directory import DirectoryProtocol
from .domain import Faculty, MenteeResolution, Student, StoreUnavailableError
from .mapping import FACULTY_KEY, STUDENT_KEY, MappingStoreProtocol


logger = logging.getLogger("portal.identity_access.mentees")


def _tail(value: str) -> str:
    return (value or "")[-6:]


class MenteeResolver:
    def __init__(self, mapping: MappingStoreProtocol, directory: DirectoryProtocol) -> None:
        self.mapping = mapping
        self.directory = directory

    async def resolve_mentees(self, faculty_id: str) -> List[Student]:
        """Return the hydrated mentees of `faculty_id` in discovery order."""
        return (await self.resolve(faculty_id)).students

    async def resolve(self, faculty_id: str) -> MenteeResolution:
        result = MenteeResolution()
        if not (faculty_id or "").strip():
            return result

        name_id = await self._fallback_key(faculty_id)
        try:
            rows, student_ids = await self._scan(faculty_id)
            if rows == 0 and name_id:
                _, student_ids = await self._scan(name_id)
                result.fallback_used = True
        except StoreUnavailableError as exc:
            logger.warning("Mapping scan failed for fid=%s (%s); returning no mentees", _tail(faculty_id), exc.code)
            return MenteeResolution()

        for sid in student_ids:
            student = await self._hydrate(sid)
            if student is None:
                result.skipped_ids.append(sid)
                continue
            result.students.append(student)

        if result.partial:
            logger.warning(
                "Partial mentee resolution for fid=%s: %d of %d skipped",
                _tail(faculty_id),
                len(result.skipped_ids),
                len(student_ids),
            )
        return result

    async def resolve_mentor(self, student_id: str) -> Optional[Faculty]:
        """Return the mentor assigned to `student_id`, or None.

        Uses the first mapping row for the student; store failures and dangling
        faculty ids both yield None.
        """
        if not (student_id or "").strip():
            return None
        try:
            entry = await self.mapping.first_by_key(STUDENT_KEY, student_id)
            if entry is None or not entry.faculty_id:
                return None
            return await self.directory.get_faculty(entry.faculty_id)
        except StoreUnavailableError as exc:
            logger.warning("Mentor lookup failed for sid=%s (%s)", _tail(student_id), exc.code)
            return None

    async def _fallback_key(self, faculty_id: str) -> Optional[str]:
        try:
            faculty = await self.directory.get_faculty(faculty_id)
        except StoreUnavailableError as exc:
            logger.info("Faculty lookup failed for fid=%s (%s); no fallback key", _tail(faculty_id), exc.code)
            return None
        if faculty is None:
            return None
        name_id = faculty.name_id
        # The fallback must differ from the primary key to be worth a second scan.
        if not name_id or name_id == faculty_id:
            return None
        return name_id

    async def _scan(self, key: str) -> tuple[int, List[str]]:
        """Return (row count, distinct student ids in first-seen order)."""
        entries = await self.mapping.list_by_key(FACULTY_KEY, key)
        seen: set[str] = set()
        ordered: List[str] = []
        for entry in entries:
            sid = entry.student_id
            if sid and sid not in seen:
                seen.add(sid)
                ordered.append(sid)
        return len(entries), ordered

    async def _hydrate(self, student_id: str) -> Optional[Student]:
        try:
            student = await self.directory.get_student(student_id)
        except StoreUnavailableError as exc:
            logger.warning("Skipping mentee sid=%s: %s", _tail(student_id), exc.code)
            return None
        if student is None:
            logger.info("Skipping mentee sid=%s: record not found", _tail(student_id))
        return student


__all__ = ["MenteeResolver"]
