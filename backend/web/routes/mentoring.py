"""
Mentoring API routes — mentees, mentor and the student directory.

Why:
    Faculty need their mentee list, students need to know their mentor, and
    both browse the student directory. Permission checks are plain user-type
    matches on the validated identity.

Failure policy:
    Unauthenticated requests get the same failure body as validate-session.
    Lookup failures degrade to empty results (`[]` / `null`), never to a
    distinct user-facing error.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
import logging

from backend.identity_access.directory import filter_students
from backend.identity_access.domain import (
    PRIVILEGED_TYPES,
    Identity,
    SessionFailure,
    StoreUnavailableError,
    UserType,
)

from ..wiring import get_services
from .auth import failure_response, validate_request_session


mentoring_router = APIRouter(tags=["Mentoring"])
logger = logging.getLogger("portal.web.mentoring")


def _private_no_store() -> dict:
    return {"Cache-Control": "private, no-store"}


def _forbidden() -> JSONResponse:
    return JSONResponse({"error": "forbidden"}, status_code=403, headers=_private_no_store())


async def _identity_or_failure(request: Request) -> Identity | JSONResponse:
    result = await validate_request_session(request)
    if not result.valid or result.identity is None:
        return failure_response(result.error or SessionFailure.NO_SESSION)
    return result.identity


@mentoring_router.get("/api/mentor/mentees")
async def list_mentees(request: Request, faculty_id: Optional[str] = None):
    """List the mentees of a faculty member.

    Permissions:
        - Faculty: always their own mentees; `faculty_id` must be omitted or
          equal their own document id.
        - Admin/SuperAdmin/Developer: `faculty_id` is required.
        - Student: forbidden.
    """
    ident = await _identity_or_failure(request)
    if isinstance(ident, JSONResponse):
        return ident
    if ident.type == UserType.FACULTY.value:
        own = ident.faculty_data.doc_id if ident.faculty_data else ""
        if faculty_id and faculty_id != own:
            return _forbidden()
        target = own
    elif ident.type in PRIVILEGED_TYPES:
        target = (faculty_id or "").strip()
        if not target:
            return JSONResponse(
                {"error": "bad_request", "detail": "faculty_id_required"}, status_code=400, headers=_private_no_store()
            )
    else:
        return _forbidden()
    students = await get_services(request).mentees.resolve_mentees(target)
    return JSONResponse([s.to_dict() for s in students], headers=_private_no_store())


@mentoring_router.get("/api/student/mentor")
async def get_my_mentor(request: Request):
    """Return the mentor assigned to the calling student, or null."""
    ident = await _identity_or_failure(request)
    if isinstance(ident, JSONResponse):
        return ident
    if ident.type != UserType.STUDENT.value or ident.student_data is None:
        return _forbidden()
    mentor = await get_services(request).mentees.resolve_mentor(ident.student_data.doc_id)
    return JSONResponse(mentor.to_dict() if mentor else None, headers=_private_no_store())


@mentoring_router.get("/api/students")
async def list_students(request: Request, q: str = ""):
    """Student directory with an optional free-text filter.

    Accessible to every authenticated user type. `q` matches name, roll
    number, email, department and school (case-insensitive).
    """
    ident = await _identity_or_failure(request)
    if isinstance(ident, JSONResponse):
        return ident
    try:
        students = await get_services(request).directory.list_students()
    except StoreUnavailableError as exc:
        logger.warning("Student directory unavailable: %s", exc.code)
        students = []
    return JSONResponse([s.to_dict() for s in filter_students(students, q)], headers=_private_no_store())
