"""
Identity domain types, user types and the failure taxonomy.

Why:
- Centralize the allowed user types so the codec, the validator and the web
  layer cannot drift apart.
- Keep record shapes explicit: the stores return loosely typed documents, the
  rest of the code only ever sees these dataclasses.

Security:
- Documents in the primary store carry password hashes and push tokens. The
  `from_document` constructors deliberately map an allow-list of fields only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional


class UserType(str, Enum):
    """User types known to the portal."""

    ADMIN = "Admin"
    FACULTY = "Faculty"
    STUDENT = "Student"
    SUPER_ADMIN = "SuperAdmin"
    DEVELOPER = "Developer"


# Immutable to prevent accidental mutation.
USER_TYPES = frozenset(t.value for t in UserType)
# Types with no record collection in the primary store.
PRIVILEGED_TYPES = frozenset({UserType.ADMIN.value, UserType.SUPER_ADMIN.value, UserType.DEVELOPER.value})


class SessionFailure(str, Enum):
    """Why a session credential did not yield an identity."""

    NO_SESSION = "no_session"
    INVALID_SESSION_FORMAT = "invalid_session_format"
    USER_NOT_FOUND = "user_not_found"
    INVALID_PROVIDER_SESSION = "invalid_provider_session"
    STORE_UNAVAILABLE = "store_unavailable"


class StoreUnavailableError(Exception):
    """Raised when a store round trip fails (network, 5xx, unexpected payload)."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


class ProviderSessionError(Exception):
    """Raised when the identity provider rejects a native session."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


def _str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _opt_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def normalize_labels(raw: Any) -> tuple[str, ...]:
    """Return labels as an ordered, de-duplicated tuple of strings."""
    if raw is None or isinstance(raw, (str, bytes)):
        return ()
    if not isinstance(raw, Iterable):
        return ()
    seen: list[str] = []
    for item in raw:
        if isinstance(item, str) and item and item not in seen:
            seen.append(item)
    return tuple(seen)


@dataclass(frozen=True)
class Faculty:
    doc_id: str
    faculty_id: str
    name_id: Optional[str]
    name: str
    email: str
    designation: str = ""
    school: str = ""
    department: str = ""
    specialization: Optional[str] = None
    seating: Optional[str] = None
    free_time_slots: tuple[str, ...] = ()
    phone_number: Optional[str] = None
    image_id: Optional[str] = None
    is_hod: bool = False

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Faculty":
        slots = doc.get("freeTimeSlots") or []
        return cls(
            doc_id=_str(doc.get("$id")),
            faculty_id=_str(doc.get("facultyId")),
            name_id=_opt_str(doc.get("nameId")),
            name=_str(doc.get("name")),
            email=_str(doc.get("email")),
            designation=_str(doc.get("designation")),
            school=_str(doc.get("school")),
            department=_str(doc.get("department")),
            specialization=_opt_str(doc.get("specialization")),
            seating=_opt_str(doc.get("seating")),
            free_time_slots=tuple(str(s) for s in slots if s) if isinstance(slots, list) else (),
            phone_number=_opt_str(doc.get("phoneNumber")),
            image_id=_opt_str(doc.get("imageId")),
            is_hod=bool(doc.get("isHOD") or False),
        )

    def to_dict(self) -> dict:
        return {
            "docId": self.doc_id,
            "facultyId": self.faculty_id,
            "nameId": self.name_id,
            "name": self.name,
            "email": self.email,
            "designation": self.designation,
            "school": self.school,
            "department": self.department,
            "specialization": self.specialization,
            "seating": self.seating,
            "freeTimeSlots": list(self.free_time_slots),
            "phoneNumber": self.phone_number,
            "imageId": self.image_id,
            "isHOD": self.is_hod,
        }


@dataclass(frozen=True)
class Student:
    doc_id: str
    student_id: str
    name: str
    email: str
    roll_no: str = ""
    school: str = ""
    department: str = ""
    mentor_id: Optional[str] = None
    image_id: Optional[str] = None
    phone_number: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Student":
        return cls(
            doc_id=_str(doc.get("$id")),
            student_id=_str(doc.get("studentId")),
            name=_str(doc.get("name")),
            email=_str(doc.get("email")),
            roll_no=_str(doc.get("rollNo")),
            school=_str(doc.get("school")),
            department=_str(doc.get("department")),
            mentor_id=_opt_str(doc.get("mentorId")),
            image_id=_opt_str(doc.get("imageId")),
            phone_number=_opt_str(doc.get("phoneNumber")),
        )

    def to_dict(self) -> dict:
        return {
            "docId": self.doc_id,
            "studentId": self.student_id,
            "name": self.name,
            "email": self.email,
            "rollNo": self.roll_no,
            "school": self.school,
            "department": self.department,
            "mentorId": self.mentor_id,
            "imageId": self.image_id,
            "phoneNumber": self.phone_number,
        }


@dataclass(frozen=True)
class MappingEntry:
    student_id: str
    faculty_id: str

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "MappingEntry":
        return cls(student_id=_str(doc.get("studentId")), faculty_id=_str(doc.get("facultyId")))


@dataclass(frozen=True)
class IdentitySummary:
    """Payload of a self-issued session envelope."""

    user_id: str
    name: str
    email: str
    type: str
    is_hod: bool = False
    labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProviderUser:
    """Account as reported by the identity provider for a native session."""

    user_id: str
    name: str
    email: str
    labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class Identity:
    user_id: str
    name: str
    email: str
    type: str
    is_hod: bool = False
    labels: tuple[str, ...] = ()
    faculty_data: Optional[Faculty] = None
    student_data: Optional[Student] = None

    def __post_init__(self) -> None:
        if self.type not in USER_TYPES:
            raise ValueError("invalid_user_type")
        if self.faculty_data is not None and self.type != UserType.FACULTY.value:
            raise ValueError("faculty_data_requires_faculty_type")
        if self.student_data is not None and self.type != UserType.STUDENT.value:
            raise ValueError("student_data_requires_student_type")

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "name": self.name,
            "email": self.email,
            "type": self.type,
            "isHOD": self.is_hod,
            "labels": list(self.labels),
            "facultyData": self.faculty_data.to_dict() if self.faculty_data else None,
            "studentData": self.student_data.to_dict() if self.student_data else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Identity":
        """Rebuild an identity from its JSON shape (see `to_dict`)."""
        fac = data.get("facultyData")
        stu = data.get("studentData")
        return cls(
            user_id=_str(data.get("userId")),
            name=_str(data.get("name")),
            email=_str(data.get("email")),
            type=_str(data.get("type")),
            is_hod=bool(data.get("isHOD") or False),
            labels=normalize_labels(data.get("labels")),
            faculty_data=_faculty_from_dict(fac) if isinstance(fac, Mapping) else None,
            student_data=_student_from_dict(stu) if isinstance(stu, Mapping) else None,
        )


def _faculty_from_dict(d: Mapping[str, Any]) -> Faculty:
    doc = dict(d)
    doc["$id"] = d.get("docId")
    return Faculty.from_document(doc)


def _student_from_dict(d: Mapping[str, Any]) -> Student:
    doc = dict(d)
    doc["$id"] = d.get("docId")
    return Student.from_document(doc)


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    identity: Optional[Identity] = None
    error: Optional[SessionFailure] = None

    @classmethod
    def ok(cls, identity: Identity) -> "ValidationResult":
        return cls(valid=True, identity=identity)

    @classmethod
    def fail(cls, error: SessionFailure) -> "ValidationResult":
        return cls(valid=False, error=error)


@dataclass
class MenteeResolution:
    """Outcome of a mentee lookup including what had to be skipped."""

    students: list[Student] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)
    fallback_used: bool = False

    @property
    def partial(self) -> bool:
        return bool(self.skipped_ids)

    @property
    def student_ids(self) -> list[str]:
        return [s.doc_id for s in self.students]


__all__ = [
    "UserType",
    "USER_TYPES",
    "PRIVILEGED_TYPES",
    "SessionFailure",
    "StoreUnavailableError",
    "ProviderSessionError",
    "normalize_labels",
    "Faculty",
    "Student",
    "MappingEntry",
    "IdentitySummary",
    "ProviderUser",
    "Identity",
    "ValidationResult",
    "MenteeResolution",
]
