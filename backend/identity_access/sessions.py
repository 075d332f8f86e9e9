"""
Session validation: raw credential → typed Identity.

Why:
    Two kinds of credentials reach the server in the same `session` cookie:
    self-issued envelopes (see `tokens.py`) and native provider sessions. This
    module turns either into an `Identity`, or into a typed failure, without
    the web layer having to know the difference.

Behavior:
    - Self-issued: the envelope names the user; the record named by its type
      must still exist in the primary store. Privileged types carry no record.
    - Native: the provider resolves the account; the role is then derived by
      ordered existence checks, Faculty before Student before Admin. An email
      present in both collections is therefore always Faculty.
    - Never raises: store outages become STORE_UNAVAILABLE (fail closed).
"""
from __future__ import annotations

from typing import Optional, Protocol, Union
import logging

from .directory import DirectoryProtocol, humanize_identifier
from .domain import (
    Faculty,
    Identity,
    IdentitySummary,
    ProviderSessionError,
    ProviderUser,
    SessionFailure,
    Student,
    StoreUnavailableError,
    UserType,
    ValidationResult,
)
from .tokens import InvalidFormat, decode_session, is_self_issued


logger = logging.getLogger("portal.identity_access.sessions")


class IdentityProviderProtocol(Protocol):
    async def get_current_user(self, session: str) -> ProviderUser:
        ...

    async def delete_current_session(self, session: str) -> None:
        ...


class SessionValidator:
    def __init__(self, directory: DirectoryProtocol, provider: IdentityProviderProtocol) -> None:
        self.directory = directory
        self.provider = provider

    async def validate(self, credential: Optional[str]) -> ValidationResult:
        if not credential:
            return ValidationResult.fail(SessionFailure.NO_SESSION)
        try:
            if is_self_issued(credential):
                return await self._validate_self_issued(credential)
            return await self._validate_native(credential)
        except StoreUnavailableError as exc:
            logger.warning("Session validation aborted: store unavailable (%s)", exc.code)
            return ValidationResult.fail(SessionFailure.STORE_UNAVAILABLE)

    async def end_session(self, credential: Optional[str]) -> bool:
        """Revoke a native session at the provider; True when it confirmed.

        Self-issued envelopes have no provider session and are left alone.
        Provider failures are logged and reported as False so logout stays
        idempotent.
        """
        if not credential or is_self_issued(credential):
            return False
        try:
            await self.provider.delete_current_session(credential)
        except ProviderSessionError as exc:
            logger.info("Provider session not revoked: %s", exc.code)
            return False
        return True

    async def _validate_self_issued(self, credential: str) -> ValidationResult:
        decoded = decode_session(credential)
        if isinstance(decoded, InvalidFormat):
            logger.info("Rejected self-issued session: %s", decoded.reason)
            return ValidationResult.fail(SessionFailure.INVALID_SESSION_FORMAT)
        summary: IdentitySummary = decoded
        record: Union[Faculty, Student, None] = None
        if summary.type == UserType.STUDENT.value:
            record = await self.directory.find_student_by_email(summary.email)
        elif summary.type == UserType.FACULTY.value:
            record = await self.directory.find_faculty_by_email(summary.email)
        else:
            # Admin/SuperAdmin/Developer: no record store exists for these types.
            return ValidationResult.ok(_build_identity(summary.user_id, summary.name, summary.email, summary.type,
                                                      summary.is_hod, summary.labels, None))
        if record is None:
            logger.info("Self-issued session names a missing %s record (uid=%s)", summary.type, summary.user_id[-6:])
            return ValidationResult.fail(SessionFailure.USER_NOT_FOUND)
        return ValidationResult.ok(
            _build_identity(summary.user_id, summary.name, summary.email, summary.type,
                            summary.is_hod, summary.labels, record)
        )

    async def _validate_native(self, credential: str) -> ValidationResult:
        try:
            user = await self.provider.get_current_user(credential)
        except ProviderSessionError as exc:
            logger.info("Native session rejected: %s", exc.code)
            return ValidationResult.fail(SessionFailure.INVALID_PROVIDER_SESSION)
        user_type, record = await self.classify(user.email)
        is_hod = bool(getattr(record, "is_hod", False)) if record is not None else False
        name = user.name or humanize_identifier(user.email)
        return ValidationResult.ok(
            _build_identity(user.user_id, name, user.email, user_type, is_hod, user.labels, record)
        )

    async def classify(self, email: str) -> tuple[str, Union[Faculty, Student, None]]:
        """Derive the user type for `email`: Faculty, then Student, else Admin."""
        faculty = await self.directory.find_faculty_by_email(email)
        if faculty is not None:
            return UserType.FACULTY.value, faculty
        student = await self.directory.find_student_by_email(email)
        if student is not None:
            return UserType.STUDENT.value, student
        return UserType.ADMIN.value, None


def _build_identity(
    user_id: str,
    name: str,
    email: str,
    user_type: str,
    is_hod: bool,
    labels: tuple[str, ...],
    record: Union[Faculty, Student, None],
) -> Identity:
    return Identity(
        user_id=user_id,
        name=name,
        email=email,
        type=user_type,
        is_hod=bool(is_hod),
        labels=tuple(labels),
        faculty_data=record if isinstance(record, Faculty) else None,
        student_data=record if isinstance(record, Student) else None,
    )


__all__ = ["SessionValidator", "IdentityProviderProtocol"]
