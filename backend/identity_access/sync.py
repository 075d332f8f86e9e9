"""
Client-side session reconciliation.

Why:
    A client caches "I am logged in as X" independently of the server. The
    cached state goes stale when the session cookie expires or is replaced.
    `SessionSynchronizer.reconcile` compares three signals (cached flag,
    cached identity, cookie presence) and decides what the client must do.

Transitions:
    cached ∧ no cookie      → LOGOUT (no network call)
    cached ∧ cookie         → validate; failure → LOGOUT,
                              other email → REPLACE, same email → KEEP
    ¬cached ∧ cookie        → validate; success → RESTORE, failure → NONE
    ¬cached ∧ no cookie     → NONE

All validation failures, including transport errors, are treated as
unauthenticated (fail closed).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional
import asyncio
import logging

import httpx

from .domain import Identity, SessionFailure, ValidationResult
from .tokens import SESSION_COOKIE_NAME


logger = logging.getLogger("portal.identity_access.sync")

VALIDATE_SESSION_PATH = "/api/auth/validate-session"

Validate = Callable[[], Awaitable[ValidationResult]]


class SyncAction(str, Enum):
    NONE = "none"
    KEEP = "keep"
    LOGOUT = "logout"
    REPLACE = "replace"
    RESTORE = "restore"


@dataclass
class ClientAuthState:
    """Cached authentication state as held by a client."""

    authenticated: bool = False
    identity: Optional[Identity] = None

    def login(self, identity: Identity) -> None:
        self.authenticated = True
        self.identity = identity

    def logout(self) -> None:
        self.authenticated = False
        self.identity = None


class SessionSynchronizer:
    def __init__(self, validate: Validate) -> None:
        self._validate = validate
        self._lock = asyncio.Lock()

    async def reconcile(self, state: ClientAuthState, *, cookie_present: bool) -> SyncAction:
        """Bring `state` in line with the server and return the action taken.

        Runs are serialized; a second call waits for the first to finish.
        """
        async with self._lock:
            action = await self._decide(state, cookie_present)
        logger.debug("Session reconcile: %s", action.value)
        return action

    async def _decide(self, state: ClientAuthState, cookie_present: bool) -> SyncAction:
        if state.authenticated:
            if not cookie_present:
                state.logout()
                return SyncAction.LOGOUT
            result = await self._safe_validate()
            if not result.valid or result.identity is None:
                state.logout()
                return SyncAction.LOGOUT
            cached_email = state.identity.email if state.identity else None
            if result.identity.email != cached_email:
                state.login(result.identity)
                return SyncAction.REPLACE
            return SyncAction.KEEP

        if not cookie_present:
            return SyncAction.NONE
        result = await self._safe_validate()
        if result.valid and result.identity is not None:
            state.login(result.identity)
            return SyncAction.RESTORE
        return SyncAction.NONE

    async def _safe_validate(self) -> ValidationResult:
        try:
            return await self._validate()
        except httpx.HTTPError as exc:
            logger.info("Session validation transport failure: %s", exc.__class__.__name__)
            return ValidationResult.fail(SessionFailure.STORE_UNAVAILABLE)


class RemoteSessionValidator:
    """Calls the server's validate-session endpoint with the client's cookie.

    Usable as the `validate` callable of `SessionSynchronizer`.
    """

    def __init__(self, base_url: str, session: str, *, http: httpx.AsyncClient | None = None, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        self._http = http
        self.timeout = timeout

    async def __call__(self) -> ValidationResult:
        url = f"{self.base_url}{VALIDATE_SESSION_PATH}"
        headers = {"Accept": "application/json", "Cookie": f"{SESSION_COOKIE_NAME}={self.session}"}
        if self._http is not None:
            r = await self._http.get(url, headers=headers, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.get(url, headers=headers)
        return _parse_validation_response(r)


def _parse_validation_response(r: httpx.Response) -> ValidationResult:
    try:
        body = r.json()
    except ValueError:
        body = None
    if r.status_code == 200 and isinstance(body, dict) and body.get("valid") is True:
        user = body.get("user")
        if isinstance(user, dict):
            try:
                return ValidationResult.ok(Identity.from_dict(user))
            except ValueError:
                return ValidationResult.fail(SessionFailure.INVALID_SESSION_FORMAT)
    code = body.get("code") if isinstance(body, dict) else None
    try:
        failure = SessionFailure(code)
    except ValueError:
        failure = SessionFailure.NO_SESSION if r.status_code == 401 else SessionFailure.STORE_UNAVAILABLE
    return ValidationResult.fail(failure)


__all__ = [
    "VALIDATE_SESSION_PATH",
    "SyncAction",
    "ClientAuthState",
    "SessionSynchronizer",
    "RemoteSessionValidator",
]
