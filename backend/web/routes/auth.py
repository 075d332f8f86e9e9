"""
Authentication-related FastAPI routes (router-only module).

Why:
    Keep the session boundary in a dedicated router: clients call
    `/api/auth/validate-session` on mount and after auth-state changes to learn
    whether their cached identity is still backed by a live session.

Notes:
    - The session credential arrives only via the `session` cookie.
    - Every failure kind maps to its own status code so clients and logs can
      tell them apart; all of them mean "unauthenticated" to the caller.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
import logging

from backend.identity_access.domain import SessionFailure, ValidationResult

from ..auth_utils import SESSION_COOKIE_NAME, cookie_opts
from ..config import current_environment
from ..wiring import get_services


auth_router = APIRouter(tags=["Auth"])  # explicit paths, no prefix
logger = logging.getLogger("portal.web.auth")

FAILURE_STATUS = {
    SessionFailure.NO_SESSION: 401,
    SessionFailure.INVALID_SESSION_FORMAT: 400,
    SessionFailure.USER_NOT_FOUND: 404,
    SessionFailure.INVALID_PROVIDER_SESSION: 403,
    SessionFailure.STORE_UNAVAILABLE: 503,
}

FAILURE_MESSAGE = {
    SessionFailure.NO_SESSION: "No session found",
    SessionFailure.INVALID_SESSION_FORMAT: "Invalid session format",
    SessionFailure.USER_NOT_FOUND: "User not found in database",
    SessionFailure.INVALID_PROVIDER_SESSION: "Invalid session",
    SessionFailure.STORE_UNAVAILABLE: "Service unavailable",
}


def _private_no_store() -> dict:
    return {"Cache-Control": "private, no-store"}


def failure_response(error: SessionFailure) -> JSONResponse:
    return JSONResponse(
        {"error": FAILURE_MESSAGE[error], "code": error.value},
        status_code=FAILURE_STATUS[error],
        headers=_private_no_store(),
    )


async def validate_request_session(request: Request) -> ValidationResult:
    """Validate the session cookie of `request` (shared by protected routes)."""
    services = get_services(request)
    credential = request.cookies.get(SESSION_COOKIE_NAME)
    return await services.validator.validate(credential)


@auth_router.get("/api/auth/validate-session")
async def validate_session(request: Request):
    """Validate the `session` cookie and return the resolved identity.

    Responses:
        200 { valid: true, user: Identity }
        4xx/503 { error, code } — see FAILURE_STATUS
    """
    result = await validate_request_session(request)
    if not result.valid or result.identity is None:
        error = result.error or SessionFailure.NO_SESSION
        if error is not SessionFailure.NO_SESSION:
            logger.info("Session validation failed: %s", error.value)
        return failure_response(error)
    return JSONResponse({"valid": True, "user": result.identity.to_dict()}, headers=_private_no_store())


@auth_router.post("/api/auth/logout")
async def logout(request: Request):
    """End the provider session (native credentials only) and clear the cookie.

    Idempotent: succeeds without a session, with an already revoked one, and
    when services are not wired.
    """
    credential = request.cookies.get(SESSION_COOKIE_NAME)
    services = getattr(request.app.state, "services", None)
    if credential and services is not None:
        await services.validator.end_session(credential)
    response = Response(status_code=204, headers=_private_no_store())
    opts = cookie_opts(current_environment())
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
        secure=opts["secure"],
        httponly=opts["httponly"],
        samesite=opts["samesite"],
    )
    return response
