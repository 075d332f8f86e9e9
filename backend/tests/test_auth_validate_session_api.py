"""
Validate-session endpoint — status codes, body shape and cache headers.

Requirements:
- 200 { valid: true, user } for a live session
- Each failure kind has its own status and `code`
- All responses are private, no-store
- Without wired services the endpoint fails closed with 503
- Logout revokes native provider sessions and always clears the cookie
"""
from __future__ import annotations

import httpx
import pytest
from httpx import ASGITransport

from backend.identity_access.appwrite import AccountClient, AppwriteConfig
from backend.identity_access.domain import IdentitySummary, ProviderUser
from backend.identity_access.mentees import MenteeResolver
from backend.identity_access.sessions import SessionValidator
from backend.identity_access.tokens import encode_session
from backend.web.main import create_app
from backend.web.wiring import PortalServices
from utils.fakes import FakeDirectory, FakeMapping, FakeProvider, make_faculty, make_student


pytestmark = pytest.mark.anyio("asyncio")


def _app(directory: FakeDirectory, provider: FakeProvider | None = None):
    app = create_app()
    app.state.services = PortalServices(
        validator=SessionValidator(directory, provider or FakeProvider()),
        mentees=MenteeResolver(FakeMapping(), directory),
        directory=directory,  # type: ignore[arg-type]
    )
    return app


async def _get(app, cookie: str | None = None) -> httpx.Response:
    headers = {"Cookie": f"session={cookie}"} if cookie is not None else {}
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.get("/api/auth/validate-session", headers=headers)


async def test_self_issued_faculty_session_returns_identity():
    fac = make_faculty(is_hod=True)
    cred = encode_session(IdentitySummary(user_id="u1", name="Asha Rao", email=fac.email, type="Faculty", is_hod=True))

    r = await _get(_app(FakeDirectory(faculty=[fac])), cred)

    assert r.status_code == 200
    assert r.headers.get("Cache-Control") == "private, no-store"
    body = r.json()
    assert body["valid"] is True
    assert body["user"]["type"] == "Faculty"
    assert body["user"]["isHOD"] is True
    assert body["user"]["facultyData"]["docId"] == "fac-1"
    assert body["user"]["studentData"] is None


async def test_native_session_student_returns_identity():
    stu = make_student("s001")
    provider = FakeProvider({"native-1": ProviderUser(user_id="u9", name="S", email=stu.email)})
    r = await _get(_app(FakeDirectory(students=[stu]), provider), "native-1")
    assert r.status_code == 200
    assert r.json()["user"]["studentData"]["rollNo"] == "22BCP001"


@pytest.mark.parametrize(
    "cookie,status,code",
    [
        (None, 401, "no_session"),
        ("custom_!!notbase64", 400, "invalid_session_format"),
        ("unknown-native", 403, "invalid_provider_session"),
    ],
)
async def test_failure_status_and_code(cookie, status, code):
    r = await _get(_app(FakeDirectory()), cookie)
    assert r.status_code == status
    assert r.json()["code"] == code
    assert r.headers.get("Cache-Control") == "private, no-store"


async def test_missing_record_is_404():
    cred = encode_session(IdentitySummary(user_id="u1", name="Gone", email="gone@example.edu", type="Student"))
    r = await _get(_app(FakeDirectory()), cred)
    assert r.status_code == 404
    assert r.json() == {"error": "User not found in database", "code": "user_not_found"}


async def test_store_outage_is_503():
    directory = FakeDirectory(faculty=[make_faculty()])
    directory.unavailable = True
    cred = encode_session(IdentitySummary(user_id="u1", name="A", email="asha.rao@example.edu", type="Faculty"))
    r = await _get(_app(directory), cred)
    assert r.status_code == 503
    assert r.json()["code"] == "store_unavailable"


async def test_unwired_services_fail_closed():
    app = create_app()
    r = await _get(app, "anything")
    assert r.status_code == 503
    assert r.json()["code"] == "store_unavailable"


async def test_logout_clears_cookie_and_is_idempotent():
    app = _app(FakeDirectory())
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        r = await client.post("/api/auth/logout")
    assert r.status_code == 204
    set_cookie = r.headers.get("set-cookie", "")
    assert set_cookie.startswith("session=")
    assert "httponly" in set_cookie.lower()
    assert "samesite=strict" in set_cookie.lower()


async def _logout_against_appwrite(cookie: str, status: int = 204) -> tuple[httpx.Response, list[tuple[str, str, str | None]]]:
    calls: list[tuple[str, str, str | None]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path, request.headers.get("X-Appwrite-Session")))
        return httpx.Response(status)

    cfg = AppwriteConfig(endpoint="https://aw.example.edu/v1", project_id="p", api_key="k", database_id="db")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        directory = FakeDirectory()
        app = create_app()
        app.state.services = PortalServices(
            validator=SessionValidator(directory, AccountClient(cfg, http)),
            mentees=MenteeResolver(FakeMapping(), directory),
            directory=directory,  # type: ignore[arg-type]
        )
        async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            r = await client.post("/api/auth/logout", headers={"Cookie": f"session={cookie}"})
    return r, calls


async def test_logout_revokes_native_session_at_provider():
    r, calls = await _logout_against_appwrite("native-secret")
    assert r.status_code == 204
    assert calls == [("DELETE", "/v1/account/sessions/current", "native-secret")]
    assert r.headers.get("set-cookie", "").startswith("session=")


async def test_logout_leaves_self_issued_credentials_local():
    cred = encode_session(IdentitySummary(user_id="u1", name="A", email="a@example.edu", type="Admin"))
    r, calls = await _logout_against_appwrite(cred)
    assert r.status_code == 204
    assert calls == []


async def test_logout_with_already_revoked_session_still_clears_cookie():
    r, calls = await _logout_against_appwrite("stale-secret", status=401)
    assert r.status_code == 204
    assert [c[0] for c in calls] == ["DELETE"]
    assert r.headers.get("set-cookie", "").startswith("session=")


async def test_health_and_security_headers():
    async with httpx.AsyncClient(transport=ASGITransport(app=create_app()), base_url="http://test") as client:
        r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy"}
    assert r.headers.get("X-Content-Type-Options") == "nosniff"
    assert r.headers.get("X-Frame-Options") == "DENY"
