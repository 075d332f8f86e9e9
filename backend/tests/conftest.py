"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend, make the repository root
importable, and keep environment toggles from leaking between tests.
"""
import os
import sys
from pathlib import Path

import pytest


# Ensure `backend.*` is importable when the project is not installed.
REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = REPO_ROOT / "backend" / "tests"
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_portal_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure a dev environment and no store configuration per test.

    Why:
        Config guard tests opt into prod semantics and set API keys. Leaking
        those into unrelated tests would make results order-dependent.
    """
    for var in (
        "PORTAL_ENV",
        "APPWRITE_ENDPOINT",
        "APPWRITE_PROJECT_ID",
        "APPWRITE_API_KEY",
        "APPWRITE_DATABASE_ID",
        "APPWRITE_STUDENT_COLLECTION_ID",
        "APPWRITE_FACULTY_COLLECTION_ID",
        "APPWRITE_MAPPING_ENDPOINT",
        "APPWRITE_MAPPING_PROJECT_ID",
        "APPWRITE_MAPPING_API_KEY",
        "APPWRITE_MAPPING_DATABASE_ID",
        "APPWRITE_MAPPING_COLLECTION_ID",
        "STORE_TIMEOUT_SECONDS",
        "MAPPING_PAGE_SIZE",
    ):
        monkeypatch.delenv(var, raising=False)
    os.environ.setdefault("PORTAL_ENABLE_DOTENV", "false")
    yield
