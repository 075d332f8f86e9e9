"""
Configuration loading and startup security checks for the mentor portal.

Why: Two Appwrite projects (primary records, mentor mapping) are configured
independently via environment variables. This module reads them into frozen
dataclasses in one place and provides a single guard that refuses obviously
insecure production deployments without burdening local development.

Permissions: The caller needs no special privileges. The functions read
environment variables; the guard raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

from dataclasses import dataclass
import os

from backend.identity_access.appwrite import AppwriteConfig, DEFAULT_TIMEOUT_SECONDS
from backend.identity_access.mapping import PAGE_SIZE


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def current_environment() -> str:
    return (os.getenv("PORTAL_ENV", "dev") or "dev").lower()


def _int_env(name: str, default: int, *, low: int, high: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")
    if value < low or value > high:
        raise ValueError(f"{name} out of range ({low}..{high}), got: {value}")
    return value


@dataclass(frozen=True)
class StoreSettings:
    primary: AppwriteConfig
    mapping: AppwriteConfig
    student_collection: str
    faculty_collection: str
    mapping_collection: str
    mapping_page_size: int = PAGE_SIZE


def load_store_settings() -> StoreSettings:
    """
    Read both Appwrite projects from the environment.

    Behavior:
        - Mapping endpoint defaults to the primary endpoint (same Appwrite
          instance, different project).
        - `STORE_TIMEOUT_SECONDS` must be 1..60, `MAPPING_PAGE_SIZE` 1..500.
    """
    timeout = float(_int_env("STORE_TIMEOUT_SECONDS", int(DEFAULT_TIMEOUT_SECONDS), low=1, high=60))
    endpoint = (os.getenv("APPWRITE_ENDPOINT") or "http://localhost/v1").strip()
    primary = AppwriteConfig(
        endpoint=endpoint,
        project_id=(os.getenv("APPWRITE_PROJECT_ID") or "").strip(),
        api_key=(os.getenv("APPWRITE_API_KEY") or "").strip(),
        database_id=(os.getenv("APPWRITE_DATABASE_ID") or "").strip(),
        timeout_seconds=timeout,
    )
    mapping = AppwriteConfig(
        endpoint=(os.getenv("APPWRITE_MAPPING_ENDPOINT") or endpoint).strip(),
        project_id=(os.getenv("APPWRITE_MAPPING_PROJECT_ID") or "").strip(),
        api_key=(os.getenv("APPWRITE_MAPPING_API_KEY") or "").strip(),
        database_id=(os.getenv("APPWRITE_MAPPING_DATABASE_ID") or "").strip(),
        timeout_seconds=timeout,
    )
    return StoreSettings(
        primary=primary,
        mapping=mapping,
        student_collection=(os.getenv("APPWRITE_STUDENT_COLLECTION_ID") or "student").strip(),
        faculty_collection=(os.getenv("APPWRITE_FACULTY_COLLECTION_ID") or "faculty").strip(),
        mapping_collection=(os.getenv("APPWRITE_MAPPING_COLLECTION_ID") or "mapping").strip(),
        mapping_page_size=_int_env("MAPPING_PAGE_SIZE", PAGE_SIZE, low=1, high=500),
    )


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - Both API keys must be set and not placeholders.
    - Both endpoints must use https.
    - Project and database ids must be set for both projects.
    """
    if not _is_prod_like(current_environment()):
        return  # dev/test remain permissive

    for var in ("APPWRITE_API_KEY", "APPWRITE_MAPPING_API_KEY"):
        val = (os.getenv(var, "") or "").strip()
        if not val or val.upper().startswith("CHANGE_ME") or val.upper() == "DUMMY_DO_NOT_USE":
            raise SystemExit(f"Refusing to start: {var} is unset or a placeholder in production.")

    for var in ("APPWRITE_PROJECT_ID", "APPWRITE_DATABASE_ID", "APPWRITE_MAPPING_PROJECT_ID", "APPWRITE_MAPPING_DATABASE_ID"):
        if not (os.getenv(var, "") or "").strip():
            raise SystemExit(f"Refusing to start: {var} must be set in production.")

    def _must_be_https(url_value: str, var_name: str) -> None:
        if not url_value:
            return
        if not url_value.strip().lower().startswith("https://"):
            raise SystemExit(f"Refusing to start: {var_name} must use https in production.")

    _must_be_https(os.getenv("APPWRITE_ENDPOINT", ""), "APPWRITE_ENDPOINT")
    _must_be_https(os.getenv("APPWRITE_MAPPING_ENDPOINT", ""), "APPWRITE_MAPPING_ENDPOINT")
    if not (os.getenv("APPWRITE_ENDPOINT", "") or "").strip():
        raise SystemExit("Refusing to start: APPWRITE_ENDPOINT must be set in production.")
