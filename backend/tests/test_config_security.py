"""
Security config guard tests.

Validates that production/staging environments fail fast when Appwrite
credentials are unset or placeholders, or endpoints are plain http, while
development starts with no store configuration at all.
"""
from __future__ import annotations

import importlib

import pytest


def _prod_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORTAL_ENV", "prod")
    monkeypatch.setenv("APPWRITE_ENDPOINT", "https://aw.example.edu/v1")
    monkeypatch.setenv("APPWRITE_PROJECT_ID", "records")
    monkeypatch.setenv("APPWRITE_API_KEY", "REAL_NON_DUMMY")
    monkeypatch.setenv("APPWRITE_DATABASE_ID", "db")
    monkeypatch.setenv("APPWRITE_MAPPING_PROJECT_ID", "mapping")
    monkeypatch.setenv("APPWRITE_MAPPING_API_KEY", "REAL_NON_DUMMY_2")
    monkeypatch.setenv("APPWRITE_MAPPING_DATABASE_ID", "mapdb")


def _cfg():
    from backend.web import config as cfg  # type: ignore

    return importlib.reload(cfg)


def test_prod_with_complete_config_starts(monkeypatch: pytest.MonkeyPatch):
    _prod_env(monkeypatch)
    _cfg().ensure_secure_config_on_startup()


@pytest.mark.parametrize("var", ["APPWRITE_API_KEY", "APPWRITE_MAPPING_API_KEY"])
@pytest.mark.parametrize("value", ["", "CHANGE_ME_later", "DUMMY_DO_NOT_USE"])
def test_prod_refuses_missing_or_placeholder_keys(monkeypatch: pytest.MonkeyPatch, var: str, value: str):
    _prod_env(monkeypatch)
    monkeypatch.setenv(var, value)
    with pytest.raises(SystemExit):
        _cfg().ensure_secure_config_on_startup()


def test_prod_refuses_http_endpoint(monkeypatch: pytest.MonkeyPatch):
    _prod_env(monkeypatch)
    monkeypatch.setenv("APPWRITE_MAPPING_ENDPOINT", "http://aw.internal/v1")
    with pytest.raises(SystemExit):
        _cfg().ensure_secure_config_on_startup()


def test_prod_requires_mapping_project(monkeypatch: pytest.MonkeyPatch):
    _prod_env(monkeypatch)
    monkeypatch.delenv("APPWRITE_MAPPING_PROJECT_ID")
    with pytest.raises(SystemExit):
        _cfg().ensure_secure_config_on_startup()


def test_dev_is_permissive(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PORTAL_ENV", "dev")
    monkeypatch.setenv("APPWRITE_API_KEY", "DUMMY_DO_NOT_USE")
    _cfg().ensure_secure_config_on_startup()


def test_store_settings_defaults(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("APPWRITE_ENDPOINT", "https://aw.example.edu/v1")
    settings = _cfg().load_store_settings()
    assert settings.mapping.endpoint == "https://aw.example.edu/v1"
    assert settings.student_collection == "student"
    assert settings.faculty_collection == "faculty"
    assert settings.mapping_collection == "mapping"
    assert settings.mapping_page_size == 100
    assert settings.primary.timeout_seconds == 10.0


@pytest.mark.parametrize("var,value", [("MAPPING_PAGE_SIZE", "0"), ("MAPPING_PAGE_SIZE", "abc"), ("STORE_TIMEOUT_SECONDS", "61")])
def test_store_settings_reject_out_of_range(monkeypatch: pytest.MonkeyPatch, var: str, value: str):
    monkeypatch.setenv(var, value)
    with pytest.raises(ValueError):
        _cfg().load_store_settings()
