"""
Service wiring for the web adapter.

Why:
    Routes need a validator, a mentee resolver and the directory. Building them
    once per app (instead of module-level singletons) lets tests swap the whole
    container via `app.state.services` and keeps one httpx client per process.

Security:
    The primary and mapping projects use separate credentials; each store gets
    a client bound to its own `AppwriteConfig`.
"""
from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse

from backend.identity_access.appwrite import AccountClient, DatabasesClient
from backend.identity_access.directory import RecordsDirectory
from backend.identity_access.mapping import MappingStore
from backend.identity_access.mentees import MenteeResolver
from backend.identity_access.sessions import SessionValidator

from .config import StoreSettings


@dataclass
class PortalServices:
    validator: SessionValidator
    mentees: MenteeResolver
    directory: RecordsDirectory


def build_services(settings: StoreSettings, http: httpx.AsyncClient | None = None) -> PortalServices:
    primary_db = DatabasesClient(settings.primary, http)
    mapping_db = DatabasesClient(settings.mapping, http)
    directory = RecordsDirectory(
        primary_db,
        student_collection=settings.student_collection,
        faculty_collection=settings.faculty_collection,
    )
    mapping = MappingStore(mapping_db, collection=settings.mapping_collection, page_size=settings.mapping_page_size)
    return PortalServices(
        validator=SessionValidator(directory, AccountClient(settings.primary, http)),
        mentees=MenteeResolver(mapping, directory),
        directory=directory,
    )


class ServicesUnavailable(Exception):
    pass


def get_services(request: Request) -> PortalServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise ServicesUnavailable()
    return services


def services_unavailable_response() -> JSONResponse:
    return JSONResponse(
        {"error": "Service unavailable", "code": "store_unavailable"},
        status_code=503,
        headers={"Cache-Control": "private, no-store"},
    )


__all__ = ["PortalServices", "build_services", "get_services", "ServicesUnavailable", "services_unavailable_response"]
