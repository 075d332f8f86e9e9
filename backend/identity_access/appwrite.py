"""
Minimal async Appwrite REST adapter (Databases + Account).

This module is a thin, framework-agnostic transport used by the directory and
mapping stores and by the session validator. It speaks the Appwrite REST API
directly via httpx so that every call is a non-blocking round trip and tests
can plug in `httpx.MockTransport`.

Two projects are involved: the primary project (Student/Faculty collections,
user accounts) and the mapping project (student↔faculty rows). Each gets its
own `AppwriteConfig` and therefore its own credentials.

Security: Never log API keys or session secrets. Only the collection id and
the HTTP status are logged on failures.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote
import json
import logging

import httpx

from .domain import ProviderSessionError, ProviderUser, StoreUnavailableError, normalize_labels


logger = logging.getLogger("portal.identity_access.appwrite")

DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class AppwriteConfig:
    endpoint: str  # e.g. https://cloud.appwrite.io/v1
    project_id: str
    api_key: str
    database_id: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def base_url(self) -> str:
        return self.endpoint.rstrip("/")


# --- Query helpers ---------------------------------------------------------------
# Appwrite (>= 1.5) expects each query as a JSON object string.

def query_equal(attribute: str, value: Any) -> str:
    values = list(value) if isinstance(value, (list, tuple)) else [value]
    return json.dumps({"method": "equal", "attribute": attribute, "values": values})


def query_limit(limit: int) -> str:
    return json.dumps({"method": "limit", "values": [int(limit)]})


def query_offset(offset: int) -> str:
    return json.dumps({"method": "offset", "values": [int(offset)]})


class _Transport:
    def __init__(self, cfg: AppwriteConfig, http: httpx.AsyncClient | None = None) -> None:
        self.cfg = cfg
        self._http = http

    def _headers(self, *, session: str | None = None) -> Dict[str, str]:
        hdr = {"X-Appwrite-Project": self.cfg.project_id, "Content-Type": "application/json"}
        if session:
            hdr["X-Appwrite-Session"] = session
        elif self.cfg.api_key:
            hdr["X-Appwrite-Key"] = self.cfg.api_key
        return hdr

    async def request(self, method: str, path: str, *, params: Any = None, session: str | None = None) -> httpx.Response:
        url = f"{self.cfg.base_url}{path}"
        headers = self._headers(session=session)
        if self._http is not None:
            return await self._http.request(method, url, params=params, headers=headers, timeout=self.cfg.timeout_seconds)
        async with httpx.AsyncClient(timeout=self.cfg.timeout_seconds) as client:
            return await client.request(method, url, params=params, headers=headers)

    async def get(self, path: str, *, params: Any = None, session: str | None = None) -> httpx.Response:
        return await self.request("GET", path, params=params, session=session)


class DatabasesClient:
    """Read-only access to the collections of one Appwrite database."""

    def __init__(self, cfg: AppwriteConfig, http: httpx.AsyncClient | None = None) -> None:
        self.cfg = cfg
        self._t = _Transport(cfg, http)

    def _collection_path(self, collection_id: str) -> str:
        return f"/databases/{self.cfg.database_id}/collections/{collection_id}/documents"

    async def list_documents(self, collection_id: str, queries: Sequence[str] = ()) -> List[Dict[str, Any]]:
        """Return the `documents` array for the given queries.

        Raises StoreUnavailableError on transport errors and non-200 responses.
        """
        params = [("queries[]", q) for q in queries]
        try:
            r = await self._t.get(self._collection_path(collection_id), params=params)
        except httpx.HTTPError as exc:
            logger.warning("list_documents failed collection=%s err=%s", collection_id, exc.__class__.__name__)
            raise StoreUnavailableError("store_unreachable") from exc
        if r.status_code != 200:
            logger.warning("list_documents failed collection=%s status=%s", collection_id, r.status_code)
            raise StoreUnavailableError(f"store_status_{r.status_code}")
        try:
            body = r.json()
        except ValueError as exc:
            raise StoreUnavailableError("store_invalid_payload") from exc
        docs = body.get("documents") if isinstance(body, dict) else None
        if not isinstance(docs, list):
            raise StoreUnavailableError("store_invalid_payload")
        return [d for d in docs if isinstance(d, dict)]

    async def get_document(self, collection_id: str, document_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a single document; returns None when it does not exist."""
        path = f"{self._collection_path(collection_id)}/{quote(document_id, safe='')}"
        try:
            r = await self._t.get(path)
        except httpx.HTTPError as exc:
            logger.warning("get_document failed collection=%s err=%s", collection_id, exc.__class__.__name__)
            raise StoreUnavailableError("store_unreachable") from exc
        if r.status_code == 404:
            return None
        if r.status_code != 200:
            logger.warning("get_document failed collection=%s status=%s", collection_id, r.status_code)
            raise StoreUnavailableError(f"store_status_{r.status_code}")
        try:
            body = r.json()
        except ValueError as exc:
            raise StoreUnavailableError("store_invalid_payload") from exc
        if not isinstance(body, dict):
            raise StoreUnavailableError("store_invalid_payload")
        return body


class AccountClient:
    """Identity provider adapter: resolves a native session to its account."""

    def __init__(self, cfg: AppwriteConfig, http: httpx.AsyncClient | None = None) -> None:
        self.cfg = cfg
        self._t = _Transport(cfg, http)

    async def get_current_user(self, session: str) -> ProviderUser:
        """Return the account behind `session`.

        Raises ProviderSessionError for any failure (rejected, expired,
        unreachable); callers treat all of them as an invalid session.
        """
        if not session:
            raise ProviderSessionError("missing_session")
        try:
            r = await self._t.get("/account", session=session)
        except httpx.HTTPError as exc:
            raise ProviderSessionError("provider_unreachable") from exc
        if r.status_code != 200:
            raise ProviderSessionError(f"provider_status_{r.status_code}")
        try:
            body = r.json()
        except ValueError as exc:
            raise ProviderSessionError("provider_invalid_payload") from exc
        if not isinstance(body, dict) or not body.get("$id"):
            raise ProviderSessionError("provider_invalid_payload")
        return ProviderUser(
            user_id=str(body.get("$id")),
            name=str(body.get("name") or ""),
            email=str(body.get("email") or ""),
            labels=normalize_labels(body.get("labels")),
        )

    async def delete_current_session(self, session: str) -> None:
        """End the provider session behind `session` (logout).

        Raises ProviderSessionError when the provider does not confirm; an
        already expired session is reported the same way.
        """
        if not session:
            raise ProviderSessionError("missing_session")
        try:
            r = await self._t.request("DELETE", "/account/sessions/current", session=session)
        except httpx.HTTPError as exc:
            raise ProviderSessionError("provider_unreachable") from exc
        if r.status_code not in (200, 204):
            raise ProviderSessionError(f"provider_status_{r.status_code}")


__all__ = [
    "AppwriteConfig",
    "DatabasesClient",
    "AccountClient",
    "query_equal",
    "query_limit",
    "query_offset",
    "DEFAULT_TIMEOUT_SECONDS",
]
