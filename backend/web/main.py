"Mentor Portal — identity & assignment API"
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import os
import sys

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import config as _cfg
from .routes.auth import auth_router
from .routes.mentoring import mentoring_router
from .wiring import ServicesUnavailable, build_services, services_unavailable_response


logger = logging.getLogger("portal.web")


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via PORTAL_ENABLE_DOTENV (default true outside
      pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("PORTAL_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    from dotenv import load_dotenv

    load_dotenv()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests may pre-populate app.state.services with fakes; keep them.
    if getattr(app.state, "services", None) is not None:
        yield
        return
    settings = _cfg.load_store_settings()
    async with httpx.AsyncClient(timeout=settings.primary.timeout_seconds) as http:
        app.state.services = build_services(settings, http)
        logger.info("Store clients wired (primary=%s, mapping=%s)", settings.primary.project_id, settings.mapping.project_id)
        try:
            yield
        finally:
            app.state.services = None


def create_app() -> FastAPI:
    # Minimal production safety checks (fail-fast on insecure config)
    _cfg.ensure_secure_config_on_startup()

    app = FastAPI(
        title="Mentor Portal",
        description="Session validation and mentor/mentee resolution",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = None

    @app.exception_handler(ServicesUnavailable)
    async def _services_unavailable(request: Request, exc: ServicesUnavailable):
        return services_unavailable_response()

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if _cfg.current_environment() in {"prod", "production", "stage", "staging"}:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response

    @app.get("/health")
    async def health_check():
        # Minimal health endpoint used by orchestrators and tests.
        return JSONResponse({"status": "healthy"}, headers={"Cache-Control": "private, no-store"})

    app.include_router(auth_router)
    app.include_router(mentoring_router)
    return app


app = create_app()
