"""
Shared authentication utilities.

Why:
    Avoid duplicating environment-dependent cookie policy logic across modules
    (e.g., the app factory and the auth router).

Design:
    The helper is framework-agnostic and pure: it accepts an environment string
    and returns the corresponding cookie flags. Callers decide where the
    environment comes from.
"""

from __future__ import annotations

from backend.identity_access.tokens import SESSION_COOKIE_NAME


def cookie_opts(environment: str) -> dict:
    """Return cookie flags for the `session` cookie.

    Returns a mapping with keys:
      - secure: True in prod-like environments, False for local http dev
      - samesite: "strict"  # session is only ever sent same-site
      - httponly: True
    """
    env = (environment or "").lower()
    return {
        "secure": env in {"prod", "production", "stage", "staging"},
        "samesite": "strict",
        "httponly": True,
    }
