"""
Self-issued session envelope codec for the identity_access bounded context.

Why: Some logins are not backed by a provider session (e.g. accounts that
authenticate against the campus directory). For those the portal issues its
own credential: a marker prefix followed by base64-encoded JSON carrying the
identity summary. Keeping the codec pure makes it trivial to unit test.

Format:
    "custom_" + base64(JSON {userId, name, email, type, isHOD, labels})

Security: The envelope is not signed. It only names a user; the validator
always re-checks the named record against the primary store before trusting
it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union
import base64
import binascii
import json

from .domain import IdentitySummary, USER_TYPES, normalize_labels


SESSION_COOKIE_NAME = "session"
SESSION_PREFIX = "custom_"
REQUIRED_FIELDS = ("userId", "email", "type")


@dataclass(frozen=True)
class InvalidFormat:
    """Returned by `decode_session` when the credential is not a valid envelope."""

    reason: str


def is_self_issued(credential: Any) -> bool:
    return isinstance(credential, str) and credential.startswith(SESSION_PREFIX)


def encode_session(summary: IdentitySummary) -> str:
    """Serialize an identity summary into a self-issued credential.

    Key order and separators are fixed so equal summaries always encode to the
    same bytes.
    """
    payload = {
        "userId": summary.user_id,
        "name": summary.name,
        "email": summary.email,
        "type": summary.type,
        "isHOD": bool(summary.is_hod),
        "labels": list(summary.labels),
    }
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return SESSION_PREFIX + base64.b64encode(raw).decode("ascii")


def decode_session(credential: Any) -> Union[IdentitySummary, InvalidFormat]:
    """Decode a self-issued credential.

    Never raises: every malformed input yields `InvalidFormat` with a short
    machine-readable reason.
    """
    if not is_self_issued(credential):
        return InvalidFormat("missing_prefix")
    body = credential[len(SESSION_PREFIX):]
    if not body:
        return InvalidFormat("empty_envelope")
    try:
        raw = base64.b64decode(body.encode("ascii"), validate=True)
    except (binascii.Error, ValueError):
        return InvalidFormat("invalid_base64")
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return InvalidFormat("invalid_json")
    if not isinstance(data, dict):
        return InvalidFormat("invalid_json")
    for key in REQUIRED_FIELDS:
        value = data.get(key)
        if not isinstance(value, str) or not value:
            return InvalidFormat(f"missing_{key}")
    if data["type"] not in USER_TYPES:
        return InvalidFormat("unknown_type")
    name = data.get("name")
    is_hod = data.get("isHOD")
    return IdentitySummary(
        user_id=data["userId"],
        name=name if isinstance(name, str) else "",
        email=data["email"],
        type=data["type"],
        is_hod=bool(is_hod),
        labels=normalize_labels(data.get("labels")),
    )


__all__ = ["SESSION_COOKIE_NAME", "SESSION_PREFIX", "InvalidFormat", "is_self_issued", "encode_session", "decode_session"]
