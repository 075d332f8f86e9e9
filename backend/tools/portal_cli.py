"""Operator CLI for sessions and mentor assignments.

Why:
    Support staff regularly need to answer "which students does this mentor
    see?" and to inspect or mint self-issued session credentials when
    debugging a login. This tool runs the same code paths as the web app.

Usage:
    python -m backend.tools.portal_cli encode-session \
      --user-id 64f0c1 --name "Asha Rao" --email asha.rao@example.edu --type Faculty --hod

    python -m backend.tools.portal_cli decode-session custom_eyJ1c2VySWQiOi...

    python -m backend.tools.portal_cli mentees <faculty-doc-id>

Notes:
    - `mentees` reads the same APPWRITE_* environment variables as the web app.
    - Credentials are printed to stdout; do not paste them into tickets.
"""

from __future__ import annotations

import asyncio
import json

import click
import httpx

from backend.identity_access.domain import USER_TYPES, IdentitySummary, normalize_labels
from backend.identity_access.tokens import InvalidFormat, decode_session, encode_session
from backend.web.config import load_store_settings
from backend.web.wiring import build_services


@click.group()
def cli() -> None:
    """Mentor portal maintenance commands."""


@cli.command("encode-session")
@click.option("--user-id", required=True)
@click.option("--name", default="")
@click.option("--email", required=True)
@click.option("--type", "user_type", required=True, type=click.Choice(sorted(USER_TYPES)))
@click.option("--hod/--no-hod", default=False)
@click.option("--label", "labels", multiple=True)
def encode_session_cmd(user_id: str, name: str, email: str, user_type: str, hod: bool, labels: tuple[str, ...]) -> None:
    """Print a self-issued session credential."""
    summary = IdentitySummary(
        user_id=user_id, name=name, email=email, type=user_type, is_hod=hod, labels=normalize_labels(labels)
    )
    click.echo(encode_session(summary))


@cli.command("decode-session")
@click.argument("credential")
def decode_session_cmd(credential: str) -> None:
    """Print the envelope of a self-issued credential as JSON."""
    decoded = decode_session(credential)
    if isinstance(decoded, InvalidFormat):
        raise click.ClickException(f"invalid credential: {decoded.reason}")
    click.echo(
        json.dumps(
            {
                "userId": decoded.user_id,
                "name": decoded.name,
                "email": decoded.email,
                "type": decoded.type,
                "isHOD": decoded.is_hod,
                "labels": list(decoded.labels),
            },
            indent=2,
        )
    )


async def _resolve(faculty_id: str):
    settings = load_store_settings()
    async with httpx.AsyncClient(timeout=settings.primary.timeout_seconds) as http:
        services = build_services(settings, http)
        return await services.mentees.resolve(faculty_id)


@cli.command("mentees")
@click.argument("faculty_id")
def mentees_cmd(faculty_id: str) -> None:
    """List the mentees of FACULTY_ID (tab separated: id, roll no, name)."""
    result = asyncio.run(_resolve(faculty_id))
    for s in result.students:
        click.echo(f"{s.doc_id}\t{s.roll_no}\t{s.name}")
    if result.fallback_used:
        click.echo("note: resolved via legacy nameId", err=True)
    if result.partial:
        click.echo(f"warning: {len(result.skipped_ids)} mapped student(s) could not be loaded", err=True)


if __name__ == "__main__":  # pragma: no cover
    cli()
