"""Helpers that keep tool messages safe for text-to-speech."""

from __future__ import annotations

from typing import Optional


def format_email_for_speech(email: Optional[str]) -> str:
    """Render an email so TTS engines read it out correctly.

    ``"user@gmail.com"`` becomes ``"user at gmail dot com"``. Only the domain
    has its dots spoken; the local part is kept as written.
    """

    if not email:
        return ""
    parts = email.split("@")
    local_part = parts[0]
    domain = parts[1] if len(parts) > 1 else ""
    if not domain:
        return email
    return f"{local_part} at {domain.replace('.', ' dot ')}"


def pluralize(count: int, singular: str, plural: Optional[str] = None) -> str:
    if count == 1:
        return singular
    return plural if plural is not None else f"{singular}s"
