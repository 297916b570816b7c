"""Input sanitization and validation for portal form fields.

Every function is pure. Invalid input yields ``None`` rather than an
exception: callers treat it as a validation error, not a fault.
"""

from __future__ import annotations

import html
import re
from typing import List, Optional

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
PROJECT_NAME_RE = re.compile(r"[a-z0-9-]+")
USERNAME_RE = re.compile(r"[A-Za-z0-9_-]+")
_TAG_RE = re.compile(r"<[^>]*>")

PROJECT_NAME_MIN = 3
PROJECT_NAME_MAX = 63
USERNAME_MIN = 2
USERNAME_MAX = 50
DESCRIPTION_MAX = 500
CSRF_TOKEN_MIN = 32
CSRF_TOKEN_MAX = 128


def sanitize_html(value: str) -> str:
    """Escape text so it renders literally inside an HTML text node.

    Only ``&``, ``<`` and ``>`` are replaced. Quotes are left alone: they are
    harmless in text content, and attribute values need their own escaping.
    """
    if not value:
        return ""
    return html.escape(value, quote=False)


def sanitize_email(email: str) -> Optional[str]:
    """Return the trimmed, lowercased email, or None if it is malformed."""
    trimmed = email.strip().lower()
    if EMAIL_RE.fullmatch(trimmed):
        return trimmed
    return None


def sanitize_project_name(name: str) -> Optional[str]:
    """Return the normalized project name, or None if invalid.

    Idempotent: a returned name sanitizes to itself.
    """
    trimmed = name.strip().lower()
    if not PROJECT_NAME_MIN <= len(trimmed) <= PROJECT_NAME_MAX:
        return None
    if PROJECT_NAME_RE.fullmatch(trimmed):
        return trimmed
    return None


def sanitize_user_id(user_id: str) -> Optional[str]:
    """Validate a user identifier, which is either an email or a username.

    Emails are lowercased. Usernames keep their case.
    """
    trimmed = user_id.strip()
    if "@" in trimmed:
        return sanitize_email(trimmed)
    if not USERNAME_MIN <= len(trimmed) <= USERNAME_MAX:
        return None
    if USERNAME_RE.fullmatch(trimmed):
        return trimmed
    return None


def sanitize_description(description: str) -> str:
    """Strip tag-like markup, trim, and hard-cap at 500 characters."""
    stripped = _TAG_RE.sub("", description).strip()
    return stripped[:DESCRIPTION_MAX]


def validate_csrf_token(token: Optional[str]) -> bool:
    """Length check only (32-128 chars). Not a cryptographic verification."""
    if not token:
        return False
    return CSRF_TOKEN_MIN <= len(token) <= CSRF_TOKEN_MAX


def split_user_ids(user_ids: str) -> List[str]:
    """Split a comma-delimited identifier list, dropping blanks."""
    return [part.strip() for part in user_ids.split(",") if part.strip()]
