"""Input sanitation helpers for data sent to the API or shown to users."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup

_HTML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
    "/": "&#x2F;",
    "`": "&#x60;",
    "=": "&#x3D;",
}
_HTML_ESCAPE_RE = re.compile(r"[&<>\"'`=/]")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_WS_RE = re.compile(r"\s+")
_UUID_V4_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}", re.IGNORECASE
)


def escape_html(text: str | None) -> str:
    if not text:
        return ""
    return _HTML_ESCAPE_RE.sub(lambda m: _HTML_ESCAPES[m.group(0)], text)


def strip_html(text: str | None) -> str:
    """Drop markup and keep the visible text."""
    if not text:
        return ""
    return BeautifulSoup(text, "html.parser").get_text()


def sanitize_string(text: str | None) -> str:
    return _WS_RE.sub(" ", strip_html(text)).strip()


def sanitize_email(email: str | None) -> str:
    """Lowercased email, or ``""`` when it does not look like one."""
    cleaned = (email or "").strip().lower()
    return cleaned if _EMAIL_RE.match(cleaned) else ""


def sanitize_username(username: str | None) -> str:
    return re.sub(r"[^a-zA-Z0-9._]", "", (username or "").strip())


def sanitize_phone(phone: str | None) -> str:
    return re.sub(r"[^\d+]", "", phone or "")


def sanitize_document(document: str | None) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "", (document or "").strip())


def sanitize_url(url: str | None) -> str:
    """Keep absolute http(s) URLs only."""
    cleaned = (url or "").strip()
    if not cleaned.startswith(("http://", "https://")):
        return ""
    parsed = urlparse(cleaned)
    return cleaned if parsed.netloc else ""


def sanitize_positive_number(value: Any, default: float = 0) -> float:
    try:
        num = float(value)
    except (TypeError, ValueError):
        return default
    if num != num or num < 0:  # NaN
        return default
    return num


def is_uuid(value: str | None) -> bool:
    """True for a canonical, hyphenated version 4 UUID."""
    return bool(value) and _UUID_V4_RE.fullmatch(value) is not None
