"""Shared plumbing for the remote API service wrappers."""

from __future__ import annotations

from urllib.parse import quote

from ticketoffice.http import HttpClient

# Reads retry once; writes are never retried.
READ_RETRIES = 1
WRITE_RETRIES = 0
# Seat reservation is the one write that retries.
RESERVE_RETRIES = 1


def seg(value: object) -> str:
    """Percent-encode one path segment."""
    return quote(str(value), safe="")


class BaseService:
    """A service is a thin, typed view over one area of the ticketing API."""

    def __init__(self, http: HttpClient) -> None:
        self.http = http
