from __future__ import annotations

import logging

import httpx

from ticketoffice.http import HttpError
from ticketoffice.models import Logo, OrganizerData
from ticketoffice.sanitize import sanitize_string, sanitize_url
from ticketoffice.services.base import READ_RETRIES, WRITE_RETRIES, BaseService

log = logging.getLogger(__name__)


class OrganizerService(BaseService):
    """Organizer profile of the logged-in user; needed before creating events."""

    async def create_organizer(self, data: OrganizerData) -> None:
        cleaned = OrganizerData(
            name=sanitize_string(data.name),
            url=sanitize_url(data.url),
            logo=Logo(url=sanitize_url(data.logo.url), alt=sanitize_string(data.logo.alt)),
        )
        await self.http.post("/api/v1/organizer", cleaned.to_api(), retries=WRITE_RETRIES)
        log.info("Organizer created name=%s", cleaned.name)

    async def has_organizer_data(self) -> bool:
        """True when ``/users/me`` carries an organizer with an id."""
        try:
            raw = await self.http.get("/users/me", retries=READ_RETRIES)
        except (HttpError, httpx.TransportError) as exc:
            log.warning("Could not check organizer data: %s", exc)
            return False
        organizer = raw.get("organizer") if isinstance(raw, dict) else None
        return bool(isinstance(organizer, dict) and organizer.get("id"))
