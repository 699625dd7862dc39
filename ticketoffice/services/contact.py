from __future__ import annotations

import logging

from ticketoffice.models import ContactForm
from ticketoffice.sanitize import sanitize_email, sanitize_string
from ticketoffice.services.base import WRITE_RETRIES, BaseService

log = logging.getLogger(__name__)


class ContactService(BaseService):

    async def submit(self, form: ContactForm) -> None:
        """Send the public contact form. Never retried, so it is never sent twice."""
        cleaned = ContactForm(
            name=sanitize_string(form.name),
            email=sanitize_email(form.email),
            subject=sanitize_string(form.subject),
            message=sanitize_string(form.message),
        )
        await self.http.post(
            "/api/public/v1/form/contact-us", cleaned.to_api(), retries=WRITE_RETRIES
        )
        log.info("Contact form sent email=%s", cleaned.email)
