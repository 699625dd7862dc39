from __future__ import annotations

import logging

from ticketoffice.models import Vendor
from ticketoffice.services.base import READ_RETRIES, WRITE_RETRIES, BaseService, seg

log = logging.getLogger(__name__)


class VendorService(BaseService):

    async def list(self) -> list[Vendor]:
        raw = await self.http.get("/api/private/v1/vendors", retries=READ_RETRIES)
        return [Vendor.model_validate(v) for v in raw or []]

    async def invite(self, name: str, email: str) -> Vendor:
        raw = await self.http.post(
            "/api/private/v1/vendors/invite",
            {"name": name, "email": email},
            retries=WRITE_RETRIES,
        )
        vendor = Vendor.model_validate(raw)
        log.info("Vendor invited id=%s", vendor.id)
        return vendor

    async def set_active(self, vendor_id: str, active: bool) -> None:
        action = "activate" if active else "disable"
        await self.http.post(
            f"/api/private/v1/vendors/{seg(vendor_id)}/{action}", retries=WRITE_RETRIES
        )
