from __future__ import annotations

import logging

from ticketoffice.models import Coupon, NewCoupon
from ticketoffice.services.base import READ_RETRIES, WRITE_RETRIES, BaseService, seg

log = logging.getLogger(__name__)


def _path(event_id: str) -> str:
    return f"/api/private/v1/events/{seg(event_id)}/coupons"


class CouponService(BaseService):

    async def list_by_event(self, event_id: str) -> list[Coupon]:
        raw = await self.http.get(_path(event_id), retries=READ_RETRIES)
        return [Coupon.model_validate(c) for c in raw or []]

    async def create(self, event_id: str, coupon: NewCoupon) -> Coupon:
        raw = await self.http.post(_path(event_id), coupon.to_api(), retries=WRITE_RETRIES)
        created = Coupon.model_validate(raw)
        log.info("Coupon created event=%s code=%s", event_id, created.code)
        return created
