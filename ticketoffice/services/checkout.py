"""Checkout sessions: reserve, attach buyer data, buy and pay."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from ticketoffice.http import HttpClient
from ticketoffice.models import BuyerData, CheckoutSession, PaymentResult, SessionData, SessionInfo
from ticketoffice.sanitize import sanitize_document, sanitize_email, sanitize_phone, sanitize_string
from ticketoffice.services.base import (
    READ_RETRIES,
    RESERVE_RETRIES,
    WRITE_RETRIES,
    BaseService,
    seg,
)

log = logging.getLogger(__name__)

_BASE = "/api/public/v1/checkout/session"


def clean_buyer(buyer: BuyerData) -> BuyerData:
    return buyer.model_copy(update={
        "name": sanitize_string(buyer.name),
        "last_name": sanitize_string(buyer.last_name),
        "email": sanitize_email(buyer.email),
        "phone": sanitize_phone(buyer.phone),
        "nationality": sanitize_string(buyer.nationality),
        "document_type": sanitize_string(buyer.document_type),
        "document": sanitize_document(buyer.document),
    })


def clean_session_data(data: SessionData) -> SessionData:
    """Strip markup and stray characters from buyer input before it is sent."""
    coupon = sanitize_string(data.coupon_code) if data.coupon_code else None
    return data.model_copy(update={
        "main_email": sanitize_email(data.main_email),
        "buyer": [clean_buyer(b) for b in data.buyer],
        "coupon_code": coupon or None,
    })


class CheckoutService(BaseService):

    def __init__(self, http: HttpClient, app_url: str) -> None:
        super().__init__(http)
        self.app_url = app_url.rstrip("/")

    async def create_session(self, event_id: str, price_id: str, quantity: int) -> CheckoutSession:
        raw = await self.http.post(
            _BASE,
            {"eventId": event_id, "priceId": price_id, "quantity": quantity},
            retries=RESERVE_RETRIES,
        )
        session = CheckoutSession.model_validate(raw)
        log.debug("create_session ok session=%s", session.session_id)
        return session

    async def get_session(self, session_id: str) -> SessionInfo:
        raw = await self.http.get(f"{_BASE}/{seg(session_id)}", retries=READ_RETRIES)
        return SessionInfo.model_validate(raw)

    async def add_session_data(self, session_id: str, data: SessionData) -> SessionInfo:
        raw = await self.http.post(
            f"{_BASE}/{seg(session_id)}/data",
            clean_session_data(data).to_api(),
            retries=WRITE_RETRIES,
        )
        return SessionInfo.model_validate(raw)

    async def buy(self, session_id: str, data: SessionData) -> None:
        """Complete a purchase (free tickets, or after payment)."""
        await self.http.post(
            f"{_BASE}/{seg(session_id)}/buy",
            clean_session_data(data).to_api(),
            retries=WRITE_RETRIES,
        )
        log.info("buy ok session=%s", session_id)

    def return_urls(self, session_id: str) -> dict[str, str]:
        sid = seg(session_id)
        return {
            "success": f"{self.app_url}/checkout/congrats?{urlencode({'sessionId': session_id})}",
            "failure": f"{self.app_url}/checkout/{sid}?status=failure",
            "pending": f"{self.app_url}/checkout/{sid}?status=pending",
        }

    async def process_payment(self, session_id: str) -> PaymentResult:
        raw = await self.http.post(
            f"{_BASE}/{seg(session_id)}/process-payment",
            {"returnUrls": self.return_urls(session_id)},
            retries=WRITE_RETRIES,
        )
        result = PaymentResult.model_validate(raw)
        if result.success:
            log.info("process_payment ok session=%s", session_id)
        else:
            log.warning("process_payment failed session=%s error=%s", session_id, result.error)
        return result
