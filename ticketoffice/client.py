"""Wires the HTTP client, local storage and services into one object."""

from __future__ import annotations

from datetime import timedelta

import httpx

from ticketoffice.config import Settings, get_settings
from ticketoffice.favorites import Favorites
from ticketoffice.http import HttpClient
from ticketoffice.region import RegionStore
from ticketoffice.search import EventSearch
from ticketoffice.services import (
    AuthService,
    CheckoutService,
    ContactService,
    CouponService,
    EventService,
    OrganizerService,
    RegionService,
    ReportService,
    SalesService,
    StatsService,
    TicketValidator,
    VendorService,
)
from ticketoffice.storage import LocalStorage


class TicketOffice:
    """Everything a front end needs, sharing one HTTP client and one store.

    Use as an async context manager so the remembered session is restored on
    entry and the HTTP client is closed on exit.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.http = HttpClient(
            self.settings.api_base_url,
            timeout=self.settings.http_timeout_seconds,
            transport=transport,
            retry_delay_ms=self.settings.http_retry_delay_ms,
        )
        self.storage = LocalStorage(self.settings.storage_path)

        self.auth = AuthService(self.http, self.storage)
        self.events = EventService(self.http)
        self.checkout = CheckoutService(self.http, self.settings.app_url)
        self.sales = SalesService(self.http)
        self.validator = TicketValidator(self.sales)
        self.vendors = VendorService(self.http)
        self.regions = RegionService(self.http)
        self.coupons = CouponService(self.http)
        self.stats = StatsService(self.http)
        self.reports = ReportService(self.http)
        self.contact = ContactService(self.http)
        self.organizer = OrganizerService(self.http)

        self.favorites = Favorites(self.storage)
        self.region_store = RegionStore(
            self.storage, max_age=timedelta(hours=self.settings.region_cache_hours)
        )

    def new_search(self, **kwargs) -> EventSearch:
        kwargs.setdefault("page_size", self.settings.search_page_size)
        kwargs.setdefault("debounce_ms", self.settings.search_debounce_ms)
        return EventSearch(self.events, **kwargs)

    async def __aenter__(self) -> TicketOffice:
        await self.storage.init()
        await self.auth.restore()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.http.aclose()
