"""Public event search/detail and backoffice event management."""

from __future__ import annotations

import logging
from typing import Any

from ticketoffice.http import CancelToken
from ticketoffice.models import (
    EventDetail,
    EventListResponse,
    EventRecommendation,
    EventStatus,
    SearchEvent,
    SearchEventParams,
    SearchEventResponse,
    backend_date_to_iso,
)
from ticketoffice.services.base import READ_RETRIES, WRITE_RETRIES, BaseService, seg

log = logging.getLogger(__name__)

_EDITABLE_FIELDS = (
    "title",
    "date",
    "location",
    "image",
    "tickets",
    "description",
    "additional_info",
)


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _num(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def normalize_search_response(raw: Any) -> SearchEventResponse:
    """Coerce a loosely-shaped search payload into a valid response.

    Missing or mistyped fields fall back to defaults instead of failing the
    whole search.
    """
    data = raw if isinstance(raw, dict) else {}
    items = data.get("events") if isinstance(data.get("events"), list) else []

    events: list[SearchEvent] = []
    for item in items:
        obj = item if isinstance(item, dict) else {}
        status = _str(obj.get("status"), EventStatus.ACTIVE.value)
        if status not in EventStatus._value2member_map_:
            status = EventStatus.ACTIVE.value
        min_age = _num(obj.get("minAge"))
        events.append(
            SearchEvent(
                id=_str(obj.get("id")),
                name=_str(obj.get("name")),
                date=backend_date_to_iso(obj.get("date")) or "",
                location=_str(obj.get("location")),
                banner_url=_str(obj.get("bannerUrl")),
                price=_num(obj.get("price")) or 0,
                currency=_str(obj.get("currency")),
                status=status,
                min_age=int(min_age) if min_age is not None else None,
                vendor_id=obj.get("vendorId") if isinstance(obj.get("vendorId"), str) else None,
                vendor_name=obj.get("vendorName") if isinstance(obj.get("vendorName"), str) else None,
            )
        )

    def _int(key: str, default: int) -> int:
        value = _num(data.get(key))
        return int(value) if value is not None else default

    return SearchEventResponse(
        events=events,
        has_events_in_your_city=bool(data.get("hasEventsInYourCity")),
        total_pages=_int("totalPages", 0),
        current_page=_int("currentPage", 0),
        page_size=_int("pageSize", 9),
    )


def _prepare_detail(raw: Any) -> dict[str, Any]:
    """Patch up a detail payload so it validates as :class:`EventDetail`."""
    prepared = dict(raw) if isinstance(raw, dict) else {}

    org = prepared.get("organizer")
    if isinstance(org, dict):
        prepared["organizer"] = {
            "id": _str(org.get("id")),
            "name": _str(org.get("name")),
            "url": _str(org.get("url")),
            "logoUrl": _str(org.get("logo")) or _str(org.get("logoUrl")) or None,
        }
    else:
        prepared["organizer"] = None

    image = prepared.get("image")
    image = image if isinstance(image, dict) else {}
    prepared["image"] = {"url": _str(image.get("url")), "alt": _str(image.get("alt"))}

    loc = prepared.get("location")
    loc = loc if isinstance(loc, dict) else {}
    prepared["location"] = {k: _str(loc.get(k)) for k in ("name", "address", "city", "country")}

    tickets = []
    for t in prepared.get("tickets") or []:
        if not isinstance(t, dict):
            continue
        stock = _num(t.get("stock"))
        tickets.append({
            "id": _str(t.get("id")),
            "value": _num(t.get("value")) or 0,
            "currency": _str(t.get("currency")),
            "type": _str(t.get("type")),
            "isFree": t.get("isFree") if isinstance(t.get("isFree"), bool) else False,
            "stock": max(0, int(stock)) if stock is not None else 0,
        })
    prepared["tickets"] = tickets
    return prepared


class EventService(BaseService):

    async def search_events(
        self, params: SearchEventParams, *, signal: CancelToken | None = None
    ) -> SearchEventResponse:
        country = params.country.strip()
        if not country or country.lower() == "all":
            return SearchEventResponse(page_size=params.page_size)

        query = params.model_copy(
            update={"country": country, "page_number": max(0, params.page_number)}
        ).to_query()
        raw = await self.http.get(
            "/api/public/v1/event/search",
            params=query,
            retries=READ_RETRIES,
            signal=signal,
        )
        result = normalize_search_response(raw)
        log.debug(
            "search_events count=%d page=%d pages=%d",
            len(result.events), result.current_page, result.total_pages,
        )
        return result

    async def get_public_by_id(self, event_id: str) -> EventDetail:
        raw = await self.http.get(
            f"/api/public/v1/event/{seg(event_id)}", retries=READ_RETRIES
        )
        return EventDetail.model_validate(_prepare_detail(raw))

    async def get_recommendations(self, event_id: str) -> list[EventRecommendation]:
        raw = await self.http.get(
            f"/api/public/v1/event/{seg(event_id)}/recommendations",
            retries=READ_RETRIES,
        )
        return [EventRecommendation.model_validate(r) for r in raw or []]

    # Backoffice

    async def get_events(
        self, page: int = 1, page_size: int = 10, seller_id: str | int | None = None
    ) -> EventListResponse:
        params: dict[str, Any] = {"page": page, "pageSize": page_size}
        if seller_id is not None:
            params["sellerId"] = str(seller_id)
        raw = await self.http.get("/api/v1/events", params=params, retries=READ_RETRIES)
        return EventListResponse.model_validate(raw)

    async def get_event_by_id(self, event_id: str) -> EventDetail:
        raw = await self.http.get(f"/api/v1/events/{seg(event_id)}", retries=READ_RETRIES)
        return EventDetail.model_validate(_prepare_detail(raw))

    async def create_event(self, event: EventDetail) -> EventDetail:
        payload = event.model_dump(
            mode="json", by_alias=True, include=set(_EDITABLE_FIELDS)
        )
        raw = await self.http.post("/api/v1/events", payload, retries=WRITE_RETRIES)
        created = EventDetail.model_validate(_prepare_detail(raw))
        log.info("create_event id=%s", created.id)
        return created

    async def update_event(self, event_id: str, changes: dict[str, Any]) -> EventDetail:
        """Send only the editable fields present in *changes*."""
        draft = EventDetail.model_validate(
            {"id": event_id, "title": "", "date": "", **changes}
        )
        present = {k for k in _EDITABLE_FIELDS if k in changes}
        payload = draft.model_dump(mode="json", by_alias=True, include=present)
        raw = await self.http.put(
            f"/api/v1/events/{seg(event_id)}", payload, retries=WRITE_RETRIES
        )
        updated = EventDetail.model_validate(_prepare_detail(raw))
        log.info("update_event id=%s fields=%s", event_id, sorted(present))
        return updated

    async def delete_event(self, event_id: str) -> None:
        await self.http.delete(f"/api/v1/events/{seg(event_id)}", retries=WRITE_RETRIES)
        log.warning("delete_event id=%s", event_id)
