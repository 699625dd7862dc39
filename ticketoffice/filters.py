"""Client-side facets, filtering, sorting and pagination over search results.

Everything here is pure: no I/O, inputs are never mutated, and repeated calls
with the same arguments give the same output.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import AbstractSet, NamedTuple, Sequence, TypeVar

from ticketoffice.models import (
    EventCategory,
    EventStatus,
    Facets,
    Filters,
    Page,
    SearchEvent,
    SortKey,
    end_of_day,
    parse_iso,
    start_of_day,
)

T = TypeVar("T")

ADULT_AGE = 18

# First match wins, so order matters.
_CATEGORY_KEYWORDS: list[tuple[tuple[str, ...], EventCategory]] = [
    (("festival",), EventCategory.FESTIVAL),
    (("concierto",), EventCategory.CONCIERTO),
    (("teatro", "obra"), EventCategory.TEATRO),
    (("feria",), EventCategory.FERIA),
    (("discoteca", "club"), EventCategory.DISCOTECA),
]


class ParsedLocation(NamedTuple):
    city: str
    country: str


def parse_location(location: str) -> ParsedLocation:
    """Split ``"City, Country"``; without a comma the whole string is the city."""
    parts = [p.strip() for p in location.split(",")]
    if len(parts) >= 2:
        return ParsedLocation(city=parts[0], country=parts[1])
    return ParsedLocation(city=parts[0], country="")


def derive_category(name: str) -> EventCategory:
    """Guess a category from keywords in the event name."""
    lowered = name.lower()
    for keywords, category in _CATEGORY_KEYWORDS:
        if any(k in lowered for k in keywords):
            return category
    return EventCategory.OTROS


def build_facets(events: Sequence[SearchEvent]) -> Facets:
    """Collect the distinct countries, cities and categories in *events*."""
    countries: set[str] = set()
    cities_by_country: dict[str, set[str]] = {}
    categories: set[str] = set()

    for event in events:
        city, country = parse_location(event.location)
        if country:
            countries.add(country)
            bucket = cities_by_country.setdefault(country, set())
            if city:
                bucket.add(city)
        categories.add(derive_category(event.name).value)

    cities = set().union(*cities_by_country.values()) if cities_by_country else set()
    return Facets(
        countries=sorted(countries),
        cities=sorted(cities),
        categories=sorted(categories),
        cities_by_country={k: sorted(v) for k, v in cities_by_country.items()},
    )


def _matches_vendor(event: SearchEvent, vendors: Sequence[str]) -> bool:
    vendor_id = event.vendor_id or ""
    vendor_name = (event.vendor_name or "").lower()
    return any(v == vendor_id or v.lower() == vendor_name for v in vendors)


def apply_filters(
    events: Sequence[SearchEvent],
    filters: Filters,
    favorite_ids: AbstractSet[str] | None = None,
) -> list[SearchEvent]:
    """Return the events passing every predicate in *filters*.

    Inactive events are always dropped. ``saved_only`` only applies when a
    favorites set is supplied. ``date_to`` covers the whole UTC day.
    """
    from_time = start_of_day(filters.date_from) if filters.date_from else None
    to_time = end_of_day(filters.date_to) if filters.date_to else None

    out: list[SearchEvent] = []
    for e in events:
        if e.status == EventStatus.INACTIVE:
            continue

        if filters.saved_only and favorite_ids is not None and e.id not in favorite_ids:
            continue

        if filters.min_price is not None and e.price < filters.min_price:
            continue
        if filters.max_price is not None and e.price > filters.max_price:
            continue

        if filters.adult_only and not (e.min_age is not None and e.min_age >= ADULT_AGE):
            continue

        if filters.vendors and not _matches_vendor(e, filters.vendors):
            continue

        city, country = parse_location(e.location)
        if filters.country and country != filters.country:
            continue
        if filters.city and city != filters.city:
            continue

        if filters.category and derive_category(e.name) != filters.category:
            continue

        # An unparseable date never fails the range check.
        when = parse_iso(e.date)
        if when is not None:
            if from_time is not None and when < from_time:
                continue
            if to_time is not None and when > to_time:
                continue

        out.append(e)
    return out


def _date_key(event: SearchEvent, descending: bool) -> tuple[int, float]:
    when = parse_iso(event.date)
    if when is None:
        return (1, 0.0)
    ts = when.timestamp()
    return (0, -ts if descending else ts)


def sort_events(events: Sequence[SearchEvent], sort: SortKey | str) -> list[SearchEvent]:
    """Return a sorted copy of *events*; an unknown key leaves the order alone."""
    try:
        key = SortKey(sort)
    except ValueError:
        return list(events)

    if key is SortKey.DATE_ASC:
        return sorted(events, key=lambda e: _date_key(e, descending=False))
    if key is SortKey.DATE_DESC:
        return sorted(events, key=lambda e: _date_key(e, descending=True))
    if key is SortKey.PRICE_ASC:
        return sorted(events, key=lambda e: e.price)
    return sorted(events, key=lambda e: -e.price)


def paginate(items: Sequence[T], page: int, page_size: int) -> Page[T]:
    """Slice out *page* (1-based), clamped into ``[1, total_pages]``."""
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    total = len(items)
    total_pages = max(1, math.ceil(total / page_size))
    safe_page = min(max(1, page), total_pages)
    start = (safe_page - 1) * page_size
    return Page(
        items=list(items[start : start + page_size]),
        total=total,
        page=safe_page,
        page_size=page_size,
        total_pages=total_pages,
    )


# ------------------------------------------------------------------
# Quick date ranges
# ------------------------------------------------------------------


def today_range(now: datetime | date | None = None) -> tuple[date, date]:
    today = _as_date(now)
    return today, today


def weekend_range(ref: datetime | date | None = None) -> tuple[date, date]:
    """The coming Saturday and Sunday (today if today is Saturday)."""
    day = _as_date(ref)
    saturday = day + timedelta(days=(5 - day.weekday()) % 7)
    return saturday, saturday + timedelta(days=1)


def _as_date(value: datetime | date | None) -> date:
    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    return value
