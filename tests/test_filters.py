"""Tests for client-side facets, filters, sorting and pagination."""

from datetime import date

import pytest

from ticketoffice.filters import (
    apply_filters,
    build_facets,
    derive_category,
    paginate,
    parse_location,
    sort_events,
    today_range,
    weekend_range,
)
from ticketoffice.models import EventCategory, EventStatus, Filters, SortKey


@pytest.fixture
def catalog(make_event):
    return [
        make_event(id="a", name="Festival de Jazz", date="2025-06-07T18:00:00Z", price=50,
                   location="Bogotá, Colombia", min_age=18, vendor_id="v1", vendor_name="Norte"),
        make_event(id="b", name="Concierto Sinfónico", date="2025-06-01T20:00:00Z", price=120,
                   location="Medellín, Colombia"),
        make_event(id="c", name="Obra de Teatro", date="2025-05-20T19:00:00Z", price=80,
                   location="Buenos Aires, Argentina", vendor_name="Sur"),
        make_event(id="d", name="Feria del Libro", date="2025-06-02T10:00:00Z", price=0,
                   location="Bogotá, Colombia", status="INACTIVE"),
        make_event(id="e", name="Cena corporativa", date="not a date", price=30,
                   location="OnlyCity", status="SOLD_OUT"),
    ]


class TestParsing:
    """Tests for location and category parsing."""

    def test_parse_location_city_country(self):
        assert parse_location("Bogotá, Colombia") == ("Bogotá", "Colombia")

    def test_parse_location_without_comma(self):
        loc = parse_location("OnlyCity")
        assert loc.city == "OnlyCity"
        assert loc.country == ""

    def test_parse_location_extra_parts_ignored(self):
        assert parse_location(" Palermo , Buenos Aires , Argentina") == ("Palermo", "Buenos Aires")

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Festival de Jazz", EventCategory.FESTIVAL),
            ("Gran CONCIERTO", EventCategory.CONCIERTO),
            ("La obra del año", EventCategory.TEATRO),
            ("Feria artesanal", EventCategory.FERIA),
            ("Noche en el club", EventCategory.DISCOTECA),
            ("Cena corporativa", EventCategory.OTROS),
        ],
    )
    def test_derive_category(self, name, expected):
        assert derive_category(name) is expected

    def test_first_keyword_wins(self):
        """A festival concert is a festival."""
        assert derive_category("Concierto del Festival") is EventCategory.FESTIVAL


class TestFacets:
    """Tests for build_facets."""

    def test_distinct_sorted_values(self, catalog):
        facets = build_facets(catalog)
        assert facets.countries == ["Argentina", "Colombia"]
        assert facets.cities == ["Bogotá", "Buenos Aires", "Medellín"]
        assert facets.cities_by_country == {
            "Argentina": ["Buenos Aires"],
            "Colombia": ["Bogotá", "Medellín"],
        }
        assert facets.categories == sorted(["Festival", "Concierto", "Teatro", "Feria", "Otros"])

    def test_empty(self):
        facets = build_facets([])
        assert facets.countries == []
        assert facets.cities_by_country == {}


class TestApplyFilters:
    """Tests for apply_filters."""

    def test_never_returns_inactive(self, catalog):
        for filters in (Filters(), Filters(country="Colombia"), Filters(max_price=1000)):
            result = apply_filters(catalog, filters)
            assert all(e.status != EventStatus.INACTIVE for e in result)

    def test_no_filters_keeps_everything_else(self, catalog):
        assert [e.id for e in apply_filters(catalog, Filters())] == ["a", "b", "c", "e"]

    def test_country_and_city(self, catalog):
        assert [e.id for e in apply_filters(catalog, Filters(country="Colombia"))] == ["a", "b"]
        assert [e.id for e in apply_filters(catalog, Filters(city="Medellín"))] == ["b"]

    def test_category(self, catalog):
        assert [e.id for e in apply_filters(catalog, Filters(category="Teatro"))] == ["c"]

    def test_price_range(self, catalog):
        result = apply_filters(catalog, Filters(min_price=40, max_price=100))
        assert [e.id for e in result] == ["a", "c"]

    def test_adult_only(self, catalog):
        assert [e.id for e in apply_filters(catalog, Filters(adult_only=True))] == ["a"]

    def test_vendors_match_id_or_name(self, catalog):
        result = apply_filters(catalog, Filters(vendors="v1, sur"))
        assert [e.id for e in result] == ["a", "c"]

    def test_saved_only_uses_favorites(self, catalog):
        result = apply_filters(catalog, Filters(saved_only=True), favorite_ids={"b", "d"})
        assert [e.id for e in result] == ["b"]

    def test_saved_only_without_favorites_is_ignored(self, catalog):
        assert len(apply_filters(catalog, Filters(saved_only=True))) == 4

    def test_date_to_covers_whole_day(self, catalog):
        result = apply_filters(catalog, Filters(date_from=date(2025, 6, 1), date_to=date(2025, 6, 1)))
        # "e" has no parseable date and is never excluded by the range.
        assert [e.id for e in result] == ["b", "e"]

    def test_date_bounds_are_utc_days(self, make_event):
        events = [
            make_event(id="late", date="2025-06-01T23:59:59Z"),
            make_event(id="next", date="2025-06-02T00:00:00Z"),
            make_event(id="before", date="2025-05-31T23:59:59Z"),
        ]
        result = apply_filters(events, Filters(date_from=date(2025, 6, 1), date_to=date(2025, 6, 1)))
        assert [e.id for e in result] == ["late"]

    def test_camel_case_query_keys(self, catalog):
        filters = Filters.model_validate({"minPrice": "100", "adultOnly": "false"})
        assert [e.id for e in apply_filters(catalog, filters)] == ["b"]

    def test_input_not_mutated(self, catalog):
        before = list(catalog)
        apply_filters(catalog, Filters(country="Colombia"))
        assert catalog == before


class TestSort:
    """Tests for sort_events."""

    def test_price_orders(self, catalog):
        assert [e.price for e in sort_events(catalog, SortKey.PRICE_ASC)] == [0, 30, 50, 80, 120]
        assert [e.price for e in sort_events(catalog, "priceDesc")] == [120, 80, 50, 30, 0]

    def test_date_orders_put_unparseable_last(self, catalog):
        assert [e.id for e in sort_events(catalog, SortKey.DATE_ASC)] == ["c", "b", "d", "a", "e"]
        assert [e.id for e in sort_events(catalog, SortKey.DATE_DESC)] == ["a", "d", "b", "c", "e"]

    @pytest.mark.parametrize("key", list(SortKey))
    def test_idempotent(self, catalog, key):
        once = sort_events(catalog, key)
        assert sort_events(once, key) == once

    def test_unknown_key_keeps_order(self, catalog):
        result = sort_events(catalog, "popularity")
        assert result == catalog
        assert result is not catalog


class TestPaginate:
    """Tests for paginate."""

    def test_slices_page(self):
        page = paginate(list(range(10)), 2, 3)
        assert page.items == [3, 4, 5]
        assert (page.total, page.page, page.page_size, page.total_pages) == (10, 2, 3, 4)

    @pytest.mark.parametrize("requested,expected", [(0, 1), (-5, 1), (99, 4)])
    def test_clamps_out_of_range(self, requested, expected):
        page = paginate(list(range(10)), requested, 3)
        assert page.page == expected
        assert page.items

    def test_last_page_is_partial(self):
        assert paginate(list(range(10)), 4, 3).items == [9]

    def test_empty_input_has_one_page(self):
        page = paginate([], 3, 9)
        assert page.items == []
        assert page.total_pages == 1
        assert page.page == 1

    def test_rejects_non_positive_page_size(self):
        with pytest.raises(ValueError):
            paginate([1, 2], 1, 0)


class TestQuickRanges:
    """Tests for the quick date chips."""

    def test_today(self):
        assert today_range(date(2025, 6, 4)) == (date(2025, 6, 4), date(2025, 6, 4))

    def test_weekend_from_midweek(self):
        assert weekend_range(date(2025, 6, 4)) == (date(2025, 6, 7), date(2025, 6, 8))

    def test_weekend_on_saturday(self):
        assert weekend_range(date(2025, 6, 7)) == (date(2025, 6, 7), date(2025, 6, 8))
