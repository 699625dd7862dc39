"""Command-line front end: python -m ticketoffice [search|facets|favorites|...]."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

import httpx
import typer
from pydantic import ValidationError

from ticketoffice.client import TicketOffice
from ticketoffice.config import get_settings
from ticketoffice.filters import apply_filters, build_facets, paginate, sort_events
from ticketoffice.http import HttpError, user_message
from ticketoffice.models import Filters, SalesFilters, SearchEvent, SearchEventParams, SortKey, parse_iso
from ticketoffice.permissions import visible_nav
from ticketoffice.region import RegionalFormat
from ticketoffice.services.sales import to_csv

log = logging.getLogger(__name__)

T = TypeVar("T")

# Remote search page pulled before local filtering.
FETCH_SIZE = 100

app = typer.Typer(help="Ticket office storefront toolkit")
favorites_app = typer.Typer(help="Manage favorite events.")
app.add_typer(favorites_app, name="favorites")


def _office() -> TicketOffice:
    return TicketOffice()


def _run(work: Callable[[TicketOffice], Awaitable[T]]) -> T:
    """Run *work* inside an open office; API failures and malformed replies exit with status 1."""

    async def runner() -> T:
        async with _office() as office:
            return await work(office)

    try:
        return asyncio.run(runner())
    except (HttpError, httpx.TransportError, ValidationError, KeyError) as exc:
        log.debug("command failed: %r", exc)
        typer.echo(f"Error: {user_message(exc)}", err=True)
        raise typer.Exit(1) from exc


async def _fetch(office: TicketOffice, country: str, city: str | None, query: str | None) -> list[SearchEvent]:
    params = SearchEventParams(
        country=country, city=city, query=query, page_size=FETCH_SIZE, page_number=0
    )
    response = await office.events.search_events(params)
    return response.events


def _event_line(event: SearchEvent, fmt: RegionalFormat) -> str:
    when = fmt.format_datetime(event.date) if parse_iso(event.date) else "-"
    price = fmt.format_price(event.price, event.currency or None)
    return f"{event.id}  {when}  {event.name}  ({event.location})  {price}  {event.status.value}"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def search(
    country: str = typer.Option(..., "--country", "-c", help="Country code, e.g. COL."),
    city: str | None = typer.Option(None, "--city"),
    query: str | None = typer.Option(None, "--query", "-q"),
    category: str | None = typer.Option(None, "--category"),
    date_from: datetime | None = typer.Option(None, "--from", formats=["%Y-%m-%d"]),
    date_to: datetime | None = typer.Option(None, "--to", formats=["%Y-%m-%d"]),
    min_price: float | None = typer.Option(None, "--min-price"),
    max_price: float | None = typer.Option(None, "--max-price"),
    adult_only: bool = typer.Option(False, "--adult-only"),
    saved_only: bool = typer.Option(False, "--saved-only"),
    vendor: list[str] | None = typer.Option(None, "--vendor", help="Vendor id or name."),
    sort: SortKey = typer.Option(SortKey.DATE_ASC, "--sort"),
    page: int = typer.Option(1, "--page", "-p"),
    page_size: int | None = typer.Option(None, "--page-size", min=1),
) -> None:
    """Search events, then filter, sort and paginate them locally."""
    filters = Filters(
        city=city,
        category=category,
        date_from=date_from.date() if date_from else None,
        date_to=date_to.date() if date_to else None,
        min_price=min_price,
        max_price=max_price,
        adult_only=adult_only,
        saved_only=saved_only,
        vendors=vendor or [],
    )

    async def work(office: TicketOffice):
        events = await _fetch(office, country, city, query)
        favorite_ids = await office.favorites.ids() if saved_only else None
        fmt = RegionalFormat.from_saved(await office.region_store.load())
        size = page_size or office.settings.search_page_size
        matched = sort_events(apply_filters(events, filters, favorite_ids), sort)
        return paginate(matched, page, size), fmt

    result, fmt = _run(work)
    if not result.items:
        typer.echo("No events found.")
        return
    for event in result.items:
        typer.echo(_event_line(event, fmt))
    typer.echo(f"Page {result.page}/{result.total_pages} ({result.total} event(s))")


@app.command()
def facets(
    country: str = typer.Option(..., "--country", "-c"),
) -> None:
    """Show the countries, cities and categories present in a search."""
    events = _run(lambda office: _fetch(office, country, None, None))
    found = build_facets(events)
    typer.echo("Countries: " + (", ".join(found.countries) or "-"))
    for name, cities in sorted(found.cities_by_country.items()):
        typer.echo(f"  {name}: {', '.join(cities) or '-'}")
    typer.echo("Categories: " + (", ".join(found.categories) or "-"))


@favorites_app.command(name="list")
def favorites_list() -> None:
    """List favorite event ids."""
    ids = _run(lambda office: office.favorites.ids())
    if not ids:
        typer.echo("No favorites yet.")
        return
    for event_id in sorted(ids):
        typer.echo(f"  {event_id}")


@favorites_app.command(name="add")
def favorites_add(event_id: str = typer.Argument(help="Event id")) -> None:
    _run(lambda office: office.favorites.set_favorite(event_id, True))
    typer.echo(f"Saved {event_id}.")


@favorites_app.command(name="remove")
def favorites_remove(event_id: str = typer.Argument(help="Event id")) -> None:
    _run(lambda office: office.favorites.set_favorite(event_id, False))
    typer.echo(f"Removed {event_id}.")


@app.command()
def login(
    username: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    remember: bool = typer.Option(True, "--remember/--no-remember"),
) -> None:
    """Log in and, by default, remember the session."""
    result = _run(lambda office: office.auth.login(username, password, remember))
    typer.echo(f"Logged in as {result.user.username} ({result.user.role}).")


@app.command()
def logout() -> None:
    _run(lambda office: office.auth.logout())
    typer.echo("Logged out.")


@app.command()
def whoami() -> None:
    """Show the remembered user and the backoffice sections they can open."""

    async def work(office: TicketOffice):
        return await office.auth.me()

    user = _run(work)
    if user is None:
        typer.echo("Not logged in.")
        raise typer.Exit(1)
    typer.echo(f"{user.username} <{user.email or '-'}> role={user.role}")
    for item in visible_nav(user.role):
        typer.echo(f"  {item.label}" + (f"  {item.href}" if item.href else ""))
        for child in item.children:
            typer.echo(f"    {child.label}  {child.href}")


@app.command()
def validate(session_id: str = typer.Argument(help="Ticket / checkout session code")) -> None:
    """Validate a ticket at the door."""
    result = _run(lambda office: office.validator.validate(session_id))
    typer.echo(result.message)
    if not result.success:
        raise typer.Exit(1)


@app.command(name="sales-csv")
def sales_csv(
    date_from: datetime | None = typer.Option(None, "--from", formats=["%Y-%m-%d"]),
    date_to: datetime | None = typer.Option(None, "--to", formats=["%Y-%m-%d"]),
    event_id: str | None = typer.Option(None, "--event"),
    seller_id: str | None = typer.Option(None, "--seller"),
    query: str | None = typer.Option(None, "--query", "-q"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write to a file instead of stdout."),
) -> None:
    """Export sales as CSV."""
    filters = SalesFilters(
        date_from=date_from.date() if date_from else None,
        date_to=date_to.date() if date_to else None,
        event_id=event_id,
        seller_id=seller_id,
        query=query,
    )
    rows = _run(lambda office: office.sales.list(filters))
    text = to_csv(rows)
    if output is None:
        typer.echo(text)
        return
    output.write_text(text + "\n", encoding="utf-8")
    typer.echo(f"Wrote {len(rows)} sale(s) to {output}.")
