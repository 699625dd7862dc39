"""Ticket office backend-for-frontend."""

import logging
from contextlib import asynccontextmanager
from datetime import date

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError

from ticketoffice.client import TicketOffice
from ticketoffice.config import get_settings
from ticketoffice.filters import apply_filters, build_facets, paginate, sort_events
from ticketoffice.http import HttpError, user_message
from ticketoffice.models import (
    ApiModel,
    ContactForm,
    Filters,
    SearchEvent,
    SearchEventParams,
    SessionData,
    SortKey,
)
from ticketoffice.permissions import can_access
from ticketoffice.sanitize import is_uuid
from ticketoffice.validation import buyer_errors, meets_basic_password_rules

log = logging.getLogger(__name__)

ROLE_COOKIE = "role"
ROLE_COOKIE_MAX_AGE = 60 * 60 * 24 * 30
# Remote search page pulled before local filtering.
FETCH_SIZE = 100


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with TicketOffice() as office:
        app.state.office = office
        yield


app = FastAPI(title="Ticket Office", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_settings().app_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def role_gate(request: Request, call_next):
    """Send visitors away from pages their role cookie does not allow."""
    role = request.cookies.get(ROLE_COOKIE)
    if not can_access(role, request.url.path):
        log.info("Blocked %s for role=%s", request.url.path, role or "-")
        return RedirectResponse("/", status_code=307)
    return await call_next(request)


@app.exception_handler(HttpError)
async def upstream_error(request: Request, exc: HttpError):
    status = 502 if exc.is_server_error else exc.status
    log.warning("Upstream %s -> %d", exc.url, exc.status)
    return JSONResponse(status_code=status, content={"detail": user_message(exc)})


@app.exception_handler(httpx.TransportError)
async def upstream_unreachable(request: Request, exc: httpx.TransportError):
    log.error("Upstream unreachable: %s", exc)
    return JSONResponse(status_code=502, content={"detail": user_message(exc)})


def get_office(request: Request) -> TicketOffice:
    return request.app.state.office


class FavoriteToggle(ApiModel):
    event_id: str


class Credentials(ApiModel):
    username: str
    password: str
    remember: bool = False


class SignUp(Credentials):
    email: str


def _set_role_cookie(response: Response, request: Request, role: str | None, remember: bool) -> None:
    """Mirror the session role into the cookie read by the role gate."""
    if role is None:
        response.delete_cookie(ROLE_COOKIE, path="/")
        return
    response.set_cookie(
        ROLE_COOKIE,
        role,
        max_age=ROLE_COOKIE_MAX_AGE if remember else None,
        path="/",
        samesite="lax",
        secure=request.url.scheme == "https",
    )


async def _search(office: TicketOffice, country: str, city: str | None, q: str | None):
    return await office.events.search_events(
        SearchEventParams(country=country, city=city, query=q, page_size=FETCH_SIZE)
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/events")
async def list_events(
    country: str = "",
    city: str | None = None,
    q: str | None = None,
    category: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    saved_only: bool = False,
    min_price: float | None = None,
    max_price: float | None = None,
    adult_only: bool = False,
    vendors: str | None = None,
    sort: SortKey = SortKey.DATE_ASC,
    page: int = 1,
    per_page: int = Query(9, ge=1, le=100),
    office: TicketOffice = Depends(get_office),
):
    """Search upstream, then filter, sort and paginate locally."""
    response = await _search(office, country, city, q)
    filters = Filters(
        city=city,
        category=category,
        date_from=date_from,
        date_to=date_to,
        saved_only=saved_only,
        min_price=min_price,
        max_price=max_price,
        adult_only=adult_only,
        vendors=vendors or [],
    )
    favorite_ids = await office.favorites.ids() if saved_only else None
    events: list[SearchEvent] = sort_events(
        apply_filters(response.events, filters, favorite_ids), sort
    )
    result = paginate(events, page, per_page)

    return {
        "events": [e.to_api() for e in result.items],
        "total": result.total,
        "page": result.page,
        "per_page": result.page_size,
        "pages": result.total_pages,
        "hasEventsInYourCity": response.has_events_in_your_city,
    }


@app.get("/api/events/facets")
async def event_facets(
    country: str = "",
    office: TicketOffice = Depends(get_office),
):
    response = await _search(office, country, None, None)
    return build_facets(response.events).model_dump()


@app.get("/api/events/{event_id}")
async def get_event(event_id: str, office: TicketOffice = Depends(get_office)):
    """Get a single public event by ID."""
    if not is_uuid(event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    event = await office.events.get_public_by_id(event_id)
    return event.to_api()


@app.post("/api/auth/login")
async def login(
    body: Credentials,
    request: Request,
    response: Response,
    office: TicketOffice = Depends(get_office),
):
    result = await office.auth.login(body.username, body.password, body.remember)
    _set_role_cookie(response, request, result.user.role, body.remember)
    return {"user": result.user.to_api()}


@app.post("/api/auth/register")
async def register(
    body: SignUp,
    request: Request,
    response: Response,
    office: TicketOffice = Depends(get_office),
):
    """Sign up; the session is opened only when the API logs the user in."""
    if not meets_basic_password_rules(body.password):
        raise HTTPException(
            status_code=422,
            detail="The password needs 8 characters with upper and lower case letters and a digit.",
        )
    try:
        user = await office.auth.register(body.username, body.password, body.email, body.remember)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if user is not None:
        _set_role_cookie(response, request, user.role, body.remember)
    return {"user": user.to_api() if user else None}


@app.get("/api/auth/me")
async def whoami(request: Request, office: TicketOffice = Depends(get_office)):
    user = await office.auth.me()
    if user is None:
        response = JSONResponse(status_code=401, content={"detail": "Not logged in"})
        _set_role_cookie(response, request, None, False)
        return response
    response = JSONResponse(content={"user": user.to_api()})
    _set_role_cookie(response, request, user.role, office.auth.remembered)
    return response


@app.post("/api/auth/logout")
async def logout(
    request: Request,
    response: Response,
    office: TicketOffice = Depends(get_office),
):
    await office.auth.logout()
    _set_role_cookie(response, request, None, False)
    return {"ok": True}


@app.post("/api/contact", status_code=202)
async def contact(body: ContactForm, office: TicketOffice = Depends(get_office)):
    try:
        await office.contact.submit(body)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail="Check the contact form fields.") from exc
    return {"ok": True}


@app.post("/api/checkout/{session_id}/data")
async def checkout_data(
    session_id: str,
    body: SessionData,
    office: TicketOffice = Depends(get_office),
):
    """Check buyers against the saved region rules, then attach them to the session."""
    saved = await office.region_store.load()
    errors = [buyer_errors(b, saved.config if saved else None) for b in body.buyer]
    if any(errors):
        return JSONResponse(status_code=422, content={"detail": {"buyer": errors}})
    info = await office.checkout.add_session_data(session_id, body)
    return info.to_api()


@app.get("/api/favorites")
async def list_favorites(office: TicketOffice = Depends(get_office)):
    return {"ids": sorted(await office.favorites.ids())}


@app.post("/api/favorites")
async def toggle_favorite(body: FavoriteToggle, office: TicketOffice = Depends(get_office)):
    favorite = await office.favorites.toggle(body.event_id)
    return {"eventId": body.event_id, "favorite": favorite}


@app.delete("/api/favorites/{event_id}")
async def remove_favorite(event_id: str, office: TicketOffice = Depends(get_office)):
    await office.favorites.set_favorite(event_id, False)
    return {"eventId": event_id, "favorite": False}


@app.get("/events/{event_id}")
async def event_page(event_id: str, office: TicketOffice = Depends(get_office)):
    """Data for the public event page; malformed ids go back home."""
    if not is_uuid(event_id):
        return RedirectResponse("/", status_code=307)
    event = await office.events.get_public_by_id(event_id)
    try:
        recommendations = await office.events.get_recommendations(event_id)
    except HttpError as exc:
        log.warning("Recommendations unavailable for %s: %s", event_id, exc)
        recommendations = []
    return {
        "event": event.to_api(),
        "recommendations": [r.to_api() for r in recommendations],
    }
