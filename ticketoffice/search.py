"""Debounced event search where each new request supersedes the previous one."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field

from ticketoffice.http import CancelToken, HttpError, RequestCancelled, Sleep, user_message
from ticketoffice.models import SearchEvent, SearchEventParams
from ticketoffice.services.events import EventService

log = logging.getLogger(__name__)


class SearchState(BaseModel):
    events: list[SearchEvent] = Field(default_factory=list)
    has_events_in_your_city: bool = False
    loading: bool = False
    error: str | None = None
    searched: bool = False
    current_page: int = 0
    total_pages: int = 0
    page_size: int = 9

    @property
    def has_more(self) -> bool:
        return self.current_page < self.total_pages - 1


class EventSearch:
    """Cancel-and-replace search session.

    Every call to :meth:`search` cancels the request still in flight and bumps
    a generation counter; a response is applied only if its generation is
    still the latest, so a slow stale response can never overwrite a newer
    one. Filter changes are debounced, page changes are not.
    """

    def __init__(
        self,
        events: EventService,
        *,
        country: str = "",
        city: str | None = None,
        query: str | None = None,
        page_size: int = 9,
        debounce_ms: float = 300,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._events = events
        self._debounce_ms = debounce_ms
        self._sleep = sleep
        self._generation = 0
        self._token: CancelToken | None = None
        self.params = SearchEventParams(
            country=country, city=city, query=query, page_size=page_size, page_number=0
        )
        self.state = SearchState(page_size=page_size)

    @property
    def generation(self) -> int:
        return self._generation

    def _supersede(self) -> tuple[int, CancelToken]:
        if self._token is not None:
            self._token.cancel()
        self._generation += 1
        self._token = CancelToken()
        return self._generation, self._token

    async def search(self, **overrides: Any) -> SearchState | None:
        """Search with *overrides* applied to the current parameters.

        The page resets to 0 unless ``page_number`` is given. Returns the new
        state, or ``None`` when this search was superseded or cancelled.
        """
        page_only = set(overrides) == {"page_number"}
        params = self.params.model_copy(
            update={**overrides, "page_number": overrides.get("page_number", 0)}
        )
        return await self._execute(params, immediate=page_only)

    async def set_page(self, page: int) -> SearchState | None:
        return await self._execute(
            self.params.model_copy(update={"page_number": page}), immediate=True
        )

    async def _execute(self, params: SearchEventParams, *, immediate: bool) -> SearchState | None:
        generation, token = self._supersede()

        if not immediate and self._debounce_ms > 0:
            await self._sleep(self._debounce_ms / 1000)
            if generation != self._generation:
                return None

        self.state.loading = True
        self.state.error = None
        try:
            log.debug("search generation=%d params=%s", generation, params.to_query())
            response = await self._events.search_events(params, signal=token)
        except RequestCancelled:
            return None
        except (HttpError, httpx.TransportError) as exc:
            if generation != self._generation:
                return None
            log.error("search failed: %s", exc)
            self.state.error = user_message(exc)
            self.state.events = []
            self.state.loading = False
            return self.state

        if generation != self._generation:
            return None

        self.state = SearchState(
            events=response.events,
            has_events_in_your_city=response.has_events_in_your_city,
            loading=False,
            error=None,
            searched=True,
            current_page=response.current_page,
            total_pages=response.total_pages,
            page_size=params.page_size,
        )
        self.params = params
        log.debug(
            "search applied generation=%d count=%d pages=%d",
            generation, len(response.events), response.total_pages,
        )
        return self.state

    def clear_results(self) -> None:
        self.state = SearchState(page_size=self.params.page_size)

    def clear_error(self) -> None:
        self.state.error = None

    def close(self) -> None:
        """Cancel whatever is in flight; later responses are discarded."""
        self._supersede()
        self.state.loading = False
