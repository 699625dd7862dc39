"""Shared fixtures: a scripted upstream API, isolated settings and storage."""

import httpx
import pytest

from ticketoffice.client import TicketOffice
from ticketoffice.config import Settings
from ticketoffice.models import SearchEvent

API = "http://api.test"


class FakeApi:
    """Scripted upstream keyed by (method, path).

    Responses queued for a route are served in order; the last one keeps
    being served. Exceptions in the queue are raised instead. Every request
    is recorded.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, *responses):
        self.routes.setdefault((method.upper(), path), []).extend(responses)
        return self

    def handler(self, request):
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": "no route"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    @property
    def transport(self):
        return httpx.MockTransport(self.handler)

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path]


@pytest.fixture
def fake_api():
    return FakeApi()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        api_base_url=API,
        app_url="https://shop.test",
        storage_path=tmp_path / "storage.db",
        http_retry_delay_ms=0,
        search_debounce_ms=0,
    )


@pytest.fixture
def office(settings, fake_api):
    return TicketOffice(settings, transport=fake_api.transport)


@pytest.fixture
def make_event():
    def factory(**overrides):
        data = {
            "id": "e1",
            "name": "Concierto de Rock",
            "date": "2025-06-01T20:00:00Z",
            "location": "Bogotá, Colombia",
            "price": 100,
            "currency": "COP",
            "status": "ACTIVE",
        }
        data.update(overrides)
        return SearchEvent(**data)

    return factory


def search_payload(*events, total_pages=1, in_city=True):
    """Upstream search body for the given event dicts."""
    return {
        "events": list(events),
        "hasEventsInYourCity": in_city,
        "totalPages": total_pages,
        "currentPage": 0,
        "pageSize": 9,
    }


@pytest.fixture
def payload():
    return search_payload
