"""Tests for the JSON HTTP client: retries, errors, auth header, cancellation."""

import asyncio
import json

import httpx
import pytest

from ticketoffice.http import CancelToken, HttpClient, HttpError, RequestCancelled, user_message

API = "http://api.test"


def _send(client, method, url, **kwargs):
    async def go():
        async with client:
            return await client.request(method, url, **kwargs)

    return asyncio.run(go())


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


class TestRetry:
    """Tests for the bounded linear-backoff retry loop."""

    def test_recovers_within_retry_budget(self, fake_api):
        """Two 5xx then a 200 with retries=2 returns the payload after 3 attempts."""
        fake_api.add(
            "GET", "/x",
            httpx.Response(500), httpx.Response(503), httpx.Response(200, json={"ok": True}),
        )
        client = HttpClient(API, transport=fake_api.transport, sleep=RecordingSleep())

        assert _send(client, "GET", "/x", retries=2) == {"ok": True}
        assert len(fake_api.calls("GET", "/x")) == 3

    def test_gives_up_when_budget_exhausted(self, fake_api):
        """The same sequence with retries=1 raises after 2 attempts."""
        fake_api.add(
            "GET", "/x",
            httpx.Response(500), httpx.Response(503), httpx.Response(200, json={"ok": True}),
        )
        client = HttpClient(API, transport=fake_api.transport, sleep=RecordingSleep())

        with pytest.raises(HttpError) as info:
            _send(client, "GET", "/x", retries=1)
        assert info.value.status == 503
        assert len(fake_api.calls("GET", "/x")) == 2

    def test_client_error_is_not_retried(self, fake_api):
        """A 404 fails on the first attempt even with retries left."""
        fake_api.add("GET", "/missing", httpx.Response(404, json={"message": "nope"}))
        client = HttpClient(API, transport=fake_api.transport, sleep=RecordingSleep())

        with pytest.raises(HttpError) as info:
            _send(client, "GET", "/missing", retries=3)
        assert info.value.status == 404
        assert info.value.is_not_found
        assert info.value.details == {"message": "nope"}
        assert len(fake_api.requests) == 1

    def test_rate_limit_is_retried(self, fake_api):
        fake_api.add("GET", "/x", httpx.Response(429), httpx.Response(200, json=[1]))
        client = HttpClient(API, transport=fake_api.transport, sleep=RecordingSleep())

        assert _send(client, "GET", "/x", retries=1) == [1]

    def test_backoff_is_linear(self, fake_api):
        """Waits retry_delay_ms * attempt between attempts."""
        fake_api.add("GET", "/x", httpx.Response(500))
        sleep = RecordingSleep()
        client = HttpClient(API, transport=fake_api.transport, sleep=sleep)

        with pytest.raises(HttpError):
            _send(client, "GET", "/x", retries=3, retry_delay_ms=100)
        assert sleep.delays == [0.1, 0.2, 0.3]

    def test_client_default_delay_applies(self, fake_api):
        fake_api.add("GET", "/x", httpx.Response(502), httpx.Response(204))
        sleep = RecordingSleep()
        client = HttpClient(API, transport=fake_api.transport, retry_delay_ms=50, sleep=sleep)

        assert _send(client, "GET", "/x", retries=1) is None
        assert sleep.delays == [0.05]

    def test_transport_error_retried_then_reraised(self, fake_api):
        """Network failures retry like 5xx and surface as the original exception."""
        fake_api.add("GET", "/x", httpx.ConnectError("down"))
        client = HttpClient(API, transport=fake_api.transport, sleep=RecordingSleep())

        with pytest.raises(httpx.ConnectError):
            _send(client, "GET", "/x", retries=2)
        assert len(fake_api.requests) == 3

    def test_transport_error_recovers(self, fake_api):
        fake_api.add("GET", "/x", httpx.ConnectError("down"), httpx.Response(200, json={"a": 1}))
        client = HttpClient(API, transport=fake_api.transport, sleep=RecordingSleep())

        assert _send(client, "GET", "/x", retries=1) == {"a": 1}


class TestResponses:
    """Tests for request encoding and response decoding."""

    def test_no_content_returns_none(self, fake_api):
        fake_api.add("DELETE", "/x", httpx.Response(204))
        client = HttpClient(API, transport=fake_api.transport)

        assert _send(client, "DELETE", "/x") is None

    def test_text_body_returned_as_text(self, fake_api):
        fake_api.add("GET", "/x", httpx.Response(200, text="pong"))
        client = HttpClient(API, transport=fake_api.transport)

        assert _send(client, "GET", "/x") == "pong"

    def test_text_error_details(self, fake_api):
        fake_api.add("GET", "/x", httpx.Response(400, text="bad input"))
        client = HttpClient(API, transport=fake_api.transport)

        with pytest.raises(HttpError) as info:
            _send(client, "GET", "/x")
        assert info.value.details == "bad input"
        assert info.value.url == f"{API}/x"

    def test_json_body_and_default_headers(self, fake_api):
        fake_api.add("POST", "/items", httpx.Response(201, json={"id": "1"}))
        client = HttpClient(API, transport=fake_api.transport)

        assert _send(client, "POST", "/items", json={"name": "x"}) == {"id": "1"}
        sent = fake_api.requests[0]
        assert json.loads(sent.content) == {"name": "x"}
        assert sent.headers["Accept"] == "application/json"
        assert sent.headers["Content-Type"] == "application/json"
        assert "Authorization" not in sent.headers

    def test_bearer_token_from_provider(self, fake_api):
        """The provider is read on every request."""
        fake_api.add("GET", "/me", httpx.Response(200, json={}))
        tokens = iter(["first", "second"])
        client = HttpClient(API, transport=fake_api.transport, token_provider=lambda: next(tokens))

        async def go():
            async with client:
                await client.get("/me")
                await client.get("/me")

        asyncio.run(go())
        assert [r.headers["Authorization"] for r in fake_api.requests] == [
            "Bearer first",
            "Bearer second",
        ]

    def test_caller_headers_override(self, fake_api):
        fake_api.add("GET", "/x", httpx.Response(200, json={}))
        client = HttpClient(API, transport=fake_api.transport, token_provider=lambda: "t")

        _send(client, "GET", "/x", headers={"Authorization": "Basic abc"})
        assert fake_api.requests[0].headers["Authorization"] == "Basic abc"

    def test_query_params_sent(self, fake_api):
        fake_api.add("GET", "/search", httpx.Response(200, json=[]))
        client = HttpClient(API, transport=fake_api.transport)

        _send(client, "GET", "/search", params={"country": "COL"})
        assert fake_api.requests[0].url.params["country"] == "COL"

    def test_unknown_method_rejected(self):
        client = HttpClient(API)
        with pytest.raises(ValueError):
            _send(client, "TRACE", "/x")


class TestCancellation:
    """Tests for cancel tokens."""

    def test_cancelled_before_send(self, fake_api):
        """A fired token stops the request before anything is sent."""
        fake_api.add("GET", "/x", httpx.Response(200, json={}))
        client = HttpClient(API, transport=fake_api.transport)
        token = CancelToken()
        token.cancel()

        with pytest.raises(RequestCancelled):
            _send(client, "GET", "/x", signal=token)
        assert fake_api.requests == []

    def test_cancelled_while_in_flight(self):
        async def go():
            token = CancelToken()

            async def handler(request):
                token.cancel()
                await asyncio.sleep(10)
                return httpx.Response(200, json={})

            client = HttpClient(API, transport=httpx.MockTransport(handler))
            async with client:
                return await client.get("/slow", signal=token)

        with pytest.raises(RequestCancelled):
            asyncio.run(go())

    def test_cancelled_during_backoff_is_not_retried(self, fake_api):
        fake_api.add("GET", "/x", httpx.Response(500), httpx.Response(200, json={}))
        token = CancelToken()

        async def sleep(seconds):
            token.cancel()
            await asyncio.sleep(0)

        client = HttpClient(API, transport=fake_api.transport, sleep=sleep)
        with pytest.raises(RequestCancelled):
            _send(client, "GET", "/x", retries=3, signal=token)
        assert len(fake_api.requests) == 1


class TestUserMessage:
    """Tests for mapping errors to user-facing text."""

    @pytest.mark.parametrize(
        "status,fragment",
        [
            (400, "not valid"),
            (401, "session has expired"),
            (403, "permission"),
            (404, "not found"),
            (409, "conflicts"),
            (429, "Too many requests"),
            (503, "server could not complete"),
        ],
    )
    def test_http_statuses(self, status, fragment):
        assert fragment in user_message(HttpError("/x", status, "x"))

    def test_transport_error(self):
        assert "reach the server" in user_message(httpx.ConnectError("down"))

    def test_anything_else(self):
        assert user_message(RuntimeError("boom")) == "Could not complete the action. Please try again."

    def test_malformed_reply(self):
        assert "unexpected response" in user_message(KeyError("token"))
