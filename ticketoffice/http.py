"""Async JSON HTTP client with bearer injection, linear-backoff retries, and cancellation."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping

import httpx
from pydantic import ValidationError

log = logging.getLogger(__name__)

TokenProvider = Callable[[], "str | None"]
Sleep = Callable[[float], Awaitable[None]]

METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})


class HttpError(Exception):
    """Non-2xx response from the remote API."""

    def __init__(
        self,
        url: str,
        status: int,
        status_text: str,
        details: Any = None,
    ) -> None:
        super().__init__(f"HTTP {status} {status_text}")
        self.url = url
        self.status = status
        self.status_text = status_text
        self.details = details

    @property
    def retryable(self) -> bool:
        return self.status == 429 or self.is_server_error

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status < 600

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def is_unauthorized(self) -> bool:
        return self.status == 401

    @property
    def is_forbidden(self) -> bool:
        return self.status == 403


class RequestCancelled(Exception):
    """The request's cancel token fired. Callers treat this as a no-op."""

    def __init__(self, url: str) -> None:
        super().__init__(f"request to {url} was cancelled")
        self.url = url


class CancelToken:
    """One-shot cancellation signal shared between a caller and a request."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


def user_message(exc: BaseException) -> str:
    """Map any error raised by the client to a sentence fit for end users."""
    if isinstance(exc, HttpError):
        if exc.status == 400:
            return "The request is not valid. Check the data and try again."
        if exc.is_unauthorized:
            return "Your session has expired. Please log in again."
        if exc.is_forbidden:
            return "You do not have permission to perform this action."
        if exc.is_not_found:
            return "The requested resource was not found."
        if exc.status == 409:
            return "The action conflicts with the current state. Refresh and try again."
        if exc.status == 429:
            return "Too many requests. Please wait a moment and try again."
        if exc.is_server_error:
            return "The server could not complete the action. Please try again."
    if isinstance(exc, httpx.TransportError):
        return "Could not reach the server. Check your connection and try again."
    if isinstance(exc, (ValidationError, KeyError)):
        return "The server sent an unexpected response. Please try again later."
    return "Could not complete the action. Please try again."


def _is_json(resp: httpx.Response) -> bool:
    return "application/json" in resp.headers.get("content-type", "")


def _read_details(resp: httpx.Response) -> Any:
    if _is_json(resp):
        try:
            return resp.json()
        except ValueError:
            return None
    return resp.text or None


class HttpClient:
    """JSON client over :class:`httpx.AsyncClient`.

    The bearer token is pulled from *token_provider* on every request; pass
    ``None`` to send anonymous requests. Only 429, 5xx and transport failures
    are retried, waiting ``retry_delay_ms * attempt`` between attempts; the
    per-request ``retry_delay_ms`` overrides the client-wide default.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        token_provider: TokenProvider | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_delay_ms: float = 300,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token_provider = token_provider
        self._timeout = timeout
        self._transport = transport
        self._retry_delay_ms = retry_delay_ms
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_token_provider(self, provider: TokenProvider | None) -> None:
        self._token_provider = provider

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _url(self, url: str) -> str:
        if url.startswith(("http://", "https://")) or not self._base_url:
            return url
        return f"{self._base_url}/{url.lstrip('/')}"

    def _headers(self, extra: Mapping[str, str] | None) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    async def _until_cancelled(
        self, aw: Awaitable[Any], signal: CancelToken | None, url: str
    ) -> Any:
        """Await *aw*, raising :class:`RequestCancelled` if *signal* fires first."""
        if signal is None:
            return await aw
        if signal.cancelled:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise RequestCancelled(url)

        work = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(signal.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not work.done():
                work.cancel()
                await asyncio.gather(work, return_exceptions=True)
        if work.cancelled():
            raise RequestCancelled(url)
        return work.result()

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        retries: int = 0,
        retry_delay_ms: float | None = None,
        signal: CancelToken | None = None,
    ) -> Any:
        """Send a JSON request and return the decoded body.

        Returns ``None`` for 204, parsed JSON for JSON responses and text
        otherwise. Raises :class:`HttpError` for non-2xx responses once
        retries are exhausted, the original ``httpx.TransportError`` for
        transport failures, and :class:`RequestCancelled` when *signal* fires.
        """
        method = method.upper()
        if method not in METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        delay_ms = self._retry_delay_ms if retry_delay_ms is None else retry_delay_ms
        target = self._url(url)
        client = await self._ensure_client()
        attempt = 0

        while True:
            try:
                resp = await self._until_cancelled(
                    client.request(
                        method,
                        target,
                        json=json,
                        params=params,
                        headers=self._headers(headers),
                    ),
                    signal,
                    target,
                )
            except httpx.TransportError as exc:
                if attempt < retries:
                    attempt += 1
                    log.warning(
                        "%s %s transport error (%s); retry %d/%d",
                        method, target, exc, attempt, retries,
                    )
                    await self._until_cancelled(
                        self._sleep(delay_ms * attempt / 1000), signal, target
                    )
                    continue
                raise

            if not resp.is_success:
                details = _read_details(resp)
                error = HttpError(target, resp.status_code, resp.reason_phrase, details)
                if error.retryable and attempt < retries:
                    attempt += 1
                    log.warning(
                        "%s %s -> %d; retry %d/%d",
                        method, target, resp.status_code, attempt, retries,
                    )
                    await self._until_cancelled(
                        self._sleep(delay_ms * attempt / 1000), signal, target
                    )
                    continue
                log.debug("%s %s -> %d", method, target, resp.status_code)
                raise error

            if resp.status_code == 204:
                return None
            if _is_json(resp):
                return resp.json()
            return resp.text

    async def get(self, url: str, **kwargs: Any) -> Any:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.request("POST", url, json=body, **kwargs)

    async def put(self, url: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.request("PUT", url, json=body, **kwargs)

    async def patch(self, url: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.request("PATCH", url, json=body, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", url, **kwargs)
