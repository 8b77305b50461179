"""Async HTTP transport with retries, backoff and cooperative cancellation.

One :class:`Transport` wraps one ``httpx.AsyncClient``.  ``send()`` performs
a single logical JSON request (possibly several attempts); ``open_stream()``
opens one streaming request without retries.
"""

from __future__ import annotations

import asyncio
import email.utils
import logging
import random
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

import httpx

from neorium.config import ClientConfig, require_api_key
from neorium.errors import NeoError

from .cancellation import run_cancellable, sleep_cancellable

_logger = logging.getLogger(__name__)

# Backoff configuration (seconds) -- exponential: 0.25, 0.5, 1, 2, 4, 5, 5...
_BACKOFF_BASE = 0.25
_BACKOFF_CAP = 5.0
_JITTER = 0.2


@dataclass
class TransportResponse:
    """Successful response of :meth:`Transport.send`."""

    status: int
    data: Any
    headers: httpx.Headers | None = None


def backoff_delay(attempt: int, rng: random.Random | None = None) -> float:
    """Delay before retrying after failed *attempt* (1-based)."""
    exp = min(_BACKOFF_CAP, _BACKOFF_BASE * (2 ** max(0, attempt - 1)))
    jitter = (rng or random).random() * _JITTER * exp
    return exp + jitter


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``retry-after`` header (seconds or HTTP-date) into seconds."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    return max(0.0, when.timestamp() - time.time())


def is_retriable_status(status: int) -> bool:
    return status == 408 or status == 429 or 500 <= status <= 599


def read_body(resp: httpx.Response) -> Any:
    """Best-effort body decoding: JSON, else text, else ``None``."""
    try:
        return resp.json()
    except ValueError:
        pass
    try:
        return resp.text
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        return None


def join_url(base_url: str, path: str) -> str:
    return base_url.rstrip("/") + "/" + path.lstrip("/")


class Transport:
    """HTTP transport for the chat-completion API."""

    def __init__(
        self,
        config: ClientConfig,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config
        self._rng = rng or random.Random()

        headers = {
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        }
        if config.user_agent:
            headers["User-Agent"] = config.user_agent

        # Deadlines are enforced by run_cancellable; httpx's own timeouts
        # are kept slightly looser so they only catch stalled sockets.
        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(config.timeout + 1, connect=config.timeout),
            transport=config.transport,
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    def url_for(self, path: str) -> str:
        return join_url(self._config.base_url, path)

    # ------------------------------------------------------------------
    # Request/response
    # ------------------------------------------------------------------

    async def send(
        self,
        path: str,
        method: str = "POST",
        body: Any = None,
        cancel_event: asyncio.Event | None = None,
    ) -> TransportResponse:
        """Send one JSON request with retries.

        Raises
        ------
        NeoError
            ``AUTH`` for 401/403 or a missing key, ``RATE_LIMITED`` when 429
            persists, ``API`` for other non-2xx or a non-JSON body,
            ``NETWORK`` when connection errors persist, ``CANCELLED`` on
            cancellation or timeout (never retried).
        """
        require_api_key(self._config.api_key)
        url = self.url_for(path)
        attempts = self._config.max_retries + 1

        attempt = 0
        while True:
            attempt += 1
            last_attempt = attempt >= attempts
            try:
                resp = await run_cancellable(
                    self._request(method, url, body),
                    cancel_event,
                    self._config.timeout,
                )
            except httpx.TimeoutException as e:
                raise NeoError.cancelled("timeout") from e
            except httpx.TransportError as e:
                if last_attempt:
                    raise NeoError.network(
                        f"Network error while calling API: {e}",
                    ) from e
                delay = backoff_delay(attempt, self._rng)
                _logger.warning(
                    "Network error (attempt %d/%d): %s; retrying in %.2fs",
                    attempt, attempts, e, delay,
                )
                await sleep_cancellable(delay, cancel_event)
                continue

            status = resp.status_code
            if status in (401, 403):
                raise NeoError.auth(
                    "Authentication failed (check NEO_APIKEY).", status=status,
                )

            if status == 429:
                retry_after = parse_retry_after(resp.headers.get("retry-after"))
                if last_attempt:
                    raise NeoError.rate_limited(
                        retry_after=retry_after, body=read_body(resp),
                    )
                delay = (
                    retry_after if retry_after is not None
                    else backoff_delay(attempt, self._rng)
                )
                _logger.warning(
                    "API returned 429 (attempt %d/%d), retrying in %.2fs",
                    attempt, attempts, delay,
                )
                await sleep_cancellable(delay, cancel_event)
                continue

            if not resp.is_success:
                body_data = read_body(resp)
                if is_retriable_status(status) and not last_attempt:
                    delay = backoff_delay(attempt, self._rng)
                    _logger.warning(
                        "API returned %d (attempt %d/%d), retrying in %.2fs",
                        status, attempt, attempts, delay,
                    )
                    await sleep_cancellable(delay, cancel_event)
                    continue
                raise NeoError.api(
                    f"API request failed with status {status}.",
                    status=status, body=body_data,
                )

            try:
                data = resp.json()
            except ValueError:
                raise NeoError.api(
                    "API returned a non-JSON response.",
                    status=status, body=read_body(resp),
                ) from None
            return TransportResponse(status=status, data=data, headers=resp.headers)

    async def _request(self, method: str, url: str, body: Any) -> httpx.Response:
        if body is None:
            return await self._client.request(method, url)
        return await self._client.request(method, url, json=body)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def open_stream(
        self,
        path: str,
        body: Any,
        cancel_event: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """Open a streaming POST and yield the response once headers arrive.

        Not retried: partial output cannot be replayed safely.
        """
        require_api_key(self._config.api_key)
        request = self._client.build_request("POST", self.url_for(path), json=body)
        try:
            resp = await run_cancellable(
                self._client.send(request, stream=True),
                cancel_event,
                timeout,
            )
        except httpx.TimeoutException as e:
            raise NeoError.cancelled("timeout") from e
        except httpx.TransportError as e:
            raise NeoError.network(f"Network error while calling API: {e}") from e

        try:
            if resp.status_code in (401, 403):
                raise NeoError.auth(
                    "Authentication failed (check NEO_APIKEY).",
                    status=resp.status_code,
                )
            if not resp.is_success:
                await resp.aread()
                raise NeoError.api(
                    f"Streaming request failed with status {resp.status_code}.",
                    status=resp.status_code, body=read_body(resp),
                )
            yield resp
        finally:
            await resp.aclose()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Transport:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
