"""Shared async HTTP helper used by the registry and tarball clients.

Encapsulates the bounded immediate-retry loop so both clients share one
definition of what a failed attempt is. Each attempt is reported through
an optional ``on_attempt(url, attempt, outcome)`` hook and tallied in
``stats``.
"""
from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Any, Callable, Optional, Tuple

import aiohttp

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from graph.errors import TooManyFailures

logger = logging.getLogger(__name__)

AttemptHook = Callable[[str, int, str], None]

OUTCOME_OK = "ok"
OUTCOME_NOT_FOUND = "not_found"
OUTCOME_HTTP_ERROR = "http_error"
OUTCOME_TRANSPORT_ERROR = "transport_error"
OUTCOME_BAD_BODY = "bad_body"


class HttpClient:
    """Thin aiohttp wrapper with retry accounting."""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        *,
        timeout: Optional[float] = None,
        max_tries: Optional[int] = None,
        on_attempt: Optional[AttemptHook] = None,
    ):
        """Initialize the client.

        Args:
            session: Externally owned session; when omitted one is created
                on ``start()`` and closed on ``stop()``.
            timeout: Per-request timeout in seconds.
            max_tries: Attempt ceiling per request.
            on_attempt: Observability hook called after every attempt.
        """
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout if timeout is not None else Constants.REQUEST_TIMEOUT
        self.max_tries = max_tries if max_tries is not None else Constants.MAX_TRIES
        self.on_attempt = on_attempt
        self.stats: Counter = Counter()

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                connector=aiohttp.TCPConnector(limit=Constants.MAX_CONCURRENCY),
                headers={"User-Agent": Constants.USER_AGENT},
            )
            self._owns_session = True

    async def stop(self) -> None:
        """Stop the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "HttpClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    async def _get(self, url: str, headers: Optional[dict] = None) -> Tuple[int, bytes]:
        """Issue one GET and return (status, body)."""
        if self._session is None:
            await self.start()
        if self._session is None:
            raise RuntimeError("HTTP session is not started")
        async with self._session.get(url, headers=headers) as response:
            body = await response.read()
            return response.status, body

    def _record(self, url: str, attempt: int, outcome: str) -> None:
        self.stats["attempts"] += 1
        self.stats[outcome] += 1
        if self.on_attempt is not None:
            self.on_attempt(url, attempt, outcome)

    async def fetch(
        self,
        url: str,
        *,
        not_found: Callable[[], Exception],
        parse: Optional[Callable[[bytes], Any]] = None,
        headers: Optional[dict] = None,
        context: str = "http",
    ) -> Any:
        """GET ``url`` with immediate retry up to ``max_tries`` attempts.

        A 404 raises ``not_found()`` at once. Any other non-2xx status, a
        transport exception, or a body that ``parse`` rejects (raises
        ``ValueError`` or returns something falsy) is a failed attempt.

        Returns:
            The parsed body (raw bytes when ``parse`` is omitted).

        Raises:
            TooManyFailures: when every attempt failed.
        """
        safe_target = safe_url(url)
        self.stats["requests"] += 1
        last_error: Optional[str] = None
        last_status: Optional[int] = None

        for attempt in range(1, self.max_tries + 1):
            with Timer() as t:
                try:
                    status, body = await self._get(url, headers=headers)
                except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                    last_error = str(exc) or type(exc).__name__
                    self._record(url, attempt, OUTCOME_TRANSPORT_ERROR)
                    if is_debug_enabled(logger):
                        logger.debug(
                            "HTTP request exception",
                            extra=extra_context(
                                event="http_exception", component="http_client",
                                action="GET", outcome=OUTCOME_TRANSPORT_ERROR,
                                attempt=attempt, target=safe_target, context=context,
                            ),
                        )
                    continue

            last_status = status
            if status == 404:
                self._record(url, attempt, OUTCOME_NOT_FOUND)
                raise not_found()
            if not 200 <= status < 300:
                last_error = f"HTTP {status}"
                self._record(url, attempt, OUTCOME_HTTP_ERROR)
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP non-2xx response",
                        extra=extra_context(
                            event="http_response", component="http_client",
                            action="GET", outcome=OUTCOME_HTTP_ERROR, status_code=status,
                            attempt=attempt, target=safe_target, context=context,
                        ),
                    )
                continue

            try:
                result = parse(body) if parse is not None else body
            except ValueError as exc:
                result = None
                last_error = f"unparseable body: {exc}"
            else:
                if not result:
                    last_error = "empty body"
            if not result:
                self._record(url, attempt, OUTCOME_BAD_BODY)
                continue

            self._record(url, attempt, OUTCOME_OK)
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response ok",
                    extra=extra_context(
                        event="http_response", component="http_client", action="GET",
                        outcome=OUTCOME_OK, status_code=status, attempt=attempt,
                        duration_ms=t.duration_ms(), target=safe_target, context=context,
                    ),
                )
            return result

        logger.warning("%s request to %s failed after %d attempts: %s",
                       context, safe_target, self.max_tries, last_error)
        raise TooManyFailures(safe_target, self.max_tries, last_error, status=last_status)
