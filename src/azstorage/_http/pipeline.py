"""Composable request middleware.

A handler turns a :class:`StorageRequest` into an ``httpx.Response``; a
middleware wraps a handler into a new one. :func:`create_pipeline` stacks them
in the only order that produces valid requests::

    retry -> client request id -> date -> defaults -> authorization -> logging -> transport

Retry is outermost so each attempt runs the whole chain again and gets a fresh
request id, date and signature.
"""

from __future__ import annotations

import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, cast

import httpx

from ..auth.shared_key import SharedKeyCredential, SigningDialect, sign_request
from ..errors import StorageTransportError
from .config import (
    HEADER_AUTHORIZATION,
    HEADER_CLIENT_REQUEST_ID,
    HEADER_DATE,
    ClientConfig,
)
from .request import StorageRequest
from .transport import close_response, redact_url

logger = logging.getLogger(__name__)

Handler = Callable[[StorageRequest], Awaitable[httpx.Response]]
Middleware = Callable[[Handler], Handler]
SleepFn = Callable[[float], Awaitable[None] | None]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_rfc1123(value: datetime) -> str:
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def client_request_id_middleware() -> Middleware:
    """Set ``x-ms-client-request-id`` to a random 128-bit hex id unless present."""

    def middleware(handler: Handler) -> Handler:
        async def send(request: StorageRequest) -> httpx.Response:
            if HEADER_CLIENT_REQUEST_ID not in request.headers:
                request = request.with_headers({HEADER_CLIENT_REQUEST_ID: uuid.uuid4().hex})
            return await handler(request)

        return send

    return middleware


def date_middleware(clock: Clock = _utcnow) -> Middleware:
    """Stamp ``x-ms-date`` and ``Date`` with the current instant on every call."""

    def middleware(handler: Handler) -> Handler:
        async def send(request: StorageRequest) -> httpx.Response:
            now = format_rfc1123(clock())
            return await handler(request.with_headers({HEADER_DATE: now, "Date": now}))

        return send

    return middleware


def defaults_middleware(
    headers: Mapping[str, str],
    query: str | httpx.QueryParams | None = None,
) -> Middleware:
    """Merge fixed headers and endpoint-level query parameters into each request.

    Headers already on the request win over ``headers``; parameters on the
    request win over ``query``.
    """
    default_query = httpx.QueryParams(query or "")

    def middleware(handler: Handler) -> Handler:
        async def send(request: StorageRequest) -> httpx.Response:
            request = request.with_default_headers(headers)
            if default_query:
                request = request.with_params(default_query.merge(request.params))
            return await handler(request)

        return send

    return middleware


def authorization_middleware(
    credential: SharedKeyCredential,
    dialect: SigningDialect,
) -> Middleware:
    """Sign the fully decorated request and set ``Authorization``."""

    def middleware(handler: Handler) -> Handler:
        async def send(request: StorageRequest) -> httpx.Response:
            authorization = sign_request(request, credential, dialect)
            return await handler(request.with_headers({HEADER_AUTHORIZATION: authorization}))

        return send

    return middleware


def parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


def backoff_delay(attempt: int, backoff_max: float) -> float:
    return min(2**attempt * 0.1, backoff_max)


async def _sleep(sleep_fn: SleepFn, seconds: float) -> None:
    result = sleep_fn(seconds)
    if inspect.isawaitable(result):
        await cast(Awaitable[None], result)


def retry_middleware(config: ClientConfig, sleep_fn: SleepFn) -> Middleware:
    """Resend requests answered with a retryable status.

    Up to ``config.retries`` extra attempts are made. Transport failures are
    retried only when ``config.retry_on_transport_errors`` is set. The last
    response or error is returned or raised unchanged.
    """

    def middleware(handler: Handler) -> Handler:
        async def send(request: StorageRequest) -> httpx.Response:
            attempt = 0
            while True:
                logger.debug(
                    "attempt %d of %d for %s %s",
                    attempt + 1,
                    config.retries + 1,
                    request.method,
                    redact_url(request.url),
                )
                try:
                    response = await handler(request)
                except StorageTransportError as exc:
                    if not config.retry_on_transport_errors or attempt >= config.retries:
                        raise
                    delay = backoff_delay(attempt, config.backoff_max)
                    logger.warning(
                        "retrying %s %s after transport error (%s), attempt %d, delay %.2fs",
                        request.method,
                        redact_url(request.url),
                        exc,
                        attempt + 1,
                        delay,
                    )
                else:
                    if response.status_code not in config.retry_on_status or attempt >= config.retries:
                        return response
                    delay = parse_retry_after(response.headers.get("retry-after"))
                    if delay is None:
                        delay = backoff_delay(attempt, config.backoff_max)
                    logger.warning(
                        "retrying %s %s after HTTP %d, attempt %d, delay %.2fs",
                        request.method,
                        redact_url(request.url),
                        response.status_code,
                        attempt + 1,
                        delay,
                    )
                    await close_response(response)
                attempt += 1
                await _sleep(sleep_fn, delay)

        return send

    return middleware


def _logging_middleware() -> Middleware:
    def middleware(handler: Handler) -> Handler:
        async def send(request: StorageRequest) -> httpx.Response:
            logger.debug(
                "%s %s (request id %s)",
                request.method,
                redact_url(request.url),
                request.headers.get(HEADER_CLIENT_REQUEST_ID),
            )
            return await handler(request)

        return send

    return middleware


def compose(handler: Handler, middlewares: Sequence[Middleware]) -> Handler:
    """Wrap ``handler`` so that ``middlewares[0]`` runs first."""
    for middleware in reversed(middlewares):
        handler = middleware(handler)
    return handler


def create_pipeline(
    send: Handler,
    *,
    config: ClientConfig,
    sleep_fn: SleepFn,
    default_headers: Mapping[str, str] | None = None,
    default_query: str | None = None,
    credential: SharedKeyCredential | None = None,
    dialect: SigningDialect = SigningDialect.SHARED_KEY,
    clock: Clock = _utcnow,
) -> Handler:
    """Build the request-executing function used by every service client.

    ``credential`` is ``None`` for shared-access-signature endpoints, in which
    case no Authorization header is produced.
    """
    headers: dict[str, Any] = {**config.default_headers(), **(default_headers or {})}
    middlewares: list[Middleware] = [
        retry_middleware(config, sleep_fn),
        client_request_id_middleware(),
        date_middleware(clock),
        defaults_middleware(headers, default_query),
    ]
    if credential is not None:
        middlewares.append(authorization_middleware(credential, dialect))
    middlewares.append(_logging_middleware())
    return compose(send, middlewares)


__all__ = [
    "Handler",
    "Middleware",
    "SleepFn",
    "Clock",
    "format_rfc1123",
    "client_request_id_middleware",
    "date_middleware",
    "defaults_middleware",
    "authorization_middleware",
    "retry_middleware",
    "parse_retry_after",
    "backoff_delay",
    "compose",
    "create_pipeline",
]
