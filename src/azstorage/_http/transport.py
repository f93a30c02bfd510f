"""HTTP transport implementations for sync and async clients."""

from __future__ import annotations

import abc
import logging

import httpx

from ..errors import StorageTransportError
from .config import DEFAULT_TIMEOUT
from .request import SeekableBody, StorageRequest

logger = logging.getLogger(__name__)


def redact_url(url: httpx.URL) -> str:
    """URL without its query string, safe to log when a SAS token is attached."""
    return str(url.copy_with(query=None))


async def close_response(response: httpx.Response) -> None:
    """Release a response whether it came from a sync or an async client."""
    if isinstance(response.stream, httpx.SyncByteStream):
        response.close()
    else:
        await response.aclose()


def _transport_error(request: StorageRequest, exc: httpx.TransportError) -> StorageTransportError:
    return StorageTransportError(
        f"{request.method} {redact_url(request.url)} failed: {exc.__class__.__name__}: {exc}"
    )


class BaseTransport(abc.ABC):
    """Abstract base class for HTTP transports.

    ``send`` either returns the response, whatever its status, or raises
    :class:`StorageTransportError` when no response was received. Streamed
    responses with an error status are read and closed before being returned.
    """

    def __init__(self, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._timeout = timeout

    @abc.abstractmethod
    async def send(self, request: StorageRequest) -> httpx.Response:
        """Send a request and return the response."""
        ...


class BlockingTransport(BaseTransport):
    """
    Synchronous HTTP transport using httpx.Client.

    ``send`` is declared async but never awaits, so it can be driven by
    ``iter_coroutine()`` and called from worker threads.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(timeout=timeout)
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def send(self, request: StorageRequest) -> httpx.Response:
        client = self._get_client()
        http_request = client.build_request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.content,
        )
        try:
            response = client.send(http_request, stream=request.stream)
            if request.stream and not response.is_success:
                try:
                    response.read()
                finally:
                    response.close()
        except httpx.TransportError as exc:
            raise _transport_error(request, exc) from exc
        return response

    def close(self) -> None:
        """Close the underlying HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None


class AsyncTransport(BaseTransport):
    """Asynchronous HTTP transport using httpx.AsyncClient."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(timeout=timeout)
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def send(self, request: StorageRequest) -> httpx.Response:
        client = self._get_client()
        content = request.content
        if isinstance(content, SeekableBody):
            # httpx.AsyncClient only accepts async byte streams
            content = content.__aiter__()  # type: ignore[assignment]
        http_request = client.build_request(
            request.method,
            request.url,
            headers=request.headers,
            content=content,
        )
        try:
            response = await client.send(http_request, stream=request.stream)
            if request.stream and not response.is_success:
                try:
                    await response.aread()
                finally:
                    await response.aclose()
        except httpx.TransportError as exc:
            raise _transport_error(request, exc) from exc
        return response

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


__all__ = [
    "BaseTransport",
    "BlockingTransport",
    "AsyncTransport",
    "redact_url",
    "close_response",
]
