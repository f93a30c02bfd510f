"""Plumbing shared by every service client.

A :class:`ServiceContext` bundles the endpoint, the transport and the request
pipeline built for one service. Child clients (a container below a blob
service, a queue below a queue service) reuse their parent's context, so a
single transport serves the whole tree and only the root closes it.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar, cast

import httpx

from .._http.config import ClientConfig, require_connection_string
from .._http.pipeline import Clock, Handler, SleepFn, create_pipeline
from .._http.request import RequestContent, StorageRequest
from .._http.transport import AsyncTransport, BaseTransport, BlockingTransport
from ..auth.connection_string import ConnectionString, Endpoint, ServiceName
from ..auth.shared_key import SharedKeyCredential, SigningDialect
from ..errors import ResourceNotFoundError, StorageResponseError, map_response_error

logger = logging.getLogger(__name__)

_ClientT = TypeVar("_ClientT", bound="BaseStorageClient")


def _blocking_sleep(seconds: float) -> None:
    time.sleep(seconds)


async def _await_if_necessary(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await cast(Awaitable[Any], value)
    return value


@dataclass(frozen=True, slots=True)
class ServiceContext:
    endpoint: Endpoint
    transport: BaseTransport
    pipeline: Handler
    config: ClientConfig
    sleep_fn: SleepFn
    credential: SharedKeyCredential | None = None


def build_context(
    endpoint: Endpoint,
    credential: SharedKeyCredential | None,
    *,
    transport: BaseTransport,
    config: ClientConfig,
    sleep_fn: SleepFn | None = None,
    dialect: SigningDialect = SigningDialect.SHARED_KEY,
    default_headers: Mapping[str, str] | None = None,
    clock: Clock | None = None,
) -> ServiceContext:
    if credential is not None:
        # fail before the first request when the key is not base64
        credential.decoded_key()
    elif not endpoint.is_sas:
        logger.debug("no credential and no shared access signature for %s", endpoint)
    extra: dict[str, Any] = {"clock": clock} if clock is not None else {}
    if sleep_fn is None:
        sleep_fn = default_sleep(transport)
    pipeline = create_pipeline(
        transport.send,
        config=config,
        sleep_fn=sleep_fn,
        default_headers=default_headers,
        default_query=endpoint.query or None,
        credential=credential,
        dialect=dialect,
        **extra,
    )
    return ServiceContext(endpoint, transport, pipeline, config, sleep_fn, credential)


def coerce_endpoint(endpoint: str | httpx.URL | Endpoint) -> Endpoint:
    return endpoint if isinstance(endpoint, Endpoint) else Endpoint.from_url(endpoint)


def resolve_connection_string(
    connection_string: str | None, service: ServiceName
) -> tuple[Endpoint, SharedKeyCredential | None]:
    parsed = ConnectionString.parse(require_connection_string(connection_string))
    return parsed.endpoint(service), parsed.credential()


def blocking_transport(
    config: ClientConfig, http_client: httpx.Client | None = None
) -> BlockingTransport:
    return BlockingTransport(http_client, timeout=config.timeout)


def async_transport(
    config: ClientConfig, http_client: httpx.AsyncClient | None = None
) -> AsyncTransport:
    return AsyncTransport(http_client, timeout=config.timeout)


def default_sleep(transport: BaseTransport) -> SleepFn:
    return asyncio.sleep if isinstance(transport, AsyncTransport) else _blocking_sleep


class BaseStorageClient:
    """Base class holding the request helper used by every ``_operation``."""

    _context: ServiceContext
    _path: tuple[str, ...]

    def __init__(self, context: ServiceContext, *path: str, owns_transport: bool = False) -> None:
        self._context = context
        self._path = tuple(path)
        self._owns_transport = owns_transport

    @property
    def endpoint(self) -> Endpoint:
        return self._context.endpoint

    @property
    def url(self) -> str:
        return str(self._context.endpoint.url_for(*self._path))

    def _url(self, *segments: str) -> httpx.URL:
        return self._context.endpoint.url_for(*self._path, *segments)

    async def _send(self, request: StorageRequest) -> httpx.Response:
        return await self._context.pipeline(request)

    async def _request(
        self,
        method: str,
        *segments: str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        content: RequestContent = None,
        stream: bool = False,
    ) -> httpx.Response:
        """Send one call below this client's path and raise on non-2xx answers."""
        return await self._call(
            method,
            self._url(*segments),
            params=params,
            headers=headers,
            content=content,
            stream=stream,
        )

    async def _call(
        self,
        method: str,
        url: httpx.URL,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        content: RequestContent = None,
        stream: bool = False,
    ) -> httpx.Response:
        request = StorageRequest.build(
            method,
            url,
            params=params,
            headers=headers,
            content=content,
            stream=stream,
        )
        response = await self._send(request)
        if not response.is_success:
            raise map_response_error(response)
        return response

    async def _resource_exists(
        self,
        method: str,
        url: httpx.URL | None = None,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> bool:
        """200 means present, 404 absent; any other answer is raised."""
        if url is None:
            url = self._url()
        try:
            response = await self._call(method, url, params=params)
        except ResourceNotFoundError:
            return False
        if response.status_code != 200:
            raise StorageResponseError(
                response,
                f"Unexpected HTTP {response.status_code} while checking existence of {url}",
            )
        return True

    def _close_blocking(self) -> None:
        if self._owns_transport:
            cast(BlockingTransport, self._context.transport).close()

    async def _close_async(self) -> None:
        if self._owns_transport:
            await cast(AsyncTransport, self._context.transport).aclose()


class ClosingMixin(BaseStorageClient):
    """Context-manager support for clients running on a blocking transport."""

    def close(self) -> None:
        self._close_blocking()

    def __enter__(self: _ClientT) -> _ClientT:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class AsyncClosingMixin(BaseStorageClient):
    async def aclose(self) -> None:
        await self._close_async()

    async def __aenter__(self: _ClientT) -> _ClientT:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


__all__ = [
    "ServiceContext",
    "BaseStorageClient",
    "ClosingMixin",
    "AsyncClosingMixin",
    "build_context",
    "resolve_connection_string",
    "coerce_endpoint",
    "blocking_transport",
    "async_transport",
    "default_sleep",
]
