"""Asynchronous queue service clients."""

from __future__ import annotations

from collections.abc import Mapping

import httpx

from .._core.client import (
    AsyncClosingMixin,
    ServiceContext,
    async_transport,
    build_context,
    coerce_endpoint,
    resolve_connection_string,
)
from .._core.models import ListPage, Metadata
from .._core.paging import AsyncListCursor
from .._http.config import ClientConfig
from .._http.pipeline import Clock
from ..auth.connection_string import Endpoint
from ..auth.shared_key import SharedKeyCredential
from ._core import _BaseQueueClient, _BaseQueueServiceClient
from .types import Message, MessageList, MessageUpdate, Queue


class AsyncQueueServiceClient(AsyncClosingMixin, _BaseQueueServiceClient):
    def __init__(
        self,
        endpoint: str | httpx.URL | Endpoint,
        credential: SharedKeyCredential | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Clock | None = None,
    ) -> None:
        config = config or ClientConfig()
        context = build_context(
            coerce_endpoint(endpoint),
            credential,
            transport=async_transport(config, http_client),
            config=config,
            clock=clock,
        )
        super().__init__(context, owns_transport=True)

    @classmethod
    def from_connection_string(
        cls,
        connection_string: str | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Clock | None = None,
    ) -> AsyncQueueServiceClient:
        endpoint, credential = resolve_connection_string(connection_string, "queue")
        return cls(endpoint, credential, config=config, http_client=http_client, clock=clock)

    async def list_queues(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> ListPage[Queue]:
        return await self._list_queues(
            prefix=prefix,
            marker=marker,
            max_results=max_results,
            include_metadata=include_metadata,
        )

    def iter_queues(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> AsyncListCursor[ListPage[Queue]]:
        async def fetch(next_marker: str | None) -> ListPage[Queue]:
            return await self._list_queues(
                prefix=prefix,
                marker=next_marker,
                max_results=max_results,
                include_metadata=include_metadata,
            )

        return AsyncListCursor(fetch, marker)

    def get_queue_client(self, queue_name: str) -> AsyncQueueClient:
        return AsyncQueueClient(self._context, queue_name)


class AsyncQueueClient(AsyncClosingMixin, _BaseQueueClient):
    @classmethod
    def from_connection_string(
        cls,
        queue_name: str,
        connection_string: str | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> AsyncQueueClient:
        endpoint, credential = resolve_connection_string(connection_string, "queue")
        config = config or ClientConfig()
        context: ServiceContext = build_context(
            endpoint, credential, transport=async_transport(config, http_client), config=config
        )
        return cls(context, queue_name, owns_transport=True)

    async def exists(self) -> bool:
        return await self._exists()

    async def create(self, *, metadata: Mapping[str, str] | None = None) -> None:
        await self._create(metadata=metadata)

    async def delete(self) -> None:
        await self._delete()

    async def get_metadata(self) -> Metadata:
        return await self._get_metadata()

    async def set_metadata(self, metadata: Mapping[str, str]) -> None:
        await self._set_metadata(metadata)

    async def send_message(
        self, text: str, *, visibility_timeout: int = 0, time_to_live: int = -1
    ) -> Message:
        return await self._send_message(
            text, visibility_timeout=visibility_timeout, time_to_live=time_to_live
        )

    async def receive_messages(
        self, *, max_messages: int = 1, visibility_timeout: int = 30
    ) -> MessageList:
        return await self._receive_messages(
            max_messages=max_messages, visibility_timeout=visibility_timeout
        )

    async def receive_message(self, *, visibility_timeout: int = 30) -> Message | None:
        return await self._receive_message(visibility_timeout=visibility_timeout)

    async def peek_messages(self, *, max_messages: int = 1) -> MessageList:
        return await self._peek_messages(max_messages=max_messages)

    async def delete_message(self, message_id: str, pop_receipt: str) -> None:
        await self._delete_message(message_id, pop_receipt)

    async def update_message(
        self,
        message_id: str,
        pop_receipt: str,
        text: str,
        *,
        visibility_timeout: int = 0,
    ) -> MessageUpdate:
        return await self._update_message(
            message_id, pop_receipt, text, visibility_timeout=visibility_timeout
        )

    async def clear_messages(self, *, timeout: int = 60) -> None:
        await self._clear_messages(timeout=timeout)


__all__ = ["AsyncQueueServiceClient", "AsyncQueueClient"]
