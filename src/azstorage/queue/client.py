"""Synchronous queue service clients."""

from __future__ import annotations

from collections.abc import Mapping

import httpx

from .._core.client import (
    ClosingMixin,
    ServiceContext,
    blocking_transport,
    build_context,
    coerce_endpoint,
    resolve_connection_string,
)
from .._core.models import ListPage, Metadata
from .._core.paging import ListCursor
from .._http.config import ClientConfig
from .._http.iter_coroutine import iter_coroutine
from .._http.pipeline import Clock
from ..auth.connection_string import Endpoint
from ..auth.shared_key import SharedKeyCredential
from ._core import _BaseQueueClient, _BaseQueueServiceClient
from .types import Message, MessageList, MessageUpdate, Queue


class QueueServiceClient(ClosingMixin, _BaseQueueServiceClient):
    def __init__(
        self,
        endpoint: str | httpx.URL | Endpoint,
        credential: SharedKeyCredential | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.Client | None = None,
        clock: Clock | None = None,
    ) -> None:
        config = config or ClientConfig()
        context = build_context(
            coerce_endpoint(endpoint),
            credential,
            transport=blocking_transport(config, http_client),
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
        http_client: httpx.Client | None = None,
        clock: Clock | None = None,
    ) -> QueueServiceClient:
        endpoint, credential = resolve_connection_string(connection_string, "queue")
        return cls(endpoint, credential, config=config, http_client=http_client, clock=clock)

    def list_queues(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> ListPage[Queue]:
        return iter_coroutine(
            self._list_queues(
                prefix=prefix,
                marker=marker,
                max_results=max_results,
                include_metadata=include_metadata,
            )
        )

    def iter_queues(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> ListCursor[ListPage[Queue]]:
        def fetch(next_marker: str | None) -> ListPage[Queue]:
            return self.list_queues(
                prefix=prefix,
                marker=next_marker,
                max_results=max_results,
                include_metadata=include_metadata,
            )

        return ListCursor(fetch, marker)

    def get_queue_client(self, queue_name: str) -> QueueClient:
        return QueueClient(self._context, queue_name)


class QueueClient(ClosingMixin, _BaseQueueClient):
    @classmethod
    def from_connection_string(
        cls,
        queue_name: str,
        connection_string: str | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.Client | None = None,
    ) -> QueueClient:
        endpoint, credential = resolve_connection_string(connection_string, "queue")
        config = config or ClientConfig()
        context: ServiceContext = build_context(
            endpoint, credential, transport=blocking_transport(config, http_client), config=config
        )
        return cls(context, queue_name, owns_transport=True)

    def exists(self) -> bool:
        return iter_coroutine(self._exists())

    def create(self, *, metadata: Mapping[str, str] | None = None) -> None:
        iter_coroutine(self._create(metadata=metadata))

    def delete(self) -> None:
        iter_coroutine(self._delete())

    def get_metadata(self) -> Metadata:
        return iter_coroutine(self._get_metadata())

    def set_metadata(self, metadata: Mapping[str, str]) -> None:
        iter_coroutine(self._set_metadata(metadata))

    def send_message(
        self, text: str, *, visibility_timeout: int = 0, time_to_live: int = -1
    ) -> Message:
        return iter_coroutine(
            self._send_message(
                text, visibility_timeout=visibility_timeout, time_to_live=time_to_live
            )
        )

    def receive_messages(self, *, max_messages: int = 1, visibility_timeout: int = 30) -> MessageList:
        return iter_coroutine(
            self._receive_messages(max_messages=max_messages, visibility_timeout=visibility_timeout)
        )

    def receive_message(self, *, visibility_timeout: int = 30) -> Message | None:
        return iter_coroutine(self._receive_message(visibility_timeout=visibility_timeout))

    def peek_messages(self, *, max_messages: int = 1) -> MessageList:
        return iter_coroutine(self._peek_messages(max_messages=max_messages))

    def delete_message(self, message_id: str, pop_receipt: str) -> None:
        iter_coroutine(self._delete_message(message_id, pop_receipt))

    def update_message(
        self,
        message_id: str,
        pop_receipt: str,
        text: str,
        *,
        visibility_timeout: int = 0,
    ) -> MessageUpdate:
        return iter_coroutine(
            self._update_message(
                message_id, pop_receipt, text, visibility_timeout=visibility_timeout
            )
        )

    def clear_messages(self, *, timeout: int = 60) -> None:
        iter_coroutine(self._clear_messages(timeout=timeout))


__all__ = ["QueueServiceClient", "QueueClient"]
