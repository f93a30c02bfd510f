from __future__ import annotations

import dataclasses
from collections.abc import Mapping

from .._core.client import BaseStorageClient, ServiceContext
from .._core.listing import list_params, parse_list_page
from .._core.models import ListPage, Metadata, metadata_headers, parse_http_date
from .._core.xmlutil import XML_CONTENT_TYPE, parse_xml, simple_document
from ..errors import EmptyMessageListError, InvalidMessageError
from .types import Message, MessageList, MessageUpdate, Queue


def _message_body(text: str) -> bytes:
    return simple_document("QueueMessage", {"MessageText": text})


def _require(value: str, name: str) -> None:
    if not value:
        raise InvalidMessageError(f"A {name} is required to address a queue message.")


class _BaseQueueServiceClient(BaseStorageClient):
    async def _list_queues(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> ListPage[Queue]:
        params = list_params(
            prefix=prefix, marker=marker, max_results=max_results, include_metadata=include_metadata
        )
        response = await self._request("GET", params=params)
        return parse_list_page(response, "Queues/Queue", Queue.from_xml, prefix=prefix, marker=marker)


class _BaseQueueClient(BaseStorageClient):
    def __init__(self, context: ServiceContext, queue_name: str, *, owns_transport: bool = False) -> None:
        super().__init__(context, queue_name.strip(), owns_transport=owns_transport)
        self.queue_name = queue_name.strip()

    async def _exists(self) -> bool:
        return await self._resource_exists("HEAD", params={"comp": "metadata"})

    async def _create(self, *, metadata: Mapping[str, str] | None = None) -> None:
        await self._request("PUT", headers=metadata_headers(metadata))

    async def _delete(self) -> None:
        await self._request("DELETE")

    async def _get_metadata(self) -> Metadata:
        response = await self._request("GET", params={"comp": "metadata"})
        return Metadata.from_headers(response.headers)

    async def _set_metadata(self, metadata: Mapping[str, str]) -> None:
        await self._request("PUT", params={"comp": "metadata"}, headers=metadata_headers(metadata))

    async def _send_message(
        self,
        text: str,
        *,
        visibility_timeout: int = 0,
        time_to_live: int = -1,
    ) -> Message:
        response = await self._request(
            "POST",
            "messages",
            params={"visibilitytimeout": visibility_timeout, "messagettl": time_to_live},
            headers={"Content-Type": XML_CONTENT_TYPE},
            content=_message_body(text),
        )
        messages = MessageList.from_xml(parse_xml(response))
        if not messages.messages:
            raise EmptyMessageListError(
                f"Queue {self.queue_name!r} accepted the message but returned no receipt."
            )
        message = messages[0]
        if message.text is None:
            message = dataclasses.replace(message, text=text)
        return message

    async def _receive_messages(
        self, *, max_messages: int = 1, visibility_timeout: int = 30
    ) -> MessageList:
        response = await self._request(
            "GET",
            "messages",
            params={"numofmessages": max_messages, "visibilitytimeout": visibility_timeout},
        )
        return MessageList.from_xml(parse_xml(response))

    async def _receive_message(self, *, visibility_timeout: int = 30) -> Message | None:
        messages = await self._receive_messages(max_messages=1, visibility_timeout=visibility_timeout)
        return messages.messages[0] if messages.messages else None

    async def _peek_messages(self, *, max_messages: int = 1) -> MessageList:
        response = await self._request(
            "GET",
            "messages",
            params={"numofmessages": max_messages, "peekonly": "true"},
        )
        return MessageList.from_xml(parse_xml(response))

    async def _delete_message(self, message_id: str, pop_receipt: str) -> None:
        _require(message_id, "message id")
        _require(pop_receipt, "pop receipt")
        await self._request("DELETE", "messages", message_id, params={"popreceipt": pop_receipt})

    async def _update_message(
        self,
        message_id: str,
        pop_receipt: str,
        text: str,
        *,
        visibility_timeout: int = 0,
    ) -> MessageUpdate:
        _require(message_id, "message id")
        _require(pop_receipt, "pop receipt")
        response = await self._request(
            "PUT",
            "messages",
            message_id,
            params={"popreceipt": pop_receipt, "visibilitytimeout": visibility_timeout},
            headers={"Content-Type": XML_CONTENT_TYPE},
            content=_message_body(text),
        )
        return MessageUpdate(
            pop_receipt=response.headers.get("x-ms-popreceipt", ""),
            next_visible_time=parse_http_date(response.headers.get("x-ms-time-next-visible")),
        )

    async def _clear_messages(self, *, timeout: int = 60) -> None:
        await self._request("DELETE", "messages", params={"timeout": timeout})
