from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime

from .._core.models import Metadata, parse_http_date
from .._core.xmlutil import int_text, optional_text, text


@dataclass(slots=True)
class Queue:
    name: str
    metadata: Metadata = field(default_factory=Metadata)

    @classmethod
    def from_xml(cls, element: ET.Element) -> Queue:
        return cls(name=text(element, "Name"), metadata=Metadata.from_xml(element))


@dataclass(slots=True)
class Message:
    """A queue message as returned by put, get and peek.

    ``pop_receipt`` and ``next_visible_time`` are absent on peeked messages.
    """

    id: str
    insertion_time: datetime | None
    expiration_time: datetime | None
    next_visible_time: datetime | None
    pop_receipt: str | None
    dequeue_count: int = 0
    text: str | None = None

    @classmethod
    def from_xml(cls, element: ET.Element) -> Message:
        return cls(
            id=text(element, "MessageId"),
            insertion_time=parse_http_date(text(element, "InsertionTime")),
            expiration_time=parse_http_date(text(element, "ExpirationTime")),
            next_visible_time=parse_http_date(text(element, "TimeNextVisible")),
            pop_receipt=optional_text(element, "PopReceipt"),
            dequeue_count=int_text(element, "DequeueCount"),
            text=element.findtext("MessageText"),
        )


@dataclass(slots=True)
class MessageList:
    messages: list[Message] = field(default_factory=list)

    @classmethod
    def from_xml(cls, root: ET.Element) -> MessageList:
        return cls([Message.from_xml(element) for element in root.findall("QueueMessage")])

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)

    def __getitem__(self, index: int) -> Message:
        return self.messages[index]


@dataclass(slots=True)
class MessageUpdate:
    pop_receipt: str
    next_visible_time: datetime | None


__all__ = ["Queue", "Message", "MessageList", "MessageUpdate"]
