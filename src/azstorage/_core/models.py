"""Models shared by the blob, queue and table clients."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Generic, TypeVar

import httpx

T = TypeVar("T")

METADATA_HEADER_PREFIX = "x-ms-meta-"


def parse_http_date(value: str | None) -> datetime | None:
    """Parse an RFC 1123 date such as ``Wed, 09 Jun 2021 10:18:14 GMT``."""
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


class Metadata(dict[str, str]):
    """User-defined name/value pairs stored with a container, blob or queue."""

    @classmethod
    def from_headers(cls, headers: httpx.Headers | Mapping[str, str]) -> Metadata:
        metadata = cls()
        for name, value in headers.items():
            lowered = name.lower()
            if lowered.startswith(METADATA_HEADER_PREFIX):
                metadata[lowered[len(METADATA_HEADER_PREFIX) :]] = value
        return metadata

    @classmethod
    def from_xml(cls, element: ET.Element | None) -> Metadata:
        """Read the ``<Metadata>`` child of a listing entry, if any."""
        if element is None:
            return cls()
        node = element.find("Metadata")
        if node is None:
            return cls()
        return cls({child.tag: child.text or "" for child in node})

    def to_headers(self) -> dict[str, str]:
        return {f"{METADATA_HEADER_PREFIX}{name}": value for name, value in self.items()}


def metadata_headers(metadata: Mapping[str, str] | None) -> dict[str, str]:
    if not metadata:
        return {}
    return Metadata(metadata).to_headers()


@dataclass(slots=True)
class ListPage(Generic[T]):
    """One page of a marker-based listing.

    ``next_marker`` is ``None`` on the last page; the service signals that with
    an empty ``<NextMarker/>`` element.
    """

    prefix: str
    marker: str | None
    max_results: int | None
    items: list[T] = field(default_factory=list)
    next_marker: str | None = None

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    @property
    def has_more(self) -> bool:
        return self.next_marker is not None


def normalize_marker(value: str | None) -> str | None:
    return value or None


__all__ = [
    "METADATA_HEADER_PREFIX",
    "Metadata",
    "ListPage",
    "metadata_headers",
    "normalize_marker",
    "parse_http_date",
]
