from __future__ import annotations

import enum
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime

import httpx

from .._core.models import Metadata, parse_http_date
from .._core.xmlutil import bool_text, int_text, optional_text, text, to_bytes

DEFAULT_MAX_SINGLE_PUT_SIZE = 256_000_000
DEFAULT_BLOCK_SIZE = 8_000_000
DEFAULT_MAX_CONCURRENCY = 25


class UploadStrategy(enum.Enum):
    SINGLE_SHOT = "single_shot"
    SEQUENTIAL_BLOCKS = "sequential_blocks"
    CONCURRENT_BLOCKS = "concurrent_blocks"


@dataclass(frozen=True, slots=True)
class BlobUploadOptions:
    """Thresholds steering how :meth:`BlobClient.upload` splits its input."""

    max_single_put_size: int = DEFAULT_MAX_SINGLE_PUT_SIZE
    block_size: int = DEFAULT_BLOCK_SIZE
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    def __post_init__(self) -> None:
        if self.block_size <= 0:
            raise ValueError("block_size must be a positive number of bytes")
        if self.max_concurrency <= 0:
            raise ValueError("max_concurrency must be at least 1")
        if self.max_single_put_size < 0:
            raise ValueError("max_single_put_size must not be negative")


@dataclass(slots=True)
class UploadResult:
    strategy: UploadStrategy
    block_count: int
    content_md5: str | None
    etag: str | None
    last_modified: datetime | None


@dataclass(slots=True)
class ContainerProperties:
    last_modified: datetime | None
    etag: str
    lease_status: str = ""
    lease_state: str = ""
    has_immutability_policy: bool = False
    has_legal_hold: bool = False
    metadata: Metadata = field(default_factory=Metadata)

    @classmethod
    def from_xml(cls, element: ET.Element | None) -> ContainerProperties:
        return cls(
            last_modified=parse_http_date(text(element, "Last-Modified")),
            etag=text(element, "Etag"),
            lease_status=text(element, "LeaseStatus"),
            lease_state=text(element, "LeaseState"),
            has_immutability_policy=bool_text(element, "HasImmutabilityPolicy"),
            has_legal_hold=bool_text(element, "HasLegalHold"),
        )

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> ContainerProperties:
        return cls(
            last_modified=parse_http_date(headers.get("last-modified")),
            etag=headers.get("etag", ""),
            lease_status=headers.get("x-ms-lease-status", ""),
            lease_state=headers.get("x-ms-lease-state", ""),
            has_immutability_policy=headers.get("x-ms-has-immutability-policy", "").lower() == "true",
            has_legal_hold=headers.get("x-ms-has-legal-hold", "").lower() == "true",
            metadata=Metadata.from_headers(headers),
        )


@dataclass(slots=True)
class Container:
    name: str
    properties: ContainerProperties
    metadata: Metadata = field(default_factory=Metadata)

    @classmethod
    def from_xml(cls, element: ET.Element) -> Container:
        return cls(
            name=text(element, "Name"),
            properties=ContainerProperties.from_xml(element.find("Properties")),
            metadata=Metadata.from_xml(element),
        )


@dataclass(slots=True)
class BlobProperties:
    last_modified: datetime | None
    content_length: int
    content_type: str
    etag: str | None = None
    content_md5: str | None = None
    blob_type: str | None = None
    metadata: Metadata = field(default_factory=Metadata)

    @classmethod
    def from_xml(cls, element: ET.Element | None) -> BlobProperties:
        return cls(
            last_modified=parse_http_date(text(element, "Last-Modified")),
            content_length=int_text(element, "Content-Length"),
            content_type=text(element, "Content-Type"),
            etag=optional_text(element, "Etag"),
            content_md5=optional_text(element, "Content-MD5"),
            blob_type=optional_text(element, "BlobType"),
        )

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> BlobProperties:
        try:
            content_length = int(headers.get("content-length", "0"))
        except ValueError:
            content_length = 0
        return cls(
            last_modified=parse_http_date(headers.get("last-modified")),
            content_length=content_length,
            content_type=headers.get("content-type", ""),
            etag=headers.get("etag"),
            content_md5=headers.get("content-md5"),
            blob_type=headers.get("x-ms-blob-type"),
            metadata=Metadata.from_headers(headers),
        )


@dataclass(slots=True)
class BlobItem:
    name: str
    properties: BlobProperties
    metadata: Metadata = field(default_factory=Metadata)

    @classmethod
    def from_xml(cls, element: ET.Element) -> BlobItem:
        return cls(
            name=text(element, "Name"),
            properties=BlobProperties.from_xml(element.find("Properties")),
            metadata=Metadata.from_xml(element),
        )


@dataclass(slots=True)
class DownloadedBlob:
    name: str
    properties: BlobProperties
    content: bytes

    def __str__(self) -> str:
        return self.content.decode("utf-8", errors="replace")


class Tags(dict[str, str]):
    """Blob index tags, serialised as ``<Tags><TagSet><Tag>...``."""

    @classmethod
    def from_xml(cls, root: ET.Element) -> Tags:
        tags = cls()
        tag_set = root.find("TagSet")
        if tag_set is None:
            return tags
        for tag in tag_set.findall("Tag"):
            tags[text(tag, "Key")] = text(tag, "Value")
        return tags

    def to_xml(self) -> bytes:
        root = ET.Element("Tags")
        tag_set = ET.SubElement(root, "TagSet")
        for key, value in self.items():
            tag = ET.SubElement(tag_set, "Tag")
            ET.SubElement(tag, "Key").text = key
            ET.SubElement(tag, "Value").text = value
        return to_bytes(root)

    @classmethod
    def coerce(cls, tags: Mapping[str, str]) -> Tags:
        return tags if isinstance(tags, Tags) else cls(tags)


__all__ = [
    "DEFAULT_MAX_SINGLE_PUT_SIZE",
    "DEFAULT_BLOCK_SIZE",
    "DEFAULT_MAX_CONCURRENCY",
    "UploadStrategy",
    "BlobUploadOptions",
    "UploadResult",
    "ContainerProperties",
    "Container",
    "BlobProperties",
    "BlobItem",
    "DownloadedBlob",
    "Tags",
]
