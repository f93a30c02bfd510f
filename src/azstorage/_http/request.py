"""Request descriptor passed through the middleware pipeline."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import IO, Any

import httpx

DEFAULT_BODY_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class SeekableBody:
    """Request body read from a seekable file object.

    Every iteration seeks back to ``offset`` first, so a retried request sends
    the same bytes again without buffering the content in memory.
    """

    source: IO[bytes]
    offset: int
    length: int
    chunk_size: int = DEFAULT_BODY_CHUNK_SIZE

    def __iter__(self) -> Iterator[bytes]:
        self.source.seek(self.offset)
        remaining = self.length
        while remaining > 0:
            chunk = self.source.read(min(self.chunk_size, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield bytes(chunk)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self:
            yield chunk


RequestContent = bytes | SeekableBody | None


def content_length(content: RequestContent) -> int:
    if content is None:
        return 0
    if isinstance(content, SeekableBody):
        return content.length
    return len(content)


def _clean_params(params: Mapping[str, Any]) -> dict[str, str]:
    return {str(k): str(v) for k, v in params.items() if v is not None}


@dataclass(frozen=True)
class StorageRequest:
    """A single service call: method, URL with query, headers and optional body.

    Instances are never mutated; the ``with_*`` helpers return copies so that a
    retry can replay the original request through the whole pipeline.
    """

    method: str
    url: httpx.URL
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    content: RequestContent = None
    stream: bool = False

    @classmethod
    def build(
        cls,
        method: str,
        url: str | httpx.URL,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        content: RequestContent = None,
        stream: bool = False,
    ) -> StorageRequest:
        request_url = httpx.URL(url)
        if params:
            request_url = request_url.copy_merge_params(_clean_params(params))
        request_headers = httpx.Headers(headers)
        if content is not None and "content-length" not in request_headers:
            request_headers["Content-Length"] = str(content_length(content))
        return cls(method.upper(), request_url, request_headers, content, stream)

    @property
    def params(self) -> httpx.QueryParams:
        return self.url.params

    def with_headers(self, headers: Mapping[str, str]) -> StorageRequest:
        """Copy with ``headers`` set, replacing existing values."""
        merged = self.headers.copy()
        for name, value in headers.items():
            merged[name] = value
        return replace(self, headers=merged)

    def with_default_headers(self, headers: Mapping[str, str]) -> StorageRequest:
        """Copy with ``headers`` added only where the request has no value yet."""
        merged = self.headers.copy()
        for name, value in headers.items():
            if name not in merged:
                merged[name] = value
        return replace(self, headers=merged)

    def with_params(self, params: httpx.QueryParams) -> StorageRequest:
        return replace(self, url=self.url.copy_with(params=params))


__all__ = [
    "SeekableBody",
    "RequestContent",
    "StorageRequest",
    "content_length",
]
