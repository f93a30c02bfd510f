from __future__ import annotations

import base64
import hashlib
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol

import httpx

from .._core.client import BaseStorageClient, ServiceContext, _await_if_necessary
from .._core.listing import list_params, parse_list_page
from .._core.models import ListPage, Metadata, metadata_headers, parse_http_date
from .._core.xmlutil import XML_CONTENT_TYPE, parse_xml
from .._http.transport import close_response
from .types import (
    BlobItem,
    BlobProperties,
    BlobUploadOptions,
    Container,
    ContainerProperties,
    DownloadedBlob,
    Tags,
    UploadResult,
    UploadStrategy,
)
from .upload import (
    UploadBlock,
    UploadBlockList,
    UploadData,
    UploadSource,
    choose_upload_strategy,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_DOWNLOAD_CHUNK_SIZE = 1024 * 1024


class BlobWriter(Protocol):
    def write(self, data: bytes, /) -> Any: ...  # pragma: no cover


def _write_result(response: httpx.Response) -> tuple[str | None, Any]:
    return response.headers.get("etag"), parse_http_date(response.headers.get("last-modified"))


async def _iter_response_bytes(response: httpx.Response, chunk_size: int) -> AsyncIterator[bytes]:
    if isinstance(response.stream, httpx.SyncByteStream):
        for chunk in response.iter_bytes(chunk_size):
            yield chunk
    else:
        async for chunk in response.aiter_bytes(chunk_size):
            yield chunk


class BlobCopyResult:
    __slots__ = ("copy_id", "copy_status", "etag", "last_modified")

    def __init__(self, response: httpx.Response) -> None:
        self.copy_id = response.headers.get("x-ms-copy-id")
        self.copy_status = response.headers.get("x-ms-copy-status")
        self.etag, self.last_modified = _write_result(response)

    def __repr__(self) -> str:
        return f"BlobCopyResult(copy_id={self.copy_id!r}, copy_status={self.copy_status!r})"


class _BaseBlobServiceClient(BaseStorageClient):
    async def _list_containers(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> ListPage[Container]:
        params = list_params(
            prefix=prefix, marker=marker, max_results=max_results, include_metadata=include_metadata
        )
        response = await self._request("GET", params=params)
        return parse_list_page(
            response, "Containers/Container", Container.from_xml, prefix=prefix, marker=marker
        )


class _BaseContainerClient(BaseStorageClient):
    def __init__(self, context: ServiceContext, container_name: str, *, owns_transport: bool = False) -> None:
        super().__init__(context, container_name, owns_transport=owns_transport)
        self.container_name = container_name

    async def _create(self, *, metadata: Mapping[str, str] | None = None) -> None:
        await self._request(
            "PUT", params={"restype": "container"}, headers=metadata_headers(metadata)
        )

    async def _exists(self) -> bool:
        return await self._resource_exists("HEAD", params={"restype": "container"})

    async def _delete(self) -> None:
        await self._request("DELETE", params={"restype": "container"})

    async def _get_properties(self) -> ContainerProperties:
        response = await self._request("GET", params={"restype": "container"})
        return ContainerProperties.from_headers(response.headers)

    async def _set_metadata(self, metadata: Mapping[str, str]) -> None:
        await self._request(
            "PUT",
            params={"restype": "container", "comp": "metadata"},
            headers=metadata_headers(metadata),
        )

    async def _list_blobs(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> ListPage[BlobItem]:
        params = {
            "restype": "container",
            **list_params(
                prefix=prefix,
                marker=marker,
                max_results=max_results,
                include_metadata=include_metadata,
            ),
        }
        response = await self._request("GET", params=params)
        return parse_list_page(response, "Blobs/Blob", BlobItem.from_xml, prefix=prefix, marker=marker)


class _BaseBlobClient(BaseStorageClient):
    def __init__(
        self,
        context: ServiceContext,
        container_name: str,
        blob_name: str,
        *,
        block_runtime: Any,
        owns_transport: bool = False,
    ) -> None:
        super().__init__(context, container_name, blob_name.strip("/"), owns_transport=owns_transport)
        self.container_name = container_name
        self.blob_name = blob_name.strip("/")
        self._block_runtime = block_runtime

    def _stage_block_fn(self) -> Any:
        """Callable handed to the concurrent runtime for staging one block."""
        return self._stage_block

    async def _upload(
        self,
        data: UploadData,
        *,
        content_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
        options: BlobUploadOptions | None = None,
    ) -> UploadResult:
        options = options or BlobUploadOptions()
        content_type = content_type or DEFAULT_CONTENT_TYPE
        source = UploadSource.from_data(data)
        strategy = choose_upload_strategy(source, options)
        logger.debug(
            "uploading %s/%s using %s (size=%s)",
            self.container_name,
            self.blob_name,
            strategy.value,
            source.size,
        )

        if strategy is UploadStrategy.SINGLE_SHOT:
            response = await self._put_single(source, content_type, metadata)
            etag, last_modified = _write_result(response)
            return UploadResult(
                strategy, 0, response.headers.get("content-md5"), etag, last_modified
            )

        if strategy is UploadStrategy.SEQUENTIAL_BLOCKS:
            blocks, digest = await self._stage_sequential(source, options)
        else:
            blocks = await _await_if_necessary(
                self._block_runtime.upload(
                    source=source,
                    block_size=options.block_size,
                    max_concurrency=options.max_concurrency,
                    stage_block=self._stage_block_fn(),
                )
            )
            digest = source.content_md5()

        content_md5 = base64.b64encode(digest).decode("ascii")
        response = await self._commit_block_list(blocks, content_type, content_md5, metadata)
        etag, last_modified = _write_result(response)
        return UploadResult(strategy, len(blocks), content_md5, etag, last_modified)

    async def _put_single(
        self,
        source: UploadSource,
        content_type: str,
        metadata: Mapping[str, str] | None,
    ) -> httpx.Response:
        headers = {
            "x-ms-blob-type": "BlockBlob",
            "Content-Type": content_type,
            **metadata_headers(metadata),
        }
        return await self._request("PUT", headers=headers, content=source.body())

    async def _stage_sequential(
        self, source: UploadSource, options: BlobUploadOptions
    ) -> tuple[UploadBlockList, bytes]:
        blocks = UploadBlockList()
        digest = hashlib.md5()
        while content := await source.aread(options.block_size):
            block = blocks.push(len(content))
            digest.update(content)
            await self._stage_block(block, content)
        return blocks, digest.digest()

    async def _stage_block(self, block: UploadBlock, content: bytes) -> None:
        logger.debug("staging block %d (%d bytes) of %s", block.index, block.size, self.blob_name)
        await self._request(
            "PUT",
            params={"comp": "block", "blockid": block.id},
            content=content,
        )

    async def _commit_block_list(
        self,
        blocks: UploadBlockList,
        content_type: str,
        content_md5: str,
        metadata: Mapping[str, str] | None,
    ) -> httpx.Response:
        logger.debug("committing %d blocks to %s", len(blocks), self.blob_name)
        headers = {
            "Content-Type": XML_CONTENT_TYPE,
            "x-ms-blob-content-type": content_type,
            "x-ms-blob-content-md5": content_md5,
            **metadata_headers(metadata),
        }
        return await self._request(
            "PUT", params={"comp": "blocklist"}, headers=headers, content=blocks.to_xml()
        )

    async def _get_properties(self) -> BlobProperties:
        response = await self._request("HEAD")
        return BlobProperties.from_headers(response.headers)

    async def _exists(self) -> bool:
        return await self._resource_exists("HEAD")

    async def _delete(self) -> None:
        await self._request("DELETE")

    async def _download(self) -> DownloadedBlob:
        response = await self._request("GET")
        return DownloadedBlob(
            name=self.blob_name,
            properties=BlobProperties.from_headers(response.headers),
            content=response.content,
        )

    async def _download_to(
        self, writer: BlobWriter, *, chunk_size: int = DEFAULT_DOWNLOAD_CHUNK_SIZE
    ) -> BlobProperties:
        response = await self._request("GET", stream=True)
        try:
            properties = BlobProperties.from_headers(response.headers)
            async for chunk in _iter_response_bytes(response, chunk_size):
                await _await_if_necessary(writer.write(chunk))
        finally:
            await close_response(response)
        return properties

    async def _set_metadata(self, metadata: Mapping[str, str]) -> None:
        await self._request("PUT", params={"comp": "metadata"}, headers=metadata_headers(metadata))

    async def _get_metadata(self) -> Metadata:
        return (await self._get_properties()).metadata

    async def _copy_from(self, source_url: str | httpx.URL) -> BlobCopyResult:
        response = await self._request("PUT", headers={"x-ms-copy-source": str(source_url)})
        return BlobCopyResult(response)

    async def _set_tags(self, tags: Mapping[str, str]) -> None:
        await self._request(
            "PUT",
            params={"comp": "tags"},
            headers={"Content-Type": XML_CONTENT_TYPE},
            content=Tags.coerce(tags).to_xml(),
        )

    async def _get_tags(self) -> Tags:
        response = await self._request("GET", params={"comp": "tags"})
        return Tags.from_xml(parse_xml(response))


__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "DEFAULT_DOWNLOAD_CHUNK_SIZE",
    "BlobCopyResult",
    "BlobWriter",
]
