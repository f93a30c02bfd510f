"""Asynchronous blob service clients."""

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
from ._core import (
    DEFAULT_DOWNLOAD_CHUNK_SIZE,
    BlobCopyResult,
    BlobWriter,
    _BaseBlobClient,
    _BaseBlobServiceClient,
    _BaseContainerClient,
)
from .types import (
    BlobItem,
    BlobProperties,
    BlobUploadOptions,
    Container,
    ContainerProperties,
    DownloadedBlob,
    Tags,
    UploadResult,
)
from .upload import UploadData, create_async_block_upload_runtime


def _connect(
    connection_string: str | None,
    config: ClientConfig | None,
    http_client: httpx.AsyncClient | None,
) -> ServiceContext:
    endpoint, credential = resolve_connection_string(connection_string, "blob")
    config = config or ClientConfig()
    return build_context(
        endpoint, credential, transport=async_transport(config, http_client), config=config
    )


class AsyncBlobServiceClient(AsyncClosingMixin, _BaseBlobServiceClient):
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
    ) -> AsyncBlobServiceClient:
        endpoint, credential = resolve_connection_string(connection_string, "blob")
        return cls(endpoint, credential, config=config, http_client=http_client, clock=clock)

    async def list_containers(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> ListPage[Container]:
        return await self._list_containers(
            prefix=prefix,
            marker=marker,
            max_results=max_results,
            include_metadata=include_metadata,
        )

    def iter_containers(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> AsyncListCursor[ListPage[Container]]:
        async def fetch(next_marker: str | None) -> ListPage[Container]:
            return await self._list_containers(
                prefix=prefix,
                marker=next_marker,
                max_results=max_results,
                include_metadata=include_metadata,
            )

        return AsyncListCursor(fetch, marker)

    def get_container_client(self, container_name: str) -> AsyncContainerClient:
        return AsyncContainerClient(self._context, container_name)


class AsyncContainerClient(AsyncClosingMixin, _BaseContainerClient):
    @classmethod
    def from_connection_string(
        cls,
        container_name: str,
        connection_string: str | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> AsyncContainerClient:
        context = _connect(connection_string, config, http_client)
        return cls(context, container_name, owns_transport=True)

    async def create(self, *, metadata: Mapping[str, str] | None = None) -> None:
        await self._create(metadata=metadata)

    async def exists(self) -> bool:
        return await self._exists()

    async def delete(self) -> None:
        await self._delete()

    async def get_properties(self) -> ContainerProperties:
        return await self._get_properties()

    async def set_metadata(self, metadata: Mapping[str, str]) -> None:
        await self._set_metadata(metadata)

    async def list_blobs(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> ListPage[BlobItem]:
        return await self._list_blobs(
            prefix=prefix,
            marker=marker,
            max_results=max_results,
            include_metadata=include_metadata,
        )

    def iter_blobs(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> AsyncListCursor[ListPage[BlobItem]]:
        async def fetch(next_marker: str | None) -> ListPage[BlobItem]:
            return await self._list_blobs(
                prefix=prefix,
                marker=next_marker,
                max_results=max_results,
                include_metadata=include_metadata,
            )

        return AsyncListCursor(fetch, marker)

    def get_blob_client(self, blob_name: str) -> AsyncBlobClient:
        return AsyncBlobClient(self._context, self.container_name, blob_name)


class AsyncBlobClient(AsyncClosingMixin, _BaseBlobClient):
    def __init__(
        self,
        context: ServiceContext,
        container_name: str,
        blob_name: str,
        *,
        owns_transport: bool = False,
    ) -> None:
        super().__init__(
            context,
            container_name,
            blob_name,
            block_runtime=create_async_block_upload_runtime(),
            owns_transport=owns_transport,
        )

    @classmethod
    def from_connection_string(
        cls,
        container_name: str,
        blob_name: str,
        connection_string: str | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> AsyncBlobClient:
        context = _connect(connection_string, config, http_client)
        return cls(context, container_name, blob_name, owns_transport=True)

    async def upload(
        self,
        data: UploadData,
        *,
        content_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
        options: BlobUploadOptions | None = None,
    ) -> UploadResult:
        return await self._upload(data, content_type=content_type, metadata=metadata, options=options)

    async def get_properties(self) -> BlobProperties:
        return await self._get_properties()

    async def exists(self) -> bool:
        return await self._exists()

    async def delete(self) -> None:
        await self._delete()

    async def download(self) -> DownloadedBlob:
        return await self._download()

    async def download_to(
        self, writer: BlobWriter, *, chunk_size: int = DEFAULT_DOWNLOAD_CHUNK_SIZE
    ) -> BlobProperties:
        return await self._download_to(writer, chunk_size=chunk_size)

    async def set_metadata(self, metadata: Mapping[str, str]) -> None:
        await self._set_metadata(metadata)

    async def get_metadata(self) -> Metadata:
        return await self._get_metadata()

    async def copy_from(self, source_url: str | httpx.URL) -> BlobCopyResult:
        return await self._copy_from(source_url)

    async def set_tags(self, tags: Mapping[str, str]) -> None:
        await self._set_tags(tags)

    async def get_tags(self) -> Tags:
        return await self._get_tags()


__all__ = ["AsyncBlobServiceClient", "AsyncContainerClient", "AsyncBlobClient"]
