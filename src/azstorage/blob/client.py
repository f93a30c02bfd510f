"""Synchronous blob service clients."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

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
from .upload import UploadBlock, UploadData, create_sync_block_upload_runtime


def _connect(
    connection_string: str | None,
    config: ClientConfig | None,
    http_client: httpx.Client | None,
) -> ServiceContext:
    endpoint, credential = resolve_connection_string(connection_string, "blob")
    config = config or ClientConfig()
    return build_context(
        endpoint, credential, transport=blocking_transport(config, http_client), config=config
    )


class BlobServiceClient(ClosingMixin, _BaseBlobServiceClient):
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
    ) -> BlobServiceClient:
        endpoint, credential = resolve_connection_string(connection_string, "blob")
        return cls(endpoint, credential, config=config, http_client=http_client, clock=clock)

    def list_containers(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> ListPage[Container]:
        return iter_coroutine(
            self._list_containers(
                prefix=prefix,
                marker=marker,
                max_results=max_results,
                include_metadata=include_metadata,
            )
        )

    def iter_containers(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> ListCursor[ListPage[Container]]:
        def fetch(next_marker: str | None) -> ListPage[Container]:
            return self.list_containers(
                prefix=prefix,
                marker=next_marker,
                max_results=max_results,
                include_metadata=include_metadata,
            )

        return ListCursor(fetch, marker)

    def get_container_client(self, container_name: str) -> ContainerClient:
        return ContainerClient(self._context, container_name)


class ContainerClient(ClosingMixin, _BaseContainerClient):
    @classmethod
    def from_connection_string(
        cls,
        container_name: str,
        connection_string: str | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.Client | None = None,
    ) -> ContainerClient:
        context = _connect(connection_string, config, http_client)
        return cls(context, container_name, owns_transport=True)

    def create(self, *, metadata: Mapping[str, str] | None = None) -> None:
        iter_coroutine(self._create(metadata=metadata))

    def exists(self) -> bool:
        return iter_coroutine(self._exists())

    def delete(self) -> None:
        iter_coroutine(self._delete())

    def get_properties(self) -> ContainerProperties:
        return iter_coroutine(self._get_properties())

    def set_metadata(self, metadata: Mapping[str, str]) -> None:
        iter_coroutine(self._set_metadata(metadata))

    def list_blobs(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> ListPage[BlobItem]:
        return iter_coroutine(
            self._list_blobs(
                prefix=prefix,
                marker=marker,
                max_results=max_results,
                include_metadata=include_metadata,
            )
        )

    def iter_blobs(
        self,
        *,
        prefix: str | None = None,
        marker: str | None = None,
        max_results: int | None = None,
        include_metadata: bool = False,
    ) -> ListCursor[ListPage[BlobItem]]:
        def fetch(next_marker: str | None) -> ListPage[BlobItem]:
            return self.list_blobs(
                prefix=prefix,
                marker=next_marker,
                max_results=max_results,
                include_metadata=include_metadata,
            )

        return ListCursor(fetch, marker)

    def get_blob_client(self, blob_name: str) -> BlobClient:
        return BlobClient(self._context, self.container_name, blob_name)


class BlobClient(ClosingMixin, _BaseBlobClient):
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
            block_runtime=create_sync_block_upload_runtime(),
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
        http_client: httpx.Client | None = None,
    ) -> BlobClient:
        context = _connect(connection_string, config, http_client)
        return cls(context, container_name, blob_name, owns_transport=True)

    def _stage_block_fn(self) -> Any:
        # worker threads drive the shared coroutine to completion themselves
        def stage(block: UploadBlock, content: bytes) -> None:
            iter_coroutine(self._stage_block(block, content))

        return stage

    def upload(
        self,
        data: UploadData,
        *,
        content_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
        options: BlobUploadOptions | None = None,
    ) -> UploadResult:
        if hasattr(data, "__aiter__"):
            raise TypeError("Asynchronous iterables can only be uploaded with AsyncBlobClient.")
        return iter_coroutine(
            self._upload(data, content_type=content_type, metadata=metadata, options=options)
        )

    def get_properties(self) -> BlobProperties:
        return iter_coroutine(self._get_properties())

    def exists(self) -> bool:
        return iter_coroutine(self._exists())

    def delete(self) -> None:
        iter_coroutine(self._delete())

    def download(self) -> DownloadedBlob:
        return iter_coroutine(self._download())

    def download_to(
        self, writer: BlobWriter, *, chunk_size: int = DEFAULT_DOWNLOAD_CHUNK_SIZE
    ) -> BlobProperties:
        return iter_coroutine(self._download_to(writer, chunk_size=chunk_size))

    def set_metadata(self, metadata: Mapping[str, str]) -> None:
        iter_coroutine(self._set_metadata(metadata))

    def get_metadata(self) -> Metadata:
        return iter_coroutine(self._get_metadata())

    def copy_from(self, source_url: str | httpx.URL) -> BlobCopyResult:
        return iter_coroutine(self._copy_from(source_url))

    def set_tags(self, tags: Mapping[str, str]) -> None:
        iter_coroutine(self._set_tags(tags))

    def get_tags(self) -> Tags:
        return iter_coroutine(self._get_tags())


__all__ = ["BlobServiceClient", "ContainerClient", "BlobClient"]
