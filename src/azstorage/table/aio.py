"""Asynchronous table service clients."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from .._core.client import (
    AsyncClosingMixin,
    ServiceContext,
    async_transport,
    build_context,
    coerce_endpoint,
    resolve_connection_string,
)
from .._core.paging import AsyncListCursor
from .._http.config import ClientConfig
from .._http.pipeline import Clock
from ..auth.connection_string import Endpoint
from ..auth.shared_key import SharedKeyCredential, SigningDialect
from ._core import TABLE_DEFAULT_HEADERS, _BaseTableClient, _BaseTableServiceClient
from .types import Entity, EntityContinuation, EntityPage, EntityWriteResult, TableList


def _table_context(
    endpoint: Endpoint,
    credential: SharedKeyCredential | None,
    config: ClientConfig | None,
    http_client: httpx.AsyncClient | None,
    clock: Clock | None = None,
) -> ServiceContext:
    config = config or ClientConfig()
    return build_context(
        endpoint,
        credential,
        transport=async_transport(config, http_client),
        config=config,
        dialect=SigningDialect.SHARED_KEY_LITE,
        default_headers=TABLE_DEFAULT_HEADERS,
        clock=clock,
    )


class AsyncTableServiceClient(AsyncClosingMixin, _BaseTableServiceClient):
    def __init__(
        self,
        endpoint: str | httpx.URL | Endpoint,
        credential: SharedKeyCredential | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Clock | None = None,
    ) -> None:
        context = _table_context(coerce_endpoint(endpoint), credential, config, http_client, clock)
        super().__init__(context, owns_transport=True)

    @classmethod
    def from_connection_string(
        cls,
        connection_string: str | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Clock | None = None,
    ) -> AsyncTableServiceClient:
        endpoint, credential = resolve_connection_string(connection_string, "table")
        return cls(endpoint, credential, config=config, http_client=http_client, clock=clock)

    async def create_table(self, table_name: str) -> str:
        return await self._create_table(table_name)

    async def delete_table(self, table_name: str) -> None:
        await self._delete_table(table_name)

    async def table_exists(self, table_name: str) -> bool:
        return await self._table_exists(table_name)

    async def list_tables(self, *, next_table_name: str | None = None) -> TableList:
        return await self._list_tables(next_table_name=next_table_name)

    def iter_tables(self, *, next_table_name: str | None = None) -> AsyncListCursor[TableList]:
        async def fetch(marker: str | None) -> TableList:
            return await self._list_tables(next_table_name=marker)

        return AsyncListCursor(fetch, next_table_name)

    def get_table_client(self, table_name: str) -> AsyncTableClient:
        return AsyncTableClient(self._context, table_name)


class AsyncTableClient(AsyncClosingMixin, _BaseTableClient):
    @classmethod
    def from_connection_string(
        cls,
        table_name: str,
        connection_string: str | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> AsyncTableClient:
        endpoint, credential = resolve_connection_string(connection_string, "table")
        context = _table_context(endpoint, credential, config, http_client)
        return cls(context, table_name, owns_transport=True)

    async def create(self) -> None:
        await self._create()

    async def delete(self) -> None:
        await self._delete()

    async def exists(self) -> bool:
        return await self._exists()

    async def insert_entity(self, entity: Mapping[str, Any]) -> EntityWriteResult:
        return await self._insert_entity(entity)

    async def insert_or_merge_entity(self, entity: Mapping[str, Any]) -> EntityWriteResult:
        return await self._insert_or_merge_entity(entity)

    async def insert_or_replace_entity(self, entity: Mapping[str, Any]) -> EntityWriteResult:
        return await self._insert_or_replace_entity(entity)

    async def update_entity(self, entity: Mapping[str, Any], *, etag: str = "*") -> EntityWriteResult:
        return await self._update_entity(entity, etag=etag)

    async def merge_entity(self, entity: Mapping[str, Any], *, etag: str = "*") -> EntityWriteResult:
        return await self._merge_entity(entity, etag=etag)

    async def delete_entity(self, partition_key: str, row_key: str, *, etag: str = "*") -> None:
        await self._delete_entity(partition_key, row_key, etag=etag)

    async def get_entity(
        self, partition_key: str, row_key: str, *, select: Sequence[str] | None = None
    ) -> Entity:
        return await self._get_entity(partition_key, row_key, select=select)

    async def entity_exists(self, partition_key: str, row_key: str) -> bool:
        return await self._entity_exists(partition_key, row_key)

    async def query_entities(
        self,
        *,
        filter: str | None = None,
        top: int | None = None,
        select: Sequence[str] | None = None,
        next_partition_key: str | None = None,
        next_row_key: str | None = None,
    ) -> EntityPage:
        return await self._query_entities(
            filter=filter,
            top=top,
            select=select,
            next_partition_key=next_partition_key,
            next_row_key=next_row_key,
        )

    def iter_entities(
        self,
        *,
        filter: str | None = None,
        top: int | None = None,
        select: Sequence[str] | None = None,
    ) -> AsyncListCursor[EntityPage]:
        async def fetch(marker: EntityContinuation | None) -> EntityPage:
            return await self._query_entities(
                filter=filter,
                top=top,
                select=select,
                next_partition_key=marker.next_partition_key if marker else None,
                next_row_key=marker.next_row_key if marker else None,
            )

        return AsyncListCursor(fetch)


__all__ = ["AsyncTableServiceClient", "AsyncTableClient"]
