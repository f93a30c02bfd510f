"""Synchronous table service clients."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
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
from .._core.paging import ListCursor
from .._http.config import ClientConfig
from .._http.iter_coroutine import iter_coroutine
from .._http.pipeline import Clock
from ..auth.connection_string import Endpoint
from ..auth.shared_key import SharedKeyCredential, SigningDialect
from ._core import TABLE_DEFAULT_HEADERS, _BaseTableClient, _BaseTableServiceClient
from .types import Entity, EntityContinuation, EntityPage, EntityWriteResult, TableList


def _table_context(
    endpoint: Endpoint,
    credential: SharedKeyCredential | None,
    config: ClientConfig | None,
    http_client: httpx.Client | None,
    clock: Clock | None = None,
) -> ServiceContext:
    config = config or ClientConfig()
    return build_context(
        endpoint,
        credential,
        transport=blocking_transport(config, http_client),
        config=config,
        dialect=SigningDialect.SHARED_KEY_LITE,
        default_headers=TABLE_DEFAULT_HEADERS,
        clock=clock,
    )


class TableServiceClient(ClosingMixin, _BaseTableServiceClient):
    def __init__(
        self,
        endpoint: str | httpx.URL | Endpoint,
        credential: SharedKeyCredential | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.Client | None = None,
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
        http_client: httpx.Client | None = None,
        clock: Clock | None = None,
    ) -> TableServiceClient:
        endpoint, credential = resolve_connection_string(connection_string, "table")
        return cls(endpoint, credential, config=config, http_client=http_client, clock=clock)

    def create_table(self, table_name: str) -> str:
        return iter_coroutine(self._create_table(table_name))

    def delete_table(self, table_name: str) -> None:
        iter_coroutine(self._delete_table(table_name))

    def table_exists(self, table_name: str) -> bool:
        return iter_coroutine(self._table_exists(table_name))

    def list_tables(self, *, next_table_name: str | None = None) -> TableList:
        return iter_coroutine(self._list_tables(next_table_name=next_table_name))

    def iter_tables(self, *, next_table_name: str | None = None) -> ListCursor[TableList]:
        def fetch(marker: str | None) -> TableList:
            return self.list_tables(next_table_name=marker)

        return ListCursor(fetch, next_table_name)

    def get_table_client(self, table_name: str) -> TableClient:
        return TableClient(self._context, table_name)


class TableClient(ClosingMixin, _BaseTableClient):
    @classmethod
    def from_connection_string(
        cls,
        table_name: str,
        connection_string: str | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.Client | None = None,
    ) -> TableClient:
        endpoint, credential = resolve_connection_string(connection_string, "table")
        context = _table_context(endpoint, credential, config, http_client)
        return cls(context, table_name, owns_transport=True)

    def create(self) -> None:
        iter_coroutine(self._create())

    def delete(self) -> None:
        iter_coroutine(self._delete())

    def exists(self) -> bool:
        return iter_coroutine(self._exists())

    def insert_entity(self, entity: Mapping[str, Any]) -> EntityWriteResult:
        return iter_coroutine(self._insert_entity(entity))

    def insert_or_merge_entity(self, entity: Mapping[str, Any]) -> EntityWriteResult:
        return iter_coroutine(self._insert_or_merge_entity(entity))

    def insert_or_replace_entity(self, entity: Mapping[str, Any]) -> EntityWriteResult:
        return iter_coroutine(self._insert_or_replace_entity(entity))

    def update_entity(self, entity: Mapping[str, Any], *, etag: str = "*") -> EntityWriteResult:
        return iter_coroutine(self._update_entity(entity, etag=etag))

    def merge_entity(self, entity: Mapping[str, Any], *, etag: str = "*") -> EntityWriteResult:
        return iter_coroutine(self._merge_entity(entity, etag=etag))

    def delete_entity(self, partition_key: str, row_key: str, *, etag: str = "*") -> None:
        iter_coroutine(self._delete_entity(partition_key, row_key, etag=etag))

    def get_entity(
        self, partition_key: str, row_key: str, *, select: Sequence[str] | None = None
    ) -> Entity:
        return iter_coroutine(self._get_entity(partition_key, row_key, select=select))

    def entity_exists(self, partition_key: str, row_key: str) -> bool:
        return iter_coroutine(self._entity_exists(partition_key, row_key))

    def query_entities(
        self,
        *,
        filter: str | None = None,
        top: int | None = None,
        select: Sequence[str] | None = None,
        next_partition_key: str | None = None,
        next_row_key: str | None = None,
    ) -> EntityPage:
        return iter_coroutine(
            self._query_entities(
                filter=filter,
                top=top,
                select=select,
                next_partition_key=next_partition_key,
                next_row_key=next_row_key,
            )
        )

    def iter_entities(
        self,
        *,
        filter: str | None = None,
        top: int | None = None,
        select: Sequence[str] | None = None,
    ) -> ListCursor[EntityPage]:
        def fetch(marker: EntityContinuation | None) -> EntityPage:
            return self.query_entities(
                filter=filter,
                top=top,
                select=select,
                next_partition_key=marker.next_partition_key if marker else None,
                next_row_key=marker.next_row_key if marker else None,
            )

        return ListCursor(fetch)


__all__ = ["TableServiceClient", "TableClient"]
