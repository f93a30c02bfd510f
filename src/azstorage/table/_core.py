from __future__ import annotations

import json
import secrets
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

import httpx

from .._core.client import BaseStorageClient, ServiceContext
from ..errors import EntitySchemaError, StorageResponseError
from .types import Entity, EntityPage, EntityWriteResult, TableList

JSON_CONTENT_TYPE = "application/json"

TABLE_DEFAULT_HEADERS = {
    "DataServiceVersion": "3.0",
    "MaxDataServiceVersion": "3.0;NetFx",
    "Accept": "application/json;odata=nometadata",
    "Accept-Charset": "utf-8",
}

CONTINUATION_NEXT_TABLE_NAME = "x-ms-continuation-NextTableName"
CONTINUATION_NEXT_PARTITION_KEY = "x-ms-continuation-NextPartitionKey"
CONTINUATION_NEXT_ROW_KEY = "x-ms-continuation-NextRowKey"


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _json_body(data: Mapping[str, Any]) -> bytes:
    return json.dumps(data, default=_json_default, separators=(",", ":")).encode("utf-8")


def _odata_key(value: str) -> str:
    return value.replace("'", "''")


def entity_segment(table_name: str, partition_key: str, row_key: str) -> str:
    """Path segment addressing one entity, e.g. ``t(PartitionKey='p',RowKey='r')``."""
    return (
        f"{table_name}(PartitionKey='{_odata_key(partition_key)}',"
        f"RowKey='{_odata_key(row_key)}')"
    )


def enforce_keys(table_name: str, entity: Mapping[str, Any]) -> Entity:
    data = dict(entity)
    data.setdefault("PartitionKey", table_name)
    data.setdefault("RowKey", secrets.token_hex(16))
    return data


def require_keys(entity: Mapping[str, Any], operation: str) -> tuple[str, str]:
    for key in ("PartitionKey", "RowKey"):
        if entity.get(key) in (None, ""):
            raise EntitySchemaError(
                f'Missing entity property "{key}" while attempting to {operation} it.'
            )
    return str(entity["PartitionKey"]), str(entity["RowKey"])


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise StorageResponseError(
            response, f"Malformed JSON in response from {response.request.url.path}: {exc}"
        ) from exc


def _value_list(response: httpx.Response) -> list[Any]:
    data = _decode_json(response)
    value = data.get("value", []) if isinstance(data, dict) else None
    if not isinstance(value, list):
        raise StorageResponseError(
            response, f"Unexpected JSON document in response from {response.request.url.path}"
        )
    return value


def _select(select: Sequence[str] | None) -> dict[str, str]:
    return {"$select": ",".join(select)} if select else {}


class _BaseTableServiceClient(BaseStorageClient):
    async def _create_table(self, table_name: str) -> str:
        response = await self._request(
            "POST",
            "Tables",
            headers={"Content-Type": JSON_CONTENT_TYPE, "Prefer": "return-no-content"},
            content=_json_body({"TableName": table_name}),
        )
        return response.headers.get("x-ms-table-name") or table_name

    async def _delete_table(self, table_name: str) -> None:
        await self._request("DELETE", f"Tables('{_odata_key(table_name)}')")

    async def _table_exists(self, table_name: str) -> bool:
        return await self._resource_exists("GET", self._url(table_name), params={"comp": "acl"})

    async def _list_tables(self, *, next_table_name: str | None = None) -> TableList:
        params = {"NextTableName": next_table_name} if next_table_name else None
        response = await self._request("GET", "Tables", params=params)
        return TableList(
            tables=[entry["TableName"] for entry in _value_list(response)],
            next_table_name=response.headers.get(CONTINUATION_NEXT_TABLE_NAME) or None,
        )


class _BaseTableClient(BaseStorageClient):
    def __init__(self, context: ServiceContext, table_name: str, *, owns_transport: bool = False) -> None:
        super().__init__(context, table_name.strip(), owns_transport=owns_transport)
        self.table_name = table_name.strip()

    def _entity_url(self, partition_key: str, row_key: str) -> httpx.URL:
        return self.endpoint.url_for(entity_segment(self.table_name, partition_key, row_key))

    async def _create(self) -> None:
        await self._call(
            "POST",
            self.endpoint.url_for("Tables"),
            headers={"Content-Type": JSON_CONTENT_TYPE, "Prefer": "return-no-content"},
            content=_json_body({"TableName": self.table_name}),
        )

    async def _delete(self) -> None:
        await self._call("DELETE", self.endpoint.url_for(f"Tables('{_odata_key(self.table_name)}')"))

    async def _exists(self) -> bool:
        return await self._resource_exists("GET", params={"comp": "acl"})

    async def _write(
        self,
        method: str,
        url: httpx.URL,
        entity: Mapping[str, Any],
        *,
        etag: str | None = None,
        return_content: bool = False,
    ) -> EntityWriteResult:
        headers = {"Content-Type": JSON_CONTENT_TYPE}
        if etag is not None:
            headers["If-Match"] = etag
        if return_content:
            headers["Prefer"] = "return-content"
        response = await self._call(method, url, headers=headers, content=_json_body(entity))
        stored = _decode_json(response) if return_content and response.content else None
        return EntityWriteResult(etag=response.headers.get("etag"), entity=stored)

    async def _insert_entity(self, entity: Mapping[str, Any]) -> EntityWriteResult:
        data = enforce_keys(self.table_name, entity)
        return await self._write("POST", self._url(), data, return_content=True)

    async def _insert_or_merge_entity(self, entity: Mapping[str, Any]) -> EntityWriteResult:
        data = enforce_keys(self.table_name, entity)
        url = self._entity_url(data["PartitionKey"], data["RowKey"])
        return await self._write("MERGE", url, data)

    async def _insert_or_replace_entity(self, entity: Mapping[str, Any]) -> EntityWriteResult:
        data = enforce_keys(self.table_name, entity)
        url = self._entity_url(data["PartitionKey"], data["RowKey"])
        return await self._write("PUT", url, data)

    async def _update_entity(self, entity: Mapping[str, Any], *, etag: str = "*") -> EntityWriteResult:
        partition_key, row_key = require_keys(entity, "update")
        return await self._write("PUT", self._entity_url(partition_key, row_key), entity, etag=etag)

    async def _merge_entity(self, entity: Mapping[str, Any], *, etag: str = "*") -> EntityWriteResult:
        partition_key, row_key = require_keys(entity, "merge")
        return await self._write("MERGE", self._entity_url(partition_key, row_key), entity, etag=etag)

    async def _delete_entity(self, partition_key: str, row_key: str, *, etag: str = "*") -> None:
        await self._call("DELETE", self._entity_url(partition_key, row_key), headers={"If-Match": etag})

    async def _get_entity(
        self, partition_key: str, row_key: str, *, select: Sequence[str] | None = None
    ) -> Entity:
        response = await self._call(
            "GET", self._entity_url(partition_key, row_key), params=_select(select)
        )
        return _decode_json(response)

    async def _entity_exists(self, partition_key: str, row_key: str) -> bool:
        return await self._resource_exists(
            "GET", self._entity_url(partition_key, row_key), params=_select(["Timestamp"])
        )

    async def _query_entities(
        self,
        *,
        filter: str | None = None,
        top: int | None = None,
        select: Sequence[str] | None = None,
        next_partition_key: str | None = None,
        next_row_key: str | None = None,
    ) -> EntityPage:
        params: dict[str, Any] = _select(select)
        if filter is not None:
            params["$filter"] = filter
        if top is not None:
            params["$top"] = top
        if next_partition_key is not None:
            params["NextPartitionKey"] = next_partition_key
        if next_row_key is not None:
            params["NextRowKey"] = next_row_key
        response = await self._request("GET", params=params)
        return EntityPage(
            entities=_value_list(response),
            next_partition_key=response.headers.get(CONTINUATION_NEXT_PARTITION_KEY) or None,
            next_row_key=response.headers.get(CONTINUATION_NEXT_ROW_KEY) or None,
        )


__all__ = [
    "TABLE_DEFAULT_HEADERS",
    "entity_segment",
    "enforce_keys",
    "require_keys",
]
