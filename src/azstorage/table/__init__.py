from ._core import TABLE_DEFAULT_HEADERS, entity_segment
from .aio import AsyncTableClient, AsyncTableServiceClient
from .client import TableClient, TableServiceClient
from .types import Entity, EntityContinuation, EntityPage, EntityWriteResult, TableList

__all__ = [
    "TableServiceClient",
    "TableClient",
    "AsyncTableServiceClient",
    "AsyncTableClient",
    "TABLE_DEFAULT_HEADERS",
    "entity_segment",
    "Entity",
    "EntityContinuation",
    "EntityPage",
    "EntityWriteResult",
    "TableList",
]
