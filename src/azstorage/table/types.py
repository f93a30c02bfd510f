from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

Entity = dict[str, Any]


@dataclass(slots=True)
class TableList:
    """One page of table names.

    ``next_table_name`` comes from the ``x-ms-continuation-NextTableName``
    response header and is ``None`` on the last page.
    """

    tables: list[str] = field(default_factory=list)
    next_table_name: str | None = None

    @property
    def items(self) -> list[str]:
        return self.tables

    @property
    def next_marker(self) -> str | None:
        return self.next_table_name

    def __len__(self) -> int:
        return len(self.tables)

    def __iter__(self) -> Iterator[str]:
        return iter(self.tables)


@dataclass(frozen=True, slots=True)
class EntityContinuation:
    next_partition_key: str
    next_row_key: str | None = None


@dataclass(slots=True)
class EntityPage:
    entities: list[Entity] = field(default_factory=list)
    next_partition_key: str | None = None
    next_row_key: str | None = None

    @property
    def items(self) -> list[Entity]:
        return self.entities

    @property
    def next_marker(self) -> EntityContinuation | None:
        if self.next_partition_key is None:
            return None
        return EntityContinuation(self.next_partition_key, self.next_row_key)

    def __len__(self) -> int:
        return len(self.entities)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)


@dataclass(slots=True)
class EntityWriteResult:
    """Outcome of an entity write: the new ETag, plus the stored entity for inserts."""

    etag: str | None
    entity: Entity | None = None


__all__ = ["Entity", "TableList", "EntityContinuation", "EntityPage", "EntityWriteResult"]
