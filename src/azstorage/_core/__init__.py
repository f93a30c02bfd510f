"""Shared client infrastructure: request helper, paging and common models."""

from __future__ import annotations

from .client import BaseStorageClient, ServiceContext, build_context
from .models import ListPage, Metadata, parse_http_date
from .paging import AsyncListCursor, ListCursor

__all__ = [
    "BaseStorageClient",
    "ServiceContext",
    "build_context",
    "ListPage",
    "Metadata",
    "parse_http_date",
    "ListCursor",
    "AsyncListCursor",
]
