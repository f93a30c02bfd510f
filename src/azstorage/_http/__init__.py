"""Shared HTTP infrastructure for the storage clients."""

from .config import DEFAULT_TIMEOUT, STORAGE_API_VERSION, ClientConfig
from .iter_coroutine import iter_coroutine
from .request import SeekableBody, StorageRequest
from .transport import AsyncTransport, BaseTransport, BlockingTransport

__all__ = [
    "DEFAULT_TIMEOUT",
    "STORAGE_API_VERSION",
    "ClientConfig",
    "iter_coroutine",
    "SeekableBody",
    "StorageRequest",
    "BaseTransport",
    "BlockingTransport",
    "AsyncTransport",
]
