from ._core import BlobCopyResult
from .aio import AsyncBlobClient, AsyncBlobServiceClient, AsyncContainerClient
from .client import BlobClient, BlobServiceClient, ContainerClient
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
from .upload import UploadBlock, UploadBlockList, UploadSource, block_id, choose_upload_strategy

__all__ = [
    "BlobServiceClient",
    "ContainerClient",
    "BlobClient",
    "AsyncBlobServiceClient",
    "AsyncContainerClient",
    "AsyncBlobClient",
    "BlobCopyResult",
    "BlobItem",
    "BlobProperties",
    "BlobUploadOptions",
    "Container",
    "ContainerProperties",
    "DownloadedBlob",
    "Tags",
    "UploadResult",
    "UploadStrategy",
    "UploadBlock",
    "UploadBlockList",
    "UploadSource",
    "block_id",
    "choose_upload_strategy",
]
