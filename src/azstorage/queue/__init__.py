from .aio import AsyncQueueClient, AsyncQueueServiceClient
from .client import QueueClient, QueueServiceClient
from .types import Message, MessageList, MessageUpdate, Queue

__all__ = [
    "QueueServiceClient",
    "QueueClient",
    "AsyncQueueServiceClient",
    "AsyncQueueClient",
    "Queue",
    "Message",
    "MessageList",
    "MessageUpdate",
]
