"""Block upload engine.

Inputs are normalised into an :class:`UploadSource`, a strategy is chosen from
its size and seekability, and block strategies stage ``block_size`` chunks
before committing the block list in read order.
"""

from __future__ import annotations

import base64
import hashlib
import io
import logging
import os
import xml.etree.ElementTree as ET
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable, Iterator
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import IO, Any, Union

import anyio

from .._core.xmlutil import to_bytes
from .._http.request import SeekableBody
from .types import BlobUploadOptions, UploadStrategy

logger = logging.getLogger(__name__)

UploadData = Union[
    bytes,
    bytearray,
    memoryview,
    str,
    IO[bytes],
    Iterable[bytes],
    AsyncIterable[bytes],
]

BLOCK_ID_WIDTH = 6
_READ_CHUNK = 64 * 1024


def block_id(index: int) -> str:
    """Base64 of the zero-padded decimal index, e.g. ``MDAwMDAw`` for 0."""
    return base64.b64encode(str(index).zfill(BLOCK_ID_WIDTH).encode("ascii")).decode("ascii")


def _as_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, bytes):
        return chunk
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    return bytes(chunk)


def _is_seekable(stream: Any) -> bool:
    seekable = getattr(stream, "seekable", None)
    if not callable(seekable):
        return False
    try:
        return bool(seekable())
    except (OSError, ValueError):
        return False


class UploadSource:
    """Uniform reader over everything :meth:`BlobClient.upload` accepts.

    ``size`` is ``None`` when it cannot be known without consuming the input.
    ``start`` is the stream position at which the upload began; seekable
    sources can be re-read from there.
    """

    def __init__(
        self,
        *,
        stream: IO[bytes] | None = None,
        iterator: Iterator[Any] | None = None,
        aiterator: AsyncIterator[Any] | None = None,
        size: int | None = None,
        seekable: bool = False,
        start: int = 0,
    ) -> None:
        self._stream = stream
        self._iterator = iterator
        self._aiterator = aiterator
        self._buffer = bytearray()
        self._exhausted = False
        self.size = size
        self.seekable = seekable
        self.start = start

    @classmethod
    def from_data(cls, data: UploadData) -> UploadSource:
        if isinstance(data, str):
            data = data.encode("utf-8")
        if isinstance(data, (bytes, bytearray, memoryview)):
            payload = bytes(data)
            return cls(stream=io.BytesIO(payload), size=len(payload), seekable=True)
        if hasattr(data, "read"):
            stream = data  # type: ignore[assignment]
            if _is_seekable(stream):
                start = stream.tell()  # type: ignore[union-attr]
                end = stream.seek(0, os.SEEK_END)  # type: ignore[union-attr]
                stream.seek(start)  # type: ignore[union-attr]
                return cls(stream=stream, size=end - start, seekable=True, start=start)  # type: ignore[arg-type]
            return cls(stream=stream)  # type: ignore[arg-type]
        if hasattr(data, "__aiter__"):
            return cls(aiterator=data.__aiter__())  # type: ignore[union-attr]
        if isinstance(data, Iterable):
            return cls(iterator=iter(data))
        raise TypeError(
            f"Cannot upload {type(data).__name__!r}; pass bytes, str, a binary file "
            "object or an iterable of bytes."
        )

    @property
    def is_async(self) -> bool:
        return self._aiterator is not None

    def _take(self, size: int) -> bytes:
        chunk = bytes(self._buffer[:size])
        del self._buffer[:size]
        return chunk

    def read(self, size: int) -> bytes:
        """Return up to ``size`` bytes; ``b""`` only once the input is exhausted."""
        if self._stream is not None:
            # raw streams may return short reads before EOF
            while len(self._buffer) < size and not self._exhausted:
                chunk = self._stream.read(size - len(self._buffer))
                if not chunk:
                    self._exhausted = True
                    break
                self._buffer.extend(_as_bytes(chunk))
            return self._take(size)
        if self._aiterator is not None:
            raise TypeError("Asynchronous iterables can only be uploaded with the async client.")
        while len(self._buffer) < size and not self._exhausted and self._iterator is not None:
            try:
                self._buffer.extend(_as_bytes(next(self._iterator)))
            except StopIteration:
                self._exhausted = True
        return self._take(size)

    async def aread(self, size: int) -> bytes:
        if self._aiterator is None:
            return self.read(size)
        while len(self._buffer) < size and not self._exhausted:
            try:
                self._buffer.extend(_as_bytes(await self._aiterator.__anext__()))
            except StopAsyncIteration:
                self._exhausted = True
        return self._take(size)

    def iter_from_start(self, chunk_size: int = _READ_CHUNK) -> Iterator[bytes]:
        if not self.seekable or self._stream is None:
            raise TypeError("Only seekable sources can be re-read")
        self._stream.seek(self.start)
        while chunk := self._stream.read(chunk_size):
            yield _as_bytes(chunk)

    def content_md5(self) -> bytes:
        digest = hashlib.md5()
        for chunk in self.iter_from_start():
            digest.update(chunk)
        return digest.digest()

    def body(self) -> SeekableBody:
        """Replayable request body covering the whole source."""
        if not self.seekable or self._stream is None or self.size is None:
            raise TypeError("Only seekable sources of known size can be sent in one request")
        return SeekableBody(self._stream, self.start, self.size)


def choose_upload_strategy(source: UploadSource, options: BlobUploadOptions) -> UploadStrategy:
    if source.size is None or not source.seekable:
        return UploadStrategy.SEQUENTIAL_BLOCKS
    if source.size > options.max_single_put_size:
        return UploadStrategy.CONCURRENT_BLOCKS
    return UploadStrategy.SINGLE_SHOT


@dataclass(frozen=True, slots=True)
class UploadBlock:
    index: int
    size: int

    @property
    def id(self) -> str:
        return block_id(self.index)


class UploadBlockList:
    """Blocks in the order they were read from the source."""

    def __init__(self) -> None:
        self._blocks: list[UploadBlock] = []

    def push(self, size: int) -> UploadBlock:
        block = UploadBlock(len(self._blocks), size)
        self._blocks.append(block)
        return block

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[UploadBlock]:
        return iter(self._blocks)

    @property
    def ids(self) -> list[str]:
        return [block.id for block in sorted(self._blocks, key=lambda b: b.index)]

    def to_xml(self) -> bytes:
        root = ET.Element("BlockList")
        for identifier in self.ids:
            ET.SubElement(root, "Latest").text = identifier
        return to_bytes(root)


SyncStageFn = Callable[[UploadBlock, bytes], Any]
AsyncStageFn = Callable[[UploadBlock, bytes], Awaitable[Any]]


class _SyncBlockUploadRuntime:
    def upload(
        self,
        *,
        source: UploadSource,
        block_size: int,
        max_concurrency: int,
        stage_block: SyncStageFn,
    ) -> UploadBlockList:
        blocks = UploadBlockList()
        with ThreadPoolExecutor(max_workers=max_concurrency) as executor:
            inflight: set[Future[Any]] = set()
            try:
                while content := source.read(block_size):
                    block = blocks.push(len(content))
                    inflight.add(executor.submit(stage_block, block, content))
                    if len(inflight) >= max_concurrency:
                        done, inflight = wait(inflight, return_when=FIRST_COMPLETED)
                        for completed in done:
                            completed.result()
                remaining = wait(inflight).done
                inflight = set()
                for completed in remaining:
                    completed.result()
            except BaseException:
                for pending in inflight:
                    pending.cancel()
                raise
        return blocks


class _AsyncBlockUploadRuntime:
    async def upload(
        self,
        *,
        source: UploadSource,
        block_size: int,
        max_concurrency: int,
        stage_block: AsyncStageFn,
    ) -> UploadBlockList:
        blocks = UploadBlockList()
        semaphore = anyio.Semaphore(max_concurrency)
        failures: list[Exception] = []

        async with anyio.create_task_group() as task_group:

            async def run_limited_stage(block: UploadBlock, content: bytes) -> None:
                try:
                    await stage_block(block, content)
                except Exception as exc:
                    failures.append(exc)
                    task_group.cancel_scope.cancel()
                finally:
                    semaphore.release()

            while not failures:
                # a slot must be free before the next chunk is read into memory
                await semaphore.acquire()
                content = await source.aread(block_size)
                if not content:
                    semaphore.release()
                    break
                block = blocks.push(len(content))
                task_group.start_soon(run_limited_stage, block, content)

        if failures:
            raise failures[0]
        return blocks


def create_sync_block_upload_runtime() -> _SyncBlockUploadRuntime:
    return _SyncBlockUploadRuntime()


def create_async_block_upload_runtime() -> _AsyncBlockUploadRuntime:
    return _AsyncBlockUploadRuntime()


__all__ = [
    "UploadData",
    "UploadSource",
    "UploadBlock",
    "UploadBlockList",
    "block_id",
    "choose_upload_strategy",
    "create_sync_block_upload_runtime",
    "create_async_block_upload_runtime",
]
