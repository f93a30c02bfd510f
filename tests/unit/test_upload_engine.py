"""Tests for upload source normalisation, strategy choice and the block runtimes."""

from __future__ import annotations

import base64
import hashlib
import io
import threading
import time
import xml.etree.ElementTree as ET

import anyio
import pytest

from azstorage.blob import (
    BlobUploadOptions,
    UploadBlockList,
    UploadSource,
    UploadStrategy,
    block_id,
    choose_upload_strategy,
)
from azstorage.blob.upload import (
    create_async_block_upload_runtime,
    create_sync_block_upload_runtime,
)


class _NonSeekable(io.RawIOBase):
    def __init__(self, payload: bytes) -> None:
        self._inner = io.BytesIO(payload)

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def read(self, size: int = -1) -> bytes:
        return self._inner.read(size)


class TestBlockIds:
    def test_block_id_is_padded_decimal_in_base64(self) -> None:
        assert block_id(0) == "MDAwMDAw"
        assert base64.b64decode(block_id(12)) == b"000012"

    def test_all_ids_have_equal_length(self) -> None:
        assert {len(block_id(i)) for i in (0, 9, 99, 999_999)} == {8}

    def test_block_list_xml_keeps_read_order(self) -> None:
        blocks = UploadBlockList()
        for size in (8, 8, 4):
            blocks.push(size)

        root = ET.fromstring(blocks.to_xml())

        assert root.tag == "BlockList"
        assert [node.text for node in root.findall("Latest")] == [block_id(0), block_id(1), block_id(2)]
        assert [block.size for block in blocks] == [8, 8, 4]


class TestUploadSource:
    def test_bytes_are_seekable_with_known_size(self) -> None:
        source = UploadSource.from_data(b"hello")

        assert source.size == 5
        assert source.seekable

    def test_str_is_utf8(self) -> None:
        source = UploadSource.from_data("héllo")

        assert source.size == len("héllo".encode())
        assert source.read(100) == "héllo".encode()

    def test_stream_size_counts_from_current_position(self) -> None:
        stream = io.BytesIO(b"0123456789")
        stream.seek(3)

        source = UploadSource.from_data(stream)

        assert source.size == 7
        assert source.start == 3
        assert b"".join(source.iter_from_start(chunk_size=2)) == b"3456789"
        assert source.content_md5() == hashlib.md5(b"3456789").digest()

    def test_non_seekable_stream_has_unknown_size(self) -> None:
        source = UploadSource.from_data(_NonSeekable(b"abc"))

        assert source.size is None
        assert not source.seekable

    def test_iterable_chunks_are_regrouped(self) -> None:
        source = UploadSource.from_data(iter([b"ab", b"cde", bytearray(b"f")]))

        assert source.read(4) == b"abcd"
        assert source.read(4) == b"ef"
        assert source.read(4) == b""

    def test_unsupported_type(self) -> None:
        with pytest.raises(TypeError):
            UploadSource.from_data(42)  # type: ignore[arg-type]

    def test_async_iterable_rejected_by_sync_read(self) -> None:
        async def chunks():
            yield b"a"

        source = UploadSource.from_data(chunks())

        assert source.is_async
        with pytest.raises(TypeError):
            source.read(1)

    @pytest.mark.asyncio
    async def test_async_iterable_read(self) -> None:
        async def chunks():
            yield b"abc"
            yield b"def"

        source = UploadSource.from_data(chunks())

        assert await source.aread(5) == b"abcde"
        assert await source.aread(5) == b"f"
        assert await source.aread(5) == b""


class TestStrategy:
    def test_small_seekable_goes_single_shot(self) -> None:
        source = UploadSource.from_data(b"x" * 10)

        assert choose_upload_strategy(source, BlobUploadOptions()) is UploadStrategy.SINGLE_SHOT

    def test_empty_bytes_go_single_shot(self) -> None:
        source = UploadSource.from_data(b"")

        assert choose_upload_strategy(source, BlobUploadOptions()) is UploadStrategy.SINGLE_SHOT

    def test_large_seekable_goes_concurrent(self) -> None:
        source = UploadSource.from_data(b"x" * 11)
        options = BlobUploadOptions(max_single_put_size=10)

        assert choose_upload_strategy(source, options) is UploadStrategy.CONCURRENT_BLOCKS

    def test_size_equal_to_threshold_is_single_shot(self) -> None:
        source = UploadSource.from_data(b"x" * 10)
        options = BlobUploadOptions(max_single_put_size=10)

        assert choose_upload_strategy(source, options) is UploadStrategy.SINGLE_SHOT

    @pytest.mark.parametrize(
        "data", [iter([b"abc"]), _NonSeekable(b"abc")], ids=["iterator", "non-seekable"]
    )
    def test_unknown_size_goes_sequential(self, data) -> None:
        source = UploadSource.from_data(data)

        assert choose_upload_strategy(source, BlobUploadOptions()) is UploadStrategy.SEQUENTIAL_BLOCKS

    @pytest.mark.parametrize(
        "kwargs", [{"block_size": 0}, {"max_concurrency": 0}, {"max_single_put_size": -1}]
    )
    def test_options_are_validated(self, kwargs) -> None:
        with pytest.raises(ValueError):
            BlobUploadOptions(**kwargs)


class TestSyncRuntime:
    def test_stages_every_block_with_bounded_concurrency(self) -> None:
        lock = threading.Lock()
        active = 0
        peak = 0
        staged: dict[int, bytes] = {}

        def stage(block, content: bytes) -> None:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.01)
            with lock:
                active -= 1
                staged[block.index] = content

        source = UploadSource.from_data(b"a" * 8 + b"b" * 8 + b"c" * 8 + b"d" * 8 + b"e" * 3)
        blocks = create_sync_block_upload_runtime().upload(
            source=source, block_size=8, max_concurrency=2, stage_block=stage
        )

        assert len(blocks) == 5
        assert blocks.ids == [block_id(i) for i in range(5)]
        assert b"".join(staged[i] for i in range(5)) == source_bytes(source)
        assert peak <= 2

    def test_failure_propagates(self) -> None:
        def stage(block, content: bytes) -> None:
            if block.index == 1:
                raise RuntimeError("boom")

        source = UploadSource.from_data(b"x" * 30)

        with pytest.raises(RuntimeError, match="boom"):
            create_sync_block_upload_runtime().upload(
                source=source, block_size=8, max_concurrency=2, stage_block=stage
            )


class TestAsyncRuntime:
    @pytest.mark.asyncio
    async def test_bounded_concurrency(self) -> None:
        active = 0
        peak = 0
        staged: list[int] = []

        async def stage(block, content: bytes) -> None:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await anyio.sleep(0.01)
            active -= 1
            staged.append(block.index)

        source = UploadSource.from_data(b"z" * 50)
        blocks = await create_async_block_upload_runtime().upload(
            source=source, block_size=8, max_concurrency=3, stage_block=stage
        )

        assert len(blocks) == 7
        assert sorted(staged) == list(range(7))
        assert peak <= 3

    @pytest.mark.asyncio
    async def test_first_failure_is_raised_unwrapped(self) -> None:
        async def stage(block, content: bytes) -> None:
            if block.index == 2:
                raise ValueError("stage failed")
            await anyio.sleep(0.05)

        source = UploadSource.from_data(b"z" * 80)

        with pytest.raises(ValueError, match="stage failed"):
            await create_async_block_upload_runtime().upload(
                source=source, block_size=8, max_concurrency=4, stage_block=stage
            )


def source_bytes(source: UploadSource) -> bytes:
    return b"".join(source.iter_from_start())
