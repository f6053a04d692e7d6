"""
Tests for the bidirectional stream relay.
"""

import asyncio
import os
from typing import AsyncIterator, List, Tuple
from unittest.mock import AsyncMock, Mock

import pytest

from sshforward.core.services.pipe import Pipe, PipeResult, close_stream
from helpers import server_port, wait_until


def memory_writer() -> Mock:
    """Writer collecting everything written to it."""
    writer = Mock()
    writer.chunks = []
    writer.write.side_effect = writer.chunks.append
    writer.drain = AsyncMock()
    return writer


def fed_reader(data: bytes, eof: bool = True) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    if data:
        reader.feed_data(data)
    if eof:
        reader.feed_eof()
    return reader


class TestPipeInMemory:
    """Pipe behaviour on in-memory streams."""

    async def test_upstream_eof_concludes_session(self) -> None:
        a_writer = memory_writer()
        b_writer = memory_writer()
        # b never produces anything: its copy must be cancelled, not awaited forever
        pipe = Pipe(
            (fed_reader(b"hello"), a_writer),
            (fed_reader(b"", eof=False), b_writer)
        )

        result = await asyncio.wait_for(pipe.run(), timeout=1.0)

        assert b"".join(b_writer.chunks) == b"hello"
        assert result.bytes_upstream == 5
        assert result.bytes_downstream == 0
        assert result.finished_first == "upstream"

    async def test_downstream_eof_concludes_session(self) -> None:
        a_writer = memory_writer()
        pipe = Pipe(
            (fed_reader(b"", eof=False), a_writer),
            (fed_reader(b"response"), memory_writer())
        )

        result = await asyncio.wait_for(pipe.run(), timeout=1.0)

        assert b"".join(a_writer.chunks) == b"response"
        assert result.bytes_downstream == 8
        assert result.finished_first == "downstream"

    async def test_write_error_is_not_escalated(self) -> None:
        b_writer = memory_writer()
        b_writer.drain.side_effect = ConnectionResetError("peer reset")
        pipe = Pipe(
            (fed_reader(b"data", eof=False), memory_writer()),
            (fed_reader(b"", eof=False), b_writer)
        )

        result = await asyncio.wait_for(pipe.run(), timeout=1.0)

        assert isinstance(result, PipeResult)
        assert result.finished_first == "upstream"

    async def test_chunked_copy_preserves_order(self) -> None:
        payload = bytes(range(256)) * 100
        b_writer = memory_writer()
        pipe = Pipe(
            (fed_reader(payload), memory_writer()),
            (fed_reader(b"", eof=False), b_writer),
            chunk_size=1000
        )

        await pipe.run()

        assert b"".join(b_writer.chunks) == payload
        assert all(len(chunk) <= 1000 for chunk in b_writer.chunks)

    async def test_run_cancellation_leaves_no_copy_tasks(self) -> None:
        pipe = Pipe(
            (fed_reader(b"", eof=False), memory_writer()),
            (fed_reader(b"", eof=False), memory_writer())
        )
        before = len(asyncio.all_tasks())

        task = asyncio.ensure_future(pipe.run())
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(asyncio.all_tasks()) == before

    def test_invalid_chunk_size(self) -> None:
        with pytest.raises(ValueError):
            Pipe((Mock(), Mock()), (Mock(), Mock()), chunk_size=0)


class TestPipeOverSockets:
    """Pipe relaying real loopback TCP connections."""

    @pytest.fixture
    async def relay(self, echo_server: asyncio.AbstractServer) -> AsyncIterator[Tuple[int, List[PipeResult]]]:
        """A local server piping every client to the echo server."""
        results: List[PipeResult] = []
        target_port = server_port(echo_server)

        async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            remote = await asyncio.open_connection("127.0.0.1", target_port)
            try:
                results.append(await Pipe((reader, writer), remote).run())
            finally:
                await close_stream(remote[1])
                await close_stream(writer)

        server = await asyncio.start_server(handle, host="127.0.0.1", port=0)
        yield server_port(server), results
        server.close()

    async def test_small_payload_round_trip(self, relay: Tuple[int, List[PipeResult]]) -> None:
        port, _ = relay
        reader, writer = await asyncio.open_connection("127.0.0.1", port)

        writer.write(b"PING")
        await writer.drain()

        assert await asyncio.wait_for(reader.readexactly(4), timeout=2.0) == b"PING"
        writer.close()

    async def test_multi_megabyte_payload_is_byte_exact(self, relay: Tuple[int, List[PipeResult]]) -> None:
        port, results = relay
        payload = os.urandom(4 * 1024 * 1024)
        reader, writer = await asyncio.open_connection("127.0.0.1", port)

        async def send() -> None:
            writer.write(payload)
            await writer.drain()

        sender = asyncio.ensure_future(send())
        received = await asyncio.wait_for(reader.readexactly(len(payload)), timeout=20.0)
        await sender

        assert received == payload

        writer.close()
        await wait_until(lambda: len(results) == 1)
        assert results[0].bytes_upstream == len(payload)

    async def test_empty_session(self, relay: Tuple[int, List[PipeResult]]) -> None:
        port, results = relay
        reader, writer = await asyncio.open_connection("127.0.0.1", port)

        writer.close()

        await wait_until(lambda: len(results) == 1)
        assert results[0].bytes_upstream == 0
        assert await asyncio.wait_for(reader.read(), timeout=2.0) == b""


class TestCloseStream:
    """Test the writer close helper."""

    async def test_close_and_wait(self) -> None:
        writer = Mock()
        writer.wait_closed = AsyncMock()

        await close_stream(writer)

        writer.close.assert_called_once()
        writer.wait_closed.assert_awaited_once()

    async def test_errors_are_ignored(self) -> None:
        writer = Mock()
        writer.close.side_effect = OSError("already closed")
        writer.wait_closed = AsyncMock(side_effect=ConnectionResetError())

        await close_stream(writer)

    async def test_none_writer(self) -> None:
        await close_stream(None)

    async def test_writer_without_wait_closed(self) -> None:
        writer = Mock(spec=["close"])

        await close_stream(writer)

        writer.close.assert_called_once()
