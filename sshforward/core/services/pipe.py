"""
Bidirectional byte relay between two established duplex streams.

Both ends are (reader, writer) pairs with the asyncio stream API, which is
what asyncio.start_server hands to connection callbacks and what asyncssh
returns for direct TCP channels.
"""

import asyncio
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from loguru import logger

DEFAULT_CHUNK_SIZE = 64 * 1024

Stream = Tuple[Any, Any]


@dataclass
class PipeResult:
    """Outcome of one relay session."""
    bytes_upstream: int = 0
    bytes_downstream: int = 0
    finished_first: Optional[str] = None


class Pipe:
    """
    Copies bytes a -> b and b -> a concurrently.

    The session is over as soon as either direction reaches EOF or fails.
    The other direction is cancelled and awaited so no copy task outlives
    run(). Closing the streams is left to the caller.
    """

    def __init__(self, a: Stream, b: Stream, chunk_size: int = DEFAULT_CHUNK_SIZE, label: str = "pipe"):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._a = a
        self._b = b
        self._chunk_size = chunk_size
        self._label = label
        self._result = PipeResult()

    @property
    def result(self) -> PipeResult:
        return self._result

    async def run(self) -> PipeResult:
        """Relay until either direction completes."""
        a_reader, a_writer = self._a
        b_reader, b_writer = self._b

        upstream = asyncio.ensure_future(self._copy(a_reader, b_writer, "upstream"))
        downstream = asyncio.ensure_future(self._copy(b_reader, a_writer, "downstream"))
        tasks = {upstream: "upstream", downstream: "downstream"}

        try:
            done, pending = await asyncio.wait(tasks.keys(), return_when=asyncio.FIRST_COMPLETED)
            # Both may be done when they finish in the same loop iteration
            self._result.finished_first = "upstream" if upstream in done else "downstream"
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks.keys(), return_exceptions=True)

        return self._result

    async def _copy(self, reader: Any, writer: Any, direction: str) -> None:
        try:
            while True:
                data = await reader.read(self._chunk_size)
                if not data:
                    break
                writer.write(data)
                await writer.drain()
                self._count(direction, len(data))
        except Exception as e:
            # A broken stream is the normal end of a session
            logger.debug(f"{self._label}: {direction} copy ended: {e!r}")

    def _count(self, direction: str, size: int) -> None:
        if direction == "upstream":
            self._result.bytes_upstream += size
        else:
            self._result.bytes_downstream += size


async def close_stream(writer: Any) -> None:
    """Close a stream writer, ignoring errors from an already broken peer."""
    if writer is None:
        return
    with suppress(Exception):
        writer.close()
    wait_closed = getattr(writer, "wait_closed", None)
    if wait_closed is not None:
        with suppress(Exception):
            await wait_closed()
