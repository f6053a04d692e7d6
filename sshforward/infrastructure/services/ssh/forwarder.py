"""
Forward listener for the SSH Forward application.

A ForwardListener owns the local listening socket of one forward for one
connection generation. Each accepted local connection gets its own channel
over the generation's SSH connection and its own Pipe.
"""

import asyncio
from typing import Any, Optional, Set

from loguru import logger

from ....core.exceptions import ForwardBindError
from ....core.interfaces.ssh import ForwardSpec, ISSHConnection
from ....core.services.pipe import DEFAULT_CHUNK_SIZE, Pipe, close_stream
from ....core.services.teardown import TeardownSignal


class ForwardListener:
    """
    Local listener relaying accepted connections through SSH.

    The asyncio server is the listener handle shared by the accept side and
    the teardown watcher. Once the generation's TeardownSignal fires the
    server is closed and never reopened; a new generation creates a new
    ForwardListener. Stream sessions that are already running are not
    interrupted by teardown.
    """

    def __init__(
        self,
        connection: ISSHConnection,
        spec: ForwardSpec,
        signal: TeardownSignal,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        self._connection = connection
        self._spec = spec
        self._signal = signal
        self._chunk_size = chunk_size

        self._server: Optional[asyncio.AbstractServer] = None
        self._watcher: Optional[asyncio.Future[None]] = None
        self._closed = False
        self._sessions: Set[asyncio.Task[Any]] = set()
        self._stream_count = 0
        self._log = logger.bind(forward=spec.name, generation=signal.generation)

    @property
    def spec(self) -> ForwardSpec:
        return self._spec

    @property
    def listening(self) -> bool:
        return self._server is not None and not self._closed

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually bound, useful when the forward asks for port 0."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    @property
    def active_streams(self) -> int:
        return len(self._sessions)

    @property
    def total_streams(self) -> int:
        return self._stream_count

    async def serve(self) -> None:
        """Bind, accept until teardown, then release the socket."""
        await self.start()
        await self.wait_closed()

    async def start(self) -> None:
        """
        Bind the listening socket and arm the teardown watcher.

        Raises:
            ForwardBindError: If the local port cannot be bound.
        """
        if self._server is not None:
            return

        try:
            self._server = await asyncio.start_server(
                self._handle_client,
                host=self._spec.bind_host or None,
                port=self._spec.local_port,
                reuse_address=True
            )
        except OSError as e:
            raise ForwardBindError(self._spec.name, self._spec.local_port, str(e)) from e

        self._watcher = asyncio.ensure_future(self._close_on_teardown())
        self._log.info(
            f"{self._spec.name} listening: local {self.bound_port} -> remote {self._spec.target}"
        )

    async def wait_closed(self) -> None:
        """Block until the teardown watcher has released the socket."""
        if self._watcher is not None:
            await self._watcher

    async def _close_on_teardown(self) -> None:
        await self._signal.wait()
        self._close_server()

    def _close_server(self) -> None:
        if self._server is None or self._closed:
            return
        self._closed = True
        # Closes the listening sockets only; accepted streams keep running
        self._server.close()
        self._log.info(f"{self._spec.name} stopped listening on {self.bound_port or self._spec.local_port}")

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        if self._closed or self._signal.fired:
            await close_stream(writer)
            return

        self._stream_count += 1
        stream_id = self._stream_count
        peer = writer.get_extra_info("peername")
        task = asyncio.current_task()
        if task is not None:
            self._sessions.add(task)

        self._log.info(f"{self._spec.name} new connection #{stream_id} from {peer}")
        try:
            try:
                remote = await self._connection.open_channel(self._spec.remote_host, self._spec.remote_port)
            except Exception as e:
                self._log.warning(f"{self._spec.name} cannot reach {self._spec.target} for #{stream_id}: {e}")
                return

            try:
                pipe = Pipe(
                    (reader, writer),
                    remote,
                    chunk_size=self._chunk_size,
                    label=f"{self._spec.name}#{stream_id}"
                )
                result = await pipe.run()
            finally:
                await close_stream(remote[1])

            self._log.info(
                f"{self._spec.name} connection #{stream_id} closed "
                f"(sent {result.bytes_upstream} bytes, received {result.bytes_downstream} bytes)"
            )
        finally:
            await close_stream(writer)
            if task is not None:
                self._sessions.discard(task)
