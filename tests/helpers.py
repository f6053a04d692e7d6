"""
Test doubles and socket helpers shared by the SSH Forward tests.

The SSH transport is replaced by FakeConnection, whose channels are real
loopback TCP connections. Remote targets are small asyncio servers bound
to 127.0.0.1 on ephemeral ports.
"""

import asyncio
import socket
from typing import Any, Awaitable, Callable, List, Optional, Set, Tuple

from sshforward.core.exceptions import ChannelOpenError, DialError, ProbeError
from sshforward.core.interfaces.ssh import ISSHConnection, ISSHConnector, ServerEndpoint


class FakeConnection(ISSHConnection):
    """In-memory stand-in for an SSH connection."""

    def __init__(self) -> None:
        self.channel_requests: List[Tuple[str, int]] = []
        self.failing_targets: Set[Tuple[str, int]] = set()
        self.fail_next_channels = 0
        self.probe_error: Optional[str] = None
        self.probe_hang = False
        self.probe_calls = 0
        self.close_calls = 0
        self._closed = asyncio.Event()

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    async def open_channel(self, host: str, port: int) -> Tuple[Any, Any]:
        self.channel_requests.append((host, port))
        if self._closed.is_set():
            raise ChannelOpenError(host, port, "connection closed")
        if self.fail_next_channels > 0:
            self.fail_next_channels -= 1
            raise ChannelOpenError(host, port, "administratively prohibited")
        if (host, port) in self.failing_targets:
            raise ChannelOpenError(host, port, "connect failed")
        return await asyncio.open_connection(host, port)

    async def run_probe(self, command: str) -> None:
        self.probe_calls += 1
        if self.probe_hang:
            await asyncio.Event().wait()
        if self._closed.is_set():
            raise ProbeError("connection closed")
        if self.probe_error:
            raise ProbeError(self.probe_error)

    async def wait_closed(self) -> None:
        await self._closed.wait()

    def close(self) -> None:
        self.close_calls += 1
        self._closed.set()

    def drop(self) -> None:
        """Simulate the transport going away on its own."""
        self._closed.set()


class FakeConnector(ISSHConnector):
    """Hands out FakeConnections, optionally failing the first dials."""

    def __init__(self, fail_times: int = 0) -> None:
        self.fail_times = fail_times
        self.connect_calls = 0
        self.timeouts: List[float] = []
        self.connections: List[FakeConnection] = []
        self.configure: Optional[Callable[[FakeConnection], None]] = None

    async def connect(self, endpoint: ServerEndpoint, timeout: float) -> FakeConnection:
        self.connect_calls += 1
        self.timeouts.append(timeout)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise DialError(endpoint.host, endpoint.port, "Connection refused")
        connection = FakeConnection()
        if self.configure is not None:
            self.configure(connection)
        self.connections.append(connection)
        return connection

    @property
    def latest(self) -> FakeConnection:
        return self.connections[-1]


async def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    """Poll predicate until it holds or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def start_target(handler: Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]) -> asyncio.AbstractServer:
    return await asyncio.start_server(handler, host="127.0.0.1", port=0)


async def echo_handler(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    try:
        while True:
            data = await reader.read(65536)
            if not data:
                break
            writer.write(data)
            await writer.drain()
    except ConnectionError:
        pass
    finally:
        writer.close()


async def pong_handler(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    try:
        data = await reader.readexactly(4)
        if data == b"PING":
            writer.write(b"PONG")
            await writer.drain()
        await reader.read()
    except (ConnectionError, asyncio.IncompleteReadError):
        pass
    finally:
        writer.close()


def server_port(server: asyncio.AbstractServer) -> int:
    return server.sockets[0].getsockname()[1]
