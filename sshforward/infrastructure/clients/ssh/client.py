"""
asyncssh implementation of the SSH transport capability.

Only the operations the forwarding core needs are exposed: dial, open a
direct TCP channel, run a probe command, wait for close and close.
"""

import asyncio
from typing import Any, Tuple

import asyncssh
from loguru import logger

from ....core.exceptions import ChannelOpenError, DialError, ProbeError
from ....core.interfaces.ssh import ISSHConnection, ISSHConnector, ServerEndpoint
from .config import SSHClientConfig


class AsyncSSHConnection(ISSHConnection):
    """Wraps one asyncssh client connection."""

    def __init__(self, connection: asyncssh.SSHClientConnection, name: str = ""):
        self._connection = connection
        self._name = name
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def open_channel(self, host: str, port: int) -> Tuple[Any, Any]:
        """Open a direct TCP/IP channel to host:port."""
        try:
            return await self._connection.open_connection(host, port)
        except (OSError, asyncssh.Error) as e:
            raise ChannelOpenError(host, port, str(e) or e.__class__.__name__) from e

    async def run_probe(self, command: str) -> None:
        """Run command in a new session; raise ProbeError unless it exits 0."""
        try:
            result = await self._connection.run(command, check=False)
        except (OSError, asyncssh.Error) as e:
            raise ProbeError(f"probe session failed: {str(e) or e.__class__.__name__}") from e

        if result.exit_status != 0:
            raise ProbeError(
                f"probe command {command!r} exited with status {result.exit_status}",
                exit_status=result.exit_status
            )

    async def wait_closed(self) -> None:
        await self._connection.wait_closed()
        self._closed = True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._connection.close()
        logger.debug(f"SSH connection {self._name} closed")


class AsyncSSHConnector(ISSHConnector):
    """
    Dials SSH servers with asyncssh.

    Host key checking is disabled unless the endpoint names a known hosts
    file, matching a password-only client of a fixed server.
    """

    def __init__(self, keepalive_interval: float = 0.0, compression: bool = False):
        self._keepalive_interval = keepalive_interval
        self._compression = compression

    async def connect(self, endpoint: ServerEndpoint, timeout: float) -> AsyncSSHConnection:
        try:
            config = SSHClientConfig.from_endpoint(
                endpoint,
                connect_timeout=timeout,
                keepalive_interval=self._keepalive_interval,
                compression=self._compression
            )
            connection = await asyncssh.connect(**config.to_asyncssh_kwargs())
        except (ValueError, OSError, asyncssh.Error, asyncio.TimeoutError) as e:
            raise DialError(endpoint.host, endpoint.port, str(e) or e.__class__.__name__) from e

        return AsyncSSHConnection(connection, name=f"{endpoint.username}@{endpoint.host}:{endpoint.port}")
