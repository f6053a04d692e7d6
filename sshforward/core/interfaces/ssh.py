"""
SSH interfaces for the SSH Forward application.

This module defines the data model shared by the forwarding core and the
contract of the transport capability it relies on. The transport itself
(key exchange, authentication, channels) is provided by an SSH library and
is only seen through ISSHConnector and ISSHConnection.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple


class SupervisorStatus(Enum):
    """Connection supervisor status."""
    STOPPED = "stopped"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


@dataclass(frozen=True)
class ServerEndpoint:
    """SSH server the supervisor keeps a connection to."""
    host: str
    port: int
    username: str
    password: Optional[str] = None
    known_hosts: Optional[str] = None
    client_keys: Tuple[str, ...] = field(default_factory=tuple)

    def __repr__(self) -> str:
        # Credentials stay out of log lines
        return f"ServerEndpoint({self.username}@{self.host}:{self.port})"


@dataclass(frozen=True)
class ForwardSpec:
    """A static local port to remote host:port forward."""
    name: str
    remote_host: str
    remote_port: int
    local_port: int
    bind_host: str = ""

    @property
    def target(self) -> str:
        return f"{self.remote_host}:{self.remote_port}"


class ISSHConnection(ABC):
    """
    One live transport session to a ServerEndpoint.

    A connection handle is shared read-mostly by every forward listener and
    the health monitor of its generation. Only the supervisor closes it.
    """

    @abstractmethod
    async def open_channel(self, host: str, port: int) -> Tuple[Any, Any]:
        """
        Open a direct TCP channel to host:port through the server.

        Returns:
            A (reader, writer) pair with the asyncio stream API.

        Raises:
            ChannelOpenError: If the server refuses or the transport is gone.
        """
        pass

    @abstractmethod
    async def run_probe(self, command: str) -> None:
        """
        Run a command in a new session and discard its output.

        Raises:
            ProbeError: If the session cannot be opened, the command fails
                or it exits with a non-zero status.
        """
        pass

    @abstractmethod
    async def wait_closed(self) -> None:
        """Block until the transport terminates."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the transport. Closing a closed connection is a no-op."""
        pass

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """True once the connection has been closed from either side."""
        pass


class ISSHConnector(ABC):
    """Factory dialing new connections to an endpoint."""

    @abstractmethod
    async def connect(self, endpoint: ServerEndpoint, timeout: float) -> ISSHConnection:
        """
        Dial the endpoint and authenticate.

        Raises:
            DialError: If the server is unreachable, the timeout expires or
                authentication fails.
        """
        pass


def describe_forwards(forwards: List[ForwardSpec]) -> List[str]:
    """Render forwards as 'name: local -> remote' lines for diagnostics."""
    return [f"{f.name}: {f.local_port} -> {f.target}" for f in forwards]
