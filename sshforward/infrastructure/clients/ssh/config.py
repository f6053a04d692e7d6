"""
SSH client configuration for the SSH Forward application.

This module turns a ServerEndpoint into asyncssh connection options.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ....core.interfaces.ssh import ServerEndpoint


@dataclass
class SSHClientConfig:
    """SSH client configuration."""

    host: str
    port: int = 22

    # Authentication
    username: str = ""
    password: Optional[str] = None
    client_keys: List[str] = field(default_factory=list)

    # Connection settings
    connect_timeout: float = 5.0
    keepalive_interval: float = 0.0
    compression: bool = False
    client_version: str = "SSHForward_1.0"

    # Host key checking is off unless a known hosts file is given
    known_hosts_file: Optional[str] = None

    def __post_init__(self) -> None:
        """Post-initialization validation."""
        if not self.host:
            raise ValueError("Host is required for SSH client")

        if not self.username:
            raise ValueError("Username is required for SSH client")

        if not self.password and not self.client_keys:
            raise ValueError("Either password or client_keys must be provided")

        if self.connect_timeout <= 0:
            raise ValueError("Connect timeout must be positive")

    @classmethod
    def from_endpoint(cls, endpoint: ServerEndpoint, connect_timeout: float, **options: Any) -> "SSHClientConfig":
        """Build a client configuration for one dial of the endpoint."""
        return cls(
            host=endpoint.host,
            port=endpoint.port,
            username=endpoint.username,
            password=endpoint.password,
            client_keys=list(endpoint.client_keys),
            known_hosts_file=endpoint.known_hosts,
            connect_timeout=connect_timeout,
            **options
        )

    def to_asyncssh_kwargs(self) -> Dict[str, Any]:
        """Convert to asyncssh connection kwargs."""
        kwargs: Dict[str, Any] = {
            'host': self.host,
            'port': self.port,
            'username': self.username,
            'client_version': self.client_version,
            'connect_timeout': self.connect_timeout,
            'known_hosts': self.known_hosts_file,
        }

        if self.password:
            kwargs['password'] = self.password

        # None disables the default ~/.ssh key lookup
        kwargs['client_keys'] = self.client_keys or None

        if self.keepalive_interval > 0:
            kwargs['keepalive_interval'] = self.keepalive_interval

        if self.compression:
            kwargs['compression_algs'] = ['zlib@openssh.com', 'zlib']
        else:
            kwargs['compression_algs'] = None

        return kwargs
