"""
Exception hierarchy for the SSH Forward application.

Connectivity and per-stream errors are recovered where they occur.
ForwardBindError is the one configuration error that stops the process.
"""

from typing import Optional


class SSHForwardError(Exception):
    """Base class for all application errors."""
    pass


class DialError(SSHForwardError):
    """Connecting or authenticating to the SSH server failed."""

    def __init__(self, host: str, port: int, reason: str):
        super().__init__(f"Cannot connect to {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason


class ChannelOpenError(SSHForwardError):
    """The server refused or could not open a forwarding channel."""

    def __init__(self, host: str, port: int, reason: str):
        super().__init__(f"Cannot open channel to {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason


class ProbeError(SSHForwardError):
    """The liveness probe did not complete successfully."""

    def __init__(self, reason: str, exit_status: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.exit_status = exit_status


class ForwardBindError(SSHForwardError):
    """A forward's local listening socket could not be bound."""

    def __init__(self, name: str, port: int, reason: str):
        super().__init__(f"{name}: cannot listen on local port {port}: {reason}")
        self.name = name
        self.port = port
        self.reason = reason
