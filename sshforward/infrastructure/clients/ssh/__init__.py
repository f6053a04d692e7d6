"""
asyncssh transport for the SSH Forward application.
"""

from .client import AsyncSSHConnection, AsyncSSHConnector
from .config import SSHClientConfig

__all__ = [
    "AsyncSSHConnection",
    "AsyncSSHConnector",
    "SSHClientConfig",
]
