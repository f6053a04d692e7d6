"""
Transport client implementations.
"""

from .ssh import AsyncSSHConnection, AsyncSSHConnector, SSHClientConfig

__all__ = [
    "AsyncSSHConnection",
    "AsyncSSHConnector",
    "SSHClientConfig",
]
