"""
Core interfaces defining the contracts between the forwarding core and the
SSH transport.
"""

from .lifecycle import IRunnable, IStoppable, IHealthCheckable
from .ssh import (
    ISSHConnection, ISSHConnector, ForwardSpec, ServerEndpoint, SupervisorStatus
)

__all__ = [
    "IRunnable",
    "IStoppable",
    "IHealthCheckable",
    "ISSHConnection",
    "ISSHConnector",
    "ForwardSpec",
    "ServerEndpoint",
    "SupervisorStatus",
]
