"""
SSH Forward - a self-healing SSH connection serving static local port forwards.

One SSH connection to a fixed server is kept alive for the lifetime of the
process. Every configured forward listens on a local port and relays each
accepted connection through that SSH connection. When the connection dies
all listeners are torn down and re-established after reconnecting.
"""

__version__ = "0.1.0"

from .core.interfaces.ssh import ForwardSpec, ServerEndpoint, SupervisorStatus
from .core.services.teardown import TeardownSignal
from .infrastructure.services.ssh.supervisor import ConnectionSupervisor

__all__ = [
    "ForwardSpec",
    "ServerEndpoint",
    "SupervisorStatus",
    "TeardownSignal",
    "ConnectionSupervisor",
]
