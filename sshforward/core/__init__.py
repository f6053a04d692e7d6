"""
Core module containing the data model, interfaces and transport-independent
services of the SSH Forward application.
"""

from .exceptions import (
    SSHForwardError, DialError, ChannelOpenError, ProbeError, ForwardBindError
)
from .interfaces.ssh import ForwardSpec, ServerEndpoint, SupervisorStatus
from .services.pipe import Pipe, PipeResult
from .services.teardown import TeardownSignal

__all__ = [
    "SSHForwardError",
    "DialError",
    "ChannelOpenError",
    "ProbeError",
    "ForwardBindError",
    "ForwardSpec",
    "ServerEndpoint",
    "SupervisorStatus",
    "Pipe",
    "PipeResult",
    "TeardownSignal",
]
