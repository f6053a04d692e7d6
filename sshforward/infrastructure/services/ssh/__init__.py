"""
SSH forwarding services: the connection supervisor, the health monitor and
the per-forward listener.
"""

from .forwarder import ForwardListener
from .monitor import HealthMonitor
from .supervisor import ConnectionSupervisor

__all__ = [
    "ForwardListener",
    "HealthMonitor",
    "ConnectionSupervisor",
]
