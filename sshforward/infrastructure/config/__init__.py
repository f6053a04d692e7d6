"""
Configuration loading and validation.
"""

from .loader import ConfigLoader, DEFAULT_CONFIG_FILE
from .models import (
    ForwarderConfig, SSHServerConfig, ForwardConfig, SupervisorConfig, LoggingConfig
)

__all__ = [
    "ConfigLoader",
    "DEFAULT_CONFIG_FILE",
    "ForwarderConfig",
    "SSHServerConfig",
    "ForwardConfig",
    "SupervisorConfig",
    "LoggingConfig",
]
