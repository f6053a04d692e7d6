"""
Transport-independent services: the stream relay and the teardown signal.
"""

from .pipe import Pipe, PipeResult, close_stream
from .teardown import TeardownSignal

__all__ = [
    "Pipe",
    "PipeResult",
    "close_stream",
    "TeardownSignal",
]
