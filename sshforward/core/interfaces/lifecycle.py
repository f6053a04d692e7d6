"""
Lifecycle interfaces for long-running components.

The supervisor is the only component driven from the process shell, so the
contracts here are limited to running, stopping and reporting health.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class IRunnable(ABC):
    """Interface for components that drive their own main loop."""

    @abstractmethod
    async def run(self) -> None:
        """
        Run the component until it is stopped.

        Raises:
            Exception: Only for errors the component cannot recover from.
        """
        pass


class IStoppable(ABC):
    """Interface for components that can be stopped."""

    @abstractmethod
    async def stop(self) -> None:
        """
        Request a graceful stop.

        Calling this more than once must be harmless.
        """
        pass


class IHealthCheckable(ABC):
    """Interface for components that can report their health status."""

    @abstractmethod
    async def check_health(self) -> Dict[str, Any]:
        """
        Check the health status of the component.

        Returns:
            Dict containing health information with at least:
            - 'healthy': bool indicating if component is healthy
            - 'status': str describing current status
            - 'details': Dict with additional health details

        Example:
            {
                'healthy': True,
                'status': 'connected',
                'details': {
                    'generation': 3,
                    'forwards': {'web': {'listening': True, 'active_streams': 2}},
                    'last_error': None
                }
            }
        """
        pass
