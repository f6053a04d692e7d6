"""
Health monitor proving liveness of the current SSH connection.

The transport does not reliably report half-open connections, so the
monitor periodically runs a no-op remote command and treats any failure as
death of the connection.
"""

import asyncio
from typing import Optional

from loguru import logger

from ....core.interfaces.ssh import ISSHConnection
from ....core.services.teardown import TeardownSignal

DEFAULT_PROBE_INTERVAL = 5.0
DEFAULT_PROBE_COMMAND = "echo"


class HealthMonitor:
    """Periodic liveness probe for one connection generation."""

    def __init__(
        self,
        connection: ISSHConnection,
        signal: TeardownSignal,
        interval: float = DEFAULT_PROBE_INTERVAL,
        command: str = DEFAULT_PROBE_COMMAND,
        timeout: Optional[float] = None
    ):
        """
        Initialize the monitor.

        Args:
            connection: Connection of the generation being watched
            signal: Teardown signal of that generation
            interval: Seconds between the end of a probe and the next one
            command: Remote command run by each probe
            timeout: Optional upper bound on one probe round trip
        """
        if interval <= 0:
            raise ValueError("Probe interval must be positive")
        self._connection = connection
        self._signal = signal
        self._interval = interval
        self._command = command
        self._timeout = timeout
        self._probe_count = 0
        self._log = logger.bind(generation=signal.generation)

    @property
    def probe_count(self) -> int:
        """Number of successful probes."""
        return self._probe_count

    async def watch(self) -> bool:
        """
        Probe until the connection dies or the signal fires elsewhere.

        Returns:
            True if this monitor fired the signal.
        """
        while not self._signal.fired:
            try:
                await self._probe()
            except Exception as e:
                reason = str(e) or e.__class__.__name__
                declared = self._signal.fire(f"probe failed: {reason}")
                if declared:
                    self._log.warning(f"SSH connection lost: {reason}")
                else:
                    self._log.debug(f"Probe failed after teardown: {reason}")
                return declared

            self._probe_count += 1
            if await self._signal.wait_for(self._interval):
                break

        return False

    async def _probe(self) -> None:
        probe = self._connection.run_probe(self._command)
        if self._timeout:
            await asyncio.wait_for(probe, self._timeout)
        else:
            await probe
