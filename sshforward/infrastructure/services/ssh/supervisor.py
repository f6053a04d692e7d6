"""
Connection supervisor for the SSH Forward application.

This module owns the reconnect loop: dial the server, start the health
monitor and one forward listener per configured forward, wait for the
connection to die, tear the generation down and start over.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from ....core.exceptions import ForwardBindError
from ....core.interfaces.lifecycle import IHealthCheckable, IRunnable, IStoppable
from ....core.interfaces.ssh import (
    ForwardSpec, ISSHConnection, ISSHConnector, ServerEndpoint, SupervisorStatus
)
from ....core.services.pipe import DEFAULT_CHUNK_SIZE
from ....core.services.teardown import TeardownSignal
from .forwarder import ForwardListener
from .monitor import DEFAULT_PROBE_COMMAND, DEFAULT_PROBE_INTERVAL, HealthMonitor


class ConnectionSupervisor(IRunnable, IStoppable, IHealthCheckable):
    """
    Keeps one SSH connection alive and all forwards served over it.

    Exactly one connection is live at a time. Every connection gets a new
    generation number and a new TeardownSignal; the listeners and the
    monitor of a generation are only given that generation's connection
    and signal. Teardown runs once per generation no matter whether the
    transport closed, the monitor declared the connection dead or a stop
    was requested.
    """

    def __init__(
        self,
        endpoint: ServerEndpoint,
        forwards: Sequence[ForwardSpec],
        connector: ISSHConnector,
        connect_timeout: float = 5.0,
        reconnect_interval: float = 5.0,
        probe_interval: float = DEFAULT_PROBE_INTERVAL,
        probe_command: str = DEFAULT_PROBE_COMMAND,
        probe_timeout: Optional[float] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        """
        Initialize the supervisor.

        Args:
            endpoint: SSH server to connect to
            forwards: Forwards to serve over every connection
            connector: Transport used to dial the server
            connect_timeout: Upper bound on one dial in seconds
            reconnect_interval: Fixed pause between cycles in seconds
            probe_interval: Seconds between health probes
            probe_command: Remote no-op command used as probe
            probe_timeout: Optional upper bound on one probe
            chunk_size: Read size of stream copies
        """
        self._endpoint = endpoint
        self._forwards = list(forwards)
        self._connector = connector
        self._connect_timeout = connect_timeout
        self._reconnect_interval = reconnect_interval
        self._probe_interval = probe_interval
        self._probe_command = probe_command
        self._probe_timeout = probe_timeout
        self._chunk_size = chunk_size

        self._status = SupervisorStatus.STOPPED
        self._stopping = asyncio.Event()
        self._generation = 0
        self._established = False
        self._connection: Optional[ISSHConnection] = None
        self._signal: Optional[TeardownSignal] = None
        self._listeners: List[ForwardListener] = []

        self._connect_attempts = 0
        self._connect_count = 0
        self._disconnect_count = 0
        self._last_connected: Optional[float] = None
        self._last_disconnected: Optional[float] = None
        self._last_error: Optional[str] = None

    @property
    def status(self) -> SupervisorStatus:
        return self._status

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def listeners(self) -> List[ForwardListener]:
        """Listeners of the current generation."""
        return list(self._listeners)

    @property
    def current_signal(self) -> Optional[TeardownSignal]:
        return self._signal

    async def run(self) -> None:
        """
        Run reconnect cycles until stop() is called.

        Raises:
            ForwardBindError: If a forward could not be bound before any
                generation ever had all of its forwards listening.
        """
        logger.info(f"SSH forward supervisor started for {self._endpoint!r} with {len(self._forwards)} forwards")
        try:
            while not self._stopping.is_set():
                await self.run_cycle()
                if self._stopping.is_set():
                    break
                await self._backoff()
        finally:
            self._status = SupervisorStatus.STOPPED
            logger.info("SSH forward supervisor stopped")

    async def run_cycle(self) -> bool:
        """
        Run one dial-to-death cycle without the trailing backoff.

        Returns:
            True if a connection was established during the cycle.
        """
        self._status = SupervisorStatus.RECONNECTING if self._generation else SupervisorStatus.CONNECTING
        self._connect_attempts += 1
        logger.info(f"Connecting to SSH server {self._endpoint.host}:{self._endpoint.port}")

        try:
            connection = await self._connector.connect(self._endpoint, self._connect_timeout)
        except Exception as e:
            self._last_error = str(e)
            logger.error(f"SSH server connection failed: {e}")
            return False

        self._generation += 1
        signal = TeardownSignal(self._generation)
        self._connection = connection
        self._signal = signal
        self._status = SupervisorStatus.CONNECTED
        self._connect_count += 1
        self._last_connected = time.time()
        logger.bind(generation=signal.generation).info("SSH server connected")

        monitor = HealthMonitor(
            connection,
            signal,
            interval=self._probe_interval,
            command=self._probe_command,
            timeout=self._probe_timeout
        )
        monitor_task = asyncio.ensure_future(monitor.watch())
        listeners: List[ForwardListener] = []

        try:
            try:
                for spec in self._forwards:
                    listener = ForwardListener(connection, spec, signal, chunk_size=self._chunk_size)
                    await listener.start()
                    listeners.append(listener)
                    self._listeners = list(listeners)
            except ForwardBindError as e:
                if not self._established:
                    logger.critical(str(e))
                    raise
                # A previous generation's socket may still be lingering
                self._last_error = str(e)
                logger.warning(f"{e}; retrying after reconnect")
                signal.fire(f"bind failed: {e.name}")
            else:
                self._established = True

            await self._wait_for_death(connection, signal)
        finally:
            await self._teardown(connection, signal, monitor_task, listeners)

        return True

    async def stop(self) -> None:
        """Leave the reconnect loop and tear the current generation down."""
        if self._stopping.is_set():
            return
        logger.info("Stopping SSH forward supervisor")
        self._stopping.set()
        if self._signal is not None:
            self._signal.fire("supervisor stopping")

    async def check_health(self) -> Dict[str, Any]:
        """Report connection and forward state."""
        connected = self._status == SupervisorStatus.CONNECTED
        forwards: Dict[str, Dict[str, Any]] = {}
        for listener in self._listeners:
            forwards[listener.spec.name] = {
                "local_port": listener.spec.local_port,
                "remote": listener.spec.target,
                "listening": listener.listening,
                "active_streams": listener.active_streams,
                "total_streams": listener.total_streams,
            }

        return {
            "healthy": connected and all(f["listening"] for f in forwards.values()),
            "status": self._status.value,
            "details": {
                "endpoint": f"{self._endpoint.host}:{self._endpoint.port}",
                "generation": self._generation,
                "connect_attempts": self._connect_attempts,
                "connect_count": self._connect_count,
                "disconnect_count": self._disconnect_count,
                "last_connected": self._last_connected,
                "last_disconnected": self._last_disconnected,
                "last_error": self._last_error,
                "forwards": forwards,
            }
        }

    async def _wait_for_death(self, connection: ISSHConnection, signal: TeardownSignal) -> None:
        """Block until the transport closes, the signal fires or stop() is called."""
        if signal.fired:
            return

        closed = asyncio.ensure_future(connection.wait_closed())
        fired = asyncio.ensure_future(signal.wait())
        stopping = asyncio.ensure_future(self._stopping.wait())
        waiters = [closed, fired, stopping]

        try:
            done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

        if closed in done:
            signal.fire("transport closed")
        elif stopping in done:
            signal.fire("supervisor stopping")

    async def _teardown(
        self,
        connection: ISSHConnection,
        signal: TeardownSignal,
        monitor_task: "asyncio.Future[bool]",
        listeners: List[ForwardListener]
    ) -> None:
        """Release everything owned by one generation. Runs once per generation."""
        signal.fire("teardown")
        connection.close()

        await asyncio.gather(*(listener.wait_closed() for listener in listeners), return_exceptions=True)

        if not monitor_task.done():
            monitor_task.cancel()
        await asyncio.gather(monitor_task, return_exceptions=True)

        self._listeners = []
        self._connection = None
        self._disconnect_count += 1
        self._last_disconnected = time.time()
        if signal.reason != "supervisor stopping":
            self._last_error = signal.reason
        self._status = SupervisorStatus.RECONNECTING
        logger.bind(generation=signal.generation).warning(
            f"SSH connection generation {signal.generation} torn down: {signal.reason}"
        )

    async def _backoff(self) -> None:
        """Sleep the fixed reconnect interval, waking early on stop()."""
        try:
            await asyncio.wait_for(self._stopping.wait(), self._reconnect_interval)
        except asyncio.TimeoutError:
            pass
