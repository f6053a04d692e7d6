"""
One-shot teardown signal scoped to a single connection generation.
"""

import asyncio
from typing import Optional


class TeardownSignal:
    """
    Broadcast-once event ending one connection generation.

    Any number of tasks may call fire() concurrently; exactly one call
    performs the transition and every waiter observes that single firing.
    A signal is never reset: each generation allocates a new one.
    """

    def __init__(self, generation: int = 0):
        self._generation = generation
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def fired(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        """Reason given by the caller that fired the signal."""
        return self._reason

    def fire(self, reason: str) -> bool:
        """
        Fire the signal.

        Returns:
            True if this call fired it, False if it had already fired.
        """
        # Check and set run without a suspension point in between
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        return True

    async def wait(self) -> None:
        """Block until the signal fires."""
        await self._event.wait()

    async def wait_for(self, timeout: float) -> bool:
        """
        Block until the signal fires or the timeout elapses.

        Returns:
            True if the signal fired.
        """
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            pass
        return self._event.is_set()

    def __repr__(self) -> str:
        state = f"fired: {self._reason}" if self.fired else "armed"
        return f"TeardownSignal(generation={self._generation}, {state})"
