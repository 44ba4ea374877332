"""Node-pool readiness gate."""

import asyncio
import logging
from collections.abc import AsyncIterator

from ..errors import StepExecutionError

logger = logging.getLogger(__name__)


class ReadinessGate:
    """Opens once the node pool reports at least ``min_ready`` ready nodes.

    Waiters suspend on an ``asyncio.Event``; there is no polling. A failed
    readiness watch fails every current and future waiter.
    """

    def __init__(self, min_ready: int = 1, name: str = "node-pool"):
        self.min_ready = min_ready
        self.name = name
        self.ready_count = 0
        self._event = asyncio.Event()
        self._failure: StepExecutionError | None = None

    @property
    def is_open(self) -> bool:
        return self._event.is_set() and self._failure is None

    def report(self, ready: int) -> None:
        """Record a ready-node count from the readiness feed."""
        self.ready_count = ready
        if ready >= self.min_ready and not self._event.is_set():
            logger.info(f"{self.name}: {ready} ready node(s), gate open")
            self._event.set()

    def fail(self, error: BaseException) -> None:
        """Fail the gate; waiters raise StepExecutionError."""
        if self._event.is_set():
            return
        self._failure = StepExecutionError(f"readiness watch for {self.name} failed: {error}")
        self._event.set()

    async def wait(self) -> None:
        """Suspend until the gate opens.

        Raises:
            StepExecutionError: If the readiness watch failed
        """
        await self._event.wait()
        if self._failure is not None:
            raise self._failure

    async def watch(self, feed: AsyncIterator[int]) -> None:
        """Consume a stream of ready-node counts until the gate opens."""
        try:
            async for ready in feed:
                self.report(ready)
                if self._event.is_set():
                    return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"{self.name}: readiness watch failed: {e}")
            self.fail(e)
            return
        logger.warning(
            f"{self.name}: readiness feed ended at {self.ready_count} ready node(s), "
            f"below the required {self.min_ready}"
        )
