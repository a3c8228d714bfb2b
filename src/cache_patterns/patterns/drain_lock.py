"""Non-blocking mutual exclusion for reconciliation runs."""

import asyncio
from dataclasses import dataclass, field
from typing import Self


class DrainInProgressError(Exception):
    """Raised when the drain lock is already held."""

    pass


@dataclass
class DrainLockMetrics:
    """Metrics for tracking drain lock acquisitions and contention."""

    held: bool
    total_acquisitions: int
    contention_count: int = field(default=0)


class DrainLock:
    """
    Async context manager guarding against overlapping drains.

    Unlike a plain asyncio.Lock, entering never waits: if another drain holds
    the lock, DrainInProgressError is raised immediately so the caller can
    drop the tick instead of queueing behind it. The lock is released on every
    exit path, including errors and cancellation.

    Example:
        ```python
        lock = DrainLock()

        async def tick():
            try:
                async with lock:
                    await drain()
            except DrainInProgressError:
                pass  # previous drain still running
        ```
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._total_acquisitions = 0
        self._contention_count = 0

    @property
    def locked(self) -> bool:
        """Whether a drain currently holds the lock."""
        return self._lock.locked()

    async def __aenter__(self) -> Self:
        """Acquire the lock without waiting.

        Raises:
            DrainInProgressError: If the lock is already held.
        """
        # No await between the check and the acquire, so this cannot interleave.
        if self._lock.locked():
            self._contention_count += 1
            raise DrainInProgressError("A drain is already in progress")

        await self._lock.acquire()
        self._total_acquisitions += 1
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Release the lock."""
        self._lock.release()

    def get_metrics(self) -> DrainLockMetrics:
        return DrainLockMetrics(
            held=self.locked,
            total_acquisitions=self._total_acquisitions,
            contention_count=self._contention_count,
        )
