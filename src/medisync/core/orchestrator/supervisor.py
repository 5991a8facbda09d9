"""
Retry supervisor.

Wraps a traversal run. A TraversalError triggers disconnect, backoff,
reconnect and a resume from the failing position. Consecutive failures at
the same position are bounded; a failure at a new position starts counting
again from one.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable

from ..errors import TraversalError

if TYPE_CHECKING:
    from ..config.loader import Credentials
    from ..config.models import RetryPolicyConfig
    from ..session import SessionController
    from .context import RunContext
    from .traversal import TraversalDriver


Sleep = Callable[[float], Awaitable[None]]


class PositionFailureTracker:
    """Counts consecutive failures at one checkpoint position."""

    def __init__(self, max_attempts: int = 3):
        """Initialize the tracker.

        Args:
            max_attempts: Failures allowed at one position before giving up
        """
        self.max_attempts = max_attempts
        self.position: tuple[int, int] | None = None
        self.count = 0

    @property
    def exhausted(self) -> bool:
        return self.count > self.max_attempts

    def record(self, position: tuple[int, int]) -> int:
        """Record a failure.

        Returns:
            The consecutive failure count at ``position``
        """
        if position == self.position:
            self.count += 1
        else:
            self.position = position
            self.count = 1
        return self.count

    def reset(self) -> None:
        self.position = None
        self.count = 0


class RetrySupervisor:
    """Runs the traversal to completion or to a fatal failure."""

    def __init__(
        self,
        session: "SessionController",
        driver: "TraversalDriver",
        credentials: "Credentials",
        policy: "RetryPolicyConfig",
        context: "RunContext",
        sleep: Sleep = asyncio.sleep,
    ):
        self.session = session
        self.driver = driver
        self.credentials = credentials
        self.policy = policy
        self.context = context
        self.sleep = sleep
        self.failures = PositionFailureTracker(policy.max_attempts)
        self.logger = context.logger("supervisor")

    def backoff_delay(self, attempt: int) -> float:
        return self.policy.base_delay_seconds * attempt

    async def run(self, page_index: int = 1, patient_index: int = 0) -> tuple[int, int]:
        """Traverse from a starting position, retrying failed steps.

        Returns:
            Position at which the traversal ended

        Raises:
            TraversalError: Retries at one position exhausted
            MediSyncError: Any non-retryable failure (login, repository)
        """
        position = (page_index, patient_index)
        try:
            await self.session.connect(self.credentials)
            while True:
                try:
                    return await self.driver.run(*position)
                except TraversalError as e:
                    attempt = self.failures.record(e.position)
                    log = self.logger.with_position(*e.position)
                    if self.failures.exhausted:
                        log.error(
                            f"Giving up after {attempt - 1} retries at the same position: {e.cause}"
                        )
                        raise

                    position = e.position
                    delay = self.backoff_delay(attempt)
                    self.context.stats.retries += 1
                    log.warning(
                        f"Retry {attempt}/{self.policy.max_attempts} in {delay:.1f}s "
                        f"after: {e.cause}"
                    )

                    await self.session.disconnect()
                    await self.sleep(delay)
                    await self.session.connect(self.credentials)
        finally:
            if self.session.is_connected:
                await self.session.disconnect()
            self.context.stats.finish()
