"""Bounded, fixed-interval polling of an extraction task.

A fixed delay keeps the worst-case wait predictable (``max_attempts *
delay_s``), which the surrounding ingestion pipeline budgets against.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from text_extraction.errors import ExtractionFailed, ExtractionTimeoutError
from text_extraction.types import (
    Completed,
    ExtractionResult,
    Failed,
    TaskHandle,
    TaskStatus,
)

logger = logging.getLogger(__name__)


class StatusSource(Protocol):
    async def query_status(self, handle: TaskHandle) -> TaskStatus: ...


@dataclass(frozen=True)
class PollPolicy:
    max_attempts: int = 30
    delay_s: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.delay_s < 0:
            raise ValueError("delay_s must be >= 0")

    @property
    def worst_case_s(self) -> float:
        return (self.max_attempts - 1) * self.delay_s


class TaskPoller:
    def __init__(
        self,
        backend: StatusSource,
        policy: PollPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._backend = backend
        self._policy = policy or PollPolicy()
        self._sleep = sleep

    @property
    def policy(self) -> PollPolicy:
        return self._policy

    async def wait_for_result(self, handle: TaskHandle) -> ExtractionResult:
        """Poll until the task is terminal or the attempt budget is spent.

        Raises:
            ExtractionFailed: the backend reported the task as failed.
            ExtractionTimeoutError: still pending/processing after ``max_attempts`` checks.
            TransportError, ProtocolError: propagated from ``query_status`` untouched.
        """
        max_attempts = self._policy.max_attempts
        for attempt in range(1, max_attempts + 1):
            status = await self._backend.query_status(handle)

            if isinstance(status, Completed):
                logger.info("Task %s completed after %d status check(s)", handle, attempt)
                return status.result

            if isinstance(status, Failed):
                logger.warning("Task %s failed: %s", handle, status.reason)
                raise ExtractionFailed(status.reason, task_id=handle)

            logger.debug(
                "Task %s %s (attempt %d/%d)",
                handle,
                type(status).__name__.lower(),
                attempt,
                max_attempts,
            )
            if attempt >= max_attempts:
                break
            await self._sleep(self._policy.delay_s)

        logger.warning("Task %s timed out after %d status checks", handle, max_attempts)
        raise ExtractionTimeoutError(handle, max_attempts)
