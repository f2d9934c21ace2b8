from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class TaskFailure:
    """Stands in for the result of a task that raised."""

    error: Exception

    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__


async def limit_concurrency_all_settled(
    tasks: Sequence[Callable[[], Awaitable[T]]],
    limit: int,
) -> list[T | TaskFailure]:
    """Run task thunks with at most ``limit`` in flight.

    Results keep the input order. A task that raises yields a ``TaskFailure`` in
    its slot; the remaining tasks still run.
    """

    if limit < 1:
        raise ValueError(f"concurrency limit must be >= 1, got {limit}")
    if not tasks:
        return []

    semaphore = asyncio.Semaphore(limit)

    async def run(index: int, task: Callable[[], Awaitable[T]]) -> T | TaskFailure:
        async with semaphore:
            try:
                return await task()
            except Exception as exc:
                logger.debug("bounded task %s failed: %s", index, exc)
                return TaskFailure(error=exc)

    return list(await asyncio.gather(*(run(index, task) for index, task in enumerate(tasks))))
