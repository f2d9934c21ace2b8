from __future__ import annotations

import asyncio

import pytest

from suggestion_sync.jobs.concurrency import TaskFailure, limit_concurrency_all_settled
from tests.helpers import ConcurrencyProbe


def test_limit_concurrency_keeps_input_order_and_marks_failures() -> None:
    async def value(result: int, delay: float) -> int:
        await asyncio.sleep(delay)
        return result

    async def boom() -> int:
        raise RuntimeError("check exploded")

    tasks = [
        lambda: value(1, 0.03),
        boom,
        lambda: value(3, 0.0),
    ]
    results = asyncio.run(limit_concurrency_all_settled(tasks, 2))

    assert results[0] == 1
    assert isinstance(results[1], TaskFailure)
    assert results[1].message == "check exploded"
    assert results[2] == 3


def test_limit_concurrency_never_exceeds_limit() -> None:
    probe = ConcurrencyProbe()

    def make_task(index: int):
        async def run() -> int:
            with probe:
                await asyncio.sleep(0.005 * (index % 3 + 1))
            return index

        return run

    results = asyncio.run(limit_concurrency_all_settled([make_task(index) for index in range(20)], 5))

    assert results == list(range(20))
    assert probe.calls == 20
    assert probe.peak == 5


def test_limit_concurrency_handles_empty_batch() -> None:
    assert asyncio.run(limit_concurrency_all_settled([], 5)) == []


def test_limit_concurrency_rejects_non_positive_limit() -> None:
    async def noop() -> None:
        return None

    with pytest.raises(ValueError):
        asyncio.run(limit_concurrency_all_settled([noop], 0))


def test_task_failure_message_falls_back_to_exception_type() -> None:
    failure = TaskFailure(error=KeyError())
    assert failure.message == "KeyError"
