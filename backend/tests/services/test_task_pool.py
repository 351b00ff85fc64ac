import asyncio

import pytest

from courier_dispatch.services.task_pool import BoundedTaskPool


def test_pool_never_exceeds_limit_and_keeps_submission_order() -> None:
    async def run() -> tuple[list[int], int]:
        pool = BoundedTaskPool(2)

        async def work(value: int) -> int:
            await asyncio.sleep(0.01 * (5 - value))
            return value * 10

        for value in range(5):
            pool.submit(work, value)
        results = await pool.join()
        return results, pool.peak

    results, peak = asyncio.run(run())

    assert results == [0, 10, 20, 30, 40]
    assert peak == 2


def test_queued_work_starts_in_fifo_order() -> None:
    started: list[int] = []

    async def run() -> None:
        pool = BoundedTaskPool(1)

        async def work(value: int) -> None:
            started.append(value)
            await asyncio.sleep(0)

        for value in range(4):
            pool.submit(work, value)
        await pool.join()

    asyncio.run(run())

    assert started == [0, 1, 2, 3]


def test_join_can_return_exceptions() -> None:
    async def run() -> list:
        pool = BoundedTaskPool(3)

        async def work(value: int) -> int:
            if value == 1:
                raise RuntimeError("boom")
            return value

        for value in range(3):
            pool.submit(work, value)
        return await pool.join(return_exceptions=True)

    results = asyncio.run(run())

    assert results[0] == 0
    assert isinstance(results[1], RuntimeError)
    assert results[2] == 2


def test_limit_must_be_positive() -> None:
    with pytest.raises(ValueError):
        BoundedTaskPool(0)


def test_failure_cancels_queued_work_when_requested() -> None:
    started: list[int] = []

    async def run() -> BoundedTaskPool:
        pool = BoundedTaskPool(1, cancel_on_error=True)

        async def work(value: int) -> int:
            started.append(value)
            await asyncio.sleep(0)
            if value == 0:
                raise RuntimeError("boom")
            return value

        for value in range(4):
            pool.submit(work, value)
        with pytest.raises(RuntimeError):
            await pool.join()
        return pool

    pool = asyncio.run(run())

    assert started == [0]
    assert all(task.done() for task in pool._tasks)
    assert pool.active == 0


def test_join_settles_running_siblings_before_raising() -> None:
    finished: list[int] = []

    async def run() -> BoundedTaskPool:
        pool = BoundedTaskPool(3)

        async def work(value: int) -> None:
            if value == 0:
                raise RuntimeError("boom")
            await asyncio.sleep(10)
            finished.append(value)

        for value in range(3):
            pool.submit(work, value)
        with pytest.raises(RuntimeError):
            await pool.join()
        return pool

    pool = asyncio.run(run())

    assert finished == []
    assert all(task.done() for task in pool._tasks)
