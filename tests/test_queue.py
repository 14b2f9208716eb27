import asyncio

import pytest

from loadout.download import (
    AssetDescriptor,
    AssetKind,
    FetchJob,
    FetchOutcome,
    JobQueue,
    ResultStream,
)
from loadout.exceptions import NetworkError


def _job(index: int) -> FetchJob:
    return FetchJob(
        name=f"job-{index}",
        version="",
        asset=AssetDescriptor(
            kind=AssetKind.ARCHIVE,
            url=f"https://example.com/{index}.bin",
            integrity=None,
            destination=f"/tmp/{index}.bin",
        ),
    )


@pytest.mark.asyncio
async def test_closed_queue_releases_every_waiting_consumer():
    queue = JobQueue()
    consumers = [asyncio.create_task(queue.get()) for _ in range(3)]
    await asyncio.sleep(0)

    await queue.put(_job(1))
    await queue.close()
    results = await asyncio.gather(*consumers)

    assert [r for r in results if r is not None] == [_job(1)]
    assert results.count(None) == 2
    assert await queue.get() is None


@pytest.mark.asyncio
async def test_put_after_close_is_rejected():
    queue = JobQueue()
    await queue.close()

    with pytest.raises(RuntimeError):
        await queue.put(_job(1))


@pytest.mark.asyncio
async def test_bounded_queue_applies_back_pressure():
    queue = JobQueue(maxsize=1)
    await queue.put(_job(1))

    blocked = asyncio.create_task(queue.put(_job(2)))
    await asyncio.sleep(0.01)
    assert not blocked.done()

    assert await queue.get() == _job(1)
    await asyncio.wait_for(blocked, timeout=1)
    assert queue.get_stats()["total_queued"] == 2


def test_queue_size_must_be_positive():
    with pytest.raises(ValueError):
        JobQueue(maxsize=0)


@pytest.mark.asyncio
async def test_result_stream_iterates_until_closed():
    stream = ResultStream()
    await stream.publish(FetchOutcome(name="a"))
    await stream.publish(FetchOutcome(name="b", error=NetworkError("HTTP 500")))
    await stream.close()

    outcomes = [outcome async for outcome in stream]

    assert [o.name for o in outcomes] == ["a", "b"]
    assert [o.ok for o in outcomes] == [True, False]
    with pytest.raises(RuntimeError):
        await stream.publish(FetchOutcome(name="c"))
