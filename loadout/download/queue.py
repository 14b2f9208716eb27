"""
获取任务队列

定义任务/结果数据结构，以及可关闭的任务队列和结果流。
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, AsyncIterator, Optional

from loadout.download.verifier import IntegritySpec, parse_integrity_spec
from loadout.exceptions import LoadoutError

if TYPE_CHECKING:
    from loadout.models.config import Asset


class AssetKind(Enum):
    """资源获取方式"""

    ARCHIVE = "archive"
    GIT = "git"


class FetchStatus(Enum):
    """成功获取时的结果类型"""

    DOWNLOADED = "downloaded"
    CLONED = "cloned"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class AssetDescriptor:
    """单个资源的获取描述"""

    kind: AssetKind
    url: str
    integrity: Optional[IntegritySpec]
    destination: str

    @classmethod
    def from_asset(cls, asset: "Asset", destination: str) -> "AssetDescriptor":
        """由清单中的 Asset 构造描述（清单已校验，这里不再重复校验）"""
        return cls(
            kind=AssetKind.GIT if asset.is_git else AssetKind.ARCHIVE,
            url=asset.url,
            integrity=parse_integrity_spec(asset.hash),
            destination=destination,
        )


@dataclass(frozen=True)
class FetchJob:
    """获取任务"""

    name: str
    version: str
    asset: AssetDescriptor


@dataclass(frozen=True)
class FetchOutcome:
    """任务结果：每个任务恰好产生一个"""

    name: str
    error: Optional[LoadoutError] = None
    status: Optional[FetchStatus] = None

    @property
    def ok(self) -> bool:
        return self.error is None


_CLOSED = object()


class JobQueue:
    """
    可关闭的任务队列

    基于有界 asyncio.Queue：队列满时 put 会挂起，直到有 worker 取走任务。
    关闭后 get 在队列取空时返回 None。
    """

    def __init__(self, maxsize: int = 1):
        if maxsize < 1:
            raise ValueError("maxsize 必须大于等于 1")
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._total_queued = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def put(self, job: FetchJob) -> None:
        """添加任务到队列"""
        if self._closed:
            raise RuntimeError("任务队列已关闭")
        await self._queue.put(job)
        self._total_queued += 1

    async def close(self) -> None:
        """标记不再有新任务"""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)

    async def get(self) -> Optional[FetchJob]:
        """获取下一个任务；队列已关闭且取空时返回 None"""
        item = await self._queue.get()
        if item is _CLOSED:
            # 关闭标记放回队列，让其他 worker 也能看到
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def qsize(self) -> int:
        """获取队列中待处理的任务数"""
        size = self._queue.qsize()
        if self._closed and size:
            return size - 1
        return size

    def get_stats(self) -> dict:
        """获取队列统计"""
        return {
            "pending": self.qsize(),
            "total_queued": self._total_queued,
            "closed": self._closed,
        }


class ResultStream:
    """结果流：多个 worker 发布，一个消费者读取直到流关闭"""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def publish(self, outcome: FetchOutcome) -> None:
        if self._closed:
            raise RuntimeError("结果流已关闭")
        await self._queue.put(outcome)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)

    def __aiter__(self) -> AsyncIterator[FetchOutcome]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[FetchOutcome]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                self._queue.put_nowait(_CLOSED)
                return
            yield item
