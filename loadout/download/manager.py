"""
下载管理器

固定数量的 worker 并发消费任务队列，每个任务恰好发布一个结果；
所有 worker 退出后关闭结果流。
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from loguru import logger

from loadout.download.fetcher import AssetFetcher
from loadout.download.queue import (
    FetchJob,
    FetchOutcome,
    FetchStatus,
    JobQueue,
    ResultStream,
)
from loadout.exceptions import FetchError, LoadoutError
from loadout.utils import format_version


class PoolState(Enum):
    """worker 池状态"""

    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"


@dataclass
class DownloadStats:
    """获取统计"""

    total: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0


class DownloadManager:
    """下载管理器"""

    def __init__(self, fetcher: AssetFetcher, max_concurrent: int = 4):
        if max_concurrent < 1:
            raise ValueError("max_concurrent 必须大于等于 1")
        self.fetcher = fetcher
        self.max_concurrent = max_concurrent
        self.stats = DownloadStats()
        self._state = PoolState.IDLE
        self._workers: List[asyncio.Task] = []
        self._supervisor: Optional[asyncio.Task] = None

    @property
    def state(self) -> PoolState:
        return self._state

    async def start(self, jobs: JobQueue, results: ResultStream):
        """启动 worker 与监督任务"""
        if self._state is not PoolState.IDLE:
            raise RuntimeError("下载管理器只能启动一次")

        logger.info(f"[启动] worker 池启动，最大并发数: {self.max_concurrent}")
        self._state = PoolState.RUNNING
        self._workers = [
            asyncio.create_task(self._worker(jobs, results), name=f"fetcher-{i}")
            for i in range(self.max_concurrent)
        ]
        self._supervisor = asyncio.create_task(
            self._supervise(results), name="fetcher-supervisor"
        )

    async def _worker(self, jobs: JobQueue, results: ResultStream):
        """获取工作协程"""
        while True:
            job = await jobs.get()
            if job is None:
                if self._state is PoolState.RUNNING:
                    self._state = PoolState.DRAINING
                return

            outcome = await self._process(job)
            self._record(outcome)
            await results.publish(outcome)

    async def _process(self, job: FetchJob) -> FetchOutcome:
        logger.info(f"[*] 获取 {job.name} ({format_version(job.version)})")
        try:
            status = await self.fetcher.fetch(job.asset, job.name)
        except LoadoutError as e:
            return FetchOutcome(name=job.name, error=e)
        except Exception as e:
            # 单个任务的意外错误不能让 worker 退出
            logger.exception(f"[错误] {job.name} 出现未预期的异常")
            return FetchOutcome(
                name=job.name,
                error=FetchError(
                    f"未预期的错误: {e}", context={"type": type(e).__name__}
                ),
            )
        return FetchOutcome(name=job.name, status=status)

    def _record(self, outcome: FetchOutcome):
        self.stats.total += 1
        if not outcome.ok:
            self.stats.failed += 1
        elif outcome.status is FetchStatus.SKIPPED:
            self.stats.skipped += 1
        else:
            self.stats.completed += 1

    async def _supervise(self, results: ResultStream):
        """等待所有 worker 退出后关闭结果流"""
        try:
            await asyncio.gather(*self._workers)
        finally:
            self._state = PoolState.CLOSED
            await results.close()
            logger.debug("[停止] worker 池已关闭")

    async def wait_closed(self):
        """等待 worker 池关闭"""
        if self._supervisor is None:
            raise RuntimeError("下载管理器尚未启动")
        await self._supervisor

    async def run(self, jobs: JobQueue, results: ResultStream):
        """运行 worker 池（启动并等待队列关闭、任务处理完毕）"""
        await self.start(jobs, results)
        await self.wait_closed()

    def get_stats(self) -> DownloadStats:
        """获取下载统计"""
        return self.stats
