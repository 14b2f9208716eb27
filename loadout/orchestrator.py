"""
主协调器

准备目录、筛选包、生成任务，驱动 worker 池并汇总结果。
"""

import asyncio
import os
from dataclasses import dataclass, field
from typing import List, Optional

from loguru import logger

from loadout.download import (
    AssetFetcher,
    DownloadManager,
    FetchOutcome,
    FetchStatus,
    JobQueue,
    ResultStream,
)
from loadout.exceptions import FilesystemError
from loadout.models import LoadoutConfig
from loadout.services import JobScheduler, filter_packages, parse_select


@dataclass
class RunSummary:
    """一次运行的结果汇总"""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    failures: List[FetchOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def record(self, outcome: FetchOutcome):
        self.total += 1
        if not outcome.ok:
            self.failed += 1
            self.failures.append(outcome)
            return
        self.succeeded += 1
        if outcome.status is FetchStatus.SKIPPED:
            self.skipped += 1


class LoadoutOrchestrator:
    """Loadout 主协调器"""

    def __init__(
        self,
        config: LoadoutConfig,
        select: str,
        output_dir: str,
        platform: str,
        max_concurrent: int = 4,
        fetcher: Optional[AssetFetcher] = None,
        queue_size: int = 1,
    ):
        self.config = config
        self.filters = parse_select(select)
        self.scheduler = JobScheduler(output_dir, platform)
        self.max_concurrent = max_concurrent
        self.queue_size = queue_size
        self.fetcher = fetcher or AssetFetcher()
        self._owned_fetcher = fetcher is None

    def prepare_directories(self):
        """创建输出目录、git 目录和平台目录"""
        for path in (
            self.scheduler.output_dir,
            self.scheduler.git_dir,
            self.scheduler.platform_dir,
        ):
            try:
                os.makedirs(path, exist_ok=True)
            except OSError as e:
                raise FilesystemError(
                    f"无法创建目录 {path}: {e}", context={"path": path}
                ) from e

    async def run(self) -> RunSummary:
        """
        运行完整的获取流程

        目录创建失败、目标路径冲突等准备阶段错误会直接抛出；
        单个任务的失败只记录在 RunSummary 中。
        """
        self.prepare_directories()
        try:
            return await self._run()
        finally:
            if self._owned_fetcher:
                await self.fetcher.close()

    async def _run(self) -> RunSummary:
        selected = filter_packages(self.config.packages, self.filters)
        if not selected:
            logger.warning("没有包符合选择/过滤条件")
            return RunSummary()

        jobs = self.scheduler.build_jobs(selected)
        logger.info(
            f"已选择 {len(selected)} 个包，共 {len(jobs)} 个获取任务 "
            f"(平台: {self.scheduler.platform})"
        )

        queue = JobQueue(maxsize=self.queue_size)
        results = ResultStream()
        manager = DownloadManager(self.fetcher, self.max_concurrent)

        await manager.start(queue, results)
        producer = asyncio.create_task(self.scheduler.produce(jobs, queue))

        summary = RunSummary()
        async for outcome in results:
            self._report(outcome)
            summary.record(outcome)

        await producer
        await manager.wait_closed()

        logger.info(
            f"获取完成: {summary.succeeded} 成功 (其中 {summary.skipped} 跳过), "
            f"{summary.failed} 失败"
        )
        return summary

    @staticmethod
    def _report(outcome: FetchOutcome):
        if not outcome.ok:
            logger.error(f"[!] {outcome.name} 失败: {outcome.error}")
        elif outcome.status is FetchStatus.SKIPPED:
            logger.success(f"[+] {outcome.name} 已存在，无需获取")
        else:
            logger.success(f"[+] {outcome.name} 获取成功")
