"""
任务调度服务

把选中的包展开为获取任务：每个全局资源一个任务，
每个包最多一个与当前平台匹配的平台资源任务。
"""

import os
import platform as _platform
from typing import Dict, Iterable, List, Mapping

from loguru import logger

from loadout.download.queue import AssetDescriptor, FetchJob, JobQueue
from loadout.exceptions import ManifestError
from loadout.models import Asset, Package
from loadout.utils import url_basename

GIT_DIR_NAME = "git"

# platform.system() / platform.machine() 到 <os>_<arch> 标识的映射
_OS_NAMES = {
    "linux": "linux",
    "darwin": "darwin",
    "windows": "windows",
    "freebsd": "freebsd",
    "openbsd": "openbsd",
    "netbsd": "netbsd",
}
_ARCH_NAMES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}


def detect_platform() -> str:
    """当前运行平台的标识，例如 linux_amd64"""
    system = _platform.system().lower()
    machine = _platform.machine().lower()
    return f"{_OS_NAMES.get(system, system)}_{_ARCH_NAMES.get(machine, machine)}"


class JobScheduler:
    """任务调度器"""

    def __init__(self, output_dir: str, platform: str):
        self.output_dir = output_dir
        self.platform = platform

    @property
    def git_dir(self) -> str:
        return os.path.join(self.output_dir, GIT_DIR_NAME)

    @property
    def platform_dir(self) -> str:
        return os.path.join(self.output_dir, self.platform)

    def global_destination(self, package_name: str, asset: Asset) -> str:
        if asset.is_git:
            return os.path.join(self.git_dir, package_name)
        return os.path.join(self.output_dir, url_basename(asset.url))

    def platform_destination(self, asset: Asset) -> str:
        return os.path.join(self.platform_dir, url_basename(asset.url))

    def jobs_for(self, name: str, pkg: Package) -> List[FetchJob]:
        """单个包产生的任务"""
        jobs = [
            FetchJob(
                name=f"{name} (global:{key})",
                version=pkg.version,
                asset=AssetDescriptor.from_asset(
                    asset, self.global_destination(name, asset)
                ),
            )
            for key, asset in pkg.global_assets.items()
        ]

        asset = pkg.platform_assets.get(self.platform)
        if asset is not None:
            jobs.append(
                FetchJob(
                    name=f"{name} (platform:{self.platform})",
                    version=pkg.version,
                    asset=AssetDescriptor.from_asset(
                        asset, self.platform_destination(asset)
                    ),
                )
            )
        return jobs

    def build_jobs(self, selected: Mapping[str, Package]) -> List[FetchJob]:
        """
        展开选中的包为任务列表

        Raises:
            ManifestError: 不同任务的目标路径冲突
        """
        jobs: List[FetchJob] = []
        for name, pkg in selected.items():
            jobs.extend(self.jobs_for(name, pkg))

        self._check_collisions(jobs)
        return jobs

    @staticmethod
    def _check_collisions(jobs: List[FetchJob]):
        owners: Dict[str, str] = {}
        for job in jobs:
            destination = os.path.normpath(job.asset.destination)
            if destination in owners:
                raise ManifestError(
                    f"目标路径冲突: {owners[destination]} 与 {job.name} 都写入 {destination}",
                    context={
                        "destination": destination,
                        "jobs": [owners[destination], job.name],
                    },
                )
            owners[destination] = job.name

    @staticmethod
    async def produce(jobs: Iterable[FetchJob], queue: JobQueue) -> int:
        """
        把任务逐个放入队列（队列满时挂起），结束时总是关闭队列

        Returns:
            放入队列的任务数
        """
        count = 0
        try:
            for job in jobs:
                await queue.put(job)
                count += 1
                logger.debug(f"[队列] {job.name} 已加入获取队列")
            return count
        finally:
            await queue.close()
