"""
资源获取器

对单个资源做出“跳过 / 克隆 / 下载并校验”的决定。
下载内容先写入 .part 暂存文件，校验通过后原子重命名为最终文件。
"""

import asyncio
import os
from typing import Callable, Optional

import aiofiles
import aiohttp
from loguru import logger

from loadout.download.queue import AssetDescriptor, AssetKind, FetchStatus
from loadout.download.verifier import CHUNK_SIZE, FileVerifier
from loadout.exceptions import (
    CloneError,
    FetchError,
    FilesystemError,
    IntegrityMismatchError,
    NetworkError,
)
from loadout.models.config import GIT_PREFIX

STAGING_SUFFIX = ".part"
DEFAULT_GIT_TRANSPORT = "https://"


def staging_path(destination: str) -> str:
    """下载暂存文件路径"""
    return destination + STAGING_SUFFIX


def _discard(path: str) -> None:
    if os.path.exists(path):
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f"[清理] 无法删除暂存文件 {path}: {e}")


class AssetFetcher:
    """资源获取器"""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        git_transport: str = DEFAULT_GIT_TRANSPORT,
        git_executable: str = "git",
        chunk_size: int = CHUNK_SIZE,
        progress_callback: Optional[Callable[[str, float], None]] = None,
    ):
        self.git_transport = git_transport
        self.git_executable = git_executable
        self.chunk_size = chunk_size
        self.verifier = FileVerifier()
        self.bytes_downloaded = 0
        self._session = session
        self._owned_session = session is None
        self._progress_callback = progress_callback

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            # 不设置总超时：进行中的下载要么完成，要么失败
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None)
            )
        return self._session

    async def fetch(self, descriptor: AssetDescriptor, display_name: str) -> FetchStatus:
        """
        获取单个资源

        Args:
            descriptor: 资源描述
            display_name: 用于日志的名称

        Returns:
            FetchStatus

        Raises:
            FetchError: 网络、校验、文件系统或克隆失败
        """
        if descriptor.kind is AssetKind.GIT:
            return await self._fetch_git(descriptor, display_name)
        return await self._fetch_archive(descriptor, display_name)

    def clone_url(self, url: str) -> str:
        """把 git:// 地址改写为可克隆的传输协议"""
        if url.startswith(GIT_PREFIX):
            return self.git_transport + url[len(GIT_PREFIX):]
        return url

    async def _fetch_git(self, descriptor: AssetDescriptor, display_name: str) -> FetchStatus:
        destination = descriptor.destination
        # 已克隆的仓库不再校验内容
        if os.path.isdir(destination):
            logger.info(f"[跳过] {display_name} git 仓库已存在于 {destination}")
            return FetchStatus.SKIPPED

        repo_url = self.clone_url(descriptor.url)
        logger.info(f"[克隆] {repo_url} -> {destination}")
        await self._clone(repo_url, destination)
        return FetchStatus.CLONED

    async def _clone(self, repo_url: str, destination: str) -> None:
        parent = os.path.dirname(destination)
        try:
            if parent:
                os.makedirs(parent, exist_ok=True)
            process = await asyncio.create_subprocess_exec(
                self.git_executable,
                "clone",
                "--quiet",
                repo_url,
                destination,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise CloneError(
                f"未找到 git 可执行文件: {self.git_executable}",
                context={"url": repo_url},
            ) from e
        except OSError as e:
            raise CloneError(
                f"无法启动 git clone: {e}", context={"url": repo_url}
            ) from e

        _, stderr = await process.communicate()
        if process.returncode != 0:
            raise CloneError(
                f"git clone 失败: {stderr.decode(errors='replace').strip()}",
                context={
                    "url": repo_url,
                    "destination": destination,
                    "returncode": process.returncode,
                },
            )

    async def _fetch_archive(self, descriptor: AssetDescriptor, display_name: str) -> FetchStatus:
        destination = descriptor.destination

        if os.path.isfile(destination):
            try:
                matches = await self.verifier.verify_file(destination, descriptor.integrity)
            except OSError as e:
                raise FilesystemError(
                    f"校验已有文件失败 {destination}: {e}",
                    context={"path": destination},
                ) from e
            if matches:
                logger.info(f"[跳过] {display_name} 文件已存在且校验通过")
                return FetchStatus.SKIPPED
            logger.warning(f"[重下] {display_name} 文件已存在但哈希不匹配，重新下载")

        await self._download(descriptor, display_name)
        return FetchStatus.DOWNLOADED

    async def _download(self, descriptor: AssetDescriptor, display_name: str) -> None:
        destination = descriptor.destination
        staging = staging_path(destination)
        spec = descriptor.integrity
        hasher = spec.new_hasher() if spec is not None else None

        logger.info(f"[开始] 下载: {descriptor.url}")
        try:
            parent = os.path.dirname(destination)
            if parent:
                os.makedirs(parent, exist_ok=True)
            await self._stream_to(descriptor.url, staging, hasher, display_name)
        except FetchError:
            _discard(staging)
            raise
        except aiohttp.ClientError as e:
            _discard(staging)
            raise NetworkError(
                f"下载失败: {e}", context={"url": descriptor.url}
            ) from e
        except asyncio.TimeoutError as e:
            _discard(staging)
            raise NetworkError("下载超时", context={"url": descriptor.url}) from e
        except OSError as e:
            _discard(staging)
            raise FilesystemError(
                f"写入暂存文件失败: {e}", context={"path": staging}
            ) from e

        if hasher is not None:
            actual = hasher.hexdigest()
            if not spec.matches(actual):
                _discard(staging)
                raise IntegrityMismatchError(
                    f"哈希不匹配 ({spec.algorithm}): 期望 {spec.digest}, 实际 {actual}",
                    context={
                        "url": descriptor.url,
                        "expected": spec.digest,
                        "actual": actual,
                    },
                )

        try:
            os.replace(staging, destination)
        except OSError as e:
            _discard(staging)
            raise FilesystemError(
                f"无法重命名 {staging} -> {destination}: {e}",
                context={"path": destination},
            ) from e
        logger.debug(f"[完成] {display_name} 已写入 {destination}")

    async def _stream_to(self, url: str, staging: str, hasher, display_name: str) -> None:
        async with self.session.get(url) as response:
            if response.status != 200:
                raise NetworkError(
                    f"HTTP {response.status}",
                    context={"url": url, "status": response.status},
                )

            total_size = response.content_length or 0
            if total_size:
                logger.info(
                    f"[信息] {display_name} 文件大小: {total_size / (1024 * 1024):.2f} MB"
                )

            async with aiofiles.open(staging, "wb") as f:
                downloaded = 0
                last_percent = 0.0

                async for chunk in response.content.iter_chunked(self.chunk_size):
                    await f.write(chunk)
                    if hasher is not None:
                        hasher.update(chunk)
                    downloaded += len(chunk)
                    self.bytes_downloaded += len(chunk)

                    if total_size > 0:
                        percent = (downloaded / total_size) * 100
                        if percent - last_percent >= 5 or downloaded >= total_size:
                            if self._progress_callback:
                                self._progress_callback(display_name, percent)
                            logger.debug(f"[进度] {display_name}: {percent:.1f}%")
                            last_percent = percent

    async def close(self):
        """关闭自己创建的 session"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
