"""
Loadout 获取层

包含哈希校验、资源获取、任务队列与并发 worker 池。
"""

from loadout.download.fetcher import AssetFetcher
from loadout.download.manager import DownloadManager, DownloadStats, PoolState
from loadout.download.queue import (
    AssetDescriptor,
    AssetKind,
    FetchJob,
    FetchOutcome,
    FetchStatus,
    JobQueue,
    ResultStream,
)
from loadout.download.verifier import (
    FileVerifier,
    IntegritySpec,
    parse_integrity_spec,
    validate_integrity_spec,
)

__all__ = [
    "AssetFetcher",
    "DownloadManager",
    "DownloadStats",
    "PoolState",
    "AssetDescriptor",
    "AssetKind",
    "FetchJob",
    "FetchOutcome",
    "FetchStatus",
    "JobQueue",
    "ResultStream",
    "FileVerifier",
    "IntegritySpec",
    "parse_integrity_spec",
    "validate_integrity_spec",
]
