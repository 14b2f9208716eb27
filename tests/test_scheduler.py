import asyncio
import os

import pytest

from loadout.download import AssetKind, JobQueue
from loadout.exceptions import ManifestError
from loadout.models import Asset, Package
from loadout.services import scheduler as scheduler_module
from loadout.services.scheduler import JobScheduler, detect_platform
from loadout.utils import url_basename

PLATFORM = "linux_amd64"
MD5 = "0" * 32


def _packages():
    return {
        "tool": Package(
            version="1.0",
            global_assets={
                "src": Asset(url="https://example.com/dl/tool-1.0.tar.gz", hash=f"md5:{MD5}"),
                "docs": Asset(url="https://example.com/dl/tool-docs.zip"),
            },
            platform_assets={
                "linux_amd64": Asset(url="https://example.com/dl/linux/tool"),
                "darwin_arm64": Asset(url="https://example.com/dl/darwin/tool-mac"),
            },
        ),
        "repo": Package(
            global_assets={"source": Asset(url="git://github.com/example/repo")},
        ),
        "mac-only": Package(
            platform_assets={"darwin_arm64": Asset(url="https://example.com/mac.dmg")},
        ),
    }


def test_job_count_invariant(tmp_path):
    packages = _packages()
    scheduler = JobScheduler(str(tmp_path), PLATFORM)

    jobs = scheduler.build_jobs(packages)

    expected = sum(len(p.global_assets) for p in packages.values()) + sum(
        1 for p in packages.values() if p.has_platform_asset(PLATFORM)
    )
    assert len(jobs) == expected == 4


def test_destinations_and_names(tmp_path):
    scheduler = JobScheduler(str(tmp_path), PLATFORM)

    jobs = {job.name: job for job in scheduler.build_jobs(_packages())}

    src = jobs["tool (global:src)"]
    assert src.version == "1.0"
    assert src.asset.kind is AssetKind.ARCHIVE
    assert src.asset.destination == os.path.join(str(tmp_path), "tool-1.0.tar.gz")
    assert src.asset.integrity.algorithm == "md5"

    assert jobs["tool (global:docs)"].asset.integrity is None

    platform_job = jobs[f"tool (platform:{PLATFORM})"]
    assert platform_job.asset.destination == os.path.join(str(tmp_path), PLATFORM, "tool")

    repo = jobs["repo (global:source)"]
    assert repo.asset.kind is AssetKind.GIT
    assert repo.asset.destination == os.path.join(str(tmp_path), "git", "repo")


def test_package_without_matching_platform_asset_contributes_nothing(tmp_path):
    scheduler = JobScheduler(str(tmp_path), "windows_amd64")

    jobs = scheduler.build_jobs({"mac-only": _packages()["mac-only"]})

    assert jobs == []


def test_destination_collision_fails_fast(tmp_path):
    packages = {
        "a": Package(global_assets={"x": Asset(url="https://one.example.com/setup.exe")}),
        "b": Package(global_assets={"y": Asset(url="https://two.example.com/setup.exe")}),
    }
    scheduler = JobScheduler(str(tmp_path), PLATFORM)

    with pytest.raises(ManifestError) as excinfo:
        scheduler.build_jobs(packages)

    assert excinfo.value.context["destination"].endswith("setup.exe")


def test_roots(tmp_path):
    scheduler = JobScheduler(str(tmp_path), PLATFORM)

    assert scheduler.git_dir == os.path.join(str(tmp_path), "git")
    assert scheduler.platform_dir == os.path.join(str(tmp_path), PLATFORM)


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://example.com/a/b/tool.tar.gz", "tool.tar.gz"),
        ("https://example.com/a/tool.zip?token=1#frag", "tool.zip"),
        ("https://example.com/releases/", "releases"),
    ],
)
def test_url_basename(url, expected):
    assert url_basename(url) == expected


@pytest.mark.parametrize(
    "system, machine, expected",
    [
        ("Linux", "x86_64", "linux_amd64"),
        ("Darwin", "arm64", "darwin_arm64"),
        ("Linux", "aarch64", "linux_arm64"),
        ("Windows", "AMD64", "windows_amd64"),
        ("Plan9", "mips", "plan9_mips"),
    ],
)
def test_detect_platform(monkeypatch, system, machine, expected):
    monkeypatch.setattr(scheduler_module._platform, "system", lambda: system)
    monkeypatch.setattr(scheduler_module._platform, "machine", lambda: machine)

    assert detect_platform() == expected


@pytest.mark.asyncio
async def test_produce_enqueues_everything_then_closes(tmp_path):
    scheduler = JobScheduler(str(tmp_path), PLATFORM)
    jobs = scheduler.build_jobs(_packages())
    queue = JobQueue(maxsize=1)

    producer = asyncio.create_task(JobScheduler.produce(jobs, queue))
    received = []
    while True:
        job = await queue.get()
        if job is None:
            break
        received.append(job)

    assert await producer == len(jobs)
    assert received == jobs
    assert queue.closed


@pytest.mark.asyncio
async def test_produce_closes_queue_when_empty():
    queue = JobQueue()

    assert await JobScheduler.produce([], queue) == 0
    assert await queue.get() is None
