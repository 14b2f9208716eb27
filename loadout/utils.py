import posixpath
from typing import List
from urllib.parse import urlparse

from loadout.models import Package


def format_version(version: str) -> str:
    if not version:
        return "version unset"
    return version


def url_basename(url: str) -> str:
    """资源地址路径的最后一段（忽略查询串与片段）"""
    path = urlparse(url).path.rstrip("/")
    return posixpath.basename(path) or urlparse(url).netloc


def describe_package(name: str, pkg: Package, platform: str) -> str:
    """生成 --list 输出中的一行"""
    parts: List[str] = [f" - {name} ({format_version(pkg.version)})"]
    if pkg.tags:
        parts.append(f" [tags: {', '.join(pkg.tags)}]")
    if pkg.has_platform_asset(platform):
        parts.append(" [has platform asset]")
    if pkg.global_assets:
        parts.append(" [has global assets]")
    return "".join(parts)
