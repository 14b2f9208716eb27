"""
清单配置模型

定义包、资源及整体清单的数据类，并在加载时完成全部校验。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from loadout.exceptions import IntegritySpecError, ManifestError

GIT_PREFIX = "git://"
SUPPORTED_SCHEMES = ("http", "https", "git")


def validate_url(raw_url: str) -> None:
    """
    校验资源地址

    http/https 必须带主机名；git 必须带仓库路径。
    """
    try:
        parsed = urlparse(raw_url)
    except ValueError as e:
        raise ManifestError(f"URL 无法解析: {e}", context={"url": raw_url}) from e

    scheme = parsed.scheme.lower()
    if scheme not in SUPPORTED_SCHEMES:
        raise ManifestError(
            f"不支持的 URL 协议: {parsed.scheme}", context={"url": raw_url}
        )
    if scheme == "git":
        if not parsed.path:
            raise ManifestError("git URL 必须包含仓库路径", context={"url": raw_url})
    elif not parsed.netloc:
        raise ManifestError("URL 缺少主机名", context={"url": raw_url})


@dataclass
class Asset:
    """单个资源：地址 + 哈希规格"""

    url: str
    hash: str = ""

    @property
    def is_git(self) -> bool:
        return self.url.startswith(GIT_PREFIX)

    @classmethod
    def from_dict(cls, data: Any, where: str) -> "Asset":
        from loadout.download.verifier import validate_integrity_spec

        if not isinstance(data, dict):
            raise ManifestError(f"{where}: 资源必须是映射", context={"asset": data})

        url = data.get("url")
        if not url or not isinstance(url, str):
            raise ManifestError(f"{where}: 缺少 url")
        hash_spec = data.get("hash") or ""
        if not isinstance(hash_spec, str):
            raise ManifestError(f"{where}: hash 必须是字符串")

        try:
            validate_integrity_spec(hash_spec)
        except IntegritySpecError as e:
            raise IntegritySpecError(
                f"{where}: {e.message}", context={**e.context, "asset": where}
            ) from e
        try:
            validate_url(url)
        except ManifestError as e:
            raise ManifestError(
                f"{where}: URL 无效: {e.message}",
                context={**e.context, "asset": where},
            ) from e

        return cls(url=url, hash=hash_spec)


@dataclass
class Package:
    """清单中的一个包"""

    version: str = ""
    tags: List[str] = field(default_factory=list)
    global_assets: Dict[str, Asset] = field(default_factory=dict)
    platform_assets: Dict[str, Asset] = field(default_factory=dict)

    def has_platform_asset(self, platform: str) -> bool:
        return platform in self.platform_assets

    @classmethod
    def from_dict(cls, name: str, data: Any) -> "Package":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ManifestError(f"包 {name} 的定义必须是映射")

        tags = data.get("tags") or []
        if isinstance(tags, str):
            tags = [tags]
        if not isinstance(tags, list):
            raise ManifestError(f"包 {name} 的 tags 必须是列表")

        return cls(
            version=str(data.get("version") or ""),
            tags=[str(tag) for tag in tags],
            global_assets=cls._assets_from(name, "global", data.get("global_assets")),
            platform_assets=cls._assets_from(
                name, "platform", data.get("platform_assets")
            ),
        )

    @staticmethod
    def _assets_from(name: str, role: str, raw: Any) -> Dict[str, Asset]:
        if not raw:
            return {}
        if not isinstance(raw, dict):
            raise ManifestError(f"包 {name} 的 {role}_assets 必须是映射")
        return {
            str(key): Asset.from_dict(value, f"包 {name} 的 {role} 资源 {key}")
            for key, value in raw.items()
        }


@dataclass
class LoadoutConfig:
    """完整清单"""

    packages: Dict[str, Package] = field(default_factory=dict)
    source: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, source: Optional[str] = None) -> "LoadoutConfig":
        """
        从字典创建并校验清单

        Raises:
            ManifestError: 清单内容不合法
        """
        if not isinstance(data, dict):
            raise ManifestError("清单顶层必须是映射", context={"source": source})

        raw_packages = data.get("packages")
        if not raw_packages:
            raise ManifestError("未定义任何包", context={"source": source})
        if not isinstance(raw_packages, dict):
            raise ManifestError("packages 必须是映射", context={"source": source})

        packages = {
            str(name): Package.from_dict(str(name), pkg)
            for name, pkg in raw_packages.items()
        }
        return cls(packages=packages, source=source)
