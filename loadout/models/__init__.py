"""
Loadout 数据模型包

包含清单配置模型定义。
"""

from loadout.models.config import (
    GIT_PREFIX,
    Asset,
    Package,
    LoadoutConfig,
    validate_url,
)

__all__ = [
    "GIT_PREFIX",
    "Asset",
    "Package",
    "LoadoutConfig",
    "validate_url",
]
