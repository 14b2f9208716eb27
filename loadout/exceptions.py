"""
Loadout 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, Optional


class LoadoutError(Exception):
    """Loadout 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(LoadoutError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class ConfigParseError(ConfigError):
    """清单文件读取或解析错误"""

    def _get_default_code(self) -> str:
        return "E101"


class ManifestError(ConfigError):
    """清单内容校验错误（在任何下载开始之前抛出）"""

    def _get_default_code(self) -> str:
        return "E102"


class IntegritySpecError(ManifestError):
    """哈希规格格式错误"""

    def _get_default_code(self) -> str:
        return "E103"


class FetchError(LoadoutError):
    """获取资源相关错误（仅影响单个任务）"""

    def _get_default_code(self) -> str:
        return "E300"


class NetworkError(FetchError):
    """网络传输失败或非 200 响应"""

    def _get_default_code(self) -> str:
        return "E301"


class IntegrityMismatchError(FetchError):
    """下载内容的摘要与期望值不符"""

    def _get_default_code(self) -> str:
        return "E302"


class FilesystemError(FetchError):
    """文件创建、重命名或读取失败"""

    def _get_default_code(self) -> str:
        return "E303"


class CloneError(FetchError):
    """git 仓库克隆失败"""

    def _get_default_code(self) -> str:
        return "E304"


__all__ = [
    # 基础异常
    "LoadoutError",
    # 配置异常
    "ConfigError",
    "ConfigParseError",
    "ManifestError",
    "IntegritySpecError",
    # 获取异常
    "FetchError",
    "NetworkError",
    "IntegrityMismatchError",
    "FilesystemError",
    "CloneError",
]
