"""
文件校验器

解析哈希规格（md5/sha256/sha512），对字节流计算摘要，并以常量时间比较摘要。
"""

import hashlib
import hmac
import os
import string
from dataclasses import dataclass
from typing import BinaryIO, Optional

import aiofiles

from loadout.exceptions import IntegritySpecError

# 各算法摘要的十六进制长度
HASH_LENGTHS = {
    "md5": 32,
    "sha256": 64,
    "sha512": 128,
}

CHUNK_SIZE = 64 * 1024

_HEX_DIGITS = frozenset(string.hexdigits)


@dataclass(frozen=True)
class IntegritySpec:
    """哈希规格：算法 + 期望摘要（小写十六进制）"""

    algorithm: str
    digest: str

    def __post_init__(self):
        if self.algorithm not in HASH_LENGTHS:
            raise IntegritySpecError(
                f"不支持的哈希算法: {self.algorithm}",
                context={"algorithm": self.algorithm},
            )
        if len(self.digest) != HASH_LENGTHS[self.algorithm]:
            raise IntegritySpecError(
                f"{self.algorithm} 摘要长度无效: {self.digest}",
                context={"algorithm": self.algorithm, "digest": self.digest},
            )

    def new_hasher(self):
        """创建对应算法的 hashlib 对象"""
        return hashlib.new(self.algorithm)

    def matches(self, actual_hex: str) -> bool:
        """常量时间比较实际摘要与期望摘要（不区分大小写）"""
        return hmac.compare_digest(
            actual_hex.lower().encode("ascii"),
            self.digest.lower().encode("ascii"),
        )

    def __str__(self) -> str:
        return f"{self.algorithm}:{self.digest}"


def _is_disabled(spec: str) -> bool:
    """判断规格是否表示“不校验”"""
    lowered = spec.strip().lower()
    if lowered in ("", "none"):
        return True
    algo, sep, value = lowered.partition(":")
    return bool(sep) and value == "none" and algo in HASH_LENGTHS


def parse_integrity_spec(spec: Optional[str]) -> Optional[IntegritySpec]:
    """
    解析哈希规格字符串

    Args:
        spec: 形如 "sha256:<hex>" 的规格；空串、"none" 或 "<algo>:none" 表示不校验

    Returns:
        IntegritySpec，或 None（不需要校验）

    Raises:
        IntegritySpecError: 规格格式错误
    """
    if spec is None or _is_disabled(spec):
        return None

    algo, sep, value = spec.strip().partition(":")
    if not sep or not algo or not value:
        raise IntegritySpecError(
            f"哈希格式无效: {spec}", context={"hash": spec}
        )

    algo = algo.lower()
    if algo not in HASH_LENGTHS:
        raise IntegritySpecError(
            f"不支持的哈希算法: {algo}", context={"hash": spec}
        )
    if not all(c in _HEX_DIGITS for c in value):
        raise IntegritySpecError(
            f"哈希值不是合法的十六进制: {value}", context={"hash": spec}
        )

    return IntegritySpec(algorithm=algo, digest=value.lower())


def validate_integrity_spec(spec: Optional[str]) -> None:
    """清单加载时校验哈希规格，格式错误时抛出 IntegritySpecError"""
    parse_integrity_spec(spec)


class FileVerifier:
    """文件校验器"""

    @staticmethod
    def verify(stream: BinaryIO, spec: Optional[IntegritySpec]) -> bool:
        """
        校验字节流的摘要是否与规格匹配

        Args:
            stream: 二进制可读对象
            spec: 哈希规格，None 表示不校验

        Returns:
            是否匹配（不校验时总是 True）
        """
        if spec is None:
            return True

        hasher = spec.new_hasher()
        for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
            hasher.update(chunk)
        return spec.matches(hasher.hexdigest())

    @staticmethod
    async def calc_digest(file_path: str, algorithm: str) -> Optional[str]:
        """
        计算文件的摘要

        Returns:
            十六进制摘要，文件不存在时返回 None
        """
        if not os.path.isfile(file_path):
            return None

        hasher = hashlib.new(algorithm)
        async with aiofiles.open(file_path, "rb") as f:
            while True:
                data = await f.read(CHUNK_SIZE)
                if not data:
                    break
                hasher.update(data)
        return hasher.hexdigest()

    @staticmethod
    async def verify_file(file_path: str, spec: Optional[IntegritySpec]) -> bool:
        """
        检查磁盘上的文件是否与规格匹配

        文件不存在时返回 False；存在且不需要校验时返回 True。
        """
        if not os.path.isfile(file_path):
            return False
        if spec is None:
            return True

        actual = await FileVerifier.calc_digest(file_path, spec.algorithm)
        if actual is None:
            return False
        return spec.matches(actual)
