"""
清单加载

按文件后缀读取 YAML / TOML / JSON 清单，并交给 LoadoutConfig 校验。
"""

import json
from pathlib import Path

import toml
import yaml

from loadout.exceptions import ConfigParseError
from loadout.models import LoadoutConfig


def read_manifest(config_path: str) -> dict:
    """读取清单文件为字典"""
    path = Path(config_path)

    if not path.is_file():
        raise ConfigParseError(
            f"配置文件不存在: {config_path}", context={"path": config_path}
        )

    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
        if suffix in (".yaml", ".yml"):
            return yaml.safe_load(text)
        elif suffix == ".toml":
            return toml.loads(text)
        elif suffix == ".json":
            return json.loads(text)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigParseError(
            f"无法读取配置文件: {e}", context={"path": config_path}
        ) from e
    except (yaml.YAMLError, toml.TomlDecodeError, json.JSONDecodeError) as e:
        raise ConfigParseError(
            f"配置文件解析失败: {e}", context={"path": config_path}
        ) from e

    raise ConfigParseError(
        f"不支持的配置文件格式: {suffix}", context={"path": config_path}
    )


def load_config(config_path: str) -> LoadoutConfig:
    """
    加载并校验清单

    Raises:
        ConfigParseError: 文件不存在、格式不支持或解析失败
        ManifestError: 清单内容不合法
    """
    return LoadoutConfig.from_dict(read_manifest(config_path), source=config_path)
