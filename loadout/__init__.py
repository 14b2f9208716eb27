"""
Loadout

按声明式清单获取带版本的归档文件与 git 仓库，校验完整性并跳过已满足的资源。
"""

__version__ = "0.1.0"
