"""
Loadout 服务层

包含业务逻辑服务：包选择与任务调度。
"""

from loadout.services.scheduler import JobScheduler, detect_platform
from loadout.services.selector import filter_packages, parse_select

__all__ = [
    "JobScheduler",
    "detect_platform",
    "filter_packages",
    "parse_select",
]
