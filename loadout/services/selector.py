"""
包选择服务

解析 --select 参数，按包名或标签（不区分大小写）筛选包。
"""

from typing import Dict, List, Mapping, Optional

from loadout.models import Package

SELECT_ALL = "all"


def parse_select(raw: Optional[str]) -> List[str]:
    """
    解析逗号分隔的选择参数

    Args:
        raw: 例如 "ripgrep, net,,all"

    Returns:
        去除空白与空项后的过滤条件列表
    """
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def matches(name: str, pkg: Package, selector: str) -> bool:
    """包名或任一标签与过滤条件相同（不区分大小写）"""
    wanted = selector.casefold()
    if name.casefold() == wanted:
        return True
    return any(tag.casefold() == wanted for tag in pkg.tags)


def filter_packages(
    packages: Mapping[str, Package],
    filters: List[str],
) -> Dict[str, Package]:
    """
    筛选包

    任一过滤条件为 "all" 时直接返回全部包，忽略其他条件。

    Args:
        packages: 清单中的全部包
        filters: parse_select 的结果

    Returns:
        被选中的包
    """
    if any(f.casefold() == SELECT_ALL for f in filters):
        return dict(packages)

    return {
        name: pkg
        for name, pkg in packages.items()
        if any(matches(name, pkg, f) for f in filters)
    }
