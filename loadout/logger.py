"""
日志模块

使用 loguru 输出获取进度与结果，可选地同时写入日志文件。
"""

import os
import sys
from typing import Optional

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"


def resolve_level(debug: bool = False) -> str:
    """根据命令行开关和 LOADOUT_DEBUG 环境变量决定日志级别"""
    if debug or os.environ.get("LOADOUT_DEBUG", "0") == "1":
        return "DEBUG"
    return "INFO"


def setup_logger(
    debug: bool = False,
    sink=sys.stdout,
    log_file: Optional[str] = None,
    enqueue: bool = True,
    colorize: bool = True,
) -> str:
    """
    设置日志记录器

    Args:
        debug: 是否启用调试输出
        sink: 控制台输出目标
        log_file: 额外写入的日志文件路径（不着色，按 10 MB 轮转）
        enqueue: 是否启用队列（多个 worker 同时写日志）
        colorize: 控制台是否启用颜色

    Returns:
        实际使用的日志级别
    """
    level = resolve_level(debug)
    verbose = level == "DEBUG"

    logger.remove()
    logger.add(
        sink=sink,
        format=LOG_FORMAT,
        enqueue=enqueue,
        level=level,
        colorize=colorize,
        backtrace=verbose,
        diagnose=verbose,
    )

    if log_file:
        logger.add(
            log_file,
            format=LOG_FORMAT,
            enqueue=enqueue,
            level="DEBUG",
            rotation="10 MB",
            encoding="utf-8",
        )

    if verbose:
        logger.debug("DEBUG 模式已启用")
    return level


__all__ = ["logger", "setup_logger", "resolve_level", "LOG_FORMAT"]
