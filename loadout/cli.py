"""
CLI 模块

命令行接口实现。
"""

import asyncio
from typing import Optional

import click
from loguru import logger

from loadout import __version__
from loadout.config import load_config
from loadout.exceptions import LoadoutError
from loadout.logger import setup_logger
from loadout.models import LoadoutConfig
from loadout.orchestrator import LoadoutOrchestrator, RunSummary
from loadout.services import detect_platform, filter_packages, parse_select
from loadout.utils import describe_package


def list_packages(config: LoadoutConfig, platform: str, select: Optional[str]):
    """列出当前平台的包；未指定选择条件时列出全部"""
    click.echo(f"Available packages for {platform}")

    filters = parse_select(select)
    packages = (
        filter_packages(config.packages, filters) if filters else config.packages
    )
    for name, pkg in packages.items():
        click.echo(describe_package(name, pkg, platform))


async def run_async(
    config: LoadoutConfig,
    select: str,
    output_dir: str,
    platform: str,
    concurrency: int,
) -> RunSummary:
    """异步运行"""
    orchestrator = LoadoutOrchestrator(
        config,
        select=select,
        output_dir=output_dir,
        platform=platform,
        max_concurrent=concurrency,
    )
    try:
        return await orchestrator.run()
    finally:
        await logger.complete()


@click.command(no_args_is_help=True)
@click.option(
    "-c",
    "--config",
    "config_path",
    envvar="LOADOUT_CONFIG",
    required=True,
    type=click.Path(dir_okay=False),
    help="清单文件路径 (YAML/TOML/JSON)",
)
@click.option(
    "-o",
    "--output-dir",
    envvar="LOADOUT_OUTPUT_DIR",
    default="./downloads",
    show_default=True,
    type=click.Path(file_okay=False),
    help="输出目录",
)
@click.option(
    "-s",
    "--select",
    envvar="LOADOUT_SELECT",
    help="逗号分隔的包名和/或标签，或 'all'",
)
@click.option(
    "-l", "--list", "list_only", is_flag=True, help="列出当前平台的包"
)
@click.option(
    "-j",
    "--concurrency",
    envvar="LOADOUT_CONCURRENCY",
    default=4,
    show_default=True,
    type=click.IntRange(min=1),
    help="并发获取数",
)
@click.option(
    "-p",
    "--platform",
    envvar="LOADOUT_PLATFORM",
    help="覆盖检测到的平台 (例如 linux_amd64)",
)
@click.option("--log-file", envvar="LOADOUT_LOG_FILE", help="同时写入的日志文件")
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.version_option(version=__version__)
def main(
    config_path: str,
    output_dir: str,
    select: Optional[str],
    list_only: bool,
    concurrency: int,
    platform: Optional[str],
    log_file: Optional[str],
    debug: bool,
):
    """Loadout - 按清单获取归档文件与 git 仓库"""
    setup_logger(debug=debug, log_file=log_file)

    platform = platform or detect_platform()

    try:
        config = load_config(config_path)
    except LoadoutError as e:
        logger.error(f"配置错误: {e}")
        raise click.ClickException(str(e))

    if list_only:
        list_packages(config, platform, select)
        return

    if not select:
        raise click.UsageError("下载时必须指定 --select，或使用 --list")

    try:
        summary = asyncio.run(
            run_async(config, select, output_dir, platform, concurrency)
        )
    except LoadoutError as e:
        logger.error(f"运行失败: {e}")
        raise click.ClickException(str(e))

    if not summary.ok:
        click.get_current_context().exit(1)


if __name__ == "__main__":
    main()
