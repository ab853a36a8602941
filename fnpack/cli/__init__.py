"""fnpack 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os
from pathlib import Path
from typing import Any

import click

from fnpack import __version__
from fnpack.core.config import init_config
from fnpack.core.exceptions import FnPackError
from fnpack.services.container import get_container, reset_container
from fnpack.utils.logger import setup_logging


def _svc() -> Any:
    """获取全局服务容器的快捷方式"""
    return get_container()


def _parse_kv_pairs(pairs: tuple[str, ...]) -> dict[str, str]:
    """解析 key=value 参数对"""
    result: dict[str, str] = {}
    for p in pairs:
        if "=" not in p:
            raise click.BadParameter(f"需要 key=value 形式: {p}")
        k, v = p.split("=", 1)
        result[k.strip()] = v.strip()
    return result


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "config_path", default=None,
    help="配置文件路径（默认读取 FNPACK_CONFIG 或 configs/default.yml）",
)
def main(config_path: str | None) -> None:
    """fnpack - 无服务器函数打包工具"""
    setup_logging(
        level=os.getenv("FNPACK_LOG_LEVEL", "INFO"),
        json_output=os.getenv("FNPACK_LOG_JSON", "") == "1",
    )
    path = config_path or os.getenv("FNPACK_CONFIG", "configs/default.yml")
    if config_path and not Path(config_path).is_file():
        raise click.BadParameter(f"配置文件不存在: {config_path}", param_hint="--config")
    try:
        init_config(path)
    except FnPackError as e:
        raise click.ClickException(str(e)) from e
    reset_container()


# 注册各领域子命令
from fnpack.cli.cmd_bundle import register as _reg_bundle  # noqa: E402

_reg_bundle(main)
