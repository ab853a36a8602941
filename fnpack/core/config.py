"""集中配置管理

替代各模块散落的 DEFAULT_* 常量，提供统一的配置入口。
支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import yaml

from fnpack.core.exceptions import ConfigError
from fnpack.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """打包全局配置"""

    # 目录
    dist_dir: str = "dist"           # 相对路径时位于入口文件所在目录下
    versions_dir: str = "versions"

    # 包描述文件
    manifest_version: str = "1.0.0"
    requires_python: str = ">=3.12"

    # 目标平台（固定单一组合）
    python_version: str = "3.12"
    platform: str = "manylinux2014"
    arch: str = "aarch64"
    implementation: str = "cp"

    # 运行时已提供、不需要随产物安装的分发包
    runtime_provided: list[str] = field(default_factory=lambda: ["boto3", "botocore"])
    # 视为平台内置、永不收集的顶层模块（标准库之外）
    platform_modules: list[str] = field(default_factory=list)

    # 层
    layer_prefix: str = "python"

    # 归档
    archive_timestamp: str = "2023-11-11T19:18:00"

    # 安装
    pip_command: str = ""            # 为空时使用当前解释器的 "-m pip"

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = "configs/default.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (yaml.YAMLError, OSError, ValueError) as e:
            raise ConfigError(f"配置文件读取失败 {path}: {e}") from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        for key in ("runtime_provided", "platform_modules"):
            if key in matched and not isinstance(matched[key], list):
                raise ConfigError(f"配置项 {key} 必须是列表: {path}")
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    @property
    def platform_tag(self) -> str:
        """pip --platform 使用的平台标签，如 manylinux2014_aarch64"""
        return f"{self.platform}_{self.arch}"

    def to_dict(self) -> dict:
        from dataclasses import asdict
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI / Web 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "configs/default.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
