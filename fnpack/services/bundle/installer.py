"""第三方依赖安装器

读取部署目录中的 manifest.json，为固定的目标平台/架构安装其中声明的生产依赖。
只安装 manifest 声明的包（及其传递依赖），不安装开发依赖。
调用阻塞且不设超时，失败不重试，诊断输出原样保留在 InstallError 中。
"""

from __future__ import annotations

import json
import logging
import shlex
import sys
from pathlib import Path
from typing import Protocol

from fnpack.core.config import Config, get_config
from fnpack.core.exceptions import ExecutionError, InstallError
from fnpack.core.models import Manifest
from fnpack.core.validation import MANIFEST_FILE
from fnpack.utils.shell import CommandExecutor, run_cmd

logger = logging.getLogger(__name__)


class Installer(Protocol):
    """依赖安装器协议"""

    def install(self, directory: Path, *, platform: str, arch: str) -> None:
        ...


class PipInstaller:
    """基于 pip --target 的依赖安装器"""

    def __init__(
        self, config: Config | None = None, executor: CommandExecutor | None = None,
    ) -> None:
        self.config = config or get_config()
        self._executor = executor

    def _pip(self) -> list[str]:
        if self.config.pip_command:
            return shlex.split(self.config.pip_command)
        return [sys.executable, "-m", "pip"]

    def command(
        self, directory: Path, dependencies: dict[str, str], *, platform: str, arch: str,
    ) -> list[str]:
        """组装 pip 安装命令，依赖按名称排序"""
        return [
            *self._pip(), "install",
            "--target", str(directory),
            "--platform", f"{platform}_{arch}",
            "--implementation", self.config.implementation,
            "--python-version", self.config.python_version,
            "--only-binary=:all:",
            "--upgrade",
            "--no-compile",
            "--no-input",
            "--disable-pip-version-check",
            *[f"{name}=={version}" for name, version in sorted(dependencies.items())],
        ]

    def install(self, directory: Path, *, platform: str = "", arch: str = "") -> None:
        directory = Path(directory)
        manifest = self._read_manifest(directory)
        if not manifest.dependencies:
            logger.info("无第三方依赖，跳过安装: %s", directory)
            return
        cmd = self.command(
            directory, manifest.dependencies,
            platform=platform or self.config.platform,
            arch=arch or self.config.arch,
        )
        try:
            run_cmd(cmd, cwd=str(directory), label="pip install", executor=self._executor)
        except ExecutionError as e:
            raise InstallError(f"依赖安装失败: {e}", output=e.output) from e
        logger.info("依赖安装完成: %d 个包", len(manifest.dependencies))

    @staticmethod
    def _read_manifest(directory: Path) -> Manifest:
        path = directory / MANIFEST_FILE
        try:
            return Manifest.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError) as e:
            raise InstallError(f"无法读取 {path}: {e}") from e
