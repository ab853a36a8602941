"""打包服务：规划 / 暂存 / 安装 / 归档

把入口文件及其本地导入闭包打成可部署的 zip 产物，
支持产物缓存复用、层（layer）打包和函数打包。

构建流程:
  暂存 → 缓存检查 → [依赖安装 → 归档] → 完成

缓存策略:
  - 以构建哈希为缓存键（见 fnpack.core.planner）
  - 产物已存在则直接返回，不调用安装器和归档器
  - 每次构建都会重写暂存目录，versions/ 下的历史产物保留
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import replace
from pathlib import Path

from fnpack.core.config import Config, get_config
from fnpack.core.exceptions import ValidationError
from fnpack.core.models import BundleOptions, BundlePlan, BundleResult, FunctionBundle
from fnpack.core.planner import plan_bundle, staged_name
from fnpack.core.validation import MANIFEST_FILE, secret_parameters, validate_entry
from fnpack.services.bundle.archiver import Archiver, ZipArchiver, exclude_top_level, parse_timestamp
from fnpack.services.bundle.cache import ArtifactCache
from fnpack.services.bundle.installer import Installer, PipInstaller
from fnpack.services.bundle.stager import stage

logger = logging.getLogger(__name__)

EXEC_WRAPPER_ENV = "AWS_LAMBDA_EXEC_WRAPPER"
EXTENSION_ASSET = "extension"

# 层的执行包装脚本: 运行层入口，eval 其输出后再 exec 原运行时命令
_EXTENSION_TEMPLATE = """#!/bin/bash
args=("$@")
OUTPUT=$(/var/lang/bin/python3 /opt/{prefix}/index.py)
eval "${{OUTPUT}}"
exec "${{args[@]}}"
"""


class BundleService:
    """打包生命周期管理"""

    def __init__(
        self,
        config: Config | None = None,
        *,
        installer: Installer | None = None,
        archiver: Archiver | None = None,
        search_paths: list[str] | None = None,
    ) -> None:
        self.config = config or get_config()
        self.installer = installer or PipInstaller(self.config)
        self.archiver = archiver or ZipArchiver(parse_timestamp(self.config.archive_timestamp))
        self.search_paths = search_paths
        self.cache = ArtifactCache(self.config.versions_dir)

    # ---- 路径 ----

    def staging_dir(self, entry: str | Path) -> Path:
        """入口对应的暂存目录

        dist_dir 为相对路径时位于入口所在目录下、以入口文件名区分；
        为绝对路径时以入口文件名加入口路径哈希区分。
        """
        entry = Path(entry).resolve()
        dist = Path(self.config.dist_dir)
        if dist.is_absolute():
            tag = hashlib.sha256(str(entry).encode("utf-8")).hexdigest()[:8]
            return dist / f"{entry.stem}-{tag}"
        return entry.parent / dist / entry.name

    # ---- 规划 ----

    def plan(self, entry: str | Path, options: BundleOptions | None = None) -> BundlePlan:
        """只计算构建计划和构建哈希，不写磁盘"""
        plan = plan_bundle(entry, options, self.config, search_paths=self.search_paths)
        self._check_reserved(plan)
        return plan

    def _check_reserved(self, plan: BundlePlan) -> None:
        """产物内的顶层名不能与缓存目录同名，否则会被归档排除"""
        reserved = self.config.versions_dir
        names = [staged_name(plan.prefix, n.deploy_path) for n in plan.nodes]
        names.append(staged_name(plan.prefix, MANIFEST_FILE))
        names.extend(staged_name(plan.prefix, name) for name, _ in plan.assets)
        hit = sorted({n for n in names if n.split("/", 1)[0] == reserved})
        if hit:
            raise ValidationError(
                f"部署路径与缓存目录 {reserved}/ 冲突: {', '.join(hit)}", details=hit,
            )

    # ---- 执行打包 ----

    def bundle(self, entry: str | Path, options: BundleOptions | None = None) -> BundleResult:
        """执行打包流程（缓存策略见模块文档）"""
        start = time.monotonic()
        plan = self.plan(entry, options)
        staging = self.staging_dir(plan.entry)
        base = stage(plan, staging, keep=self.config.versions_dir)

        artifact = self.cache.check(staging, plan.digest)
        cached = artifact is not None
        if artifact is None:
            self.installer.install(base, platform=self.config.platform, arch=self.config.arch)
            artifact = self.archiver.archive(
                staging, self.cache.artifact_path(staging, plan.digest),
                exclude=exclude_top_level(self.config.versions_dir),
            )

        result = BundleResult(
            artifact_path=str(artifact),
            digest=plan.digest,
            files=plan.nodes,
            modules=list(plan.modules),
            cached=cached,
            duration=time.monotonic() - start,
        )
        logger.info(
            "打包完成: %s -> %s (%s, %.2fs)",
            plan.entry.name, artifact, "缓存" if cached else "新建", result.duration,
            extra={"entry": str(plan.entry), "digest": plan.digest, "cached": cached},
        )
        return result

    def bundle_layer(self, entry: str | Path, options: BundleOptions | None = None) -> BundleResult:
        """打包层: 部署到层的导入根目录下，并附带执行包装脚本"""
        options = options or BundleOptions()
        prefix = self.config.layer_prefix
        assets = {**options.assets, EXTENSION_ASSET: _EXTENSION_TEMPLATE.format(prefix=prefix)}
        return self.bundle(entry, replace(options, prefix=prefix, assets=assets))

    def bundle_function(
        self,
        entry: str | Path,
        options: BundleOptions | None = None,
        *,
        layers: Iterable[BundleResult] = (),
        environment: Mapping[str, str] | None = None,
    ) -> FunctionBundle:
        """打包函数

        运行时自带的分发包、调用方排除项以及各层已提供的模块都不写入 manifest。
        有层时在环境变量中设置执行包装脚本。
        """
        options = options or BundleOptions()
        layers = list(layers)

        exclude: list[str] = []
        for name in [
            *self.config.runtime_provided,
            *options.exclude,
            *(m.name for layer in layers for m in layer.modules),
        ]:
            if name not in exclude:
                exclude.append(name)

        env = dict(environment or {})
        if layers:
            env[EXEC_WRAPPER_ENV] = f"/opt/{self.config.layer_prefix}/{EXTENSION_ASSET}"
        secrets = secret_parameters(env)

        result = self.bundle(entry, replace(options, exclude=exclude))
        return FunctionBundle(bundle=result, environment=env, secret_parameters=secrets)

    # ---- 清理 ----

    def clean(self, entry: str | Path) -> int:
        """清除入口的全部缓存产物，返回删除数量"""
        path = validate_entry(entry)
        removed = self.cache.invalidate(self.staging_dir(path))
        logger.info("缓存已清理: %s (%d 个产物)", path.name, removed)
        return removed
