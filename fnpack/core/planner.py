"""构建计划：纯规划阶段

遍历导入图、构建包描述文件并计算构建哈希，全程只读磁盘、不写任何文件，
因此缓存键可以独立于暂存/安装/归档进行单元测试。

构建哈希按确定顺序累加:
  1. 目标平台标识（解释器 / 平台 / 架构）
  2. 每个改写后文件的部署路径与内容（遍历处理顺序）
  3. manifest.json 内容
  4. 额外静态文件的名称与内容（按名称字典序）
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from fnpack.core.config import Config, get_config
from fnpack.core.descriptor import build_manifest
from fnpack.core.exceptions import ValidationError
from fnpack.core.manifest import ManifestResolver
from fnpack.core.models import BundleOptions, BundlePlan
from fnpack.core.resolver import ModuleResolver
from fnpack.core.validation import (
    MANIFEST_FILE,
    validate_asset_name,
    validate_entry,
    validate_package_names,
    validate_prefix,
)
from fnpack.core.walker import discover_and_rewrite

logger = logging.getLogger(__name__)


class BuildHasher:
    """滚动构建哈希，每段数据带标签和长度，避免拼接歧义"""

    def __init__(self) -> None:
        self._h = hashlib.sha256()

    def update(self, label: str, data: bytes) -> None:
        self._h.update(label.encode("utf-8") + b"\0")
        self._h.update(len(data).to_bytes(8, "big"))
        self._h.update(data)

    def hexdigest(self) -> str:
        return self._h.hexdigest()


def staged_name(prefix: str, name: str) -> str:
    """带部署前缀的产物内路径"""
    return f"{prefix}/{name}" if prefix else name


def target_id(config: Config) -> str:
    return f"{config.implementation}{config.python_version}-{config.platform_tag}"


def plan_bundle(
    entry: str | Path,
    options: BundleOptions | None = None,
    config: Config | None = None,
    *,
    search_paths: list[str] | None = None,
    manifests: ManifestResolver | None = None,
) -> BundlePlan:
    """计算完整构建计划（不写磁盘）

    参数:
        entry: 入口文件路径
        options: 打包选项
        config: 全局配置，不传则使用 get_config()
        search_paths: 外部模块搜索路径，不传则使用 sys.path
        manifests: 描述文件解析器，不传则新建（仅在本次构建内缓存）
    """
    options = options or BundleOptions()
    config = config or get_config()

    entry_path = validate_entry(entry)
    prefix = validate_prefix(options.prefix)
    exclude = validate_package_names(options.exclude)
    assets = sorted(
        (validate_asset_name(name), content.encode("utf-8"))
        for name, content in options.assets.items()
    )
    names = [name for name, _ in assets]
    if len(set(names)) != len(names):
        raise ValidationError(f"静态文件名重复: {', '.join(names)}", details=names)
    root_dir = Path(options.root_dir).resolve() if options.root_dir else entry_path.parent
    if not entry_path.is_relative_to(root_dir):
        raise ValidationError(f"入口文件 {entry_path} 不在根目录 {root_dir} 内")

    manifests = manifests or ManifestResolver()
    resolver = ModuleResolver(
        search_paths=search_paths,
        local_roots=[root_dir],
        platform_modules=config.platform_modules,
    )
    walk = discover_and_rewrite(
        entry_path, root_dir,
        resolver=resolver, manifests=manifests,
        strip_annotations=options.strip_annotations,
    )
    deployed = {f.node.deploy_path for f in walk.files}
    clash = [name for name, _ in assets if name in deployed]
    if clash:
        raise ValidationError(f"静态文件与源文件部署路径冲突: {', '.join(clash)}", details=clash)

    manifest = build_manifest(
        entry_path.stem, walk.modules, exclude,
        version=config.manifest_version,
        requires_python=config.requires_python,
    )
    manifest_bytes = manifest.to_bytes()

    hasher = BuildHasher()
    hasher.update("target", target_id(config).encode("utf-8"))
    for f in walk.files:
        hasher.update(staged_name(prefix, f.node.deploy_path), f.data)
    hasher.update(staged_name(prefix, MANIFEST_FILE), manifest_bytes)
    for name, data in assets:
        hasher.update(staged_name(prefix, name), data)
    digest = hasher.hexdigest()

    logger.info(
        "构建计划: %s -> %s (文件 %d, 依赖 %d)",
        entry_path.name, digest[:12], len(walk.files), len(manifest.dependencies),
    )
    return BundlePlan(
        entry=entry_path,
        root_dir=root_dir,
        prefix=prefix,
        files=walk.files,
        modules=walk.modules,
        manifest=manifest,
        manifest_bytes=manifest_bytes,
        assets=assets,
        digest=digest,
    )
