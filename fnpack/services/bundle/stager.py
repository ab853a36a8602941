"""暂存目录写入

每次构建先清空暂存目录（保留 versions/ 缓存目录），再按计划写入:
改写后的源文件 → manifest.json → 额外静态文件。
失败时可能留下部分输出，下次构建会整体覆盖，不做回滚。
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from fnpack.core.models import BundlePlan
from fnpack.core.validation import MANIFEST_FILE

logger = logging.getLogger(__name__)


def reset_staging(staging: Path, keep: str = "versions") -> None:
    """清空暂存目录，保留缓存目录"""
    staging.mkdir(parents=True, exist_ok=True)
    for child in staging.iterdir():
        if child.name == keep:
            continue
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def _write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    if data.startswith(b"#!"):
        path.chmod(0o755)


def stage(plan: BundlePlan, staging: Path, *, keep: str = "versions") -> Path:
    """把构建计划写入暂存目录，返回带前缀的部署根目录"""
    reset_staging(staging, keep)
    base = staging / plan.prefix if plan.prefix else staging
    for f in plan.files:
        _write(base / f.node.deploy_path, f.data)
    _write(base / MANIFEST_FILE, plan.manifest_bytes)
    for name, data in plan.assets:
        _write(base / name, data)
    logger.info("暂存完成: %s (%d 个文件)", base, len(plan.files) + 1 + len(plan.assets))
    return base
