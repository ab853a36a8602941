"""产物缓存管理

职责:
- 由构建哈希推导产物路径
- 缓存命中检查
- 缓存失效管理

缓存策略:
  - 以构建哈希为缓存键，产物位于 <staging>/versions/<digest>.zip
  - 产物存在即命中，跳过依赖安装与归档
  - 同一入口的并发构建不加锁，可能重复安装/归档，以最后写入者为准
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIX = ".zip"


class ArtifactCache:
    """产物缓存管理器"""

    def __init__(self, versions_dir: str = "versions") -> None:
        self.versions_dir = versions_dir

    def artifact_path(self, staging: Path, digest: str) -> Path:
        return Path(staging) / self.versions_dir / f"{digest}{ARTIFACT_SUFFIX}"

    def check(self, staging: Path, digest: str) -> Path | None:
        """检查产物缓存，命中返回产物路径，否则 None"""
        path = self.artifact_path(staging, digest)
        if not path.is_file():
            return None
        logger.info("构建缓存命中: %s", path.name)
        return path

    def list_versions(self, staging: Path) -> list[str]:
        """列出已缓存的构建哈希"""
        versions = Path(staging) / self.versions_dir
        if not versions.is_dir():
            return []
        return sorted(p.stem for p in versions.glob(f"*{ARTIFACT_SUFFIX}"))

    def invalidate(self, staging: Path, digest: str = "") -> int:
        """清除缓存，指定 digest 时只删除该版本，返回删除数量"""
        if digest:
            path = self.artifact_path(staging, digest)
            if path.is_file():
                path.unlink()
                return 1
            return 0
        removed = 0
        for d in self.list_versions(staging):
            self.artifact_path(staging, d).unlink()
            removed += 1
        if removed:
            logger.info("已清除 %d 个缓存产物: %s", removed, staging)
        return removed
