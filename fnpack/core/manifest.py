"""包描述文件解析器

职责:
- 从任意文件路径向上查找最近的包描述文件，返回 {name, version}
- 给出描述文件所在的包目录（布局规划器放置仓外文件时使用）

描述文件来源（同一层级按顺序检查）:
  1. 目录内的 pyproject.toml（[project] 或 [tool.poetry] 段）
  2. 父目录中拥有该路径的 *.dist-info（依据 RECORD，缺失时回退 top_level.txt）
"""

from __future__ import annotations

import logging
import tomllib
from importlib.metadata import PathDistribution
from pathlib import Path

from fnpack.core.exceptions import ManifestLookupError
from fnpack.core.models import ModuleRef

logger = logging.getLogger(__name__)

PYPROJECT = "pyproject.toml"


def _top_name(name: str) -> str:
    return name[:-3] if name.endswith(".py") else name


class ManifestResolver:
    """包描述文件解析器：同一实例内缓存目录索引与已读取的描述文件"""

    def __init__(self) -> None:
        self._owners: dict[Path, dict[str, Path]] = {}
        self._pyprojects: dict[Path, ModuleRef | None] = {}

    def resolve(self, path: str | Path) -> ModuleRef:
        """返回包含 path 的最近包描述文件的 {name, version}"""
        found = self._find(Path(path))
        if found is None:
            raise ManifestLookupError(f"找不到包描述文件: {path}")
        return found[1]

    def package_dir(self, path: str | Path) -> Path | None:
        """返回最近包描述文件所描述的包目录，找不到时返回 None"""
        found = self._find(Path(path))
        return found[0] if found else None

    def _find(self, path: Path) -> tuple[Path, ModuleRef] | None:
        current = path.resolve()
        for candidate in (current, *current.parents):
            ref = self._pyproject_ref(candidate / PYPROJECT)
            if ref is not None:
                return candidate, ref
            if candidate.parent == candidate:
                break
            dist_info = self._owners_of(candidate.parent).get(_top_name(candidate.name))
            if dist_info is not None:
                return candidate, self._dist_info_ref(dist_info)
        return None

    # ---- pyproject.toml ----

    def _pyproject_ref(self, pyproject: Path) -> ModuleRef | None:
        if pyproject in self._pyprojects:
            return self._pyprojects[pyproject]
        ref = None
        if pyproject.is_file():
            ref = self._read_pyproject(pyproject)
        self._pyprojects[pyproject] = ref
        return ref

    @staticmethod
    def _read_pyproject(pyproject: Path) -> ModuleRef | None:
        try:
            with open(pyproject, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ManifestLookupError(f"包描述文件无法解析: {pyproject}: {e}") from e
        project = data.get("project") or data.get("tool", {}).get("poetry") or {}
        name = project.get("name")
        if not name:
            # 只有工具配置的 pyproject.toml 不算包描述文件，继续向上查找
            return None
        return ModuleRef(name=str(name), version=str(project.get("version") or "0.0.0"))

    # ---- *.dist-info ----

    def _owners_of(self, directory: Path) -> dict[str, Path]:
        """目录内 dist-info 的归属索引: 顶层模块名 -> dist-info 路径"""
        if directory in self._owners:
            return self._owners[directory]
        owners: dict[str, Path] = {}
        try:
            dist_infos = sorted(directory.glob("*.dist-info"))
        except OSError:
            dist_infos = []
        for dist_info in dist_infos:
            for top in self._top_levels(dist_info):
                owners.setdefault(top, dist_info)
        self._owners[directory] = owners
        return owners

    @staticmethod
    def _top_levels(dist_info: Path) -> set[str]:
        dist = PathDistribution(dist_info)
        tops: set[str] = set()
        for f in dist.files or []:
            first = f.parts[0] if f.parts else ""
            if not first or first in ("..", "__pycache__") or first == dist_info.name:
                continue
            tops.add(_top_name(first))
        if not tops:
            text = dist.read_text("top_level.txt") or ""
            tops = {line.strip() for line in text.splitlines() if line.strip()}
        return tops

    @staticmethod
    def _dist_info_ref(dist_info: Path) -> ModuleRef:
        metadata = PathDistribution(dist_info).metadata
        name = metadata.get("Name") if metadata is not None else None
        version = metadata.get("Version") if metadata is not None else None
        if not name or not version:
            raise ManifestLookupError(f"dist-info 缺少 Name/Version: {dist_info}")
        return ModuleRef(name=str(name), version=str(version))
