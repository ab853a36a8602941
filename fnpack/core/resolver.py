"""模块解析器

职责:
- 将一条导入语句（模块名 + 相对层级）归类为 本地文件 / 外部包 / 平台内置
- 本地导入: 解析到绝对文件路径，并给出沿途执行的包 __init__.py
- 外部导入: 定位已安装位置（不做版本求解，信任本地已安装版本）

本地导入的判定:
  - 相对导入（from . / from .. 开头）
  - 顶层名在构建根目录下存在同名模块或包的绝对导入
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from importlib.machinery import PathFinder
from pathlib import Path

from fnpack.core.exceptions import UnresolvedImportError

logger = logging.getLogger(__name__)

LOCAL = "local"
EXTERNAL = "external"
BUILTIN = "builtin"

BUILTIN_MODULES = frozenset(sys.stdlib_module_names) | frozenset(sys.builtin_module_names) | {
    "__future__",
    "__main__",
}


@dataclass(frozen=True)
class Resolution:
    """单条导入的解析结果"""

    kind: str                          # local | external | builtin
    name: str = ""                     # 顶层模块名
    path: Path | None = None           # 模块自身文件（x.py 或 pkg/__init__.py），命名空间包为 None
    package_dir: Path | None = None    # 目标为包（含命名空间包）时的包目录
    parents: tuple[Path, ...] = ()     # 点分路径上被连带执行的中间 __init__.py

    @property
    def is_package(self) -> bool:
        return self.package_dir is not None


def format_specifier(module: str | None, level: int) -> str:
    return "." * level + (module or "")


class ModuleResolver:
    """模块解析器：本地查找基于文件系统，外部查找基于搜索路径"""

    def __init__(
        self,
        search_paths: list[str] | None = None,
        local_roots: list[Path] | None = None,
        platform_modules: list[str] | None = None,
    ) -> None:
        self.search_paths = search_paths
        self.local_roots = [Path(r).resolve() for r in (local_roots or [])]
        self.builtins = BUILTIN_MODULES | frozenset(platform_modules or [])

    def resolve(self, module: str | None, level: int, base_dir: Path) -> Resolution:
        """解析导入说明符

        参数:
            module: 点分模块名，from . import x 形式为 None
            level: 相对层级，绝对导入为 0
            base_dir: 导入方文件所在目录
        """
        if level > 0:
            anchor = Path(base_dir).resolve()
            for _ in range(level - 1):
                if anchor.parent == anchor:
                    raise UnresolvedImportError(
                        f"相对导入越过文件系统根: {format_specifier(module, level)} ({base_dir})",
                        specifier=format_specifier(module, level),
                    )
                anchor = anchor.parent
            return self._resolve_local(anchor, module, format_specifier(module, level))

        if not module:
            raise UnresolvedImportError("空的绝对导入")
        top = module.split(".")[0]
        if top in self.builtins:
            return Resolution(kind=BUILTIN, name=top)
        for root in self.local_roots:
            if (root / f"{top}.py").is_file() or (root / top).is_dir():
                return self._resolve_local(root, module, module)
        return self._resolve_external(top)

    def submodule(self, package_dir: Path, name: str) -> Path | None:
        """from <package> import name 中 name 对应的子模块文件，不是子模块时返回 None"""
        module_file = package_dir / f"{name}.py"
        if module_file.is_file():
            return module_file
        init = package_dir / name / "__init__.py"
        if init.is_file():
            return init
        return None

    def _resolve_local(self, anchor: Path, module: str | None, specifier: str) -> Resolution:
        parts = module.split(".") if module else []
        parents: list[Path] = []
        current = anchor
        for part in parts[:-1]:
            current = current / part
            init = current / "__init__.py"
            if init.is_file():
                parents.append(init)
            elif not current.is_dir():
                raise UnresolvedImportError(f"无法解析本地导入: {specifier}", specifier=specifier)

        if not parts:
            init = anchor / "__init__.py"
            return Resolution(
                kind=LOCAL, path=init if init.is_file() else None,
                package_dir=anchor, parents=tuple(parents),
            )

        target = current / parts[-1]
        module_file = target.with_name(f"{parts[-1]}.py")
        if module_file.is_file():
            return Resolution(kind=LOCAL, path=module_file, parents=tuple(parents))
        init = target / "__init__.py"
        if init.is_file():
            return Resolution(kind=LOCAL, path=init, package_dir=target, parents=tuple(parents))
        if target.is_dir():
            return Resolution(kind=LOCAL, package_dir=target, parents=tuple(parents))
        raise UnresolvedImportError(f"无法解析本地导入: {specifier} ({anchor})", specifier=specifier)

    def _resolve_external(self, top: str) -> Resolution:
        spec = PathFinder.find_spec(top, self.search_paths)
        if spec is None:
            raise UnresolvedImportError(f"外部模块未安装: {top}", specifier=top)
        if spec.origin and spec.origin not in ("namespace", "built-in", "frozen"):
            location = Path(spec.origin)
        elif spec.submodule_search_locations:
            location = Path(list(spec.submodule_search_locations)[0])
        else:
            raise UnresolvedImportError(f"外部模块无法定位安装位置: {top}", specifier=top)
        logger.debug("外部模块 %s -> %s", top, location)
        return Resolution(kind=EXTERNAL, name=top, path=location)
