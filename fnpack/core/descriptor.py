"""包描述文件构建

把原始的（可能重复的）外部依赖引用折叠成 name -> version 映射:
  - 同名多次出现时后写入者胜出（遍历顺序确定，因此结果确定）
  - 再剔除排除集中的包名（按规范化后的名称相等比较）
排除只影响产物 manifest 中声明/安装的依赖，不影响返回给调用方的引用列表。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from packaging.utils import canonicalize_name

from fnpack.core.models import Manifest, ModuleRef

logger = logging.getLogger(__name__)


def fold_dependencies(modules: Iterable[ModuleRef]) -> dict[str, str]:
    """折叠依赖引用，同名后写入者胜出"""
    deps: dict[str, str] = {}
    for ref in modules:
        previous = deps.get(ref.name)
        if previous is not None and previous != ref.version:
            logger.warning("依赖版本冲突: %s %s -> %s (采用后者)", ref.name, previous, ref.version)
        deps[ref.name] = ref.version
    return deps


def build_manifest(
    entry_name: str,
    modules: Iterable[ModuleRef],
    exclude: Iterable[str] = (),
    *,
    version: str = "1.0.0",
    requires_python: str = ">=3.12",
) -> Manifest:
    """构建产物包描述文件"""
    excluded = {canonicalize_name(n) for n in exclude}
    deps = {
        name: ver for name, ver in fold_dependencies(modules).items()
        if canonicalize_name(name) not in excluded
    }
    return Manifest(
        name=entry_name,
        version=version,
        requires_python=requires_python,
        dependencies=deps,
    )
