"""部署布局规划

职责:
- 为每个发现的源文件计算产物内唯一的部署路径
- DiscoveryMap: 单次构建独占的 绝对路径 -> FileNode 映射，并检测路径冲突

路径规则:
  - 入口文件固定部署为 index.py（处理函数约定 index.handler）
  - 根目录内的文件镜像其相对路径
  - 根目录外的文件放入 parent/ 命名空间，路径相对于最近包目录的上一级，
    保证改写后的导入不会出现越出产物根的片段
  - 不是合法标识符的路径片段改写为合法标识符，保证部署后可导入
"""

from __future__ import annotations

import keyword
import logging
import os
import re
from collections.abc import Iterator
from pathlib import Path

from fnpack.core.exceptions import LayoutCollisionError
from fnpack.core.manifest import ManifestResolver
from fnpack.core.models import FileNode, module_name_of

logger = logging.getLogger(__name__)

PARENT_NAMESPACE = "parent"
ENTRY_DEPLOY_PATH = "index.py"
SOURCE_SUFFIX = ".py"

_NON_IDENT_RE = re.compile(r"\W")


def module_segment(part: str) -> str:
    """路径片段 → 合法 Python 标识符"""
    seg = _NON_IDENT_RE.sub("_", part)
    if not seg or seg[0].isdigit() or keyword.iskeyword(seg):
        seg = "_" + seg
    return seg


def deploy_path_for(location: Path, root_dir: Path, package_dir: Path | None) -> str:
    """计算部署路径（纯函数）

    参数:
        location: 源文件绝对路径
        root_dir: 构建根目录
        package_dir: 最近包描述文件所在的包目录，仅对根目录外的文件生效；
            为 None 时退回到根目录与文件的公共祖先
    """
    if location.is_relative_to(root_dir):
        parts: tuple[str, ...] = location.relative_to(root_dir).parts
    else:
        if package_dir is not None and location.is_relative_to(package_dir.parent):
            base = package_dir.parent
        else:
            base = Path(os.path.commonpath([root_dir, location]))
        parts = (PARENT_NAMESPACE, *location.relative_to(base).parts)

    dirs = [module_segment(p) for p in parts[:-1]]
    stem = module_segment(Path(parts[-1]).stem)
    return "/".join([*dirs, stem + SOURCE_SUFFIX])


class LayoutPlanner:
    """布局规划器：绑定一次构建的根目录、入口与描述文件解析器"""

    def __init__(self, root_dir: Path, entry: Path, manifests: ManifestResolver) -> None:
        self.root_dir = Path(root_dir).resolve()
        self.entry = Path(entry).resolve()
        self.manifests = manifests

    def deploy_path(self, location: Path) -> str:
        location = Path(location).resolve()
        if location == self.entry:
            return ENTRY_DEPLOY_PATH
        package_dir = None
        if not location.is_relative_to(self.root_dir):
            package_dir = self.manifests.package_dir(location)
        return deploy_path_for(location, self.root_dir, package_dir)

    def node_for(self, location: Path) -> FileNode:
        location = Path(location).resolve()
        return FileNode(location=location, deploy_path=self.deploy_path(location))

    def module_name(self, location: Path) -> str:
        return module_name_of(self.deploy_path(location))

    def package_module_name(self, package_dir: Path) -> str:
        """包目录部署后的点分名，构建根目录本身为空串"""
        return module_name_of(self.deploy_path(Path(package_dir) / "__init__.py"))


class DiscoveryMap:
    """单次构建独占的发现表，按注册顺序迭代"""

    def __init__(self) -> None:
        self._nodes: dict[Path, FileNode] = {}
        self._owners: dict[str, Path] = {}

    def __contains__(self, location: object) -> bool:
        return location in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[FileNode]:
        return iter(self._nodes.values())

    def get(self, location: Path) -> FileNode | None:
        return self._nodes.get(location)

    def register(self, node: FileNode) -> FileNode:
        """注册节点；已注册的路径直接返回原节点，部署路径冲突时报错"""
        existing = self._nodes.get(node.location)
        if existing is not None:
            return existing
        owner = self._owners.get(node.deploy_path)
        if owner is not None:
            raise LayoutCollisionError(
                f"部署路径冲突: {node.deploy_path} 同时对应 {owner} 与 {node.location}"
            )
        self._nodes[node.location] = node
        self._owners[node.deploy_path] = node.location
        logger.debug("发现文件: %s -> %s", node.location, node.deploy_path)
        return node
