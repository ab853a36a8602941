"""导入图遍历

单线程 FIFO 队列: 入口文件最先入队；每个文件处理时交给 rewrite_file 做纯改写，
再把返回的本地目标中尚未注册的文件注册到 DiscoveryMap 并入队。

处理顺序决定构建哈希的累加顺序，因此遍历必须完全确定。
文件在其依赖方再次引用之前就已注册，循环导入只会命中已注册节点，不会重复处理。
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

from fnpack.core.layout import DiscoveryMap, LayoutPlanner
from fnpack.core.manifest import ManifestResolver
from fnpack.core.models import FileNode, ModuleRef, RewrittenFile
from fnpack.core.resolver import ModuleResolver
from fnpack.core.rewriter import rewrite_file

logger = logging.getLogger(__name__)


@dataclass
class WalkResult:
    """遍历结果，files 按处理顺序排列"""

    files: list[RewrittenFile] = field(default_factory=list)
    modules: list[ModuleRef] = field(default_factory=list)
    graph: DiscoveryMap = field(default_factory=DiscoveryMap)

    @property
    def nodes(self) -> list[FileNode]:
        return [f.node for f in self.files]


def discover_and_rewrite(
    entry: Path,
    root_dir: Path,
    *,
    resolver: ModuleResolver | None = None,
    manifests: ManifestResolver | None = None,
    strip_annotations: bool = False,
) -> WalkResult:
    """从入口文件出发遍历本地导入图，改写导入并收集外部依赖"""
    entry = Path(entry).resolve()
    root_dir = Path(root_dir).resolve()
    manifests = manifests or ManifestResolver()
    resolver = resolver or ModuleResolver(local_roots=[root_dir])
    planner = LayoutPlanner(root_dir, entry, manifests)

    result = WalkResult()
    queue: deque[FileNode] = deque([result.graph.register(planner.node_for(entry))])
    while queue:
        node = queue.popleft()
        rewrite = rewrite_file(
            node, planner, resolver, manifests, strip_annotations=strip_annotations,
        )
        result.files.append(RewrittenFile(node=node, source=rewrite.source))
        result.modules.extend(rewrite.modules)
        for location in rewrite.targets:
            if location in result.graph:
                continue
            queue.append(result.graph.register(planner.node_for(location)))

    logger.info(
        "导入图遍历完成: %s (本地文件 %d 个, 外部引用 %d 处)",
        entry.name, len(result.files), len(result.modules),
    )
    return result
