"""核心数据模型

所有核心数据类集中定义，消除 walker ↔ planner ↔ service 的循环依赖。
其他模块统一从此处导入 FileNode / ModuleRef / Manifest 及各阶段产物。
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

# =========================================================================
# 依赖图模型
# =========================================================================


@dataclass(frozen=True)
class FileNode:
    """依赖图中的单个本地文件：每个绝对路径在一次构建中只创建一次"""

    location: Path       # 源文件绝对路径
    deploy_path: str     # 产物内相对路径（posix 风格），如 "pkg/util.py"

    @property
    def module_name(self) -> str:
        """部署后的点分模块名，包的 __init__.py 取目录名"""
        return module_name_of(self.deploy_path)

    def to_dict(self) -> dict[str, str]:
        return {"location": str(self.location), "deploy_path": self.deploy_path}


@dataclass(frozen=True)
class ModuleRef:
    """外部依赖引用，每处导入语句产生一条，允许重复"""

    name: str
    version: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "version": self.version}


@dataclass(frozen=True)
class RewrittenFile:
    """改写后的单个文件"""

    node: FileNode
    source: str

    @property
    def data(self) -> bytes:
        return self.source.encode("utf-8")


def module_name_of(deploy_path: str) -> str:
    """部署路径 → 点分模块名: "a/b/__init__.py" → "a.b"，"a/c.py" → "a.c" """
    parts = list(PurePosixPath(deploy_path).with_suffix("").parts)
    if parts and parts[-1] == "__init__":
        parts.pop()
    return ".".join(parts)


# =========================================================================
# 包描述文件
# =========================================================================


@dataclass
class Manifest:
    """产物的包描述文件（manifest.json）"""

    name: str
    version: str = "1.0.0"
    description: str = "Lambda"
    entry_point: str = "index.py"
    module_system: str = "absolute"   # 本地导入统一改写为以产物根为锚点的绝对导入
    requires_python: str = ">=3.12"
    dependencies: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        # 顶层字段顺序固定，依赖按名称排序
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "entry_point": self.entry_point,
            "module_system": self.module_system,
            "requires_python": self.requires_python,
            "dependencies": dict(sorted(self.dependencies.items())),
        }

    def to_bytes(self) -> bytes:
        """确定性序列化：相同依赖集合总是得到逐字节相同的输出"""
        return (json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n").encode("utf-8")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Manifest:
        return cls(
            name=data.get("name", ""),
            version=data.get("version", "1.0.0"),
            description=data.get("description", ""),
            entry_point=data.get("entry_point", "index.py"),
            module_system=data.get("module_system", "absolute"),
            requires_python=data.get("requires_python", ""),
            dependencies=dict(data.get("dependencies") or {}),
        )


# =========================================================================
# 构建输入 / 计划 / 结果
# =========================================================================


@dataclass
class BundleOptions:
    """调用方提供的打包选项"""

    root_dir: str = ""                 # 为空时取入口文件所在目录
    exclude: list[str] = field(default_factory=list)   # 不写入 manifest 的分发包名
    prefix: str = ""                   # 产物内的部署前缀，如层的 "python/"
    assets: dict[str, str] = field(default_factory=dict)   # 额外静态文件 name -> content
    strip_annotations: bool = False    # 是否剥离函数签名中的类型注解


@dataclass
class BundlePlan:
    """纯规划阶段的产物：不触碰磁盘写入即可完整计算缓存键"""

    entry: Path
    root_dir: Path
    prefix: str
    files: list[RewrittenFile]
    modules: list[ModuleRef]
    manifest: Manifest
    manifest_bytes: bytes
    assets: list[tuple[str, bytes]]    # 已按名称字典序排列
    digest: str

    @property
    def nodes(self) -> list[FileNode]:
        return [f.node for f in self.files]

    @property
    def artifact_name(self) -> str:
        return f"{self.digest}.zip"


@dataclass
class BundleResult:
    """打包结果"""

    artifact_path: str
    digest: str
    files: list[FileNode] = field(default_factory=list)
    modules: list[ModuleRef] = field(default_factory=list)
    cached: bool = False      # 是否命中缓存
    duration: float = 0.0
    handler: str = "index.handler"

    def to_dict(self) -> dict[str, Any]:
        return {
            "artifact_path": self.artifact_path,
            "digest": self.digest,
            "cached": self.cached,
            "duration": round(self.duration, 3),
            "handler": self.handler,
            "files": [f.to_dict() for f in self.files],
            "modules": [m.to_dict() for m in self.modules],
        }


@dataclass
class FunctionBundle:
    """函数打包结果：附带运行环境变量与需要授权读取的密文参数"""

    bundle: BundleResult
    environment: dict[str, str] = field(default_factory=dict)
    secret_parameters: list[str] = field(default_factory=list)

    @property
    def handler(self) -> str:
        return self.bundle.handler

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.bundle.to_dict(),
            "environment": dict(self.environment),
            "secret_parameters": list(self.secret_parameters),
        }
