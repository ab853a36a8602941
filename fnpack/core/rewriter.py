"""单文件导入改写

对一个源文件做一次纯变换，返回 FileRewrite(source, targets, modules):
- source: 改写后的源码（经语法树重新生成，注释被丢弃）
- targets: 本文件引用到的本地文件（按出现顺序，可能包含已发现的文件）
- modules: 本文件引用到的外部依赖（每处导入一条，不去重）

改写规则:
  - 相对导入改写为以产物根为锚点的绝对导入: from ..shared import db → from parent.shared import db
  - 产物根上的 from . import a 改写为 import a，a 为入口时改写为 import index as a
  - 根目录内的绝对本地导入与镜像布局一致，保持原样（入口文件被改名时除外）
  - if TYPE_CHECKING: 块中的导入只用于类型检查，不发现也不收集
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from pathlib import Path

from fnpack.core.exceptions import ParseError, UnresolvedImportError
from fnpack.core.layout import LayoutPlanner
from fnpack.core.manifest import ManifestResolver
from fnpack.core.models import FileNode, ModuleRef
from fnpack.core.resolver import BUILTIN, EXTERNAL, ModuleResolver, Resolution


@dataclass
class FileRewrite:
    """单文件改写结果"""

    source: str
    targets: list[Path] = field(default_factory=list)
    modules: list[ModuleRef] = field(default_factory=list)


def rewrite_file(
    node: FileNode,
    planner: LayoutPlanner,
    resolver: ModuleResolver,
    manifests: ManifestResolver,
    *,
    strip_annotations: bool = False,
) -> FileRewrite:
    """解析并改写单个文件，读取失败或语法错误抛 ParseError"""
    try:
        data = node.location.read_bytes()
    except OSError as e:
        raise ParseError(f"无法读取源文件 {node.location}: {e}", path=str(node.location)) from e
    try:
        # 按字节解析，BOM 与 coding 声明由解析器处理
        tree = ast.parse(data, filename=str(node.location))
    except SyntaxError as e:
        raise ParseError(
            f"语法错误 {node.location}:{e.lineno}: {e.msg}", path=str(node.location),
        ) from e
    except ValueError as e:
        raise ParseError(f"无法解码源文件 {node.location}: {e}", path=str(node.location)) from e

    visitor = _ImportRewriter(node, planner, resolver, manifests, strip_annotations)
    tree = ast.fix_missing_locations(visitor.visit(tree))
    source = ast.unparse(tree)
    if source:
        source += "\n"
    return FileRewrite(source=source, targets=visitor.targets, modules=visitor.modules)


def _is_type_checking(test: ast.expr) -> bool:
    if isinstance(test, ast.Name):
        return test.id == "TYPE_CHECKING"
    if isinstance(test, ast.Attribute):
        return test.attr == "TYPE_CHECKING"
    return False


def _strip_signature(func: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
    func.returns = None
    func.type_comment = None
    args = func.args
    for arg in (*args.posonlyargs, *args.args, *args.kwonlyargs, args.vararg, args.kwarg):
        if arg is not None:
            arg.annotation = None
            arg.type_comment = None


class _ImportRewriter(ast.NodeTransformer):

    def __init__(
        self,
        node: FileNode,
        planner: LayoutPlanner,
        resolver: ModuleResolver,
        manifests: ManifestResolver,
        strip_annotations: bool,
    ) -> None:
        self.node = node
        self.base_dir = node.location.parent
        self.planner = planner
        self.resolver = resolver
        self.manifests = manifests
        self.strip_annotations = strip_annotations
        self.targets: list[Path] = []
        self.modules: list[ModuleRef] = []

    # ---- 类型语法 ----

    def visit_If(self, node: ast.If) -> ast.AST:
        if not _is_type_checking(node.test):
            return self.generic_visit(node)
        body = node.body
        node.body = []
        self.generic_visit(node)
        node.body = body
        return node

    def visit_FunctionDef(self, node: ast.FunctionDef) -> ast.AST:
        if self.strip_annotations:
            _strip_signature(node)
        return self.generic_visit(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> ast.AST:
        if self.strip_annotations:
            _strip_signature(node)
        return self.generic_visit(node)

    # ---- 导入语句 ----

    def visit_Import(self, node: ast.Import) -> ast.AST:
        names: list[ast.alias] = []
        for alias in node.names:
            res = self._resolve(alias.name, 0)
            if res.kind == EXTERNAL:
                self._collect(res)
            elif res.kind != BUILTIN:
                self._discover(res)
                alias = self._rename_local_alias(alias, res)
            names.append(alias)
        node.names = names
        return node

    def visit_ImportFrom(self, node: ast.ImportFrom) -> ast.AST:
        res = self._resolve(node.module, node.level)
        if res.kind == EXTERNAL:
            self._collect(res)
            return node
        if res.kind == BUILTIN:
            return node

        self._discover(res)
        if res.is_package:
            self._discover_submodules(node, res)

        if res.path is not None:
            new_module = self.planner.module_name(res.path)
        else:
            new_module = self.planner.package_module_name(res.package_dir)

        if not new_module:
            # 目标是产物根本身，只能以顶层模块形式导入
            if any(a.name == "*" for a in node.names):
                raise UnresolvedImportError(
                    f"产物根不支持 from . import *: {self.node.location}",
                    specifier=".", importer=str(self.node.location),
                )
            names = [self._rename_root_alias(a, res) for a in node.names]
            return ast.copy_location(ast.Import(names=names), node)
        if node.level == 0 and new_module == node.module:
            return node
        return ast.copy_location(
            ast.ImportFrom(module=new_module, names=node.names, level=0), node,
        )

    # ---- 内部辅助 ----

    def _resolve(self, module: str | None, level: int) -> Resolution:
        try:
            return self.resolver.resolve(module, level, self.base_dir)
        except UnresolvedImportError as e:
            raise UnresolvedImportError(
                f"{e} (导入方: {self.node.location})",
                specifier=e.specifier, importer=str(self.node.location),
            ) from e

    def _collect(self, res: Resolution) -> None:
        self.modules.append(self.manifests.resolve(res.path))

    def _discover(self, res: Resolution) -> None:
        for init in res.parents:
            self.targets.append(init.resolve())
        if res.path is not None:
            self.targets.append(res.path.resolve())

    def _discover_submodules(self, node: ast.ImportFrom, res: Resolution) -> None:
        for alias in node.names:
            if alias.name == "*":
                continue
            sub = self.resolver.submodule(res.package_dir, alias.name)
            if sub is not None:
                self.targets.append(sub.resolve())
            elif res.path is None:
                raise UnresolvedImportError(
                    f"命名空间包 {res.package_dir} 中不存在子模块 {alias.name} "
                    f"(导入方: {self.node.location})",
                    specifier=alias.name, importer=str(self.node.location),
                )

    def _rename_local_alias(self, alias: ast.alias, res: Resolution) -> ast.alias:
        if res.path is not None:
            deployed = self.planner.module_name(res.path)
        else:
            deployed = self.planner.package_module_name(res.package_dir)
        if deployed == alias.name:
            return alias
        if alias.asname or "." not in alias.name:
            return ast.alias(name=deployed, asname=alias.asname or alias.name)
        raise UnresolvedImportError(
            f"无法保持绑定名的本地导入: import {alias.name} 部署为 {deployed} "
            f"(导入方: {self.node.location})",
            specifier=alias.name, importer=str(self.node.location),
        )

    def _rename_root_alias(self, alias: ast.alias, res: Resolution) -> ast.alias:
        """产物根上 from . import name 中的 name 必须是根目录下的模块"""
        sub = self.resolver.submodule(res.package_dir, alias.name)
        if sub is not None:
            deployed = self.planner.module_name(sub)
        elif (res.package_dir / alias.name).is_dir():
            deployed = self.planner.package_module_name(res.package_dir / alias.name)
        else:
            raise UnresolvedImportError(
                f"产物根下不存在模块 {alias.name} (导入方: {self.node.location})",
                specifier=alias.name, importer=str(self.node.location),
            )
        if deployed == alias.name:
            return alias
        return ast.alias(name=deployed, asname=alias.asname or alias.name)
