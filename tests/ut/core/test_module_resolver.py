"""ModuleResolver 单元测试"""

from __future__ import annotations

import pytest

from fnpack.core.exceptions import UnresolvedImportError
from fnpack.core.resolver import BUILTIN, EXTERNAL, LOCAL, ModuleResolver, format_specifier


@pytest.fixture()
def project(make_tree):
    return make_tree({
        "handler.py": "",
        "lib/__init__.py": "",
        "lib/db.py": "",
        "lib/sub/__init__.py": "",
        "lib/sub/deep.py": "",
        "nsp/mod.py": "",
    }).resolve()


@pytest.fixture()
def resolver(project, site_dir):
    return ModuleResolver(search_paths=[str(site_dir)], local_roots=[project])


class TestClassification:
    @pytest.mark.parametrize("name", ["os", "json", "os.path", "__future__", "sys"])
    def test_builtin(self, resolver, project, name) -> None:
        res = resolver.resolve(name, 0, project)
        assert res.kind == BUILTIN

    def test_platform_modules_are_builtin(self, project, site_dir) -> None:
        r = ModuleResolver(search_paths=[str(site_dir)], platform_modules=["awslambdaric"])
        assert r.resolve("awslambdaric", 0, project).kind == BUILTIN

    def test_external(self, resolver, project, site_dir) -> None:
        res = resolver.resolve("left_pad", 0, project)
        assert res.kind == EXTERNAL
        assert res.name == "left_pad"
        assert res.path == site_dir / "left_pad" / "__init__.py"

    def test_external_submodule_uses_top_level(self, resolver, project) -> None:
        assert resolver.resolve("left_pad.core", 0, project).name == "left_pad"

    def test_uninstalled_external_raises(self, resolver, project) -> None:
        with pytest.raises(UnresolvedImportError, match="未安装"):
            resolver.resolve("no_such_pkg", 0, project)


class TestLocal:
    def test_absolute_module_under_root(self, resolver, project) -> None:
        res = resolver.resolve("lib.db", 0, project)
        assert res.kind == LOCAL
        assert res.path == project / "lib" / "db.py"
        assert res.parents == (project / "lib" / "__init__.py",)

    def test_package_target(self, resolver, project) -> None:
        res = resolver.resolve("lib.sub", 0, project)
        assert res.is_package
        assert res.path == project / "lib" / "sub" / "__init__.py"

    def test_relative_current_package(self, resolver, project) -> None:
        res = resolver.resolve("deep", 1, project / "lib" / "sub")
        assert res.path == project / "lib" / "sub" / "deep.py"

    def test_relative_parent(self, resolver, project) -> None:
        res = resolver.resolve("db", 2, project / "lib" / "sub")
        assert res.path == project / "lib" / "db.py"

    def test_bare_relative_is_package(self, resolver, project) -> None:
        res = resolver.resolve(None, 1, project / "lib")
        assert res.package_dir == project / "lib"
        assert res.path == project / "lib" / "__init__.py"

    def test_namespace_package(self, resolver, project) -> None:
        res = resolver.resolve("nsp", 0, project)
        assert res.kind == LOCAL
        assert res.path is None
        assert res.package_dir == project / "nsp"

    def test_missing_local_raises(self, resolver, project) -> None:
        with pytest.raises(UnresolvedImportError, match="无法解析本地导入"):
            resolver.resolve("lib.missing", 0, project)

    def test_submodule_lookup(self, resolver, project) -> None:
        assert resolver.submodule(project / "lib", "db") == project / "lib" / "db.py"
        assert resolver.submodule(project / "lib", "sub") == project / "lib" / "sub" / "__init__.py"
        assert resolver.submodule(project / "lib", "VALUE") is None


def test_format_specifier() -> None:
    assert format_specifier("a.b", 2) == "..a.b"
    assert format_specifier(None, 1) == "."
    assert format_specifier("x", 0) == "x"
