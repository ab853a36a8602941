"""ManifestResolver 单元测试"""

from __future__ import annotations

import pytest

from fnpack.core.exceptions import ManifestLookupError
from fnpack.core.manifest import ManifestResolver
from fnpack.core.models import ModuleRef


class TestPyproject:
    def test_project_table(self, make_tree) -> None:
        base = make_tree({
            "pyproject.toml": '[project]\nname = "shared-lib"\nversion = "2.0.1"\n',
            "shared/util.py": "X = 1\n",
        })
        ref = ManifestResolver().resolve(base / "shared" / "util.py")
        assert ref == ModuleRef(name="shared-lib", version="2.0.1")

    def test_poetry_table(self, make_tree) -> None:
        base = make_tree({
            "pyproject.toml": '[tool.poetry]\nname = "legacy"\nversion = "0.4.0"\n',
            "legacy/__init__.py": "",
        })
        ref = ManifestResolver().resolve(base / "legacy" / "__init__.py")
        assert ref.name == "legacy"
        assert ref.version == "0.4.0"

    def test_tool_only_pyproject_is_skipped(self, make_tree) -> None:
        """只有工具配置的 pyproject.toml 继续向上查找"""
        base = make_tree({
            "pyproject.toml": '[project]\nname = "outer"\nversion = "1.0.0"\n',
            "inner/pyproject.toml": "[tool.ruff]\nline-length = 100\n",
            "inner/mod.py": "",
        })
        ref = ManifestResolver().resolve(base / "inner" / "mod.py")
        assert ref.name == "outer"

    def test_missing_version_defaults(self, make_tree) -> None:
        base = make_tree({"pyproject.toml": '[project]\nname = "dyn"\n', "m.py": ""})
        assert ManifestResolver().resolve(base / "m.py").version == "0.0.0"

    def test_invalid_toml_raises(self, make_tree) -> None:
        base = make_tree({"pyproject.toml": "[project\nname=", "m.py": ""})
        with pytest.raises(ManifestLookupError, match="无法解析"):
            ManifestResolver().resolve(base / "m.py")

    def test_package_dir(self, make_tree) -> None:
        base = make_tree({
            "pyproject.toml": '[project]\nname = "shared-lib"\nversion = "1"\n',
            "shared/util.py": "",
        })
        assert ManifestResolver().package_dir(base / "shared" / "util.py") == base.resolve()


class TestDistInfo:
    def test_installed_package(self, site_dir) -> None:
        ref = ManifestResolver().resolve(site_dir / "left_pad" / "__init__.py")
        assert ref == ModuleRef(name="left-pad", version="1.3.0")

    def test_package_dir_is_top_level(self, site_dir) -> None:
        path = ManifestResolver().package_dir(site_dir / "left_pad" / "__init__.py")
        assert path == (site_dir / "left_pad").resolve()

    def test_top_level_txt_fallback(self, site_dir) -> None:
        (site_dir / "oldpkg").mkdir()
        (site_dir / "oldpkg" / "__init__.py").write_text("", encoding="utf-8")
        info = site_dir / "oldpkg-0.9.dist-info"
        info.mkdir()
        (info / "METADATA").write_text("Name: OldPkg\nVersion: 0.9\n", encoding="utf-8")
        (info / "top_level.txt").write_text("oldpkg\n", encoding="utf-8")
        ref = ManifestResolver().resolve(site_dir / "oldpkg" / "__init__.py")
        assert ref == ModuleRef(name="OldPkg", version="0.9")

    def test_single_module_distribution(self, site_dir) -> None:
        (site_dir / "six.py").write_text("", encoding="utf-8")
        info = site_dir / "six-1.16.0.dist-info"
        info.mkdir()
        (info / "METADATA").write_text("Name: six\nVersion: 1.16.0\n", encoding="utf-8")
        (info / "RECORD").write_text("six.py,,\n", encoding="utf-8")
        assert ManifestResolver().resolve(site_dir / "six.py").version == "1.16.0"


class TestNotFound:
    def test_raises_when_nothing_found(self, tmp_path) -> None:
        f = tmp_path / "alone" / "x.py"
        f.parent.mkdir()
        f.write_text("", encoding="utf-8")
        r = ManifestResolver()
        with pytest.raises(ManifestLookupError, match="找不到"):
            r.resolve(f)
        assert r.package_dir(f) is None
