"""构建计划（纯规划阶段）单元测试"""

from __future__ import annotations

import shutil

import pytest

from fnpack.core.config import Config
from fnpack.core.exceptions import ValidationError
from fnpack.core.models import BundleOptions, ModuleRef
from fnpack.core.planner import BuildHasher, staged_name, target_id


@pytest.fixture()
def project(make_tree):
    return make_tree({
        "handler.py": "import left_pad\nfrom lib import a\n\ndef handler(event, context):\n    return a.go()\n",
        "lib/__init__.py": "",
        "lib/a.py": "from . import b\n\ndef go():\n    return b.X\n",
        "lib/b.py": "X = 1\n",
    })


class TestPlan:
    def test_scenario_external_dependency(self, plan, project) -> None:
        p = plan(project / "handler.py")
        assert p.manifest.dependencies == {"left-pad": "1.3.0"}
        assert p.modules == [ModuleRef("left-pad", "1.3.0")]

    def test_scenario_excluded_dependency(self, plan, project) -> None:
        p = plan(project / "handler.py", BundleOptions(exclude=["left-pad"]))
        assert p.manifest.dependencies == {}
        assert ModuleRef("left-pad", "1.3.0") in p.modules

    def test_files_and_manifest_bytes(self, plan, project) -> None:
        p = plan(project / "handler.py")
        assert [n.deploy_path for n in p.nodes] == [
            "index.py", "lib/__init__.py", "lib/a.py", "lib/b.py",
        ]
        assert p.manifest.name == "handler"
        assert p.manifest_bytes == p.manifest.to_bytes()
        assert p.artifact_name == f"{p.digest}.zip"

    def test_root_dir_option(self, plan, make_tree) -> None:
        base = make_tree({
            "svc/handlers/api.py": "from svc.common import util\n",
            "svc/__init__.py": "",
            "svc/common/__init__.py": "",
            "svc/common/util.py": "",
        }, base="mono")
        p = plan(base / "svc" / "handlers" / "api.py", BundleOptions(root_dir=str(base)))
        assert p.root_dir == base.resolve()
        assert "svc/common/util.py" in [n.deploy_path for n in p.nodes]

    def test_entry_outside_root_rejected(self, plan, project, tmp_path) -> None:
        other = tmp_path / "elsewhere"
        other.mkdir()
        with pytest.raises(ValidationError, match="不在根目录"):
            plan(project / "handler.py", BundleOptions(root_dir=str(other)))

    def test_asset_clash_with_source(self, plan, project) -> None:
        with pytest.raises(ValidationError, match="冲突"):
            plan(project / "handler.py", BundleOptions(assets={"lib/a.py": "x"}))


class TestDigest:
    def test_deterministic(self, plan, project) -> None:
        assert plan(project / "handler.py").digest == plan(project / "handler.py").digest

    def test_same_tree_elsewhere_same_digest(self, plan, project, tmp_path) -> None:
        copy = tmp_path / "copy"
        shutil.copytree(project, copy)
        assert plan(copy / "handler.py").digest == plan(project / "handler.py").digest

    def test_comment_change_keeps_digest(self, plan, project) -> None:
        before = plan(project / "handler.py").digest
        b = project / "lib" / "b.py"
        b.write_text("# 只改注释\nX = 1\n", encoding="utf-8")
        assert plan(project / "handler.py").digest == before

    def test_code_change_changes_digest(self, plan, project) -> None:
        before = plan(project / "handler.py").digest
        (project / "lib" / "b.py").write_text("X = 2\n", encoding="utf-8")
        assert plan(project / "handler.py").digest != before

    def test_exclusion_changes_digest(self, plan, project) -> None:
        a = plan(project / "handler.py").digest
        b = plan(project / "handler.py", BundleOptions(exclude=["left-pad"])).digest
        assert a != b

    def test_prefix_changes_digest(self, plan, project) -> None:
        a = plan(project / "handler.py").digest
        b = plan(project / "handler.py", BundleOptions(prefix="python")).digest
        assert a != b

    def test_asset_changes_digest(self, plan, project) -> None:
        a = plan(project / "handler.py", BundleOptions(assets={"extra.txt": "1"})).digest
        b = plan(project / "handler.py", BundleOptions(assets={"extra.txt": "2"})).digest
        assert a != b

    def test_target_changes_digest(self, plan, project) -> None:
        a = plan(project / "handler.py").digest
        b = plan(project / "handler.py", cfg=Config(arch="x86_64")).digest
        assert a != b

    def test_unchanged_by_unrelated_file(self, plan, project) -> None:
        before = plan(project / "handler.py").digest
        (project / "unused.py").write_text("import nothing_here\n", encoding="utf-8")
        assert plan(project / "handler.py").digest == before


class TestHelpers:
    def test_hasher_is_unambiguous(self) -> None:
        a = BuildHasher()
        a.update("ab", b"c")
        b = BuildHasher()
        b.update("a", b"bc")
        assert a.hexdigest() != b.hexdigest()

    def test_staged_name(self) -> None:
        assert staged_name("", "index.py") == "index.py"
        assert staged_name("python", "index.py") == "python/index.py"

    def test_target_id(self) -> None:
        assert target_id(Config()) == "cp3.12-manylinux2014_aarch64"
