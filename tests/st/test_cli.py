"""CLI 端到端测试"""

from __future__ import annotations

import json
import zipfile
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from fnpack.cli import main
from fnpack.services.container import reset_container
from fnpack.utils.logger import reset_logging

ENV = {"FNPACK_LOG_LEVEL": "ERROR"}


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    import fnpack.core.config as cfgmod
    monkeypatch.setattr(cfgmod, "_current", None)
    reset_container()
    yield
    reset_container()
    reset_logging()


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cfg_file(tmp_path) -> Path:
    p = tmp_path / "fnpack.yml"
    p.write_text(f"dist_dir: {tmp_path / 'out'}\n", encoding="utf-8")
    return p


@pytest.fixture()
def project(make_tree) -> Path:
    return make_tree({
        "handler.py": "from lib import util\n\ndef handler(event, context):\n    return util.ok()\n",
        "lib/__init__.py": "",
        "lib/util.py": "def ok():\n    return {'statusCode': 200}\n",
    })


def _invoke(runner, *args):
    return runner.invoke(main, list(args), env=ENV, catch_exceptions=False)


class TestCli:
    def test_version(self, runner) -> None:
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0

    def test_bundle_json(self, runner, cfg_file, project, tmp_path) -> None:
        result = _invoke(runner, "--config", str(cfg_file), "bundle", str(project / "handler.py"), "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["handler"] == "index.handler"
        assert data["cached"] is False
        artifact = Path(data["artifact_path"])
        assert artifact.is_relative_to(tmp_path / "out")
        names = zipfile.ZipFile(artifact).namelist()
        assert names == ["index.py", "lib/__init__.py", "lib/util.py", "manifest.json"]

    def test_bundle_twice_hits_cache(self, runner, cfg_file, project) -> None:
        args = ("--config", str(cfg_file), "bundle", str(project / "handler.py"))
        _invoke(runner, *args)
        result = _invoke(runner, *args)
        assert "缓存命中" in result.output

    def test_bundle_with_env_secret(self, runner, cfg_file, project) -> None:
        result = _invoke(
            runner, "--config", str(cfg_file), "bundle", str(project / "handler.py"),
            "-e", "TOKEN=secretstring:/prod/token", "--json",
        )
        assert json.loads(result.output)["secret_parameters"] == ["prod/token"]

    def test_plan_writes_yaml(self, runner, cfg_file, project, tmp_path) -> None:
        out = tmp_path / "plan.yml"
        result = _invoke(
            runner, "--config", str(cfg_file), "plan", str(project / "handler.py"), "-o", str(out),
        )
        assert result.exit_code == 0
        report = yaml.safe_load(out.read_text(encoding="utf-8"))
        assert len(report["digest"]) == 64
        assert [f["deploy_path"] for f in report["files"]] == [
            "index.py", "lib/__init__.py", "lib/util.py",
        ]
        assert not (tmp_path / "out").exists()

    def test_layer(self, runner, cfg_file, make_tree) -> None:
        base = make_tree({"index.py": "print('export X=1')\n"}, base="layer")
        result = _invoke(runner, "--config", str(cfg_file), "layer", str(base / "index.py"), "--json")
        names = zipfile.ZipFile(json.loads(result.output)["artifact_path"]).namelist()
        assert names == ["python/extension", "python/index.py", "python/manifest.json"]

    def test_clean(self, runner, cfg_file, project) -> None:
        _invoke(runner, "--config", str(cfg_file), "bundle", str(project / "handler.py"))
        result = _invoke(runner, "--config", str(cfg_file), "clean", str(project / "handler.py"))
        assert "已清除 1 个缓存产物" in result.output

    def test_error_maps_to_click_exception(self, runner, cfg_file, make_tree) -> None:
        base = make_tree({"handler.py": "import not_installed_anywhere_xyz\n"}, base="bad")
        result = _invoke(runner, "--config", str(cfg_file), "bundle", str(base / "handler.py"))
        assert result.exit_code == 1
        assert "UNRESOLVED_IMPORT" in result.output

    def test_missing_config_file(self, runner, tmp_path, project) -> None:
        result = runner.invoke(
            main, ["--config", str(tmp_path / "none.yml"), "plan", str(project / "handler.py")], env=ENV,
        )
        assert result.exit_code == 2

    def test_bad_env_pair(self, runner, cfg_file, project) -> None:
        result = runner.invoke(
            main, ["--config", str(cfg_file), "bundle", str(project / "handler.py"), "-e", "NOEQUALS"],
            env=ENV,
        )
        assert result.exit_code == 2
