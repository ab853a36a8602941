"""公共测试夹具: 伪造的 site-packages、项目目录树、安装器/归档器替身"""

from __future__ import annotations

import importlib
from pathlib import Path

import pytest

from fnpack.core.config import Config
from fnpack.core.manifest import ManifestResolver
from fnpack.core.models import BundleOptions, BundlePlan
from fnpack.core.planner import plan_bundle


def _write(base: Path, files: dict[str, str]) -> Path:
    for rel, content in files.items():
        p = base / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
    return base


def _add_dist(site: Path, name: str, version: str, top: str) -> None:
    """在 site 目录中伪造一个已安装的分发包"""
    pkg = site / top
    pkg.mkdir(parents=True, exist_ok=True)
    (pkg / "__init__.py").write_text(f'VERSION = "{version}"\n', encoding="utf-8")
    dist_info = site / f"{name.replace('-', '_')}-{version}.dist-info"
    dist_info.mkdir(exist_ok=True)
    (dist_info / "METADATA").write_text(
        f"Metadata-Version: 2.1\nName: {name}\nVersion: {version}\n", encoding="utf-8",
    )
    (dist_info / "RECORD").write_text(
        f"{top}/__init__.py,,\n{dist_info.name}/METADATA,,\n{dist_info.name}/RECORD,,\n",
        encoding="utf-8",
    )
    importlib.invalidate_caches()


@pytest.fixture()
def site_dir(tmp_path: Path) -> Path:
    """伪造的 site-packages: left-pad 1.3.0 (left_pad) 与 boto3 1.34.0 (boto3)"""
    site = tmp_path / "site"
    _add_dist(site, "left-pad", "1.3.0", "left_pad")
    _add_dist(site, "boto3", "1.34.0", "boto3")
    return site


@pytest.fixture()
def add_dist(site_dir: Path):
    def _add(name: str, version: str, top: str) -> None:
        _add_dist(site_dir, name, version, top)
    return _add


@pytest.fixture()
def make_tree(tmp_path: Path):
    """按 {相对路径: 内容} 写出目录树，返回基准目录"""
    def _make(files: dict[str, str], base: str = "project") -> Path:
        return _write(tmp_path / base, files)
    return _make


@pytest.fixture()
def config() -> Config:
    return Config()


@pytest.fixture()
def plan(site_dir: Path, config: Config):
    """在伪造 site-packages 上计算构建计划"""
    def _plan(entry: Path, options: BundleOptions | None = None, cfg: Config | None = None) -> BundlePlan:
        return plan_bundle(
            entry, options, cfg or config,
            search_paths=[str(site_dir)], manifests=ManifestResolver(),
        )
    return _plan


class FakeInstaller:
    """记录调用的安装器替身"""

    def __init__(self) -> None:
        self.calls: list[tuple[Path, str, str]] = []

    def install(self, directory: Path, *, platform: str, arch: str) -> None:
        self.calls.append((Path(directory), platform, arch))


class FakeArchiver:
    """记录调用并写出占位产物的归档器替身"""

    def __init__(self) -> None:
        self.calls: list[tuple[Path, Path]] = []

    def archive(self, directory: Path, destination: Path, *, exclude=None) -> Path:
        self.calls.append((Path(directory), Path(destination)))
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"PK")
        return destination


@pytest.fixture()
def installer() -> FakeInstaller:
    return FakeInstaller()


@pytest.fixture()
def archiver() -> FakeArchiver:
    return FakeArchiver()
