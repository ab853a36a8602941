"""CLI：打包命令（函数、层、计划、清理、服务）"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from fnpack.cli import _parse_kv_pairs, _svc
from fnpack.core.exceptions import FnPackError
from fnpack.core.models import BundleOptions, BundleResult
from fnpack.utils.yaml_io import save_yaml


def register(group: click.Group) -> None:
    group.add_command(bundle)
    group.add_command(layer)
    group.add_command(plan)
    group.add_command(clean)
    group.add_command(serve)


@contextmanager
def _errors() -> Iterator[None]:
    """把打包异常转成 click 的友好提示"""
    try:
        yield
    except FnPackError as e:
        output = getattr(e, "output", "")
        if output:
            click.echo(output, err=True)
        raise click.ClickException(f"[{e.code}] {e}") from e


def _read_assets(pairs: tuple[str, ...]) -> dict[str, str]:
    """--asset name=文件路径 → {name: 文件内容}"""
    assets: dict[str, str] = {}
    for name, path in _parse_kv_pairs(pairs).items():
        try:
            assets[name] = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise click.BadParameter(f"无法读取静态文件 {path}: {e}", param_hint="--asset") from e
    return assets


def _options(
    root_dir: str, exclude: tuple[str, ...], prefix: str,
    assets: tuple[str, ...], strip_annotations: bool,
) -> BundleOptions:
    return BundleOptions(
        root_dir=root_dir,
        exclude=list(exclude),
        prefix=prefix,
        assets=_read_assets(assets),
        strip_annotations=strip_annotations,
    )


def _echo_result(result: BundleResult, as_json: bool, extra: dict | None = None) -> None:
    if as_json:
        click.echo(json.dumps({**result.to_dict(), **(extra or {})}, ensure_ascii=False, indent=2))
        return
    state = "缓存命中" if result.cached else "新建"
    click.echo(f"打包完成 ({state}, {result.duration:.2f}s)")
    click.echo(f"  产物: {result.artifact_path}")
    click.echo(f"  哈希: {result.digest}")
    click.echo(f"  文件: {len(result.files)}  依赖: {len(result.modules)}")


_common = [
    click.option("--root-dir", default="", help="本地代码根目录（默认入口所在目录）"),
    click.option("--exclude", "-x", multiple=True, help="不写入 manifest 的分发包名（可多次）"),
    click.option("--asset", multiple=True, help="附加静态文件 name=本地文件路径（可多次）"),
    click.option("--strip-annotations", is_flag=True, help="剥离函数签名中的类型注解"),
    click.option("--json", "as_json", is_flag=True, help="以 JSON 输出结果"),
]


def _common_options(fn):  # type: ignore[no-untyped-def]
    for opt in reversed(_common):
        fn = opt(fn)
    return fn


# ---- 函数 ----

@click.command()
@click.argument("entry", type=click.Path(dir_okay=False))
@_common_options
@click.option("--prefix", default="", help="产物内的部署前缀")
@click.option("--layer", "layers", multiple=True, help="先打包的层入口，其模块不再随函数安装（可多次）")
@click.option("--env", "-e", multiple=True, help="函数环境变量 KEY=VALUE（可多次）")
def bundle(
    entry: str, root_dir: str, exclude: tuple[str, ...], asset: tuple[str, ...],
    strip_annotations: bool, as_json: bool, prefix: str,
    layers: tuple[str, ...], env: tuple[str, ...],
) -> None:
    """打包函数入口"""
    options = _options(root_dir, exclude, prefix, asset, strip_annotations)
    environment = _parse_kv_pairs(env)
    svc = _svc().bundle
    with _errors():
        built = [svc.bundle_layer(path, BundleOptions(strip_annotations=strip_annotations)) for path in layers]
        fn = svc.bundle_function(entry, options, layers=built, environment=environment)
    _echo_result(fn.bundle, as_json, {
        "environment": fn.environment,
        "secret_parameters": fn.secret_parameters,
    })
    if not as_json and fn.secret_parameters:
        click.echo(f"  密文参数: {', '.join(fn.secret_parameters)}")


# ---- 层 ----

@click.command()
@click.argument("entry", type=click.Path(dir_okay=False))
@_common_options
def layer(
    entry: str, root_dir: str, exclude: tuple[str, ...], asset: tuple[str, ...],
    strip_annotations: bool, as_json: bool,
) -> None:
    """打包层入口（部署到层导入根目录并附带执行包装脚本）"""
    options = _options(root_dir, exclude, "", asset, strip_annotations)
    with _errors():
        result = _svc().bundle.bundle_layer(entry, options)
    _echo_result(result, as_json)


# ---- 计划 ----

@click.command()
@click.argument("entry", type=click.Path(dir_okay=False))
@_common_options
@click.option("--prefix", default="", help="产物内的部署前缀")
@click.option("--output", "-o", default="", help="把计划报告写入 YAML 文件")
def plan(
    entry: str, root_dir: str, exclude: tuple[str, ...], asset: tuple[str, ...],
    strip_annotations: bool, as_json: bool, prefix: str, output: str,
) -> None:
    """只计算构建计划与构建哈希，不写暂存目录"""
    options = _options(root_dir, exclude, prefix, asset, strip_annotations)
    with _errors():
        p = _svc().bundle.plan(entry, options)
    report = {
        "entry": str(p.entry),
        "root_dir": str(p.root_dir),
        "prefix": p.prefix,
        "digest": p.digest,
        "files": [n.to_dict() for n in p.nodes],
        "modules": [m.to_dict() for m in p.modules],
        "manifest": p.manifest.to_dict(),
        "assets": [name for name, _ in p.assets],
    }
    if output:
        save_yaml(output, report)
        click.echo(f"计划报告已写入: {output}")
    if as_json:
        click.echo(json.dumps(report, ensure_ascii=False, indent=2))
    elif not output:
        click.echo(f"构建哈希: {p.digest}")
        for n in p.nodes:
            click.echo(f"  {n.deploy_path:40s} <- {n.location}")
        for name, version in sorted(p.manifest.dependencies.items()):
            click.echo(f"  依赖 {name}=={version}")


# ---- 清理 ----

@click.command()
@click.argument("entry", type=click.Path(dir_okay=False))
def clean(entry: str) -> None:
    """清除入口的缓存产物"""
    with _errors():
        removed = _svc().bundle.clean(entry)
    click.echo(f"已清除 {removed} 个缓存产物")


# ---- HTTP 服务 ----

@click.command()
@click.option("--host", default="127.0.0.1", help="监听地址")
@click.option("--port", default=8888, help="监听端口")
@click.option("--debug", is_flag=True, help="调试模式")
def serve(host: str, port: int, debug: bool) -> None:
    """启动打包 HTTP 服务"""
    from fnpack.web.app import run_server
    run_server(port=port, debug=debug, host=host)
