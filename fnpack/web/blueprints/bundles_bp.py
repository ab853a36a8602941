"""打包 API Blueprint"""

from __future__ import annotations

from typing import Any

from flask import Blueprint, Response, request

from fnpack.core.models import BundleOptions, BundleResult, ModuleRef
from fnpack.web.responses import bad_request, ok

bundles_bp = Blueprint("bundles", __name__, url_prefix="/api/bundles")


def _bundle_svc():  # type: ignore[no-untyped-def]
    from fnpack.services.container import get_container
    return get_container().bundle


def _str_map(value: Any, field: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise TypeError(f"'{field}' 必须是字符串到字符串的映射")
    return value


def _options(body: dict[str, Any]) -> BundleOptions:
    exclude = body.get("exclude") or []
    if not isinstance(exclude, list):
        raise TypeError("'exclude' 必须是列表")
    strip = body.get("strip_annotations", False)
    if not isinstance(strip, bool):
        raise TypeError("'strip_annotations' 必须是布尔值")
    return BundleOptions(
        root_dir=str(body.get("root_dir", "")),
        exclude=[str(x) for x in exclude],
        prefix=str(body.get("prefix", "")),
        assets=_str_map(body.get("assets"), "assets"),
        strip_annotations=strip,
    )


def _layer_result(data: Any) -> BundleResult:
    """请求体中的层描述 → BundleResult，只用到其模块列表"""
    if not isinstance(data, dict):
        raise TypeError("'layers' 的每一项必须是对象")
    return BundleResult(
        artifact_path=str(data.get("artifact_path", "")),
        digest=str(data.get("digest", "")),
        modules=[ModuleRef(name=m["name"], version=m["version"]) for m in data.get("modules", [])],
    )


def _parse(body: dict[str, Any]) -> tuple[str, BundleOptions] | str:
    """解析通用字段，出错时返回错误消息"""
    entry = body.get("entry", "")
    if not entry or not isinstance(entry, str):
        return "需要提供 entry"
    try:
        return entry, _options(body)
    except TypeError as e:
        return str(e)


@bundles_bp.route("", methods=["POST"])
def create() -> tuple[Response, int] | Response:
    body = request.get_json(silent=True) or {}
    parsed = _parse(body)
    if isinstance(parsed, str):
        return bad_request(parsed)
    entry, options = parsed
    try:
        layers = [_layer_result(x) for x in body.get("layers") or []]
        environment = _str_map(body.get("environment"), "environment")
    except (TypeError, KeyError) as e:
        return bad_request(f"请求参数错误: {e}")
    fn = _bundle_svc().bundle_function(entry, options, layers=layers, environment=environment)
    return ok(fn.to_dict(), 201)


@bundles_bp.route("/layer", methods=["POST"])
def create_layer() -> tuple[Response, int] | Response:
    body = request.get_json(silent=True) or {}
    parsed = _parse(body)
    if isinstance(parsed, str):
        return bad_request(parsed)
    entry, options = parsed
    result = _bundle_svc().bundle_layer(entry, options)
    return ok(result.to_dict(), 201)


@bundles_bp.route("/plan", methods=["POST"])
def plan() -> tuple[Response, int] | Response:
    body = request.get_json(silent=True) or {}
    parsed = _parse(body)
    if isinstance(parsed, str):
        return bad_request(parsed)
    entry, options = parsed
    p = _bundle_svc().plan(entry, options)
    return ok({
        "entry": str(p.entry),
        "digest": p.digest,
        "files": [n.to_dict() for n in p.nodes],
        "modules": [m.to_dict() for m in p.modules],
        "manifest": p.manifest.to_dict(),
    })


@bundles_bp.route("", methods=["DELETE"])
def clean() -> tuple[Response, int] | Response:
    body = request.get_json(silent=True) or {}
    entry = body.get("entry") or request.args.get("entry", "")
    if not entry:
        return bad_request("需要提供 entry")
    removed = _bundle_svc().clean(entry)
    return ok({"message": f"已清除 {removed} 个缓存产物", "removed": removed})
