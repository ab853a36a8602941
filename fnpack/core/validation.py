"""调用方输入校验

所有校验失败抛 ValidationError，不做任何静默修正。
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from pathlib import Path, PurePosixPath

from packaging.utils import InvalidName, canonicalize_name

from fnpack.core.exceptions import ValidationError

MANIFEST_FILE = "manifest.json"
SECRET_SCHEME = "secretstring:/"
MIN_SECRET_PATH_LENGTH = 4

_PREFIX_RE = re.compile(r"^[A-Za-z0-9_\-./]*$")
_SECRET_PATH_RE = re.compile(r"^[A-Za-z0-9_/]+$")


def validate_entry(entry: str | Path) -> Path:
    """入口必须是存在的 .py 文件"""
    if not str(entry).strip():
        raise ValidationError("入口文件 entry 为必填")
    p = Path(entry)
    if p.suffix != ".py":
        raise ValidationError(f"入口文件必须是 .py 源文件: {entry}")
    if not p.is_file():
        raise ValidationError(f"入口文件不存在: {entry}")
    return p.resolve()


def validate_prefix(prefix: str) -> str:
    """部署前缀: 相对路径、不含 ..、仅安全字符；返回去掉首尾斜杠的形式"""
    if not _PREFIX_RE.match(prefix):
        raise ValidationError(f"部署前缀包含非法字符: {prefix}")
    if prefix.startswith("/"):
        raise ValidationError(f"部署前缀必须是相对路径: {prefix}")
    parts = [p for p in PurePosixPath(prefix).parts if p not in ("", ".")]
    if ".." in parts:
        raise ValidationError(f"部署前缀不能包含 '..': {prefix}")
    return "/".join(parts)


def validate_package_names(names: Iterable[str]) -> list[str]:
    """排除集中的分发包名必须合法"""
    result: list[str] = []
    bad: list[str] = []
    for name in names:
        if not isinstance(name, str):
            bad.append(str(name))
            continue
        try:
            canonicalize_name(name, validate=True)
        except InvalidName:
            bad.append(name)
        else:
            result.append(name)
    if bad:
        raise ValidationError(f"非法的包名: {', '.join(bad)}", details=bad)
    return result


def validate_asset_name(name: str) -> str:
    """静态文件名: 相对、无目录穿越、不覆盖 manifest.json；返回规范化形式"""
    if not name or name.startswith("/") or "\\" in name:
        raise ValidationError(f"非法的静态文件名: {name!r}")
    parts = PurePosixPath(name).parts
    if not parts or ".." in parts:
        raise ValidationError(f"静态文件名不能包含相对片段: {name}")
    normalized = "/".join(parts)
    if normalized == MANIFEST_FILE:
        raise ValidationError(f"静态文件不能覆盖 {MANIFEST_FILE}")
    return normalized


def secret_parameters(environment: Mapping[str, str]) -> list[str]:
    """提取 secretstring:/ 形式的环境变量对应的参数路径

    路径只允许字母、数字、下划线和斜杠，且长度不少于 MIN_SECRET_PATH_LENGTH。
    """
    paths: list[str] = []
    for name, value in sorted(environment.items()):
        if not isinstance(value, str) or not value.startswith(SECRET_SCHEME):
            continue
        path = value[len(SECRET_SCHEME):]
        if not _SECRET_PATH_RE.match(path):
            raise ValidationError(f"密文参数路径包含非法字符: {name}={value}")
        if len(path) < MIN_SECRET_PATH_LENGTH:
            raise ValidationError(f"密文参数路径过短: {name}={value}")
        paths.append(path)
    return paths
