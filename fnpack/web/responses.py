"""Web 层统一响应辅助函数"""

from __future__ import annotations

from flask import Response, jsonify

from fnpack.core.exceptions import FnPackError


def ok(data: dict, status: int = 200) -> tuple[Response, int] | Response:
    """成功响应"""
    if status == 200:
        return jsonify(data)
    return jsonify(data), status


def bad_request(message: str) -> tuple[Response, int]:
    """请求参数错误"""
    return jsonify(error=message), 400


def error_response(exc: FnPackError, status: int = 400) -> tuple[Response, int]:
    """打包异常 → JSON，带错误码和附加诊断信息"""
    body: dict = {"error": str(exc), "code": exc.code}
    for attr in ("details", "output", "path", "specifier", "importer"):
        value = getattr(exc, attr, None)
        if value:
            body[attr] = value
    return jsonify(body), status
