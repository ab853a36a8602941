"""打包 HTTP 服务（基于 Flask）

提供：函数打包、层打包、构建计划预览、缓存清理。

启动方式: fnpack serve --port 8888
生产部署: gunicorn --config deploy/gunicorn.conf.py fnpack.web.app:app
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from fnpack import __version__
from fnpack.core.exceptions import FnPackError
from fnpack.web.blueprints.bundles_bp import bundles_bp
from fnpack.web.responses import error_response

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16 MB

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH
app.register_blueprint(bundles_bp)


# =========================================================================
# 全局 JSON 错误处理
# =========================================================================


@app.errorhandler(FnPackError)
def handle_fnpack_error(exc: FnPackError):
    """打包异常统一返回 400 JSON"""
    logger.warning("请求失败 [%s]: %s", exc.code, exc)
    return error_response(exc)


@app.errorhandler(HTTPException)
def handle_http_exception(exc):
    """将所有 HTTP 异常统一返回 JSON"""
    return jsonify(error=exc.description), exc.code


@app.errorhandler(Exception)
def handle_generic_exception(exc):  # noqa: ARG001
    """捕获未处理异常，返回 500 JSON"""
    logger.exception("未处理的异常")
    return jsonify(error="服务器内部错误"), 500


@app.route("/api/health")
def health():
    return jsonify(status="ok", version=__version__)


def run_server(port: int = 8888, debug: bool = False, host: str = "127.0.0.1") -> None:
    logger.info("fnpack 服务已启动: http://%s:%d", host, port)
    app.run(host=host, port=port, debug=debug)
