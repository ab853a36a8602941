"""Gunicorn 生产配置

用法:
  gunicorn --config deploy/gunicorn.conf.py fnpack.web.app:app

同一入口的并发打包不加锁，workers 默认取 1，按需通过环境变量放大。
"""

import os

from fnpack.core.config import init_config
from fnpack.utils.logger import setup_logging

# ---------- 网络 ----------
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8888")

# ---------- 并发 ----------
workers = int(os.getenv("GUNICORN_WORKERS", "1"))
threads = int(os.getenv("GUNICORN_THREADS", "1"))
worker_class = "gthread"
# 依赖安装不设超时，由 gunicorn 兜底
timeout = int(os.getenv("GUNICORN_TIMEOUT", "600"))

# ---------- 日志 ----------
accesslog = os.getenv("GUNICORN_ACCESS_LOG", "-")
errorlog = os.getenv("GUNICORN_ERROR_LOG", "-")
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

# ---------- 进程管理 ----------
graceful_timeout = 30
keepalive = 5
max_requests = 1000
max_requests_jitter = 50


def on_starting(server):  # noqa: ARG001
    setup_logging(
        level=os.getenv("FNPACK_LOG_LEVEL", "INFO"),
        json_output=os.getenv("FNPACK_LOG_JSON", "") == "1",
    )
    init_config(os.getenv("FNPACK_CONFIG", "configs/default.yml"))
