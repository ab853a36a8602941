"""fnpack 日志配置

文本格式供终端阅读，JSON 格式供 CI 流水线消费。
打包相关日志可通过 extra 附带构建字段（entry / digest / cached），JSON 输出中原样展开。
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

# 通过 logging 的 extra 参数传入、需要写进 JSON 日志的构建字段
BUILD_FIELDS = ("entry", "digest", "cached")


class JSONFormatter(logging.Formatter):
    """结构化 JSON 日志格式器

    输出示例:
        {
            "timestamp": "2024-01-01T12:00:00+00:00",
            "level": "INFO",
            "logger": "fnpack.services.bundle_service",
            "message": "打包完成: handler.py -> dist/handler.py/versions/3f2a....zip (新建, 0.42s)",
            "line": 128,
            "entry": "/work/fn/handler.py",
            "digest": "3f2a...",
            "cached": false
        }
    有异常时追加 "exception" 字段。
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            # 取事件发生时间，而非格式化时间
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        for key in BUILD_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器

    日志写 stderr，stdout 留给命令结果（如 --json 输出）；重复调用会先清理已有 handlers。
    """
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"))
    root.addHandler(handler)


def reset_logging() -> None:
    """移除根日志器上的全部 handlers"""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
