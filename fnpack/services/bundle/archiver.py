"""确定性归档

把暂存目录打成 zip:
  - 条目按 posix 相对路径排序
  - 所有条目的修改时间固定为同一常量
  - 权限位只取两种: 可执行 0755 / 普通 0644
相同的逻辑输入在任何机器、任何时间都得到逐字节相同的归档。
"""

from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Protocol

from fnpack.core.exceptions import ArchiveError
from fnpack.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

DateTime = tuple[int, int, int, int, int, int]

FIXED_DATE_TIME: DateTime = (2023, 11, 11, 19, 18, 0)


def parse_timestamp(value: str) -> DateTime:
    """ISO 时间字符串 → zip 条目使用的 date_time 元组"""
    try:
        dt = datetime.fromisoformat(value)
    except ValueError as e:
        raise ArchiveError(f"非法的归档时间戳: {value}") from e
    return (dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second)


def exclude_top_level(name: str) -> Callable[[str], bool]:
    """排除指定顶层目录（如 versions/）的谓词"""
    return lambda rel: rel == name or rel.startswith(name + "/")


def build_archive(
    directory: Path,
    exclude: Callable[[str], bool] | None = None,
    date_time: DateTime = FIXED_DATE_TIME,
) -> bytes:
    """生成归档内容，目录不存在时抛 ArchiveError"""
    directory = Path(directory)
    if not directory.is_dir():
        raise ArchiveError(f"归档失败: 目录不存在 {directory}")
    entries = sorted(
        (p.relative_to(directory).as_posix(), p)
        for p in directory.rglob("*") if p.is_file()
    )
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for rel, path in entries:
            if exclude is not None and exclude(rel):
                continue
            mode = 0o755 if path.stat().st_mode & 0o111 else 0o644
            info = zipfile.ZipInfo(rel, date_time=date_time)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.create_system = 3
            info.external_attr = (0o100000 | mode) << 16
            zf.writestr(info, path.read_bytes())
    return buf.getvalue()


class Archiver(Protocol):
    """归档器协议"""

    def archive(
        self, directory: Path, destination: Path, *,
        exclude: Callable[[str], bool] | None = None,
    ) -> Path:
        ...


class ZipArchiver:
    """zip 归档器，先写临时文件再原子替换"""

    def __init__(self, date_time: DateTime = FIXED_DATE_TIME) -> None:
        self.date_time = date_time

    def archive(
        self, directory: Path, destination: Path, *,
        exclude: Callable[[str], bool] | None = None,
    ) -> Path:
        destination = Path(destination)
        try:
            data = build_archive(directory, exclude, self.date_time)
            atomic_write(destination, data)
        except (OSError, ValueError, zipfile.LargeZipFile) as e:
            raise ArchiveError(f"归档失败 {directory}: {e}") from e
        logger.info("归档完成: %s (%d 字节)", destination, len(data))
        return destination
