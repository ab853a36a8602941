"""服务容器：统一依赖注入

CLI 和 Web 层均通过 get_container() 获取服务，而非直接 import 构造，
同一容器内的实例共享配置。

用法:
    container = ServiceContainer()
    svc = container.bundle          # 懒加载

    # 显式注入配置
    cfg = Config.from_file("my_config.yml")
    container = ServiceContainer(config=cfg)
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fnpack.core.config import Config
    from fnpack.services.bundle_service import BundleService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(self, config: Config | None = None) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from fnpack.core.config import get_config
            config = get_config()
        self._config = config

    @property
    def config(self) -> Config:
        return self._config

    @property
    def bundle(self) -> BundleService:
        if "bundle" not in self._instances:
            from fnpack.services.bundle_service import BundleService
            self._instances["bundle"] = BundleService(self._config)
        return self._instances["bundle"]  # type: ignore[return-value]


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def reset_container() -> None:
    """重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
