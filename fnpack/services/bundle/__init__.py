"""打包服务模块

拆分说明:
- stager.py: 暂存目录写入
- cache.py: 产物缓存策略
- installer.py: 第三方依赖安装
- archiver.py: 确定性归档
"""

from fnpack.services.bundle.archiver import ZipArchiver, build_archive, exclude_top_level
from fnpack.services.bundle.cache import ArtifactCache
from fnpack.services.bundle.installer import PipInstaller
from fnpack.services.bundle.stager import reset_staging, stage

__all__ = [
    "ArtifactCache", "PipInstaller", "ZipArchiver",
    "build_archive", "exclude_top_level", "reset_staging", "stage",
]
