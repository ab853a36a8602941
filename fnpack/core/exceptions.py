"""统一异常体系

所有打包异常继承 FnPackError，替代散落的 ValueError / RuntimeError。
任一异常都会中止整个构建，不存在部分成功或尽力而为模式，也不做自动重试。
Web 层可据此自动映射 HTTP 状态码，CLI 层可据此输出友好提示。
"""

from __future__ import annotations


class FnPackError(Exception):
    """打包基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(FnPackError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(FnPackError):
    """调用方输入校验失败（不做静默修正）"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class ParseError(FnPackError):
    """源文件无法读取或存在语法错误"""

    code = "PARSE_ERROR"

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class UnresolvedImportError(FnPackError):
    """导入语句无法映射到本地文件或已安装的包"""

    code = "UNRESOLVED_IMPORT"

    def __init__(self, message: str, specifier: str = "", importer: str = "") -> None:
        super().__init__(message)
        self.specifier = specifier
        self.importer = importer


class ManifestLookupError(FnPackError):
    """向上查找不到包描述文件"""

    code = "MANIFEST_LOOKUP_ERROR"


class LayoutCollisionError(FnPackError):
    """两个不同的源文件被映射到同一个部署路径"""

    code = "LAYOUT_COLLISION"


class ExecutionError(FnPackError):
    """外部命令执行失败，output 保留工具原始诊断输出"""

    code = "EXECUTION_ERROR"

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class InstallError(ExecutionError):
    """第三方依赖安装失败"""

    code = "INSTALL_ERROR"


class ArchiveError(FnPackError):
    """归档文件生成失败"""

    code = "ARCHIVE_ERROR"
