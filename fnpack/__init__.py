"""fnpack - 无服务器函数依赖感知打包工具"""

__version__ = "0.1.0"
