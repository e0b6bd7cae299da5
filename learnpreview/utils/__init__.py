"""通用工具模块"""

from .logging import (
    configure_logging,
    get_output_facade,
    LogStage,
    OutputLevel,
)

from .paths import (
    expand_path,
    format_size,
    to_archive_name,
)

__all__ = [
    # 日志相关
    "configure_logging",
    "get_output_facade",
    "LogStage",
    "OutputLevel",

    # 路径相关
    "expand_path",
    "format_size",
    "to_archive_name",
]
