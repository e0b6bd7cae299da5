"""
预览上下文模块

定义预览流水线中共享的数据结构和分类异常。
"""

import threading
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Optional, TYPE_CHECKING

from ..config.schema import PreviewConfig

if TYPE_CHECKING:
    from .archiver import ArchiveResult
    from ..api.models import BuildJob

# 阶段进度回调类型: (阶段名, 当前值, 总值, 消息)
ProgressCallback = Callable[[str, int, int, str], None]

# 上传字节进度回调类型: 每次读取的字节增量
ProgressSink = Callable[[int], None]


class PreviewError(Exception):
    """预览流水线错误基类"""
    kind = "preview"


class ArchiveError(PreviewError):
    """归档读写错误（源路径不存在、条目不可读、目标无法创建）"""
    kind = "io"


class DigestError(PreviewError):
    """归档摘要计算错误"""
    kind = "digest"


class DigestRewindError(DigestError):
    """摘要计算后无法把流复位到起点，流不可再用"""
    kind = "digest_rewind"


class AuthError(PreviewError):
    """无法获取上传凭证"""
    kind = "auth"


class UploadError(PreviewError):
    """上传传输失败"""
    kind = "upload"


class NotifyError(PreviewError):
    """通知 Learn 构建新内容失败"""
    kind = "notify"


class PollError(PreviewError):
    """轮询构建状态时传输失败"""
    kind = "poll"


class BuildFailed(PreviewError):
    """远端报告构建失败"""
    kind = "build_failed"


class PollExhausted(PreviewError):
    """轮询次数用尽仍未得到终态，用户可以稍后重试"""
    kind = "poll_exhausted"

    def __init__(self, message: str, job_id: Optional[str] = None, attempts: int = 0):
        super().__init__(message)
        self.job_id = job_id
        self.attempts = attempts


class PreviewCancelled(PreviewError):
    """调用方取消了预览"""
    kind = "cancelled"


@dataclass
class PreviewContext:
    """预览上下文，包含流水线执行过程中的共享数据"""
    config: PreviewConfig
    source_path: Path
    archive_path: Path
    resources: ExitStack
    progress_callback: Optional[ProgressCallback] = None
    upload_progress: Optional[ProgressSink] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)

    # 流水线过程中生成的数据
    is_directory: bool = False
    archive: Optional['ArchiveResult'] = None
    archive_stream: Optional[BinaryIO] = None
    digest: Optional[str] = None
    delivery_key: Optional[str] = None
    job: Optional['BuildJob'] = None
    preview_url: Optional[str] = None

    stats: Dict[str, Any] = field(default_factory=lambda: {
        'start_time': 0.0,
        'end_time': 0.0,
        'total_files': 0,
        'total_size': 0,
        'archive_size': 0,
    })

    def report(self, stage: str, current: int, message: str = "") -> None:
        """报告阶段进度（0-100）"""
        if self.progress_callback:
            self.progress_callback(stage, current, 100, message)
