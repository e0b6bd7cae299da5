"""预览服务模块

提供打包、内容寻址、上传与远端构建编排的核心功能。
"""

from .addresser import ContentAddresser, compute_digest, delivery_key
from .archiver import (
    Archiver,
    ArchiveEntry,
    ArchiveResult,
    list_archive,
    temporary_archive,
)
from .orchestrator import BuildOrchestrator, PollOutcome, PollResult
from .preview_context import (
    ArchiveError,
    AuthError,
    BuildFailed,
    DigestError,
    DigestRewindError,
    NotifyError,
    PollError,
    PollExhausted,
    PreviewCancelled,
    PreviewContext,
    PreviewError,
    UploadError,
)
from .preview_pipeline import PreviewPipeline
from .previewer import Previewer, PreviewResult
from .progress_reader import ProgressObservingReader
from .uploader import Uploader

__all__ = [
    # 主预览器
    "Previewer",
    "PreviewResult",
    "PreviewPipeline",
    "PreviewContext",

    # 流水线组件
    "Archiver",
    "ArchiveEntry",
    "ArchiveResult",
    "list_archive",
    "temporary_archive",
    "ContentAddresser",
    "compute_digest",
    "delivery_key",
    "ProgressObservingReader",
    "Uploader",
    "BuildOrchestrator",
    "PollOutcome",
    "PollResult",

    # 错误分类
    "PreviewError",
    "ArchiveError",
    "DigestError",
    "DigestRewindError",
    "AuthError",
    "UploadError",
    "NotifyError",
    "PollError",
    "BuildFailed",
    "PollExhausted",
    "PreviewCancelled",
]
