"""预览流水线步骤"""

from .preview_step import PreviewStep
from .archive_step import ArchiveStep
from .digest_step import DigestStep
from .upload_step import UploadStep
from .notify_step import NotifyStep
from .poll_step import PollStep

__all__ = [
    "PreviewStep",
    "ArchiveStep",
    "DigestStep",
    "UploadStep",
    "NotifyStep",
    "PollStep",
]
