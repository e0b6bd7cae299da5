"""
上传步骤模块

把归档上传到对象存储，得到内容寻址的存储键。
"""

from ...utils.logging import success, LogStage
from learnpreview.preview.preview_context import PreviewContext, UploadError
from learnpreview.preview.uploader import Uploader
from .preview_step import PreviewStep


# 上传阶段在进度回调中的名称
STAGE_LABEL = "上传归档"


class UploadStep(PreviewStep):
    """上传步骤"""

    error_type = UploadError

    def __init__(self, uploader: Uploader):
        super().__init__("upload", "上传归档到 Learn")
        self.uploader = uploader

    def get_progress_range(self) -> tuple[int, int]:
        return (30, 70)

    def execute(self, context: PreviewContext) -> None:
        context.report(STAGE_LABEL, self.get_progress_range()[0], "开始上传...")

        context.delivery_key = self.uploader.upload(
            context.archive_stream,
            context.archive.size,
            context.digest,
            context.upload_progress,
        )

        context.report(STAGE_LABEL, self.get_progress_range()[1], context.delivery_key)
        success(f"上传完成: {context.delivery_key}", stage=LogStage.UPLOAD)
