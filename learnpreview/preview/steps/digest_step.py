"""
摘要步骤模块

打开临时归档并计算内容摘要，流复位后留给上传步骤继续使用。
"""

from ...utils.logging import info, LogStage
from learnpreview.preview.addresser import ContentAddresser
from learnpreview.preview.preview_context import ArchiveError, DigestError, PreviewContext
from .preview_step import PreviewStep


class DigestStep(PreviewStep):
    """摘要步骤"""

    error_type = DigestError

    def __init__(self, addresser: ContentAddresser):
        super().__init__("digest", "计算归档摘要")
        self.addresser = addresser

    def get_progress_range(self) -> tuple[int, int]:
        return (20, 30)

    def execute(self, context: PreviewContext) -> None:
        try:
            stream = open(context.archive_path, 'rb')
        except OSError as e:
            raise ArchiveError(f"无法打开归档文件 {context.archive_path}: {e}") from e

        # 句柄由上下文的资源栈负责关闭，先于临时文件删除
        context.archive_stream = context.resources.enter_context(stream)
        context.digest = self.addresser.digest(context.archive_stream)

        context.report("计算摘要", self.get_progress_range()[1], context.digest)
        info(f"归档摘要: {context.digest}", stage=LogStage.DIGEST)
