"""
通知步骤模块

通知 Learn 有新内容可构建。
"""

from ...utils.logging import info, LogStage
from learnpreview.preview.orchestrator import BuildOrchestrator
from learnpreview.preview.preview_context import NotifyError, PreviewContext
from .preview_step import PreviewStep


STAGE_LABEL = "构建预览"


class NotifyStep(PreviewStep):
    """通知步骤"""

    error_type = NotifyError

    def __init__(self, orchestrator: BuildOrchestrator):
        super().__init__("notify", "通知 Learn 构建预览")
        self.orchestrator = orchestrator

    def get_progress_range(self) -> tuple[int, int]:
        return (70, 80)

    def execute(self, context: PreviewContext) -> None:
        info("请稍候，Learn 正在构建预览...", stage=LogStage.NOTIFY)
        context.report(STAGE_LABEL, self.get_progress_range()[0], "通知 Learn...")

        context.job = self.orchestrator.notify(context.delivery_key, context.is_directory)

        context.report(STAGE_LABEL, self.get_progress_range()[1], context.job.status.value)
