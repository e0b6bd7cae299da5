"""
轮询步骤模块

由通知快照得到预览地址：目录内容在远端异步构建，需要轮询直到得到终态；
单文件内容直接使用快照中的地址。
"""

from learnpreview.preview.orchestrator import BuildOrchestrator
from learnpreview.preview.preview_context import NotifyError, PollError, PreviewContext
from .preview_step import PreviewStep


class PollStep(PreviewStep):
    """轮询步骤"""

    error_type = PollError

    def __init__(self, orchestrator: BuildOrchestrator):
        super().__init__("poll", "等待预览构建完成")
        self.orchestrator = orchestrator

    def get_progress_range(self) -> tuple[int, int]:
        return (80, 100)

    def execute(self, context: PreviewContext) -> None:
        if context.job is None:
            raise NotifyError("尚未通知 Learn，无法获取预览地址")

        context.preview_url = self.orchestrator.preview_url_for(
            context.job, context.is_directory, context.cancel_event
        )
        context.report("构建预览", self.get_progress_range()[1], "构建完成")
