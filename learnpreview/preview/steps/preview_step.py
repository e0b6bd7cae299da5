"""
预览步骤基类模块

定义预览流水线步骤的抽象接口。
"""

from abc import ABC, abstractmethod

from learnpreview.preview.preview_context import PreviewContext, PreviewError


class PreviewStep(ABC):
    """预览步骤抽象基类

    error_type 是步骤内意外异常被包装成的错误分类。
    """

    error_type = PreviewError

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description

    @abstractmethod
    def execute(self, context: PreviewContext) -> None:
        """执行预览步骤"""
        pass

    @abstractmethod
    def get_progress_range(self) -> tuple[int, int]:
        """获取此步骤的进度范围 (start_percent, end_percent)"""
        pass
