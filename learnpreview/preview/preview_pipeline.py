"""
预览流水线模块

使用管道模式协调打包、摘要、上传、通知、轮询各步骤，
并保证临时归档在任何退出路径上都被清理。
"""

import threading
import time
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional, Union

from ..config.schema import PreviewConfig
from ..utils.logging import info, success, error, LogStage
from .addresser import ContentAddresser
from .archiver import Archiver, temporary_archive
from .orchestrator import BuildOrchestrator
from .preview_context import (
    PreviewCancelled,
    PreviewContext,
    PreviewError,
    ProgressCallback,
    ProgressSink,
)
from .steps import (
    ArchiveStep,
    DigestStep,
    NotifyStep,
    PollStep,
    PreviewStep,
    UploadStep,
)
from .uploader import Uploader


class PreviewPipeline:
    """预览流水线，负责协调预览步骤的执行"""

    def __init__(
        self,
        archiver: Archiver,
        addresser: ContentAddresser,
        uploader: Uploader,
        orchestrator: BuildOrchestrator,
    ):
        self._steps: List[PreviewStep] = [
            ArchiveStep(archiver),
            DigestStep(addresser),
            UploadStep(uploader),
            NotifyStep(orchestrator),
            PollStep(orchestrator),
        ]

    def add_step(self, step: PreviewStep, position: Optional[int] = None):
        """添加预览步骤"""
        if position is None:
            self._steps.append(step)
        else:
            self._steps.insert(position, step)

    def remove_step(self, step_name: str):
        """移除预览步骤"""
        self._steps = [step for step in self._steps if step.name != step_name]

    def get_steps(self) -> List[PreviewStep]:
        """获取所有预览步骤"""
        return self._steps.copy()

    def execute(
        self,
        config: PreviewConfig,
        source_path: Union[str, Path],
        archive_path: Optional[Union[str, Path]] = None,
        progress_callback: Optional[ProgressCallback] = None,
        upload_progress: Optional[ProgressSink] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PreviewContext:
        """执行预览流水线

        Args:
            config: 配置对象
            source_path: 要预览的文件或目录
            archive_path: 临时归档路径，默认取配置中的 archive.path
            progress_callback: 阶段进度回调
            upload_progress: 上传字节进度回调
            cancel_event: 取消信号

        Returns:
            PreviewContext: 预览上下文，包含预览地址等结果

        Raises:
            PreviewError: 任一步骤失败（已完成临时归档清理）
        """
        archive_path = Path(archive_path or config.archive.path)

        with ExitStack() as resources:
            context = PreviewContext(
                config=config,
                source_path=Path(source_path),
                archive_path=resources.enter_context(temporary_archive(archive_path)),
                resources=resources,
                progress_callback=progress_callback,
                upload_progress=upload_progress,
                cancel_event=cancel_event or threading.Event(),
            )
            context.stats['start_time'] = time.time()

            try:
                info(f"开始预览: {context.source_path}", stage=LogStage.INIT)

                for step in self._steps:
                    if context.cancel_event.is_set():
                        raise PreviewCancelled(f"预览在步骤 '{step.name}' 之前被取消")
                    info(f"执行步骤: {step.description}", stage=LogStage.INIT)
                    self._run_step(step, context)

            except PreviewError as e:
                error(f"预览失败 [{e.kind}]: {e}", stage=LogStage.DONE)
                raise
            finally:
                context.stats['end_time'] = time.time()

        elapsed = context.stats['end_time'] - context.stats['start_time']
        success(f"预览已就绪: {context.preview_url}", stage=LogStage.DONE)
        info(f"耗时: {elapsed:.1f}秒")
        return context

    def _run_step(self, step: PreviewStep, context: PreviewContext) -> None:
        """执行单个步骤，意外异常包装为该步骤的错误分类"""
        try:
            step.execute(context)
        except PreviewError:
            raise
        except Exception as e:
            raise step.error_type(f"步骤 '{step.name}' 发生意外错误: {e}") from e

    def validate_pipeline(self) -> List[str]:
        """验证流水线的完整性

        Returns:
            List[str]: 验证错误列表，空列表表示验证通过
        """
        errors = []

        if not self._steps:
            errors.append("流水线中没有步骤")
            return errors

        prev_end = 0
        for step in self._steps:
            start, end = step.get_progress_range()
            if start != prev_end:
                errors.append(f"步骤 '{step.name}' 的进度范围不连续: 期望起始 {prev_end}%, 实际 {start}%")
            if start >= end:
                errors.append(f"步骤 '{step.name}' 的进度范围无效: {start}% - {end}%")
            prev_end = end

        if prev_end != 100:
            errors.append(f"流水线的总进度范围不是100%: {prev_end}%")

        return errors
