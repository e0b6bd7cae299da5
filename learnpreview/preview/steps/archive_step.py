"""
归档步骤模块

把源文件或目录打包为临时 zip 归档。
"""

from pathlib import Path
from typing import Optional

from ...utils import format_size
from ...utils.logging import info, success, debug, LogStage
from learnpreview.preview.archiver import Archiver
from learnpreview.preview.preview_context import ArchiveError, PreviewContext
from .preview_step import PreviewStep


class ArchiveStep(PreviewStep):
    """归档步骤"""

    error_type = ArchiveError

    def __init__(self, archiver: Archiver):
        super().__init__("archive", "打包预览内容")
        self.archiver = archiver

    def get_progress_range(self) -> tuple[int, int]:
        return (0, 20)

    def execute(self, context: PreviewContext) -> None:
        info(f"打包 {context.source_path} -> {context.archive_path}", stage=LogStage.ARCHIVE)
        progress_start, progress_end = self.get_progress_range()

        def archive_progress(current: int, total: int, current_file: Optional[str] = None) -> None:
            if total > 0:
                progress = progress_start + int((current / total) * (progress_end - progress_start))
                message = f"打包: {Path(current_file).name}" if current_file else "打包完成"
                context.report("打包内容", progress, message)

        result = self.archiver.create(context.source_path, context.archive_path, archive_progress)

        context.archive = result
        context.is_directory = result.is_directory
        context.stats['total_files'] = result.file_count
        context.stats['total_size'] = result.total_size
        context.stats['archive_size'] = result.size

        success("打包完成", stage=LogStage.ARCHIVE)
        info(f"  文件数量: {result.file_count}")
        info(f"  原始大小: {format_size(result.total_size)}")
        info(f"  归档大小: {format_size(result.size)}")

        for idx, entry in enumerate(result.entries[:20]):
            debug(f"条目[{idx}]: {entry.arcname} size={format_size(entry.size)}", stage=LogStage.ARCHIVE)
        if len(result.entries) > 20:
            debug(f"... 还有 {len(result.entries) - 20} 个条目未列出", stage=LogStage.ARCHIVE)
