"""
预览器主类

根据配置组装流水线，提供统一的预览接口。预览器本身不打印、不退出进程，
只返回成功的预览地址或分类后的错误。
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..api.client import LearnApiClient
from ..config.schema import PreviewConfig
from .addresser import ContentAddresser
from .archiver import Archiver
from .orchestrator import BuildOrchestrator
from .preview_context import (
    AuthError,
    PreviewError,
    ProgressCallback,
    ProgressSink,
)
from .preview_pipeline import PreviewPipeline
from .uploader import ClientFactory, Uploader


@dataclass
class PreviewResult:
    """预览结果"""
    success: bool
    preview_url: Optional[str] = None
    delivery_key: Optional[str] = None
    digest: Optional[str] = None
    is_directory: Optional[bool] = None
    elapsed: Optional[float] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    exception: Optional[PreviewError] = None


class Previewer:
    """课程内容预览器"""

    def __init__(
        self,
        config: PreviewConfig,
        api_client: Optional[LearnApiClient] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        """初始化预览器

        Args:
            config: 配置对象
            api_client: Learn API 客户端，默认根据配置创建
            client_factory: S3 客户端工厂，默认使用 boto3
        """
        self.config = config
        self.api_client = api_client or LearnApiClient(
            config.api.base_url,
            config.api.api_token,
            timeout=config.api.timeout_sec,
        )
        self.pipeline = PreviewPipeline(
            archiver=Archiver(config.archive.compress_level),
            addresser=ContentAddresser(),
            uploader=Uploader(
                self.api_client,
                region=config.upload.region,
                part_size=config.upload.part_size,
                max_concurrency=config.upload.max_concurrency,
                archive_name=config.upload.archive_name,
                endpoint_url=config.upload.endpoint_url,
                client_factory=client_factory,
            ),
            orchestrator=BuildOrchestrator(
                self.api_client,
                max_attempts=config.poll.max_attempts,
                interval=config.poll.interval_sec,
                backoff_factor=config.poll.backoff_factor,
                max_interval=config.poll.max_interval_sec,
            ),
        )

    def preview(
        self,
        source: Union[str, Path],
        archive_path: Optional[Union[str, Path]] = None,
        progress_callback: Optional[ProgressCallback] = None,
        upload_progress: Optional[ProgressSink] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PreviewResult:
        """打包、上传并构建预览

        Returns:
            PreviewResult: 成功时包含预览地址，失败时包含错误分类
        """
        try:
            if not self.config.has_api_token():
                raise AuthError("尚未设置 API 令牌，请在配置文件中设置 api.api_token")

            context = self.pipeline.execute(
                self.config,
                source,
                archive_path=archive_path,
                progress_callback=progress_callback,
                upload_progress=upload_progress,
                cancel_event=cancel_event,
            )

            return PreviewResult(
                success=True,
                preview_url=context.preview_url,
                delivery_key=context.delivery_key,
                digest=context.digest,
                is_directory=context.is_directory,
                elapsed=context.stats['end_time'] - context.stats['start_time'],
            )

        except PreviewError as e:
            return PreviewResult(
                success=False,
                error=str(e),
                error_kind=e.kind,
                exception=e,
            )

    def get_pipeline(self) -> PreviewPipeline:
        """获取预览流水线，用于自定义流程"""
        return self.pipeline
