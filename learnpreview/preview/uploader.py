"""
上传器

使用短期凭证把归档分片上传到对象存储，返回内容寻址的存储键。
"""

from typing import Any, BinaryIO, Callable, Optional, Protocol

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..api.client import ApiRequestError
from ..api.models import DeliveryCredentials
from ..config.schema import ARCHIVE_NAME, MIN_PART_SIZE
from ..utils import format_size
from ..utils.logging import info, debug, LogStage
from .addresser import delivery_key
from .preview_context import AuthError, ProgressSink, UploadError
from .progress_reader import ProgressObservingReader


class CredentialProvider(Protocol):
    """上传凭证提供者"""

    def retrieve_delivery_credentials(self) -> DeliveryCredentials:
        ...


# 根据凭证创建 S3 客户端的工厂
ClientFactory = Callable[[DeliveryCredentials], Any]


def _ignore_progress(increment: int) -> None:
    pass


class Uploader:
    """对象存储上传器

    分片上传由 s3transfer 完成，任一分片失败时整个分片上传会在远端被中止，
    不会留下孤立分片。上传本身不做整体重试。
    """

    def __init__(
        self,
        credential_provider: CredentialProvider,
        region: str = "us-west-2",
        part_size: int = MIN_PART_SIZE,
        max_concurrency: int = 4,
        archive_name: str = ARCHIVE_NAME,
        endpoint_url: Optional[str] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        if part_size < MIN_PART_SIZE:
            raise ValueError(f"分片大小不能小于 {format_size(MIN_PART_SIZE)}")

        self.credential_provider = credential_provider
        self.region = region
        self.part_size = part_size
        self.max_concurrency = max_concurrency
        self.archive_name = archive_name
        self.endpoint_url = endpoint_url
        self._client_factory = client_factory or self._create_client

    def upload(
        self,
        stream: BinaryIO,
        total_size: int,
        digest: str,
        progress_sink: Optional[ProgressSink] = None,
    ) -> str:
        """上传归档

        Args:
            stream: 位于起点的归档字节流
            total_size: 归档总字节数
            digest: 归档摘要
            progress_sink: 每次读取的字节增量回调

        Returns:
            str: 远端存储键

        Raises:
            AuthError: 无法获取上传凭证
            UploadError: 传输失败
        """
        credentials = self._retrieve_credentials()
        key = delivery_key(credentials.key_prefix, digest, self.archive_name)

        info(f"上传 {format_size(total_size)} 到 {credentials.bucket_name}/{key}", stage=LogStage.UPLOAD)

        client = self._client_factory(credentials)
        reader = ProgressObservingReader(stream, progress_sink or _ignore_progress)

        try:
            client.upload_fileobj(
                reader,
                credentials.bucket_name,
                key,
                Config=self.transfer_config(),
            )
        except (S3UploadFailedError, BotoCoreError, ClientError) as e:
            raise UploadError(f"上传归档到对象存储失败: {e}") from e

        debug(f"已上传 {reader.bytes_read} 字节", stage=LogStage.UPLOAD)
        return key

    def transfer_config(self) -> TransferConfig:
        """分片阈值与分片大小一致，超过一个分片即走分片上传"""
        return TransferConfig(
            multipart_threshold=self.part_size,
            multipart_chunksize=self.part_size,
            max_concurrency=self.max_concurrency,
            use_threads=self.max_concurrency > 1,
        )

    def _retrieve_credentials(self) -> DeliveryCredentials:
        try:
            return self.credential_provider.retrieve_delivery_credentials()
        except ApiRequestError as e:
            raise AuthError(
                "无法从 Learn 获取上传凭证，请检查配置文件中的 api.api_token 是否正确"
                f" ({e})"
            ) from e

    def _create_client(self, credentials: DeliveryCredentials):
        return boto3.client(
            's3',
            endpoint_url=self.endpoint_url,
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
            config=Config(
                region_name=self.region,
                signature_version='s3v4',
            ),
        )
