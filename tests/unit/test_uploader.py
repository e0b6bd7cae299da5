"""
上传器单元测试

使用假的 S3 客户端，或用 Stubber 截获真实 boto3 客户端的请求，不访问网络。
"""

import io
from unittest.mock import MagicMock, patch

import boto3
import pytest
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError, EndpointConnectionError
from botocore.stub import Stubber

from learnpreview.api.client import ApiRequestError
from learnpreview.api.models import DeliveryCredentials
from learnpreview.config.schema import MIN_PART_SIZE
from learnpreview.preview.preview_context import AuthError, UploadError
from learnpreview.preview.progress_reader import ProgressObservingReader
from learnpreview.preview.uploader import Uploader

CREDENTIALS = DeliveryCredentials(
    access_key_id="AKIAEXAMPLE",
    secret_access_key="secret",
    bucket_name="learn-previews",
    key_prefix="users/42",
)


class FakeS3Client:
    """按块读完上传流的假客户端"""

    def __init__(self, chunk_size=1024, error=None):
        self.chunk_size = chunk_size
        self.error = error
        self.calls = []
        self.body = b""

    def upload_fileobj(self, fileobj, bucket, key, Config=None):
        self.calls.append((fileobj, bucket, key, Config))
        chunks = []
        while True:
            chunk = fileobj.read(self.chunk_size)
            if not chunk:
                break
            chunks.append(chunk)
            if self.error is not None:
                raise self.error
        self.body = b"".join(chunks)


def make_provider(credentials=CREDENTIALS, error=None):
    provider = MagicMock()
    if error is not None:
        provider.retrieve_delivery_credentials.side_effect = error
    else:
        provider.retrieve_delivery_credentials.return_value = credentials
    return provider


class TestUploader:
    """Uploader 测试"""

    def test_upload_returns_content_addressed_key(self):
        """测试返回 {prefix}/{digest}-{archive_name}"""
        client = FakeS3Client()
        uploader = Uploader(make_provider(), client_factory=lambda creds: client)

        key = uploader.upload(io.BytesIO(b"zip-bytes"), 9, "DIGEST=")

        assert key == "users/42/DIGEST=-preview-curriculum.zip"
        _, bucket, uploaded_key, _ = client.calls[0]
        assert bucket == "learn-previews"
        assert uploaded_key == key
        assert client.body == b"zip-bytes"

    def test_progress_reported_while_reading(self):
        """测试传输读取时逐块报告进度"""
        data = b"z" * 5000
        client = FakeS3Client(chunk_size=1024)
        increments = []
        uploader = Uploader(make_provider(), client_factory=lambda creds: client)

        uploader.upload(io.BytesIO(data), len(data), "d", increments.append)

        assert sum(increments) == len(data)
        assert increments[:5] == [1024, 1024, 1024, 1024, 904]
        assert isinstance(client.calls[0][0], ProgressObservingReader)

    def test_upload_without_progress_sink(self):
        """测试不传进度回调"""
        client = FakeS3Client()
        uploader = Uploader(make_provider(), client_factory=lambda creds: client)

        uploader.upload(io.BytesIO(b"abc"), 3, "d")

        assert client.body == b"abc"

    def test_client_factory_receives_credentials(self):
        """测试客户端使用获取到的凭证创建"""
        factory = MagicMock(return_value=FakeS3Client())
        uploader = Uploader(make_provider(), client_factory=factory)

        uploader.upload(io.BytesIO(b"abc"), 3, "d")

        factory.assert_called_once_with(CREDENTIALS)

    def test_custom_archive_name(self):
        """测试自定义归档名"""
        uploader = Uploader(make_provider(), archive_name="custom.zip", client_factory=lambda c: FakeS3Client())
        assert uploader.upload(io.BytesIO(b"a"), 1, "d") == "users/42/d-custom.zip"

    def test_credentials_failure_is_auth_error(self):
        """测试凭证获取失败被归类为 AuthError"""
        provider = make_provider(error=ApiRequestError("HTTP 401", status_code=401))
        factory = MagicMock()
        uploader = Uploader(provider, client_factory=factory)

        with pytest.raises(AuthError, match="api.api_token"):
            uploader.upload(io.BytesIO(b"a"), 1, "d")

        factory.assert_not_called()

    @pytest.mark.parametrize("failure", [
        ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "UploadPart"),
        S3UploadFailedError("Failed to upload"),
        EndpointConnectionError(endpoint_url="https://s3.example.com"),
    ])
    def test_transfer_failure_is_upload_error(self, failure):
        """测试传输失败被归类为 UploadError"""
        client = FakeS3Client(error=failure)
        uploader = Uploader(make_provider(), client_factory=lambda creds: client)

        with pytest.raises(UploadError) as exc_info:
            uploader.upload(io.BytesIO(b"a" * 10), 10, "d")

        assert exc_info.value.__cause__ is failure


class TestUploaderConfig:
    """分片配置测试"""

    def test_part_size_below_minimum(self):
        """测试分片小于 5 MiB 被拒绝"""
        with pytest.raises(ValueError):
            Uploader(make_provider(), part_size=MIN_PART_SIZE - 1)

    def test_transfer_config(self):
        """测试分片阈值与分片大小一致"""
        uploader = Uploader(make_provider(), part_size=8 * 1024 * 1024, max_concurrency=2)
        config = uploader.transfer_config()

        assert config.multipart_threshold == 8 * 1024 * 1024
        assert config.multipart_chunksize == 8 * 1024 * 1024
        assert config.max_request_concurrency == 2
        assert config.use_threads is True

    def test_single_thread_transfer(self):
        """测试并发数为 1 时不使用线程"""
        uploader = Uploader(make_provider(), max_concurrency=1)
        assert uploader.transfer_config().use_threads is False

    def test_default_client_uses_credentials(self):
        """测试默认客户端使用凭证和 s3v4 签名"""
        uploader = Uploader(make_provider(), region="eu-west-1")

        with patch("learnpreview.preview.uploader.boto3.client") as mock_client:
            mock_client.return_value = FakeS3Client()
            uploader.upload(io.BytesIO(b"a"), 1, "d")

        args, kwargs = mock_client.call_args
        assert args == ('s3',)
        assert kwargs['aws_access_key_id'] == "AKIAEXAMPLE"
        assert kwargs['aws_secret_access_key'] == "secret"
        assert kwargs['config'].region_name == "eu-west-1"
        assert kwargs['config'].signature_version == "s3v4"


def make_stubbed_client():
    client = boto3.client(
        's3',
        region_name="us-west-2",
        aws_access_key_id="AKIAEXAMPLE",
        aws_secret_access_key="secret",
    )
    return client, Stubber(client)


class TestMultipartTransfer:
    """经过 s3transfer 的分片上传测试"""

    DATA_SIZE = 11 * 1024 * 1024

    def test_large_archive_split_into_parts(self):
        """测试 11 MiB 的归档按 5 MiB 分成 3 片上传"""
        client, stubber = make_stubbed_client()
        stubber.add_response('create_multipart_upload', {'UploadId': 'upload-1'})
        for number in range(1, 4):
            stubber.add_response('upload_part', {'ETag': f'"etag-{number}"'})
        stubber.add_response('complete_multipart_upload', {})
        increments = []
        uploader = Uploader(make_provider(), max_concurrency=1, client_factory=lambda creds: client)

        with stubber:
            key = uploader.upload(io.BytesIO(b"x" * self.DATA_SIZE), self.DATA_SIZE, "d", increments.append)

        stubber.assert_no_pending_responses()
        assert key == "users/42/d-preview-curriculum.zip"
        assert sum(increments) == self.DATA_SIZE

    def test_failed_part_aborts_upload(self):
        """测试某个分片失败时中止分片上传并抛出 UploadError"""
        client, stubber = make_stubbed_client()
        stubber.add_response('create_multipart_upload', {'UploadId': 'upload-1'})
        stubber.add_response('upload_part', {'ETag': '"etag-1"'})
        stubber.add_client_error('upload_part', service_error_code='InternalError', http_status_code=500)
        stubber.add_response('abort_multipart_upload', {})
        uploader = Uploader(make_provider(), max_concurrency=1, client_factory=lambda creds: client)

        with stubber:
            with pytest.raises(UploadError):
                uploader.upload(io.BytesIO(b"x" * self.DATA_SIZE), self.DATA_SIZE, "d")

        stubber.assert_no_pending_responses()
