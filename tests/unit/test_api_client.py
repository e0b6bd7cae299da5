"""
Learn API 客户端单元测试

使用模拟的 requests 会话，不访问网络。
"""

from unittest.mock import MagicMock

import pytest
import requests

from learnpreview.api.client import ApiRequestError, LearnApiClient
from learnpreview.api.models import BuildJob, BuildStatus, DeliveryCredentials


def make_response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


def make_client(response=None, error=None):
    session = MagicMock()
    session.headers = {}
    if error is not None:
        session.request.side_effect = error
    else:
        session.request.return_value = response
    client = LearnApiClient("https://learn.example.com/", "token-123", timeout=5, session=session)
    return client, session


class TestLearnApiClient:
    """LearnApiClient 测试"""

    def test_authorization_header(self):
        """测试请求头携带令牌"""
        _, session = make_client(make_response(payload={}))
        assert session.headers['Authorization'] == "Bearer token-123"
        assert session.headers['Accept'] == "application/json"

    def test_no_token_no_header(self):
        """测试未设置令牌时不添加 Authorization"""
        session = MagicMock()
        session.headers = {}
        LearnApiClient("https://learn.example.com", None, session=session)
        assert 'Authorization' not in session.headers

    def test_retrieve_credentials(self):
        """测试获取上传凭证"""
        client, session = make_client(make_response(payload={
            'access_key_id': 'AK',
            'secret_access_key': 'SK',
            'bucket_name': 'bucket',
            'key_prefix': 'users/1',
        }))

        creds = client.retrieve_delivery_credentials()

        assert creds == DeliveryCredentials('AK', 'SK', 'bucket', 'users/1')
        session.request.assert_called_once_with(
            'GET', "https://learn.example.com/api/v1/users/s3_credentials", timeout=5
        )

    def test_credentials_missing_field(self):
        """测试凭证响应缺少字段"""
        client, _ = make_client(make_response(payload={'access_key_id': 'AK'}))

        with pytest.raises(ApiRequestError, match="缺少字段"):
            client.retrieve_delivery_credentials()

    def test_notify_new_content(self):
        """测试通知新内容"""
        client, session = make_client(make_response(payload={'release_id': 42, 'status': 'pending'}))

        job = client.notify_new_content("users/1/d-preview-curriculum.zip", True)

        assert job == BuildJob("42", BuildStatus.PENDING)
        session.request.assert_called_once_with(
            'POST',
            "https://learn.example.com/api/v1/releases",
            timeout=5,
            json={'s3_key': "users/1/d-preview-curriculum.zip", 'is_directory': True},
        )

    def test_poll_job(self):
        """测试查询构建状态时携带剩余次数"""
        client, session = make_client(make_response(payload={
            'status': 'ready',
            'preview_url': 'https://learn.example.com/preview/42',
        }))

        job = client.poll_job("42", 17)

        assert job.job_id == "42"
        assert job.status is BuildStatus.READY
        assert job.preview_url == "https://learn.example.com/preview/42"
        session.request.assert_called_once_with(
            'GET',
            "https://learn.example.com/api/v1/releases/42/release_polling",
            timeout=5,
            params={'attempts_remaining': 17},
        )

    def test_http_error(self):
        """测试 HTTP 错误状态"""
        client, _ = make_client(make_response(status_code=401, text="unauthorized"))

        with pytest.raises(ApiRequestError) as exc_info:
            client.retrieve_delivery_credentials()
        assert exc_info.value.status_code == 401

    def test_connection_error(self):
        """测试连接失败"""
        client, _ = make_client(error=requests.ConnectionError("refused"))

        with pytest.raises(ApiRequestError) as exc_info:
            client.notify_new_content("k", False)
        assert exc_info.value.status_code is None

    def test_invalid_json(self):
        """测试响应不是 JSON"""
        client, _ = make_client(make_response(payload=ValueError("no json")))

        with pytest.raises(ApiRequestError, match="无效的 JSON"):
            client.poll_job("1", 5)

    def test_non_object_json(self):
        """测试响应 JSON 不是对象"""
        client, _ = make_client(make_response(payload=["ready"]))

        with pytest.raises(ApiRequestError):
            client.poll_job("1", 5)

    def test_unknown_status(self):
        """测试未知构建状态"""
        client, _ = make_client(make_response(payload={'status': 'exploded'}))

        with pytest.raises(ApiRequestError, match="无效的构建状态"):
            client.poll_job("1", 5)


class TestBuildJob:
    """BuildJob 解析测试"""

    def test_missing_status_with_url_is_ready(self):
        """测试缺少状态但有地址时视为 ready"""
        job = BuildJob.from_response({'preview_url': 'https://x'})
        assert job.status is BuildStatus.READY
        assert job.job_id is None

    def test_missing_status_without_url_is_pending(self):
        """测试缺少状态和地址时视为 pending"""
        job = BuildJob.from_response({}, job_id="9")
        assert job.status is BuildStatus.PENDING
        assert job.job_id == "9"

    def test_status_case_insensitive(self):
        """测试状态不区分大小写"""
        assert BuildJob.from_response({'status': 'FAILED'}).status is BuildStatus.FAILED

    def test_terminal_states(self):
        """测试终态判断"""
        assert BuildStatus.READY.is_terminal
        assert BuildStatus.FAILED.is_terminal
        assert not BuildStatus.PENDING.is_terminal
        assert not BuildStatus.BUILDING.is_terminal
