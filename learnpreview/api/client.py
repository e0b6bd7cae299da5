"""
Learn API 客户端

通过 HTTP 获取上传凭证、通知新内容并查询构建状态。
"""

from typing import Any, Dict, Optional

import requests

from ..utils.logging import debug, LogStage
from .models import BuildJob, DeliveryCredentials

CREDENTIALS_PATH = "/api/v1/users/s3_credentials"
RELEASES_PATH = "/api/v1/releases"
RELEASE_POLLING_PATH = "/api/v1/releases/{release_id}/release_polling"


class ApiRequestError(Exception):
    """Learn API 请求失败"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LearnApiClient:
    """Learn API 客户端"""

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str],
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
            'User-Agent': 'learnpreview',
        })
        if api_token:
            self.session.headers['Authorization'] = f"Bearer {api_token}"

    def retrieve_delivery_credentials(self) -> DeliveryCredentials:
        """获取短期上传凭证

        Raises:
            ApiRequestError: 请求失败或响应不完整
        """
        data = self._request('GET', CREDENTIALS_PATH)
        try:
            return DeliveryCredentials.from_response(data)
        except KeyError as e:
            raise ApiRequestError(f"上传凭证响应缺少字段: {e}") from e

    def notify_new_content(self, delivery_key: str, is_directory: bool) -> BuildJob:
        """通知 Learn 存储中有新的预览内容

        Raises:
            ApiRequestError: 请求失败或响应无效
        """
        data = self._request('POST', RELEASES_PATH, json={
            's3_key': delivery_key,
            'is_directory': is_directory,
        })
        return self._parse_job(data)

    def poll_job(self, job_id: str, remaining_attempts: int) -> BuildJob:
        """查询构建任务状态

        Raises:
            ApiRequestError: 请求失败或响应无效
        """
        data = self._request(
            'GET',
            RELEASE_POLLING_PATH.format(release_id=job_id),
            params={'attempts_remaining': remaining_attempts},
        )
        return self._parse_job(data, job_id)

    def _parse_job(self, data: Dict[str, Any], job_id: Optional[str] = None) -> BuildJob:
        try:
            return BuildJob.from_response(data, job_id)
        except ValueError as e:
            raise ApiRequestError(f"无效的构建状态: {data.get('status')!r}") from e

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        debug(f"{method} {url}", stage=LogStage.NOTIFY)

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ApiRequestError(f"请求 {url} 失败: {e}") from e

        if response.status_code >= 400:
            raise ApiRequestError(
                f"{method} {url} 返回 HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ApiRequestError(f"{url} 返回了无效的 JSON") from e

        if not isinstance(data, dict):
            raise ApiRequestError(f"{url} 返回的 JSON 不是对象")
        return data
