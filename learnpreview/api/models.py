"""
Learn API 数据模型
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class BuildStatus(str, Enum):
    """远端构建状态"""
    PENDING = "pending"
    BUILDING = "building"
    READY = "ready"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (BuildStatus.READY, BuildStatus.FAILED)


@dataclass(frozen=True)
class DeliveryCredentials:
    """短期上传凭证"""
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    key_prefix: str

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> 'DeliveryCredentials':
        """从 API 响应创建凭证

        Raises:
            KeyError: 响应缺少必填字段
        """
        return cls(
            access_key_id=data['access_key_id'],
            secret_access_key=data['secret_access_key'],
            bucket_name=data['bucket_name'],
            key_prefix=data['key_prefix'],
        )


@dataclass(frozen=True)
class BuildJob:
    """远端构建任务快照，仅由远端修改"""
    job_id: Optional[str]
    status: BuildStatus
    preview_url: Optional[str] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any], job_id: Optional[str] = None) -> 'BuildJob':
        """从 API 响应创建快照

        缺少 status 字段时，有预览地址视为 ready，否则视为 pending。

        Raises:
            ValueError: 未知的构建状态
        """
        preview_url = data.get('preview_url') or None
        raw_status = data.get('status')
        if raw_status is None:
            status = BuildStatus.READY if preview_url else BuildStatus.PENDING
        else:
            status = BuildStatus(str(raw_status).lower())

        release_id = data.get('release_id', job_id)
        return cls(
            job_id=str(release_id) if release_id is not None else None,
            status=status,
            preview_url=preview_url,
        )
