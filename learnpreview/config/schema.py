"""
配置 Schema 定义

使用 Pydantic 定义 YAML 配置模型，覆盖 Learn API、上传、归档、轮询与自动配置。
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

# S3 分片上传协议规定的最小分片大小
MIN_PART_SIZE = 5 * 1024 * 1024

# 远端存储中使用的固定归档文件名，也是默认的本地临时文件名
ARCHIVE_NAME = "preview-curriculum.zip"

DEFAULT_CONFIG_PATH = Path("~/.learnpreview.yaml")


class ApiModel(BaseModel):
    """Learn API 配置模型"""
    base_url: str = Field(
        "https://learn-2.galvanize.com",
        description="Learn API 根地址",
        min_length=1,
    )
    api_token: Optional[str] = Field(None, description="API 令牌")
    timeout_sec: float = Field(30.0, description="单次请求超时时间（秒）", gt=0, le=600)

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """验证 API 地址"""
        v = v.strip()
        if not v.startswith(('http://', 'https://')):
            raise ValueError("API 地址必须以 http:// 或 https:// 开头")
        return v.rstrip('/')

    @field_validator('api_token')
    @classmethod
    def validate_api_token(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class UploadModel(BaseModel):
    """上传配置模型"""
    region: str = Field("us-west-2", description="对象存储区域", min_length=1)
    endpoint_url: Optional[str] = Field(None, description="自定义 S3 兼容端点")
    part_size: int = Field(MIN_PART_SIZE, description="分片大小（字节）", ge=MIN_PART_SIZE)
    max_concurrency: int = Field(4, description="分片并发数", ge=1, le=32)
    archive_name: str = Field(ARCHIVE_NAME, description="远端存储键中的固定归档名", min_length=1)

    @field_validator('archive_name')
    @classmethod
    def validate_archive_name(cls, v: str) -> str:
        """归档名会直接出现在存储键中，不允许包含路径分隔符"""
        if '/' in v or '\\' in v:
            raise ValueError("归档名不能包含路径分隔符")
        return v


class ArchiveModel(BaseModel):
    """归档配置模型"""
    path: Union[str, Path] = Field(Path(ARCHIVE_NAME), description="本地临时归档文件路径")
    compress_level: int = Field(6, description="DEFLATE 压缩级别", ge=0, le=9)

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: Union[str, Path]) -> Path:
        path = Path(v)
        if path.suffix.lower() != '.zip':
            raise ValueError("临时归档文件必须使用 .zip 扩展名")
        return path


class PollModel(BaseModel):
    """构建轮询配置模型"""
    max_attempts: int = Field(20, description="最大轮询次数", ge=1, le=1000)
    interval_sec: float = Field(2.0, description="首次轮询间隔（秒）", ge=0)
    backoff_factor: float = Field(1.5, description="退避倍数", ge=1.0, le=10.0)
    max_interval_sec: float = Field(15.0, description="最大轮询间隔（秒）", ge=0)

    @model_validator(mode='after')
    def validate_intervals(self) -> 'PollModel':
        """最大间隔不能小于首次间隔"""
        if self.max_interval_sec < self.interval_sec:
            raise ValueError("max_interval_sec 不能小于 interval_sec")
        return self


class AutoConfigModel(BaseModel):
    """自动生成课程配置的设置"""
    enabled: bool = Field(True, description="缺少 config.yaml 时是否自动生成 autoconfig.yaml")
    units_dir: Optional[str] = Field(None, description="单元目录名（默认 units）")


class ConfigModel(BaseModel):
    """配置元信息模型"""
    version: int = Field(1, description="配置 schema 版本", ge=1)

    @field_validator('version')
    @classmethod
    def validate_config_version(cls, v: int) -> int:
        SUPPORTED_VERSIONS = [1]
        if v not in SUPPORTED_VERSIONS:
            raise ValueError(f"不支持的配置版本 {v}，支持的版本: {SUPPORTED_VERSIONS}")
        return v


class PreviewConfig(BaseModel):
    """预览工具主配置模型

    所有部分都有默认值，空配置文件即可运行（只需提供 API 令牌）。
    """

    config: ConfigModel = Field(default_factory=ConfigModel, description="配置元信息")
    api: ApiModel = Field(default_factory=ApiModel, description="Learn API 配置")
    upload: UploadModel = Field(default_factory=UploadModel, description="上传配置")
    archive: ArchiveModel = Field(default_factory=ArchiveModel, description="归档配置")
    poll: PollModel = Field(default_factory=PollModel, description="轮询配置")
    autoconfig: AutoConfigModel = Field(default_factory=AutoConfigModel, description="自动配置")

    model_config = {
        "extra": "forbid",
        "validate_assignment": True,
        "str_strip_whitespace": True,
    }

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        data = self.model_dump(exclude_none=True)

        def convert_values(obj):
            if isinstance(obj, dict):
                return {k: convert_values(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert_values(item) for item in obj]
            elif isinstance(obj, Path):
                return str(obj).replace('\\', '/')
            elif isinstance(obj, Enum):
                return obj.value
            return obj

        return convert_values(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PreviewConfig':
        """从字典创建配置实例"""
        return cls.model_validate(data)

    def has_api_token(self) -> bool:
        return bool(self.api.api_token)
