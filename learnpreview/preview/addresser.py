"""
内容寻址

对归档字节流计算 SHA-256 摘要，作为远端存储的去重键。
"""

import base64
import hashlib
import io
from typing import BinaryIO

from ..utils.logging import debug, LogStage
from .preview_context import DigestError, DigestRewindError

# 每次读取的块大小
CHUNK_SIZE = 64 * 1024


class ContentAddresser:
    """内容寻址器

    摘要在压缩后的归档字节上计算，使用 URL 安全的 base64 编码，可直接嵌入存储键。
    """

    def __init__(self, algorithm: str = "sha256", chunk_size: int = CHUNK_SIZE):
        self.algorithm = algorithm.lower()
        if self.algorithm not in hashlib.algorithms_available:
            raise ValueError(f"不支持的哈希算法: {algorithm}")
        self.chunk_size = chunk_size

    def digest(self, stream: BinaryIO) -> str:
        """读取流到末尾计算摘要，然后把流复位到起点

        Args:
            stream: 位于起点的可定位字节流

        Returns:
            str: URL 安全的 base64 摘要

        Raises:
            DigestError: 读取失败
            DigestRewindError: 复位失败，流不可再用
        """
        hasher = hashlib.new(self.algorithm)
        total = 0

        try:
            while True:
                chunk = stream.read(self.chunk_size)
                if not chunk:
                    break
                hasher.update(chunk)
                total += len(chunk)
        except (OSError, ValueError) as e:
            raise DigestError(f"读取归档计算摘要失败: {e}") from e

        # 读取已把位置推到末尾，上传前必须复位
        try:
            stream.seek(0, io.SEEK_SET)
        except (OSError, ValueError) as e:
            raise DigestRewindError(f"摘要计算后无法复位归档流: {e}") from e

        checksum = base64.urlsafe_b64encode(hasher.digest()).decode('ascii')
        debug(f"摘要 {self.algorithm}={checksum} 字节数={total}", stage=LogStage.DIGEST)
        return checksum


def delivery_key(key_prefix: str, digest: str, archive_name: str) -> str:
    """生成远端存储键: {prefix}/{digest}-{archive_name}"""
    return f"{key_prefix.rstrip('/')}/{digest}-{archive_name}"


def compute_digest(stream: BinaryIO) -> str:
    """便捷函数：使用默认设置计算摘要"""
    return ContentAddresser().digest(stream)
