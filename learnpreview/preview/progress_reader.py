"""
进度观察读取器

包装字节源，把每次读取的字节数报告给进度接收器，不改变交付给下游的数据。
"""

from typing import BinaryIO, Optional

from .preview_context import ProgressSink


class ProgressObservingReader:
    """进度观察读取器

    不做任何缓冲；EOF 和异常原样透传。只暴露 read 系列方法，
    传输层会把它当作不可定位的流按顺序读取。
    """

    def __init__(self, source: BinaryIO, sink: ProgressSink):
        self._source = source
        self._sink = sink
        self.bytes_read = 0

    def read(self, size: Optional[int] = -1) -> bytes:
        data = self._source.read(size)
        self._observe(len(data))
        return data

    def readinto(self, buffer) -> int:
        count = self._source.readinto(buffer)
        self._observe(count or 0)
        return count

    def readable(self) -> bool:
        return True

    def close(self) -> None:
        self._source.close()

    @property
    def closed(self) -> bool:
        return self._source.closed

    def _observe(self, count: int) -> None:
        self.bytes_read += count
        self._sink(count)
