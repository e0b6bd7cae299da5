"""
归档器

遍历文件或目录，生成带确定性条目命名的 zip 归档，并提供临时归档文件的作用域管理。
"""

import os
import stat
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Union

from ..utils import format_size, to_archive_name
from ..utils.logging import debug, warning, LogStage
from .preview_context import ArchiveError


class ArchiveProgressCallback(Protocol):
    """归档进度回调协议"""

    def __call__(self, current: int, total: int, current_file: Optional[str] = None) -> None:
        """
        Args:
            current: 已写入的条目数
            total: 条目总数
            current_file: 当前条目在归档中的名称
        """
        ...


@dataclass
class ArchiveEntry:
    """归档条目"""
    arcname: str  # 归档内路径（正斜杠分隔，目录以 / 结尾）
    source: Path  # 源文件绝对路径
    mode: int  # 权限位
    is_directory: bool = False
    size: int = 0  # 文件大小（字节），目录为 0
    mtime: float = 0.0


@dataclass
class ArchiveResult:
    """归档结果"""
    path: Path
    entries: List[ArchiveEntry]
    size: int  # 归档文件字节数
    is_directory: bool  # 源是否为目录

    @property
    def total_size(self) -> int:
        """源文件总大小（未压缩）"""
        return sum(e.size for e in self.entries if not e.is_directory)

    @property
    def file_count(self) -> int:
        return sum(1 for e in self.entries if not e.is_directory)


class Archiver:
    """归档器

    目录源的条目统一以目录名为根，单文件源不加前缀。
    同一层级内按名称排序遍历，相同内容和元数据的目录生成逐字节相同的归档。
    """

    def __init__(self, compress_level: int = 6):
        self.compress_level = min(9, max(0, compress_level))

    def collect(self, source: Union[str, Path]) -> List[ArchiveEntry]:
        """收集要归档的条目

        Raises:
            ArchiveError: 源路径不存在或无法读取
        """
        source_path = Path(source)
        if not source_path.exists():
            raise ArchiveError(f"源路径不存在: {source_path}")

        # 条目名取用户给出的路径名（符号链接不换成目标名，"." 对应当前目录名），只在遍历时解析
        root_name = source_path.absolute().name
        source_path = source_path.resolve()

        try:
            if source_path.is_file():
                entry = self._create_entry(source_path, root_name)
                return [entry] if entry else []

            # 以目录名为归档根，解压后得到单一顶层目录
            entries = []
            for item in self._walk_directory(source_path):
                relative = item.relative_to(source_path)
                arcname = root_name if relative == Path('.') else f"{root_name}/{to_archive_name(relative)}"
                entry = self._create_entry(item, arcname)
                if entry:
                    entries.append(entry)
            return entries

        except OSError as e:
            raise ArchiveError(f"读取源路径失败 {source_path}: {e}") from e

    def create(
        self,
        source: Union[str, Path],
        destination: Union[str, Path],
        progress_callback: Optional[ArchiveProgressCallback] = None,
    ) -> ArchiveResult:
        """把源路径归档到目标文件

        写入器总会被关闭；归档中途失败时目标文件可能不完整，由调用方负责清理。

        Args:
            source: 文件或目录路径
            destination: 目标 zip 文件路径
            progress_callback: 进度回调

        Returns:
            ArchiveResult: 归档结果

        Raises:
            ArchiveError: 源不存在、条目不可读或目标无法创建
        """
        source_path = Path(source)
        destination = Path(destination)
        entries = self.collect(source_path)

        try:
            archive = zipfile.ZipFile(
                destination, 'w', zipfile.ZIP_DEFLATED,
                compresslevel=self.compress_level,
                strict_timestamps=False,
            )
        except OSError as e:
            raise ArchiveError(f"无法创建归档文件 {destination}: {e}") from e

        with archive:
            for index, entry in enumerate(entries):
                if progress_callback:
                    progress_callback(index, len(entries), entry.arcname)
                try:
                    self._write_entry(archive, entry)
                except OSError as e:
                    raise ArchiveError(f"写入归档条目失败 {entry.source}: {e}") from e

        if progress_callback:
            progress_callback(len(entries), len(entries), None)

        size = destination.stat().st_size
        debug(f"归档完成: {destination} 条目={len(entries)} 大小={format_size(size)}", stage=LogStage.ARCHIVE)

        return ArchiveResult(
            path=destination,
            entries=entries,
            size=size,
            is_directory=source_path.is_dir(),
        )

    def _walk_directory(self, directory: Path) -> Iterator[Path]:
        """深度优先遍历目录，先返回目录本身，子项按名称排序"""
        yield directory

        for item in sorted(directory.iterdir(), key=lambda p: p.name):
            if item.is_dir() and not item.is_symlink():
                yield from self._walk_directory(item)
            else:
                yield item

    def _create_entry(self, path: Path, arcname: str) -> Optional[ArchiveEntry]:
        """创建归档条目；符号链接和特殊文件返回 None"""
        st = path.lstat()

        if stat.S_ISDIR(st.st_mode):
            return ArchiveEntry(
                arcname=arcname.rstrip('/') + '/',
                source=path,
                mode=stat.S_IMODE(st.st_mode),
                is_directory=True,
                mtime=st.st_mtime,
            )

        if stat.S_ISREG(st.st_mode):
            return ArchiveEntry(
                arcname=arcname,
                source=path,
                mode=stat.S_IMODE(st.st_mode),
                size=st.st_size,
                mtime=st.st_mtime,
            )

        debug(f"跳过非常规文件: {path}", stage=LogStage.ARCHIVE)
        return None

    def _write_entry(self, archive: zipfile.ZipFile, entry: ArchiveEntry) -> None:
        """写入单个条目：目录只记录结构，文件使用 DEFLATE 压缩"""
        if entry.is_directory:
            archive.write(entry.source, entry.arcname, compress_type=zipfile.ZIP_STORED)
        else:
            archive.write(entry.source, entry.arcname, compress_type=zipfile.ZIP_DEFLATED)


def list_archive(path: Union[str, Path]) -> List[str]:
    """列出归档中的条目名称"""
    with zipfile.ZipFile(path, 'r') as zf:
        return zf.namelist()


def remove_archive(path: Union[str, Path]) -> bool:
    """删除临时归档文件

    Returns:
        bool: 文件存在且已删除时返回 True
    """
    try:
        os.remove(path)
        debug(f"已删除临时归档: {path}", stage=LogStage.CLEANUP)
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        warning(f"清理临时归档失败 {path}: {e}", stage=LogStage.CLEANUP)
        return False


@contextmanager
def temporary_archive(path: Union[str, Path]) -> Iterator[Path]:
    """临时归档文件的作用域

    进入时清除同名残留，退出时（无论成功、失败还是取消）删除文件。
    """
    archive_path = Path(path)
    remove_archive(archive_path)
    try:
        yield archive_path
    finally:
        remove_archive(archive_path)
