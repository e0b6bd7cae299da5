"""
Preview 命令实现

打包本地课程内容，上传到 Learn 并等待预览构建完成。
"""

import threading
import traceback
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from ...autoconfig import ensure_config
from ...config import load_config, ConfigError, ConfigValidationError
from ...preview.steps import notify_step, upload_step
from ...utils import expand_path
from ...utils.logging import get_output_facade, set_log_level, set_log_file, OutputLevel


console = Console()

# 每种错误分类对应的处理建议
ERROR_HINTS = {
    "io": "请确认路径存在且可读，并且当前目录可写。",
    "digest": "读取临时归档失败，请重新运行。",
    "digest_rewind": "临时归档在计算摘要后无法复位，请重新运行。",
    "auth": "请检查 ~/.learnpreview.yaml 中的 api.api_token，或使用 --api-token 传入。",
    "upload": "上传到存储失败，请检查网络后重试。",
    "notify": "Learn 未能接收预览请求，请稍后重试。",
    "poll": "查询构建状态时连接中断，请稍后重试。",
    "build_failed": "Learn 构建预览失败，请检查课程内容和 config.yaml。",
    "poll_exhausted": "构建仍在进行中，请稍后重新运行 preview。",
    "cancelled": "预览已取消。",
}


class PreviewDisplay:
    """上传进度条与构建等待动画

    Progress 和 Status 都是 Live 显示，同一时间只能有一个处于活动状态。
    """

    def __init__(self, archive_path: Path):
        self.archive_path = archive_path
        self.progress = Progress(
            TextColumn("[cyan]上传中[/cyan]"),
            BarColumn(bar_width=None),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=get_output_facade().console,
        )
        self.task_id = None
        self.status = None
        self._lock = threading.Lock()

    def on_stage(self, stage: str, current: int, total: int, message: str = "") -> None:
        """阶段进度回调"""
        if stage == upload_step.STAGE_LABEL and self.task_id is None:
            size = self.archive_path.stat().st_size if self.archive_path.exists() else None
            self.progress.start()
            self.task_id = self.progress.add_task("upload", total=size)
        elif stage == notify_step.STAGE_LABEL and self.status is None:
            self._stop_progress()
            self.status = get_output_facade().console.status("[green]Learn 正在构建预览...[/green]", spinner="dots")
            self.status.start()

    def on_bytes(self, increment: int) -> None:
        """上传字节进度回调，可能在传输线程中调用"""
        with self._lock:
            if self.task_id is not None:
                self.progress.update(self.task_id, advance=increment)

    def _stop_progress(self) -> None:
        if self.task_id is not None:
            self.progress.stop()

    def close(self) -> None:
        self._stop_progress()
        if self.status is not None:
            self.status.stop()


def preview_command(
    path: str = typer.Argument(..., help="要预览的文件或目录"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="配置文件路径（默认 ~/.learnpreview.yaml）"),
    api_token: Optional[str] = typer.Option(None, "--api-token", envvar="LEARN_API_TOKEN", help="Learn API 令牌"),
    archive_path: Optional[str] = typer.Option(None, "--archive-path", help="临时归档文件路径"),
    units_dir: Optional[str] = typer.Option(None, "--units-dir", "-u", help="自动生成配置时使用的单元目录"),
    no_autoconfig: bool = typer.Option(False, "--no-autoconfig", help="不自动生成 autoconfig.yaml"),
    open_browser: bool = typer.Option(True, "--open/--no-open", help="构建完成后在浏览器中打开预览"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="日志输出文件"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出详细调试日志 (DEBUG 级别)"),
) -> None:
    """上传内容并构建预览

    接受一个目录或单个文件的路径，上传到 Learn 后等待预览构建完成并打开预览地址。

    示例:
        learn-preview preview ./my-curriculum
        learn-preview preview ./lesson.md --no-open
    """
    from ...preview.previewer import Previewer

    if verbose:
        set_log_level(OutputLevel.DEBUG)

    if log_file:
        try:
            set_log_file(log_file)
        except OSError:
            console.print(f"[yellow]无法写入日志文件: {log_file}[/yellow]")

    source = expand_path(path)
    if not source.exists():
        console.print(f"[red]路径不存在: {source}[/red]")
        raise typer.Exit(1)

    try:
        config_obj = load_config(config)
    except ConfigValidationError as e:
        console.print("[red]配置验证失败:[/red]")
        console.print(e.format_errors())
        raise typer.Exit(1)
    except ConfigError as e:
        console.print(f"[red]配置错误[/red]: {e}")
        raise typer.Exit(1)

    if api_token:
        config_obj.api.api_token = api_token

    if not config_obj.has_api_token():
        console.print("[red]请先设置 API 令牌[/red]: 在 ~/.learnpreview.yaml 中设置 api.api_token，或使用 --api-token")
        raise typer.Exit(1)

    if source.is_dir() and config_obj.autoconfig.enabled and not no_autoconfig:
        try:
            ensure_config(source, units_dir or config_obj.autoconfig.units_dir)
        except OSError as e:
            console.print(f"[yellow]自动生成配置失败，继续上传: {e}[/yellow]")

    target_archive = expand_path(archive_path) if archive_path else Path(config_obj.archive.path)
    display = PreviewDisplay(target_archive)
    previewer = Previewer(config_obj)

    try:
        result = previewer.preview(
            source,
            archive_path=target_archive,
            progress_callback=display.on_stage,
            upload_progress=display.on_bytes,
        )
    except KeyboardInterrupt:
        console.print("[yellow]预览已取消[/yellow]")
        raise typer.Exit(130)
    except Exception as e:
        console.print(f"[red]✗ 预览过程中发生意外错误[/red]: {e}")
        if log_file:
            console.print(f"[yellow]详细错误信息:[/yellow]\n{traceback.format_exc()}")
        raise typer.Exit(1)
    finally:
        display.close()

    if not result.success:
        console.print(f"[red]✗ 预览失败[/red]: {result.error}")
        hint = ERROR_HINTS.get(result.error_kind or "")
        if hint:
            console.print(f"[yellow]{hint}[/yellow]")
        raise typer.Exit(1)

    console.print(f"[green]✓ 预览上传成功！[/green] 预览地址: [cyan]{result.preview_url}[/cyan]")

    if open_browser and result.preview_url:
        typer.launch(result.preview_url)
