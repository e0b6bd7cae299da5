"""
learn-preview CLI 主入口

提供命令行接口，支持 preview/validate/example/info 等命令。
"""

import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..config.schema import DEFAULT_CONFIG_PATH
from ..utils import configure_logging, OutputLevel
from .commands import preview, validate


app = typer.Typer(
    name="learn-preview",
    help="learn-preview - 打包课程内容并在 Learn 上构建预览",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """显示版本信息"""
    if value:
        console.print(f"learn-preview v{__version__}")
        raise typer.Exit()


def verbose_callback(verbose: bool) -> None:
    """配置详细输出"""
    configure_logging(level=OutputLevel.DEBUG if verbose else OutputLevel.INFO)


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="显示版本信息"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        callback=verbose_callback,
        help="启用详细输出"
    )
) -> None:
    """learn-preview - 打包课程内容并在 Learn 上构建预览

    使用 --help 查看可用命令的详细信息。
    """
    pass


app.command("preview", help="上传内容并构建预览")(preview.preview_command)
app.command("validate", help="验证配置文件")(validate.validate_command)


@app.command("info")
def info_command() -> None:
    """显示系统信息"""
    import boto3
    import requests

    table = Table(title="版本信息")
    table.add_column("组件", style="cyan")
    table.add_column("版本", style="green")

    table.add_row("learn-preview", __version__)
    table.add_row("Python", f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
    table.add_row("boto3", boto3.__version__)
    table.add_row("requests", requests.__version__)

    console.print(table)

    config_path = DEFAULT_CONFIG_PATH.expanduser()
    state = "[green]存在[/green]" if config_path.exists() else "[yellow]不存在（使用默认配置）[/yellow]"
    console.print(f"默认配置文件: {config_path} {state}")


@app.command("example")
def example_command(
    output: str = typer.Option(
        "example_config.yaml",
        "--output", "-o",
        help="输出配置文件路径"
    )
) -> None:
    """生成示例配置文件"""
    from ..config import save_config, ConfigError
    from ..config.schema import ApiModel, PollModel, PreviewConfig

    config = PreviewConfig(
        api=ApiModel(api_token="your-api-token"),
        poll=PollModel(max_attempts=20, interval_sec=2.0),
    )

    try:
        save_config(config, output)
    except ConfigError as e:
        console.print(f"[red]生成示例配置失败: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"✓ 示例配置文件已生成: [green]{output}[/green]")
    console.print("请填写 API 令牌，然后运行:")
    console.print(f"  [cyan]learn-preview preview ./my-curriculum -c {output}[/cyan]")


if __name__ == "__main__":
    app()
