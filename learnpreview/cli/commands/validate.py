"""
Validate 命令实现

检查预览配置文件，并显示生效的上传与轮询设置。
"""

import json
from pathlib import Path
from typing import Any, Dict, List

import typer
from rich.console import Console
from rich.table import Table

from ...config import config_loader, ConfigError, ConfigValidationError
from ...config.schema import PreviewConfig
from ...utils import format_size


console = Console()


def _config_warnings(config: PreviewConfig) -> List[str]:
    """配置合法但运行 preview 前仍需处理的问题"""
    warnings = []
    if not config.has_api_token():
        warnings.append("未设置 api.api_token，preview 需要 --api-token 或环境变量 LEARN_API_TOKEN")
    if config.upload.endpoint_url and not config.upload.endpoint_url.startswith(('http://', 'https://')):
        warnings.append(f"upload.endpoint_url 看起来不是有效地址: {config.upload.endpoint_url}")
    return warnings


def _settings_table(config: PreviewConfig) -> Table:
    table = Table(title="生效配置")
    table.add_column("设置", style="cyan", no_wrap=True)
    table.add_column("值", style="green")

    table.add_row("Learn API", config.api.base_url)
    table.add_row("API 令牌", "已设置" if config.has_api_token() else "[yellow]未设置[/yellow]")
    table.add_row("存储区域", config.upload.region)
    table.add_row("分片大小", format_size(config.upload.part_size))
    table.add_row("临时归档", str(config.archive.path))
    table.add_row(
        "构建轮询",
        f"最多 {config.poll.max_attempts} 次，间隔 {config.poll.interval_sec:g}s 起，上限 {config.poll.max_interval_sec:g}s",
    )
    return table


def _errors_table(errors: List[Dict[str, Any]]) -> Table:
    table = Table(title="验证错误")
    table.add_column("字段", style="cyan", no_wrap=True)
    table.add_column("错误信息", style="red")
    table.add_column("输入值", style="yellow")

    for item in errors:
        location = ".".join(str(part) for part in item.get('loc', ()))
        value = str(item.get('input', ''))
        if len(value) > 40:
            value = value[:37] + "..."
        table.add_row(location or "-", item.get('msg', '未知错误'), value or "-")
    return table


def validate_command(
    config: str = typer.Argument(..., help="配置文件路径"),
    json_output: bool = typer.Option(False, "--json", help="以 JSON 输出验证结果"),
) -> None:
    """验证配置文件

    示例:
        learn-preview validate ~/.learnpreview.yaml
        learn-preview validate preview.yaml --json
    """
    config_path = Path(config).expanduser()

    try:
        loaded = config_loader.load_from_file(config_path)
    except ConfigValidationError as e:
        if json_output:
            typer.echo(json.dumps(
                {"file": str(config_path), "valid": False, "errors": e.errors},
                ensure_ascii=False, indent=2, default=str,
            ))
        else:
            console.print(f"[red]✗ {config_path} 验证失败 ({len(e.errors)} 个错误)[/red]")
            console.print(_errors_table(e.errors))
        raise typer.Exit(1)
    except ConfigError as e:
        if json_output:
            typer.echo(json.dumps(
                {"file": str(config_path), "valid": False, "errors": [{"msg": str(e)}]},
                ensure_ascii=False, indent=2,
            ))
        else:
            console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    warnings = _config_warnings(loaded)

    if json_output:
        typer.echo(json.dumps(
            {"file": str(config_path), "valid": True, "warnings": warnings},
            ensure_ascii=False, indent=2,
        ))
        return

    console.print(f"[green]✓ 配置文件验证通过[/green]: {config_path}")
    console.print(_settings_table(loaded))
    for message in warnings:
        console.print(f"[yellow]! {message}[/yellow]")
