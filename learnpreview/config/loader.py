"""
配置加载器

读取 ~/.learnpreview.yaml（或显式指定的文件），用 schema 验证后返回配置；
也负责把配置写回 YAML。
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .schema import DEFAULT_CONFIG_PATH, PreviewConfig

YAML_SUFFIXES = ('.yaml', '.yml')


class ConfigError(Exception):
    """配置文件无法读取或解析"""
    pass


class ConfigValidationError(ConfigError):
    """配置内容未通过 schema 验证，errors 为 pydantic 的错误列表"""

    def __init__(self, message: str, errors: List[Dict[str, Any]]):
        super().__init__(message)
        self.errors = errors

    def format_errors(self) -> str:
        """每个错误一行: 字段路径: 原因 (输入值)"""
        lines = []
        for item in self.errors:
            field_path = ".".join(str(part) for part in item.get('loc', ())) or "<root>"
            line = f"{field_path}: {item.get('msg', '未知错误')}"
            if item.get('input') not in (None, '', {}):
                line += f" (输入值: {item['input']!r})"
            lines.append(line)
        return "\n".join(lines)

    def format_errors_json(self) -> str:
        return json.dumps(self.errors, ensure_ascii=False, indent=2, default=str)


class ConfigLoader:
    """YAML 配置加载器"""

    def __init__(self):
        self.yaml = YAML()
        self.yaml.default_flow_style = False
        self.yaml.width = 4096

    def load_from_file(self, config_path: Union[str, Path]) -> PreviewConfig:
        """读取并验证配置文件

        空文件等同于全部使用默认值；archive.path 的相对路径以配置文件所在目录为基准。

        Raises:
            ConfigError: 文件不存在、不是 YAML 或无法解析
            ConfigValidationError: 内容未通过验证
        """
        config_path = Path(config_path).expanduser()

        if not config_path.is_file():
            raise ConfigError(f"配置文件不存在: {config_path}")
        if config_path.suffix.lower() not in YAML_SUFFIXES:
            raise ConfigError(f"配置文件必须是 .yaml 或 .yml 格式: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                raw_data = self.yaml.load(f)
        except YAMLError as e:
            raise ConfigError(f"YAML 解析错误: {e}") from e
        except OSError as e:
            raise ConfigError(f"文件读取错误: {e}") from e

        if raw_data is None:
            raw_data = {}
        if not isinstance(raw_data, dict):
            raise ConfigError("配置文件根级别必须是对象/字典格式")

        return self.load_from_dict(raw_data, base_path=config_path.parent)

    def load_default(self, config_path: Optional[Union[str, Path]] = None) -> PreviewConfig:
        """加载显式指定的文件；未指定时尝试默认位置，不存在则使用默认配置"""
        if config_path is not None:
            return self.load_from_file(config_path)

        default_path = DEFAULT_CONFIG_PATH.expanduser()
        if default_path.exists():
            return self.load_from_file(default_path)
        return PreviewConfig()

    def load_from_dict(self, data: Dict[str, Any], base_path: Optional[Path] = None) -> PreviewConfig:
        """验证字典形式的配置

        Raises:
            ConfigValidationError: 内容未通过验证
        """
        if base_path is not None:
            data = self._with_resolved_archive_path(data, base_path)

        try:
            return PreviewConfig.from_dict(data)
        except ValidationError as e:
            raise ConfigValidationError("配置验证失败", list(e.errors())) from e

    def save_to_file(self, config: PreviewConfig, output_path: Union[str, Path]) -> None:
        """写出配置文件，必要时创建父目录

        Raises:
            ConfigError: 写入失败
        """
        output_path = Path(output_path).expanduser()

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w', encoding='utf-8') as f:
                self.yaml.dump(config.to_dict(), f)
        except OSError as e:
            raise ConfigError(f"保存配置文件失败: {e}") from e

    @staticmethod
    def _with_resolved_archive_path(data: Dict[str, Any], base_path: Path) -> Dict[str, Any]:
        archive = data.get('archive')
        if not isinstance(archive, dict):
            return data

        path_value = archive.get('path')
        if not isinstance(path_value, str) or not path_value or Path(path_value).is_absolute():
            return data

        resolved = copy.deepcopy(dict(data))
        resolved['archive'] = dict(archive, path=str((base_path / path_value).resolve()))
        return resolved


# 全局加载器实例
config_loader = ConfigLoader()


def load_config(config_path: Optional[Union[str, Path]] = None) -> PreviewConfig:
    """便捷函数：加载配置，未指定路径时使用 ~/.learnpreview.yaml"""
    return config_loader.load_default(config_path)


def save_config(config: PreviewConfig, output_path: Union[str, Path]) -> None:
    """便捷函数：保存配置文件"""
    config_loader.save_to_file(config, output_path)
