"""
课程配置自动生成

目录中既没有 config.yaml 也没有 config.yml 时，根据目录结构生成 autoconfig.yaml，
让 Learn 能够构建没有手写配置的课程内容。
"""

import hashlib
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

from ruamel.yaml import YAML

from .utils.logging import info, warning, LogStage

CONFIG_NAMES = ("config.yaml", "config.yml")
AUTOCONFIG_NAME = "autoconfig.yaml"
DEFAULT_UNITS_DIR = "units"
DEFAULT_UNIT_NAME = "Unit 1"


def has_config(target: Union[str, Path]) -> bool:
    """目录中是否已有手写配置"""
    target = Path(target)
    return any((target / name).is_file() for name in CONFIG_NAMES)


def ensure_config(target: Union[str, Path], units_dir: Optional[str] = None) -> Optional[Path]:
    """缺少配置时生成 autoconfig.yaml

    Returns:
        Optional[Path]: 生成的文件路径；已有配置时返回 None
    """
    target = Path(target)
    if has_config(target):
        warning("已存在课程配置，不会自动生成", stage=LogStage.CONFIG)
        return None

    warning("未找到课程配置，将自动生成 autoconfig.yaml", stage=LogStage.CONFIG)
    return create_autoconfig(target, units_dir)


def formatted_name(name: str) -> str:
    """把路径转换为标题: 取最后一段，去掉扩展名，按 - 和 _ 分词后首字母大写"""
    last = name.rstrip('/').split('/')[-1]
    stem = last.split('.')[0]
    words = [w for w in re.split(r'[-_]', stem) if w]
    return " ".join(w[:1].upper() + w[1:] for w in words)


def md5_uid(value: str) -> str:
    return hashlib.md5(value.encode('utf-8')).hexdigest()


def collect_units(target: Union[str, Path], units_dir: Optional[str] = None) -> Dict[str, List[str]]:
    """按单元收集 Markdown 内容文件

    存在单元目录时，其顶层 .md 文件归入以目录名（默认 Unit 1）命名的单元，
    每个子目录各为一个单元；否则目标目录下每个子目录（.git 除外）各为一个单元。
    路径均相对于目标目录，使用正斜杠。
    """
    root = Path(target)
    unit_name = units_dir or DEFAULT_UNIT_NAME
    units_path = root / (units_dir or DEFAULT_UNITS_DIR)

    units: Dict[str, List[str]] = {}
    search_root = root

    if units_path.is_dir():
        search_root = units_path
        top_level = sorted(
            p.relative_to(root).as_posix()
            for p in units_path.iterdir()
            if p.is_file() and p.suffix == '.md'
        )
        if top_level:
            units[unit_name] = top_level

    for directory in sorted(p for p in search_root.iterdir() if p.is_dir()):
        if directory.name == '.git':
            continue
        paths = sorted(
            md.relative_to(root).as_posix()
            for md in directory.rglob('*.md')
            if md.is_file()
        )
        if paths:
            units.setdefault(directory.name, []).extend(paths)

    return units


def build_autoconfig(units: Dict[str, List[str]]) -> Dict[str, list]:
    """根据单元映射生成配置数据"""
    standards = []
    for unit, paths in units.items():
        title = formatted_name(unit)
        standards.append({
            'Title': title,
            'Description': title,
            'UID': md5_uid(title),
            'SuccessCriteria': ['success criteria'],
            'ContentFiles': [
                {
                    'Type': 'Lesson',
                    'UID': md5_uid(title + path),
                    'Path': f"/{path}",
                }
                for path in paths
                if path != 'README.md'
            ],
        })
    return {'Standards': standards}


def create_autoconfig(target: Union[str, Path], units_dir: Optional[str] = None) -> Path:
    """生成 autoconfig.yaml，已有的旧文件会被替换

    Raises:
        OSError: 目录不可读或文件无法写入
    """
    target = Path(target)
    output_path = target / AUTOCONFIG_NAME
    if output_path.exists():
        output_path.unlink()

    data = build_autoconfig(collect_units(target, units_dir))

    yaml = YAML()
    yaml.default_flow_style = False
    yaml.explicit_start = True
    with open(output_path, 'w', encoding='utf-8') as f:
        yaml.dump(data, f)

    info(f"已生成 {output_path}，包含 {len(data['Standards'])} 个单元", stage=LogStage.CONFIG)
    return output_path
