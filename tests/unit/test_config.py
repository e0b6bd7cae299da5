"""
配置模块单元测试

测试配置 schema 验证、YAML 加载与保存。
"""

from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from learnpreview.config import (
    ConfigError,
    ConfigLoader,
    ConfigValidationError,
    load_config,
    save_config,
)
from learnpreview.config.schema import (
    ApiModel,
    ArchiveModel,
    MIN_PART_SIZE,
    PollModel,
    PreviewConfig,
    UploadModel,
)


class TestSchema:
    """配置 schema 测试"""

    def test_defaults(self):
        """测试默认值"""
        config = PreviewConfig()

        assert config.api.base_url == "https://learn-2.galvanize.com"
        assert config.api.api_token is None
        assert config.upload.region == "us-west-2"
        assert config.upload.part_size == MIN_PART_SIZE == 5 * 1024 * 1024
        assert config.upload.archive_name == "preview-curriculum.zip"
        assert config.archive.path == Path("preview-curriculum.zip")
        assert config.poll.max_attempts == 20
        assert config.autoconfig.enabled is True
        assert config.has_api_token() is False

    def test_base_url_normalized(self):
        """测试 API 地址去掉末尾斜杠"""
        assert ApiModel(base_url="https://learn.example.com/").base_url == "https://learn.example.com"

    def test_base_url_scheme_required(self):
        """测试 API 地址必须是 http(s)"""
        with pytest.raises(ValidationError):
            ApiModel(base_url="learn.example.com")

    def test_blank_token_is_none(self):
        """测试空白令牌视为未设置"""
        assert ApiModel(api_token="   ").api_token is None
        assert ApiModel(api_token=" abc ").api_token == "abc"

    def test_part_size_minimum(self):
        """测试分片大小下限"""
        with pytest.raises(ValidationError):
            UploadModel(part_size=MIN_PART_SIZE - 1)
        assert UploadModel(part_size=MIN_PART_SIZE * 2).part_size == MIN_PART_SIZE * 2

    def test_archive_name_without_separators(self):
        """测试归档名不能包含路径分隔符"""
        with pytest.raises(ValidationError):
            UploadModel(archive_name="nested/preview.zip")

    def test_archive_path_must_be_zip(self):
        """测试临时归档必须是 .zip"""
        with pytest.raises(ValidationError):
            ArchiveModel(path="preview.tar")
        assert ArchiveModel(path="out/preview.ZIP").path == Path("out/preview.ZIP")

    def test_compress_level_range(self):
        """测试压缩级别范围"""
        with pytest.raises(ValidationError):
            ArchiveModel(compress_level=10)

    def test_poll_intervals(self):
        """测试最大间隔不能小于首次间隔"""
        with pytest.raises(ValidationError):
            PollModel(interval_sec=10, max_interval_sec=5)
        with pytest.raises(ValidationError):
            PollModel(max_attempts=0)

    def test_extra_fields_forbidden(self):
        """测试未知顶层字段被拒绝"""
        with pytest.raises(ValidationError):
            PreviewConfig.from_dict({'unknown': 1})

    def test_unsupported_version(self):
        """测试不支持的配置版本"""
        with pytest.raises(ValidationError):
            PreviewConfig.from_dict({'config': {'version': 2}})

    def test_to_dict(self):
        """测试转换为字典"""
        data = PreviewConfig().to_dict()

        assert data['archive']['path'] == "preview-curriculum.zip"
        assert 'api_token' not in data['api']
        assert data['poll']['max_attempts'] == 20


class TestConfigLoader:
    """ConfigLoader 测试"""

    def test_load_from_file(self, tmp_path):
        """测试从 YAML 文件加载"""
        config_file = tmp_path / "preview.yaml"
        config_file.write_text(
            "api:\n"
            "  api_token: secret-token\n"
            "poll:\n"
            "  max_attempts: 5\n",
            encoding='utf-8',
        )

        config = ConfigLoader().load_from_file(config_file)

        assert config.api.api_token == "secret-token"
        assert config.poll.max_attempts == 5
        assert config.has_api_token() is True

    def test_relative_archive_path_resolved(self, tmp_path):
        """测试相对的归档路径相对于配置文件所在目录"""
        config_file = tmp_path / "preview.yaml"
        config_file.write_text("archive:\n  path: work/out.zip\n", encoding='utf-8')

        config = ConfigLoader().load_from_file(config_file)

        assert config.archive.path == (tmp_path / "work" / "out.zip").resolve()

    def test_empty_file_uses_defaults(self, tmp_path):
        """测试空文件使用默认值"""
        config_file = tmp_path / "preview.yaml"
        config_file.write_text("", encoding='utf-8')

        assert ConfigLoader().load_from_file(config_file) == PreviewConfig()

    def test_missing_file(self, tmp_path):
        """测试文件不存在"""
        with pytest.raises(ConfigError, match="不存在"):
            ConfigLoader().load_from_file(tmp_path / "missing.yaml")

    def test_wrong_extension(self, tmp_path):
        """测试扩展名错误"""
        config_file = tmp_path / "preview.json"
        config_file.write_text("{}", encoding='utf-8')

        with pytest.raises(ConfigError, match=".yaml"):
            ConfigLoader().load_from_file(config_file)

    def test_non_mapping_root(self, tmp_path):
        """测试根级别不是字典"""
        config_file = tmp_path / "preview.yaml"
        config_file.write_text("- a\n- b\n", encoding='utf-8')

        with pytest.raises(ConfigError, match="根级别"):
            ConfigLoader().load_from_file(config_file)

    def test_invalid_yaml(self, tmp_path):
        """测试 YAML 语法错误"""
        config_file = tmp_path / "preview.yaml"
        config_file.write_text("api: [unclosed\n", encoding='utf-8')

        with pytest.raises(ConfigError, match="YAML"):
            ConfigLoader().load_from_file(config_file)

    def test_validation_error_details(self, tmp_path):
        """测试验证错误包含字段位置"""
        config_file = tmp_path / "preview.yaml"
        config_file.write_text("upload:\n  part_size: 1024\n", encoding='utf-8')

        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load_from_file(config_file)

        assert exc_info.value.errors[0]['loc'] == ('upload', 'part_size')
        assert exc_info.value.format_errors().startswith("upload.part_size: ")
        assert "part_size" in exc_info.value.format_errors_json()

    def test_default_file_missing(self, tmp_path):
        """测试默认配置文件不存在时使用默认配置"""
        with patch("learnpreview.config.loader.DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml"):
            assert load_config() == PreviewConfig()

    def test_default_file_present(self, tmp_path):
        """测试存在默认配置文件时加载它"""
        default_file = tmp_path / "default.yaml"
        default_file.write_text("api:\n  api_token: from-home\n", encoding='utf-8')

        with patch("learnpreview.config.loader.DEFAULT_CONFIG_PATH", default_file):
            assert load_config().api.api_token == "from-home"

    def test_save_and_reload(self, tmp_path):
        """测试保存后重新加载"""
        config = PreviewConfig.from_dict({
            'api': {'api_token': 'abc'},
            'upload': {'max_concurrency': 8},
        })
        output = tmp_path / "nested" / "saved.yaml"

        save_config(config, output)
        loaded = load_config(output)

        assert loaded.api.api_token == 'abc'
        assert loaded.upload.max_concurrency == 8

