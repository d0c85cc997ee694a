"""Tests for configuration loading and template generation."""

import pytest
import yaml

from disapatch.core.config import ConfigManager
from disapatch.core.exceptions import ConfigurationError


def write_config(tmp_path, text: str):
    path = tmp_path / "disa-patch.yaml"
    path.write_text(text)
    return str(path)


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            ConfigManager().load_config(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = write_config(tmp_path, "portal: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            ConfigManager().load_config(path)

    def test_values_merge_over_defaults(self, tmp_path):
        path = write_config(tmp_path, "portal:\n  timeout: 10\nenumeration:\n  repository: MicrosoftToolkits\n")
        manager = ConfigManager()
        manager.load_config(path)

        assert manager.get_value("portal.timeout") == 10
        assert manager.get_value("portal.retries") == 1
        assert manager.get_value("enumeration.repository") == "MicrosoftToolkits"
        assert manager.get_section("download")["path"] == "./downloads"

    def test_wrong_type(self, tmp_path):
        path = write_config(tmp_path, "portal:\n  timeout: soon\n")
        with pytest.raises(ConfigurationError, match="portal.timeout"):
            ConfigManager().load_config(path)

    def test_bool_is_not_a_number(self, tmp_path):
        path = write_config(tmp_path, "portal:\n  retries: true\n")
        with pytest.raises(ConfigurationError, match="portal.retries"):
            ConfigManager().load_config(path)

    def test_unknown_repository(self, tmp_path):
        path = write_config(tmp_path, "enumeration:\n  repository: LinuxPatches\n")
        with pytest.raises(ConfigurationError, match="must be one of"):
            ConfigManager().load_config(path)

    def test_row_cache_key_choices(self, tmp_path):
        path = write_config(tmp_path, "enumeration:\n  row_cache_key: url\n")
        with pytest.raises(ConfigurationError):
            ConfigManager().load_config(path)


def test_defaults_without_file():
    manager = ConfigManager()
    assert manager.get_value("portal.base_url") == "https://patches.csd.disa.mil"
    assert manager.get_value("auth.thumbprint") is None
    assert manager.get_value("missing.key", "fallback") == "fallback"


def test_template_round_trips_through_loader(tmp_path):
    manager = ConfigManager()
    config_file = manager.generate_config_template(str(tmp_path / "out"))

    assert config_file.endswith("disa-patch.yaml")
    content = (tmp_path / "out" / "disa-patch.yaml").read_text()
    assert content.startswith("# DISA Patch Configuration File")
    assert yaml.safe_load(content)["enumeration"]["row_cache_key"] == "title"

    # A generated template is itself a valid configuration
    ConfigManager().load_config(config_file)
