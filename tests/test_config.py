"""Tests for scheduler configuration loading."""

from pathlib import Path

import pytest
import yaml

from scoregraph.core import config as config_module
from scoregraph.core.config import SchedulerConfig, load_config
from scoregraph.core.errors import ConfigError


class TestSchedulerConfig:
    def test_defaults(self):
        config = SchedulerConfig()
        assert config.max_workers is None
        assert config.node_timeout is None
        assert config.raise_on_failure is False

    @pytest.mark.parametrize(
        "fields",
        [{"max_workers": 0}, {"node_timeout": 0}, {"node_timeout": -1}, {"retries": 3}],
    )
    def test_invalid_values(self, fields):
        with pytest.raises(ValueError):
            SchedulerConfig(**fields)

    def test_frozen(self):
        with pytest.raises(ValueError):
            SchedulerConfig().max_workers = 4


class TestLoadConfig:
    def test_explicit_path(self, config_file):
        config = load_config(config_file)
        assert config.max_workers == 2
        assert config.node_timeout == 5.0

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"scheduler": {"max_workers": -2}}))
        with pytest.raises(ConfigError, match="Invalid scheduler config"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_config(path)

    def test_missing_section_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"other_tool": {"x": 1}}))
        assert load_config(path) == SchedulerConfig()

    def test_search_paths(self, tmp_path, monkeypatch):
        first = tmp_path / "project.yaml"
        second = tmp_path / "home.yaml"
        second.write_text(yaml.dump({"scheduler": {"max_workers": 8}}))
        monkeypatch.setattr(config_module, "CONFIG_SEARCH_PATHS", [first, second])

        assert load_config().max_workers == 8

        first.write_text(yaml.dump({"scheduler": {"max_workers": 3}}))
        assert load_config().max_workers == 3

    def test_no_files_found(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config_module, "CONFIG_SEARCH_PATHS", [Path(tmp_path / "absent.yaml")])
        assert load_config() == SchedulerConfig()
