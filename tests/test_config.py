"""
Tests for YAML config loading and engine settings
"""

import pytest
import yaml

from plate_finder.utils.config import Config, EngineSettings, target_from_config


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        'tracking': {'iou_threshold': 0.5, 'stale_after': 2.0},
        'validation': {'min_confidence': 0.8, 'window_capacity': 5, 'allow_overwrite': True},
        'alerting': {'target': 'AB123'},
        'logging': {'level': 'INFO'},
    }))
    return path


class TestConfig:

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config(str(tmp_path / "missing.yaml"))

    def test_nested_get(self, config_file):
        config = Config(str(config_file))

        assert config.get('tracking', 'iou_threshold') == 0.5
        assert config.get('tracking', 'missing', default=7) == 7
        assert config.get('tracking', 'iou_threshold', 'deeper', default='x') == 'x'

    def test_sections(self, config_file):
        config = Config(str(config_file))

        assert config.validation['window_capacity'] == 5
        assert config.capture == {}
        assert config.storage == {}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert Config(str(path)).tracking == {}

    def test_env_overrides(self, config_file, monkeypatch):
        monkeypatch.setenv('PLATE_FINDER_TARGET', 'ZZ999')
        monkeypatch.setenv('PLATE_FINDER_LOG_LEVEL', 'DEBUG')

        config = Config(str(config_file))

        assert target_from_config(config) == 'ZZ999'
        assert config.logging['level'] == 'DEBUG'

    def test_from_dict(self, monkeypatch):
        monkeypatch.delenv('PLATE_FINDER_TARGET', raising=False)
        config = Config.from_dict({'tracking': {'stale_after': 3.0}})

        assert config.get('tracking', 'stale_after') == 3.0
        assert target_from_config(config) is None

    def test_bare_sections(self, tmp_path, monkeypatch):
        monkeypatch.delenv('PLATE_FINDER_TARGET', raising=False)
        monkeypatch.setenv('PLATE_FINDER_LOG_LEVEL', 'DEBUG')
        path = tmp_path / "bare.yaml"
        path.write_text("alerting:\ntracking:\nlogging:\n")

        config = Config(str(path))

        assert config.alerting == {}
        assert target_from_config(config) is None
        assert EngineSettings.from_config(config) == EngineSettings()
        assert config.logging == {'level': 'DEBUG'}

    def test_set_replaces_bare_section(self, monkeypatch):
        monkeypatch.delenv('PLATE_FINDER_TARGET', raising=False)
        config = Config.from_dict({'storage': None})

        config.set('storage', 'plates_file', 'saved.yaml')

        assert config.storage == {'plates_file': 'saved.yaml'}


class TestEngineSettings:

    def test_defaults(self):
        settings = EngineSettings()

        assert settings.min_confidence == 0.7
        assert settings.window_capacity == 3
        assert settings.live_policy == 'strict'
        assert settings.capture_policy == 'loose'
        assert not settings.allow_overwrite

    def test_from_config(self, config_file):
        settings = EngineSettings.from_config(Config(str(config_file)))

        assert settings.iou_threshold == 0.5
        assert settings.stale_after == 2.0
        assert settings.min_confidence == 0.8
        assert settings.window_capacity == 5
        assert settings.allow_overwrite
        assert settings.capture_policy == 'loose'

    @pytest.mark.parametrize("overrides", [
        {'window_capacity': 0},
        {'window_capacity': -3},
        {'stale_after': 0},
        {'min_confidence': 1.5},
        {'iou_threshold': -0.1},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            EngineSettings(**overrides)
