#!/usr/bin/env python3
"""
Tests for configuration loading and validation.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pytest

from config_loader import ConfigLoader, TTSOverlayConfig, default_config_path


def write_config(tmp_path, content):
    path = tmp_path / 'config.toml'
    path.write_text(content)
    return path


class TestConfigLoader:
    """Test ConfigLoader"""

    def test_creates_default_when_missing(self, tmp_path):
        path = tmp_path / 'nested' / 'config.toml'
        config = ConfigLoader(path).load()

        assert path.exists()
        assert config.replacements == {}
        assert config.speech.renderer == 'espeak'
        assert config.speech.player == 'paplay'
        assert config.daemon.max_workers == 8

        # The generated file must load back cleanly
        assert ConfigLoader(path).load().replacements == {}

    def test_replacements_keep_document_order(self, tmp_path):
        path = write_config(tmp_path, (
            '[replacements]\n'
            'zzz = "last letter"\n'
            'brb = "be right back"\n'
            'afk = "away from keyboard"\n'
        ))
        config = ConfigLoader(path).load()
        assert list(config.replacements) == ['zzz', 'brb', 'afk']
        assert config.replacements['brb'] == 'be right back'

    def test_optional_sections(self, tmp_path):
        path = write_config(tmp_path, (
            '[speech]\n'
            'renderer = "espeak-ng"\n'
            'player = "aplay"\n'
            '\n'
            '[daemon]\n'
            'max_workers = 2\n'
            'read_timeout = 1.5\n'
        ))
        config = ConfigLoader(path).load()
        assert config.replacements == {}
        assert config.speech.renderer == 'espeak-ng'
        assert config.speech.player == 'aplay'
        assert config.daemon.max_workers == 2
        assert config.daemon.read_timeout == 1.5

    def test_invalid_toml_exits(self, tmp_path, capsys):
        path = write_config(tmp_path, '[replacements\nbrb = ')
        with pytest.raises(SystemExit) as exc:
            ConfigLoader(path).load()
        assert exc.value.code == 1
        assert 'Invalid TOML syntax' in capsys.readouterr().err

    def test_non_string_replacement_exits(self, tmp_path, capsys):
        path = write_config(tmp_path, '[replacements]\nbrb = 3\n')
        with pytest.raises(SystemExit):
            ConfigLoader(path).load()
        assert "Invalid replacement for 'brb'" in capsys.readouterr().err

    def test_replacements_not_a_table_exits(self, tmp_path):
        path = write_config(tmp_path, 'replacements = "nope"\n')
        with pytest.raises(SystemExit):
            ConfigLoader(path).load()

    def test_empty_renderer_exits(self, tmp_path):
        path = write_config(tmp_path, '[speech]\nrenderer = ""\n')
        with pytest.raises(SystemExit):
            ConfigLoader(path).load()

    @pytest.mark.parametrize('value', ['0', '65', '"many"'])
    def test_max_workers_out_of_range_exits(self, tmp_path, value):
        path = write_config(tmp_path, f'[daemon]\nmax_workers = {value}\n')
        with pytest.raises(SystemExit):
            ConfigLoader(path).load()

    def test_read_timeout_out_of_range_exits(self, tmp_path):
        path = write_config(tmp_path, '[daemon]\nread_timeout = 0.0\n')
        with pytest.raises(SystemExit):
            ConfigLoader(path).load()


class TestDefaults:
    """Test default paths and dataclass defaults"""

    def test_default_config_path_uses_xdg(self, monkeypatch, tmp_path):
        monkeypatch.setenv('XDG_CONFIG_HOME', str(tmp_path))
        assert default_config_path() == tmp_path / 'tts-overlay' / 'config.toml'

    def test_default_config_path_fallback(self, monkeypatch):
        monkeypatch.delenv('XDG_CONFIG_HOME', raising=False)
        path = default_config_path()
        assert path.parts[-3:] == ('.config', 'tts-overlay', 'config.toml')

    def test_config_dataclass_defaults(self):
        config = TTSOverlayConfig(replacements={'a': 'b'})
        assert config.speech.renderer == 'espeak'
        assert config.daemon.read_timeout == 5.0


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
