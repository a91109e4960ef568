"""
Tests for configuration and cue sheet loading.
"""

import pytest

from kinetophone.config import DEFAULT_CONFIG, load_config, load_cue_sheet
from kinetophone.errors import ConfigError

CUE_SHEET = """
total_duration = 12000

[[channels]]
name = "captions"

[[channels.timings]]
start = 500
end = 2500
data = "Hello"

[[channels.timings]]
start = 3000
duration = 1000

[[channels]]
name = "chapters"
"""


@pytest.fixture
def cue_file(tmp_path):
    path = tmp_path / 'cues.toml'
    path.write_text(CUE_SHEET)
    return path


class TestLoadConfig:

    def test_defaults_without_file(self):
        config = load_config(None)
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_missing_file_falls_back_to_defaults(self, tmp_path):
        assert load_config(str(tmp_path / 'absent.toml')) == DEFAULT_CONFIG

    def test_file_overrides_merge_with_defaults(self, tmp_path):
        path = tmp_path / 'config.toml'
        path.write_text('[playback]\ntime_update_resolution = 100\n\n[extra]\nkey = 1\n')

        config = load_config(str(path))

        assert config['playback']['time_update_resolution'] == 100
        assert config['playback']['rate'] == 1.0
        assert config['extra'] == {'key': 1}
        assert DEFAULT_CONFIG['playback']['time_update_resolution'] == 33

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / 'config.toml'
        path.write_text('[playback\n')
        with pytest.raises(ConfigError):
            load_config(str(path))


class TestLoadCueSheet:

    def test_load(self, cue_file):
        channels, total_duration = load_cue_sheet(str(cue_file))
        assert total_duration == 12000
        assert [c['name'] for c in channels] == ['captions', 'chapters']
        assert channels[0]['timings'][0] == {'start': 500, 'end': 2500, 'data': 'Hello'}
        assert channels[0]['timings'][1] == {'start': 3000, 'duration': 1000}

    def test_missing_total_duration(self, tmp_path):
        path = tmp_path / 'cues.toml'
        path.write_text('[[channels]]\nname = "x"\n')
        with pytest.raises(ConfigError):
            load_cue_sheet(str(path))

    def test_channel_without_name(self, tmp_path):
        path = tmp_path / 'cues.toml'
        path.write_text('total_duration = 10\n[[channels]]\nfoo = 1\n')
        with pytest.raises(ConfigError):
            load_cue_sheet(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_cue_sheet(str(tmp_path / 'nope.toml'))
