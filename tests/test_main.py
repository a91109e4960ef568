"""
Tests for the command-line entry point.
"""

import json
import logging

import pytest

from kinetophone.main import main

CUE_SHEET = """
total_duration = 200

[[channels]]
name = "captions"

[[channels.timings]]
start = 20
end = 60
data = "first"

[[channels.timings]]
start = 100
duration = 30
data = "second"
"""


@pytest.fixture
def cue_file(tmp_path):
    path = tmp_path / 'cues.toml'
    path.write_text(CUE_SHEET)
    return str(path)


class TestQueries:

    def test_at(self, cue_file, capsys):
        assert main([cue_file, '--at', '110']) == 0
        result = json.loads(capsys.readouterr().out)
        assert result == {
            'captions': [{'name': 'captions', 'start': 100, 'duration': 30, 'data': 'second'}]
        }

    def test_between(self, cue_file, capsys):
        assert main([cue_file, '--between', '0', '60', '--channel', 'captions']) == 0
        result = json.loads(capsys.readouterr().out)
        # [20, 60) ends exactly at the query end
        assert result == {'captions': []}

    def test_unknown_channel(self, cue_file, capsys):
        assert main([cue_file, '--at', '0', '--channel', 'nope']) == 1


class TestSimulation:

    def test_simulation_logs_every_transition(self, cue_file, caplog):
        with caplog.at_level(logging.INFO, logger='kinetophone'):
            assert main([cue_file, '--simulate', '--step', '5']) == 0

        messages = [r.getMessage() for r in caplog.records if r.name == 'kinetophone.events']
        assert sum(m.startswith('ENTER') for m in messages) == 2
        assert sum(m.startswith('EXIT') for m in messages) == 2
        assert messages[-1] == 'END'

    def test_simulation_with_rate_and_resolution(self, cue_file, caplog):
        with caplog.at_level(logging.INFO, logger='kinetophone'):
            assert main([cue_file, '--simulate', '--step', '5', '--rate', '4', '--resolution', '50']) == 0

        messages = [r.getMessage() for r in caplog.records if r.name == 'kinetophone.events']
        assert sum(m.startswith('ENTER') for m in messages) == 2
        assert sum(m.startswith('EXIT') for m in messages) == 2


class TestErrors:

    def test_missing_cue_sheet(self, tmp_path):
        assert main([str(tmp_path / 'missing.toml')]) == 1

    def test_invalid_timing(self, tmp_path):
        path = tmp_path / 'bad.toml'
        path.write_text(
            'total_duration = 10\n[[channels]]\nname = "x"\n'
            '[[channels.timings]]\nstart = 1\nend = 4\nduration = 3\n'
        )
        assert main([str(path)]) == 1
