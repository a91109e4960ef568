"""
Unit tests for timing normalization and public projection.
"""

import pytest

from kinetophone.errors import ConflictingBounds, InvalidTiming
from kinetophone.timing.normalizer import (
    TimingDeclaration,
    normalize_timing,
    project_timing,
)


class TestNormalizeTiming:
    """Test declaration -> [start, end) rules."""

    def test_point_event_is_one_unit_wide(self):
        timing = normalize_timing({'start': 7})
        assert (timing.start, timing.end) == (7, 8)

    def test_duration_sets_end(self):
        timing = normalize_timing({'start': 2, 'duration': 3})
        assert (timing.start, timing.end) == (2, 5)

    def test_explicit_end(self):
        timing = normalize_timing({'start': 5, 'end': 10, 'data': 'hi'})
        assert (timing.start, timing.end) == (5, 10)
        assert timing.data == 'hi'

    def test_end_and_duration_conflict(self):
        with pytest.raises(ConflictingBounds):
            normalize_timing({'start': 1, 'end': 4, 'duration': 3})

    def test_missing_start(self):
        with pytest.raises(InvalidTiming):
            normalize_timing({'end': 4})

    def test_empty_interval_rejected(self):
        with pytest.raises(InvalidTiming):
            normalize_timing({'start': 4, 'end': 4})
        with pytest.raises(InvalidTiming):
            normalize_timing({'start': 4, 'duration': 0})

    def test_accepts_dataclass_declaration(self):
        timing = normalize_timing(TimingDeclaration(start=1.5, duration=0.5))
        assert timing.end == 2.0

    def test_identical_declarations_are_distinct(self):
        a = normalize_timing({'start': 1, 'end': 2})
        b = normalize_timing({'start': 1, 'end': 2})
        assert a is not b
        assert a != b

    def test_contains_is_half_open(self):
        timing = normalize_timing({'start': 5, 'end': 10})
        assert not timing.contains(4.999)
        assert timing.contains(5)
        assert timing.contains(9.999)
        assert not timing.contains(10)


class TestProjectTiming:
    """Only declared fields are echoed back to listeners."""

    def test_projection_with_end(self):
        timing = normalize_timing({'start': 5, 'end': 10, 'data': 'hi'})
        assert project_timing('captions', timing) == {
            'name': 'captions', 'start': 5, 'data': 'hi', 'end': 10,
        }

    def test_projection_with_duration_has_no_end(self):
        timing = normalize_timing({'start': 2, 'duration': 3})
        assert project_timing('x', timing) == {'name': 'x', 'start': 2, 'duration': 3}

    def test_point_projection_has_no_synthesized_end(self):
        timing = normalize_timing({'start': 2})
        assert project_timing('x', timing) == {'name': 'x', 'start': 2}

    def test_falsy_data_is_kept(self):
        timing = normalize_timing({'start': 2, 'data': 0})
        assert project_timing('x', timing)['data'] == 0
