"""
Unit tests for the Event Bus.
"""

import pytest

from kinetophone.engine.events import EventBus


class TestEventBus:

    def test_emit_in_registration_order(self):
        bus = EventBus()
        calls = []
        bus.on('x', lambda v: calls.append(('first', v)))
        bus.on('x', lambda v: calls.append(('second', v)))

        assert bus.emit('x', 1) is True
        assert calls == [('first', 1), ('second', 1)]

    def test_emit_without_listeners(self):
        assert EventBus().emit('nothing') is False

    def test_once(self):
        bus = EventBus()
        calls = []
        bus.once('x', calls.append)
        bus.emit('x', 1)
        bus.emit('x', 2)
        assert calls == [1]
        assert bus.listener_count('x') == 0

    def test_off_specific_and_all(self):
        bus = EventBus()
        a, b = [], []
        bus.on('x', a.append)
        bus.on('x', b.append)

        bus.off('x', a.append)
        assert bus.listeners('x') == [b.append]

        bus.off('x')
        assert bus.listeners('x') == []

    def test_off_once_listener_by_original_function(self):
        bus = EventBus()

        def listener():
            pass

        bus.once('x', listener)
        assert bus.listeners('x') == [listener]
        bus.off('x', listener)
        assert bus.listener_count('x') == 0

    def test_listener_added_during_emit_is_not_called(self):
        bus = EventBus()
        calls = []

        def first():
            calls.append('first')
            bus.on('x', lambda: calls.append('late'))

        bus.on('x', first)
        bus.emit('x')
        assert calls == ['first']

    def test_instances_do_not_share_listeners(self):
        a, b = EventBus(), EventBus()
        calls = []
        a.on('x', calls.append)
        b.emit('x', 1)
        assert calls == []

    def test_listener_exception_propagates(self):
        bus = EventBus()

        def boom():
            raise RuntimeError("listener failed")

        bus.on('x', boom)
        with pytest.raises(RuntimeError):
            bus.emit('x')
