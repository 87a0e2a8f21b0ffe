# test_control_state.py
import threading
from datetime import datetime, timedelta

import pytest

from haptic_alarm.core.control_state import ControlState, LocalClock, Mode


def test_defaults():
    state = ControlState()
    assert state.mode is Mode.MANUAL
    assert state.manual_pattern == 1
    assert state.effective_pattern == 1
    assert state.strength == 1.0
    assert state.alarm is None
    assert state.random_hold.get() == 0.5


def test_pattern_fields_only_accept_library_ids():
    state = ControlState()
    with pytest.raises(ValueError):
        state.effective_pattern = 11
    with pytest.raises(ValueError):
        state.manual_pattern = -1
    assert state.effective_pattern == 1
    assert state.manual_pattern == 1


def test_alarm_fires_exactly_once():
    state = ControlState()
    deadline = datetime(2026, 1, 1, 7, 0, 0)
    state.alarm = deadline

    assert state.take_alarm_if_due(deadline - timedelta(seconds=1)) is None
    assert state.mode is Mode.MANUAL
    assert state.alarm == deadline

    assert state.take_alarm_if_due(deadline) == deadline
    assert state.mode is Mode.RANDOM
    assert state.alarm is None

    state.mode = Mode.PAUSED
    assert state.take_alarm_if_due(deadline + timedelta(hours=1)) is None
    assert state.mode is Mode.PAUSED


def test_concurrent_writers_do_not_tear():
    state = ControlState()
    seen = []

    def writer(value):
        for _ in range(2000):
            state.strength = value
            seen.append(state.strength)

    threads = [threading.Thread(target=writer, args=(v,)) for v in (0.25, 0.75)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert set(seen) <= {0.25, 0.75}
    assert state.strength in (0.25, 0.75)


def test_local_clock_applies_offset():
    before = datetime.now()
    shifted = LocalClock(offset_hours=8).now()
    delta = shifted - before
    assert timedelta(hours=8) <= delta < timedelta(hours=8, seconds=5)
