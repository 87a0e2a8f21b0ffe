# test_console.py
import io
from datetime import datetime, timedelta

import pytest

from haptic_alarm.console import CommandConsole, CommandError, ConsoleWorker
from haptic_alarm.core.control_state import ControlState, Mode


class FakeClock:
    def __init__(self, now):
        self.current = now

    def now(self):
        return self.current


def make_console(now=datetime(2026, 3, 14, 9, 30, 0)):
    state = ControlState()
    lines = []
    console = CommandConsole(state, clock=FakeClock(now), out=lines.append)
    return console, state, lines


def snapshot(state):
    return (state.mode, state.manual_pattern, state.effective_pattern, state.strength, state.alarm)


def test_pause_high_random():
    console, state, lines = make_console()
    console.execute("pause")
    assert state.mode is Mode.PAUSED
    assert state.manual_pattern == 0

    console.execute("high")
    assert state.mode is Mode.MANUAL
    assert state.manual_pattern == 1

    console.execute("random")
    assert state.mode is Mode.RANDOM
    assert lines == ["paused.", "high.", "start random, enjoy."]


def test_pattern_switches_to_manual():
    console, state, lines = make_console()
    state.mode = Mode.RANDOM
    console.execute("pattern 7")
    assert state.mode is Mode.MANUAL
    assert state.manual_pattern == 7
    assert lines[-1] == "pattern changed to 7."


def test_strength_is_stored_unclamped():
    console, state, _ = make_console()
    console.execute("strength 0.25")
    assert state.strength == 0.25
    console.execute("  strength   1.5  ")
    assert state.strength == 1.5


@pytest.mark.parametrize("line", [
    "foobar",
    "pattern 11",
    "pattern -1",
    "pattern five",
    "pattern",
    "pattern 1 2",
    "strength loud",
    "strength nan",
    "strength inf",
    "strength -inf",
    "alarm 25:00:00",
    "alarm 7am",
    "pause now",
])
def test_bad_lines_leave_state_unchanged(line):
    console, state, lines = make_console()
    state.alarm = datetime(2026, 3, 14, 23, 0, 0)
    before = snapshot(state)

    with pytest.raises(CommandError):
        console.execute(line)
    assert snapshot(state) == before

    assert console.handle_line(line) is False
    assert lines[-1].startswith("error: ")
    assert snapshot(state) == before


def test_blank_line_is_ignored():
    console, state, lines = make_console()
    before = snapshot(state)
    assert console.handle_line("\n") is True
    assert snapshot(state) == before
    assert lines == []


def test_alarm_later_today():
    console, state, lines = make_console(now=datetime(2026, 3, 14, 9, 30, 0))
    console.execute("alarm 10:15:00")
    assert state.alarm == datetime(2026, 3, 14, 10, 15, 0)
    assert "set to tomorrow." not in lines
    assert lines[-1] == "alarm set at 2026-03-14 10:15:00"


def test_alarm_midnight_rolls_to_next_day():
    now = datetime(2026, 3, 14, 0, 0, 5)
    console, state, lines = make_console(now=now)
    console.execute("alarm 00:00:00")
    naive = datetime.combine(now.date(), datetime.min.time())
    assert state.alarm - naive == timedelta(hours=24)
    assert "set to tomorrow." in lines


def test_alarm_equal_to_now_rolls_over():
    now = datetime(2026, 3, 14, 9, 30, 0)
    console, state, _ = make_console(now=now)
    console.execute("alarm 09:30:00")
    assert state.alarm == now + timedelta(hours=24)


def test_new_alarm_replaces_old():
    console, state, _ = make_console()
    console.execute("alarm 10:00:00")
    console.execute("alarm 11:00:00")
    assert state.alarm == datetime(2026, 3, 14, 11, 0, 0)


def test_show_alarm():
    console, state, lines = make_console()
    console.execute("show_alarm")
    assert lines[-1] == "no alarm set"
    state.alarm = datetime(2026, 3, 15, 6, 45, 0)
    console.execute("show_alarm")
    assert lines[-1] == "alarm set at 2026-03-15 06:45:00"


def test_console_worker_reads_until_eof():
    state = ControlState()
    out = []
    console = CommandConsole(state, clock=FakeClock(datetime(2026, 3, 14, 9, 0, 0)), out=out.append)
    worker = ConsoleWorker(console, stream=io.StringIO("pause\nbogus\npattern 5\nstrength 0.5\n"))
    results = []
    worker.done.connect(lambda ok, msg: results.append((ok, msg)))

    worker.run()

    assert state.mode is Mode.MANUAL
    assert state.manual_pattern == 5
    assert state.strength == 0.5
    assert any(line.startswith("error: ") for line in out)
    assert results == [(True, "Console closed")]
