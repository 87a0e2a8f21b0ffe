# console.py
"""
Operator console: one command per line, whitespace separated.

    pause               stop output (mode paused, pattern 0)
    high                full power (mode manual, pattern 1)
    random              let the scheduler pick patterns
    show_alarm          print the armed alarm time
    pattern <n>         manual mode with pattern n (0..10)
    strength <f>        scale every channel by f
    alarm <HH:MM:SS>    switch to random at that time (today, or tomorrow if already past)
"""

import math
import sys
from datetime import datetime, timedelta

from . import constants
from .core.control_state import ControlState, LocalClock, Mode
from .core.vibration_patterns import PATTERN_COUNT
from .workers import LoopWorker


class CommandError(ValueError):
    pass


class CommandConsole:
    def __init__(self, state: ControlState, clock=None, out=print):
        self.state = state
        self.clock = clock or LocalClock()
        self.out = out
        self._commands = {
            "pause": (0, self._pause),
            "high": (0, self._high),
            "random": (0, self._random),
            "show_alarm": (0, self._show_alarm),
            "pattern": (1, self._pattern),
            "strength": (1, self._strength),
            "alarm": (1, self._alarm),
        }

    def execute(self, line: str):
        """Run one command line. Raises CommandError without touching state."""
        tokens = line.split()
        if not tokens:
            return
        name, args = tokens[0], tokens[1:]
        if name not in self._commands:
            raise CommandError(f"unknown command {name!r}")
        arity, handler = self._commands[name]
        if len(args) != arity:
            raise CommandError(f"{name} takes {arity} argument(s), got {len(args)}")
        handler(*args)

    def handle_line(self, line: str) -> bool:
        """Run a line and report parse errors to the operator instead of raising."""
        try:
            self.execute(line)
            return True
        except CommandError as e:
            self.out(f"error: {e}")
            return False

    # ---- commands
    def _pause(self):
        self.state.mode = Mode.PAUSED
        self.state.manual_pattern = 0
        self.out("paused.")

    def _high(self):
        self.state.mode = Mode.MANUAL
        self.state.manual_pattern = 1
        self.out("high.")

    def _random(self):
        self.state.mode = Mode.RANDOM
        self.out("start random, enjoy.")

    def _show_alarm(self):
        deadline = self.state.alarm
        if deadline is None:
            self.out("no alarm set")
        else:
            self.out(f"alarm set at {deadline}")

    def _pattern(self, arg):
        try:
            pattern = int(arg)
        except ValueError:
            raise CommandError(f"pattern must be an integer, got {arg!r}") from None
        if not 0 <= pattern < PATTERN_COUNT:
            raise CommandError(f"pattern must be 0..{PATTERN_COUNT - 1}, got {pattern}")
        self.state.mode = Mode.MANUAL
        self.state.manual_pattern = pattern
        self.out(f"pattern changed to {pattern}.")

    def _strength(self, arg):
        try:
            strength = float(arg)
        except ValueError:
            raise CommandError(f"strength must be a number, got {arg!r}") from None
        if not math.isfinite(strength):
            raise CommandError(f"strength must be finite, got {arg!r}")
        self.state.strength = strength
        self.out(f"strength changed to {strength}.")

    def _alarm(self, arg):
        try:
            at = datetime.strptime(arg, constants.ALARM_TIME_FORMAT).time()
        except ValueError as e:
            raise CommandError(str(e)) from None
        now = self.clock.now()
        target = datetime.combine(now.date(), at)
        self.out(f"{target} vs {now}")
        if target <= now:
            self.out("set to tomorrow.")
            target += timedelta(hours=24)
        self.state.alarm = target
        self.out(f"alarm set at {target}")


class ConsoleWorker(LoopWorker):
    """Feed lines from a text stream (stdin by default) into a CommandConsole."""

    def __init__(self, console: CommandConsole, stream=None):
        super().__init__()
        self.console = console
        self.stream = stream if stream is not None else sys.stdin

    def run(self):
        for line in iter(self.stream.readline, ""):
            if self._stop:
                break
            self.console.handle_line(line)
        self.done.emit(True, "Console closed")
