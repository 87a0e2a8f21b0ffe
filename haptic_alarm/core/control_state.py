"""
Process-wide control state shared by the console, the alarm, the scheduler
and every device controller.

All fields sit behind one lock that is held only to read or assign a value.
Readers take what they need once per cycle and accept that the next cycle
may see newer values.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .. import constants
from .vibration_patterns import Pattern, RandomHold


class Mode(Enum):
    PAUSED = 0
    MANUAL = 1
    RANDOM = 2


class LocalClock:
    """Wall clock used for alarms: local time plus a fixed hour offset."""
    def __init__(self, offset_hours: float = constants.CLOCK_OFFSET_HOURS):
        self.offset = timedelta(hours=offset_hours)

    def now(self) -> datetime:
        return datetime.now() + self.offset


class ControlState:
    def __init__(self, mode: Mode = Mode.MANUAL,
                 pattern: int = constants.DEFAULT_PATTERN,
                 strength: float = constants.DEFAULT_STRENGTH):
        self._lock = threading.Lock()
        self._mode = mode
        self._manual_pattern = int(Pattern(pattern))
        self._effective_pattern = self._manual_pattern
        self._strength = float(strength)
        self._alarm: Optional[datetime] = None
        self.random_hold = RandomHold(constants.DEFAULT_RANDOM_HOLD)

    @property
    def mode(self) -> Mode:
        with self._lock:
            return self._mode

    @mode.setter
    def mode(self, value: Mode):
        with self._lock:
            self._mode = Mode(value)

    @property
    def manual_pattern(self) -> int:
        with self._lock:
            return self._manual_pattern

    @manual_pattern.setter
    def manual_pattern(self, value: int):
        value = int(Pattern(value))
        with self._lock:
            self._manual_pattern = value

    @property
    def effective_pattern(self) -> int:
        """Pattern currently driving output, owned by the mode scheduler."""
        with self._lock:
            return self._effective_pattern

    @effective_pattern.setter
    def effective_pattern(self, value: int):
        value = int(Pattern(value))
        with self._lock:
            self._effective_pattern = value

    @property
    def strength(self) -> float:
        with self._lock:
            return self._strength

    @strength.setter
    def strength(self, value: float):
        with self._lock:
            self._strength = float(value)

    @property
    def alarm(self) -> Optional[datetime]:
        with self._lock:
            return self._alarm

    @alarm.setter
    def alarm(self, deadline: Optional[datetime]):
        with self._lock:
            self._alarm = deadline

    def take_alarm_if_due(self, now: datetime) -> Optional[datetime]:
        """Fire the alarm when `now` has reached it.

        Switches to RANDOM and clears the deadline in one step, so an armed
        alarm fires at most once. Returns the deadline that fired, or None.
        """
        with self._lock:
            deadline = self._alarm
            if deadline is None or now < deadline:
                return None
            self._alarm = None
            self._mode = Mode.RANDOM
            return deadline
