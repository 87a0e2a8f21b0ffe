#!/usr/bin/env python3
"""
Waveform library: eleven fixed two-channel vibration patterns.

Every pattern maps an integer tick to a pair of intensities in [0, 1].
Patterns 0-9 are pure lookups into a periodic table; pattern 10 holds a
random level for three ticks at a time and keeps that level in a shared
RandomHold so all devices see the same value.
"""

import random
import threading
from enum import IntEnum

import numpy as np


class Pattern(IntEnum):
    STOP = 0
    FULL = 1
    CROSSFADE = 2
    GALLOP = 3
    FLUTTER_RAMP = 4
    SURGE = 5
    TRIPLET = 6
    HEARTBEAT = 7
    PING_PONG = 8
    STAIRS = 9
    RANDOM_HOLD = 10


PATTERN_COUNT = len(Pattern)


class RandomHold:
    """Level memoized by RANDOM_HOLD between resamples."""
    def __init__(self, value=0.5):
        self._lock = threading.Lock()
        self._value = float(value)

    def get(self) -> float:
        with self._lock:
            return self._value

    def set(self, value: float):
        with self._lock:
            self._value = float(value)


def _binary(seq, high=1.0, low=0.0):
    return np.where(np.asarray(seq) == 1, high, low)


def _build_tables() -> dict:
    ramp = np.arange(10)
    tables = {
        Pattern.STOP: np.zeros((1, 2)),
        Pattern.FULL: np.ones((1, 2)),
        # rising on channel 0 while channel 1 falls
        Pattern.CROSSFADE: np.column_stack([(ramp + 1) / 10.0, (10 - ramp) / 10.0]),
    }

    # four in-phase double beats, then the channels alternate
    pairs = [1, 1, 0, 0] * 4
    tables[Pattern.GALLOP] = np.column_stack([
        _binary(pairs + [1, 0] * 8),
        _binary(pairs + [0, 1] * 8),
    ])

    tables[Pattern.FLUTTER_RAMP] = np.column_stack([_binary([1, 0] * 5), (ramp + 1) / 10.0])

    surge = np.full(12, 0.2)
    surge[10:] = 1.0
    tables[Pattern.SURGE] = np.column_stack([surge, np.full(12, 0.5)])

    tables[Pattern.TRIPLET] = np.column_stack([
        _binary([1, 0, 0] * 4 + [1, 0, 1, 0]),
        _binary([1, 0] * 8),
    ])

    half = [1, 1, 1, 1, 1, 1, 1, 0, 1, 0, 1, 0]
    tables[Pattern.HEARTBEAT] = np.column_stack([
        _binary(half * 2, low=0.5),
        _binary([1, 0, 0] * 8, low=0.5),
    ])

    tables[Pattern.PING_PONG] = np.column_stack([
        _binary([1, 0, 0, 0, 0, 0], low=0.2),
        _binary([0, 1, 0, 0, 0, 0], low=0.2),
    ])

    # 10 ticks per step, the last step is cut short by the 35-tick period
    steps = np.array([0.25, 0.5, 0.75, 1.0])[np.arange(35) // 10]
    tables[Pattern.STAIRS] = np.column_stack([steps, steps])

    for table in tables.values():
        table.setflags(write=False)
    return tables


PATTERN_TABLES = _build_tables()


def pattern_period(pattern_id) -> int:
    """Number of ticks before a table pattern repeats (3 for RANDOM_HOLD)."""
    pattern = Pattern(pattern_id)
    if pattern is Pattern.RANDOM_HOLD:
        return 3
    return len(PATTERN_TABLES[pattern])


_shared_hold = RandomHold()


def sample_pattern(pattern_id, tick: int, hold: RandomHold = None, rng=None) -> np.ndarray:
    """Return the [channel0, channel1] intensities of a pattern at a tick.

    Raises ValueError for ids outside the library; callers validate first.
    """
    pattern = Pattern(pattern_id)
    if pattern is Pattern.RANDOM_HOLD:
        hold = hold if hold is not None else _shared_hold
        if tick % 3 == 0:
            hold.set((rng or random).randrange(10) / 10.0)
        level = hold.get()
        return np.array([level, level])

    table = PATTERN_TABLES[pattern]
    return table[tick % len(table)].copy()
