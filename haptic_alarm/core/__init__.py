# core/__init__.py
"""
Waveforms and shared control state.
"""

from .vibration_patterns import (
    Pattern,
    PATTERN_COUNT,
    PATTERN_TABLES,
    RandomHold,
    pattern_period,
    sample_pattern,
)
from .control_state import (
    Mode,
    LocalClock,
    ControlState,
)

__all__ = [
    "Pattern",
    "PATTERN_COUNT",
    "PATTERN_TABLES",
    "RandomHold",
    "pattern_period",
    "sample_pattern",
    "Mode",
    "LocalClock",
    "ControlState",
]
