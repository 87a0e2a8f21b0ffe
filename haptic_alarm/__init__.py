# haptic_alarm/__init__.py
"""
Drive vibration devices with scheduled two-channel patterns, a live
command console and a wake-up alarm.
"""

__version__ = "1.0.0"
