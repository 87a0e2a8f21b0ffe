# constants.py
"""
Tunables for the control loops and the serial device adapter.

Every worker takes these as keyword defaults, so tests pass smaller values
instead of patching the module.
"""

# ---- Device controller ----
TICK_INTERVAL_S = 0.1          # one waveform tick per emission cycle
PROBE_PULSE_S = 1.0            # full-power test pulse, then the same pause after stop
SLEEP_SLICE_S = 0.01           # granularity at which paced waits re-check stop()

# ---- Mode scheduler ----
SCHEDULER_RECHECK_S = 1.0      # paused / manual re-read interval
RANDOM_DWELL_RANGE_S = (2, 15) # inclusive bounds for random-mode dwell

# ---- Alarm monitor ----
ALARM_POLL_S = 0.2
CLOCK_OFFSET_HOURS = 0.0       # added to the system local time before comparing

# ---- Control state defaults ----
DEFAULT_PATTERN = 1
DEFAULT_STRENGTH = 1.0
DEFAULT_RANDOM_HOLD = 0.5

# ---- Serial transport ----
SERIAL_BAUDRATE = 115200       # match Arduino baud rate
SERIAL_TIMEOUT_S = 1
SERIAL_SETTLE_S = 2.0          # boards reset when the port opens
SERIAL_CHANNEL_COUNT = 2
SERIAL_FREQ_CODE = 4           # device freq code 0..7
SERIAL_MAX_DUTY = 15
SERIAL_FRAME_COMMANDS = 20     # frames are padded to 20 commands (60 bytes)
SCAN_INTERVAL_S = 2.0

ALARM_TIME_FORMAT = "%H:%M:%S"
