import random
import time

from PyQt6.QtCore import QThread, pyqtSignal

from . import constants
from .core.control_state import ControlState, LocalClock, Mode
from .core.vibration_patterns import PATTERN_COUNT, sample_pattern
from .python_serial_api import ChannelMismatch, DeviceAdded, DeviceError, ServerDisconnect


class LoopWorker(QThread):
    """Base for the long-running loops: a stop flag plus paced waits that honour it."""
    done = pyqtSignal(bool, str)
    log_message = pyqtSignal(str)

    def __init__(self):
        super().__init__()
        self._stop = False

    def stop(self):
        self._stop = True

    def _sleep(self, seconds: float, until=None):
        """Wait up to `seconds`, returning early on stop() or once `until()` is true."""
        deadline = time.monotonic() + seconds
        while not self._stop:
            remaining = deadline - time.monotonic()
            if remaining <= 0 or (until is not None and until()):
                return
            time.sleep(min(constants.SLEEP_SLICE_S, remaining))


class ModeSchedulerWorker(LoopWorker):
    """Derive the effective pattern from the mode and the manual selection."""

    def __init__(self, state: ControlState, rng=None,
                 recheck_s: float = constants.SCHEDULER_RECHECK_S,
                 dwell_range=constants.RANDOM_DWELL_RANGE_S):
        super().__init__()
        self.state = state
        self.rng = rng or random.Random()
        self.recheck_s = float(recheck_s)
        self.dwell_range = tuple(dwell_range)
        self.mode = None

    def step(self) -> float:
        """Apply the current mode once and return how long to wait before the next step."""
        mode = self.mode = self.state.mode
        if mode is Mode.PAUSED:
            self.state.effective_pattern = 0
            return self.recheck_s
        if mode is Mode.MANUAL:
            self.state.effective_pattern = self.state.manual_pattern
            return self.recheck_s

        pattern = self.rng.randint(0, PATTERN_COUNT - 1)
        dwell = self.rng.randint(*self.dwell_range)
        self.state.effective_pattern = pattern
        self.log_message.emit(f"random pattern {pattern} for {dwell}s")
        return dwell

    def run(self):
        while not self._stop:
            delay = self.step()
            # a mode change from the console ends the wait early
            self._sleep(delay, until=lambda: self.state.mode is not self.mode)
        self.done.emit(True, "Scheduler stopped")


class AlarmMonitorWorker(LoopWorker):
    """Switch to random mode once the armed alarm time is reached."""

    def __init__(self, state: ControlState, clock=None,
                 poll_s: float = constants.ALARM_POLL_S):
        super().__init__()
        self.state = state
        self.clock = clock or LocalClock()
        self.poll_s = float(poll_s)

    def poll(self):
        fired = self.state.take_alarm_if_due(self.clock.now())
        if fired is not None:
            self.log_message.emit("alarm time reached, start random, enjoy.")
        return fired

    def run(self):
        while not self._stop:
            self.poll()
            self._sleep(self.poll_s)
        self.done.emit(True, "Alarm monitor stopped")


class DeviceControllerWorker(LoopWorker):
    """Stream the effective pattern to one device until it goes away.

    Starts with a probe pulse, then sends one value per channel each tick.
    A device that rejects the channel count drops to a single value for the
    rest of its life; any later send failure ends the worker.
    """

    def __init__(self, device, state: ControlState, rng=None,
                 tick_interval: float = constants.TICK_INTERVAL_S,
                 probe_pulse_s: float = constants.PROBE_PULSE_S):
        super().__init__()
        self.device = device
        self.state = state
        self.rng = rng
        self.tick_interval = float(tick_interval)
        self.probe_pulse_s = float(probe_pulse_s)
        self.tick = 0
        self.multi_channel = True

    def probe(self) -> bool:
        name = self.device.name()
        if not self.device.capabilities().supports_scalar:
            self.log_message.emit(f"{name} doesn't vibrate!")
            return False
        try:
            self.device.send_scalar(1.0)
            self._sleep(self.probe_pulse_s)
            self.device.stop()
            self._sleep(self.probe_pulse_s)
        except DeviceError as e:
            self.log_message.emit(f"Error probing {name}: {e}")
            return False
        self.log_message.emit(f"{name} connected successfully. Enjoy!")
        return True

    def levels(self):
        pattern = self.state.effective_pattern
        strength = self.state.strength
        return sample_pattern(pattern, self.tick, self.state.random_hold, self.rng) * strength

    def step(self) -> bool:
        """Emit one tick. Returns False once the device is gone."""
        levels = self.levels()
        if self.multi_channel:
            try:
                self.device.send_vector(levels.tolist())
                self.tick += 1
                return True
            except ChannelMismatch:
                self.log_message.emit("Device has 1 motor")
                self.multi_channel = False
            except DeviceError as e:
                self.log_message.emit(f"Device disconnected, please reconnect! ({e})")
                return False

        try:
            self.device.send_scalar(float(levels[0]))
        except DeviceError as e:
            self.log_message.emit(f"Device disconnected, please reconnect! ({e})")
            return False
        self.tick += 1
        return True

    def run(self):
        name = self.device.name()
        if not self.probe():
            self.done.emit(False, f"{name} not started")
            return
        while not self._stop:
            if not self.step():
                self.done.emit(False, f"{name} disconnected")
                return
            self._sleep(self.tick_interval)

        try:
            self.device.stop()
        except DeviceError as e:
            self.log_message.emit(f"Error sending stop command to {name}: {e}")
        self.done.emit(True, f"{name} stopped")


class DeviceManagerWorker(LoopWorker):
    """Consume the server's scan stream and announce new devices."""
    device_added = pyqtSignal(object)

    def __init__(self, server):
        super().__init__()
        self.server = server

    def stop(self):
        super().stop()
        self.server.close()

    def run(self):
        try:
            for event in self.server.scan_for_devices():
                if isinstance(event, DeviceAdded):
                    self.log_message.emit(f"We got a device: {event.device.name()}")
                    self.device_added.emit(event.device)
                elif isinstance(event, ServerDisconnect):
                    self.log_message.emit("Server disconnected!")
                    self.done.emit(True, "Server disconnected")
                    return
                else:
                    self.log_message.emit(f"Got some other kind of event we don't care about: {event}")
        except DeviceError as e:
            self.log_message.emit(f"Client errored when starting scan! {e}")
            self.done.emit(False, f"Scan failed: {e}")
            return
        self.done.emit(True, "Scan ended")
