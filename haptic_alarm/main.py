#!/usr/bin/env python3
"""
Main entry point: scan serial ports, drive every device that appears, and
take commands from stdin until the process is killed.
"""

import signal
import sys

from PyQt6.QtCore import QCoreApplication, QObject

from .console import CommandConsole, ConsoleWorker
from .core.control_state import ControlState, LocalClock
from .python_serial_api import SerialDeviceServer
from .workers import AlarmMonitorWorker, DeviceControllerWorker, DeviceManagerWorker, ModeSchedulerWorker


class HapticAlarmApp(QObject):
    """Owns the shared state and every worker thread."""

    def __init__(self, server, state=None, clock=None, stream=None, controller_options=None, parent=None):
        super().__init__(parent)
        self.state = state or ControlState()
        self.clock = clock or LocalClock()
        self.controller_options = dict(controller_options or {})

        self.scheduler = ModeSchedulerWorker(self.state)
        self.alarm_monitor = AlarmMonitorWorker(self.state, clock=self.clock)
        self.console = ConsoleWorker(CommandConsole(self.state, clock=self.clock), stream=stream)
        self.device_manager = DeviceManagerWorker(server)
        self.controllers: list[DeviceControllerWorker] = []

        self._watch(self.scheduler, "scheduler")
        self._watch(self.alarm_monitor, "alarm")
        self._watch(self.device_manager, "devices")
        self._watch(self.console, "console")
        self.device_manager.device_added.connect(self.start_controller)

    def workers(self):
        return [self.scheduler, self.alarm_monitor, self.console, self.device_manager, *self.controllers]

    def start(self):
        for w in (self.scheduler, self.alarm_monitor, self.device_manager, self.console):
            w.start()

    def start_controller(self, device):
        controller = DeviceControllerWorker(device, self.state, **self.controller_options)
        self._watch(controller, f"device {device.name()}")
        controller.finished.connect(lambda c=controller: self._forget(c))
        self.controllers.append(controller)
        controller.start()
        return controller

    def stop(self, wait_ms=1500):
        for w in self.workers():
            w.stop()
        # the console may be blocked on stdin, so only wait for the others
        for w in self.workers():
            if w is not self.console:
                w.wait(wait_ms)

    # ---- internals
    def _watch(self, worker, source):
        worker.log_message.connect(lambda msg: print(f"[{source}] {msg}"))
        worker.done.connect(lambda ok, msg: print(f"[{source}] {msg}"))

    def _forget(self, controller):
        if controller in self.controllers:
            controller.wait(1000)
            self.controllers.remove(controller)


def main():
    app = QCoreApplication(sys.argv)
    # no graceful shutdown: Ctrl+C ends the process
    signal.signal(signal.SIGINT, signal.SIG_DFL)

    haptic = HapticAlarmApp(SerialDeviceServer())
    haptic.start()
    print("Scanning for devices. Commands: pause, high, random, pattern <n>, "
          "strength <f>, alarm <HH:MM:SS>, show_alarm")
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
