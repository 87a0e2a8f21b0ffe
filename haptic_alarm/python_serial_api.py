"""
Serial device boundary.

SerialDeviceServer watches the serial ports and reports devices as they
appear. Each SerialDevice drives its actuators with the 3-byte command
protocol: one command per channel, padded to a 60-byte frame.
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Sequence

import serial
import serial.tools.list_ports

from . import constants


class DeviceError(Exception):
    """A send or scan failed; the device is treated as gone."""


class ChannelMismatch(DeviceError):
    """The device has a different number of output channels than requested."""


@dataclass(frozen=True)
class DeviceCapabilities:
    supports_scalar: bool
    channel_count: int


@dataclass(frozen=True)
class DeviceAdded:
    device: "SerialDevice"


@dataclass(frozen=True)
class DeviceRemoved:
    name: str


@dataclass(frozen=True)
class ServerDisconnect:
    pass


def create_command(addr, duty, freq, start_or_stop):
    serial_group = addr // 4
    serial_addr = addr % 4
    byte1 = (serial_group << 2) | (start_or_stop & 0x01)
    byte2 = 0x40 | (serial_addr & 0x3F)  # 0x40 represents the leading '01'
    byte3 = 0x80 | ((duty & 0x0F) << 3) | (freq & 0x07)  # 0x80 represents the leading '1'
    return bytearray([byte1, byte2, byte3])


def level_to_duty(level: float, max_duty: int = constants.SERIAL_MAX_DUTY) -> int:
    """Map an intensity in [0, 1] to the device duty field, clamping outside values."""
    level = float(level)
    if not math.isfinite(level):
        return 0
    level = max(0.0, min(1.0, level))
    return int(round(level * max_duty))


class SerialDevice:
    def __init__(self, connection, port: str,
                 channel_count: int = constants.SERIAL_CHANNEL_COUNT,
                 freq_code: int = constants.SERIAL_FREQ_CODE):
        if not 1 <= channel_count <= constants.SERIAL_FRAME_COMMANDS:
            raise ValueError(f"channel_count must be 1..{constants.SERIAL_FRAME_COMMANDS}")
        self.serial_connection = connection
        self.port = port
        self.channel_count = int(channel_count)
        self.freq_code = int(max(0, min(7, freq_code)))
        self._lock = threading.Lock()

    def name(self) -> str:
        return self.port

    def capabilities(self) -> DeviceCapabilities:
        return DeviceCapabilities(supports_scalar=True, channel_count=self.channel_count)

    def send_vector(self, values: Sequence[float]):
        if len(values) != self.channel_count:
            raise ChannelMismatch(
                f"{self.port} has {self.channel_count} channel(s), got {len(values)} values")
        self._write([self._level_command(addr, v) for addr, v in enumerate(values)])

    def send_scalar(self, value: float):
        self._write([self._level_command(addr, value) for addr in range(self.channel_count)])

    def stop(self):
        self._write([create_command(addr, 0, 0, 0) for addr in range(self.channel_count)])

    def close(self):
        with self._lock:
            conn, self.serial_connection = self.serial_connection, None
        if conn is not None:
            try:
                conn.close()
            except (serial.SerialException, OSError) as e:
                print(f'Serial failed to close {self.port}. Error: {e}')

    # ---- internals
    def _level_command(self, addr, level):
        duty = level_to_duty(level)
        if duty == 0:
            return create_command(addr, 0, 0, 0)
        return create_command(addr, duty, self.freq_code, 1)

    def _write(self, commands):
        frame = bytearray().join(commands)
        frame += bytearray([0xFF, 0xFF, 0xFF]) * (constants.SERIAL_FRAME_COMMANDS - len(commands))
        with self._lock:
            if self.serial_connection is None:
                raise DeviceError(f"{self.port} is not connected")
            try:
                self.serial_connection.write(frame)
            except (serial.SerialException, OSError) as e:
                raise DeviceError(f"write to {self.port} failed: {e}") from e


class SerialDeviceServer:
    """Turns the set of serial ports into a stream of device events."""
    def __init__(self, baudrate=constants.SERIAL_BAUDRATE,
                 channel_count=constants.SERIAL_CHANNEL_COUNT,
                 scan_interval=constants.SCAN_INTERVAL_S,
                 settle_s=constants.SERIAL_SETTLE_S,
                 list_ports=serial.tools.list_ports.comports,
                 open_port=serial.Serial):
        self.baudrate = baudrate
        self.channel_count = channel_count
        self.scan_interval = scan_interval
        self.settle_s = settle_s
        self._list_ports = list_ports
        self._open_port = open_port
        self._closed = threading.Event()

    def get_serial_devices(self):
        """Get a list of available serial port names"""
        try:
            return [port.device for port in self._list_ports()]
        except (serial.SerialException, OSError) as e:
            raise DeviceError(f"port scan failed: {e}") from e

    def connect_serial_device(self, port_name):
        """Open a port and wrap it, or return None when it cannot be opened"""
        try:
            connection = self._open_port(
                port=port_name,
                baudrate=self.baudrate,
                timeout=constants.SERIAL_TIMEOUT_S,
                write_timeout=constants.SERIAL_TIMEOUT_S,
            )
        except (serial.SerialException, OSError, ValueError) as e:
            print(f'Serial failed to connect to {port_name}. Error: {e}')
            return None

        # Wait a moment for the connection to establish
        if self.settle_s > 0:
            time.sleep(self.settle_s)
        if not connection.is_open:
            connection.close()
            return None
        return SerialDevice(connection, port_name, channel_count=self.channel_count)

    def scan_for_devices(self):
        """Yield DeviceAdded / DeviceRemoved as ports come and go.

        Ends with a single ServerDisconnect once close() is called. Raises
        DeviceError if the ports cannot be listed.
        """
        devices = {}
        unusable = set()
        while not self._closed.is_set():
            ports = self.get_serial_devices()
            for port in ports:
                if port in devices or port in unusable:
                    continue
                device = self.connect_serial_device(port)
                if device is None:
                    unusable.add(port)
                    continue
                devices[port] = device
                yield DeviceAdded(device)

            for port in list(devices):
                if port not in ports:
                    devices.pop(port).close()
                    yield DeviceRemoved(port)
            unusable.intersection_update(ports)

            self._closed.wait(self.scan_interval)

        for device in devices.values():
            device.close()
        yield ServerDisconnect()

    def close(self):
        self._closed.set()
