"""Output sinks: write encoded sentences to a serial device or to the log."""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, Optional

import serial
from serial.tools import list_ports

from . import nmea
from .common import OutputError, log
from .models import Status
from .outputters import Outputter

PARITIES  = {
    "N": serial.PARITY_NONE,
    "E": serial.PARITY_EVEN,
    "O": serial.PARITY_ODD,
    "M": serial.PARITY_MARK,
    "S": serial.PARITY_SPACE,
}
STOP_BITS = {
    1:   serial.STOPBITS_ONE,
    1.5: serial.STOPBITS_ONE_POINT_FIVE,
    2:   serial.STOPBITS_TWO,
}
DATA_BITS = (5, 6, 7, 8)


@dataclass(frozen=True)
class SerialMode:
    """Line settings used when opening the device."""
    baudrate: int   = 9600
    bytesize: int   = 8
    parity:   str   = "N"
    stopbits: float = 1


def open_serial(port: str, mode: SerialMode):
    """Open *port* through pyserial with the given line settings."""
    return serial.Serial(
        port=port,
        baudrate=mode.baudrate,
        bytesize=mode.bytesize,
        parity=PARITIES[mode.parity],
        stopbits=STOP_BITS[mode.stopbits],
        timeout=1,
        write_timeout=1,
    )


def find_ports() -> list[str]:
    """Serial devices present on this machine."""
    ports = sorted(p.device for p in list_ports.comports())
    log.debug(f"Found serial ports: {ports}")
    return ports


def _render(outputters: list[Outputter], pos, precision: nmea.Precision,
            feedback, logger: logging.Logger):
    """Yield one sentence per outputter, reporting and skipping failures."""
    for o in outputters:
        try:
            msg = o.output(pos, precision)
        except Exception as e:
            logger.warning(f"Output {o!r} failed: {e}")
            feedback.put(Status.info("Output failed"))
            continue
        yield msg


class SerialSender:
    """
    Sends positions to a serial port as NMEA sentences.
    The device is owned by send_positions for the duration of one run.
    """

    def __init__(self, outputters: list[Outputter], port: str = "",
                 mode: Optional[SerialMode] = None,
                 precision: nmea.Precision = nmea.STANDARD,
                 device_factory: Callable[[str, SerialMode], object] = open_serial,
                 logger: Optional[logging.Logger] = None):
        self.outputters     = list(outputters)
        self.precision      = precision
        self.device_factory = device_factory
        self.log            = logger or log.getChild("serial")
        self._port          = port
        self._mode          = mode or SerialMode()
        self._lock          = threading.Lock()

    def send_positions(self, samples, feedback):
        """
        Write sentences for every position until *samples* is closed.
        Raises OutputError if the device cannot be opened or written.
        """
        with self._lock:
            port, mode = self._port, self._mode
        self.log.debug("SendPositions started")

        try:
            dev = self.device_factory(port, mode)
        except (serial.SerialException, OSError, ValueError) as e:
            self.log.error(f"Failed to open serial port {port}: {e}")
            feedback.put(Status.info("Failed to open serial port"))
            raise OutputError(f"Failed to open serial port {port}: {e}") from e
        self.log.debug(f"Serial port opened: {port} {mode}")

        try:
            for pos in samples:
                precision = self.precision
                for msg in _render(self.outputters, pos, precision, feedback, self.log):
                    try:
                        dev.write(msg.encode("ascii"))
                    except (serial.SerialException, OSError) as e:
                        self.log.error(f"Failed to write to serial port {port}: {e}")
                        feedback.put(Status.info("Failed to write to serial port"))
                        raise OutputError(f"Failed to write to serial port {port}: {e}") from e
                    self.log.debug(f"Sent {msg.strip()}")
        finally:
            dev.close()
            self.log.debug("Serial port closed")

    def configured(self) -> bool:
        with self._lock:
            return bool(self._port) and self._mode.baudrate != 0

    @property
    def port(self) -> str:
        with self._lock:
            return self._port

    @property
    def mode(self) -> SerialMode:
        with self._lock:
            return self._mode

    def set_port(self, port: str):
        self.log.debug(f"Set port {port}")
        with self._lock:
            self._port = port

    def set_baud(self, baud: int):
        baud = int(baud)
        if baud < 0:
            raise ValueError(f"Invalid baud rate {baud}")
        self.log.debug(f"Set baud rate {baud}")
        with self._lock:
            self._mode = replace(self._mode, baudrate=baud)

    def set_data_bits(self, bits: int):
        bits = int(bits)
        if bits not in DATA_BITS:
            raise ValueError(f"Invalid data bits {bits}")
        self.log.debug(f"Set data bits {bits}")
        with self._lock:
            self._mode = replace(self._mode, bytesize=bits)

    def set_parity(self, parity: str):
        parity = str(parity)[:1].upper()
        if parity not in PARITIES:
            raise ValueError(f"Invalid parity {parity!r}")
        self.log.debug(f"Set parity {parity}")
        with self._lock:
            self._mode = replace(self._mode, parity=parity)

    def set_stop_bits(self, stop_bits: float):
        stop_bits = float(stop_bits)
        if stop_bits not in STOP_BITS:
            raise ValueError(f"Invalid stop bits {stop_bits}")
        self.log.debug(f"Set stop bits {stop_bits:g}")
        with self._lock:
            self._mode = replace(self._mode, stopbits=stop_bits)


class DummySender:
    """Logs positions and sentences instead of writing them to a device."""

    def __init__(self, outputters: list[Outputter],
                 precision: nmea.Precision = nmea.STANDARD,
                 logger: Optional[logging.Logger] = None):
        self.outputters = list(outputters)
        self.precision  = precision
        self.log        = logger or log.getChild("serial")

    def send_positions(self, samples, feedback):
        for pos in samples:
            self.log.info(f"Position {pos}")
            for msg in _render(self.outputters, pos, self.precision, feedback, self.log):
                self.log.info(f"Output {msg.strip()}")

    def configured(self) -> bool:
        return True

    def set_port(self, port: str):
        pass

    def set_baud(self, baud: int):
        pass

    def set_data_bits(self, bits: int):
        pass

    def set_parity(self, parity: str):
        pass

    def set_stop_bits(self, stop_bits: float):
        pass
