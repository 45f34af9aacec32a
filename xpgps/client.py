"""High-level connector: X-Plane positions in, NMEA sentences out."""

import enum
import logging
import threading
from typing import Optional, Union

from . import nmea
from .channels import SampleChannel, StatusStream
from .common import DEFAULT_POS_FREQ, MAX_POS_FREQ, OutputError, format_addr, log
from .models import Status
from .rpos import PositionStream


class AppState(enum.Enum):
    INCOMPLETE = "incomplete"   # X-Plane or output device not configured
    RUNABLE    = "runable"      # configured and idle
    RUNNING    = "running"


class GPSConnector:
    """
    Owns the configuration and the lifecycle of one position pipeline:
    a PositionStream thread feeding a sender thread through a SampleChannel.
    """

    def __init__(self, sender, position_freq: int = DEFAULT_POS_FREQ,
                 precision: Optional[nmea.Precision] = None,
                 xplane_addr: Optional[tuple[str, int]] = None,
                 logger: Optional[logging.Logger] = None):
        self.sender        = sender
        self.log           = logger or log.getChild("app")
        self._lock         = threading.Lock()
        self._xplane       = xplane_addr
        self._freq         = self._check_freq(position_freq)
        self._running      = False
        self._cancel: Optional[threading.Event] = None
        if precision is not None:
            self.sender.precision = nmea.get_precision(precision)

    @staticmethod
    def _check_freq(freq: int) -> int:
        freq = int(freq)
        if not 1 <= freq <= MAX_POS_FREQ:
            raise ValueError(f"Position frequency must be 1-{MAX_POS_FREQ} Hz, got {freq}")
        return freq

    # ── configuration ───────────────────────────────────────────────────

    def state(self) -> AppState:
        """X-Plane and a configured sender are both required to run."""
        with self._lock:
            if self._running:
                return AppState.RUNNING
            if self._xplane is not None and self.sender.configured():
                return AppState.RUNABLE
            return AppState.INCOMPLETE

    @property
    def xplane(self) -> Optional[tuple[str, int]]:
        with self._lock:
            return self._xplane

    @property
    def position_freq(self) -> int:
        with self._lock:
            return self._freq

    @property
    def precision(self) -> nmea.Precision:
        with self._lock:
            return self.sender.precision

    def set_xplane(self, addr: Optional[tuple[str, int]]):
        self.log.debug(f"Set X-Plane {format_addr(addr)}")
        with self._lock:
            self._xplane = addr

    def set_serial_port(self, port: str):
        with self._lock:
            self.sender.set_port(port)

    def set_baud_rate(self, baud: int):
        with self._lock:
            self.sender.set_baud(baud)

    def set_data_bits(self, bits: int):
        with self._lock:
            self.sender.set_data_bits(bits)

    def set_parity(self, parity: str):
        with self._lock:
            self.sender.set_parity(parity)

    def set_stop_bits(self, stop_bits: float):
        with self._lock:
            self.sender.set_stop_bits(stop_bits)

    def set_position_freq(self, freq: int):
        freq = self._check_freq(freq)
        self.log.debug(f"Set position frequency {freq} Hz")
        with self._lock:
            self._freq = freq

    def set_precision(self, precision: Union[str, nmea.Precision]):
        precision = nmea.get_precision(precision)
        self.log.debug(f"Precision changed to {precision.name}")
        with self._lock:
            self.sender.precision = precision

    # ── lifecycle ───────────────────────────────────────────────────────

    def run(self, cancel: Optional[threading.Event] = None) -> StatusStream:
        """
        Start requesting positions and sending them to the output.

        Returns the merged status stream of the run. A FATAL status means the
        output failed and the caller should cancel. The stream ends only after
        both worker threads have finished.
        """
        with self._lock:
            if self._running:
                raise RuntimeError("Connector is already running")
            if self._xplane is None or not self.sender.configured():
                raise RuntimeError("Connector is not configured (need X-Plane and output)")
            self._running = True
            xplane_addr, freq = self._xplane, self._freq
            cancel = cancel or threading.Event()
            self._cancel = cancel

        feedback = StatusStream()
        feedback.put(Status.info("Starting"))
        samples = SampleChannel()

        source = threading.Thread(
            target=self._request_worker,
            args=(xplane_addr, freq, samples, feedback, cancel),
            name="PositionStream",
            daemon=True,
        )
        sink = threading.Thread(
            target=self._send_worker,
            args=(samples, feedback),
            name="PositionSender",
            daemon=True,
        )
        supervisor = threading.Thread(
            target=self._supervise,
            args=(source, sink, feedback),
            name="GPSConnector",
            daemon=True,
        )
        source.start()
        sink.start()
        supervisor.start()
        self.log.info(f"Running: X-Plane {format_addr(xplane_addr)} at {freq} Hz")
        return feedback

    def stop(self):
        """Cancel the active run, if any."""
        with self._lock:
            cancel = self._cancel
        if cancel is None:
            self.log.info("Can't stop, not running")
            return
        cancel.set()
        self.log.debug("Stop requested")

    def _request_worker(self, xplane_addr, freq, samples: SampleChannel,
                        feedback: StatusStream, cancel: threading.Event):
        try:
            PositionStream(xplane_addr, freq).run(samples, feedback, cancel)
        except Exception as e:
            self.log.exception("Position stream failed")
            feedback.put(Status.info(f"Position stream failed: {e}"))
        finally:
            samples.close()
            self.log.debug("RequestPositions done")

    def _send_worker(self, samples: SampleChannel, feedback: StatusStream):
        try:
            self.sender.send_positions(samples, feedback)
        except OutputError as e:
            self.log.info(f"SendPositions failed: {e}")
            feedback.put(Status.fatal(str(e)))
        except Exception as e:
            self.log.exception("SendPositions failed")
            feedback.put(Status.fatal(f"Output failed: {e}"))
        finally:
            # keep the source from blocking on a full channel
            dropped = samples.drain()
            self.log.debug(f"SendPositions done, channel drained ({dropped} dropped)")

    def _supervise(self, source: threading.Thread, sink: threading.Thread,
                   feedback: StatusStream):
        source.join()
        sink.join()
        with self._lock:
            self._running = False
            self._cancel = None
        self.log.debug("Run done")
        feedback.close()
