"""X-Plane RPOS position subscription and decoding."""

import logging
import select
import socket
import threading
import time
from typing import Optional

import numpy as np

from .common import (
    POLL_INTERVAL,
    READ_TIMEOUT,
    RPOS_TAG,
    MalformedRecord,
    ProtocolMismatch,
    format_addr,
    log,
)
from .models import Position, Status

# RPOS4 record, little-endian, fixed order (do not reorder)
POSITION_DTYPE = np.dtype([
    ("longitude",      "<f8"),
    ("latitude",       "<f8"),
    ("elevation",      "<f8"),
    ("height_agl",     "<f4"),
    ("pitch",          "<f4"),
    ("heading",        "<f4"),
    ("roll",           "<f4"),
    ("velocity_east",  "<f4"),
    ("velocity_up",    "<f4"),
    ("velocity_south", "<f4"),
    ("roll_rate",      "<f4"),
    ("pitch_rate",     "<f4"),
    ("yaw_rate",       "<f4"),
])

RPOS_RECORD_SIZE = 64


def _check_layout(dtype: np.dtype = POSITION_DTYPE,
                  expected: int = RPOS_RECORD_SIZE):
    if dtype.itemsize != expected:
        raise ProtocolMismatch(
            f"RPOS record layout is {dtype.itemsize} bytes, simulator sends {expected}"
        )


_check_layout()


def get_request(freq: int) -> bytes:
    """RPOS subscription datagram; a frequency of 0 unsubscribes."""
    return f"RPOS\x00{int(freq)}\x00".encode("ascii")


def decode_position(data: bytes) -> Position:
    """Decode an ``RPOS4`` datagram. Bytes past the record are ignored."""
    tag_len = len(RPOS_TAG)
    if data[:tag_len] != RPOS_TAG:
        raise MalformedRecord(f"Invalid header {bytes(data[:tag_len])!r}")

    payload = data[tag_len:]
    if len(payload) < POSITION_DTYPE.itemsize:
        raise MalformedRecord(
            f"Position record too short: {len(payload)} of "
            f"{POSITION_DTYPE.itemsize} bytes"
        )

    rec = np.frombuffer(payload, dtype=POSITION_DTYPE, count=1)[0]
    return Position(**{name: float(rec[name]) for name in POSITION_DTYPE.names})


class PositionStream:
    """
    Subscribes to X-Plane positions and feeds decoded samples to a channel.
    Every receive is bounded; the unsubscribe is sent once on every exit path.
    """

    def __init__(self, xplane_addr: tuple[str, int], freq: int,
                 sock: Optional[socket.socket] = None,
                 read_timeout: float = READ_TIMEOUT,
                 poll_interval: float = POLL_INTERVAL,
                 logger: Optional[logging.Logger] = None):
        self.xplane_addr   = xplane_addr
        self.freq          = freq
        self.read_timeout  = read_timeout
        self.poll_interval = poll_interval
        self.log           = logger or log.getChild("xplane")
        self._sock         = sock
        self.packet_count  = 0
        self.bad_count     = 0

    def _open(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind(("", 0))
        except OSError:
            sock.close()
            raise
        return sock

    def _wait_readable(self, cancel: threading.Event) -> Optional[bool]:
        """
        Wait up to read_timeout for a datagram.
        Returns True when readable, False on timeout, None when cancelled.
        """
        deadline = time.monotonic() + self.read_timeout
        while not cancel.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            readable, _, _ = select.select([self._sock], [], [],
                                           min(self.poll_interval, remaining))
            if readable:
                return True
        return None

    def run(self, samples, feedback, cancel: threading.Event):
        """
        Request positions until *cancel* is set or the socket fails.

        Statuses go to *feedback*; for each decoded sample an empty heartbeat
        status is queued before the sample itself is put on *samples*.
        """
        if self._sock is None:
            try:
                self._sock = self._open()
            except OSError as e:
                self.log.error(f"Failed to open UDP socket: {e}")
                feedback.put(Status.info("Failed to open UDP socket"))
                return

        try:
            self._stream(samples, feedback, cancel)
        finally:
            self._unsubscribe()

    def _stream(self, samples, feedback, cancel: threading.Event):
        try:
            self._sock.sendto(get_request(self.freq), self.xplane_addr)
        except OSError as e:
            self.log.error(f"Failed to request positions: {e}")
            feedback.put(Status.info("Failed to request positions"))
            return
        self.log.info(f"Requested positions at {self.freq} Hz from "
                      f"{format_addr(self.xplane_addr)}")

        while True:
            try:
                ready = self._wait_readable(cancel)
                if ready is None:
                    self.log.debug("Position stream cancelled")
                    return
                if not ready:
                    self.log.info("Timeout")
                    feedback.put(Status.timeout())
                    continue
                data, _ = self._sock.recvfrom(1500)
            except OSError as e:
                self.log.error(f"Failed to read from UDP: {e}")
                feedback.put(Status.info("Failed to read from UDP"))
                return

            try:
                pos = decode_position(data)
            except MalformedRecord as e:
                self.bad_count += 1
                self.log.warning(f"Discarding datagram: {e}")
                feedback.put(Status.info("Invalid position datagram"))
                continue

            self.packet_count += 1
            feedback.put(Status.info())
            samples.put(pos)

    def _unsubscribe(self):
        sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.sendto(get_request(0), self.xplane_addr)
        except OSError as e:
            self.log.warning(f"Failed to stop position requests: {e}")
        finally:
            sock.close()
        self.log.debug(f"Position stream closed after {self.packet_count} packets")


def request_positions(xplane_addr: tuple[str, int], freq: int, samples,
                      feedback, cancel: threading.Event,
                      logger: Optional[logging.Logger] = None):
    """Convenience wrapper running a PositionStream on the calling thread."""
    PositionStream(xplane_addr, freq, logger=logger).run(samples, feedback, cancel)
