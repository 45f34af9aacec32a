"""Shared constants, logger and error types for the X-Plane GPS connector."""

import logging

log = logging.getLogger("xpgps")

MCAST_GROUP     = "239.255.1.1"   # X-Plane beacon multicast group
MCAST_PORT      = 49707           # X-Plane beacon multicast port
RETRIES         = 10              # beacons inspected per discovery attempt

XPLANE_PORT     = 49000           # default X-Plane UDP port when not discovered

BEACON_TAG      = b"BECN\x00"     # leading tag of every beacon datagram
RPOS_TAG        = b"RPOS4"        # leading tag of every position datagram

READ_TIMEOUT    = 1.0             # seconds without a position before "Timeout"
POLL_INTERVAL   = 0.1             # slice used to check for cancellation

SAMPLE_QUEUE_SIZE = 200

# Values accepted for the serial line and the position rate
POSSIBLE_BAUD_RATES = [9600, 14400, 19200, 38400, 57600, 115200]
POSSIBLE_POS_FREQS  = [1, 2, 5, 10, 20]

DEFAULT_BAUD_RATE   = 38400
DEFAULT_POS_FREQ    = 10
MAX_POS_FREQ        = 60


class MalformedRecord(ValueError):
    """A beacon or position datagram could not be decoded."""


class ProtocolMismatch(RuntimeError):
    """The local wire layout does not match the simulator's record size."""


class OutputError(RuntimeError):
    """The output device could not be opened or written."""


def format_addr(addr) -> str:
    """Render an ``(ip, port)`` tuple the way X-Plane addresses are shown."""
    if addr is None:
        return "<none>"
    ip, port = addr[0], addr[1]
    return f"{ip}:{port}"


def parse_addr(text: str, default_port: int = XPLANE_PORT) -> tuple[str, int]:
    """Parse ``host`` or ``host:port`` into an address tuple."""
    host, sep, port = text.rpartition(":")
    if not sep:
        return (text, default_port)
    if not host:
        raise ValueError(f"Missing host in address: {text!r}")
    try:
        port_num = int(port)
    except ValueError:
        raise ValueError(f"Bad port in address: {text!r}") from None
    if not 0 < port_num < 65536:
        raise ValueError(f"Port out of range in address: {text!r}")
    return (host, port_num)
