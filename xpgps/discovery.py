"""X-Plane multicast beacon discovery."""

import socket
import struct
import sys
import time
from typing import Callable, Optional

from .common import BEACON_TAG, MCAST_GROUP, MCAST_PORT, RETRIES, MalformedRecord, log
from .models import XPlaneBeacon, XPlanes

# major, minor, application id, version, role, port
_BEACON_HEADER = struct.Struct("<BBiiIH")

_RECV_BUFFER = 1024 * 1024


def _open_listener_posix(group: str, port: int) -> socket.socket:
    """Join *group* on all interfaces and bind the beacon port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        # SO_REUSEPORT lets several listeners share the beacon port
        if hasattr(socket, "SO_REUSEPORT"):
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, _RECV_BUFFER)
        sock.bind(("", port))
        mreq = struct.pack("=4s4s", socket.inet_aton(group), socket.inet_aton("0.0.0.0"))
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
    except OSError:
        sock.close()
        raise
    return sock


def _open_listener_windows(group: str, port: int) -> socket.socket:
    """As the POSIX listener, but Windows needs multicast loopback switched on."""
    sock = _open_listener_posix(group, port)
    try:
        loop = sock.getsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP)
        log.debug(f"Multicast loopback status: {loop}")
        if not loop:
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)
    except OSError as e:
        log.warning(f"Could not enable multicast loopback: {e}")
    return sock


if sys.platform == "win32":
    open_multicast_listener = _open_listener_windows
else:
    open_multicast_listener = _open_listener_posix


def decode_beacon(payload: bytes, source_ip: str) -> XPlaneBeacon:
    """
    Decode a beacon body (the datagram after its 5-byte tag).
    Layout: <BBiiIH header, NUL-terminated computer name, <H raknet port.
    """
    if len(payload) < _BEACON_HEADER.size + 2:
        raise MalformedRecord(f"Beacon too short: {len(payload)} bytes")

    major, minor, app_id, version, role, port = _BEACON_HEADER.unpack_from(payload, 0)

    name_field = payload[_BEACON_HEADER.size:-2]
    computer_name = name_field.split(b"\x00", 1)[0].decode("utf-8", errors="replace")

    raknet_port = struct.unpack("<H", payload[-2:])[0]

    return XPlaneBeacon(
        major_version=major,
        minor_version=minor,
        application_id=app_id,
        version_number=version,
        role=role,
        port=port,
        source_ip=source_ip,
        computer_name=computer_name,
        raknet_port=raknet_port,
    )


def find_xplane(timeout: float = 1.0, retries: int = RETRIES,
                listener_factory: Callable[[str, int], socket.socket] = open_multicast_listener,
                group: str = MCAST_GROUP, port: int = MCAST_PORT) -> Optional[XPlaneBeacon]:
    """
    Listen for X-Plane beacons and return the first master instance.

    Mis-tagged or undecodable beacons and non-master instances (extern
    visuals, IOS) are skipped. Returns None when *retries* datagrams were
    inspected or *timeout* seconds elapsed without finding a master.
    """
    sock = listener_factory(group, port)
    try:
        log.debug(f"Listening for X-Plane beacons on {group}:{port}")
        deadline = time.monotonic() + timeout

        for _ in range(retries):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            sock.settimeout(remaining)
            try:
                data, addr = sock.recvfrom(512)
            except socket.timeout:
                break

            if data[:len(BEACON_TAG)] != BEACON_TAG:
                log.warning(f"Unknown beacon from {addr[0]}: {data[:16]!r}")
                continue

            try:
                beacon = decode_beacon(data[len(BEACON_TAG):], addr[0])
            except MalformedRecord as e:
                log.warning(f"Invalid beacon from {addr[0]}: {e}")
                continue

            if not beacon.is_master:
                log.info(f"Found non-master X-Plane: {beacon}")
                continue

            log.debug(beacon.details())
            return beacon
    finally:
        sock.close()

    return None


def scan_xplanes(duration: float = 5.0, attempt_timeout: float = 1.0,
                 finder: Callable[..., Optional[XPlaneBeacon]] = find_xplane) -> XPlanes:
    """Collect every master instance seen during *duration* seconds."""
    xplanes = XPlanes()
    deadline = time.monotonic() + duration
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        try:
            beacon = finder(min(attempt_timeout, remaining))
        except OSError as e:
            log.warning(f"X-Plane discovery failed: {e}")
            time.sleep(min(attempt_timeout, max(remaining, 0.0)))
            continue
        if beacon is not None and xplanes.add(beacon):
            log.info(f"Found {beacon} at {beacon.endpoint}")

    log.debug(f"Discovery finished: {len(xplanes)} instance(s) {xplanes.list()}")
    return xplanes
