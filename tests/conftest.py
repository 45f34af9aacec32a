import socket
import struct
from datetime import datetime

import pytest

from xpgps.models import Position
from xpgps.rpos import get_request


def _pack_rpos(lon=0.0, lat=0.0, elev=0.0, agl=0.0, pitch=0.0, heading=0.0,
               roll=0.0, ve=0.0, vu=0.0, vs=0.0, p=0.0, q=0.0, r=0.0) -> bytes:
    return b"RPOS4" + struct.pack("<3d10f", lon, lat, elev, agl, pitch, heading,
                                  roll, ve, vu, vs, p, q, r)


@pytest.fixture
def rpos_datagram():
    return _pack_rpos


@pytest.fixture
def make_position():
    def _make(lat=12.3456, lon=98.7654, elevation=100.5, heading=45.0,
              velocity_east=1.0, velocity_south=0.0,
              timestamp=datetime(2024, 1, 1, 12, 34, 56, 789000)):
        return Position(
            longitude=lon, latitude=lat, elevation=elevation, height_agl=0.0,
            pitch=0.0, heading=heading, roll=0.0,
            velocity_east=velocity_east, velocity_up=0.0,
            velocity_south=velocity_south,
            roll_rate=0.0, pitch_rate=0.0, yaw_rate=0.0,
            timestamp=timestamp,
        )
    return _make


@pytest.fixture
def xplane_sim():
    """UDP socket standing in for X-Plane's RPOS port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    try:
        yield sock
    finally:
        sock.close()


class FlakySocket(socket.socket):
    """Loopback UDP socket that can fail the subscribe request or every receive."""

    def __init__(self, fail_send=False, fail_recv=False):
        super().__init__(socket.AF_INET, socket.SOCK_DGRAM)
        self.bind(("127.0.0.1", 0))
        self.fail_send = fail_send
        self.fail_recv = fail_recv
        self.sent = []
        self.close_calls = 0

    def sendto(self, data, *args):
        self.sent.append(bytes(data))
        if self.fail_send and data != get_request(0):
            raise OSError("network is unreachable")
        return super().sendto(data, *args)

    def recvfrom(self, *args):
        if self.fail_recv:
            raise OSError("connection reset by peer")
        return super().recvfrom(*args)

    def close(self):
        self.close_calls += 1
        super().close()


@pytest.fixture
def flaky_socket():
    created = []

    def _make(fail_send=False, fail_recv=False):
        sock = FlakySocket(fail_send=fail_send, fail_recv=fail_recv)
        created.append(sock)
        return sock

    yield _make
    for sock in created:
        if sock.fileno() != -1:
            socket.socket.close(sock)
