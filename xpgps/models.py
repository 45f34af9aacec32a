"""Data structures for X-Plane beacons, position samples and pipeline status."""

import enum
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

_APPLICATION_TYPES = {1: "X-Plane", 2: "PlaneMaker"}
_ROLE_TYPES = {1: "Master", 2: "Extern visual", 3: "IOS"}


@dataclass(frozen=True)
class XPlaneBeacon:
    """Decoded X-Plane multicast beacon."""
    major_version:  int     # 1 since X-Plane 10.40
    minor_version:  int     # 1 for 10.40, 2 for 11.55
    application_id: int     # 1 X-Plane, 2 PlaneMaker
    version_number: int     # 115501 is 11.55r2
    role:           int     # 1 master, 2 extern visual, 3 IOS
    port:           int     # port X-Plane listens on for RPOS requests
    source_ip:      str
    computer_name:  str = ""
    raknet_port:    int = 0

    @property
    def is_master(self) -> bool:
        return self.application_id == 1 and self.role == 1

    @property
    def addr(self) -> tuple[str, int]:
        # The datagram source port is the beacon port, not the listening one
        return (self.source_ip, self.port)

    @property
    def raknet_addr(self) -> tuple[str, int]:
        return (self.source_ip, self.raknet_port)

    @property
    def endpoint(self) -> str:
        return f"{self.source_ip}:{self.port}"

    @property
    def beacon_version(self) -> str:
        return f"{self.major_version}.{self.minor_version}"

    @property
    def application_type(self) -> str:
        return _APPLICATION_TYPES.get(self.application_id, "Unknown")

    @property
    def role_type(self) -> str:
        return _ROLE_TYPES.get(self.role, "Unknown")

    def __str__(self) -> str:
        return f"{self.application_type} {self.role_type} on {self.computer_name}"

    def details(self) -> str:
        return (
            f"X-Plane Beacon Version: {self.beacon_version} "
            f"{self.application_type}({self.version_number} {self.role_type}) "
            f"on {self.computer_name} UDP Port: {self.endpoint} "
            f"Raknet: {self.source_ip}:{self.raknet_port}"
        )


class XPlanes(dict):
    """
    Registry of discovered instances keyed by ``ip:port``.
    The first beacon seen for an endpoint is kept.
    """

    def add(self, beacon: XPlaneBeacon) -> bool:
        key = beacon.endpoint
        if key in self:
            return False
        self[key] = beacon
        return True

    def list(self) -> list[str]:
        return [str(beacon) for beacon in self.values()]

    def find(self, name: str) -> Optional[tuple[str, int]]:
        """Return the address of the instance whose display name is *name*."""
        for beacon in self.values():
            if str(beacon) == name:
                return beacon.addr
        return None


@dataclass(frozen=True)
class Position:
    """One RPOS sample. Angles in degrees, speeds in m/s, rates in rad/s."""
    longitude:      float
    latitude:       float
    elevation:      float       # metres above sea level
    height_agl:     float       # metres above terrain
    pitch:          float
    heading:        float       # true heading
    roll:           float
    velocity_east:  float
    velocity_up:    float
    velocity_south: float
    roll_rate:      float
    pitch_rate:     float
    yaw_rate:       float
    timestamp:      Optional[datetime] = None

    @property
    def speed_over_ground(self) -> float:
        return math.sqrt(self.velocity_east ** 2 + self.velocity_south ** 2)


class StatusKind(enum.Enum):
    INFO = "info"
    TIMEOUT = "timeout"
    FATAL = "fatal"


@dataclass(frozen=True)
class Status:
    """Feedback event emitted by the pipeline workers."""
    kind:    StatusKind
    message: str = ""

    @classmethod
    def info(cls, message: str = "") -> "Status":
        return cls(StatusKind.INFO, message)

    @classmethod
    def timeout(cls) -> "Status":
        return cls(StatusKind.TIMEOUT, "Timeout")

    @classmethod
    def fatal(cls, reason: str) -> "Status":
        return cls(StatusKind.FATAL, reason)

    @property
    def is_heartbeat(self) -> bool:
        return self.kind is StatusKind.INFO and not self.message

    @property
    def is_fatal(self) -> bool:
        return self.kind is StatusKind.FATAL

    def __str__(self) -> str:
        if self.kind is StatusKind.FATAL:
            return f"Fatal: {self.message}"
        return self.message
