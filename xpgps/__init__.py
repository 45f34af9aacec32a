"""X-Plane to serial GPS connector.

Discovers X-Plane on the LAN, subscribes to its RPOS position stream and
writes NMEA GGA/VTG sentences to a serial GPS device.
"""

from .common import (
	MCAST_GROUP,
	MCAST_PORT,
	RETRIES,
	BEACON_TAG,
	RPOS_TAG,
	MalformedRecord,
	ProtocolMismatch,
	OutputError,
)
from .models import XPlaneBeacon, XPlanes, Position, Status, StatusKind
from .nmea import Precision, STANDARD, ENHANCED, to_gpgga, to_gpvtg
from .discovery import decode_beacon, find_xplane, scan_xplanes
from .rpos import decode_position, get_request, PositionStream, request_positions
from .outputters import Outputter, GGA, VTG, default_outputters
from .sinks import SerialMode, SerialSender, DummySender, find_ports
from .channels import SampleChannel, StatusStream
from .client import AppState, GPSConnector

__all__ = [
	"MCAST_GROUP",
	"MCAST_PORT",
	"RETRIES",
	"BEACON_TAG",
	"RPOS_TAG",
	"MalformedRecord",
	"ProtocolMismatch",
	"OutputError",
	"XPlaneBeacon",
	"XPlanes",
	"Position",
	"Status",
	"StatusKind",
	"Precision",
	"STANDARD",
	"ENHANCED",
	"to_gpgga",
	"to_gpvtg",
	"decode_beacon",
	"find_xplane",
	"scan_xplanes",
	"decode_position",
	"get_request",
	"PositionStream",
	"request_positions",
	"Outputter",
	"GGA",
	"VTG",
	"default_outputters",
	"SerialMode",
	"SerialSender",
	"DummySender",
	"find_ports",
	"SampleChannel",
	"StatusStream",
	"AppState",
	"GPSConnector",
]
