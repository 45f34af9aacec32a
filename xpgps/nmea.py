"""NMEA 0183 sentence encoding (GGA and VTG) with selectable precision."""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

KNOTS_PER_MS = 1.943845249221964
KMH_PER_MS   = 3.6

LAT_DIRECTIONS = ("N", "S")
LON_DIRECTIONS = ("E", "W")

# Synthetic always-valid fix reported in every GGA sentence
SIM_FIX_QUALITY = 8     # simulation mode
SIM_SATELLITES  = 12
SIM_HDOP        = 0.5
SIM_GEOID_SEP   = 0.0
VTG_MODE        = "D"   # differential


@dataclass(frozen=True)
class Precision:
    """Number of decimal places used for each sentence field."""
    name: str
    lat:  int
    lon:  int
    alt:  int
    sog:  int
    hdg:  int


# Standard follows the NMEA recommendation; Enhanced adds decimal places
# that not every receiver accepts.
STANDARD = Precision("Standard", lat=4, lon=4, alt=2, sog=6, hdg=3)
ENHANCED = Precision("Enhanced", lat=7, lon=7, alt=4, sog=7, hdg=3)

PRECISIONS = {p.name.lower(): p for p in (STANDARD, ENHANCED)}


def get_precision(value: Union[str, Precision]) -> Precision:
    """Resolve a profile name (case-insensitive) or pass a profile through."""
    if isinstance(value, Precision):
        return value
    try:
        return PRECISIONS[str(value).strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown precision {value!r}; expected one of "
                         f"{', '.join(sorted(PRECISIONS))}") from None


def calculate_checksum(body: str) -> int:
    """XOR of every character of the sentence body (between ``$`` and ``*``)."""
    cs = 0
    for ch in body:
        cs ^= ord(ch)
    return cs & 0xFF


def verify_checksum(sentence: str) -> bool:
    """Check a framed ``$...*HH`` sentence against its own checksum."""
    line = sentence.rstrip("\r\n")
    if not line.startswith("$"):
        return False
    star = line.rfind("*")
    if star < 0 or len(line) != star + 3:
        return False
    try:
        expected = int(line[star + 1:], 16)
    except ValueError:
        return False
    return calculate_checksum(line[1:star]) == expected


def _frame(body: str) -> str:
    return f"${body}*{calculate_checksum(body):02X}\r\n"


def _fmt(value: float, places: int) -> str:
    """Fixed-point field; non-finite values become an empty field."""
    if not math.isfinite(value):
        return ""
    return f"{value:.{places}f}"


def calculate_ll(value: float, directions: tuple[str, str],
                 degree_digits: int, places: int) -> str:
    """
    Convert signed decimal degrees to NMEA ``d..dmm.mmmm,H``.

    The hemisphere comes from the sign of *value* (zero is positive); the
    magnitude is split into whole degrees and zero-padded minutes. NaN and
    infinity leave both fields empty.
    """
    if not math.isfinite(value):
        return ","
    magnitude = abs(value)
    degrees = int(math.floor(magnitude))
    minutes = round((magnitude - degrees) * 60, places)
    if minutes >= 60:
        degrees += 1
        minutes -= 60
    direction = directions[0] if value >= 0 else directions[1]
    width = places + 3 if places else 2
    return f"{degrees:0{degree_digits}d}{minutes:0{width}.{places}f},{direction}"


def calculate_lat(lat: float, precision: Precision = STANDARD) -> str:
    return calculate_ll(lat, LAT_DIRECTIONS, 2, precision.lat)


def calculate_lon(lon: float, precision: Precision = STANDARD) -> str:
    return calculate_ll(lon, LON_DIRECTIONS, 3, precision.lon)


def normalize_heading(heading: float) -> float:
    """Wrap any heading into [0, 360)."""
    h = heading % 360.0
    # tiny negative inputs round up to exactly 360.0
    if h >= 360.0:
        h = 0.0
    return h


def format_time(timestamp: Optional[datetime] = None) -> str:
    """UTC ``HHMMSS.mmm``; naive datetimes are taken as UTC."""
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)
    elif timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)
    return f"{timestamp:%H%M%S}.{timestamp.microsecond // 1000:03d}"


def generate_gga(timestamp: Optional[datetime], lat: float, lon: float,
                 quality: int, satellites: int, hdop: float,
                 alt: float, sep: float,
                 precision: Precision = STANDARD) -> str:
    """
    Build a GPGGA sentence from explicit fix fields.

    Example: $GPGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,46.9,M,,*47
        123519       fix time UTC
        4807.038,N   latitude 48 deg 07.038' N
        01131.000,E  longitude 11 deg 31.000' E
        1            fix quality
        08           satellites tracked
        0.9          HDOP
        545.4,M      altitude above mean sea level
        46.9,M       geoid separation
        (empty)      DGPS age
        (empty)      DGPS station
    """
    body = (
        f"GPGGA,{format_time(timestamp)},"
        f"{calculate_lat(lat, precision)},{calculate_lon(lon, precision)},"
        f"{quality:d},{satellites:d},{_fmt(hdop, 1)},"
        f"{_fmt(alt, precision.alt)},M,{_fmt(sep, precision.alt)},M,,"
    )
    return _frame(body)


def to_gpgga(lat: float, lon: float, alt: float,
             precision: Precision = STANDARD,
             timestamp: Optional[datetime] = None) -> str:
    """GPGGA for a simulated fix at the given position; time defaults to now."""
    return generate_gga(timestamp, lat, lon,
                        SIM_FIX_QUALITY, SIM_SATELLITES, SIM_HDOP,
                        alt, SIM_GEOID_SEP, precision)


def to_gpvtg(heading: float, sog: float, precision: Precision = STANDARD) -> str:
    """
    Build a GPVTG sentence from a true heading (degrees) and speed (m/s).

    Example: $GPVTG,224.592,T,224.592,M,0.003,N,0.005,K,D*20
    True and magnetic course are reported identically.
    """
    hdg = _fmt(normalize_heading(heading), precision.hdg)
    knots = _fmt(sog * KNOTS_PER_MS, precision.sog)
    kmh = _fmt(sog * KMH_PER_MS, precision.sog)
    body = f"GPVTG,{hdg},T,{hdg},M,{knots},N,{kmh},K,{VTG_MODE}"
    return _frame(body)
