import math
from datetime import datetime, timezone, timedelta

import pytest

from xpgps import nmea
from xpgps.nmea import ENHANCED, STANDARD


MIDNIGHT = datetime(2024, 1, 1, 0, 0, 0)
FIX_TIME = datetime(2024, 1, 1, 12, 34, 56, 789000)


@pytest.mark.parametrize("body,expected", [
    ("PFEC,GPint,RMC05", 0x2D),
    ("GPGLL,4807.038,N,01131.000,E,123519,A", 0x25),
    ("GPGSA,A,3,04,05,,09,12,,,24,,,,,2.5,1.3,2.1", 57),
])
def test_checksum_known_sentences(body: str, expected: int) -> None:
    assert nmea.calculate_checksum(body) == expected


def test_verify_checksum_accepts_generated_and_rejects_tampered() -> None:
    sentence = nmea.to_gpvtg(45.123, 1.0)
    assert nmea.verify_checksum(sentence)
    assert not nmea.verify_checksum(sentence.replace("1.943845", "1.943846"))
    assert not nmea.verify_checksum(sentence.replace(",T,", ",X,", 1))
    assert not nmea.verify_checksum("GPVTG,0,T*00")


def test_gga_zero_position() -> None:
    assert nmea.generate_gga(MIDNIGHT, 0, 0, 0, 0, 0, 0, 0) == \
        "$GPGGA,000000.000,0000.0000,N,00000.0000,E,0,0,0.0,0.00,M,0.00,M,,*5D\r\n"


def test_gga_zero_position_enhanced() -> None:
    assert nmea.generate_gga(MIDNIGHT, 0, 0, 0, 0, 0, 0, 0, ENHANCED) == \
        "$GPGGA,000000.000,0000.0000000,N,00000.0000000,E,0,0,0.0,0.0000,M,0.0000,M,,*5D\r\n"


@pytest.mark.parametrize("lat,lon,expected", [
    (12.3456, 98.7654, "1220.7360,N,09845.9240,E,1,10,1.2,100.50,M,50.00,M,,*52"),
    (-12.3456, -98.7654, "1220.7360,S,09845.9240,W,1,10,1.2,100.50,M,50.00,M,,*5D"),
    (-12.3456, 98.7654, "1220.7360,S,09845.9240,E,1,10,1.2,100.50,M,50.00,M,,*4F"),
    (12.3456, -98.7654, "1220.7360,N,09845.9240,W,1,10,1.2,100.50,M,50.00,M,,*40"),
])
def test_gga_hemispheres(lat: float, lon: float, expected: str) -> None:
    sentence = nmea.generate_gga(FIX_TIME, lat, lon, 1, 10, 1.2, 100.5, 50.0)
    assert sentence == f"$GPGGA,123456.789,{expected}\r\n"


def test_to_gpgga_reports_simulated_fix() -> None:
    sentence = nmea.to_gpgga(12.3456, 98.7654, 100.5, timestamp=FIX_TIME)
    fields = sentence.split(",")
    assert fields[6:10] == ["8", "12", "0.5", "100.50"]
    assert fields[11] == "0.00"
    assert nmea.verify_checksum(sentence)


def test_to_gpgga_uses_current_utc_time_by_default() -> None:
    sentence = nmea.to_gpgga(0, 0, 0)
    assert len(sentence.split(",")[1]) == len("HHMMSS.mmm")


def test_format_time_converts_aware_timestamps_to_utc() -> None:
    local = datetime(2024, 1, 1, 14, 0, 0, 5000, tzinfo=timezone(timedelta(hours=2)))
    assert nmea.format_time(local) == "120000.005"


@pytest.mark.parametrize("value,expected", [
    (8.123456, "0807.4074,N"),
    (0.0, "0000.0000,N"),
    (-0.5, "0030.0000,S"),
    # minutes that round up to 60 carry into the degrees
    (10.99999999, "1100.0000,N"),
])
def test_calculate_lat(value: float, expected: str) -> None:
    assert nmea.calculate_lat(value) == expected


def test_calculate_lon() -> None:
    assert nmea.calculate_lon(109.123456) == "10907.4074,E"
    assert nmea.calculate_lon(-109.123456) == "10907.4074,W"
    assert nmea.calculate_lon(0.0) == "00000.0000,E"


@pytest.mark.parametrize("heading,sog,expected", [
    (0, 0, "$GPVTG,0.000,T,0.000,M,0.000000,N,0.000000,K,D*26\r\n"),
    (45.123, 1, "$GPVTG,45.123,T,45.123,M,1.943845,N,3.600000,K,D*25\r\n"),
    (-45.123, 10, "$GPVTG,314.877,T,314.877,M,19.438452,N,36.000000,K,D*27\r\n"),
    (360.123, 1, "$GPVTG,0.123,T,0.123,M,1.943845,N,3.600000,K,D*25\r\n"),
    (720.123, 1, "$GPVTG,0.123,T,0.123,M,1.943845,N,3.600000,K,D*25\r\n"),
])
def test_vtg(heading: float, sog: float, expected: str) -> None:
    assert nmea.to_gpvtg(heading, sog, STANDARD) == expected


def test_vtg_enhanced() -> None:
    assert nmea.to_gpvtg(45.123, 1, ENHANCED) == \
        "$GPVTG,45.123,T,45.123,M,1.9438452,N,3.6000000,K,D*27\r\n"


@pytest.mark.parametrize("heading", [0.0, 45.5, 359.9, -1e-15, -725.0, 1080.0])
def test_normalize_heading_range_and_idempotence(heading: float) -> None:
    h = nmea.normalize_heading(heading)
    assert 0.0 <= h < 360.0
    assert nmea.normalize_heading(h) == h


def test_get_precision() -> None:
    assert nmea.get_precision("Enhanced") is ENHANCED
    assert nmea.get_precision(STANDARD) is STANDARD
    with pytest.raises(ValueError):
        nmea.get_precision("extreme")


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_gga_non_finite_values_leave_fields_empty(bad: float) -> None:
    sentence = nmea.to_gpgga(bad, bad, bad, timestamp=FIX_TIME)
    assert sentence.startswith("$GPGGA,123456.789,,,,,8,12,0.5,,M,0.00,M,,*")
    assert nmea.verify_checksum(sentence)


def test_gga_non_finite_latitude_keeps_longitude() -> None:
    sentence = nmea.to_gpgga(math.nan, 8.123456, 10.0, timestamp=FIX_TIME)
    assert sentence.startswith("$GPGGA,123456.789,,,00807.4074,E,8,")


@pytest.mark.parametrize("heading,sog", [
    (math.nan, math.nan),
    (math.inf, -math.inf),
    (-math.inf, math.nan),
])
def test_vtg_non_finite_values_leave_fields_empty(heading: float, sog: float) -> None:
    sentence = nmea.to_gpvtg(heading, sog)
    assert sentence.startswith("$GPVTG,,T,,M,,N,,K,D*")
    assert nmea.verify_checksum(sentence)
