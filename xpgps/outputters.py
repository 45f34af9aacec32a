"""Outputters turn a Position into one sentence for the output device."""

from . import nmea
from .models import Position


class Outputter:
    """Produces a sentence for a position; may raise to skip that sentence."""

    name = "outputter"

    def output(self, pos: Position, precision: nmea.Precision = nmea.STANDARD) -> str:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class GGA(Outputter):
    """GPGGA position fix."""

    name = "GGA"

    def output(self, pos: Position, precision: nmea.Precision = nmea.STANDARD) -> str:
        return nmea.to_gpgga(pos.latitude, pos.longitude, pos.elevation,
                             precision, timestamp=pos.timestamp)


class VTG(Outputter):
    """GPVTG course and speed over ground."""

    name = "VTG"

    def output(self, pos: Position, precision: nmea.Precision = nmea.STANDARD) -> str:
        return nmea.to_gpvtg(pos.heading, pos.speed_over_ground, precision)


def default_outputters() -> list[Outputter]:
    return [GGA(), VTG()]
