"""Command line entry point for the X-Plane GPS connector."""

import argparse
import logging
import queue
import sys
import threading
import time

from . import nmea
from .client import GPSConnector
from .common import (
    DEFAULT_BAUD_RATE,
    DEFAULT_POS_FREQ,
    POSSIBLE_BAUD_RATES,
    POSSIBLE_POS_FREQS,
    format_addr,
    log,
    parse_addr,
)
from .discovery import find_xplane, scan_xplanes
from .outputters import default_outputters
from .sinks import DummySender, SerialSender, find_ports

# Heartbeats are only shown when nothing else was shown for this long
QUIET_HEARTBEAT_SECS = 20.0


def _configure_logging(level_name: str):
    level = getattr(logging, level_name.upper(), logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(message)s')
    else:
        root_logger.setLevel(level)

    logging.getLogger('xpgps').setLevel(level)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xpgps",
        description="Stream X-Plane positions to a serial GPS device as NMEA sentences",
    )
    parser.add_argument('--xplane', default=None, metavar='HOST[:PORT]',
                        help='X-Plane address (auto-discover if omitted)')
    parser.add_argument('--discover-timeout', type=float, default=5.0,
                        help='Seconds to wait for an X-Plane beacon (default: 5)')
    parser.add_argument('--scan', action='store_true',
                        help='List X-Plane instances on the network and exit')
    parser.add_argument('--list-ports', action='store_true',
                        help='List serial ports and exit')
    parser.add_argument('--port', default='',
                        help='Serial port of the GPS device, e.g. /dev/ttyUSB0 or COM3')
    parser.add_argument('--baud', type=int, default=DEFAULT_BAUD_RATE,
                        choices=POSSIBLE_BAUD_RATES,
                        help=f'Baud rate (default: {DEFAULT_BAUD_RATE})')
    parser.add_argument('--data-bits', type=int, default=8, choices=[5, 6, 7, 8])
    parser.add_argument('--parity', default='N', choices=['N', 'E', 'O', 'M', 'S'])
    parser.add_argument('--stop-bits', type=float, default=1, choices=[1, 1.5, 2])
    parser.add_argument('--freq', type=int, default=DEFAULT_POS_FREQ,
                        choices=POSSIBLE_POS_FREQS,
                        help=f'Position requests per second (default: {DEFAULT_POS_FREQ})')
    parser.add_argument('--precision', default='standard',
                        choices=sorted(nmea.PRECISIONS),
                        help='Decimal places in sentences; enhanced may not suit '
                             'every device (default: standard)')
    parser.add_argument('--dummy', action='store_true',
                        help='Log sentences instead of writing to a serial port')
    parser.add_argument('--secs', type=float, default=None,
                        help='Seconds to run (default: until interrupted)')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging verbosity (default: INFO)')
    return parser


def _follow_status(connector: GPSConnector, stream, secs=None) -> int:
    """Show statuses until the run ends; returns the process exit code."""
    t_end = time.monotonic() + secs if secs else None
    last_shown = time.monotonic()
    exit_code = 0

    try:
        while True:
            if t_end is not None and time.monotonic() >= t_end:
                connector.stop()
                t_end = None
            try:
                status = stream.get(timeout=0.5)
            except queue.Empty:
                continue
            if status is None:
                break
            if status.is_heartbeat and time.monotonic() - last_shown < QUIET_HEARTBEAT_SECS:
                continue
            if status.is_fatal:
                log.warning(f"Quit on feedback: {status.message}")
                connector.stop()
                exit_code = 1
                continue
            log.info(f"Status: {status.message or 'receiving positions'}")
            last_shown = time.monotonic()
    except KeyboardInterrupt:
        log.info("Interrupted")
        connector.stop()
        for _ in stream:
            pass

    return exit_code


def main(argv=None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.log_level)

    if args.list_ports:
        for port in find_ports():
            print(port)
        return 0

    if args.scan:
        xplanes = scan_xplanes(args.discover_timeout)
        for beacon in xplanes.values():
            print(f"{beacon}\t{beacon.endpoint}")
        return 0 if xplanes else 1

    precision = nmea.get_precision(args.precision)
    if args.dummy:
        sender = DummySender(default_outputters(), precision=precision)
    else:
        if not args.port:
            log.error("No serial port given (use --port, or --dummy to only log)")
            return 2
        sender = SerialSender(default_outputters(), port=args.port, precision=precision)

    connector = GPSConnector(sender, position_freq=args.freq, precision=precision)
    connector.set_baud_rate(args.baud)
    connector.set_data_bits(args.data_bits)
    connector.set_parity(args.parity)
    connector.set_stop_bits(args.stop_bits)

    if args.xplane:
        try:
            connector.set_xplane(parse_addr(args.xplane))
        except ValueError as e:
            log.error(str(e))
            return 2
    else:
        beacon = find_xplane(args.discover_timeout)
        if beacon is None:
            log.error("No master X-Plane found on the network")
            return 1
        log.info(f"Found {beacon} at {beacon.endpoint}")
        connector.set_xplane(beacon.addr)

    log.info(f"Sending positions from {format_addr(connector.xplane)} "
             f"({precision.name} precision)")
    stream = connector.run(threading.Event())
    return _follow_status(connector, stream, args.secs)


if __name__ == "__main__":
    sys.exit(main())
