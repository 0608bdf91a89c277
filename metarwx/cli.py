#!/usr/bin/env python3

import sys
import json
import time
import logging
import argparse
from typing import List, Optional

import requests

from metarwx import config
from metarwx.sources.avwx import AvWxSource
from metarwx.weather.mapper import MetarDocumentMapper, MetarDocumentError
from metarwx.weather.render import OutputMode, RenderOptions, render_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_NO_MEMORY = 2
EXIT_TRANSPORT = 3
EXIT_NO_STATIONS = 4

FORMAT_HELP = """\
format placeholders:
  {raw_text}                  the raw METAR
  {station_id}                4-letter ICAO weather station code
  {observation_time}          the UTC time the METAR was observed
  {observation_localtime}     the local time the METAR was observed
  {latitude} {longitude}      decimal position of the station
  {temp_c} {temp_f}           temperature in Celsius / Fahrenheit
  {dewpoint_c} {dewpoint_f}   dewpoint in Celsius / Fahrenheit
  {wind_dir_degrees}          wind direction, or 0 for variable
  {wind_speed_kt}             wind speed in knots
  {wind_gust_kt}              wind gust speed in knots
  {visibility_statute_mi}     horizontal visibility in miles
  {altim_in_hg}               altimeter in inches of mercury
  {sea_level_pressure_mb}     sea-level pressure in millibars
  {quality_control_flags}     remarks about the station
  {wx_string}                 adverse weather information
  {sky_condition}             cloud cover summary
  {flight_category}           VFR, MVFR, IFR, or LIFR
  {metar_type}                METAR or SPECI
  {precip_in} {snow_in}       precipitation / snow in inches
  {vert_vis_ft}               vertical visibility in feet
  {elevation_m}               station elevation in meters
"""


class MetarArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = MetarArgumentParser(
        prog='metarwx',
        description='Fetch and display METAR reports for weather stations',
        epilog=FORMAT_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument('stations', help='4-letter ICAO weather station codes', nargs='*')
    parser.add_argument('-?', '--help', action='help', help='Show this help message and exit')
    parser.add_argument('-G', '--color', help='Enable color output', action='store_true')
    parser.add_argument('-d', '--decode', help='Decode METAR text', action='store_true')
    parser.add_argument('-e', '--entries', help='Display no more than this number of entries',
                        type=int, default=config.DEFAULT_MAX_ENTRIES)
    parser.add_argument('-f', '--format', help='Output using this placeholder format')
    parser.add_argument('-h', '--hours', help='Number of hours in the past to retrieve',
                        type=int, default=config.DEFAULT_HOURS)
    parser.add_argument('-n', '--force-refresh', help='Force a redownload of the METAR', action='store_true')
    parser.add_argument('-p', '--cache-dir', help='Directory for cached documents', default=config.CACHE_DIR)
    parser.add_argument('-t', '--ignore-timestamp', help='Use a cached METAR regardless of its age',
                        action='store_true')
    parser.add_argument('-u', '--url', help='Base URL of the METAR service', default=config.BASE_URL)
    parser.add_argument('-x', '--purge', help='Purge the cache before retrieval', action='store_true')
    parser.add_argument('--json', help='Output mapped reports as JSON', action='store_true')
    parser.add_argument('-v', '--verbose', help='Verbose output', action='store_true')
    return parser


def output_mode(args) -> OutputMode:
    if args.decode:
        return OutputMode.NARRATIVE
    if args.format is not None:
        return OutputMode.TEMPLATE
    return OutputMode.RAW


class MetarReporter:
    """Fetches, maps and prints reports station by station."""

    def __init__(self, source: AvWxSource, args, out=None):
        self.source = source
        self.args = args
        self.out = out or sys.stdout
        self.mapper = MetarDocumentMapper()
        self.mode = output_mode(args)
        self.options = RenderOptions(color=args.color)

    def _print(self, text: str) -> None:
        print(text, file=self.out)

    def report_station(self, station: str) -> int:
        """
        Print the reports for one station.

        Returns:
            Number of reports printed
        """
        document = self.source.get_document(station)
        if document is None:
            self._print(f"No weather information for {station}: retrieval failed.")
            return 0

        try:
            reports = self.mapper.map_document(document, max_reports=self.args.entries)
        except MetarDocumentError as e:
            logger.debug("Mapping failed for %s: %s", station, e)
            self._print(f"No weather information for {station}: {e.reason}.")
            return 0

        if not reports:
            self._print(f"No weather information for {station} is available at this time.")
            return 0

        if self.args.json:
            self._print(json.dumps([r.to_dict() for r in reports], indent=2))
            return len(reports)

        for report in reports:
            self._print(render_report(report, self.mode, self.args.format, self.options))
        return len(reports)

    def run(self, stations: List[str], throttle: float = config.THROTTLE_SECONDS) -> int:
        total = 0
        for i, station in enumerate(stations):
            total += self.report_station(station)
            if throttle > 0 and i + 1 < len(stations):
                time.sleep(throttle)
        return total


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        try:
            source = AvWxSource(cache_dir=args.cache_dir, base_url=args.url, hours=args.hours)
        except requests.RequestException as e:
            print(f"{parser.prog}: error: Cannot initialize transport: {e}", file=sys.stderr)
            return EXIT_TRANSPORT
        except OSError as e:
            print(f"{parser.prog}: error: Cannot use cache directory {args.cache_dir}: {e}",
                  file=sys.stderr)
            return EXIT_TRANSPORT

        with source:
            if args.purge:
                source.purge()

            if not args.stations:
                if args.purge:
                    print(f"{parser.prog}: Cache purged.", file=sys.stderr)
                    return EXIT_OK
                print(f"{parser.prog}: error: Please specify a weather station by 4-letter ICAO code.",
                      file=sys.stderr)
                return EXIT_NO_STATIONS

            source.set_force_refresh(args.force_refresh)
            source.set_never_refresh(args.ignore_timestamp)
            MetarReporter(source, args).run(args.stations)
    except MemoryError:
        print(f"{parser.prog}: error: Out of memory.", file=sys.stderr)
        return EXIT_NO_MEMORY

    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
