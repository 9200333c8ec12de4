#!/usr/bin/env python3
"""
tibia-maps: convert the client's Automap files to PNG + JSON data and back.

Usage:
    tibia-maps --from-maps=./Automap --output-dir=./data
    tibia-maps --from-data=./data --output-dir=./Automap-new --no-markers
"""

import argparse
import logging
import sys
from pathlib import Path

from tibiamaps import __version__
from tibiamaps.convert_maps import RunConfig, RunReport, convert_from_maps, convert_to_maps
from tibiamaps.errors import MapConversionError
from tibiamaps.log_utils import setup_logging
from tibiamaps.storage import DataDirectory, MapsDirectory, empty_directory
from tibiamaps.tile_ids import compute_bounds

log = logging.getLogger('tibiamaps.cli')

DEFAULT_MAPS_DIR = 'Automap'
DEFAULT_DATA_DIR = 'data'
DEFAULT_NEW_MAPS_DIR = 'Automap-new'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='tibia-maps',
        description='Convert Automap tile files to floor PNGs + marker JSON, and back.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument('--from-maps', nargs='?', const=DEFAULT_MAPS_DIR, metavar='DIR',
                        help=f'Automap directory to read (default: {DEFAULT_MAPS_DIR})')
    source.add_argument('--from-data', nargs='?', const=DEFAULT_DATA_DIR, metavar='DIR',
                        help=f'Data directory to read (default: {DEFAULT_DATA_DIR})')
    parser.add_argument('--output-dir', nargs='?', metavar='DIR',
                        help=f'Directory to write, emptied first (default: {DEFAULT_DATA_DIR} '
                             f'for --from-maps, {DEFAULT_NEW_MAPS_DIR} for --from-data)')
    parser.add_argument('--no-markers', action='store_true',
                        help='Skip map markers in both directions')
    parser.add_argument('-v', '--version', action='version', version=f'v{__version__}')
    parser.add_argument('--verbose', action='store_true', help='Log debug output')
    parser.add_argument('--debug', metavar='TOPICS',
                        help='Comma-separated debug topics (convert, storage, cli, all)')
    parser.add_argument('--color', action='store_true', help='Colored log output')
    parser.add_argument('--log-file', metavar='FILE', help='Also write the log to FILE')
    return parser


def from_maps(maps_dir: Path, data_dir: Path, config: RunConfig) -> RunReport:
    maps = MapsDirectory(maps_dir)
    tile_ids = maps.tile_ids()
    log.info('Found %d map files in %s', len(tile_ids), maps_dir)
    bounds = compute_bounds(tile_ids)

    data = DataDirectory(empty_directory(data_dir))
    data.write_bounds(bounds)
    log.info('Bounds: x %d–%d, y %d–%d, %d×%d px, floors %s',
             bounds.x_min, bounds.x_max, bounds.y_min, bounds.y_max,
             bounds.width, bounds.height, ', '.join(str(z) for z in bounds.floor_ids))

    return convert_from_maps(bounds, tile_ids, maps.read_tile,
                             data.write_raster, data.write_markers, config)


def from_data(data_dir: Path, maps_dir: Path, config: RunConfig) -> RunReport:
    data = DataDirectory(data_dir)
    bounds = data.read_bounds()
    maps = MapsDirectory(empty_directory(maps_dir))
    return convert_to_maps(bounds, data.read_raster, data.read_markers, maps.write_tile, config)


def main(argv=None) -> int:
    parser = build_parser()
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        parser.print_help()
        return 1
    args = parser.parse_args(argv)

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO,
                  color_logs=args.color, debug_topics=args.debug, log_file=args.log_file)

    if not args.from_maps and not args.from_data:
        log.error('Missing `--from-maps` or `--from-data` flag.')
        return 1

    config = RunConfig(include_markers=not args.no_markers)
    try:
        if args.from_maps:
            output_dir = args.output_dir or DEFAULT_DATA_DIR
            report = from_maps(Path(args.from_maps).resolve(), Path(output_dir).resolve(), config)
        else:
            output_dir = args.output_dir or DEFAULT_NEW_MAPS_DIR
            report = from_data(Path(args.from_data).resolve(), Path(output_dir).resolve(), config)
    except (MapConversionError, OSError, KeyError, ValueError) as e:
        log.error('%s', e)
        return 1

    log.info('=== Summary ===')
    for line in report.summary():
        log.info(line)
    log.info('Output dir: %s', Path(output_dir).resolve())
    return 0


if __name__ == '__main__':
    sys.exit(main())
