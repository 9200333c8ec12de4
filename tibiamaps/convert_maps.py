"""
Convert between automap tile files and per-floor rasters + marker lists.

From maps (decode):
  {id}.map ... → floor raster 'map', floor raster 'path', {tile_id: [Marker]}

To maps (encode):
  floor rasters + [Marker] → {id}.map for every explored tile position

The orchestrator never touches the filesystem itself. Callers pass the
reader/sink callables (see storage.DataDirectory for the on-disk ones):

  read_tile(tile_id) -> bytes
  write_raster(z, layer, pixels)          layer is 'map' or 'path'
  write_markers(z, {tile_id: [Marker]})
  read_raster(z, layer) -> (H, W, 3) uint8 array
  read_markers(z) -> [Marker]
  write_tile(tile_id, data)

Failures are isolated per tile: they are logged, collected in the
RunReport and the run carries on with the next tile or floor.
"""

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Iterable

import numpy as np

from tibiamaps.colors import MAP_LAYER, PATH_LAYER
from tibiamaps.compositor import (
    FloorRaster, is_unexplored, join_tile_file, paste_tile, slice_tile, split_tile_file,
)
from tibiamaps.errors import (
    InvalidRasterSize, InvalidTileSize, MalformedIdentifier, MarkerEncodingError,
    TruncatedMarkerBlock, UnmappableColor,
)
from tibiamaps.markers import Marker, decode_markers, encode_markers, partition_markers
from tibiamaps.tile_ids import Bounds, decode_id, floor_name

log = logging.getLogger('tibiamaps.convert')

WARNING = 'warning'
ERROR = 'error'


@dataclass(frozen=True)
class RunConfig:
    include_markers: bool = True


@dataclass(frozen=True)
class TileIssue:
    tile_id: str
    kind: str
    message: str


@dataclass
class RunReport:
    """What happened during one run: tiles converted per floor, and every issue."""
    tiles: dict[int, int] = field(default_factory=dict)
    issues: list[TileIssue] = field(default_factory=list)

    def warn(self, tile_id: str, message):
        self.issues.append(TileIssue(tile_id, WARNING, str(message)))
        log.warning('%s: %s', tile_id, message)

    def fail(self, tile_id: str, error):
        self.issues.append(TileIssue(tile_id, ERROR, str(error)))
        log.error('%s: %s', tile_id, error)

    def count(self, z: int):
        self.tiles[z] = self.tiles.get(z, 0) + 1

    @property
    def warnings(self) -> list[TileIssue]:
        return [i for i in self.issues if i.kind == WARNING]

    @property
    def errors(self) -> list[TileIssue]:
        return [i for i in self.issues if i.kind == ERROR]

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self) -> list[str]:
        lines = [f'Floor {floor_name(z)}: {n} tiles' for z, n in sorted(self.tiles.items())]
        lines.append(f'Converted:  {sum(self.tiles.values())} tiles')
        lines.append(f'Warnings:   {len(self.warnings)}')
        lines.append(f'Errors:     {len(self.errors)}')
        return lines


@dataclass
class ConversionContext:
    """Per-run state, handed to every floor. Nothing here is module-global."""
    bounds: Bounds
    config: RunConfig
    report: RunReport


@dataclass
class FloorState:
    """Per-floor state: rebuilt for every floor so floors never share data."""
    raster: FloorRaster
    markers: dict[str, list[Marker]] = field(default_factory=dict)


def group_by_floor(tile_ids: Iterable[str], report: RunReport) -> dict[int, list[str]]:
    """Sorted tile ids per floor. Malformed ids are reported and skipped."""
    floors = {}
    for tile_id in tile_ids:
        try:
            _, _, z = decode_id(tile_id)
        except MalformedIdentifier as e:
            report.fail(str(tile_id), e)
            continue
        floors.setdefault(z, []).append(tile_id)
    return {z: sorted(ids) for z, ids in floors.items()}


# ── From maps ────────────────────────────────────────────────────────────────

def draw_map_section(context: ConversionContext, state: FloorState, tile_id: str,
                     read_tile: Callable[[str], bytes]):
    """Paste one tile file into the floor raster and collect its markers."""
    report = context.report
    try:
        data = read_tile(tile_id)
    except OSError as e:
        report.fail(tile_id, e)
        return

    # First 0x10000 bytes: visual map, one byte per pixel.
    # Next 0x10000 bytes: pathfinding cost per pixel (0xFA unexplored, 0xFF non-walkable).
    # Rest: marker block.
    visual, path, marker_block = split_tile_file(data)
    try:
        unknown = paste_tile(state.raster, context.bounds, tile_id, visual, path)
    except (InvalidTileSize, InvalidRasterSize) as e:
        report.fail(tile_id, e)
        return
    for value in unknown:
        report.warn(tile_id, f'Unknown color ID: 0x{value:02X}, drawn as unexplored')

    if not marker_block:
        # Some files lack the 4 null bytes that mean "no markers".
        report.warn(tile_id, 'missing marker block, treated as no markers')

    if context.config.include_markers:
        _, _, z = decode_id(tile_id)
        try:
            markers = decode_markers(marker_block, z, on_warning=partial(report.warn, tile_id))
        except TruncatedMarkerBlock as e:
            report.fail(tile_id, f'{e}; markers dropped')
        else:
            if markers:
                state.markers[tile_id] = markers

    report.count(state.raster.z)


def render_floor(context: ConversionContext, z: int, tile_ids: list[str],
                 read_tile: Callable[[str], bytes],
                 write_raster: Callable[[int, str, np.ndarray], None],
                 write_markers: Callable[[int, dict], None]):
    log.info('Rendering floor %s… (%d tiles)', floor_name(z), len(tile_ids))
    state = FloorState(FloorRaster(context.bounds, z))
    for tile_id in tile_ids:
        draw_map_section(context, state, tile_id, read_tile)

    write_raster(z, MAP_LAYER, state.raster.map)
    write_raster(z, PATH_LAYER, state.raster.path)
    write_markers(z, state.markers if context.config.include_markers else {})


def convert_from_maps(bounds: Bounds, tile_ids: Iterable[str],
                      read_tile: Callable[[str], bytes],
                      write_raster: Callable[[int, str, np.ndarray], None],
                      write_markers: Callable[[int, dict], None],
                      config: RunConfig | None = None) -> RunReport:
    """Render every floor in bounds from its tile files, one floor at a time."""
    context = ConversionContext(bounds, config or RunConfig(), RunReport())
    by_floor = group_by_floor(tile_ids, context.report)
    for z in bounds.floor_ids:
        render_floor(context, z, by_floor.get(z, []), read_tile, write_raster, write_markers)
    return context.report


# ── To maps ──────────────────────────────────────────────────────────────────

def write_map_section(context: ConversionContext, floor: FloorRaster, tile_id: str,
                      markers: list[Marker], write_tile: Callable[[str, bytes], None]):
    """Slice one tile position back to a .map file. Unexplored, marker-less tiles are skipped."""
    report = context.report
    try:
        visual, path = slice_tile(floor, context.bounds, tile_id)
    except UnmappableColor as e:
        report.fail(tile_id, e)
        return

    if is_unexplored(visual, path) and not markers:
        return

    try:
        marker_block = encode_markers(markers)
    except MarkerEncodingError as e:
        report.fail(tile_id, f'{e}; markers dropped')
        marker_block = encode_markers([])

    try:
        write_tile(tile_id, join_tile_file(visual, path, marker_block))
    except OSError as e:
        report.fail(tile_id, e)
        return
    report.count(floor.z)


def slice_floor(context: ConversionContext, z: int,
                read_raster: Callable[[int, str], np.ndarray],
                read_markers: Callable[[int], list[Marker]],
                write_tile: Callable[[str, bytes], None]):
    label = f'floor-{floor_name(z)}'
    log.info('Slicing floor %s…', floor_name(z))
    try:
        floor = FloorRaster.from_pixels(
            context.bounds, z, read_raster(z, MAP_LAYER), read_raster(z, PATH_LAYER))
    except (OSError, InvalidRasterSize) as e:
        context.report.fail(label, e)
        return

    by_tile = {}
    if context.config.include_markers:
        try:
            markers = read_markers(z)
            on_floor = [m for m in markers if m.z == z]
            if len(on_floor) < len(markers):
                other = sorted({m.z for m in markers if m.z != z})
                context.report.warn(
                    label, f'{len(markers) - len(on_floor)} markers on floor(s) '
                           f'{", ".join(floor_name(o) for o in other)} dropped; '
                           f'they belong in their own floor file')
            by_tile = partition_markers(on_floor)
        except (OSError, ValueError, MarkerEncodingError) as e:
            context.report.fail(label, f'{e}; markers dropped')

    for tile_id in context.bounds.tile_ids(z):
        write_map_section(context, floor, tile_id, by_tile.pop(tile_id, []), write_tile)

    for tile_id, stray in by_tile.items():
        context.report.warn(tile_id, f'{len(stray)} markers outside floor {floor_name(z)} bounds dropped')


def convert_to_maps(bounds: Bounds,
                    read_raster: Callable[[int, str], np.ndarray],
                    read_markers: Callable[[int], list[Marker]],
                    write_tile: Callable[[str, bytes], None],
                    config: RunConfig | None = None) -> RunReport:
    """Slice every floor in bounds back into tile files, one floor at a time."""
    context = ConversionContext(bounds, config or RunConfig(), RunReport())
    for z in bounds.floor_ids:
        slice_floor(context, z, read_raster, read_markers, write_tile)
    return context.report
