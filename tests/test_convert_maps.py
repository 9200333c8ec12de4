import numpy as np
import pytest

from tibiamaps.colors import LAYER_SIZE, MAP_COLORS, NON_WALKABLE_PATH, UNEXPLORED_PATH
from tibiamaps.convert_maps import ERROR, WARNING, RunConfig, convert_from_maps, convert_to_maps
from tibiamaps.markers import Marker, encode_markers, markers_from_json
from tibiamaps.tile_ids import compute_bounds

TEMPLE = Marker(100 * 256 + 10, 50 * 256 + 20, 7, 0x03, 'Temple')
DEPOT = Marker(101 * 256 + 200, 50 * 256 + 1, 7, 0x0D, 'Depot “north”')
CAVE = Marker(100 * 256 + 1, 50 * 256 + 1, 8, 0x13, 'Cave')


class Sinks:
    """In-memory stand-ins for the PNG and JSON writers."""

    def __init__(self):
        self.rasters = {}
        self.markers = {}

    def write_raster(self, z, layer, pixels):
        self.rasters[z, layer] = pixels.copy()

    def write_markers(self, z, by_tile):
        self.markers[z] = {tile_id: list(markers) for tile_id, markers in by_tile.items()}

    def read_raster(self, z, layer):
        return self.rasters[z, layer]

    def read_markers(self, z):
        return [m for markers in self.markers.get(z, {}).values() for m in markers]


@pytest.fixture
def tiles(make_tile):
    return {
        '10005007': make_tile(0x18, 0x80, encode_markers([TEMPLE])),
        '10105007': make_tile(0x33, 0xFF, encode_markers([DEPOT])),
        '10005008': make_tile(0x56, 0x10, encode_markers([CAVE])),
    }


def run_from_maps(tiles, config=None):
    sinks = Sinks()
    bounds = compute_bounds(tiles)
    report = convert_from_maps(bounds, list(tiles), tiles.__getitem__,
                               sinks.write_raster, sinks.write_markers, config)
    return bounds, sinks, report


def test_from_maps_renders_every_floor(tiles):
    bounds, sinks, report = run_from_maps(tiles)

    assert report.ok
    assert report.issues == []
    assert report.tiles == {7: 2, 8: 1}
    assert set(sinks.rasters) == {(7, 'map'), (7, 'path'), (8, 'map'), (8, 'path')}

    floor_map = sinks.rasters[7, 'map']
    assert floor_map.shape == (bounds.height, bounds.width, 3) == (256, 512, 3)
    assert tuple(floor_map[0, 0]) == MAP_COLORS[0x18]
    assert tuple(floor_map[0, 256]) == MAP_COLORS[0x33]
    assert tuple(sinks.rasters[7, 'path'][0, 300]) == NON_WALKABLE_PATH
    # Floor 8 has no tile at x=101.
    assert tuple(sinks.rasters[8, 'path'][0, 300]) == UNEXPLORED_PATH

    assert sinks.markers[7] == {'10005007': [TEMPLE], '10105007': [DEPOT]}
    assert sinks.markers[8] == {'10005008': [CAVE]}


def test_from_maps_without_markers(tiles):
    _, sinks, report = run_from_maps(tiles, RunConfig(include_markers=False))
    assert report.ok
    assert sinks.markers == {7: {}, 8: {}}
    assert tuple(sinks.rasters[7, 'map'][0, 0]) == MAP_COLORS[0x18]


def test_missing_marker_trailer_is_a_warning(tiles, make_tile):
    tiles['10105007'] = make_tile(0x33, 0x80, b'')
    _, sinks, report = run_from_maps(tiles)
    assert report.ok
    assert [(i.tile_id, i.kind) for i in report.issues] == [('10105007', WARNING)]
    assert sinks.markers[7] == {'10005007': [TEMPLE]}
    assert report.tiles[7] == 2


def test_truncated_markers_are_dropped_for_that_tile(tiles, make_tile):
    tiles['10105007'] = make_tile(0x33, 0x80, encode_markers([DEPOT])[:-3])
    _, sinks, report = run_from_maps(tiles)
    assert [(i.tile_id, i.kind) for i in report.issues] == [('10105007', ERROR)]
    assert sinks.markers[7] == {'10005007': [TEMPLE]}
    assert tuple(sinks.rasters[7, 'map'][0, 256]) == MAP_COLORS[0x33]


def test_short_tile_fails_only_that_tile(tiles):
    tiles['10105007'] = tiles['10105007'][:1000]
    _, sinks, report = run_from_maps(tiles)
    assert [(i.tile_id, i.kind) for i in report.errors] == [('10105007', ERROR)]
    assert report.tiles == {7: 1, 8: 1}
    assert tuple(sinks.rasters[7, 'map'][0, 0]) == MAP_COLORS[0x18]


def test_unknown_visual_byte_is_a_warning(tiles, make_tile):
    visual = bytearray([0x18]) * LAYER_SIZE
    visual[10] = 0x01
    tiles['10005007'] = make_tile(bytes(visual), 0x80, encode_markers([TEMPLE]))
    _, sinks, report = run_from_maps(tiles)
    assert report.ok
    assert len(report.warnings) == 1
    assert '0x01' in report.warnings[0].message
    assert tuple(sinks.rasters[7, 'map'][11, 0]) == MAP_COLORS[0x18]


def test_unreadable_tile_is_reported(tiles):
    def read_tile(tile_id):
        if tile_id == '10005008':
            raise FileNotFoundError(tile_id)
        return tiles[tile_id]

    sinks = Sinks()
    report = convert_from_maps(compute_bounds(tiles), list(tiles), read_tile,
                               sinks.write_raster, sinks.write_markers)
    assert [i.tile_id for i in report.errors] == ['10005008']
    assert sinks.markers[8] == {}


def test_malformed_ids_are_reported(tiles):
    sinks = Sinks()
    bounds = compute_bounds(tiles)
    report = convert_from_maps(bounds, list(tiles) + ['junk'], tiles.__getitem__,
                               sinks.write_raster, sinks.write_markers)
    assert [i.tile_id for i in report.errors] == ['junk']
    assert report.tiles == {7: 2, 8: 1}


def test_to_maps_round_trip(tiles):
    bounds, sinks, _ = run_from_maps(tiles)
    written = {}
    report = convert_to_maps(bounds, sinks.read_raster, sinks.read_markers, written.__setitem__)

    assert report.ok
    # 10105008 is an unexplored grid position and is not written.
    assert written == tiles


def test_to_maps_without_markers(tiles):
    bounds, sinks, _ = run_from_maps(tiles)
    written = {}
    report = convert_to_maps(bounds, sinks.read_raster, sinks.read_markers, written.__setitem__,
                             RunConfig(include_markers=False))
    assert report.ok
    assert set(written) == set(tiles)
    for tile_id, data in written.items():
        assert data[2 * LAYER_SIZE:] == b'\x00\x00\x00\x00'
        assert data[:2 * LAYER_SIZE] == tiles[tile_id][:2 * LAYER_SIZE]


def test_to_maps_unmappable_color_fails_only_that_tile(tiles):
    bounds, sinks, _ = run_from_maps(tiles)
    sinks.rasters[7, 'map'][10, 10] = (1, 2, 3)
    written = {}
    report = convert_to_maps(bounds, sinks.read_raster, sinks.read_markers, written.__setitem__)
    assert [i.tile_id for i in report.errors] == ['10005007']
    assert set(written) == {'10105007', '10005008'}


def test_to_maps_partitions_markers_by_region(tiles):
    bounds, sinks, _ = run_from_maps(tiles)
    moved = Marker(101 * 256 + 5, 50 * 256 + 5, 7, 0, 'moved')
    sinks.markers[7] = {'10005007': [TEMPLE, moved]}
    written = {}
    convert_to_maps(bounds, sinks.read_raster, sinks.read_markers, written.__setitem__)
    assert written['10005007'][2 * LAYER_SIZE:] == encode_markers([TEMPLE])
    assert written['10105007'][2 * LAYER_SIZE:] == encode_markers([moved])


def test_to_maps_markers_on_unexplored_tile_are_kept(tiles):
    bounds, sinks, _ = run_from_maps(tiles)
    lonely = Marker(101 * 256 + 5, 50 * 256 + 5, 8, 0, 'lonely')
    sinks.markers[8]['10105008'] = [lonely]
    written = {}
    convert_to_maps(bounds, sinks.read_raster, sinks.read_markers, written.__setitem__)
    assert written['10105008'][2 * LAYER_SIZE:] == encode_markers([lonely])


def test_to_maps_drops_markers_outside_bounds(tiles):
    bounds, sinks, _ = run_from_maps(tiles)
    stray = Marker(150 * 256, 50 * 256, 7, 0, 'stray')
    sinks.markers[7]['15005007'] = [stray]
    written = {}
    report = convert_to_maps(bounds, sinks.read_raster, sinks.read_markers, written.__setitem__)
    assert report.ok
    assert [i.tile_id for i in report.warnings] == ['15005007']
    assert written == tiles


def test_to_maps_wrong_raster_size_fails_that_floor(tiles):
    bounds, sinks, _ = run_from_maps(tiles)
    sinks.rasters[8, 'path'] = np.zeros((10, 10, 3), dtype=np.uint8)
    written = {}
    report = convert_to_maps(bounds, sinks.read_raster, sinks.read_markers, written.__setitem__)
    assert [i.tile_id for i in report.errors] == ['floor-08']
    assert set(written) == {'10005007', '10105007'}


def test_to_maps_bad_marker_json_fails_only_that_floor(tiles):
    bounds, sinks, _ = run_from_maps(tiles)

    def read_markers(z):
        if z == 7:
            return markers_from_json({'10005007': None}, z)
        return sinks.read_markers(z)

    written = {}
    report = convert_to_maps(bounds, sinks.read_raster, read_markers, written.__setitem__)
    assert [(i.tile_id, i.kind) for i in report.issues] == [('floor-07', ERROR)]
    assert written['10005008'] == tiles['10005008']
    assert written['10005007'][:2 * LAYER_SIZE] == tiles['10005007'][:2 * LAYER_SIZE]
    assert written['10005007'][2 * LAYER_SIZE:] == b'\x00\x00\x00\x00'


def test_to_maps_reports_markers_from_another_floor(tiles):
    bounds, sinks, _ = run_from_maps(tiles)
    sinks.markers[7]['10005007'] = [TEMPLE, CAVE]
    written = {}
    report = convert_to_maps(bounds, sinks.read_raster, sinks.read_markers, written.__setitem__)
    assert report.ok
    assert [i.tile_id for i in report.warnings] == ['floor-07']
    assert 'floor(s) 08' in report.warnings[0].message
    assert written == tiles
