"""
Floor rasters: whole-floor images assembled from, and sliced back into,
256×256 tiles.

Tile file layout:
  [0x00000, 0x10000)  visual layer ('map')
  [0x10000, 0x20000)  pathfinding layer ('path')
  [0x20000, EOF)      marker block, possibly empty
"""

import numpy as np

from tibiamaps.colors import (
    LAYER_SIZE, MAP_LAYER, PATH_LAYER, UNEXPLORED_MAP, UNEXPLORED_MAP_BYTE,
    UNEXPLORED_PATH, UNEXPLORED_PATH_BYTE, decode_layer, encode_layer,
)
from tibiamaps.errors import InvalidRasterSize, InvalidTileSize
from tibiamaps.tile_ids import TILE_SIZE, Bounds, decode_id

MARKER_OFFSET = 2 * LAYER_SIZE  # 0x20000


class FloorRaster:
    """The visual and pathfinding images of one floor.

    Allocated once per floor at bounds.width × bounds.height and filled
    with the unexplored colors, so tiles that are missing stay unexplored.
    """

    def __init__(self, bounds: Bounds, z: int):
        self.bounds = bounds
        self.z = z
        shape = (bounds.height, bounds.width, 3)
        self.layers = {
            MAP_LAYER: np.empty(shape, dtype=np.uint8),
            PATH_LAYER: np.empty(shape, dtype=np.uint8),
        }
        self.reset()

    @classmethod
    def from_pixels(cls, bounds: Bounds, z: int, map_pixels, path_pixels) -> 'FloorRaster':
        """Wrap rasters read back from images; both must match the bounds."""
        floor = cls.__new__(cls)
        floor.bounds = bounds
        floor.z = z
        floor.layers = {}
        for layer, pixels in ((MAP_LAYER, map_pixels), (PATH_LAYER, path_pixels)):
            pixels = np.asarray(pixels, dtype=np.uint8)
            if pixels.shape != (bounds.height, bounds.width, 3):
                raise InvalidRasterSize(
                    f'Floor {z:02d} {layer} raster is {pixels.shape[1::-1]}, '
                    f'expected {(bounds.width, bounds.height)}')
            floor.layers[layer] = pixels
        return floor

    @property
    def map(self) -> np.ndarray:
        return self.layers[MAP_LAYER]

    @property
    def path(self) -> np.ndarray:
        return self.layers[PATH_LAYER]

    def reset(self):
        self.layers[MAP_LAYER][:] = UNEXPLORED_MAP
        self.layers[PATH_LAYER][:] = UNEXPLORED_PATH


def _tile_region(bounds: Bounds, tile_id: str) -> tuple[slice, slice]:
    x, y, _ = decode_id(tile_id)
    if not bounds.contains(x, y):
        raise InvalidRasterSize(f'Tile {tile_id} lies outside the floor bounds')
    left, top = bounds.tile_offset(x, y)
    return slice(top, top + TILE_SIZE), slice(left, left + TILE_SIZE)


def paste_tile(floor: FloorRaster, bounds: Bounds, tile_id: str,
               visual_bytes, path_bytes) -> list[int]:
    """Decode both layers of a tile into the floor raster.

    Returns the distinct visual bytes that had no known color; those pixels
    are drawn as unexplored. Raises InvalidTileSize before touching the
    raster if either layer is not 65536 bytes.
    """
    for layer, data in ((MAP_LAYER, visual_bytes), (PATH_LAYER, path_bytes)):
        if len(data) != LAYER_SIZE:
            raise InvalidTileSize(f'{tile_id}: {layer} layer is {len(data)} bytes, expected {LAYER_SIZE}')

    rows, cols = _tile_region(bounds, tile_id)

    map_pixels, unknown = decode_layer(visual_bytes, MAP_LAYER)
    path_pixels, _ = decode_layer(path_bytes, PATH_LAYER)
    floor.map[rows, cols] = map_pixels
    floor.path[rows, cols] = path_pixels
    return unknown


def slice_tile(floor: FloorRaster, bounds: Bounds, tile_id: str) -> tuple[bytes, bytes]:
    """Encode the tile's 256×256 region of both rasters back to layer bytes.

    Raises UnmappableColor if any pixel has no palette entry.
    """
    rows, cols = _tile_region(bounds, tile_id)
    return (encode_layer(floor.map[rows, cols], MAP_LAYER),
            encode_layer(floor.path[rows, cols], PATH_LAYER))


def split_tile_file(data: bytes) -> tuple[bytes, bytes, bytes]:
    """Split a .map file into (visual, path, marker block).

    A file shorter than 0x20000 bytes yields short layers, which
    paste_tile rejects.
    """
    return (data[:LAYER_SIZE],
            data[LAYER_SIZE:MARKER_OFFSET],
            data[MARKER_OFFSET:])


def join_tile_file(visual_bytes: bytes, path_bytes: bytes, marker_block: bytes) -> bytes:
    if len(visual_bytes) != LAYER_SIZE or len(path_bytes) != LAYER_SIZE:
        raise InvalidTileSize(
            f'Layers are {len(visual_bytes)} and {len(path_bytes)} bytes, expected {LAYER_SIZE}')
    return visual_bytes + path_bytes + marker_block


_UNEXPLORED_VISUAL = bytes([UNEXPLORED_MAP_BYTE]) * LAYER_SIZE
_UNEXPLORED_PATH = bytes([UNEXPLORED_PATH_BYTE]) * LAYER_SIZE


def is_unexplored(visual_bytes: bytes, path_bytes: bytes) -> bool:
    """True when a tile carries nothing beyond the unexplored fill."""
    return visual_bytes == _UNEXPLORED_VISUAL and path_bytes == _UNEXPLORED_PATH
