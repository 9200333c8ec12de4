"""
Byte ↔ color palettes for the two pixel layers of a map tile.

Visual layer ('map'): one byte per pixel, a sparse set of known terrain
colors. Pathfinding layer ('path'): one byte per pixel encoding walking
speed; lower is faster. Two values are reserved:

    0xFA  unexplored    → (250, 250, 250)
    0xFF  non-walkable  → yellow, the client's own stairs/ladder color

Layer bytes are stored column by column: byte i is pixel
(col = i // 256, row = i % 256). The vectorised codecs below take and
return (256, 256, 3) arrays indexed [row, col].
"""

from types import MappingProxyType
from typing import NamedTuple

import numpy as np

from tibiamaps.errors import InvalidTileSize, UnknownColorByte, UnmappableColor
from tibiamaps.tile_ids import TILE_SIZE

LAYER_SIZE = TILE_SIZE * TILE_SIZE  # 0x10000

MAP_LAYER = 'map'
PATH_LAYER = 'path'
LAYERS = (MAP_LAYER, PATH_LAYER)


class Color(NamedTuple):
    r: int
    g: int
    b: int


MAP_COLORS = {
    0x00: Color(0, 0, 0),        # black (empty)
    0x0C: Color(0, 102, 0),      # dark green (tree)
    0x18: Color(0, 204, 0),      # green (grass)
    0x33: Color(51, 102, 153),   # light blue (water)
    0x56: Color(102, 102, 102),  # dark gray (rock/mountain)
    0x72: Color(153, 51, 0),     # dark brown (earth/stalagmite)
    0x79: Color(153, 102, 51),   # brown (earth)
    0x81: Color(153, 153, 153),  # gray (stone tile/cobbled pavement)
    0x8C: Color(153, 255, 102),  # light green (light spot in grassy area)
    0xB3: Color(204, 255, 255),  # light blue (ice)
    0xBA: Color(255, 51, 0),     # red (wall)
    0xC0: Color(255, 102, 0),    # orange (lava)
    0xCF: Color(255, 204, 153),  # beige (sand)
    0xD2: Color(255, 255, 0),    # yellow (ladder/stairs/hole/…)
    0xD7: Color(255, 255, 255),  # white (snow)
}

UNEXPLORED_MAP_BYTE = 0x00
UNEXPLORED_MAP = MAP_COLORS[UNEXPLORED_MAP_BYTE]

UNEXPLORED_PATH_BYTE = 0xFA
UNEXPLORED_PATH = Color(0xFA, 0xFA, 0xFA)

NON_WALKABLE_PATH_BYTE = 0xFF
# The client marks non-walkable paths with the same yellow as stairs.
NON_WALKABLE_PATH = MAP_COLORS[0xD2]


def _path_colors() -> dict[int, Color]:
    colors = {value: Color(value, value, value) for value in range(256)}
    colors[UNEXPLORED_PATH_BYTE] = UNEXPLORED_PATH
    colors[NON_WALKABLE_PATH_BYTE] = NON_WALKABLE_PATH
    return colors


def _pack(rgb: np.ndarray) -> np.ndarray:
    """(..., 3) uint8 → (...) uint32 0xRRGGBB"""
    rgb = rgb.astype(np.uint32)
    return (rgb[..., 0] << 16) | (rgb[..., 1] << 8) | rgb[..., 2]


class Palette:
    """A forward byte → color table and its reverse index, built together.

    Both directions are frozen after construction.
    """

    def __init__(self, layer: str, by_byte: dict[int, Color], fill: Color):
        self.layer = layer
        self.fill = fill

        colors = np.empty((256, 3), dtype=np.uint8)
        colors[:] = fill
        known = np.zeros(256, dtype=bool)
        by_color = {}
        for value in sorted(by_byte):
            color = Color(*by_byte[value])
            colors[value] = color
            known[value] = True
            by_color.setdefault(color, value)

        packed = {(c.r << 16) | (c.g << 8) | c.b: value for c, value in by_color.items()}
        keys = np.array(sorted(packed), dtype=np.uint32)
        values = np.array([packed[k] for k in sorted(packed)], dtype=np.uint8)

        for array in (colors, known, keys, values):
            array.flags.writeable = False

        self.colors = colors
        self.known = known
        self.by_byte = MappingProxyType({v: Color(*c) for v, c in by_byte.items()})
        self.by_color = MappingProxyType(by_color)
        self._keys = keys
        self._values = values

    def __repr__(self):
        return f'<Palette {self.layer}: {len(self.by_byte)} entries>'

    def color_of(self, value: int) -> Color:
        try:
            return self.by_byte[value]
        except KeyError:
            raise UnknownColorByte(value) from None

    def byte_of(self, color) -> int:
        try:
            return self.by_color[Color(*(int(c) for c in color))]
        except (KeyError, TypeError):
            raise UnmappableColor(tuple(color), self.layer) from None

    def decode(self, data) -> tuple[np.ndarray, list[int]]:
        raw = np.frombuffer(bytes(data), dtype=np.uint8)
        if raw.size != LAYER_SIZE:
            raise InvalidTileSize(f'{self.layer} layer is {raw.size} bytes, expected {LAYER_SIZE}')
        unknown = sorted(int(v) for v in np.unique(raw[~self.known[raw]]))
        # Stored [col, row]; transpose to raster order.
        pixels = self.colors[raw.reshape(TILE_SIZE, TILE_SIZE).T]
        return pixels, unknown

    def encode(self, pixels: np.ndarray) -> bytes:
        pixels = np.asarray(pixels)
        if pixels.shape != (TILE_SIZE, TILE_SIZE, 3):
            raise InvalidTileSize(f'{self.layer} tile is {pixels.shape}, expected (256, 256, 3)')
        packed = _pack(pixels)
        index = np.searchsorted(self._keys, packed)
        index = np.minimum(index, len(self._keys) - 1)
        matched = self._keys[index] == packed
        if not matched.all():
            row, col = (int(v) for v in np.argwhere(~matched)[0])
            raise UnmappableColor(pixels[row, col], self.layer, position=(col, row))
        return np.ascontiguousarray(self._values[index].T).tobytes()


MAP_PALETTE = Palette(MAP_LAYER, MAP_COLORS, fill=UNEXPLORED_MAP)
PATH_PALETTE = Palette(PATH_LAYER, _path_colors(), fill=UNEXPLORED_PATH)

PALETTES = MappingProxyType({MAP_LAYER: MAP_PALETTE, PATH_LAYER: PATH_PALETTE})


def palette_for(layer: str) -> Palette:
    try:
        return PALETTES[layer]
    except KeyError:
        raise ValueError(f'Unknown layer {layer!r}, expected one of {LAYERS}') from None


def map_byte_to_color(value: int, layer: str) -> Color:
    """Color of a single layer byte. Raises UnknownColorByte on a visual miss."""
    return palette_for(layer).color_of(value)


def map_color_to_byte(color, layer: str) -> int:
    """Byte of a single exact color. Raises UnmappableColor when there is none."""
    return palette_for(layer).byte_of(color)


def decode_layer(data, layer: str) -> tuple[np.ndarray, list[int]]:
    """Decode a 65536-byte layer to (256, 256, 3) pixels.

    Also returns the distinct byte values that had no color; those pixels
    are rendered with the layer's unexplored color.
    """
    return palette_for(layer).decode(data)


def encode_layer(pixels: np.ndarray, layer: str) -> bytes:
    """Encode (256, 256, 3) pixels back to a 65536-byte layer."""
    return palette_for(layer).encode(pixels)
