"""
Tile identifiers and the bounds of a tile set.

A tile file is named after its grid position as an 8-digit string:

    XXX YYY ZZ   e.g. 12412407 -> x=124, y=124, z=7

x and y are tile indices on the world grid (one tile = 256×256 pixels),
z is the floor. The bounds of a tile set span every floor, so all floor
rasters of one run share the same size and origin.
"""

from dataclasses import dataclass
from typing import Callable, Iterable

from tibiamaps.errors import EmptyTileSet, MalformedIdentifier

TILE_SIZE = 256
ID_LENGTH = 8


def decode_id(identifier: str) -> tuple[int, int, int]:
    """'12412407' → (124, 124, 7)"""
    if (not isinstance(identifier, str) or len(identifier) != ID_LENGTH
            or not identifier.isascii() or not identifier.isdigit()):
        raise MalformedIdentifier(f'Invalid tile id: {identifier!r}')
    return int(identifier[0:3]), int(identifier[3:6]), int(identifier[6:8])


def encode_id(x: int, y: int, z: int) -> str:
    """(124, 124, 7) → '12412407'"""
    if not (0 <= x <= 999 and 0 <= y <= 999 and 0 <= z <= 99):
        raise MalformedIdentifier(f'Coordinates out of range: ({x}, {y}, {z})')
    return f'{x:03d}{y:03d}{z:02d}'


def floor_name(z: int) -> str:
    """Two-digit floor label used in file names, e.g. 7 → '07'."""
    return f'{z:02d}'


@dataclass(frozen=True)
class Bounds:
    x_min: int
    x_max: int
    y_min: int
    y_max: int
    floor_ids: tuple[int, ...]

    @property
    def width(self) -> int:
        return (self.x_max - self.x_min + 1) * TILE_SIZE

    @property
    def height(self) -> int:
        return (self.y_max - self.y_min + 1) * TILE_SIZE

    def tile_offset(self, x: int, y: int) -> tuple[int, int]:
        """Pixel origin (left, top) of tile (x, y) inside a floor raster."""
        return (x - self.x_min) * TILE_SIZE, (y - self.y_min) * TILE_SIZE

    def contains(self, x: int, y: int) -> bool:
        return self.x_min <= x <= self.x_max and self.y_min <= y <= self.y_max

    def tile_ids(self, z: int) -> list[str]:
        """Every grid position of floor z, in id order."""
        return [encode_id(x, y, z)
                for x in range(self.x_min, self.x_max + 1)
                for y in range(self.y_min, self.y_max + 1)]

    def to_json(self) -> dict:
        return {
            'xMin': self.x_min,
            'xMax': self.x_max,
            'yMin': self.y_min,
            'yMax': self.y_max,
            'floorIDs': [floor_name(z) for z in self.floor_ids],
            'width': self.width,
            'height': self.height,
        }

    @classmethod
    def from_json(cls, data: dict) -> 'Bounds':
        return cls(
            x_min=int(data['xMin']),
            x_max=int(data['xMax']),
            y_min=int(data['yMin']),
            y_max=int(data['yMax']),
            floor_ids=tuple(sorted({int(z) for z in data['floorIDs']})),
        )


def compute_bounds(identifiers: Iterable[str],
                   on_error: Callable[[str, MalformedIdentifier], None] | None = None) -> Bounds:
    """Fold every tile id into the enclosing grid rectangle and its floors.

    Malformed ids are skipped; pass on_error to hear about them.
    """
    x_min = y_min = None
    x_max = y_max = None
    floors = set()
    for identifier in identifiers:
        try:
            x, y, z = decode_id(identifier)
        except MalformedIdentifier as e:
            if on_error is not None:
                on_error(identifier, e)
            continue
        if x_min is None:
            x_min = x_max = x
            y_min = y_max = y
        else:
            x_min = min(x_min, x)
            x_max = max(x_max, x)
            y_min = min(y_min, y)
            y_max = max(y_max, y)
        floors.add(z)

    if x_min is None:
        raise EmptyTileSet('No map tiles found; cannot size floor rasters')

    return Bounds(x_min, x_max, y_min, y_max, tuple(sorted(floors)))
