"""
Map marker block: the bytes after offset 0x20000 of a tile file.

Layout (little-endian):
  uint32        marker count (once per block)
  per marker, 14 bytes + text:
    uint8       x offset within the 256×256 tile
    uint8       x tile index
    uint16      reserved (0)
    uint8       y offset within the tile
    uint8       y tile index
    uint16      reserved (0)
    uint32      icon id
    uint16      description length in bytes
    [length]    description, Windows-1252

The floor is not stored; it comes from the tile id.
"""

import struct
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterable

from tibiamaps import icons
from tibiamaps.errors import MalformedIdentifier, MarkerEncodingError, TruncatedMarkerBlock
from tibiamaps.tile_ids import TILE_SIZE, encode_id

COUNT = struct.Struct('<I')
RECORD = struct.Struct('<BBHBBHIH')

# Orders markers by x, then y: for every plausible y, x*100000 dominates.
SORT_SCALE = 100000

MAX_COORD = 0xFFFF
MAX_ICON = 0xFFFFFFFF
MAX_DESCRIPTION = 0xFFFF


def _cp1252_table() -> tuple[str, ...]:
    # Python's cp1252 leaves 0x81, 0x8D, 0x8F, 0x90 and 0x9D undefined;
    # the client (and WHATWG) pass them through as the same code point.
    table = []
    for value in range(256):
        try:
            table.append(bytes([value]).decode('cp1252'))
        except UnicodeDecodeError:
            table.append(chr(value))
    return tuple(table)


_DECODE_TEXT = _cp1252_table()
_ENCODE_TEXT = MappingProxyType({char: value for value, char in enumerate(_DECODE_TEXT)})


def decode_text(raw: bytes) -> str:
    return ''.join(_DECODE_TEXT[value] for value in raw)


def encode_text(text: str) -> bytes:
    try:
        return bytes(_ENCODE_TEXT[char] for char in text)
    except KeyError as e:
        raise MarkerEncodingError(
            f'Character {e.args[0]!r} in {text!r} has no Windows-1252 encoding') from None


@dataclass(frozen=True)
class Marker:
    x: int
    y: int
    z: int
    icon: int
    description: str

    @property
    def key(self) -> tuple:
        """Identity used for de-duplication; descriptions compare case-insensitively."""
        return self.x, self.y, self.z, self.icon, self.description.lower()

    @property
    def sort_key(self) -> int:
        return self.x * SORT_SCALE + self.y

    @property
    def tile_id(self) -> str:
        return encode_id(self.x // TILE_SIZE, self.y // TILE_SIZE, self.z)


def dedup_sort(markers: Iterable[Marker]) -> list[Marker]:
    """Sort by x*100000+y and drop repeats, keeping the first of each."""
    seen = set()
    unique = []
    for marker in sorted(markers, key=lambda m: m.sort_key):
        if marker.key in seen:
            continue
        seen.add(marker.key)
        unique.append(marker)
    return unique


def decode_markers(buffer, z: int,
                   on_warning: Callable[[str], None] | None = None) -> list[Marker]:
    """Parse a marker block into sorted, de-duplicated markers on floor z.

    An empty buffer means no markers. Raises TruncatedMarkerBlock when the
    buffer ends inside the count or a record.
    """
    buffer = bytes(buffer)
    size = len(buffer)
    if size == 0:
        return []
    if size < COUNT.size:
        raise TruncatedMarkerBlock(f'Marker block is {size} bytes, too short for its count')

    (count,) = COUNT.unpack_from(buffer, 0)
    pos = COUNT.size
    markers = []
    for index in range(count):
        if pos + RECORD.size > size:
            raise TruncatedMarkerBlock(
                f'Marker {index + 1}/{count} needs {RECORD.size} bytes at 0x{pos:X}, '
                f'{size - pos} left')
        x_offset, x_tile, x_pad, y_offset, y_tile, y_pad, icon, length = \
            RECORD.unpack_from(buffer, pos)
        pos += RECORD.size
        if (x_pad or y_pad) and on_warning is not None:
            on_warning(f'Marker {index + 1}/{count} has non-zero reserved bytes '
                       f'(0x{x_pad:04X}, 0x{y_pad:04X})')

        if pos + length > size:
            raise TruncatedMarkerBlock(
                f'Marker {index + 1}/{count} description needs {length} bytes at 0x{pos:X}, '
                f'{size - pos} left')
        description = decode_text(buffer[pos:pos + length])
        pos += length

        markers.append(Marker(
            x=x_tile * TILE_SIZE + x_offset,
            y=y_tile * TILE_SIZE + y_offset,
            z=z,
            icon=icon,
            description=description,
        ))

    if pos < size and on_warning is not None:
        on_warning(f'{size - pos} unexpected bytes after {count} markers')

    return dedup_sort(markers)


def encode_markers(markers: Iterable[Marker]) -> bytes:
    """Build a marker block; the count prefix is the number of records written."""
    records = []
    count = 0
    for marker in markers:
        for name in ('x', 'y'):
            value = getattr(marker, name)
            if not 0 <= value <= MAX_COORD:
                raise MarkerEncodingError(f'Marker {name}={value} is outside 0..{MAX_COORD}')
        if not 0 <= marker.icon <= MAX_ICON:
            raise MarkerEncodingError(f'Marker icon {marker.icon} does not fit in 32 bits')
        text = encode_text(marker.description)
        if len(text) > MAX_DESCRIPTION:
            raise MarkerEncodingError(f'Marker description is {len(text)} bytes, limit {MAX_DESCRIPTION}')

        x_tile, x_offset = divmod(marker.x, TILE_SIZE)
        y_tile, y_offset = divmod(marker.y, TILE_SIZE)
        records.append(RECORD.pack(x_offset, x_tile, 0, y_offset, y_tile, 0, marker.icon, len(text)))
        records.append(text)
        count += 1

    return COUNT.pack(count) + b''.join(records)


def partition_markers(markers: Iterable[Marker]) -> dict[str, list[Marker]]:
    """Group floor-wide markers by the tile whose 256×256 region holds them."""
    by_tile = {}
    for marker in markers:
        try:
            tile_id = marker.tile_id
        except MalformedIdentifier:
            raise MarkerEncodingError(
                f'Marker at ({marker.x}, {marker.y}, {marker.z}) is outside the tile grid') from None
        by_tile.setdefault(tile_id, []).append(marker)
    return {tile_id: dedup_sort(group) for tile_id, group in sorted(by_tile.items())}


# ── JSON form ────────────────────────────────────────────────────────────────

def marker_to_json(marker: Marker) -> dict:
    return {
        'description': marker.description,
        'icon': icons.icon_name(marker.icon),
        'x': marker.x,
        'y': marker.y,
        'z': marker.z,
    }


def _integer(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f'{name} must be an integer, got {value!r}')
    return value


def marker_from_json(data: dict, z: int | None = None) -> Marker:
    """Read one JSON record. A missing 'z' falls back to the given floor."""
    try:
        return Marker(
            x=_integer(data['x'], 'x'),
            y=_integer(data['y'], 'y'),
            z=_integer(data['z'] if 'z' in data else z, 'z'),
            icon=icons.icon_id(data['icon']),
            description=str(data.get('description', '')),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise MarkerEncodingError(f'Invalid marker record {data!r}: {e}') from None


def markers_to_json(by_tile: dict[str, list[Marker]]) -> dict:
    """{tile_id: [marker, ...]} with tiles in id order and empty tiles left out."""
    return {
        tile_id: [marker_to_json(m) for m in markers]
        for tile_id, markers in sorted(by_tile.items())
        if markers
    }


def markers_from_json(data, z: int) -> list[Marker]:
    """Flatten a floor's marker JSON, keyed by tile or a plain list, to markers."""
    if isinstance(data, dict):
        records = []
        for tile_id, group in data.items():
            if not isinstance(group, list):
                raise MarkerEncodingError(f'Markers for {tile_id} must be a list, got {group!r}')
            records.extend(group)
    elif isinstance(data, list):
        records = data
    else:
        raise MarkerEncodingError(f'Marker JSON must be an object or a list, got {type(data).__name__}')
    return [marker_from_json(record, z) for record in records]
