"""Exceptions raised while converting map tiles."""


class MapConversionError(Exception):
    """Base class for conversion failures."""


class MalformedIdentifier(MapConversionError):
    """A tile id is not an 8-digit XXXYYYZZ string."""


class EmptyTileSet(MapConversionError):
    """No tiles were found, so no bounds can be derived."""


class TruncatedMarkerBlock(MapConversionError):
    """The marker block ends before a record it declares."""


class UnmappableColor(MapConversionError):
    """A raster color has no exact palette entry."""

    def __init__(self, color, layer, position=None):
        self.color = tuple(int(c) for c in color)
        self.layer = layer
        self.position = position
        where = f' at {position}' if position is not None else ''
        super().__init__(f'No {layer} byte for color rgb{self.color}{where}')


class InvalidTileSize(MapConversionError):
    """A tile layer is not exactly 65536 bytes."""


class InvalidRasterSize(MapConversionError):
    """A floor raster does not match the bounds it is sliced with."""


class MarkerEncodingError(MapConversionError):
    """A marker cannot be represented in the binary record layout."""


class MapWarning(Exception):
    """Base class for recoverable conditions that are reported, not fatal."""


class UnknownColorByte(MapWarning):
    """A visual layer byte has no known color."""

    def __init__(self, byte):
        self.byte = byte
        super().__init__(f'Unknown color ID: 0x{byte:02X}')
