import struct

import pytest

from tibiamaps.colors import LAYER_SIZE


def _record(x, y, icon, text: bytes) -> bytes:
    return struct.pack('<BBHBBHIH', x % 256, x // 256, 0, y % 256, y // 256, 0, icon, len(text)) + text


def _block(*records) -> bytes:
    return struct.pack('<I', len(records)) + b''.join(records)


@pytest.fixture
def marker_record():
    """Builds one raw marker record: (x, y, icon, text bytes) -> bytes."""
    return _record


@pytest.fixture
def marker_block():
    """Builds a raw marker block from raw records."""
    return _block


@pytest.fixture
def make_tile():
    """Builds a raw .map file filled with one visual and one path byte."""

    def make(visual=0x18, path=0x80, markers=b'\x00\x00\x00\x00'):
        if isinstance(visual, int):
            visual = bytes([visual]) * LAYER_SIZE
        if isinstance(path, int):
            path = bytes([path]) * LAYER_SIZE
        return bytes(visual) + bytes(path) + markers

    return make
