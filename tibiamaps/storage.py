"""
On-disk readers and sinks for the converter.

Automap directory:  {XXXYYYZZ}.map
Data directory:     bounds.json
                    floor-{ZZ}-map.png
                    floor-{ZZ}-path.png
                    floor-{ZZ}-markers.json
"""

import json
import logging
import os
import shutil
from pathlib import Path

import numpy as np
from PIL import Image

from tibiamaps.markers import Marker, markers_from_json, markers_to_json
from tibiamaps.tile_ids import Bounds, floor_name

log = logging.getLogger('tibiamaps.storage')

TILE_SUFFIX = '.map'
BOUNDS_FILE = 'bounds.json'


def empty_directory(path) -> Path:
    """Remove everything inside path, creating it if needed."""
    path = Path(path)
    if path.is_dir():
        for child in path.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
    os.makedirs(path, exist_ok=True)
    return path


def write_png(path, pixels: np.ndarray):
    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(path)


def read_png(path) -> np.ndarray:
    with Image.open(path) as img:
        return np.array(img.convert('RGB'), dtype=np.uint8)


def write_json(path, data):
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent='\t', sort_keys=True, ensure_ascii=False)
        f.write('\n')


def read_json(path):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


class MapsDirectory:
    """A client Automap directory of .map tile files."""

    def __init__(self, path):
        self.path = Path(path)

    def tile_path(self, tile_id: str) -> Path:
        return self.path / f'{tile_id}{TILE_SUFFIX}'

    def tile_ids(self) -> list[str]:
        return sorted(p.stem for p in self.path.glob(f'*{TILE_SUFFIX}') if p.is_file())

    def read_tile(self, tile_id: str) -> bytes:
        return self.tile_path(tile_id).read_bytes()

    def write_tile(self, tile_id: str, data: bytes):
        self.tile_path(tile_id).write_bytes(data)
        log.debug('Wrote %s (%d bytes)', self.tile_path(tile_id).name, len(data))


class DataDirectory:
    """Per-floor PNG rasters, marker JSON and bounds.json."""

    def __init__(self, path):
        self.path = Path(path)

    def floor_path(self, z: int, kind: str, ext: str) -> Path:
        return self.path / f'floor-{floor_name(z)}-{kind}.{ext}'

    def write_raster(self, z: int, layer: str, pixels: np.ndarray):
        path = self.floor_path(z, layer, 'png')
        write_png(path, pixels)
        log.debug('Wrote %s', path.name)

    def read_raster(self, z: int, layer: str) -> np.ndarray:
        return read_png(self.floor_path(z, layer, 'png'))

    def write_markers(self, z: int, by_tile: dict[str, list[Marker]]):
        write_json(self.floor_path(z, 'markers', 'json'), markers_to_json(by_tile))

    def read_markers(self, z: int) -> list[Marker]:
        path = self.floor_path(z, 'markers', 'json')
        if not path.exists():
            log.warning('%s not found, floor %s has no markers', path.name, floor_name(z))
            return []
        return markers_from_json(read_json(path), z)

    def write_bounds(self, bounds: Bounds):
        write_json(self.path / BOUNDS_FILE, bounds.to_json())

    def read_bounds(self) -> Bounds:
        return Bounds.from_json(read_json(self.path / BOUNDS_FILE))
