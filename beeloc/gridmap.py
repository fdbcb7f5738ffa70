"""Occupancy grid maps: loading from map files, lookup and rendering."""

from __future__ import annotations

import math
import os
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from beeloc.log import registry

_RESOLUTION_KEY = "robot_specifications->resolution"
_AUTOSHIFT_Y_KEY = "robot_specifications->autoshifted_y"
_AUTOSHIFT_X_KEY = "robot_specifications->autoshifted_x"
_MAP_HEADER = "global_map[0]"

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_MAP_SIZE = re.compile(r"\s*\S+\s+([+-]?\d+)\s+([+-]?\d+)")

_PROGRESS_EVERY = 50000

_PARTICLE_COLOR = (1.0, 0.0, 0.0)
_LAST_PARTICLE_COLOR = (0.0, 1.0, 0.0)


class MapFormatError(ValueError):
    """Raised when a map file is malformed."""


@dataclass
class Pose2D:
    """A position in the plane with a heading in radians."""

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass(eq=False)
class OccupancyMap:
    """A grid of cell values: ``1 - occupancy`` for known cells, ``-1`` for unknown ones.

    ``data`` is indexed ``[row, column]``; world coordinates are cell indices
    times ``resolution``.
    """

    file_name: str
    data: Any
    size_x: int
    size_y: int
    resolution: int
    autoshifted_x: int = 0
    autoshifted_y: int = 0
    min_x: int = field(init=False, default=0)
    min_y: int = field(init=False, default=0)
    max_x: int = field(init=False, default=0)
    max_y: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        self.data = np.asarray(self.data, dtype=np.float32)
        if self.data.ndim != 2 or self.data.size == 0:
            raise ValueError("map data must be a non-empty two-dimensional grid")
        if self.resolution <= 0:
            raise ValueError("resolution must be positive")
        self.max_x = self.size_x
        self.max_y = self.size_y

    def _cell(self, x: float, y: float) -> tuple[int, int]:
        return _round_half_away(x / self.resolution), _round_half_away(y / self.resolution)

    def valid(self, x: float, y: float) -> bool:
        """Return whether the world position falls on a cell of the grid."""
        ix, iy = self._cell(x, y)
        rows, cols = self.data.shape
        return 0 <= ix < cols and 0 <= iy < rows

    def at(self, x: float, y: float) -> float:
        """Return the value of the cell nearest to the world position."""
        if not self.valid(x, y):
            raise IndexError(f"position ({x}, {y}) is outside the map")
        ix, iy = self._cell(x, y)
        return float(self.data[iy, ix])


def _info(fmt: str, *args: Any) -> None:
    logger = registry.default_logger()
    if logger is not None:
        logger.info(fmt, *args)


def _parse_int(text: str, error: str) -> int:
    match = _INT_PREFIX.match(text)
    if match is None:
        raise MapFormatError(error)
    return int(match.group(1))


def load_map(path: str | os.PathLike[str]) -> OccupancyMap:
    """Read a map file: header lines up to ``global_map[0] <rows> <cols>``, then the cells.

    Cells hold occupancy probabilities; negative values mark unknown cells.
    """
    file_name = os.fspath(path)
    resolution: int | None = None
    autoshifted_x = 0
    autoshifted_y = 0
    size_y = size_x = None
    with open(file_name, encoding="utf-8", errors="replace") as fh:
        for raw_line in fh:
            line = raw_line.rstrip("\n")
            if line.startswith(_MAP_HEADER):
                match = _MAP_SIZE.match(line)
                if match is None:
                    raise MapFormatError("Invalid Map size provided")
                size_y, size_x = int(match.group(1)), int(match.group(2))
                _info("MAPSIZE {} X {}", size_y, size_x)
                break
            if line.startswith(_RESOLUTION_KEY):
                resolution = _parse_int(line[len(_RESOLUTION_KEY):], "Invalid Resolution provided")
                _info("RESOLUTION: {}", resolution)
            elif line.startswith(_AUTOSHIFT_Y_KEY):
                autoshifted_y = _parse_int(
                    line[len(_AUTOSHIFT_Y_KEY):], "Invalid Autoshifted Y value provided"
                )
                _info("AUTOSHIFTED Y: {}", autoshifted_y)
            elif line.startswith(_AUTOSHIFT_X_KEY):
                autoshifted_x = _parse_int(
                    line[len(_AUTOSHIFT_X_KEY):], "Invalid Autoshifted X value provided"
                )
                _info("AUTOSHIFTED X: {}", autoshifted_x)
        rest = fh.read()

    if size_x is None or size_y is None:
        raise MapFormatError("Invalid Map size provided")
    if size_x <= 0 or size_y <= 0:
        raise MapFormatError("Invalid Map size provided")
    if resolution is None:
        raise MapFormatError("Invalid Resolution provided")

    total = size_x * size_y
    words = iter(rest.split())
    values = np.empty(total, dtype=np.float32)
    for count in range(total):
        word = next(words, None)
        if word is None:
            raise MapFormatError("File did not have the required number of values!")
        match = _FLOAT_PREFIX.match(word)
        if match is None:
            raise MapFormatError("The file had non-float data")
        values[count] = float(match.group(0))
        if count % _PROGRESS_EVERY == 0:
            _info("{:3.2f} reading completed", 100 * (count + 1) / total)

    cells = np.where(values < 0, np.float32(-1), np.float32(1) - values).astype(np.float32)
    data = cells.reshape(size_y, size_x)
    _info("The size of the data vector is {} {}", size_y, size_x)
    return OccupancyMap(
        file_name,
        data,
        size_x * resolution,
        size_y * resolution,
        resolution,
        autoshifted_x,
        autoshifted_y,
    )


def _draw_disc(image: np.ndarray, cx: int, cy: int, radius: int, color: tuple[float, ...]) -> None:
    rows, cols = image.shape[:2]
    yy, xx = np.ogrid[:rows, :cols]
    mask = (yy - cy) ** 2 + (xx - cx) ** 2 <= radius**2
    image[mask] = color


def render_map(grid_map: OccupancyMap, particles: Sequence[Pose2D]) -> np.ndarray:
    """Return an RGB image of the map with particles in red and the last one larger in green.

    Unknown cells are drawn as occupied (white); the image has one pixel per cell.
    """
    if not particles:
        raise ValueError("at least one particle is needed")
    gray = np.where(grid_map.data == -1, 1.0, grid_map.data).astype(np.float64)
    image = np.repeat(gray[:, :, np.newaxis], 3, axis=2)
    for pose in particles:
        _draw_disc(
            image,
            _round_half_away(pose.x / grid_map.resolution),
            _round_half_away(pose.y / grid_map.resolution),
            1,
            _PARTICLE_COLOR,
        )
    last = particles[-1]
    _draw_disc(
        image,
        _round_half_away(last.x / grid_map.resolution),
        _round_half_away(last.y / grid_map.resolution),
        2,
        _LAST_PARTICLE_COLOR,
    )
    return image