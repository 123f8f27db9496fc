"""Pixel extractor: reads RGB triples along planned strands from a canonical grid."""

from dataclasses import dataclass
from typing import Dict, List

import numpy as np

from .geometry import (
    DIAGONAL_TL_BR, DIAGONAL_TR_BL, EDGE_BAND, HORIZONTAL, VERTICAL, SampleSpec,
)


@dataclass(frozen=True)
class PixelSample:
    """Ordered RGB triples for one spec; coords holds the matching (x, y) pairs"""
    spec: SampleSpec
    pixels: np.ndarray
    coords: np.ndarray

    @property
    def length(self) -> int:
        return int(self.pixels.shape[0])

    def __len__(self):
        return self.length


def extract_line(grid: np.ndarray, spec: SampleSpec) -> PixelSample:
    """Read the pixels described by ``spec``. Pure read, the grid is not touched."""
    height, width = grid.shape[:2]

    if spec.kind == HORIZONTAL:
        _check_index(spec.row, height, 'row')
        xs = np.arange(width)
        ys = np.full(width, spec.row)
    elif spec.kind == VERTICAL:
        _check_index(spec.col, width, 'column')
        if not 0 <= spec.y_start <= height:
            raise ValueError(f"Strand start row {spec.y_start} outside image of height {height}")
        # tolerance strands are vertical segments, seeded ones span the full height
        stop = height if spec.length is None else min(height, spec.y_start + spec.length)
        ys = np.arange(spec.y_start, stop)
        xs = np.full(ys.shape[0], spec.col)
    elif spec.kind in (DIAGONAL_TL_BR, DIAGONAL_TR_BL):
        xs, ys = diagonal_coords(spec.start_x, spec.start_y, width, height, spec.step_x)
    elif spec.kind == EDGE_BAND:
        xs, ys = edge_coords(spec, width, height)
    else:
        raise ValueError(f"Unknown sample kind: {spec.kind!r}")

    pixels = grid[ys, xs, :3].astype(np.uint8).reshape(-1, 3)
    coords = np.stack([xs, ys], axis=-1).astype(np.int64).reshape(-1, 2)
    return PixelSample(spec, pixels, coords)


def diagonal_coords(start_x: int, start_y: int, width: int, height: int, step_x: int):
    """Coordinates visited stepping (x+step_x, y+1) until either leaves the image"""
    xs, ys = [], []
    x, y = start_x, start_y
    while 0 <= x < width and 0 <= y < height:
        xs.append(x)
        ys.append(y)
        x += step_x
        y += 1
    return np.array(xs, dtype=np.int64), np.array(ys, dtype=np.int64)


def edge_coords(spec: SampleSpec, width: int, height: int):
    if spec.side in ('top', 'bottom'):
        _check_index(spec.row, height, 'row')
        xs = np.arange(0, width, spec.stride)
        ys = np.full(xs.shape[0], spec.row)
    elif spec.side in ('left', 'right'):
        _check_index(spec.col, width, 'column')
        ys = np.arange(0, height, spec.stride)
        xs = np.full(ys.shape[0], spec.col)
    else:
        raise ValueError(f"Unknown edge side: {spec.side!r}")
    return xs, ys


def extract_edges(grid: np.ndarray, specs: List[SampleSpec]) -> Dict[str, PixelSample]:
    return {spec.side: extract_line(grid, spec) for spec in specs}


def _check_index(value, limit: int, label: str):
    if value is None or not 0 <= value < limit:
        raise ValueError(f"Strand {label} {value} outside [0, {limit})")
