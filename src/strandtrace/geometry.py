"""
Sampling geometry planner.

Two policies coexist:
- seeded (hash mode): 2 horizontal, 2 vertical and 2 diagonal strands whose
  positions come from a JavaRandom seeded by the image id, plus fixed-stride
  border bands;
- fixed proportion (tolerance mode): three vertical strands at 15%, 50% and
  80% of the width, each one third of the height tall.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from .rng import JavaRandom, seed_from_image_id

logger = logging.getLogger(__name__)

HORIZONTAL = 'HORIZONTAL'
VERTICAL = 'VERTICAL'
DIAGONAL_TL_BR = 'DIAGONAL_TL_BR'
DIAGONAL_TR_BL = 'DIAGONAL_TR_BL'
EDGE_BAND = 'EDGE_BAND'

MODE_HASH = 'hash'
MODE_TOLERANCE = 'tolerance'
MODES = (MODE_HASH, MODE_TOLERANCE)

EDGE_SIDES = ('top', 'bottom', 'left', 'right')
DEFAULT_EDGE_SAMPLE_RATE = 50
HASH_STRAND_COUNT = 6
# (id, name, fraction of width)
DEFAULT_FIXED_STRANDS = ((1, 'Bottom', 0.15), (2, 'Middle', 0.50), (3, 'Top', 0.80))


@dataclass(frozen=True)
class SampleSpec:
    """One line or border band to sample. Never mutated once planned."""
    kind: str
    strand_id: Optional[int] = None
    row: Optional[int] = None
    col: Optional[int] = None
    start_x: Optional[int] = None
    start_y: Optional[int] = None
    y_start: int = 0
    length: Optional[int] = None
    side: Optional[str] = None
    stride: int = DEFAULT_EDGE_SAMPLE_RATE
    name: Optional[str] = None

    @property
    def is_diagonal(self) -> bool:
        return self.kind in (DIAGONAL_TL_BR, DIAGONAL_TR_BL)

    @property
    def step_x(self) -> int:
        return 1 if self.kind == DIAGONAL_TL_BR else -1

    def position(self) -> dict:
        """Position fields as they appear in a fingerprint record"""
        if self.kind == HORIZONTAL:
            return {'yPosition': self.row}
        if self.kind == VERTICAL:
            pos = {'xPosition': self.col}
            if self.name is not None:
                pos.update({'startX': self.col, 'startY': self.y_start})
            return pos
        if self.is_diagonal:
            return {'startX': self.start_x, 'startY': self.start_y, 'pixelCount': self.length}
        return {'side': self.side, 'stride': self.stride}


@dataclass(frozen=True)
class SamplingPlan:
    mode: str
    width: int
    height: int
    strands: Tuple[SampleSpec, ...]
    edges: Tuple[SampleSpec, ...] = field(default_factory=tuple)

    def strand(self, strand_id: int) -> Optional[SampleSpec]:
        for spec in self.strands:
            if spec.strand_id == strand_id:
                return spec
        return None


def diagonal_length(start_x: int, start_y: int, width: int, height: int, step_x: int) -> int:
    """Pixels visited stepping (x+step_x, y+1) until leaving the image"""
    if not (0 <= start_x < width and 0 <= start_y < height):
        return 0
    remaining_x = width - start_x if step_x > 0 else start_x + 1
    return min(remaining_x, height - start_y)


def plan_hash_strands(image_id: Union[int, str], width: int, height: int) -> List[SampleSpec]:
    """
    Regenerate the six seeded strands.

    The draw order (H1, H2, V1, V2, D1 x/y, D2 x/y) is fixed; reordering the
    draws breaks agreement with the capture side.
    """
    _check_size(width, height)
    random = JavaRandom(seed_from_image_id(image_id))

    h1_y = math.floor(random() * (height / 3))
    h2_y = math.floor(height / 2 + random() * (height / 3))
    v1_x = math.floor(random() * (width / 3))
    v2_x = math.floor(width / 2 + random() * (width / 3))
    d1_x = math.floor(random() * (width / 4))
    d1_y = math.floor(random() * (height / 4))
    d2_x = math.floor(width - random() * (width / 4) - 1)
    d2_y = math.floor(random() * (height / 4))

    logger.debug(f"Horizontal strand rows: {h1_y}, {h2_y}")
    logger.debug(f"Vertical strand columns: {v1_x}, {v2_x}")
    logger.debug(f"Diagonal strand starts: ({d1_x},{d1_y}), ({d2_x},{d2_y})")

    return [
        SampleSpec(HORIZONTAL, strand_id=1, row=h1_y, length=width),
        SampleSpec(HORIZONTAL, strand_id=2, row=h2_y, length=width),
        SampleSpec(VERTICAL, strand_id=3, col=v1_x, length=height),
        SampleSpec(VERTICAL, strand_id=4, col=v2_x, length=height),
        SampleSpec(DIAGONAL_TL_BR, strand_id=5, start_x=d1_x, start_y=d1_y,
                   length=diagonal_length(d1_x, d1_y, width, height, 1)),
        SampleSpec(DIAGONAL_TR_BL, strand_id=6, start_x=d2_x, start_y=d2_y,
                   length=diagonal_length(d2_x, d2_y, width, height, -1)),
    ]


def plan_edge_bands(width: int, height: int, stride: int = DEFAULT_EDGE_SAMPLE_RATE) -> List[SampleSpec]:
    """Border bands in combined-digest order: top, bottom, left, right"""
    _check_size(width, height)
    if stride < 1:
        raise ValueError(f"Edge stride must be positive, got {stride}")
    return [
        SampleSpec(EDGE_BAND, side='top', row=0, stride=stride, length=len(range(0, width, stride))),
        SampleSpec(EDGE_BAND, side='bottom', row=height - 1, stride=stride, length=len(range(0, width, stride))),
        SampleSpec(EDGE_BAND, side='left', col=0, stride=stride, length=len(range(0, height, stride))),
        SampleSpec(EDGE_BAND, side='right', col=width - 1, stride=stride, length=len(range(0, height, stride))),
    ]


def plan_fixed_strands(width: int, height: int,
                       proportions: Sequence[Tuple[int, str, float]] = DEFAULT_FIXED_STRANDS) -> List[SampleSpec]:
    """Vertical segments at fixed fractions of the width, one third of the height tall"""
    _check_size(width, height)
    strand_height = height // 3
    y_starts = {
        'Bottom': height - strand_height,
        'Middle': (height - strand_height) // 2,
        'Top': 0,
    }
    specs = []
    for strand_id, name, fraction in proportions:
        if name not in y_starts:
            raise ValueError(f"Fixed strand name must be one of {sorted(y_starts)}, got {name!r}")
        if not 0.0 <= fraction < 1.0:
            raise ValueError(f"Fixed strand fraction must be in [0, 1), got {fraction}")
        x = math.floor(width * fraction)
        y_start = y_starts[name]
        specs.append(SampleSpec(VERTICAL, strand_id=strand_id, col=x,
                                y_start=y_start, length=strand_height, name=name))
    logger.debug(f"Fixed strand positions: {[(s.strand_id, s.col, s.y_start) for s in specs]}")
    return specs


def plan_geometry(image_id: Union[int, str], width: int, height: int, mode: str = MODE_HASH,
                  edge_stride: int = DEFAULT_EDGE_SAMPLE_RATE,
                  proportions: Sequence[Tuple[int, str, float]] = DEFAULT_FIXED_STRANDS) -> SamplingPlan:
    """Pure function of (image id, width, height, mode)"""
    if mode == MODE_HASH:
        return SamplingPlan(mode, width, height,
                            tuple(plan_hash_strands(image_id, width, height)),
                            tuple(plan_edge_bands(width, height, edge_stride)))
    if mode == MODE_TOLERANCE:
        return SamplingPlan(mode, width, height, tuple(plan_fixed_strands(width, height, proportions)))
    raise ValueError(f"Unknown sampling mode: {mode!r}")


def _check_size(width: int, height: int):
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
