"""
Fingerprint records.

Two shapes are legal and never mix:
- HashFingerprint: six digest strands plus border edge digests;
- ToleranceFingerprint: up to three named strands carrying raw pixels.

``parse_fingerprint`` turns a JSON-style mapping into one of them and raises
MalformedRecordError when required fields are missing.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from .encoder import rgb_to_hex
from .errors import MalformedRecordError
from .geometry import MODE_HASH, MODE_TOLERANCE
from .rng import seed_from_image_id


@dataclass(frozen=True)
class ImageMetadata:
    image_id: Union[int, str]
    width: int
    height: int
    captured_at: Optional[str] = None
    captured_by: Optional[str] = None
    file_name: Optional[str] = None

    @property
    def seed(self) -> int:
        return seed_from_image_id(self.image_id)

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'ImageMetadata':
        """Read metadata from the top level of a record or from its 'metadata' key"""
        source = record.get('metadata') if isinstance(record.get('metadata'), dict) else record
        missing = [k for k in ('imageId', 'width', 'height') if source.get(k) is None]
        if missing:
            raise MalformedRecordError(f"Fingerprint is missing required field(s): {', '.join(missing)}")
        width = _parse_dimension(source, 'width')
        height = _parse_dimension(source, 'height')
        if width < 1 or height < 1:
            raise MalformedRecordError(f"Image dimensions must be positive, got {width}x{height}")
        image_id = source['imageId']
        try:
            seed_from_image_id(image_id)
        except ValueError as e:
            raise MalformedRecordError(str(e)) from e
        return cls(
            image_id=image_id,
            width=width,
            height=height,
            captured_at=source.get('capturedAt'),
            captured_by=source.get('capturedBy'),
            file_name=source.get('fileName'),
        )

    def to_record(self) -> Dict[str, Any]:
        data = {'imageId': self.image_id, 'width': self.width, 'height': self.height}
        optional = {'capturedAt': self.captured_at, 'capturedBy': self.captured_by, 'fileName': self.file_name}
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass
class StrandRecord:
    """One persisted verification unit: either a digest or raw pixels, never both"""
    id: int
    type: str
    position: Dict[str, Any] = field(default_factory=dict)
    digest: Optional[str] = None
    pixels: Optional[np.ndarray] = None
    coords: Optional[np.ndarray] = None
    name: Optional[str] = None

    def __post_init__(self):
        if self.digest is not None and self.pixels is not None:
            raise MalformedRecordError(f"Strand {self.id} carries both a digest and raw pixels")

    @property
    def pixel_count(self) -> Optional[int]:
        if self.pixels is not None:
            return int(self.pixels.shape[0])
        return self.position.get('pixelCount')

    def to_record(self) -> Dict[str, Any]:
        data = {'id': self.id, 'type': self.type}
        if self.name is not None:
            data['name'] = self.name
        data.update(self.position)
        if self.digest is not None:
            data['sha256'] = self.digest
        if self.pixels is not None:
            coords = self.coords if self.coords is not None else np.zeros((len(self.pixels), 2), dtype=np.int64)
            data['pixels'] = [
                {'x': int(x), 'y': int(y), 'r': int(r), 'g': int(g), 'b': int(b),
                 'hex': rgb_to_hex(r, g, b, prefix='#')}
                for (x, y), (r, g, b) in zip(coords, self.pixels)
            ]
        return data


@dataclass
class EdgeDigests:
    top: Optional[str] = None
    bottom: Optional[str] = None
    left: Optional[str] = None
    right: Optional[str] = None
    combined: Optional[str] = None

    def side(self, name: str) -> Optional[str]:
        return getattr(self, name)

    @classmethod
    def from_record(cls, record: Optional[Dict[str, Any]]) -> 'EdgeDigests':
        record = record or {}
        return cls(
            top=record.get('topHash'),
            bottom=record.get('bottomHash'),
            left=record.get('leftHash'),
            right=record.get('rightHash'),
            combined=record.get('edgeHash'),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            'topHash': self.top,
            'bottomHash': self.bottom,
            'leftHash': self.left,
            'rightHash': self.right,
            'edgeHash': self.combined,
        }


@dataclass
class HashFingerprint:
    metadata: ImageMetadata
    strands: List[StrandRecord]
    edges: EdgeDigests = field(default_factory=EdgeDigests)
    mode = MODE_HASH

    def strand(self, strand_id: int) -> Optional[StrandRecord]:
        for record in self.strands:
            if record.id == strand_id:
                return record
        return None

    def to_record(self) -> Dict[str, Any]:
        data = self.metadata.to_record()
        data['strands'] = [s.to_record() for s in self.strands]
        data['edges'] = self.edges.to_record()
        return data


@dataclass
class ToleranceFingerprint:
    metadata: ImageMetadata
    strands: List[StrandRecord]
    mode = MODE_TOLERANCE

    def to_record(self) -> Dict[str, Any]:
        return {
            'metadata': self.metadata.to_record(),
            'strands': [s.to_record() for s in self.strands],
        }


Fingerprint = Union[HashFingerprint, ToleranceFingerprint]

_POSITION_KEYS = ('yPosition', 'xPosition', 'startX', 'startY', 'pixelCount')
_EDGE_KEYS = ('topHash', 'bottomHash', 'leftHash', 'rightHash', 'edgeHash')


def parse_fingerprint(record: Dict[str, Any]) -> Fingerprint:
    """Build a fingerprint from a mapping, dispatching on the strand shape"""
    if not isinstance(record, dict):
        raise MalformedRecordError(f"Fingerprint must be a JSON object, got {type(record).__name__}")
    metadata = ImageMetadata.from_record(record)

    strands = record.get('strands')
    if not isinstance(strands, list) or not strands:
        raise MalformedRecordError("Fingerprint has no strands")
    if not all(isinstance(s, dict) for s in strands):
        raise MalformedRecordError("Every strand must be a JSON object")

    has_digest = ['sha256' in s for s in strands]
    has_pixels = ['pixels' in s for s in strands]
    if all(has_digest) and not any(has_pixels):
        edges = record.get('edges')
        if edges is not None and not isinstance(edges, dict):
            raise MalformedRecordError("Fingerprint 'edges' must be a JSON object")
        for key in _EDGE_KEYS:
            value = (edges or {}).get(key)
            if value is not None and (not isinstance(value, str) or not value):
                raise MalformedRecordError(f"Edge digest {key!r} must be a non-empty string, got {value!r}")
        return HashFingerprint(metadata, [_parse_hash_strand(s) for s in strands],
                               EdgeDigests.from_record(edges))
    if all(has_pixels) and not any(has_digest):
        return ToleranceFingerprint(metadata, [_parse_pixel_strand(s, i) for i, s in enumerate(strands, 1)])
    raise MalformedRecordError("Strands must all carry either 'sha256' digests or 'pixels' arrays")


def _parse_position(strand: Dict[str, Any]) -> Dict[str, Any]:
    position = {}
    for key in _POSITION_KEYS:
        value = strand.get(key)
        if value is None:
            continue
        try:
            position[key] = int(value)
        except (TypeError, ValueError) as e:
            raise MalformedRecordError(f"Strand field {key!r} is not an integer: {value!r}") from e
    return position


def _parse_dimension(source: Dict[str, Any], key: str) -> int:
    value = source[key]
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise MalformedRecordError(f"Image {key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise MalformedRecordError(f"Unparseable image {key}: {value!r}") from e


def _parse_strand_id(strand: Dict[str, Any]) -> int:
    try:
        return int(strand['id'])
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedRecordError(f"Strand is missing a numeric 'id': {strand.get('id')!r}") from e


def _parse_hash_strand(strand: Dict[str, Any]) -> StrandRecord:
    digest = strand.get('sha256')
    if not isinstance(digest, str) or not digest:
        raise MalformedRecordError(f"Strand {strand.get('id')!r} has no usable sha256 digest")
    return StrandRecord(
        id=_parse_strand_id(strand),
        type=str(strand.get('type', '')).upper(),
        position=_parse_position(strand),
        digest=digest,
    )


def _parse_pixel_strand(strand: Dict[str, Any], default_id: int) -> StrandRecord:
    if not isinstance(strand['pixels'], list):
        raise MalformedRecordError(f"Strand {strand.get('id')!r} pixels must be a list")
    pixels, coords = [], []
    for px in strand['pixels']:
        try:
            rgb = (int(px['r']), int(px['g']), int(px['b']))
            coords.append((int(px.get('x', 0)), int(px.get('y', 0))))
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedRecordError(f"Unparseable pixel in strand {strand.get('id')!r}: {px!r}") from e
        if not all(0 <= c <= 255 for c in rgb):
            raise MalformedRecordError(f"Pixel channel out of range in strand {strand.get('id')!r}: {rgb}")
        pixels.append(rgb)
    strand_id = _parse_strand_id(strand) if 'id' in strand else default_id
    return StrandRecord(
        id=strand_id,
        type=str(strand.get('type', 'VERTICAL')).upper(),
        position=_parse_position(strand),
        pixels=np.array(pixels, dtype=np.uint8).reshape(-1, 3),
        coords=np.array(coords, dtype=np.int64).reshape(-1, 2),
        name=strand.get('name'),
    )
