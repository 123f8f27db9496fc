"""
StrandTrace - Strand-sampled image fingerprinting and verification
Captures a compact fingerprint from a handful of deterministic pixel lines
and later decides whether a candidate photo is the same, unmodified image.

Two fingerprint modes:
- hash: six strands positioned by a JavaRandom seeded with the image id,
  plus border bands, each stored as a SHA-256 digest;
- tolerance: three fixed-proportion vertical strands stored as raw pixels
  and compared with a per-channel tolerance.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
from PIL import Image

from .comparator import (
    DEFAULT_LENGTH_MISMATCH_LIMIT, DEFAULT_MATCH_THRESHOLD, DEFAULT_MAX_SAMPLE_MISMATCHES,
    DEFAULT_TOLERANCE, ComparisonResult, ExactHashStrategy, FingerprintComparator, ToleranceStrategy,
)
from .errors import ConfigError, DimensionMismatchError, FingerprintError, MalformedRecordError
from .geometry import DEFAULT_EDGE_SAMPLE_RATE, DEFAULT_FIXED_STRANDS, MODE_HASH, MODES
from .models import Fingerprint, ImageMetadata, parse_fingerprint
from .orientation import CanonicalImage, normalize, read_exif_orientation

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@dataclass
class StrandTraceConfig:
    """Configuration for StrandTrace fingerprinting"""
    tolerance: int = DEFAULT_TOLERANCE
    strand_match_threshold: float = DEFAULT_MATCH_THRESHOLD
    length_mismatch_limit: int = DEFAULT_LENGTH_MISMATCH_LIMIT
    max_sample_mismatches: int = DEFAULT_MAX_SAMPLE_MISMATCHES
    edge_sample_rate: int = DEFAULT_EDGE_SAMPLE_RATE
    fixed_strand_positions: List[Tuple[int, str, float]] = field(
        default_factory=lambda: [tuple(p) for p in DEFAULT_FIXED_STRANDS])
    # Reject digests whose declared position disagrees with regenerated geometry
    enforce_positions: bool = True
    default_mode: str = MODE_HASH

    def __post_init__(self):
        if self.default_mode not in MODES:
            raise ConfigError(f"default_mode must be one of {MODES}, got {self.default_mode!r}")
        if self.tolerance < 0:
            raise ConfigError(f"tolerance must be non-negative, got {self.tolerance}")
        if self.edge_sample_rate < 1:
            raise ConfigError(f"edge_sample_rate must be positive, got {self.edge_sample_rate}")
        self.fixed_strand_positions = [tuple(p) for p in self.fixed_strand_positions]

    @classmethod
    def from_json(cls, path: str) -> 'StrandTraceConfig':
        """Load configuration from JSON file"""
        try:
            with open(path, 'r') as f:
                data = json.load(f)
            return cls(**data)
        except ConfigError:
            raise
        except Exception as e:
            raise ConfigError(f"Failed to load config from {path}: {e}")

    def to_json(self, path: str):
        """Save configuration to JSON file"""
        data = asdict(self)
        data['fixed_strand_positions'] = [list(p) for p in self.fixed_strand_positions]
        with open(path, 'w') as f:
            json.dump(data, f, indent=2)

    def comparator(self) -> FingerprintComparator:
        return FingerprintComparator(
            tolerance=ToleranceStrategy(
                tolerance=self.tolerance,
                match_threshold=self.strand_match_threshold,
                length_mismatch_limit=self.length_mismatch_limit,
                max_sample_mismatches=self.max_sample_mismatches,
                proportions=self.fixed_strand_positions,
            ),
            exact=ExactHashStrategy(
                enforce_positions=self.enforce_positions,
                edge_stride=self.edge_sample_rate,
            ),
        )


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


def load_image(image_path: str) -> Tuple[np.ndarray, Optional[int]]:
    """Decode an image file to an RGB array plus its EXIF orientation code"""
    with Image.open(image_path) as img:
        orientation = read_exif_orientation(img)
        if img.mode != 'RGB':
            img = img.convert('RGB')
        return np.array(img), orientation


def check_dimensions(image: CanonicalImage, metadata: ImageMetadata):
    if image.size != metadata.size:
        raise DimensionMismatchError(metadata.size, image.size)


@dataclass
class VerificationSession:
    """Everything one verification run owns; discarded when the run ends"""
    fingerprint: Fingerprint
    image: CanonicalImage
    comparator: FingerprintComparator

    @property
    def metadata(self) -> ImageMetadata:
        return self.fingerprint.metadata

    def run(self) -> ComparisonResult:
        check_dimensions(self.image, self.metadata)
        logger.debug(f"Verifying image {self.metadata.image_id} ({self.image.width}x{self.image.height}) "
                     f"in {self.fingerprint.mode} mode")
        return self.comparator.compare(self.fingerprint, self.image)


class StrandTraceFingerprint:
    """Main fingerprinting engine"""

    def __init__(self, config: Optional[StrandTraceConfig] = None):
        self.config = config or StrandTraceConfig()
        self.comparator = self.config.comparator()

    def fingerprint_pixels(self, pixels, image_id: Union[int, str], mode: Optional[str] = None,
                           orientation: Optional[int] = None, captured_by: Optional[str] = None,
                           file_name: Optional[str] = None) -> Dict[str, Any]:
        """Capture side: build a fingerprint record from a raw pixel grid"""
        mode = mode or self.config.default_mode
        if mode not in MODES:
            raise FingerprintError(f"Unknown fingerprint mode: {mode!r}")
        image = normalize(pixels, orientation)
        metadata = ImageMetadata(
            image_id=image_id,
            width=image.width,
            height=image.height,
            captured_at=_utc_timestamp(),
            captured_by=captured_by,
            file_name=file_name,
        )
        strategy = self.comparator.strategies[mode]
        fingerprint = strategy.extract(image, metadata)
        record = fingerprint.to_record()
        record['version'] = VERSION
        record['mode'] = mode
        return record

    def generate_fingerprint(self, image_path: str, image_id: Union[int, str], mode: Optional[str] = None,
                             captured_by: Optional[str] = None) -> Dict[str, Any]:
        """Generate a fingerprint for an image file"""
        try:
            pixels, orientation = load_image(image_path)
            return self.fingerprint_pixels(pixels, image_id, mode, orientation, captured_by,
                                           file_name=Path(image_path).name)
        except FingerprintError:
            raise
        except FileNotFoundError as e:
            raise FingerprintError(f"Image file not found: {image_path}") from e
        except Exception as e:
            raise FingerprintError(f"Failed to generate fingerprint: {str(e)}") from e

    def verify_pixels(self, pixels, record: Union[Dict[str, Any], Fingerprint],
                      orientation: Optional[int] = None) -> Dict[str, Any]:
        """Verify a raw pixel grid against a stored fingerprint"""
        fingerprint = parse_fingerprint(record) if isinstance(record, dict) else record
        session = VerificationSession(fingerprint, normalize(pixels, orientation), self.comparator)
        result = session.run()

        report = {
            'timestamp': _utc_timestamp(),
            'image_id': fingerprint.metadata.image_id,
            'dimensions': [session.image.width, session.image.height],
        }
        report.update(result.to_dict())
        report.setdefault('dimension_match', True)
        logger.info(f"{report['title']}: {report['match_percentage']}% match")
        return report

    def verify_image(self, image_path: str, record: Union[Dict[str, Any], Fingerprint],
                     orientation: Optional[int] = None) -> Dict[str, Any]:
        """Verify an image file; an explicit orientation overrides the EXIF tag"""
        try:
            pixels, exif_orientation = load_image(image_path)
        except FileNotFoundError as e:
            raise FingerprintError(f"Image file not found: {image_path}") from e
        except Exception as e:
            raise FingerprintError(f"Failed to read image: {str(e)}") from e
        if orientation is None:
            orientation = exif_orientation
        logger.debug(f"EXIF orientation: {exif_orientation}")
        return self.verify_pixels(pixels, record, orientation)


__all__ = [
    'VERSION', 'StrandTraceConfig', 'StrandTraceFingerprint', 'VerificationSession',
    'load_image', 'check_dimensions', 'ConfigError', 'FingerprintError',
    'MalformedRecordError', 'DimensionMismatchError',
]
