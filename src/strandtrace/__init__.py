"""StrandTrace package
Exporting main classes for external use.

Example:
    from strandtrace import StrandTraceFingerprint, StrandTraceConfig
"""
from .core import VERSION, StrandTraceConfig, StrandTraceFingerprint, VerificationSession
from .comparator import ComparisonResult, ExactHashStrategy, FingerprintComparator, ToleranceStrategy
from .errors import (
    ConfigError, DimensionMismatchError, FingerprintError, MalformedRecordError, StrandTraceError,
)
from .models import HashFingerprint, ImageMetadata, StrandRecord, ToleranceFingerprint, parse_fingerprint
from .rng import JavaRandom

__all__ = [
    'StrandTraceConfig',
    'StrandTraceFingerprint',
    'VerificationSession',
    'FingerprintComparator',
    'ToleranceStrategy',
    'ExactHashStrategy',
    'ComparisonResult',
    'ImageMetadata',
    'StrandRecord',
    'HashFingerprint',
    'ToleranceFingerprint',
    'parse_fingerprint',
    'JavaRandom',
    'StrandTraceError',
    'ConfigError',
    'FingerprintError',
    'MalformedRecordError',
    'DimensionMismatchError',
    'VERSION',
]
