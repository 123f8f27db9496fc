"""
Fingerprint comparator.

Two scoring policies, selected by the shape of the stored fingerprint and
never blended:

ToleranceStrategy
    raw pixel strands compared channel by channel with a fixed tolerance;
    robust to lossy re-encoding.
ExactHashStrategy
    per-strand and per-edge SHA-256 equality; any changed pixel on a sampled
    line fails that unit.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .encoder import EDGE_ORDER, digest, digests_equal, edge_digests, rgb_to_hex
from .extractor import extract_edges, extract_line
from .geometry import (
    DEFAULT_EDGE_SAMPLE_RATE, DEFAULT_FIXED_STRANDS, HASH_STRAND_COUNT,
    MODE_HASH, MODE_TOLERANCE, plan_geometry,
)
from .models import (
    EdgeDigests, Fingerprint, HashFingerprint, ImageMetadata, StrandRecord,
    ToleranceFingerprint,
)
from .orientation import CanonicalImage

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 5
DEFAULT_MATCH_THRESHOLD = 90.0
DEFAULT_LENGTH_MISMATCH_LIMIT = 10
DEFAULT_MAX_SAMPLE_MISMATCHES = 5

BAND_AUTHENTIC = 'authentic'
BAND_LIKELY_AUTHENTIC = 'likely_authentic'
BAND_MINOR_MODIFICATION = 'minor_modification'
BAND_PARTIALLY_MODIFIED = 'partially_modified'
BAND_FAILED = 'failed'


def hash_band(score: float) -> Dict[str, str]:
    if score >= 100:
        return {'band': BAND_AUTHENTIC, 'title': 'Authentic & Unmodified', 'subtitle': 'Perfect match'}
    if score >= 70:
        return {'band': BAND_LIKELY_AUTHENTIC, 'title': 'Likely Authentic', 'subtitle': 'Minor discrepancies'}
    if score >= 40:
        return {'band': BAND_PARTIALLY_MODIFIED, 'title': 'Partially Modified', 'subtitle': 'Altered or cropped'}
    return {'band': BAND_FAILED, 'title': 'Verification Failed', 'subtitle': 'Does not match'}


def tolerance_band(score: float) -> Dict[str, str]:
    if score >= 95:
        return {'band': BAND_AUTHENTIC, 'title': 'IMAGE AUTHENTIC', 'subtitle': 'Sampled strands match'}
    if score >= 80:
        return {'band': BAND_MINOR_MODIFICATION, 'title': 'IMAGE MODIFIED (Minor Changes)',
                'subtitle': 'Some sampled pixels differ'}
    return {'band': BAND_FAILED, 'title': 'IMAGE VERIFICATION FAILED', 'subtitle': 'Does not match'}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class ComparisonResult:
    """Per-unit results plus one aggregate score in [0, 100]"""
    mode: str
    score: float
    matched: int
    total: int
    band: Dict[str, str]
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_authentic(self) -> bool:
        return self.band['band'] == BAND_AUTHENTIC

    def to_dict(self) -> Dict[str, Any]:
        report = {
            'mode': self.mode,
            'match_percentage': self.score,
            'band': self.band['band'],
            'title': self.band['title'],
            'subtitle': self.band['subtitle'],
            'is_authentic': self.is_authentic,
        }
        report.update(self.details)
        return report


class ComparisonStrategy:
    """Extracts a candidate fingerprint of the same shape and scores it against the stored one"""
    mode: str = ''

    def extract(self, image: CanonicalImage, metadata: ImageMetadata) -> Fingerprint:
        raise NotImplementedError

    def compare(self, original: Fingerprint, extracted: Fingerprint) -> ComparisonResult:
        raise NotImplementedError


class ToleranceStrategy(ComparisonStrategy):
    mode = MODE_TOLERANCE

    def __init__(self, tolerance: int = DEFAULT_TOLERANCE,
                 match_threshold: float = DEFAULT_MATCH_THRESHOLD,
                 length_mismatch_limit: int = DEFAULT_LENGTH_MISMATCH_LIMIT,
                 max_sample_mismatches: int = DEFAULT_MAX_SAMPLE_MISMATCHES,
                 proportions: Sequence[Tuple[int, str, float]] = DEFAULT_FIXED_STRANDS):
        self.tolerance = tolerance
        self.match_threshold = match_threshold
        self.length_mismatch_limit = length_mismatch_limit
        self.max_sample_mismatches = max_sample_mismatches
        self.proportions = tuple(tuple(p) for p in proportions)

    def extract(self, image: CanonicalImage, metadata: ImageMetadata) -> ToleranceFingerprint:
        plan = plan_geometry(metadata.image_id, image.width, image.height, MODE_TOLERANCE,
                             proportions=self.proportions)
        strands = []
        for spec in plan.strands:
            sample = extract_line(image.pixels, spec)
            strands.append(StrandRecord(id=spec.strand_id, type=spec.kind, position=spec.position(),
                                        pixels=sample.pixels, coords=sample.coords, name=spec.name))
            logger.debug(f"Strand {spec.strand_id} ({spec.name}): {sample.length} pixels")
        return ToleranceFingerprint(metadata, strands)

    def compare_strand(self, original: StrandRecord, extracted: StrandRecord) -> Dict[str, Any]:
        total = original.pixel_count
        n = min(total, extracted.pixel_count)
        a = original.pixels[:n].astype(np.int16)
        b = extracted.pixels[:n].astype(np.int16)
        delta = np.abs(a - b)
        ok = np.all(delta <= self.tolerance, axis=1)
        matching = int(ok.sum())

        samples = []
        for j in np.flatnonzero(~ok)[:self.max_sample_mismatches]:
            x, y = (int(v) for v in extracted.coords[j])
            samples.append({
                'position': int(j),
                'x': x,
                'y': y,
                'original': _pixel_dict(original.pixels[j]),
                'extracted': _pixel_dict(extracted.pixels[j]),
                'diff': {'r': int(delta[j, 0]), 'g': int(delta[j, 1]), 'b': int(delta[j, 2])},
            })

        percentage = round(matching / total * 100, 2) if total else 0.0
        return {
            'id': original.id,
            'name': extracted.name or original.name or f"Strand {original.id}",
            'total_pixels': total,
            'compared_pixels': n,
            'matching_pixels': matching,
            'mismatching_pixels': n - matching,
            'match_percentage': percentage,
            'is_match': percentage > self.match_threshold,
            'sample_mismatches': samples,
        }

    def compare(self, original: ToleranceFingerprint, extracted: ToleranceFingerprint) -> ComparisonResult:
        strand_results = []
        total_pixels = 0
        matching_pixels = 0
        dimension_match = True
        position_flags = []

        pairs = list(zip(original.strands, extracted.strands))
        for orig, ex in pairs:
            if abs(orig.pixel_count - ex.pixel_count) > self.length_mismatch_limit:
                dimension_match = False
            flag = _position_disagreement(orig, ex)
            if flag:
                logger.warning(f"Strand {orig.id} declares {flag['declared']}, geometry gives {flag['regenerated']}")
                position_flags.append(flag)
            result = self.compare_strand(orig, ex)
            total_pixels += result['compared_pixels']
            matching_pixels += result['matching_pixels']
            logger.debug(f"Strand {result['id']} ({result['name']}): {result['match_percentage']}%")
            strand_results.append(result)

        # strands the record should hold but does not count as compared, unmatched pixels
        missing = extracted.strands[len(pairs):]
        for ex in missing:
            logger.warning(f"Fingerprint has no strand {ex.id} ({ex.name}); counting {ex.pixel_count} pixels as unmatched")
            total_pixels += ex.pixel_count
        extra = [orig.id for orig in original.strands[len(pairs):]]
        if extra:
            logger.warning(f"Ignoring strands with no regenerated counterpart: {extra}")

        score = round(matching_pixels / total_pixels * 100, 2) if total_pixels else 0.0
        overall_match = bool(strand_results) and not missing and all(r['is_match'] for r in strand_results)
        details = {
            'overall_match': overall_match,
            'dimension_match': dimension_match,
            'total_pixels': total_pixels,
            'matching_pixels': matching_pixels,
            'strand_results': strand_results,
            'missing_strands': [ex.id for ex in missing],
            'ignored_strands': extra,
            'position_flags': position_flags,
        }
        return ComparisonResult(MODE_TOLERANCE, score, matching_pixels, total_pixels, tolerance_band(score), details)


class ExactHashStrategy(ComparisonStrategy):
    mode = MODE_HASH

    def __init__(self, enforce_positions: bool = True, edge_stride: int = DEFAULT_EDGE_SAMPLE_RATE):
        self.enforce_positions = enforce_positions
        self.edge_stride = edge_stride

    def extract(self, image: CanonicalImage, metadata: ImageMetadata) -> HashFingerprint:
        plan = plan_geometry(metadata.image_id, image.width, image.height, MODE_HASH, edge_stride=self.edge_stride)
        strands = []
        # strict id order; each digest completes before the next strand is read
        for spec in plan.strands:
            sample = extract_line(image.pixels, spec)
            record = StrandRecord(id=spec.strand_id, type=spec.kind, position=spec.position(),
                                  digest=digest(sample.pixels))
            logger.debug(f"Strand {spec.strand_id} ({spec.kind}) hash: {record.digest[:16]}... ({sample.length} pixels)")
            strands.append(record)
        edge_samples = extract_edges(image.pixels, list(plan.edges))
        edges = EdgeDigests(**edge_digests({side: s.pixels for side, s in edge_samples.items()}))
        return HashFingerprint(metadata, strands, edges)

    def compare(self, original: HashFingerprint, extracted: HashFingerprint) -> ComparisonResult:
        matched = 0
        total = 0
        strand_results = []
        position_flags = []
        missing_strands = []

        if len(original.strands) != HASH_STRAND_COUNT:
            logger.warning(f"Expected {HASH_STRAND_COUNT} strands, fingerprint has {len(original.strands)}")
        known_ids = {s.id for s in extracted.strands}
        unknown = sorted({s.id for s in original.strands} - known_ids)
        for strand_id in unknown:
            logger.warning(f"Strand id {strand_id} cannot be regenerated from the metadata; ignoring it")
            position_flags.append({'id': strand_id, 'reason': 'unknown strand id'})

        for ex in extracted.strands:
            total += 1
            orig = original.strand(ex.id)
            if orig is None:
                logger.warning(f"Fingerprint has no strand {ex.id} ({ex.type})")
                missing_strands.append(ex.id)
                strand_results.append({'id': ex.id, 'type': ex.type, 'match': False, 'missing': True})
                continue

            flag = _position_disagreement(orig, ex)
            if flag:
                logger.warning(f"Strand {ex.id} declares {flag['declared']}, geometry gives {flag['regenerated']}")
                position_flags.append(flag)
            match = digests_equal(ex.digest, orig.digest)
            if flag and self.enforce_positions:
                match = False

            logger.debug(f"Strand {ex.id} ({ex.type}): {'MATCH' if match else 'MISMATCH'}")
            if not match:
                logger.debug(f"  Extracted: {ex.digest[:20]}...  Original: {orig.digest[:20]}...")
            strand_results.append({'id': ex.id, 'type': ex.type, 'match': match,
                                   'position_verified': flag is None})
            if match:
                matched += 1

        edges = {}
        missing_edges = []
        for side in EDGE_ORDER:
            total += 1
            stored = original.edges.side(side)
            if stored is None:
                missing_edges.append(side)
            edges[side] = digests_equal(extracted.edges.side(side), stored)
            if edges[side]:
                matched += 1
        logger.debug("Edges: " + ' | '.join(f"{side}: {'ok' if edges[side] else 'X'}" for side in EDGE_ORDER))

        combined = None
        if original.edges.combined is not None:
            combined = digests_equal(extracted.edges.combined, original.edges.combined)

        score = round_half_up(matched / total * 100) if total else 0
        logger.info(f"Overall: {matched}/{total} matches ({score}%)")
        details = {
            'matched_checks': matched,
            'total_checks': total,
            'strands': strand_results,
            'edges': edges,
            'combined_edge_match': combined,
            'missing_strands': missing_strands,
            'missing_edges': missing_edges,
            'position_flags': position_flags,
            'summary': _hash_summary(strand_results, edges),
        }
        return ComparisonResult(MODE_HASH, score, matched, total, hash_band(score), details)


class FingerprintComparator:
    """Selects the strategy matching the stored fingerprint's shape"""

    def __init__(self, tolerance: Optional[ToleranceStrategy] = None, exact: Optional[ExactHashStrategy] = None):
        self.strategies = {
            MODE_TOLERANCE: tolerance or ToleranceStrategy(),
            MODE_HASH: exact or ExactHashStrategy(),
        }

    def strategy_for(self, fingerprint: Fingerprint) -> ComparisonStrategy:
        try:
            return self.strategies[fingerprint.mode]
        except (AttributeError, KeyError):
            raise TypeError(f"Unsupported fingerprint type: {type(fingerprint).__name__}") from None

    def compare(self, original: Fingerprint, image: CanonicalImage) -> ComparisonResult:
        strategy = self.strategy_for(original)
        extracted = strategy.extract(image, original.metadata)
        return strategy.compare(original, extracted)


def _pixel_dict(rgb) -> Dict[str, Any]:
    r, g, b = (int(c) for c in rgb)
    return {'r': r, 'g': g, 'b': b, 'hex': rgb_to_hex(r, g, b, prefix='#')}


def _position_disagreement(original: StrandRecord, regenerated: StrandRecord) -> Optional[Dict[str, Any]]:
    """Declared fields that disagree with regenerated geometry, or None when all agree.

    Only fields the regenerated strand defines are compared; a horizontal strand
    has no pixelCount to check, so a declared one is not held against it.
    """
    declared = dict(original.position)
    if original.type and original.type != regenerated.type:
        declared['type'] = original.type
    actual = dict(regenerated.position, type=regenerated.type)
    bad = {k: v for k, v in declared.items() if k in actual and actual[k] != v}
    if not bad:
        return None
    return {'id': original.id, 'declared': bad, 'regenerated': {k: actual.get(k) for k in bad}}


def _hash_summary(strand_results: List[Dict[str, Any]], edges: Dict[str, bool]) -> Dict[str, str]:
    def count(prefix):
        rows = [r for r in strand_results if r['type'].startswith(prefix)]
        return f"{sum(r['match'] for r in rows)}/{len(rows)}"
    return {
        'horizontal': count('HORIZONTAL'),
        'vertical': count('VERTICAL'),
        'diagonal': count('DIAGONAL'),
        'edges': f"{sum(edges.values())}/{len(edges)}",
    }
