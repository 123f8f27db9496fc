#!/usr/bin/env python3
"""
Unit tests for the tolerance and exact-hash comparison strategies
"""

import copy
import unittest

import numpy as np

from strandtrace.comparator import (
    BAND_AUTHENTIC, BAND_FAILED, BAND_LIKELY_AUTHENTIC, BAND_MINOR_MODIFICATION,
    BAND_PARTIALLY_MODIFIED, ExactHashStrategy, FingerprintComparator, ToleranceStrategy,
    hash_band, tolerance_band,
)
from strandtrace.models import (
    HashFingerprint, ImageMetadata, StrandRecord, ToleranceFingerprint, parse_fingerprint,
)
from strandtrace.orientation import normalize

METADATA = ImageMetadata(image_id=12345, width=100, height=60)


def pixel_strand(strand_id, pixels, x=0, y_start=0, name=None):
    pixels = np.asarray(pixels, dtype=np.uint8).reshape(-1, 3)
    coords = np.array([(x, y_start + i) for i in range(len(pixels))], dtype=np.int64).reshape(-1, 2)
    return StrandRecord(id=strand_id, type='VERTICAL', pixels=pixels, coords=coords, name=name)


def tolerance_pair(original_strands, extracted_strands):
    return (ToleranceFingerprint(METADATA, original_strands),
            ToleranceFingerprint(METADATA, extracted_strands))


def random_grid(width=100, height=60, seed=7):
    return np.random.default_rng(seed).integers(0, 256, size=(height, width, 3), dtype=np.uint8)


class TestToleranceStrategy(unittest.TestCase):

    def setUp(self):
        self.strategy = ToleranceStrategy()
        self.base = np.full((10, 3), 100, dtype=np.uint8)

    def test_deltas_within_tolerance_match_fully(self):
        shifted = self.base.astype(int) + np.array([5, -5, 3])
        result = self.strategy.compare(*tolerance_pair([pixel_strand(1, self.base)],
                                                       [pixel_strand(1, shifted)]))
        strand = result.details['strand_results'][0]
        self.assertEqual(strand['match_percentage'], 100.0)
        self.assertTrue(strand['is_match'])
        self.assertEqual(result.score, 100.0)
        self.assertEqual(result.band['band'], BAND_AUTHENTIC)
        self.assertTrue(result.details['overall_match'])

    def test_exactly_ninety_percent_is_not_a_match(self):
        changed = self.base.copy()
        changed[3] = (106, 100, 100)
        result = self.strategy.compare(*tolerance_pair([pixel_strand(1, self.base)],
                                                       [pixel_strand(1, changed)]))
        strand = result.details['strand_results'][0]
        self.assertEqual(strand['matching_pixels'], 9)
        self.assertEqual(strand['match_percentage'], 90.0)
        self.assertFalse(strand['is_match'])
        self.assertFalse(result.details['overall_match'])

    def test_single_bad_pixel_reduces_percentage(self):
        base = np.full((20, 3), 50, dtype=np.uint8)
        changed = base.copy()
        changed[0, 2] = 0
        result = self.strategy.compare(*tolerance_pair([pixel_strand(1, base)], [pixel_strand(1, changed)]))
        strand = result.details['strand_results'][0]
        self.assertEqual(strand['match_percentage'], 95.0)
        self.assertTrue(strand['is_match'])
        self.assertEqual(strand['sample_mismatches'][0]['diff'], {'r': 0, 'g': 0, 'b': 50})
        self.assertEqual(strand['sample_mismatches'][0]['original']['hex'], '#323232')

    def test_length_difference_of_ten_is_tolerated(self):
        original = np.full((30, 3), 10, dtype=np.uint8)
        result = self.strategy.compare(*tolerance_pair([pixel_strand(1, original)],
                                                       [pixel_strand(1, original[:20])]))
        self.assertTrue(result.details['dimension_match'])

    def test_length_difference_of_eleven_flags_dimension_mismatch(self):
        original = np.full((31, 3), 10, dtype=np.uint8)
        result = self.strategy.compare(*tolerance_pair([pixel_strand(1, original)],
                                                       [pixel_strand(1, original[:20])]))
        self.assertFalse(result.details['dimension_match'])
        strand = result.details['strand_results'][0]
        # percentage is against the stored strand length, overall against compared pixels
        self.assertEqual(strand['match_percentage'], round(20 / 31 * 100, 2))
        self.assertEqual(result.score, 100.0)

    def test_sample_mismatches_capped_at_five(self):
        changed = np.zeros((10, 3), dtype=np.uint8)
        result = self.strategy.compare(*tolerance_pair([pixel_strand(1, self.base, x=15, y_start=40)],
                                                       [pixel_strand(1, changed, x=15, y_start=40)]))
        samples = result.details['strand_results'][0]['sample_mismatches']
        self.assertEqual(len(samples), 5)
        self.assertEqual([s['position'] for s in samples], [0, 1, 2, 3, 4])
        self.assertEqual((samples[2]['x'], samples[2]['y']), (15, 42))
        self.assertEqual(result.score, 0.0)
        self.assertEqual(result.band['band'], BAND_FAILED)

    def test_overall_percentage_spans_strands(self):
        changed = self.base.copy()
        changed[:5] = 0
        result = self.strategy.compare(*tolerance_pair(
            [pixel_strand(1, self.base), pixel_strand(2, self.base)],
            [pixel_strand(1, self.base), pixel_strand(2, changed)]))
        self.assertEqual(result.matched, 15)
        self.assertEqual(result.total, 20)
        self.assertEqual(result.score, 75.0)

    def test_missing_strand_counts_against_total(self):
        result = self.strategy.compare(*tolerance_pair(
            [pixel_strand(1, self.base)],
            [pixel_strand(1, self.base), pixel_strand(2, self.base)]))
        self.assertEqual(result.details['missing_strands'], [2])
        self.assertEqual(result.score, 50.0)
        self.assertFalse(result.details['overall_match'])

    def test_position_disagreement_is_flagged(self):
        original = pixel_strand(1, self.base)
        original.position = {'xPosition': 16}
        extracted = pixel_strand(1, self.base)
        extracted.position = {'xPosition': 15, 'startX': 15, 'startY': 40}
        with self.assertLogs('strandtrace.comparator', level='WARNING'):
            result = self.strategy.compare(*tolerance_pair([original], [extracted]))
        self.assertEqual(result.details['position_flags'][0]['declared'], {'xPosition': 16})
        self.assertEqual(result.score, 100.0)


class TestExactHashStrategy(unittest.TestCase):

    def setUp(self):
        self.strategy = ExactHashStrategy()
        self.image = normalize(random_grid())
        self.extracted = self.strategy.extract(self.image, METADATA)
        self.record = self.extracted.to_record()

    def stored(self, record=None):
        return parse_fingerprint(record or self.record)

    def test_identical_fingerprints_score_100(self):
        result = self.strategy.compare(self.stored(), self.extracted)
        self.assertEqual((result.matched, result.total), (10, 10))
        self.assertEqual(result.score, 100)
        self.assertEqual(result.band['band'], BAND_AUTHENTIC)
        self.assertTrue(result.details['combined_edge_match'])
        self.assertEqual(result.details['summary'],
                         {'horizontal': '2/2', 'vertical': '2/2', 'diagonal': '2/2', 'edges': '4/4'})

    def test_uppercase_digests_match(self):
        record = copy.deepcopy(self.record)
        for strand in record['strands']:
            strand['sha256'] = strand['sha256'].upper()
        record['edges'] = {k: v.upper() for k, v in record['edges'].items()}
        self.assertEqual(self.strategy.compare(self.stored(record), self.extracted).score, 100)

    def test_one_bad_digest_costs_one_unit(self):
        record = copy.deepcopy(self.record)
        record['strands'][3]['sha256'] = '0' * 64
        result = self.strategy.compare(self.stored(record), self.extracted)
        self.assertEqual(result.score, 90)
        self.assertEqual(result.band['band'], BAND_LIKELY_AUTHENTIC)
        self.assertFalse(result.details['strands'][3]['match'])

    def test_bad_edge_digest(self):
        record = copy.deepcopy(self.record)
        record['edges']['leftHash'] = 'f' * 64
        result = self.strategy.compare(self.stored(record), self.extracted)
        self.assertFalse(result.details['edges']['left'])
        self.assertEqual(result.score, 90)

    def test_missing_strand_counts_against_denominator(self):
        record = copy.deepcopy(self.record)
        del record['strands'][5]
        with self.assertLogs('strandtrace.comparator', level='WARNING'):
            result = self.strategy.compare(self.stored(record), self.extracted)
        self.assertEqual(result.details['missing_strands'], [6])
        self.assertEqual((result.matched, result.total), (9, 10))

    def test_missing_edges(self):
        record = copy.deepcopy(self.record)
        del record['edges']
        result = self.strategy.compare(self.stored(record), self.extracted)
        self.assertEqual(result.details['missing_edges'], ['top', 'bottom', 'left', 'right'])
        self.assertEqual(result.score, 60)
        self.assertIsNone(result.details['combined_edge_match'])

    def test_forged_position_rejected(self):
        record = copy.deepcopy(self.record)
        record['strands'][0]['yPosition'] = 8
        with self.assertLogs('strandtrace.comparator', level='WARNING'):
            result = self.strategy.compare(self.stored(record), self.extracted)
        self.assertFalse(result.details['strands'][0]['match'])
        self.assertFalse(result.details['strands'][0]['position_verified'])
        self.assertEqual(result.details['position_flags'][0],
                         {'id': 1, 'declared': {'yPosition': 8}, 'regenerated': {'yPosition': 7}})
        self.assertEqual(result.score, 90)

    def test_pixel_count_on_straight_strands_accepted(self):
        record = copy.deepcopy(self.record)
        record['strands'][0]['pixelCount'] = 100
        record['strands'][2]['pixelCount'] = 60
        result = self.strategy.compare(self.stored(record), self.extracted)
        self.assertEqual(result.score, 100)
        self.assertEqual(result.details['position_flags'], [])
        self.assertTrue(all(s['position_verified'] for s in result.details['strands']))

    def test_forged_diagonal_pixel_count_rejected(self):
        record = copy.deepcopy(self.record)
        record['strands'][4]['pixelCount'] = 61
        with self.assertLogs('strandtrace.comparator', level='WARNING'):
            result = self.strategy.compare(self.stored(record), self.extracted)
        self.assertEqual(result.details['position_flags'],
                         [{'id': 5, 'declared': {'pixelCount': 61}, 'regenerated': {'pixelCount': 60}}])
        self.assertEqual(result.score, 90)

    def test_forged_position_trusted_when_not_enforced(self):
        record = copy.deepcopy(self.record)
        record['strands'][0]['yPosition'] = 8
        strategy = ExactHashStrategy(enforce_positions=False)
        with self.assertLogs('strandtrace.comparator', level='WARNING'):
            result = strategy.compare(self.stored(record), self.extracted)
        self.assertTrue(result.details['strands'][0]['match'])
        self.assertEqual(len(result.details['position_flags']), 1)

    def test_unknown_strand_id_flagged(self):
        record = copy.deepcopy(self.record)
        record['strands'].append({'id': 9, 'type': 'HORIZONTAL', 'yPosition': 1, 'sha256': 'a' * 64})
        with self.assertLogs('strandtrace.comparator', level='WARNING'):
            result = self.strategy.compare(self.stored(record), self.extracted)
        self.assertEqual(result.details['position_flags'], [{'id': 9, 'reason': 'unknown strand id'}])
        self.assertEqual(result.total, 10)

    def test_records_without_positions_are_compared(self):
        record = copy.deepcopy(self.record)
        for strand in record['strands']:
            for key in ('yPosition', 'xPosition', 'startX', 'startY', 'pixelCount'):
                strand.pop(key, None)
        self.assertEqual(self.strategy.compare(self.stored(record), self.extracted).score, 100)


class TestFingerprintComparator(unittest.TestCase):

    def test_dispatches_on_shape(self):
        comparator = FingerprintComparator()
        hash_fp = HashFingerprint(METADATA, [])
        tol_fp = ToleranceFingerprint(METADATA, [])
        self.assertIsInstance(comparator.strategy_for(hash_fp), ExactHashStrategy)
        self.assertIsInstance(comparator.strategy_for(tol_fp), ToleranceStrategy)
        with self.assertRaises(TypeError):
            comparator.strategy_for(object())

    def test_compare_regenerates_and_scores(self):
        image = normalize(random_grid())
        stored = ToleranceStrategy().extract(image, METADATA)
        result = FingerprintComparator().compare(stored, image)
        self.assertEqual(result.mode, 'tolerance')
        self.assertEqual(result.score, 100.0)
        self.assertEqual(len(result.details['strand_results']), 3)


class TestBands(unittest.TestCase):

    def test_hash_bands(self):
        self.assertEqual(hash_band(100)['band'], BAND_AUTHENTIC)
        self.assertEqual(hash_band(90)['band'], BAND_LIKELY_AUTHENTIC)
        self.assertEqual(hash_band(70)['band'], BAND_LIKELY_AUTHENTIC)
        self.assertEqual(hash_band(69)['band'], BAND_PARTIALLY_MODIFIED)
        self.assertEqual(hash_band(40)['band'], BAND_PARTIALLY_MODIFIED)
        self.assertEqual(hash_band(39)['band'], BAND_FAILED)

    def test_tolerance_bands(self):
        self.assertEqual(tolerance_band(95.0)['band'], BAND_AUTHENTIC)
        self.assertEqual(tolerance_band(94.99)['band'], BAND_MINOR_MODIFICATION)
        self.assertEqual(tolerance_band(80.0)['band'], BAND_MINOR_MODIFICATION)
        self.assertEqual(tolerance_band(79.99)['band'], BAND_FAILED)


if __name__ == '__main__':
    unittest.main(verbosity=2)
