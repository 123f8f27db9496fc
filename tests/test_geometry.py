#!/usr/bin/env python3
"""
Unit tests for the sampling geometry planner
"""

import unittest

from strandtrace.geometry import (
    DIAGONAL_TL_BR, DIAGONAL_TR_BL, EDGE_BAND, HORIZONTAL, MODE_HASH, MODE_TOLERANCE,
    VERTICAL, diagonal_length, plan_edge_bands, plan_fixed_strands, plan_geometry,
    plan_hash_strands,
)


class TestSeededPlan(unittest.TestCase):
    """Seeded strands for hash mode"""

    def test_reference_positions(self):
        specs = plan_hash_strands(12345, 100, 60)
        self.assertEqual([s.strand_id for s in specs], [1, 2, 3, 4, 5, 6])
        self.assertEqual([s.kind for s in specs],
                         [HORIZONTAL, HORIZONTAL, VERTICAL, VERTICAL, DIAGONAL_TL_BR, DIAGONAL_TR_BL])
        self.assertEqual((specs[0].row, specs[1].row), (7, 40))
        self.assertEqual((specs[2].col, specs[3].col), (31, 80))
        self.assertEqual((specs[4].start_x, specs[4].start_y, specs[4].length), (20, 0, 60))
        self.assertEqual((specs[5].start_x, specs[5].start_y, specs[5].length), (90, 1, 59))

    def test_string_id_seeds_like_integer(self):
        self.assertEqual(plan_hash_strands("12345", 100, 60), plan_hash_strands(12345, 100, 60))

    def test_deterministic(self):
        """Same inputs always give the same geometry"""
        for image_id in (1, 42, 999999, "photo-7"):
            self.assertEqual(plan_geometry(image_id, 640, 480), plan_geometry(image_id, 640, 480))

    def test_different_seeds(self):
        self.assertNotEqual(plan_hash_strands(1, 640, 480), plan_hash_strands(2, 640, 480))

    def test_positions_within_bounds(self):
        for image_id in range(200):
            for width, height in ((640, 480), (3, 2), (1, 1), (17, 1000)):
                specs = plan_hash_strands(image_id, width, height)
                for spec in specs[:2]:
                    self.assertTrue(0 <= spec.row < height)
                for spec in specs[2:4]:
                    self.assertTrue(0 <= spec.col < width)

    def test_positions_are_recorded(self):
        specs = plan_hash_strands(12345, 100, 60)
        self.assertEqual(specs[0].position(), {'yPosition': 7})
        self.assertEqual(specs[2].position(), {'xPosition': 31})
        self.assertEqual(specs[4].position(), {'startX': 20, 'startY': 0, 'pixelCount': 60})

    def test_rejects_empty_image(self):
        with self.assertRaises(ValueError):
            plan_hash_strands(1, 0, 10)


class TestDiagonalLength(unittest.TestCase):

    def test_stops_at_first_boundary(self):
        self.assertEqual(diagonal_length(0, 0, 10, 4, 1), 4)
        self.assertEqual(diagonal_length(8, 0, 10, 4, 1), 2)
        self.assertEqual(diagonal_length(1, 0, 10, 4, -1), 2)
        self.assertEqual(diagonal_length(9, 3, 10, 4, -1), 1)

    def test_start_outside_image(self):
        self.assertEqual(diagonal_length(-1, 0, 10, 4, -1), 0)
        self.assertEqual(diagonal_length(0, 4, 10, 4, 1), 0)


class TestEdgeBands(unittest.TestCase):

    def test_fixed_stride_sides(self):
        edges = plan_edge_bands(120, 60)
        self.assertEqual([e.side for e in edges], ['top', 'bottom', 'left', 'right'])
        self.assertTrue(all(e.kind == EDGE_BAND and e.stride == 50 for e in edges))
        self.assertEqual((edges[0].row, edges[1].row), (0, 59))
        self.assertEqual((edges[2].col, edges[3].col), (0, 119))
        # x = 0, 50, 100 and y = 0, 50
        self.assertEqual([e.length for e in edges], [3, 3, 2, 2])

    def test_invalid_stride(self):
        with self.assertRaises(ValueError):
            plan_edge_bands(10, 10, stride=0)


class TestFixedPlan(unittest.TestCase):
    """Fixed-proportion strands for tolerance mode"""

    def test_reference_positions(self):
        specs = plan_fixed_strands(100, 60)
        self.assertEqual([s.name for s in specs], ['Bottom', 'Middle', 'Top'])
        self.assertEqual([s.col for s in specs], [15, 50, 80])
        self.assertEqual([s.y_start for s in specs], [40, 20, 0])
        self.assertTrue(all(s.length == 20 and s.kind == VERTICAL for s in specs))

    def test_independent_of_seed(self):
        self.assertEqual(plan_geometry(1, 640, 480, MODE_TOLERANCE), plan_geometry(2, 640, 480, MODE_TOLERANCE))

    def test_odd_height(self):
        specs = plan_fixed_strands(640, 481)
        # strand height 160, bottom starts at 321, middle at (481 - 160) // 2
        self.assertEqual([s.y_start for s in specs], [321, 160, 0])
        self.assertEqual([s.col for s in specs], [96, 320, 512])

    def test_unknown_strand_name(self):
        with self.assertRaises(ValueError):
            plan_fixed_strands(100, 60, [(1, 'Left', 0.1)])


class TestPlanGeometry(unittest.TestCase):

    def test_hash_plan_has_strands_and_edges(self):
        plan = plan_geometry(12345, 100, 60, MODE_HASH)
        self.assertEqual(len(plan.strands), 6)
        self.assertEqual(len(plan.edges), 4)
        self.assertEqual(plan.strand(3).col, 31)
        self.assertIsNone(plan.strand(7))

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            plan_geometry(1, 10, 10, 'perceptual')


if __name__ == '__main__':
    unittest.main(verbosity=2)
