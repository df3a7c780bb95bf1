import unittest

from game import (
    CubicTo,
    EdgeType,
    GridShape,
    LineTo,
    SIDES,
    Side,
    build_boundary_path,
    classify_edges,
)


def _side_points(path, side):
    """All points (start, controls, end) drawn for one side of a boundary path."""
    cursor = path.start
    segs = list(path.segments)
    pos = 0
    for s in SIDES:
        count = 1 if path.edges.for_side(s) is EdgeType.FLAT else 4
        chunk = segs[pos:pos + count]
        if s is side:
            pts = [cursor]
            for seg in chunk:
                pts.extend(seg.points())
            return pts
        cursor = chunk[-1].end
        pos += count
    raise AssertionError("side not found")


def _rounded(points, dx=0.0, dy=0.0):
    return {(round(x + dx, 6), round(y + dy, 6)) for x, y in points}


class TestBoundaryPath(unittest.TestCase):
    def test_given_piece_when_building_path_then_closed_loop_in_winding_order(self):
        g = GridShape(3, 3)
        w, h = 120.0, 80.0
        for idx in range(g.total_pieces):
            path = build_boundary_path(idx, g, w, h)
            self.assertEqual(path.start, (0.0, 0.0))
            self.assertEqual(path.segments[-1].end, (0.0, 0.0))
            corners = [_side_points(path, s)[-1] for s in SIDES]
            self.assertEqual(corners, [(w, 0.0), (w, h), (0.0, h), (0.0, 0.0)])

    def test_given_flat_and_shaped_sides_when_building_then_segment_kinds_match(self):
        g = GridShape(2, 2)
        path = build_boundary_path(0, g, 100, 100)
        top = _side_points(path, Side.TOP)
        self.assertEqual(top, [(0.0, 0.0), (100.0, 0.0)])
        kinds = [type(s) for s in path.segments]
        self.assertEqual(kinds.count(CubicTo), 4)  # two shaped sides, two cubics each
        self.assertEqual(kinds.count(LineTo), 2 + 2 * 2)

    def test_given_tab_and_slot_when_building_then_protrudes_or_indents_by_depth(self):
        g = GridShape(2, 2)
        size = 100.0
        path = build_boundary_path(0, g, size, size)
        right = path.edges.right
        xs = [x for x, _ in _side_points(path, Side.RIGHT)]
        if right is EdgeType.TAB:
            self.assertAlmostEqual(max(xs), size + 45.0)
        else:
            self.assertAlmostEqual(min(xs), size - 45.0)
        min_x, min_y, max_x, max_y = path.bounds()
        self.assertAlmostEqual(min_x, 0.0)
        self.assertAlmostEqual(min_y, 0.0)

    def test_given_bulb_when_building_then_width_is_forty_percent_of_side(self):
        g = GridShape(2, 2)
        path = build_boundary_path(0, g, 200, 100)
        pts = _side_points(path, Side.BOTTOM)
        # start corner, straight run to the neck, ... , neck end, corner
        neck_start, neck_end = pts[1], pts[-2]
        self.assertAlmostEqual(abs(neck_start[0] - neck_end[0]), 80.0)

    def test_given_neighbours_when_building_then_shared_edges_trace_same_curve(self):
        g = GridShape(3, 4)
        w, h = 90.0, 60.0
        for idx in range(g.total_pieces):
            path = build_boundary_path(idx, g, w, h)
            right = g.neighbor(idx, Side.RIGHT)
            if right is not None:
                other = build_boundary_path(right, g, w, h)
                self.assertEqual(
                    _rounded(_side_points(path, Side.RIGHT)),
                    _rounded(_side_points(other, Side.LEFT), dx=w),
                )
            below = g.neighbor(idx, Side.BOTTOM)
            if below is not None:
                other = build_boundary_path(below, g, w, h)
                self.assertEqual(
                    _rounded(_side_points(path, Side.BOTTOM)),
                    _rounded(_side_points(other, Side.TOP), dy=h),
                )

    def test_given_path_when_rendering_svg_then_move_curves_and_close(self):
        g = GridShape(2, 3)
        path = build_boundary_path(1, g, 100, 100)
        svg = path.to_svg()
        self.assertTrue(svg.startswith("M 0,0 "))
        self.assertTrue(svg.endswith(" Z"))
        self.assertIn(" C ", svg)
        self.assertEqual(path.edges, classify_edges(1, g))

    def test_given_non_positive_size_when_building_then_value_error(self):
        with self.assertRaises(ValueError):
            build_boundary_path(0, GridShape(2, 2), 0, 10)


if __name__ == "__main__":
    unittest.main(verbosity=2)
