from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Tuple, Union

from .edges import EdgeSet, EdgeType, classify_edges
from .grid import GridShape, Side

Point = Tuple[float, float]

# Bulb proportions: width relative to the side length, depth relative to the
# shorter piece dimension.
TAB_WIDTH_RATIO = 0.4
TAB_DEPTH_RATIO = 0.45

# Where the two Bezier halves of a bulb put their control points, in units of
# the bulb width (along the side) and depth (away from it).
_NECK_PULL = 0.35
_NECK_RISE = 0.25
_SHOULDER_FLARE = 0.15


@dataclass(frozen=True)
class LineTo:
    end: Point

    def points(self) -> Tuple[Point, ...]:
        return (self.end,)

    def svg(self) -> str:
        return f"L {_fmt(self.end)}"


@dataclass(frozen=True)
class CubicTo:
    c1: Point
    c2: Point
    end: Point

    def points(self) -> Tuple[Point, ...]:
        return (self.c1, self.c2, self.end)

    def svg(self) -> str:
        return f"C {_fmt(self.c1)} {_fmt(self.c2)} {_fmt(self.end)}"


Segment = Union[LineTo, CubicTo]


@dataclass(frozen=True)
class BoundaryPath:
    """Closed outline of one piece in its local frame (cell top-left at (0, 0), y down)."""
    start: Point
    segments: Tuple[Segment, ...]
    edges: EdgeSet
    width: float
    height: float

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def to_svg(self) -> str:
        parts = [f"M {_fmt(self.start)}"]
        parts.extend(seg.svg() for seg in self.segments)
        parts.append("Z")
        return " ".join(parts)

    def bounds(self) -> Tuple[float, float, float, float]:
        """(min_x, min_y, max_x, max_y) of the control polygon, protrusions included."""
        xs = [self.start[0]]
        ys = [self.start[1]]
        for seg in self.segments:
            for x, y in seg.points():
                xs.append(x)
                ys.append(y)
        return min(xs), min(ys), max(xs), max(ys)


@dataclass
class _SideFrame:
    """Maps (along, out) side coordinates to the piece's local frame."""
    origin: Point
    along: Point
    outward: Point
    length: float

    def at(self, t: float, h: float) -> Point:
        ox, oy = self.origin
        ux, uy = self.along
        nx, ny = self.outward
        return (ox + t * ux + h * nx, oy + t * uy + h * ny)


def _side_frames(width: float, height: float) -> List[Tuple[Side, _SideFrame]]:
    # Winding order top -> right -> bottom -> left, clockwise on screen.
    return [
        (Side.TOP, _SideFrame((0.0, 0.0), (1.0, 0.0), (0.0, -1.0), width)),
        (Side.RIGHT, _SideFrame((width, 0.0), (0.0, 1.0), (1.0, 0.0), height)),
        (Side.BOTTOM, _SideFrame((width, height), (-1.0, 0.0), (0.0, 1.0), width)),
        (Side.LEFT, _SideFrame((0.0, height), (0.0, -1.0), (-1.0, 0.0), height)),
    ]


def _side_segments(frame: _SideFrame, edge: EdgeType, depth: float) -> List[Segment]:
    length = frame.length
    if edge is EdgeType.FLAT:
        return [LineTo(frame.at(length, 0.0))]

    sign = 1.0 if edge is EdgeType.TAB else -1.0
    d = sign * depth
    w = TAB_WIDTH_RATIO * length
    a = (length - w) / 2.0
    b = (length + w) / 2.0
    mid = length / 2.0
    # Both halves mirror each other around `mid`, so the same side walked in
    # the opposite direction by the neighbour traces the identical curve.
    return [
        LineTo(frame.at(a, 0.0)),
        CubicTo(
            frame.at(a + _NECK_PULL * w, _NECK_RISE * d),
            frame.at(a - _SHOULDER_FLARE * w, d),
            frame.at(mid, d),
        ),
        CubicTo(
            frame.at(b + _SHOULDER_FLARE * w, d),
            frame.at(b - _NECK_PULL * w, _NECK_RISE * d),
            frame.at(b, 0.0),
        ),
        LineTo(frame.at(length, 0.0)),
    ]


def build_boundary_path(
    piece_index: int,
    grid: GridShape,
    piece_width: float,
    piece_height: float,
    seed: int = 0,
) -> BoundaryPath:
    """Builds the closed outline of a piece from its edge classification.

    The outline starts at the cell's top-left corner and walks the sides in
    the order top, right, bottom, left. Flat sides are a single straight line;
    tab and slot sides interrupt the straight run with a symmetric bulb that
    protrudes (tab) or indents (slot) by the same depth everywhere on the grid.
    """
    if piece_width <= 0 or piece_height <= 0:
        raise ValueError(f"piece size must be positive, got {piece_width}x{piece_height}")
    edges = classify_edges(piece_index, grid, seed)
    depth = TAB_DEPTH_RATIO * min(piece_width, piece_height)
    segments: List[Segment] = []
    for side, frame in _side_frames(float(piece_width), float(piece_height)):
        segments.extend(_side_segments(frame, edges.for_side(side), depth))
    return BoundaryPath(
        start=(0.0, 0.0),
        segments=tuple(segments),
        edges=edges,
        width=float(piece_width),
        height=float(piece_height),
    )


def _fmt(p: Point) -> str:
    return f"{_num(p[0])},{_num(p[1])}"


def _num(v: float) -> str:
    s = f"{v:.3f}".rstrip("0").rstrip(".")
    return "0" if s in ("-0", "") else s
