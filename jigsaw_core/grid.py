from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from .errors import InvalidGridShapeError, InvalidSlotError

Coord = Tuple[int, int]  # (row, col)

MIN_SIDE = 2


class Side(Enum):
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"

    @property
    def opposite(self) -> 'Side':
        return _OPPOSITE[self]

    @property
    def delta(self) -> Coord:
        return _DELTA[self]


_OPPOSITE = {
    Side.TOP: Side.BOTTOM,
    Side.BOTTOM: Side.TOP,
    Side.LEFT: Side.RIGHT,
    Side.RIGHT: Side.LEFT,
}

_DELTA = {
    Side.TOP: (-1, 0),
    Side.RIGHT: (0, 1),
    Side.BOTTOM: (1, 0),
    Side.LEFT: (0, -1),
}

# Fixed winding order used for boundary paths.
SIDES: Tuple[Side, ...] = (Side.TOP, Side.RIGHT, Side.BOTTOM, Side.LEFT)


@dataclass(frozen=True)
class GridShape:
    """The rectangular cut of a puzzle image: rows x columns cells, indexed row-major."""
    rows: int
    columns: int

    def __post_init__(self) -> None:
        for name in ("rows", "columns"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidGridShapeError(f"{name} must be an integer, got {value!r}")
            if value < MIN_SIDE:
                raise InvalidGridShapeError(f"{name} must be >= {MIN_SIDE}, got {value}")

    @classmethod
    def create(cls, rows: object, columns: object) -> 'GridShape':
        """Builds a grid from loosely typed input (e.g. JSON), coercing numeric strings."""
        try:
            r = int(rows)  # type: ignore[arg-type]
            c = int(columns)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise InvalidGridShapeError(f"invalid grid shape: rows={rows!r}, columns={columns!r}") from None
        return cls(rows=r, columns=c)

    @property
    def total_pieces(self) -> int:
        return self.rows * self.columns

    def index(self, r: int, c: int) -> int:
        """Calculates the 1D index for a given row and column."""
        return r * self.columns + c

    def row_of(self, index: int) -> int:
        return index // self.columns

    def col_of(self, index: int) -> int:
        return index % self.columns

    def coord(self, index: int) -> Coord:
        return self.row_of(index), self.col_of(index)

    def contains(self, index: int) -> bool:
        return 0 <= index < self.total_pieces

    def check_slot(self, slot: object) -> int:
        """Returns the slot as an int, raising InvalidSlotError when it is off the grid."""
        if isinstance(slot, bool) or not isinstance(slot, int) or not self.contains(slot):
            raise InvalidSlotError(slot, self.total_pieces)
        return slot

    def coords(self) -> Iterable[Coord]:
        """Iterates over all coordinates of the grid."""
        for r in range(self.rows):
            for c in range(self.columns):
                yield (r, c)

    def on_boundary(self, index: int, side: Side) -> bool:
        """True when the given side of the cell touches the outer edge of the image."""
        r, c = self.coord(index)
        if side is Side.TOP:
            return r == 0
        if side is Side.BOTTOM:
            return r == self.rows - 1
        if side is Side.LEFT:
            return c == 0
        return c == self.columns - 1

    def neighbor(self, index: int, side: Side) -> Optional[int]:
        """Index of the adjacent cell across `side`, or None on the boundary."""
        if self.on_boundary(index, side):
            return None
        dr, dc = side.delta
        r, c = self.coord(index)
        return self.index(r + dr, c + dc)

    def pretty(self, occupancy: Sequence[Optional[int]], locked: Optional[Iterable[int]] = None) -> str:
        """Generates a human-readable view of slot occupancy ('.' empty, '*' locked)."""
        lset = set(locked or ())
        width = len(str(self.total_pieces - 1)) + 1
        lines: List[str] = []
        for r in range(self.rows):
            row: List[str] = []
            for c in range(self.columns):
                pid = occupancy[self.index(r, c)]
                if pid is None:
                    cell = "."
                elif pid in lset:
                    cell = f"{pid}*"
                else:
                    cell = str(pid)
                row.append(cell.rjust(width))
            lines.append(" ".join(row))
        return "\n".join(lines)
