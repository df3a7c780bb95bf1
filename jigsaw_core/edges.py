from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from .grid import GridShape, Side, SIDES

_MASK64 = 0xFFFFFFFFFFFFFFFF

# Axis of the edge shared by two neighbours.
AXIS_HORIZONTAL = 0  # piece and its right-hand neighbour
AXIS_VERTICAL = 1    # piece and the neighbour below it


class EdgeType(Enum):
    FLAT = "flat"
    TAB = "tab"
    SLOT = "slot"

    @property
    def complement(self) -> 'EdgeType':
        if self is EdgeType.TAB:
            return EdgeType.SLOT
        if self is EdgeType.SLOT:
            return EdgeType.TAB
        return EdgeType.FLAT


@dataclass(frozen=True)
class EdgeSet:
    top: EdgeType
    right: EdgeType
    bottom: EdgeType
    left: EdgeType

    def for_side(self, side: Side) -> EdgeType:
        return getattr(self, side.value)

    def items(self) -> Tuple[Tuple[Side, EdgeType], ...]:
        """(side, edge) pairs in winding order."""
        return tuple((s, self.for_side(s)) for s in SIDES)

    def to_json(self) -> Dict[str, str]:
        return {s.value: e.value for s, e in self.items()}


def _pair64(left: int, right: int) -> int:
    # Szudzik pairing
    if left >= right:
        return (left * left) + left + right
    else:
        return left + (right * right)


def _mix64(value: int) -> int:
    # SplitMix64 finalizer
    value = (value + 0x9e3779b97f4a7c15) & _MASK64
    value ^= (value >> 30)
    value = (value * 0xbf58476d1ce4e5b9) & _MASK64
    value ^= (value >> 27)
    value = (value * 0x94d049bb133111eb) & _MASK64
    value ^= (value >> 31)
    return value & _MASK64


def edge_hash(lower_index: int, axis: int, seed: int = 0) -> int:
    """64-bit hash of one shared edge, identified by its lower piece index and axis."""
    h = 0
    for v in (lower_index, axis, seed):
        h = _pair64(h, v & _MASK64) & _MASK64
    return _mix64(h)


def edge_has_tab(lower_index: int, axis: int, seed: int = 0) -> bool:
    """Whether the lower-index piece of a shared edge carries the tab.

    The decision is made once per edge; the other piece always receives the
    complement, so neighbouring edges match regardless of the hash values.
    """
    return bool(edge_hash(lower_index, axis, seed) & 1)


def _shared_edge(grid: GridShape, piece_index: int, side: Side, seed: int) -> EdgeType:
    neighbor = grid.neighbor(piece_index, side)
    if neighbor is None:
        return EdgeType.FLAT
    axis = AXIS_HORIZONTAL if side in (Side.LEFT, Side.RIGHT) else AXIS_VERTICAL
    lower = min(piece_index, neighbor)
    lower_tab = edge_has_tab(lower, axis, seed)
    if piece_index == lower:
        return EdgeType.TAB if lower_tab else EdgeType.SLOT
    return EdgeType.SLOT if lower_tab else EdgeType.TAB


def classify_edges(piece_index: int, grid: GridShape, seed: int = 0) -> EdgeSet:
    """Deterministic flat/tab/slot classification of the four sides of a piece."""
    grid.check_slot(piece_index)
    return EdgeSet(
        top=_shared_edge(grid, piece_index, Side.TOP, seed),
        right=_shared_edge(grid, piece_index, Side.RIGHT, seed),
        bottom=_shared_edge(grid, piece_index, Side.BOTTOM, seed),
        left=_shared_edge(grid, piece_index, Side.LEFT, seed),
    )
