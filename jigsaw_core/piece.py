from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .grid import Coord, GridShape


class PieceStatus(Enum):
    STAGED = "staged"
    PLACED = "placed"
    LOCKED = "locked"


@dataclass(frozen=True)
class Piece:
    """One grid cell of the puzzle. The id doubles as the piece's home slot.

    `slot` is None while the piece sits in the staging pool. `locked` is only
    ever true when the piece occupies its home slot; use `Piece.at` to get a
    piece with the lock derived rather than set by hand.
    """
    id: int
    slot: Optional[int] = None
    locked: bool = False

    @classmethod
    def staged(cls, piece_id: int) -> 'Piece':
        return cls(id=piece_id, slot=None, locked=False)

    @classmethod
    def at(cls, piece_id: int, slot: Optional[int]) -> 'Piece':
        return cls(id=piece_id, slot=slot, locked=slot is not None and slot == piece_id)

    @property
    def home_position(self) -> int:
        return self.id

    @property
    def is_staged(self) -> bool:
        return self.slot is None

    @property
    def is_placed(self) -> bool:
        return self.slot is not None

    @property
    def is_correct(self) -> bool:
        return self.slot == self.home_position

    @property
    def status(self) -> PieceStatus:
        if self.locked:
            return PieceStatus.LOCKED
        return PieceStatus.STAGED if self.slot is None else PieceStatus.PLACED

    def home_coord(self, grid: GridShape) -> Coord:
        return grid.coord(self.home_position)


def is_correct(piece: Piece) -> bool:
    return piece.is_correct
