from __future__ import annotations

from typing import Optional


class JigsawError(Exception):
    """Base class for every error raised by the assembly engine."""


class InvalidGridShapeError(JigsawError, ValueError):
    """Raised when a grid is requested with fewer than two rows or columns."""


class SlotOccupiedError(JigsawError):
    """A piece was dropped on a slot that already holds a different piece.

    Recoverable: the caller should leave the dragged piece where it was.
    """

    def __init__(self, slot: int, occupant: int, piece_id: Optional[int] = None):
        self.slot = slot
        self.occupant = occupant
        self.piece_id = piece_id
        super().__init__(f"slot {slot} is occupied by piece {occupant}")


class UnknownPieceIdError(JigsawError, KeyError):
    def __init__(self, piece_id: object):
        self.piece_id = piece_id
        super().__init__(piece_id)

    def __str__(self) -> str:
        return f"unknown piece id: {self.piece_id!r}"


class InvalidSlotError(JigsawError, IndexError):
    def __init__(self, slot: object, total: int):
        self.slot = slot
        self.total = total
        super().__init__(f"slot {slot!r} is outside the grid (0..{total - 1})")


class ReentrantMutationError(JigsawError, RuntimeError):
    """A mutating call was made from inside an event handler of the same board."""
