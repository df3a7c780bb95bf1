from __future__ import annotations

import logging
import random
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, TypeVar

from .errors import (
    ReentrantMutationError,
    SlotOccupiedError,
    UnknownPieceIdError,
)
from .grid import GridShape
from .piece import Piece

logger = logging.getLogger(__name__)

PIECE_PLACED = "piece-placed"
PIECE_LOCKED = "piece-locked"
PIECE_RETURNED = "piece-returned"
PIECES_SWAPPED = "pieces-swapped"
COMPLETED = "completed"

E = TypeVar("E")


@dataclass(frozen=True)
class PuzzleEvent:
    kind: str
    piece_id: Optional[int] = None
    slot: Optional[int] = None
    other_id: Optional[int] = None


@dataclass(frozen=True)
class PlaceResult:
    """Outcome of an accepted `place` call."""
    piece: Piece
    moved: bool       # False for a no-op (own slot, or piece already locked)
    locked: bool      # the piece became locked by this call
    completed: bool   # this call completed the puzzle


BoardListener = Callable[[PuzzleEvent], None]


def dispatch(listeners: Sequence[Callable[[E], None]], events: Sequence[E]) -> None:
    """Delivers every event to every listener, then re-raises the first listener error.

    A failing listener must not hide later events (a `completed` queued
    behind a `piece-locked`) from the rest of the listeners.
    """
    first_error: Optional[BaseException] = None
    for ev in events:
        for listener in list(listeners):
            try:
                listener(ev)
            except Exception as e:
                if first_error is None:
                    first_error = e
                else:
                    logger.warning("listener %r failed on %r: %s", listener, ev, e)
    if first_error is not None:
        raise first_error


class PuzzleBoard:
    """Authoritative placement state for one puzzle: pieces, staging pool and slots.

    Every mutation goes through `place`, `return_to_staging`, `swap`,
    `restore` or `reset`, which keep these invariants:
    - a piece is locked iff it sits in its home slot, and a locked piece never moves;
    - no two pieces share a slot;
    - the staging pool holds exactly the unplaced pieces.
    """

    def __init__(self, grid: GridShape, seed: Optional[int] = None):
        self.grid = grid
        self.seed = seed
        self.move_count = 0
        self._pieces: List[Piece] = []
        self._slots: List[Optional[int]] = []
        self._staging: List[int] = []
        self._completed = False
        self._listeners: List[BoardListener] = []
        self._busy = False
        self._reset_state(seed)

    # ---------- observers ----------

    def subscribe(self, listener: BoardListener) -> Callable[[], None]:
        """Registers a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, events: List[PuzzleEvent]) -> None:
        # Dispatch happens with the board still marked busy so listeners
        # cannot start a nested mutation.
        dispatch(self._listeners, events)

    @contextmanager
    def _mutation(self, op: str) -> Iterator[None]:
        if self._busy:
            raise ReentrantMutationError(f"{op} called while another board operation is running")
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    # ---------- queries ----------

    def pieces(self) -> Tuple[Piece, ...]:
        return tuple(self._pieces)

    def piece(self, piece_id: int) -> Piece:
        return self._pieces[self._check_id(piece_id)]

    def staged_pieces(self) -> Tuple[Piece, ...]:
        """Unplaced pieces in staging-pool order."""
        return tuple(self._pieces[pid] for pid in self._staging)

    def staging_order(self) -> Tuple[int, ...]:
        return tuple(self._staging)

    def slot_occupancy(self) -> Tuple[Optional[int], ...]:
        return tuple(self._slots)

    def occupant(self, slot: int) -> Optional[int]:
        return self._slots[self.grid.check_slot(slot)]

    def locked_count(self) -> int:
        return sum(1 for p in self._pieces if p.locked)

    def is_complete(self) -> bool:
        """True iff every piece is locked. Always a fresh scan."""
        return all(p.locked for p in self._pieces)

    def snapshot(self) -> Dict[int, Optional[int]]:
        """{piece_id -> slot or None}, the map a persistence layer saves."""
        return {p.id: p.slot for p in self._pieces}

    def can_swap(self, piece_a: int, piece_b: int) -> bool:
        pa, pb = self.piece(piece_a), self.piece(piece_b)
        return pa.id != pb.id and not pa.locked and not pb.locked and pa.slot != pb.slot

    def _check_id(self, piece_id: object) -> int:
        if isinstance(piece_id, bool) or not isinstance(piece_id, int) or not self.grid.contains(piece_id):
            raise UnknownPieceIdError(piece_id)
        return piece_id

    # ---------- mutations ----------

    def place(self, piece_id: int, target_slot: int) -> PlaceResult:
        """Moves a piece onto a grid slot.

        Raises SlotOccupiedError, leaving all state untouched, when the slot
        holds another piece. Dropping a piece on its current slot, or trying
        to move a locked piece, is a no-op.
        """
        pid = self._check_id(piece_id)
        slot = self.grid.check_slot(target_slot)
        with self._mutation("place"):
            current = self._pieces[pid]
            if current.locked or current.slot == slot:
                if current.locked and current.slot != slot:
                    logger.debug("place(%d, %d) ignored: piece is locked", pid, slot)
                return PlaceResult(piece=current, moved=False, locked=False, completed=False)

            occupant = self._slots[slot]
            if occupant is not None:
                raise SlotOccupiedError(slot=slot, occupant=occupant, piece_id=pid)

            if current.slot is None:
                self._staging.remove(pid)
            else:
                self._slots[current.slot] = None
            updated = Piece.at(pid, slot)
            self._pieces[pid] = updated
            self._slots[slot] = pid
            self.move_count += 1

            events = [PuzzleEvent(PIECE_PLACED, pid, slot)]
            if updated.locked:
                logger.debug("piece %d locked at slot %d", pid, slot)
                events.append(PuzzleEvent(PIECE_LOCKED, pid, slot))
            completed = self._check_completion(events)
            self._emit(events)
            return PlaceResult(piece=updated, moved=True, locked=updated.locked, completed=completed)

    def return_to_staging(self, piece_id: int) -> bool:
        """Sends a placed, unlocked piece back to the staging pool. Returns False on a no-op."""
        pid = self._check_id(piece_id)
        with self._mutation("return_to_staging"):
            current = self._pieces[pid]
            if current.locked or current.slot is None:
                return False
            self._slots[current.slot] = None
            self._pieces[pid] = Piece.staged(pid)
            self._staging.append(pid)
            self.move_count += 1
            self._emit([PuzzleEvent(PIECE_RETURNED, pid, current.slot)])
            return True

    def swap(self, piece_a: int, piece_b: int) -> bool:
        """Exchanges the containers of two unlocked pieces.

        Either piece may be staged; swapping a placed piece with a staged one
        puts the staged piece on the grid and the other into its pool position.
        Returns False (no change) if either piece is locked or both share a
        container.
        """
        a = self._check_id(piece_a)
        b = self._check_id(piece_b)
        with self._mutation("swap"):
            if not self.can_swap(a, b):
                return False
            pa, pb = self._pieces[a], self._pieces[b]

            if pa.slot is None:
                self._staging[self._staging.index(a)] = b
            if pb.slot is None:
                self._staging[self._staging.index(b)] = a
            new_a = Piece.at(a, pb.slot)
            new_b = Piece.at(b, pa.slot)
            self._pieces[a] = new_a
            self._pieces[b] = new_b
            if new_a.slot is not None:
                self._slots[new_a.slot] = a
            if new_b.slot is not None:
                self._slots[new_b.slot] = b
            self.move_count += 1

            events = [PuzzleEvent(PIECES_SWAPPED, a, new_a.slot, other_id=b)]
            for p in (new_a, new_b):
                if p.locked:
                    events.append(PuzzleEvent(PIECE_LOCKED, p.id, p.slot))
            self._check_completion(events)
            self._emit(events)
            return True

    def restore(self, mapping: Mapping[int, Optional[int]], staging: Optional[List[int]] = None,
                move_count: int = 0) -> None:
        """Atomically replaces all placements from a {piece_id -> slot or None} map.

        Lock flags are re-derived from the slots. The map must cover every
        piece exactly once and put at most one piece in each slot; otherwise
        the board is left untouched and the error propagates.
        """
        total = self.grid.total_pieces
        placements: Dict[int, Optional[int]] = {}
        for raw_id, raw_slot in mapping.items():
            pid = self._check_id(raw_id)
            placements[pid] = None if raw_slot is None else self.grid.check_slot(raw_slot)
        missing = [pid for pid in range(total) if pid not in placements]
        if missing:
            raise UnknownPieceIdError(missing[0])
        slots: List[Optional[int]] = [None] * total
        for pid, slot in placements.items():
            if slot is None:
                continue
            if slots[slot] is not None:
                raise SlotOccupiedError(slot=slot, occupant=slots[slot], piece_id=pid)  # type: ignore[arg-type]
            slots[slot] = pid

        unplaced = [pid for pid in range(total) if placements[pid] is None]
        if staging is not None:
            order = [self._check_id(pid) for pid in staging]
            if sorted(order) != unplaced:
                raise ValueError("staging order must list exactly the unplaced pieces")
        else:
            order = unplaced

        with self._mutation("restore"):
            self._pieces = [Piece.at(pid, placements[pid]) for pid in range(total)]
            self._slots = slots
            self._staging = list(order)
            self.move_count = int(move_count)
            # Completion is a fact of the restored layout, not a new event.
            self._completed = self.is_complete()
        logger.debug("board restored: %d/%d locked", self.locked_count(), total)

    def reset(self, seed: Optional[int] = None) -> None:
        """Re-stages every piece and reshuffles the pool; clears completion."""
        with self._mutation("reset"):
            self._reset_state(self.seed if seed is None else seed)

    def _reset_state(self, seed: Optional[int]) -> None:
        total = self.grid.total_pieces
        self.seed = seed
        self._pieces = [Piece.staged(pid) for pid in range(total)]
        self._slots = [None] * total
        self._staging = shuffled_order(total, seed)
        self._completed = False
        self.move_count = 0

    def _check_completion(self, events: List[PuzzleEvent]) -> bool:
        if self._completed or not self.is_complete():
            return False
        self._completed = True
        logger.info("puzzle %dx%d completed after %d moves", self.grid.rows, self.grid.columns, self.move_count)
        events.append(PuzzleEvent(COMPLETED))
        return True


def shuffled_order(total: int, seed: Optional[int] = None) -> List[int]:
    """Staging-pool order for a fresh puzzle: a seeded Fisher-Yates shuffle."""
    rng = random.Random(seed)
    order = list(range(total))
    rng.shuffle(order)
    return order
