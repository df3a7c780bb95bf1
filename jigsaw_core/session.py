from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Mapping, Optional, Tuple

from .boundary import BoundaryPath, build_boundary_path
from .edges import EdgeSet, classify_edges
from .errors import ReentrantMutationError
from .grid import GridShape
from .piece import Piece
from .placement import (
    COMPLETED,
    PIECE_LOCKED,
    PlaceResult,
    PuzzleBoard,
    PuzzleEvent,
    dispatch,
)

logger = logging.getLogger(__name__)

STARTED = "started"
RESET = "reset"


class SessionPhase(Enum):
    NOT_STARTED = "not-started"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SessionEvent:
    kind: str  # started | piece-locked | completed | reset
    piece_id: Optional[int] = None


SessionListener = Callable[[SessionEvent], None]


class SessionController:
    """Connects player input to a PuzzleBoard and publishes lifecycle events.

    The controller owns no puzzle data beyond its phase. `started` and
    `completed` fire at most once per round (a round ends with `reset`),
    `piece-locked` once per piece.
    """

    def __init__(self, board: PuzzleBoard, edge_seed: int = 0):
        self.board = board
        self.edge_seed = edge_seed
        self.phase = SessionPhase.NOT_STARTED
        self._listeners: List[SessionListener] = []
        self._busy = False
        board.subscribe(self._on_board_event)

    @classmethod
    def create(cls, rows: object, columns: object, seed: Optional[int] = None,
               edge_seed: int = 0) -> 'SessionController':
        grid = GridShape.create(rows, columns)
        return cls(PuzzleBoard(grid, seed=seed), edge_seed=edge_seed)

    @property
    def grid(self) -> GridShape:
        return self.board.grid

    @property
    def has_started(self) -> bool:
        return self.phase is not SessionPhase.NOT_STARTED

    @property
    def is_complete(self) -> bool:
        return self.board.is_complete()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self, event: SessionEvent) -> None:
        dispatch(self._listeners, [event])

    @contextmanager
    def _mutation(self, op: str) -> Iterator[None]:
        # Covers the `started` publish as well as the forwarded board call.
        if self._busy:
            raise ReentrantMutationError(f"{op} called while another session operation is running")
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    def _on_board_event(self, ev: PuzzleEvent) -> None:
        if ev.kind == PIECE_LOCKED:
            self._publish(SessionEvent(PIECE_LOCKED, ev.piece_id))
        elif ev.kind == COMPLETED:
            self.phase = SessionPhase.COMPLETED
            logger.info("session completed")
            self._publish(SessionEvent(COMPLETED))

    # ---------- input layer ----------

    def on_first_interaction(self) -> None:
        if self.phase is not SessionPhase.NOT_STARTED:
            return
        self.phase = SessionPhase.RUNNING
        logger.info("session started (%dx%d)", self.grid.rows, self.grid.columns)
        self._publish(SessionEvent(STARTED))

    def pick_up(self, piece_id: int) -> Piece:
        """Start of a drag. Validates the id and counts as the first interaction."""
        piece = self.board.piece(piece_id)
        with self._mutation("pick_up"):
            self.on_first_interaction()
        return piece

    def place(self, piece_id: int, target_slot: int) -> PlaceResult:
        # Validate before starting the clock so a rejected drop leaves the phase alone.
        self.board.piece(piece_id)
        self.grid.check_slot(target_slot)
        with self._mutation("place"):
            occupant = self.board.occupant(target_slot)
            if occupant is None or occupant == piece_id:
                self.on_first_interaction()
            return self.board.place(piece_id, target_slot)

    def return_to_staging(self, piece_id: int) -> bool:
        with self._mutation("return_to_staging"):
            return self.board.return_to_staging(piece_id)

    def swap(self, piece_a: int, piece_b: int) -> bool:
        with self._mutation("swap"):
            if self.board.can_swap(piece_a, piece_b):
                self.on_first_interaction()
            return self.board.swap(piece_a, piece_b)

    def reset(self, seed: Optional[int] = None) -> None:
        """Re-stages every piece and returns to NOT_STARTED."""
        with self._mutation("reset"):
            self.board.reset(seed)
            was = self.phase
            self.phase = SessionPhase.NOT_STARTED
            if was is not SessionPhase.NOT_STARTED:
                logger.info("session reset")
                self._publish(SessionEvent(RESET))

    def restore(self, mapping: Mapping[int, Optional[int]], has_started: bool = True,
                staging: Optional[List[int]] = None, move_count: int = 0) -> None:
        """Resumes a saved game. Lock flags and phase are derived, not trusted."""
        with self._mutation("restore"):
            self.board.restore(mapping, staging=staging, move_count=move_count)
            if self.board.is_complete():
                self.phase = SessionPhase.COMPLETED
            elif has_started or move_count > 0:
                self.phase = SessionPhase.RUNNING
            else:
                self.phase = SessionPhase.NOT_STARTED

    # ---------- renderer queries ----------

    def get_pieces(self) -> Tuple[Piece, ...]:
        return self.board.pieces()

    def get_slot_occupancy(self) -> Tuple[Optional[int], ...]:
        return self.board.slot_occupancy()

    def is_piece_correct(self, piece_id: int) -> bool:
        return self.board.piece(piece_id).is_correct

    def get_edges(self, piece_id: int) -> EdgeSet:
        return classify_edges(self.board.piece(piece_id).id, self.grid, self.edge_seed)

    def get_boundary_path(self, piece_id: int, piece_width: float = 100.0,
                          piece_height: float = 100.0) -> BoundaryPath:
        pid = self.board.piece(piece_id).id
        return build_boundary_path(pid, self.grid, piece_width, piece_height, self.edge_seed)

    def pretty(self) -> str:
        locked = [p.id for p in self.board.pieces() if p.locked]
        return self.grid.pretty(self.board.slot_occupancy(), locked)
