from __future__ import annotations

from typing import Any, Dict, List, Optional

from .grid import GridShape
from .placement import COMPLETED, PIECE_LOCKED, PuzzleBoard, PuzzleEvent
from .session import SessionController, SessionEvent


def grid_to_json(g: GridShape) -> Dict[str, Any]:
    return {"rows": int(g.rows), "columns": int(g.columns)}


def session_to_json(s: SessionController) -> Dict[str, Any]:
    board = s.board
    return {
        "grid": grid_to_json(board.grid),
        "seed": board.seed,
        "edgeSeed": s.edge_seed,
        "pieces": [[p.id, p.slot] for p in board.pieces()],
        "locked": [p.id for p in board.pieces() if p.locked],
        "staging": list(board.staging_order()),
        "hasStarted": s.has_started,
        "phase": s.phase.value,
        "moves": board.move_count,
        "complete": board.is_complete(),
    }


def session_from_json(obj: Dict[str, Any]) -> SessionController:
    """Rebuilds a session from `session_to_json` output.

    Only the piece -> slot pairs are trusted; `locked`, `phase` and
    `complete` are re-derived by `SessionController.restore`.
    """
    g = obj["grid"]
    grid = GridShape.create(g["rows"], g["columns"])
    seed = obj.get("seed")
    board = PuzzleBoard(grid, seed=None if seed is None else int(seed))
    session = SessionController(board, edge_seed=int(obj.get("edgeSeed", 0) or 0))
    mapping: Dict[int, Optional[int]] = {}
    for pid, slot in obj.get("pieces", []):
        mapping[int(pid)] = None if slot is None else int(slot)
    staging_in = obj.get("staging")
    staging: Optional[List[int]] = [int(x) for x in staging_in] if isinstance(staging_in, list) else None
    session.restore(
        mapping,
        has_started=bool(obj.get("hasStarted", False)),
        staging=staging,
        move_count=int(obj.get("moves", 0) or 0),
    )
    return session


def event_to_json(ev: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {"kind": ev.kind}
    if ev.piece_id is not None:
        out["pieceId"] = ev.piece_id
    if isinstance(ev, PuzzleEvent):
        if ev.slot is not None:
            out["slot"] = ev.slot
        if ev.other_id is not None:
            out["otherId"] = ev.other_id
    return out


class EventRecorder:
    """Collects session and board events for one request so they can be returned to the client."""

    def __init__(self, session: SessionController):
        self.events: List[Dict[str, Any]] = []
        session.subscribe(self._on_session)
        session.board.subscribe(self._on_board)

    def _on_session(self, ev: SessionEvent) -> None:
        self.events.append(event_to_json(ev))

    def _on_board(self, ev: PuzzleEvent) -> None:
        # piece-locked and completed reach us through the session already.
        if ev.kind not in (PIECE_LOCKED, COMPLETED):
            self.events.append(event_to_json(ev))
