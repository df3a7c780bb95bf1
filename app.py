from __future__ import annotations

import logging
import os
import sys
from typing import Any, Dict, Optional, Tuple

from flask import Flask, jsonify, request

# Ensure package imports work when executed directly from repo root or as module
if __package__ in (None, ""):
    sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

try:
    from .game import (  # type: ignore
        EventRecorder,
        InvalidGridShapeError,
        InvalidSlotError,
        JigsawError,
        SessionController,
        SlotOccupiedError,
        UnknownPieceIdError,
        resume_session,
        save_session,
        session_from_json,
        session_to_json,
    )
except ImportError:
    from game import (  # type: ignore
        EventRecorder,
        InvalidGridShapeError,
        InvalidSlotError,
        JigsawError,
        SessionController,
        SlotOccupiedError,
        UnknownPieceIdError,
        resume_session,
        save_session,
        session_from_json,
        session_to_json,
    )

DEFAULT_DB = os.getenv("JIGSAW_DB", "data/jigsaw.db")

logging.basicConfig(
    level=getattr(logging, os.getenv("JIGSAW_LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)


class ApiInputError(Exception):
    pass


# ---------- Error mapping ----------

@app.errorhandler(SlotOccupiedError)
def _slot_occupied(e: SlotOccupiedError) -> Any:
    return jsonify({"ok": False, "error": str(e), "slot": e.slot, "occupant": e.occupant}), 409


@app.errorhandler(UnknownPieceIdError)
@app.errorhandler(InvalidSlotError)
def _not_found(e: JigsawError) -> Any:
    return jsonify({"ok": False, "error": str(e)}), 404


@app.errorhandler(InvalidGridShapeError)
@app.errorhandler(ApiInputError)
def _bad_request(e: Exception) -> Any:
    return jsonify({"ok": False, "error": str(e)}), 400


@app.errorhandler(JigsawError)
def _engine_error(e: JigsawError) -> Any:
    logger.error("engine error: %s", e)
    return jsonify({"ok": False, "error": str(e)}), 500


# ---------- Helpers ----------

def _body() -> Dict[str, Any]:
    body = request.get_json(force=True, silent=True)
    if not isinstance(body, dict):
        raise ApiInputError("JSON object body required")
    return body


def _int_field(body: Dict[str, Any], name: str) -> int:
    v = body.get(name)
    if isinstance(v, bool):
        raise ApiInputError(f"{name} must be an integer")
    try:
        return int(v)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ApiInputError(f"{name} must be an integer") from None


def _load_session(body: Dict[str, Any]) -> Tuple[SessionController, EventRecorder]:
    s_in = body.get("state")
    if not isinstance(s_in, dict):
        raise ApiInputError("state required")
    try:
        session = session_from_json(s_in)
    except JigsawError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise ApiInputError(f"bad state: {e}") from None
    return session, EventRecorder(session)


def _state_response(session: SessionController, recorder: Optional[EventRecorder] = None, **extra: Any) -> Any:
    payload: Dict[str, Any] = {
        "ok": True,
        "state": session_to_json(session),
        "events": recorder.events if recorder else [],
        "complete": session.is_complete,
    }
    payload.update(extra)
    return jsonify(payload)


# ---------- Game API ----------

@app.get("/api/health")
def api_health() -> Any:
    return jsonify({"ok": True})


@app.post("/api/new")
def api_new() -> Any:
    # An empty body means the default 3x3 puzzle.
    body = request.get_json(force=True, silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise ApiInputError("JSON object body required")
    seed = body.get("seed", None)
    session = SessionController.create(
        body.get("rows", 3),
        body.get("columns", 3),
        seed=None if seed is None else _int_field(body, "seed"),
        edge_seed=_int_field(body, "edgeSeed") if "edgeSeed" in body else 0,
    )
    return _state_response(session)


@app.post("/api/pickup")
def api_pickup() -> Any:
    body = _body()
    session, recorder = _load_session(body)
    piece = session.pick_up(_int_field(body, "pieceId"))
    return _state_response(session, recorder, locked=piece.locked)


@app.post("/api/place")
def api_place() -> Any:
    body = _body()
    session, recorder = _load_session(body)
    result = session.place(_int_field(body, "pieceId"), _int_field(body, "slot"))
    return _state_response(session, recorder, moved=result.moved, locked=result.piece.locked)


@app.post("/api/return")
def api_return() -> Any:
    body = _body()
    session, recorder = _load_session(body)
    changed = session.return_to_staging(_int_field(body, "pieceId"))
    return _state_response(session, recorder, moved=changed)


@app.post("/api/swap")
def api_swap() -> Any:
    body = _body()
    session, recorder = _load_session(body)
    changed = session.swap(_int_field(body, "pieceA"), _int_field(body, "pieceB"))
    return _state_response(session, recorder, moved=changed)


@app.post("/api/reset")
def api_reset() -> Any:
    body = _body()
    session, recorder = _load_session(body)
    seed = body.get("seed", None)
    session.reset(None if seed is None else _int_field(body, "seed"))
    return _state_response(session, recorder)


@app.post("/api/path")
def api_path() -> Any:
    body = _body()
    session, _ = _load_session(body)
    pid = _int_field(body, "pieceId")
    try:
        width = float(body.get("width", 100))
        height = float(body.get("height", 100))
    except (TypeError, ValueError):
        raise ApiInputError("width and height must be numbers") from None
    if width <= 0 or height <= 0:
        raise ApiInputError("width and height must be positive")
    path = session.get_boundary_path(pid, width, height)
    return jsonify({
        "ok": True,
        "pieceId": pid,
        "edges": path.edges.to_json(),
        "path": path.to_svg(),
        "bounds": list(path.bounds()),
    })


@app.post("/api/save")
def api_save() -> Any:
    body = _body()
    puzzle_id = str(body.get("puzzleId", "")).strip()
    if not puzzle_id:
        raise ApiInputError("puzzleId required")
    session, _ = _load_session(body)
    save_session(body.get("db") or DEFAULT_DB, puzzle_id, session)
    return jsonify({"ok": True, "puzzleId": puzzle_id})


@app.post("/api/load")
def api_load() -> Any:
    body = _body()
    puzzle_id = str(body.get("puzzleId", "")).strip()
    if not puzzle_id:
        raise ApiInputError("puzzleId required")
    session = resume_session(body.get("db") or DEFAULT_DB, puzzle_id)
    if session is None:
        return jsonify({"ok": False, "error": f"no saved progress for {puzzle_id!r}"}), 404
    return _state_response(session)


# Entrypoint for "python app.py"
if __name__ == "__main__":
    debug = os.getenv("FLASK_DEBUG", os.getenv("DEBUG", "0")).lower() in ("1", "true", "yes", "on")
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=debug)
