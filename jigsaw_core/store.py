from __future__ import annotations

import json
import logging
import os
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .grid import GridShape
from .placement import PuzzleBoard
from .scoring import ScoreKeeper
from .session import SessionController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SavedProgress:
    puzzle_id: str
    grid: GridShape
    placements: Dict[int, Optional[int]]  # piece id -> slot or None (staged)
    staging: List[int]
    has_started: bool
    moves: int
    seed: Optional[int]
    edge_seed: int
    saved_at: str
    elapsed: int = 0
    stats: Dict[str, Any] = field(default_factory=dict)  # ScoreKeeper.stats() at save time


def _ensure_db_dir(db_path: str) -> None:
    """Ensures the directory for the SQLite DB exists before connecting."""
    directory = os.path.dirname(db_path)
    if directory and not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)


def _resolve_db_path(db_path: str) -> str:
    """Resolves a potentially unwritable DB path to a writable one, creating the directory if needed."""
    try:
        _ensure_db_dir(db_path)
        return db_path
    except PermissionError:
        logger.warning("cannot create directory for %s, trying fallbacks", db_path)
    candidates = [
        os.getenv('JIGSAW_DB_DIR'),
        os.path.join(os.getcwd(), 'data'),
        '/tmp',
    ]
    base = os.path.basename(db_path) or 'jigsaw.db'
    for d in candidates:
        if not d:
            continue
        try:
            os.makedirs(d, exist_ok=True)
            return os.path.join(d, base)
        except OSError:
            continue
    return base


def _ensure_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS progress (
            puzzle_id TEXT PRIMARY KEY,
            rows INTEGER NOT NULL,
            columns INTEGER NOT NULL,
            placements TEXT NOT NULL,
            staging TEXT NOT NULL,
            has_started INTEGER NOT NULL,
            moves INTEGER NOT NULL,
            seed INTEGER,
            edge_seed INTEGER NOT NULL,
            saved_at TEXT NOT NULL,
            elapsed INTEGER NOT NULL DEFAULT 0,
            stats TEXT
        )
        """
    )
    # Saves written before timing was stored lack the last two columns.
    columns = {row[1] for row in conn.execute("PRAGMA table_info(progress)")}
    for name, decl in (("elapsed", "INTEGER NOT NULL DEFAULT 0"), ("stats", "TEXT")):
        if name not in columns:
            conn.execute(f"ALTER TABLE progress ADD COLUMN {name} {decl}")
    conn.commit()


def _connect(db_path: str) -> sqlite3.Connection:
    resolved = _resolve_db_path(db_path)
    _ensure_db_dir(resolved)
    conn = sqlite3.connect(resolved)
    _ensure_db(conn)
    return conn


def db_save_progress(
    db_path: str,
    puzzle_id: str,
    grid: GridShape,
    placements: Mapping[int, Optional[int]],
    staging: List[int],
    has_started: bool,
    moves: int,
    seed: Optional[int] = None,
    edge_seed: int = 0,
    elapsed: int = 0,
    stats: Optional[Mapping[str, Any]] = None,
) -> None:
    """Stores the {piece -> slot} map of a game in progress. Lock flags are never stored."""
    conn = _connect(db_path)
    try:
        # JSON object keys must be strings; slots stay ints or null.
        encoded = json.dumps({str(pid): slot for pid, slot in sorted(placements.items())})
        conn.execute(
            """
            INSERT OR REPLACE INTO progress
            (puzzle_id, rows, columns, placements, staging, has_started, moves, seed, edge_seed, saved_at,
             elapsed, stats)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                puzzle_id,
                grid.rows,
                grid.columns,
                encoded,
                json.dumps(list(staging)),
                1 if has_started else 0,
                int(moves),
                seed,
                int(edge_seed),
                datetime.now(timezone.utc).isoformat(timespec='seconds'),
                int(elapsed),
                None if stats is None else json.dumps(dict(stats)),
            ),
        )
        conn.commit()
        logger.debug("saved progress for %s", puzzle_id)
    finally:
        conn.close()


def db_load_progress(db_path: str, puzzle_id: str) -> Optional[SavedProgress]:
    conn = _connect(db_path)
    try:
        cur = conn.execute(
            "SELECT rows, columns, placements, staging, has_started, moves, seed, edge_seed, saved_at, "
            "elapsed, stats "
            "FROM progress WHERE puzzle_id = ?",
            (puzzle_id,),
        )
        row = cur.fetchone()
        if not row:
            return None
        (rows, columns, placements_json, staging_json, started, moves, seed, edge_seed, saved_at,
         elapsed, stats_json) = row
        raw = json.loads(placements_json)
        placements = {int(pid): (None if slot is None else int(slot)) for pid, slot in raw.items()}
        return SavedProgress(
            puzzle_id=puzzle_id,
            grid=GridShape(rows=int(rows), columns=int(columns)),
            placements=placements,
            staging=[int(pid) for pid in json.loads(staging_json)],
            has_started=bool(started),
            moves=int(moves),
            seed=None if seed is None else int(seed),
            edge_seed=int(edge_seed),
            saved_at=saved_at,
            elapsed=int(elapsed or 0),
            stats=json.loads(stats_json) if stats_json else {},
        )
    finally:
        conn.close()


def db_delete_progress(db_path: str, puzzle_id: str) -> bool:
    conn = _connect(db_path)
    try:
        cur = conn.execute("DELETE FROM progress WHERE puzzle_id = ?", (puzzle_id,))
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()


def save_session(db_path: str, puzzle_id: str, session: SessionController,
                 scores: Optional[ScoreKeeper] = None) -> None:
    """Saves placements, and the timer and move statistics when a ScoreKeeper is given."""
    board = session.board
    db_save_progress(
        db_path,
        puzzle_id,
        board.grid,
        board.snapshot(),
        list(board.staging_order()),
        session.has_started,
        board.move_count,
        seed=board.seed,
        edge_seed=session.edge_seed,
        elapsed=scores.elapsed_seconds() if scores is not None else 0,
        stats=scores.stats() if scores is not None else None,
    )


def resume_session(db_path: str, puzzle_id: str,
                   scores: Optional[ScoreKeeper] = None) -> Optional[SessionController]:
    """Rebuilds a session from a save slot, or None when nothing is saved under that id.

    A given ScoreKeeper is loaded with the saved statistics and attached, so
    its clock resumes from the saved elapsed time.
    """
    saved = db_load_progress(db_path, puzzle_id)
    if saved is None:
        return None
    session = SessionController(PuzzleBoard(saved.grid, seed=saved.seed), edge_seed=saved.edge_seed)
    session.restore(saved.placements, has_started=saved.has_started,
                    staging=saved.staging, move_count=saved.moves)
    if scores is not None:
        stats = dict(saved.stats) or {"moves": saved.moves}
        stats["elapsedTime"] = saved.elapsed
        scores.load_stats(stats).attach(session)
    return session
