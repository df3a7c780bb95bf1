from __future__ import annotations

# Facade module that re-exports the jigsaw core functionality.
# Used by the Flask app and the tests; single-responsibility modules live
# under jigsaw_core/*.

# Robust imports so this module works when executed as part of a package or
# imported directly from the repo root.
try:
    from .jigsaw_core.grid import GridShape, Side, SIDES  # type: ignore
    from .jigsaw_core.errors import (  # type: ignore
        JigsawError,
        InvalidGridShapeError,
        InvalidSlotError,
        SlotOccupiedError,
        UnknownPieceIdError,
        ReentrantMutationError,
    )
    from .jigsaw_core.edges import EdgeSet, EdgeType, classify_edges, edge_has_tab  # type: ignore
    from .jigsaw_core.boundary import BoundaryPath, CubicTo, LineTo, build_boundary_path  # type: ignore
    from .jigsaw_core.piece import Piece, PieceStatus, is_correct  # type: ignore
    from .jigsaw_core.placement import (  # type: ignore
        PlaceResult,
        PuzzleBoard,
        PuzzleEvent,
        shuffled_order,
    )
    from .jigsaw_core.session import SessionController, SessionEvent, SessionPhase  # type: ignore
    from .jigsaw_core.scoring import ScoreKeeper  # type: ignore
    from .jigsaw_core.store import (  # type: ignore
        SavedProgress,
        db_delete_progress,
        db_load_progress,
        db_save_progress,
        resume_session,
        save_session,
    )
    from .jigsaw_core.codec import EventRecorder, session_from_json, session_to_json  # type: ignore
except ImportError:
    from jigsaw_core.grid import GridShape, Side, SIDES  # type: ignore
    from jigsaw_core.errors import (  # type: ignore
        JigsawError,
        InvalidGridShapeError,
        InvalidSlotError,
        SlotOccupiedError,
        UnknownPieceIdError,
        ReentrantMutationError,
    )
    from jigsaw_core.edges import EdgeSet, EdgeType, classify_edges, edge_has_tab  # type: ignore
    from jigsaw_core.boundary import BoundaryPath, CubicTo, LineTo, build_boundary_path  # type: ignore
    from jigsaw_core.piece import Piece, PieceStatus, is_correct  # type: ignore
    from jigsaw_core.placement import (  # type: ignore
        PlaceResult,
        PuzzleBoard,
        PuzzleEvent,
        shuffled_order,
    )
    from jigsaw_core.session import SessionController, SessionEvent, SessionPhase  # type: ignore
    from jigsaw_core.scoring import ScoreKeeper  # type: ignore
    from jigsaw_core.store import (  # type: ignore
        SavedProgress,
        db_delete_progress,
        db_load_progress,
        db_save_progress,
        resume_session,
        save_session,
    )
    from jigsaw_core.codec import EventRecorder, session_from_json, session_to_json  # type: ignore


def new_session(rows: int, columns: int, seed: int | None = None, edge_seed: int = 0) -> SessionController:
    return SessionController.create(rows, columns, seed=seed, edge_seed=edge_seed)


def main() -> None:
    # CLI driver delegated to jigsaw_core.cli
    try:
        from .jigsaw_core.cli import main as _main  # type: ignore
    except ImportError:
        from jigsaw_core.cli import main as _main  # type: ignore
    _main()


if __name__ == '__main__':
    main()
