from __future__ import annotations

import argparse
import logging

from .errors import JigsawError, SlotOccupiedError
from .scoring import ScoreKeeper
from .session import SessionController, SessionEvent
from .store import resume_session, save_session

HELP = """Commands:
  place ID SLOT   drop piece ID on slot SLOT
  back ID         return piece ID to the staging pool
  swap A B        exchange pieces A and B
  path ID         print the SVG outline of piece ID
  show            print the grid and staging pool
  reset           start over
  save            save progress (needs --puzzle-id)
  quit"""


def _print_state(session: SessionController) -> None:
    print(session.pretty())
    staged = [p.id for p in session.board.staged_pieces()]
    print('Staging:', staged if staged else '(empty)')


def main() -> None:
    parser = argparse.ArgumentParser(description='Jigsaw assembly engine: play in the terminal')
    parser.add_argument('--rows', type=int, default=3, help='Grid rows (>= 2)')
    parser.add_argument('--columns', type=int, default=3, help='Grid columns (>= 2)')
    parser.add_argument('--seed', type=int, default=None, help='RNG seed for the staging shuffle')
    parser.add_argument('--edge-seed', type=int, default=0, help='Seed for the tab/slot cut')
    parser.add_argument('--db', default='data/jigsaw.db', help='SQLite DB file path for save/resume')
    parser.add_argument('--puzzle-id', default=None, help='Save slot name; resumes if it exists')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    scores = ScoreKeeper()
    session = None
    if args.puzzle_id:
        session = resume_session(args.db, args.puzzle_id, scores=scores)
        if session is not None:
            print(f"Resumed '{args.puzzle_id}'.")
    if session is None:
        try:
            session = SessionController.create(args.rows, args.columns, seed=args.seed, edge_seed=args.edge_seed)
        except JigsawError as e:
            parser.error(str(e))
        scores.attach(session)

    def on_event(ev: SessionEvent) -> None:
        if ev.kind == 'piece-locked':
            print(f"Piece {ev.piece_id} locked.")
        elif ev.kind == 'completed':
            total = session.grid.total_pieces
            print(f"Puzzle complete! Score {scores.calculate_score(total)}, "
                  f"rating {scores.performance_rating(total)}/100")

    session.subscribe(on_event)
    _print_state(session)
    print(HELP)

    while True:
        try:
            text = input('> ').strip()
        except EOFError:
            break
        if not text:
            continue
        cmd, *rest = text.split()
        try:
            nums = [int(x) for x in rest]
        except ValueError:
            print('Arguments must be integers.')
            continue
        try:
            if cmd == 'quit':
                break
            elif cmd == 'place' and len(nums) == 2:
                session.pick_up(nums[0])
                session.place(nums[0], nums[1])
            elif cmd == 'back' and len(nums) == 1:
                if not session.return_to_staging(nums[0]):
                    print('Nothing to do.')
            elif cmd == 'swap' and len(nums) == 2:
                if not session.swap(nums[0], nums[1]):
                    print('Nothing to do.')
            elif cmd == 'path' and len(nums) == 1:
                print(session.get_boundary_path(nums[0]).to_svg())
                continue
            elif cmd == 'reset':
                session.reset()
            elif cmd == 'save':
                if not args.puzzle_id:
                    print('Start with --puzzle-id to save.')
                    continue
                save_session(args.db, args.puzzle_id, session, scores)
                print('Saved.')
                continue
            elif cmd != 'show':
                print(HELP)
                continue
        except SlotOccupiedError as e:
            print(f"Slot {e.slot} already holds piece {e.occupant}.")
            continue
        except JigsawError as e:
            print(f"error: {e}")
            continue
        _print_state(session)
